# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/reconcile/primitives.py

from __future__ import annotations

import hashlib
import shlex
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import List, Optional, Protocol, Sequence, Set

from ..errors import CommandError
from ..execution.runner import CommandResult
from ..execution.transport import Transport


def q(s: str) -> str:
    return shlex.quote(s)


def must(t: Transport, cmd: str, *, sudo: bool = False, user: Optional[str] = None) -> CommandResult:
    res = t.run(cmd, sudo=sudo, user=user)
    if not res.ok:
        raise CommandError(cmd, res.rc, res.stderr)
    return res


class Primitive(Protocol):
    """
    One piece of host state. ``check`` answers whether it already matches the
    declaration; ``apply`` converges it. Unconditional primitives skip the
    check and always apply.
    """

    name: str
    unconditional: bool

    def check(self, t: Transport) -> bool: ...

    def apply(self, t: Transport) -> None: ...


# ---------------------------------------------------------------------
# Service account
# ---------------------------------------------------------------------
@dataclass
class ServiceAccount:
    user: str
    groups: Sequence[str]
    key_type: str = "rsa"
    key_bits: int = 4096
    name: str = "service account"
    unconditional: bool = False

    @property
    def key_path(self) -> str:
        return f"~{self.user}/.ssh/id_{self.key_type}"

    def _exists(self, t: Transport) -> bool:
        return t.run(f"id -u {q(self.user)}").ok

    def _missing_groups(self, t: Transport) -> List[str]:
        res = must(t, f"id -nG {q(self.user)}")
        have: Set[str] = set(res.stdout.split())
        return [g for g in self.groups if g not in have]

    def _has_key(self, t: Transport) -> bool:
        return t.run(f"test -f {self.key_path}", sudo=True).ok

    def check(self, t: Transport) -> bool:
        return self._exists(t) and not self._missing_groups(t) and self._has_key(t)

    def apply(self, t: Transport) -> None:
        groups = ",".join(self.groups)
        if not self._exists(t):
            must(t, f"useradd --create-home --groups {q(groups)} {q(self.user)}", sudo=True)
        elif self._missing_groups(t):
            must(t, f"usermod --append --groups {q(groups)} {q(self.user)}", sudo=True)

        if not self._has_key(t):
            must(
                t,
                "mkdir -p ~/.ssh && chmod 700 ~/.ssh && "
                f"ssh-keygen -q -t {q(self.key_type)} -b {self.key_bits} -N '' -f ~/.ssh/id_{self.key_type}",
                user=self.user,
            )


# ---------------------------------------------------------------------
# Directory tree
# ---------------------------------------------------------------------
@dataclass
class WorkingDirectorySet:
    paths: Sequence[str]
    owner: str
    group: str
    name: str = "working directories"
    unconditional: bool = False

    def _expected(self) -> str:
        return f"{self.owner}:{self.group}:directory"

    def _out_of_place(self, t: Transport) -> List[str]:
        bad = []
        for p in self.paths:
            res = t.run(f"stat -c %U:%G:%F {q(p)}", sudo=True)
            if not res.ok or res.stdout.strip() != self._expected():
                bad.append(p)
        return bad

    def check(self, t: Transport) -> bool:
        return not self._out_of_place(t)

    def _missing_components(self, t: Transport, path: str) -> List[str]:
        # once one component is absent every deeper one is too
        parts = PurePosixPath(path).parts
        prefixes = [str(PurePosixPath(*parts[: i + 1])) for i in range(1, len(parts))]
        for i, d in enumerate(prefixes):
            if not t.run(f"test -d {q(d)}", sudo=True).ok:
                return prefixes[i:]
        return []

    def apply(self, t: Transport) -> None:
        for p in self._out_of_place(t):
            missing = self._missing_components(t, p)
            if missing:
                dirs = " ".join(q(d) for d in missing)
                must(t, f"install -d -o {q(self.owner)} -g {q(self.group)} {dirs}", sudo=True)
            else:
                must(t, f"chown {q(self.owner)}:{q(self.group)} {q(p)}", sudo=True)


# ---------------------------------------------------------------------
# Rendered desired-state declaration
# ---------------------------------------------------------------------
@dataclass
class DeclarationFile:
    path: str
    content: str
    owner: str
    group: str
    mode: int = 0o644
    name: str = "build node config"
    unconditional: bool = False

    def check(self, t: Transport) -> bool:
        # compare digests so the rendered secrets never land in the command log
        cur = t.run(f"sha256sum {q(self.path)}", sudo=True)
        want = hashlib.sha256(self.content.encode("utf-8")).hexdigest()
        if not cur.ok or cur.stdout.split()[:1] != [want]:
            return False
        meta = t.run(f"stat -c %U:%G:%a {q(self.path)}", sudo=True)
        return meta.ok and meta.stdout.strip() == f"{self.owner}:{self.group}:{self.mode:o}"

    def apply(self, t: Transport) -> None:
        t.put_text(self.content, self.path, mode=self.mode, sudo=True)
        must(t, f"chown {q(self.owner)}:{q(self.group)} {q(self.path)}", sudo=True)


# ---------------------------------------------------------------------
# Source checkout
# ---------------------------------------------------------------------
def parse_ls_remote(output: str, ref: str) -> Optional[str]:
    """
    Pick the commit for ``ref`` out of ``git ls-remote`` output. Annotated
    tags resolve to the peeled (``^{}``) commit.
    """
    wanted = (f"refs/heads/{ref}", f"refs/tags/{ref}^{{}}", f"refs/tags/{ref}", ref)
    found = {}
    for line in output.splitlines():
        parts = line.split()
        if len(parts) == 2:
            found[parts[1]] = parts[0]
    for name in wanted:
        if name in found:
            return found[name]
    return None


@dataclass
class SourceCheckout:
    repo: str
    dest: str
    ref: str
    user: str
    name: str = "source checkout"
    unconditional: bool = False

    def _cloned(self, t: Transport) -> bool:
        return t.run(f"test -d {q(self.dest + '/.git')}", user=self.user).ok

    def _remote_commit(self, t: Transport) -> str:
        res = must(t, f"git ls-remote {q(self.repo)} {q(self.ref)}", user=self.user)
        commit = parse_ls_remote(res.stdout, self.ref)
        if not commit:
            raise CommandError(f"git ls-remote {self.repo} {self.ref}", 1, f"ref {self.ref!r} not found")
        return commit

    def check(self, t: Transport) -> bool:
        if not self._cloned(t):
            return False
        head = must(t, f"git -C {q(self.dest)} rev-parse HEAD", user=self.user).stdout.strip()
        if head != self._remote_commit(t):
            return False
        dirty = must(t, f"git -C {q(self.dest)} status --porcelain --untracked-files=no", user=self.user)
        return not dirty.stdout.strip()

    def apply(self, t: Transport) -> None:
        if not self._cloned(t):
            must(t, f"git clone --branch {q(self.ref)} {q(self.repo)} {q(self.dest)}", user=self.user)
            return
        must(
            t,
            f"git -C {q(self.dest)} fetch --force origin {q(self.ref)} && "
            f"git -C {q(self.dest)} reset --hard FETCH_HEAD",
            user=self.user,
        )


# ---------------------------------------------------------------------
# Isolated dependency environment
# ---------------------------------------------------------------------
@dataclass
class VirtualEnvironment:
    root: str
    user: str
    name: str = "virtual environment"
    unconditional: bool = False

    def check(self, t: Transport) -> bool:
        return t.run(f"test -f {q(self.root + '/bin/activate')}", user=self.user).ok

    def apply(self, t: Transport) -> None:
        must(t, f"python3 -m venv --system-site-packages {q(self.root)}", user=self.user)


@dataclass
class InstallerUpgrade:
    root: str
    user: str
    name: str = "pip upgrade"
    unconditional: bool = True

    def check(self, t: Transport) -> bool:
        return False

    def apply(self, t: Transport) -> None:
        must(t, f"{q(self.root + '/bin/pip')} install --upgrade pip", user=self.user)


@dataclass
class RequirementSet:
    root: str
    requirements: str
    user: str
    name: str = "requirements"
    unconditional: bool = True

    def check(self, t: Transport) -> bool:
        return False

    def apply(self, t: Transport) -> None:
        must(t, f"{q(self.root + '/bin/pip')} install -r {q(self.requirements)}", user=self.user)
