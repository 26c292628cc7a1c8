# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/bootstrap/prerequisites.py

from __future__ import annotations

import logging
import os
import re
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, MutableMapping, Optional, Sequence, Tuple

from ..errors import PrerequisiteInstallError
from ..execution.runner import CommandRunner

log = logging.getLogger("quickdeploy")

MIN_ANSIBLE_VERSION: Tuple[int, int] = (2, 10)
GALAXY_REQUIREMENTS = "requirements.yml"


class ToolStatus(str, Enum):
    ALREADY_PRESENT = "already-present"
    INSTALLED = "installed"


@dataclass(frozen=True)
class Tool:
    name: str
    probe: str                                   # executable looked up on PATH
    install: Sequence[Sequence[str]] = field(default_factory=tuple)
    user_bin: bool = False                       # lands in ~/.local/bin


DEFAULT_TOOLS: Tuple[Tool, ...] = (
    Tool("python3", "python3", (("sudo", "dnf", "install", "-y", "python3", "python3-pip"),)),
    Tool("git", "git", (("sudo", "dnf", "install", "-y", "git"),)),
    Tool("ansible", "ansible-playbook", (("python3", "-m", "pip", "install", "--user", "ansible"),), user_bin=True),
)


def parse_ansible_version(output: str) -> Optional[Tuple[int, int]]:
    """
    First line of ``ansible --version`` is either ``ansible 2.9.27`` or
    ``ansible [core 2.15.3]``.
    """
    first = output.strip().splitlines()[0] if output.strip() else ""
    m = re.search(r"(\d+)\.(\d+)", first)
    if not m:
        return None
    return int(m.group(1)), int(m.group(2))


class PrerequisiteInstaller:
    """
    Makes sure the minimal toolset exists, installing only what is missing.
    Package-manager and pip calls go through the CommandRunner so they can be
    replaced in tests.
    """

    def __init__(
        self,
        *,
        runner: Optional[CommandRunner] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
        environ: Optional[MutableMapping[str, str]] = None,
        home: Optional[Path] = None,
        tools: Sequence[Tool] = DEFAULT_TOOLS,
    ):
        self.runner = runner or CommandRunner(label="prereq")
        self.which = which
        self.environ = os.environ if environ is None else environ
        self.home = home or Path.home()
        self.tools = tuple(tools)

    @property
    def user_bin(self) -> Path:
        return self.home / ".local" / "bin"

    def _present(self, tool: Tool) -> bool:
        return self.which(tool.probe) is not None

    def ensure_tool_present(self, tool: Tool) -> ToolStatus:
        if self._present(tool):
            log.debug(f"{tool.name} already present")
            return ToolStatus.ALREADY_PRESENT

        log.info(f"Installing {tool.name}...")
        for argv in tool.install:
            res = self.runner.run(list(argv))
            if not res.ok:
                raise PrerequisiteInstallError(
                    f"installing {tool.name} failed (rc={res.rc}): {res.stderr.strip() or res.command}"
                )

        if tool.user_bin:
            self.add_user_bin_to_path()

        if not self._present(tool):
            raise PrerequisiteInstallError(f"{tool.name} installed but '{tool.probe}' is still not on PATH")
        return ToolStatus.INSTALLED

    def add_user_bin_to_path(self) -> None:
        """
        Prepend ~/.local/bin to PATH for the rest of this run and persist the
        same export in ~/.bashrc (appended once).
        """
        user_bin = str(self.user_bin)
        parts = self.environ.get("PATH", "").split(os.pathsep)
        if user_bin not in parts:
            self.environ["PATH"] = os.pathsep.join([user_bin] + [p for p in parts if p])

        line = 'export PATH="$HOME/.local/bin:$PATH"'
        bashrc = self.home / ".bashrc"
        existing = bashrc.read_text(encoding="utf-8") if bashrc.exists() else ""
        if line not in existing.splitlines():
            with open(bashrc, "a", encoding="utf-8") as f:
                if existing and not existing.endswith("\n"):
                    f.write("\n")
                f.write(line + "\n")
            log.debug(f"added {user_bin} to PATH in {bashrc}")

    def check_ansible_version(self) -> Optional[Tuple[int, int]]:
        res = self.runner.run(["ansible", "--version"])
        version = parse_ansible_version(res.stdout) if res.ok else None
        if version is None:
            log.warning("Could not determine the Ansible version. Version 2.10+ recommended.")
        elif version < MIN_ANSIBLE_VERSION:
            log.warning(f"Ansible version {version[0]}.{version[1]} detected. Version 2.10+ recommended.")
        return version

    def install_galaxy_requirements(self, workdir: Path) -> bool:
        req = workdir / GALAXY_REQUIREMENTS
        if not req.is_file():
            log.debug(f"no {GALAXY_REQUIREMENTS} in {workdir}, skipping galaxy install")
            return False
        log.info("Installing Ansible requirements...")
        res = self.runner.run(["ansible-galaxy", "install", "-r", str(req)], cwd=str(workdir))
        if not res.ok:
            raise PrerequisiteInstallError(f"ansible-galaxy install failed (rc={res.rc}): {res.stderr.strip()}")
        return True

    def ensure_all(self, workdir: Optional[Path] = None) -> Dict[str, ToolStatus]:
        log.info("Checking prerequisites...")
        statuses: Dict[str, ToolStatus] = {}
        for tool in self.tools:
            statuses[tool.name] = self.ensure_tool_present(tool)

        self.check_ansible_version()
        if workdir is not None:
            self.install_galaxy_requirements(workdir)
        return statuses


def installed(statuses: Dict[str, ToolStatus]) -> List[str]:
    return [name for name, st in statuses.items() if st is ToolStatus.INSTALLED]
