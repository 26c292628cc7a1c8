import hashlib
import re

import pytest

from quickdeploy.config.models import DeploymentConfig, GeneratedSecrets
from quickdeploy.execution.runner import CommandResult

# ----------------- Simulated build host -----------------

class FakeHost:
    """
    In-memory stand-in for a target host. Understands exactly the shell
    snippets the reconcile primitives send and keeps the resulting state, so
    a second reconcile run sees what the first one did.
    """

    host = "fake-host"

    def __init__(self, remote_commit="c0ffee1"):
        self.users = {}          # login -> set of groups
        self.keys = set()        # logins with ~/.ssh/id_rsa
        self.dirs = {"/home": "root:root", "/srv": "root:root"}  # path -> "owner:group"
        self.files = {}          # path -> [content, "owner:group", mode]
        self.clones = {}         # dest -> HEAD commit
        self.dirty = set()       # checkouts with local modifications
        self.venvs = set()
        self.remote_commit = remote_commit
        self.commands = []
        self.uploads = []
        self.fail_on = None
        self.closed = False

    @staticmethod
    def _ok(cmd, out=""):
        return CommandResult(cmd, 0, out, "")

    @staticmethod
    def _fail(cmd, err=""):
        return CommandResult(cmd, 1, "", err)

    def run(self, cmd, *, sudo=False, user=None):
        self.commands.append(cmd)
        if self.fail_on and self.fail_on in cmd:
            return self._fail(cmd, "simulated failure")

        m = re.fullmatch(r"id -u (\S+)", cmd)
        if m:
            return self._ok(cmd, "1000\n") if m.group(1) in self.users else self._fail(cmd, "no such user")
        m = re.fullmatch(r"id -nG (\S+)", cmd)
        if m:
            if m.group(1) not in self.users:
                return self._fail(cmd, "no such user")
            return self._ok(cmd, " ".join(sorted(self.users[m.group(1)])) + "\n")
        m = re.fullmatch(r"test -f ~(\S+)/\.ssh/id_rsa", cmd)
        if m:
            return self._ok(cmd) if m.group(1) in self.keys else self._fail(cmd)
        m = re.fullmatch(r"useradd --create-home --groups (\S+) (\S+)", cmd)
        if m:
            self.users[m.group(2)] = {m.group(2), *m.group(1).split(",")}
            self.dirs[f"/home/{m.group(2)}"] = f"{m.group(2)}:{m.group(2)}"
            return self._ok(cmd)
        m = re.fullmatch(r"usermod --append --groups (\S+) (\S+)", cmd)
        if m:
            self.users[m.group(2)].update(m.group(1).split(","))
            return self._ok(cmd)
        if cmd.startswith("mkdir -p ~/.ssh && chmod 700 ~/.ssh && ssh-keygen"):
            self.keys.add(user)
            return self._ok(cmd)
        m = re.fullmatch(r"stat -c %U:%G:%F (\S+)", cmd)
        if m:
            p = m.group(1)
            return self._ok(cmd, f"{self.dirs[p]}:directory\n") if p in self.dirs else self._fail(cmd)
        m = re.fullmatch(r"install -d -o (\S+) -g (\S+) (.+)", cmd)
        if m:
            for d in m.group(3).split():
                self.dirs[d] = f"{m.group(1)}:{m.group(2)}"
            return self._ok(cmd)
        m = re.fullmatch(r"sha256sum (\S+)", cmd)
        if m:
            f = self.files.get(m.group(1))
            if not f:
                return self._fail(cmd, "No such file")
            return self._ok(cmd, f"{hashlib.sha256(f[0].encode()).hexdigest()}  {m.group(1)}\n")
        m = re.fullmatch(r"stat -c %U:%G:%a (\S+)", cmd)
        if m:
            f = self.files.get(m.group(1))
            return self._ok(cmd, f"{f[1]}:{f[2]:o}\n") if f else self._fail(cmd)
        m = re.fullmatch(r"chown (\S+) (\S+)", cmd)
        if m:
            if m.group(2) in self.files:
                self.files[m.group(2)][1] = m.group(1)
            else:
                self.dirs[m.group(2)] = m.group(1)
            return self._ok(cmd)
        m = re.fullmatch(r"test -d (\S+)/\.git", cmd)
        if m:
            return self._ok(cmd) if m.group(1) in self.clones else self._fail(cmd)
        m = re.fullmatch(r"test -d (\S+)", cmd)
        if m:
            return self._ok(cmd) if m.group(1) in self.dirs else self._fail(cmd)
        m = re.fullmatch(r"git ls-remote (\S+) (\S+)", cmd)
        if m:
            return self._ok(cmd, f"{self.remote_commit}\trefs/heads/{m.group(2)}\n")
        m = re.fullmatch(r"git -C (\S+) rev-parse HEAD", cmd)
        if m:
            return self._ok(cmd, self.clones[m.group(1)] + "\n")
        m = re.fullmatch(r"git -C (\S+) status --porcelain --untracked-files=no", cmd)
        if m:
            return self._ok(cmd, " M build_node.py\n" if m.group(1) in self.dirty else "")
        m = re.fullmatch(r"git clone --branch (\S+) (\S+) (\S+)", cmd)
        if m:
            self.clones[m.group(3)] = self.remote_commit
            return self._ok(cmd)
        m = re.fullmatch(r"git -C (\S+) fetch --force origin (\S+) && git -C \S+ reset --hard FETCH_HEAD", cmd)
        if m:
            self.clones[m.group(1)] = self.remote_commit
            self.dirty.discard(m.group(1))
            return self._ok(cmd)
        m = re.fullmatch(r"test -f (\S+)/bin/activate", cmd)
        if m:
            return self._ok(cmd) if m.group(1) in self.venvs else self._fail(cmd)
        m = re.fullmatch(r"python3 -m venv --system-site-packages (\S+)", cmd)
        if m:
            self.venvs.add(m.group(1))
            return self._ok(cmd)
        if re.fullmatch(r"\S+/bin/pip install (--upgrade pip|-r \S+)", cmd):
            return self._ok(cmd)

        raise AssertionError(f"unexpected command on fake host: {cmd}")

    def put_text(self, content, remote_path, *, mode=0o644, sudo=True):
        self.uploads.append(remote_path)
        if self.fail_on and self.fail_on in remote_path:
            raise OSError("simulated upload failure")
        self.files[remote_path] = [content, "root:root", mode]

    def close(self):
        self.closed = True


@pytest.fixture
def fake_host():
    return FakeHost()


# ----------------- Configuration fixtures -----------------

@pytest.fixture
def config():
    return DeploymentConfig(github_client="gh-client-id", github_client_secret="gh-client-secret")


@pytest.fixture
def secrets():
    return GeneratedSecrets(
        albs_jwt_secret="a" * 64,
        alts_jwt_secret="b" * 64,
        rabbitmq_erlang_cookie="c" * 32,
    )
