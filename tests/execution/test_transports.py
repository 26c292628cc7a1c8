import sys
import types

import pytest

from quickdeploy.errors import CommandError
from quickdeploy.execution import transport
from quickdeploy.execution.runner import CommandResult, CommandRunner
from quickdeploy.execution.transport import LocalTransport, SSHTransport, build_argv

# ----------------- Fakes for Paramiko -----------------

class _FakeChannel:
    def __init__(self, rc=0): self._rc = rc
    def recv_exit_status(self): return self._rc

class _Buf:
    def __init__(self, s=""): self._s = s
    def read(self): return self._s.encode()

class _FakeFile:
    def __init__(self, log, path):
        self._buf = []
        self.log = log
        self.path = path
    def __enter__(self): return self
    def __exit__(self, *a):
        self.log.append(("sftp_write", self.path, "".join(self._buf)))
        return False
    def write(self, data):
        self._buf.append(data)

class FakeSFTP:
    def __init__(self, log): self.log = log
    def file(self, path, mode):
        self.log.append(("sftp_file", path, mode))
        return _FakeFile(self.log, path)
    def close(self): self.log.append(("sftp_close",))

class FakeSSHClient:
    def __init__(self, log, responses=None):
        self.log = log
        self._sftp = FakeSFTP(log)
        self._responses = responses or {}
    def set_missing_host_key_policy(self, policy): pass
    def connect(self, **kw):
        self.log.append(("connect", kw))
    def open_sftp(self):
        return self._sftp
    def exec_command(self, cmd, timeout=None):
        self.log.append(("exec", cmd))
        out = self._responses.get(cmd, ("", "", 0))
        stdout = _Buf(out[0])
        stderr = _Buf(out[1])
        stdout.channel = _FakeChannel(out[2])
        return types.SimpleNamespace(write=lambda *a, **k: None), stdout, stderr
    def close(self):
        self.log.append(("close",))


@pytest.fixture
def ssh_log(monkeypatch):
    log = []
    client = FakeSSHClient(log, responses={
        "sudo -u alt -H bash -lc 'id -u alt'": ("1000\n", "", 0),
        "bash -lc false": ("", "nope\n", 1),
    })
    monkeypatch.setattr(transport.paramiko, "SSHClient", lambda: client)
    return log

# ----------------- Tests -----------------

def test_build_argv_variants():
    assert build_argv("id") == ["bash", "-lc", "id"]
    assert build_argv("id", sudo=True) == ["sudo", "bash", "-lc", "id"]
    assert build_argv("id", sudo=True, user="alt") == ["sudo", "-u", "alt", "-H", "bash", "-lc", "id"]


def test_command_runner_captures_output():
    res = CommandRunner(label="t").run([sys.executable, "-c", "print('hello')"])
    assert res.ok
    assert res.stdout.strip() == "hello"


def test_command_runner_missing_executable_is_127():
    res = CommandRunner().run(["definitely-not-a-real-binary-xyz"])
    assert res.rc == 127
    assert not res.ok


def test_command_runner_check_raises():
    with pytest.raises(CommandError) as ei:
        CommandRunner().run([sys.executable, "-c", "import sys; sys.exit(3)"], check=True)
    assert ei.value.rc == 3


def test_local_transport_wraps_commands():
    calls = []

    class _Runner:
        def run(self, cmd, **kw):
            calls.append(cmd)
            return CommandResult(" ".join(cmd), 0)

    t = LocalTransport(runner=_Runner())
    assert t.run("id -u alt", user="alt").ok
    assert calls == [["sudo", "-u", "alt", "-H", "bash", "-lc", "id -u alt"]]
    assert t.host == "localhost"


def test_ssh_transport_runs_and_reports_exit_status(ssh_log):
    t = SSHTransport("10.0.0.5", "deployer", key_filename=None)

    ok = t.run("id -u alt", user="alt")
    assert ok.ok and ok.stdout == "1000\n"

    bad = t.run("false")
    assert bad.rc == 1 and bad.stderr == "nope\n"

    t.close()
    connect = next(e for e in ssh_log if e[0] == "connect")
    assert connect[1]["hostname"] == "10.0.0.5"
    assert connect[1]["username"] == "deployer"
    assert connect[1]["port"] == 22
    assert ssh_log[-1] == ("close",)


def test_ssh_put_text_uploads_then_installs(ssh_log):
    t = SSHTransport("10.0.0.5", "deployer")
    t.put_text("hello: world\n", "/etc/castor/build_node.yml", mode=0o644)

    write = next(e for e in ssh_log if e[0] == "sftp_write")
    assert write[2] == "hello: world\n"
    tmp = write[1]
    install = [e[1] for e in ssh_log if e[0] == "exec"][-1]
    assert install.startswith("sudo bash -lc ")
    assert f"install -m 644 {tmp} /etc/castor/build_node.yml" in install


def test_ssh_put_text_failure_raises(monkeypatch):
    log = []
    client = FakeSSHClient(log)
    client.exec_command = lambda cmd, timeout=None: (
        None,
        types.SimpleNamespace(read=lambda: b"", channel=_FakeChannel(1)),
        _Buf("permission denied"),
    )
    monkeypatch.setattr(transport.paramiko, "SSHClient", lambda: client)

    with pytest.raises(CommandError):
        SSHTransport("h", "u").put_text("x", "/root/x")
