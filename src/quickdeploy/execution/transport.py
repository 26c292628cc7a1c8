# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/execution/transport.py

from __future__ import annotations

import itertools
import logging
import os
import shlex
import tempfile
from pathlib import Path
from typing import List, Optional, Protocol

import paramiko

from ..errors import CommandError
from .runner import CommandResult, CommandRunner

log = logging.getLogger("quickdeploy")

_counter = itertools.count()


def build_argv(cmd: str, *, sudo: bool = False, user: Optional[str] = None) -> List[str]:
    """
    Wrap a shell snippet for execution. ``user`` runs it as that account
    with its own HOME; ``sudo`` runs it as root.
    """
    if user:
        return ["sudo", "-u", user, "-H", "bash", "-lc", cmd]
    if sudo:
        return ["sudo", "bash", "-lc", cmd]
    return ["bash", "-lc", cmd]


def _install_tmp(tmp: str, dest: str, mode: int) -> str:
    return f"install -m {mode:o} {shlex.quote(tmp)} {shlex.quote(dest)} ; rc=$? ; rm -f {shlex.quote(tmp)} ; exit $rc"


class Transport(Protocol):
    """Where reconciliation commands run: this machine or an SSH target."""

    host: str

    def run(self, cmd: str, *, sudo: bool = False, user: Optional[str] = None) -> CommandResult: ...

    def put_text(self, content: str, remote_path: str, *, mode: int = 0o644, sudo: bool = True) -> None: ...

    def close(self) -> None: ...


class LocalTransport:
    host = "localhost"

    def __init__(self, runner: Optional[CommandRunner] = None):
        self.runner = runner or CommandRunner(label="local")

    def __enter__(self) -> "LocalTransport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def run(self, cmd: str, *, sudo: bool = False, user: Optional[str] = None) -> CommandResult:
        return self.runner.run(build_argv(cmd, sudo=sudo, user=user))

    def put_text(self, content: str, remote_path: str, *, mode: int = 0o644, sudo: bool = True) -> None:
        fd, tmp = tempfile.mkstemp(prefix=".quickdeploy_tmp_")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.chmod(tmp, 0o644)
        res = self.run(_install_tmp(tmp, remote_path, mode), sudo=sudo)
        if Path(tmp).exists():
            os.unlink(tmp)
        if not res.ok:
            raise CommandError(res.command, res.rc, res.stderr)

    def close(self) -> None:
        pass


class SSHTransport:
    """
    Runs commands on a remote host over SSH. Host keys are accepted on first
    connect, like the playbook-driven deploy does.
    """

    def __init__(
        self,
        host: str,
        username: str,
        *,
        port: int = 22,
        key_filename: Optional[Path] = None,
        connect_timeout: float = 30.0,
    ):
        self.host = host
        self.username = username
        self.port = port
        self.key_filename = key_filename
        self.connect_timeout = connect_timeout
        self._client: Optional[paramiko.SSHClient] = None

    def __enter__(self) -> "SSHTransport":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def connect(self) -> None:
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        client.connect(
            hostname=self.host,
            port=self.port,
            username=self.username,
            key_filename=str(self.key_filename) if self.key_filename else None,
            timeout=self.connect_timeout,
        )
        self._client = client

    @property
    def client(self) -> paramiko.SSHClient:
        if self._client is None:
            self.connect()
        return self._client

    def run(self, cmd: str, *, sudo: bool = False, user: Optional[str] = None) -> CommandResult:
        line = shlex.join(build_argv(cmd, sudo=sudo, user=user))
        log.debug(f"[ssh {self.host}] $ {line}")

        stdin, stdout, stderr = self.client.exec_command(line)
        out = stdout.read().decode("utf-8", errors="replace")
        err = stderr.read().decode("utf-8", errors="replace")
        rc = stdout.channel.recv_exit_status()

        if out:
            log.debug(f"[ssh {self.host}][stdout]\n{out.rstrip()}")
        if err:
            log.debug(f"[ssh {self.host}][stderr]\n{err.rstrip()}")
        log.debug(f"[ssh {self.host}][exit {rc}]")
        return CommandResult(line, rc, out, err)

    def put_text(self, content: str, remote_path: str, *, mode: int = 0o644, sudo: bool = True) -> None:
        """
        Upload content to a temp path, then install it with sudo so root-owned
        destinations work too.
        """
        tmp = f"/tmp/.quickdeploy_tmp_{os.getpid()}_{next(_counter)}"
        sftp = self.client.open_sftp()
        try:
            with sftp.file(tmp, "w") as f:
                f.write(content)
        finally:
            sftp.close()
        res = self.run(_install_tmp(tmp, remote_path, mode), sudo=sudo)
        if not res.ok:
            raise CommandError(res.command, res.rc, res.stderr)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
