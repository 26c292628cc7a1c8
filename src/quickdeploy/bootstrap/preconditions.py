# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/bootstrap/preconditions.py

from __future__ import annotations

import logging
import os
import shlex
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional

from ..errors import PreconditionViolation, UserCancelled
from ..execution.runner import CommandRunner

log = logging.getLogger("quickdeploy")

OS_RELEASE = Path("/etc/os-release")
SUPPORTED_OS_ID = "almalinux"
SUPPORTED_OS_MAJOR = "9"
SSH_PORT = 22


@dataclass(frozen=True)
class OsRelease:
    id: str
    name: str
    version_id: str

    @property
    def supported(self) -> bool:
        return self.id == SUPPORTED_OS_ID and self.version_id.startswith(SUPPORTED_OS_MAJOR)


def parse_os_release(text: str) -> OsRelease:
    fields: Dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        parts = shlex.split(value) if value else []
        fields[key.strip()] = parts[0] if parts else ""
    return OsRelease(
        id=fields.get("ID", ""),
        name=fields.get("NAME", ""),
        version_id=fields.get("VERSION_ID", ""),
    )


class PreconditionChecker:
    """
    Refuses to continue when the environment is wrong for a deploy:
      - running as root (run as a regular user with sudo instead)
      - no passwordless sudo delegation
      - OS is not EL9 and the operator does not want to continue anyway
    """

    def __init__(
        self,
        confirm: Callable[[str], bool],
        *,
        runner: Optional[CommandRunner] = None,
        os_release: Path = OS_RELEASE,
        geteuid: Callable[[], int] = os.geteuid,
    ):
        self.confirm = confirm
        self.runner = runner or CommandRunner(label="precheck")
        self.os_release = os_release
        self.geteuid = geteuid

    def check_not_root(self) -> None:
        if self.geteuid() == 0:
            raise PreconditionViolation(
                "This tool should NOT be run as root. Run it as a regular user with sudo privileges."
            )

    def check_sudo(self) -> None:
        if not self.runner.run(["sudo", "-n", "true"]).ok:
            raise PreconditionViolation(
                "This tool requires sudo privileges. Please ensure your user can run sudo commands."
            )

    def detect_os(self) -> OsRelease:
        if not self.os_release.is_file():
            raise PreconditionViolation("Cannot detect OS version. This tool is designed for EL 9.")
        release = parse_os_release(self.os_release.read_text(encoding="utf-8"))
        log.info(f"Detected: {release.name} {release.version_id}")
        return release

    def check_os(self) -> OsRelease:
        release = self.detect_os()
        if not release.supported:
            log.warning("This tool is optimized for EL 9.")
            if not self.confirm("Continue anyway?"):
                raise UserCancelled("Deployment cancelled.")
        return release

    def check(self) -> OsRelease:
        self.check_not_root()
        self.check_sudo()
        return self.check_os()


def check_reachable(address: str, port: int = SSH_PORT, timeout: float = 5.0) -> None:
    """Fail fast when a remote target does not accept TCP connections on ``port``."""
    try:
        with socket.create_connection((address, port), timeout=timeout):
            pass
    except OSError as exc:
        raise PreconditionViolation(f"{address}:{port} is not reachable: {exc}") from exc
    log.debug(f"{address}:{port} is reachable")
