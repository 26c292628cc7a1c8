# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/execution/runner.py

from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

from ..errors import CommandError

Cmd = Sequence[Union[str, "os.PathLike[str]"]]


@dataclass
class CommandResult:
    command: str
    rc: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.rc == 0


@dataclass
class CommandRunner:
    """
    Runs local commands synchronously and logs the command line, its output
    and exit status at DEBUG. No timeout is applied.
    """

    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("quickdeploy"))
    label: Optional[str] = None

    def run(
        self,
        cmd: Cmd,
        *,
        check: bool = False,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        label = self.label or "cmd"
        cmd_str = " ".join(map(str, cmd))

        self.logger.debug(f"[{label}] $ {cmd_str}")

        start = time.time()
        try:
            proc = subprocess.run(
                [str(c) for c in cmd],
                capture_output=True,
                text=True,
                cwd=cwd,
                env=env,
            )
        except FileNotFoundError as exc:
            # missing executable behaves like "command not found"
            self.logger.debug(f"[{label}] {exc}")
            result = CommandResult(cmd_str, 127, "", str(exc))
        else:
            result = CommandResult(cmd_str, proc.returncode, proc.stdout or "", proc.stderr or "")

        duration = time.time() - start

        if result.stdout:
            self.logger.debug(f"[{label}][stdout]\n{result.stdout.rstrip()}")
        if result.stderr:
            self.logger.debug(f"[{label}][stderr]\n{result.stderr.rstrip()}")
        self.logger.debug(f"[{label}][exit {result.rc}] ({duration:.2f}s)")

        if check and not result.ok:
            raise CommandError(cmd_str, result.rc, result.stderr)
        return result
