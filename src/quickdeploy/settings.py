# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/settings.py

from __future__ import annotations

import getpass
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

ARTIFACT_NAME = "vars.yml"

_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    workdir: Path
    log_dir: Path
    verbose: bool
    ssh_user: str
    ssh_key: Optional[Path]

    @property
    def artifact_path(self) -> Path:
        return self.workdir / ARTIFACT_NAME


def load_settings() -> Settings:
    # defaults target an interactive run from the deployment checkout; override via env
    key = os.getenv("QUICKDEPLOY_SSH_KEY")
    return Settings(
        workdir=Path(os.getenv("QUICKDEPLOY_WORKDIR", os.getcwd())).resolve(),
        log_dir=Path(os.getenv("QUICKDEPLOY_LOG_DIR", Path.home() / ".quickdeploy" / "logs")),
        verbose=os.getenv("QUICKDEPLOY_VERBOSE", "").strip().lower() in _TRUTHY,
        ssh_user=os.getenv("QUICKDEPLOY_SSH_USER", getpass.getuser()),
        ssh_key=Path(key).expanduser() if key else None,
    )
