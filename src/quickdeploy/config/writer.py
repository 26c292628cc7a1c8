# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/config/writer.py

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

import yaml

from ..errors import InvalidConfiguration, PersistWriteError
from .models import DeploymentConfig, GeneratedSecrets, to_artifact

log = logging.getLogger("quickdeploy")


def write_config(config: DeploymentConfig, secrets: GeneratedSecrets, path: str | Path) -> Path:
    """
    Persist config + secrets to ``path`` as YAML.

    The previous file, if any, is replaced wholesale: content goes to a
    temporary file in the same directory which is then renamed over ``path``,
    so readers never observe a partially written artifact.
    """
    path = Path(path)

    missing = config.missing_required()
    if missing:
        raise InvalidConfiguration(f"required fields are empty: {', '.join(missing)}")

    text = yaml.safe_dump(to_artifact(config, secrets), sort_keys=False, default_flow_style=False)

    tmp_name = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write("---\n")
            f.write(text)
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise PersistWriteError(f"cannot write {path}: {exc}") from exc

    log.debug(f"configuration written to {path}")
    return path
