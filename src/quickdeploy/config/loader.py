# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/config/loader.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Tuple

import yaml

from ..errors import InvalidConfiguration
from .models import SECRET_KEYS, DeploymentConfig, GeneratedSecrets

log = logging.getLogger("quickdeploy")

# derived on write, recomputed from connection_mode on read
_DERIVED_KEYS = ("use_local_connection",)


def load_artifact(path: str | Path) -> Dict[str, Any]:
    """Read vars.yml as a plain mapping (the extra-vars handed to every stage)."""
    path = Path(path)
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected mapping in {path}, got {type(data).__name__}")
    return data


def parse_artifact(data: Dict[str, Any]) -> Tuple[DeploymentConfig, GeneratedSecrets]:
    """
    Split an artifact mapping back into its typed halves.
    Unknown keys are rejected by model validation.
    """
    secrets = GeneratedSecrets.model_validate({k: data.get(k) for k in SECRET_KEYS})
    rest = {k: v for k, v in data.items() if k not in SECRET_KEYS and k not in _DERIVED_KEYS}
    return DeploymentConfig.model_validate(rest), secrets


def load_config(path: str | Path) -> Tuple[DeploymentConfig, GeneratedSecrets]:
    path = Path(path)
    log.debug(f"loading configuration artifact {path}")
    try:
        return parse_artifact(load_artifact(path))
    except (OSError, yaml.YAMLError, ValueError) as exc:
        raise InvalidConfiguration(f"cannot load {path}: {exc}") from exc
