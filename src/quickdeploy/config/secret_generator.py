# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/config/secret_generator.py

from __future__ import annotations

import logging
import secrets

from ..errors import EntropySourceUnavailable
from .models import GeneratedSecrets

log = logging.getLogger("quickdeploy")

JWT_SECRET_BYTES = 32
ERLANG_COOKIE_BYTES = 16


def generate(byte_length: int) -> str:
    """
    Return ``byte_length`` random bytes from the OS CSPRNG as lowercase hex
    (``2 * byte_length`` characters).
    """
    if byte_length < 1:
        raise ValueError(f"byte_length must be positive, got {byte_length}")
    try:
        return secrets.token_hex(byte_length)
    except (NotImplementedError, OSError) as exc:
        raise EntropySourceUnavailable(f"secure random source unavailable: {exc}") from exc


def generate_secrets() -> GeneratedSecrets:
    log.debug("generating albs/alts jwt secrets and rabbitmq erlang cookie")
    return GeneratedSecrets(
        albs_jwt_secret=generate(JWT_SECRET_BYTES),
        alts_jwt_secret=generate(JWT_SECRET_BYTES),
        rabbitmq_erlang_cookie=generate(ERLANG_COOKIE_BYTES),
    )
