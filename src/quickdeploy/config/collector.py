# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/config/collector.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Union

import typer

from .models import (
    LOCALHOST,
    ConfigKey,
    ConnectionMode,
    DeploymentConfig,
    default_frontend_baseurl,
)

log = logging.getLogger("quickdeploy")

USE_LOCAL_QUESTION = "use_local_connection"
AFFIRMATIVE = ("y", "yes")

OAUTH_CALLBACK_PATH = "/api/v1/auth/github/callback"


@dataclass(frozen=True)
class PromptSpec:
    key: str                 # ConfigKey value, or a question id for yes/no prompts
    text: str
    default: str = ""
    secret: bool = False


class InputProvider(Protocol):
    def next_answer(self, spec: PromptSpec) -> str: ...


class TerminalInputProvider:
    """Reads answers from the controlling terminal; secrets are not echoed."""

    def next_answer(self, spec: PromptSpec) -> str:
        return typer.prompt(
            spec.text,
            default=spec.default,
            hide_input=spec.secret,
            show_default=bool(spec.default) and not spec.secret,
        )


class ScriptedInputProvider:
    """
    Answers prompts from a mapping keyed by prompt key. Keys without an answer
    behave like the operator pressing Enter.
    """

    def __init__(self, answers: Optional[Mapping[str, str]] = None):
        self.answers = dict(answers or {})
        self.asked: List[PromptSpec] = []

    def next_answer(self, spec: PromptSpec) -> str:
        self.asked.append(spec)
        return self.answers.get(spec.key, "")


def is_affirmative(answer: str) -> bool:
    return answer.strip().lower() in AFFIRMATIVE


class ConfigCollector:
    """
    Walks the operator through every deployment parameter, in order, and
    returns an immutable DeploymentConfig. Empty answers take the default.
    No validation or re-prompting happens here; completeness is checked
    when the artifact is written.
    """

    def __init__(self, provider: InputProvider, echo: Callable[[str], Any] = typer.echo):
        self.provider = provider
        self.echo = echo
        self._values: Dict[ConfigKey, Any] = {}

    # ------------------ helpers ------------------

    def _set(self, key: Union[ConfigKey, str], value: Any) -> None:
        if not isinstance(key, ConfigKey):
            key = ConfigKey.parse(key)
        if key in self._values:
            raise ValueError(f"{key.value} already collected")
        self._values[key] = value

    def _ask(self, key: ConfigKey, text: str, default: str = "", secret: bool = False) -> str:
        raw = self.provider.next_answer(PromptSpec(key=key.value, text=text, default=default, secret=secret))
        value = (raw or "").strip()
        return value or default

    def _section(self, title: str) -> None:
        self.echo("")
        self.echo(title)

    # ------------------ phases ------------------

    def collect(self) -> DeploymentConfig:
        self._values.clear()

        self._section("Basic configuration")
        address = self._ask(ConfigKey.ALBS_ADDRESS, "ALBS Server Address/Hostname", LOCALHOST)
        self._set(ConfigKey.ALBS_ADDRESS, address)
        frontend = self._ask(
            ConfigKey.FRONTEND_BASEURL, "Frontend Base URL", default_frontend_baseurl(address)
        )
        self._set(ConfigKey.FRONTEND_BASEURL, frontend)

        self._section("GitHub OAuth configuration (required for authentication)")
        self.echo("If you don't have these yet, visit: https://github.com/settings/developers")
        self.echo("Create a new OAuth App with:")
        self.echo(f"  Homepage URL: {frontend}")
        self.echo(f"  Callback URL: {frontend}{OAUTH_CALLBACK_PATH}")
        self._set(ConfigKey.GITHUB_CLIENT, self._ask(ConfigKey.GITHUB_CLIENT, "GitHub OAuth Client ID"))
        self._set(
            ConfigKey.GITHUB_CLIENT_SECRET,
            self._ask(ConfigKey.GITHUB_CLIENT_SECRET, "GitHub OAuth Client Secret", secret=True),
        )

        self._section("Database configuration")
        for key, text, default, secret in (
            (ConfigKey.POSTGRES_PASSWORD, "PostgreSQL Password", "password", True),
            (ConfigKey.POSTGRES_DB, "PostgreSQL Database", "albs_db", False),
            (ConfigKey.POSTGRES_USER, "PostgreSQL User", "postgres", False),
            (ConfigKey.RABBITMQ_USER, "RabbitMQ User", "admin", False),
            (ConfigKey.RABBITMQ_PASS, "RabbitMQ Password", "password", True),
            (ConfigKey.PULP_PASSWORD, "Pulp Password", "password", True),
        ):
            self._set(key, self._ask(key, text, default, secret=secret))

        self._set(ConfigKey.CONNECTION_MODE, self._resolve_connection_mode(address))

        config = DeploymentConfig(**{k.value: v for k, v in self._values.items()})
        log.debug(
            f"collected config: address={config.albs_address} "
            f"frontend={config.frontend_baseurl} mode={config.connection_mode.value}"
        )
        return config

    def _resolve_connection_mode(self, address: str) -> ConnectionMode:
        if address == LOCALHOST:
            return ConnectionMode.LOCAL

        self.echo("Remote deployment detected.")
        answer = self.provider.next_answer(
            PromptSpec(key=USE_LOCAL_QUESTION, text="Do you want to use local connection? (y/N)", default="")
        )
        return ConnectionMode.LOCAL if is_affirmative(answer) else ConnectionMode.REMOTE
