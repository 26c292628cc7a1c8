# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/config/models.py

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field

LOCALHOST = "localhost"
FRONTEND_PORT = 8080


class UnknownConfigKey(ValueError):
    pass


class ConnectionMode(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


class ConfigKey(str, Enum):
    """Closed set of keys a DeploymentConfig can be populated with."""

    ALBS_ADDRESS = "albs_address"
    FRONTEND_BASEURL = "frontend_baseurl"
    CONNECTION_MODE = "connection_mode"
    GITHUB_CLIENT = "github_client"
    GITHUB_CLIENT_SECRET = "github_client_secret"
    POSTGRES_PASSWORD = "postgres_password"
    POSTGRES_DB = "postgres_db"
    POSTGRES_USER = "postgres_user"
    RABBITMQ_USER = "rabbitmq_user"
    RABBITMQ_PASS = "rabbitmq_pass"
    PULP_PASSWORD = "pulp_password"
    USE_ALREADY_CLONED_REPOS = "use_already_cloned_repos"
    ANSIBLE_INTERPRETER_PATH = "ansible_interpreter_path"
    PGP_KEYS = "pgp_keys"

    @classmethod
    def parse(cls, name: str) -> "ConfigKey":
        try:
            return cls(name)
        except ValueError:
            raise UnknownConfigKey(f"unknown configuration key: {name!r}") from None


REQUIRED_KEYS: Tuple[ConfigKey, ...] = (
    ConfigKey.ALBS_ADDRESS,
    ConfigKey.FRONTEND_BASEURL,
    ConfigKey.GITHUB_CLIENT,
    ConfigKey.GITHUB_CLIENT_SECRET,
)


def default_frontend_baseurl(address: str) -> str:
    return f"http://{address}:{FRONTEND_PORT}"


class DeploymentConfig(BaseModel):
    """Everything the playbooks need, as collected from the operator."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Basic configuration
    albs_address: str = LOCALHOST
    frontend_baseurl: str = default_frontend_baseurl(LOCALHOST)
    connection_mode: ConnectionMode = ConnectionMode.LOCAL

    # GitHub OAuth
    github_client: str = ""
    github_client_secret: str = ""

    # Database
    postgres_password: str = "password"
    postgres_db: str = "albs_db"
    postgres_user: str = "postgres"

    # RabbitMQ
    rabbitmq_user: str = "admin"
    rabbitmq_pass: str = "password"

    # Pulp
    pulp_password: str = "password"

    # Defaults the installer never asks about
    use_already_cloned_repos: bool = False
    ansible_interpreter_path: str = "auto"     # "auto" or an explicit interpreter path
    pgp_keys: List[str] = Field(default_factory=list)

    @property
    def is_local(self) -> bool:
        return self.connection_mode is ConnectionMode.LOCAL

    def missing_required(self) -> List[str]:
        return [k.value for k in REQUIRED_KEYS if not str(getattr(self, k.value)).strip()]


class GeneratedSecrets(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    albs_jwt_secret: str = Field(pattern=r"^[0-9a-f]{64}$")
    alts_jwt_secret: str = Field(pattern=r"^[0-9a-f]{64}$")
    rabbitmq_erlang_cookie: str = Field(pattern=r"^[0-9a-f]{32}$")


SECRET_KEYS: Tuple[str, ...] = tuple(GeneratedSecrets.model_fields)


def to_artifact(config: DeploymentConfig, secrets: GeneratedSecrets) -> Dict[str, Any]:
    """
    Merge config and secrets into the mapping persisted as vars.yml.
    ``use_local_connection`` is derived for the playbooks, which key off it.
    """
    data: Dict[str, Any] = config.model_dump(mode="json")
    data["use_local_connection"] = config.is_local
    data.update(secrets.model_dump())
    return data
