# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/reconcile/models.py

from __future__ import annotations

from typing import Any, List, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_GROUPS: Tuple[str, ...] = ("wheel", "mock")
ALBS_NODE_REPO = "https://github.com/AlmaLinux/albs-node.git"


class BuildNodeDeclaration(BaseModel):
    """
    Desired state of the build node on the target host. Paths left empty are
    derived from ``service_user`` and ``build_node_working_directory``.
    """

    model_config = ConfigDict(frozen=True)

    service_user: str = "alt"
    service_group: str = "alt"
    service_groups: Tuple[str, ...] = DEFAULT_GROUPS

    build_node_working_directory: str = "/srv/alternatives/castor/build_node"
    final_conf_dir: str = ""
    working_directories: List[str] = Field(default_factory=list)

    repository_url: str = ALBS_NODE_REPO
    repository_ref: str = "master"
    checkout_directory: str = ""
    build_node_venv_directory: str = ""
    build_node_requirements_path: str = ""

    @model_validator(mode="before")
    @classmethod
    def _derive_paths(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        user = data.get("service_user") or cls.model_fields["service_user"].default
        wd = (data.get("build_node_working_directory")
              or cls.model_fields["build_node_working_directory"].default).rstrip("/")
        if not data.get("final_conf_dir"):
            data["final_conf_dir"] = f"/home/{user}/.config/castor"
        if not data.get("checkout_directory"):
            data["checkout_directory"] = f"{wd}/albs-node"
        if not data.get("build_node_venv_directory"):
            data["build_node_venv_directory"] = f"{wd}/env"
        if not data.get("build_node_requirements_path"):
            data["build_node_requirements_path"] = f"{data['checkout_directory']}/requirements.txt"
        if not data.get("working_directories"):
            data["working_directories"] = [wd, data["final_conf_dir"]]
        return data

    @property
    def declaration_path(self) -> str:
        return f"{self.final_conf_dir.rstrip('/')}/build_node.yml"
