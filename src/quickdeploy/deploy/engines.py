# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/deploy/engines.py

from __future__ import annotations

import logging
import os
import shlex
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol

import ansible_runner

from ..config.loader import load_config
from ..config.models import DeploymentConfig, to_artifact
from ..errors import ReconciliationError
from ..execution.transport import LocalTransport, SSHTransport, Transport
from ..observers.dispatcher import EventBus
from ..observers.events import new_ctx
from ..reconcile.models import BuildNodeDeclaration
from ..reconcile.reconciler import EnvironmentReconciler, build_primitives, render_declaration
from .stages import BUILD_NODE_PROCEDURE

log = logging.getLogger("quickdeploy")


class ProvisioningEngine(Protocol):
    def run(self, inventory: str, procedure: str, artifact: Path) -> int:
        """Apply ``procedure`` to ``inventory`` with the artifact as extra vars; return an exit status."""
        ...


class AnsibleEngine:
    """
    Runs playbooks through ansible-runner from the deployment checkout, with
    the configuration artifact passed as ``-e @vars.yml``.
    """

    def __init__(self, workdir: Path, *, verbosity: int = 1):
        self.workdir = Path(workdir)
        self.verbosity = verbosity

    def run(self, inventory: str, procedure: str, artifact: Path) -> int:
        env = os.environ.copy()
        env["ANSIBLE_ROLES_PATH"] = str(self.workdir / "roles")

        log.debug(f"[ansible] playbook={procedure} inventory={inventory} extra_vars=@{artifact}")
        r = ansible_runner.run(
            private_data_dir=str(self.workdir),
            project_dir=str(self.workdir),
            playbook=procedure,
            inventory=str(self.workdir / inventory),
            cmdline=f"-e @{shlex.quote(str(Path(artifact).resolve()))}",
            envvars=env,
            verbosity=self.verbosity,
        )
        log.debug(f"[ansible] {procedure}: status={r.status} rc={r.rc}")
        return r.rc


def default_transport_factory(
    ssh_user: str,
    ssh_key: Optional[Path] = None,
) -> Callable[[DeploymentConfig], Transport]:
    def factory(config: DeploymentConfig) -> Transport:
        if config.is_local:
            return LocalTransport()
        return SSHTransport(config.albs_address, ssh_user, key_filename=ssh_key)
    return factory


class ReconcileEngine:
    """
    Applies a builtin desired-state procedure to the target host over the
    transport the connection mode selects. The inventory only names the
    target group for the playbook half of a stage; the host itself comes from
    the artifact.
    """

    def __init__(
        self,
        transport_factory: Callable[[DeploymentConfig], Transport],
        *,
        bus: Optional[EventBus] = None,
        run_id: Optional[str] = None,
        declarations: Optional[Dict[str, BuildNodeDeclaration]] = None,
    ):
        self.transport_factory = transport_factory
        self.bus = bus
        self.run_id = run_id
        self.declarations = declarations or {BUILD_NODE_PROCEDURE: BuildNodeDeclaration()}

    def run(self, inventory: str, procedure: str, artifact: Path) -> int:
        if procedure not in self.declarations:
            raise ValueError(f"unknown reconcile procedure: {procedure}")
        decl = self.declarations[procedure]

        config, secrets = load_config(artifact)
        content = render_declaration(decl, to_artifact(config, secrets))

        transport = self.transport_factory(config)
        try:
            ctx = new_ctx(target=config.albs_address, run_id=self.run_id)
            reconciler = EnvironmentReconciler(transport, bus=self.bus, run_ctx=ctx)
            reconciler.reconcile(build_primitives(decl, content))
        except ReconciliationError as exc:
            log.error(f"ReconciliationError: {exc}")
            return 1
        finally:
            transport.close()
        return 0
