# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/deploy/orchestrator.py

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any, Callable, List, Optional

import typer

from ..bootstrap.preconditions import check_reachable
from ..config.models import DeploymentConfig, GeneratedSecrets, to_artifact
from ..config.secret_generator import generate_secrets
from ..config.writer import write_config
from ..errors import PipelineAborted, QuickdeployError, UserCancelled
from ..execution.runner import CommandRunner
from ..observers.dispatcher import EventBus
from ..observers.events import ConfigWritten, new_ctx
from ..settings import ARTIFACT_NAME, Settings
from .stages import ONE_VM_INVENTORY, ProvisioningStage, default_stages

log = logging.getLogger("quickdeploy")

EXIT_OK = 0
EXIT_FAILURE = 1

CONFIRM_QUESTION = "Continue with deployment?"


class Orchestrator:
    """
    Top-level flow of a quick deploy:

      preconditions -> prerequisites -> collect config -> generate secrets
      -> write vars.yml -> summary + confirmation -> stages -> final report

    Every collaborator is injected so the whole flow can run against fakes.
    ``run`` never raises for QuickdeployError or UserCancelled; it maps them
    to an exit code instead.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        preconditions,
        installer,
        collector,
        confirm: Callable[[str], bool],
        stage_runner,
        secret_source: Callable[[], GeneratedSecrets] = generate_secrets,
        writer: Callable[[DeploymentConfig, GeneratedSecrets, Path], Path] = write_config,
        reachability: Callable[[str], None] = check_reachable,
        stages_factory: Callable[[], List[ProvisioningStage]] = default_stages,
        echo: Callable[[str], Any] = typer.echo,
        bus: Optional[EventBus] = None,
        run_id: Optional[str] = None,
        runner: Optional[CommandRunner] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
    ):
        self.settings = settings
        self.preconditions = preconditions
        self.installer = installer
        self.collector = collector
        self.confirm = confirm
        self.stage_runner = stage_runner
        self.secret_source = secret_source
        self.writer = writer
        self.reachability = reachability
        self.stages_factory = stages_factory
        self.echo = echo
        self.bus = bus or EventBus()
        self.run_id = run_id
        self.runner = runner or CommandRunner(label="report")
        self.which = which

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def run(self) -> int:
        try:
            self._run()
        except UserCancelled as exc:
            log.info(str(exc))
            return EXIT_OK
        except QuickdeployError as exc:
            log.error(f"{type(exc).__name__}: {exc}")
            return EXIT_FAILURE
        return EXIT_OK

    def _run(self) -> None:
        self.preconditions.check()
        self.installer.ensure_all(self.settings.workdir)

        config = self.collector.collect()
        secrets = self.secret_source()
        path = self.write(config, secrets)

        self.show_summary(config)
        if not self.confirm(CONFIRM_QUESTION):
            raise UserCancelled(f"Deployment cancelled. Configuration saved in {ARTIFACT_NAME}")

        if not config.is_local:
            self.reachability(config.albs_address)

        stages = self.stages_factory()
        result = self.stage_runner.run(stages, path)
        if not result.ok:
            failed = result.failed_stage
            raise PipelineAborted(failed.name if failed else "?", result.aborted_at)

        self.final_report(config)

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------
    def write(self, config: DeploymentConfig, secrets: GeneratedSecrets) -> Path:
        log.info(f"Creating configuration file {ARTIFACT_NAME}...")
        path = self.writer(config, secrets, self.settings.artifact_path)
        ctx = new_ctx(target=config.albs_address, run_id=self.run_id)
        self.bus.emit(ConfigWritten(path=str(path), keys=len(to_artifact(config, secrets)), **ctx))
        log.info(f"Configuration saved to {path}")
        return path

    def show_summary(self, config: DeploymentConfig) -> None:
        self.echo("")
        self.echo("Configuration summary")
        self.echo(f"  Server Address:  {config.albs_address}")
        self.echo(f"  Frontend URL:    {config.frontend_baseurl}")
        self.echo(f"  Connection Type: {'Local' if config.is_local else 'Remote'}")
        self.echo(f"  Database:        {config.postgres_db}")
        self.echo("")

    def final_report(self, config: DeploymentConfig) -> None:
        e = self.echo
        e("")
        e("=" * 64)
        e("  ALBS deployment completed successfully!")
        e("=" * 64)
        e("")
        e(f"Access ALBS at: {config.frontend_baseurl}")
        e("")
        e("Next steps:")
        e("  1. Open the frontend URL in your browser")
        e("  2. Log in with GitHub")
        e("  3. Create a platform and start building packages")
        e("")
        e("Useful commands:")
        e("  docker ps                      # running containers")
        e("  docker logs -f <container>     # follow a service log")
        e("  docker compose restart         # restart all services")
        e("")
        e("Configuration files:")
        e(f"  - {self.settings.artifact_path}")
        e(f"  - {self.settings.workdir / ONE_VM_INVENTORY}")
        e("")
        e(f"WARNING: {ARTIFACT_NAME} contains passwords and secrets. Keep it safe.")

        if self.which("docker"):
            res = self.runner.run(
                ["docker", "ps", "--format", "table {{.Names}}\t{{.Status}}\t{{.Ports}}"]
            )
            if res.ok:
                e("")
                e("Running containers:")
                e(res.stdout.rstrip())
            else:
                log.warning(f"docker ps failed (rc={res.rc})")
