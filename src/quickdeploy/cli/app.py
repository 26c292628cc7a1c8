# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/cli/app.py
from __future__ import annotations

import typer

from quickdeploy.bootstrap.preconditions import PreconditionChecker
from quickdeploy.bootstrap.prerequisites import PrerequisiteInstaller
from quickdeploy.config.collector import ConfigCollector, TerminalInputProvider
from quickdeploy.deploy.engines import AnsibleEngine, ReconcileEngine, default_transport_factory
from quickdeploy.deploy.orchestrator import Orchestrator
from quickdeploy.deploy.runner import StageRunner
from quickdeploy.deploy.stages import ProcedureKind
from quickdeploy.logging.log import init_logging
from quickdeploy.observers.console import ConsoleObserver
from quickdeploy.observers.dispatcher import EventBus
from quickdeploy.observers.logger import LoggerObserver
from quickdeploy.settings import load_settings


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="AlmaLinux Build System quick deploy", add_completion=False)


def _confirm_no(text: str) -> bool:
    return typer.confirm(text, default=False)


def _confirm_yes(text: str) -> bool:
    return typer.confirm(text, default=True)


@app.command()
def deploy() -> None:
    """Interactively configure and deploy ALBS on this host (or one remote host)."""
    settings = load_settings()
    logger, run_id, log_path = init_logging(base_dir=settings.log_dir, verbose=settings.verbose)

    typer.echo("")
    typer.secho("ALBS Quick Deploy", bold=True)
    typer.echo(f"  Run ID   : {run_id}")
    typer.echo(f"  Logs     : {log_path}")
    typer.echo(f"  Workdir  : {settings.workdir}")
    typer.echo("")

    observers = [LoggerObserver(logger)]
    if settings.verbose:
        observers.append(ConsoleObserver())
    bus = EventBus(observers=observers)
    engines = {
        ProcedureKind.PLAYBOOK: AnsibleEngine(settings.workdir),
        ProcedureKind.RECONCILE: ReconcileEngine(
            default_transport_factory(settings.ssh_user, settings.ssh_key),
            bus=bus,
            run_id=run_id,
        ),
    }

    orchestrator = Orchestrator(
        settings=settings,
        preconditions=PreconditionChecker(confirm=_confirm_no),
        installer=PrerequisiteInstaller(),
        collector=ConfigCollector(TerminalInputProvider()),
        confirm=_confirm_yes,
        stage_runner=StageRunner(engines, bus=bus, run_id=run_id),
        bus=bus,
        run_id=run_id,
    )
    raise typer.Exit(code=orchestrator.run())


if __name__ == "__main__":
    app()
