# src/quickdeploy/observers/console.py
import typer

from .events import BaseEvent, PrimitiveFailed, StageFailed

_CONTEXT = ("ts", "run_id", "target")


class ConsoleObserver:
    """Prints every event on one line; failures go to stderr in red."""

    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        data = ", ".join(f"{k}={v}" for k, v in d.items() if k not in _CONTEXT)
        line = f"[{d['ts']}] {event.__class__.__name__} target={d['target']} {data}"
        if isinstance(event, (StageFailed, PrimitiveFailed)):
            typer.secho(line, fg=typer.colors.RED, err=True)
        else:
            typer.echo(line)
