# src/quickdeploy/observers/logger.py
from __future__ import annotations
import logging
from .events import BaseEvent, PrimitiveFailed, StageFailed


class LoggerObserver:
    """Mirrors events into the run log. Failure events are logged at WARNING."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        level = logging.WARNING if isinstance(event, (StageFailed, PrimitiveFailed)) else logging.DEBUG
        fields = " ".join(f"{k}={v}" for k, v in d.items() if k != "ts")
        self.logger.log(level, f"[EVENT] {event.__class__.__name__} {fields}")
