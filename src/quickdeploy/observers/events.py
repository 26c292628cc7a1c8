# src/quickdeploy/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events in a single invocation
    target: str       # albs address the run provisions

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(target: str, run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
        "target": target,
    }


# ---------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ConfigWritten(BaseEvent):
    path: str
    keys: int


# ---------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class StageStarted(BaseEvent):
    index: int
    name: str
    procedure: str

@dataclass(frozen=True)
class StageSucceeded(BaseEvent):
    index: int
    name: str
    duration_ms: int

@dataclass(frozen=True)
class StageFailed(BaseEvent):
    index: int
    name: str
    error: str

@dataclass(frozen=True)
class PipelineSummary(BaseEvent):
    status: str                   # "ALL_SUCCEEDED" | "ABORTED"
    completed: List[str]
    aborted_at: Optional[int] = None


# ---------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class PrimitiveReconciled(BaseEvent):
    primitive: str
    result: str                   # "CHANGED" | "UNCHANGED" | "APPLIED"

@dataclass(frozen=True)
class PrimitiveFailed(BaseEvent):
    primitive: str
    error: str
