# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/deploy/runner.py

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from ..config.loader import load_config
from ..observers.dispatcher import EventBus
from ..observers.events import PipelineSummary, StageFailed, StageStarted, StageSucceeded, new_ctx
from .engines import ProvisioningEngine
from .stages import ProcedureKind, ProvisioningStage, StageOutcome

log = logging.getLogger("quickdeploy")


class PipelineStatus(str, Enum):
    ALL_SUCCEEDED = "ALL_SUCCEEDED"
    ABORTED = "ABORTED"


@dataclass
class PipelineResult:
    stages: List[ProvisioningStage] = field(default_factory=list)
    aborted_at: Optional[int] = None       # 1-based index of the failed stage

    @property
    def status(self) -> PipelineStatus:
        return PipelineStatus.ABORTED if self.aborted_at is not None else PipelineStatus.ALL_SUCCEEDED

    @property
    def ok(self) -> bool:
        return self.status is PipelineStatus.ALL_SUCCEEDED

    @property
    def failed_stage(self) -> Optional[ProvisioningStage]:
        return self.stages[self.aborted_at - 1] if self.aborted_at else None


class StageRunner:
    """
    Runs stages strictly in order. A stage starts only after the previous one
    succeeded; the first failure aborts the pipeline with no retry and no
    rollback.
    """

    def __init__(
        self,
        engines: Mapping[ProcedureKind, ProvisioningEngine],
        *,
        bus: Optional[EventBus] = None,
        run_id: Optional[str] = None,
    ):
        self.engines = dict(engines)
        self.bus = bus or EventBus()
        self.run_id = run_id

    def _invoke(self, stage: ProvisioningStage, artifact: Path) -> int:
        if stage.pre_playbook:
            rc = self.engines[ProcedureKind.PLAYBOOK].run(stage.inventory, stage.pre_playbook, artifact)
            if rc != 0:
                log.error(f"{stage.pre_playbook} exited with rc={rc}")
                return rc
        return self.engines[stage.kind].run(stage.inventory, stage.procedure, artifact)

    def run(self, stages: Sequence[ProvisioningStage], artifact: str | Path) -> PipelineResult:
        artifact = Path(artifact)
        config, _ = load_config(artifact)
        ctx = new_ctx(target=config.albs_address, run_id=self.run_id)

        result = PipelineResult(stages=list(stages))
        for stage in result.stages:
            stage.outcome = StageOutcome.PENDING

        for index, stage in enumerate(result.stages, start=1):
            log.info(f"Step {index}: {stage.title}...")
            stage.outcome = StageOutcome.RUNNING
            self.bus.emit(StageStarted(index=index, name=stage.name, procedure=stage.procedure, **ctx))

            start = time.time()
            error = None
            try:
                rc = self._invoke(stage, artifact)
                if rc != 0:
                    error = f"exit status {rc}"
            except Exception as exc:
                error = f"{type(exc).__name__}: {exc}"

            if error is None:
                stage.outcome = StageOutcome.SUCCEEDED
                log.info(f"{stage.title} completed")
                self.bus.emit(StageSucceeded(
                    index=index, name=stage.name, duration_ms=int((time.time() - start) * 1000), **ctx
                ))
                continue

            stage.outcome = StageOutcome.FAILED
            result.aborted_at = index
            log.error(f"{stage.title} failed ({error})")
            self.bus.emit(StageFailed(index=index, name=stage.name, error=error, **ctx))
            break

        self.bus.emit(PipelineSummary(
            status=result.status.value,
            completed=[s.name for s in result.stages if s.outcome is StageOutcome.SUCCEEDED],
            aborted_at=result.aborted_at,
            **ctx,
        ))
        return result
