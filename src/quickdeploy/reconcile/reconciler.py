# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/reconcile/reconciler.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..errors import ReconciliationError
from ..execution.transport import Transport
from ..observers.dispatcher import EventBus
from ..observers.events import PrimitiveFailed, PrimitiveReconciled, new_ctx
from .models import BuildNodeDeclaration
from .primitives import (
    DeclarationFile,
    InstallerUpgrade,
    Primitive,
    RequirementSet,
    ServiceAccount,
    SourceCheckout,
    VirtualEnvironment,
    WorkingDirectorySet,
)
from .templates import TemplateRenderer

log = logging.getLogger("quickdeploy")

DECLARATION_TEMPLATE = "build_node.yml.j2"


class PrimitiveResult(str, Enum):
    UNCHANGED = "UNCHANGED"
    CHANGED = "CHANGED"
    APPLIED = "APPLIED"         # unconditional primitive, always run


@dataclass
class ReconcileReport:
    results: List[Tuple[str, PrimitiveResult]] = field(default_factory=list)

    def add(self, name: str, result: PrimitiveResult) -> None:
        self.results.append((name, result))

    @property
    def changed(self) -> List[str]:
        return [n for n, r in self.results if r is PrimitiveResult.CHANGED]

    def summary(self) -> str:
        counts = {r: 0 for r in PrimitiveResult}
        for _, r in self.results:
            counts[r] += 1
        return " ".join(f"{r.value}={n}" for r, n in counts.items())


def build_primitives(decl: BuildNodeDeclaration, declaration_content: str) -> List[Primitive]:
    """Primitives in the order later ones depend on earlier ones."""
    user = decl.service_user
    return [
        ServiceAccount(user=user, groups=decl.service_groups),
        WorkingDirectorySet(paths=decl.working_directories, owner=user, group=decl.service_group),
        DeclarationFile(
            path=decl.declaration_path,
            content=declaration_content,
            owner=user,
            group=decl.service_group,
        ),
        SourceCheckout(
            repo=decl.repository_url,
            dest=decl.checkout_directory,
            ref=decl.repository_ref,
            user=user,
        ),
        VirtualEnvironment(root=decl.build_node_venv_directory, user=user),
        InstallerUpgrade(root=decl.build_node_venv_directory, user=user),
        RequirementSet(
            root=decl.build_node_venv_directory,
            requirements=decl.build_node_requirements_path,
            user=user,
        ),
    ]


def render_declaration(
    decl: BuildNodeDeclaration,
    context: Dict[str, Any],
    renderer: Optional[TemplateRenderer] = None,
) -> str:
    renderer = renderer or TemplateRenderer()
    return renderer.render(DECLARATION_TEMPLATE, {**context, **decl.model_dump()})


class EnvironmentReconciler:
    """
    Brings a host's build-node primitives to the declared state, one at a
    time and in order. A failure stops the run where it is: nothing is undone,
    and rerunning picks up from the first unsatisfied primitive.
    """

    def __init__(self, transport: Transport, bus: Optional[EventBus] = None, run_ctx: Optional[dict] = None):
        self.transport = transport
        self.bus = bus or EventBus()
        self.run_ctx = run_ctx or new_ctx(target=getattr(transport, "host", "localhost"))

    def reconcile(self, primitives: Sequence[Primitive]) -> ReconcileReport:
        report = ReconcileReport()
        for p in primitives:
            try:
                if p.unconditional:
                    p.apply(self.transport)
                    result = PrimitiveResult.APPLIED
                elif p.check(self.transport):
                    result = PrimitiveResult.UNCHANGED
                else:
                    log.info(f"  {p.name}: converging")
                    p.apply(self.transport)
                    result = PrimitiveResult.CHANGED
            except Exception as exc:
                self.bus.emit(PrimitiveFailed(primitive=p.name, error=str(exc), **self.run_ctx))
                raise ReconciliationError(p.name, exc) from exc

            log.debug(f"  {p.name}: {result.value}")
            report.add(p.name, result)
            self.bus.emit(PrimitiveReconciled(primitive=p.name, result=result.value, **self.run_ctx))

        log.info(f"reconciled {self.transport.host}: {report.summary()}")
        return report
