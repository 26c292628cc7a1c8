# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/deploy/stages.py

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

ONE_VM_INVENTORY = "inventories/one_vm"
PREPARE_PLAYBOOK = "playbooks/prepare_alma9_one_vm.yml"
DEPLOY_PLAYBOOK = "playbooks/albs_on_one_vm.yml"
BUILD_NODE_PROCEDURE = "build_node_environment"


class ProcedureKind(str, Enum):
    PLAYBOOK = "playbook"        # ansible playbook path, relative to the workdir
    RECONCILE = "reconcile"      # builtin reconciliation procedure name


class StageOutcome(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass
class ProvisioningStage:
    name: str
    title: str
    inventory: str
    procedure: str
    kind: ProcedureKind = ProcedureKind.PLAYBOOK
    pre_playbook: Optional[str] = None     # run through the playbook engine first
    outcome: StageOutcome = StageOutcome.PENDING


def default_stages() -> List[ProvisioningStage]:
    """The fixed two-stage pipeline: host preparation, then service deployment."""
    return [
        ProvisioningStage(
            name="prepare",
            title="Preparing AlmaLinux 9 build host environment",
            inventory=ONE_VM_INVENTORY,
            procedure=BUILD_NODE_PROCEDURE,
            kind=ProcedureKind.RECONCILE,
            pre_playbook=PREPARE_PLAYBOOK,
        ),
        ProvisioningStage(
            name="deploy",
            title="Deploying ALBS services",
            inventory=ONE_VM_INVENTORY,
            procedure=DEPLOY_PLAYBOOK,
            kind=ProcedureKind.PLAYBOOK,
        ),
    ]
