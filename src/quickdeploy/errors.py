# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/errors.py


class QuickdeployError(RuntimeError):
    """Base class for failures that abort a quickdeploy run."""


class PreconditionViolation(QuickdeployError):
    """Wrong privilege level, missing sudo delegation or unreachable target."""


class PrerequisiteInstallError(QuickdeployError):
    """A required tool could not be installed."""


class EntropySourceUnavailable(QuickdeployError):
    """The platform cannot supply secure randomness."""


class InvalidConfiguration(QuickdeployError):
    """Required configuration fields are empty at write time."""


class PersistWriteError(QuickdeployError):
    """The configuration artifact could not be written."""


class CommandError(QuickdeployError):
    """A checked command exited non-zero."""

    def __init__(self, cmd: str, rc: int, stderr: str = ""):
        self.cmd = cmd
        self.rc = rc
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr and stderr.strip() else ""
        super().__init__(f"command failed (rc={rc}): {cmd}{detail}")


class ReconciliationError(QuickdeployError):
    """A primitive could not be brought to its desired state."""

    def __init__(self, primitive: str, cause: BaseException):
        self.primitive = primitive
        self.cause = cause
        super().__init__(f"{primitive}: {cause}")


class PipelineAborted(QuickdeployError):
    def __init__(self, stage: str, index: int):
        self.stage = stage
        self.index = index
        super().__init__(f"pipeline aborted at stage {index} ({stage})")


class UserCancelled(Exception):
    """Operator declined to continue. Not an error; the run exits 0."""
