"""Error taxonomy shared by every deployment step."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories a deployment run can end with."""
    INPUT = "input"                         # missing or invalid operator input
    UNREACHABLE = "unreachable"             # SSH host did not answer
    VCS = "vcs"                             # clone / pull failed
    MISSING_ARTIFACT = "missing_artifact"   # required repository file absent
    REMOTE = "remote"                       # provisioning, transfer, build or run
    PROXY = "proxy"                         # nginx config, syntax check or reload
    VALIDATION = "validation"               # app not reachable after deploy


class DeploymentError(RuntimeError):
    """Raised by a step to abort the run with a categorized failure."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        self.kind = kind
        self.message = message
        super().__init__(message)
