"""Data models for the orchestrator module."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from ..errors import ErrorKind


class StepStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class StepResult:
    """Outcome of a single orchestrator step."""
    name: str
    status: StepStatus
    message: str = ""
    error_kind: Optional[ErrorKind] = None
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status != StepStatus.FAILED


@dataclass
class RunReport:
    """Ordered step results of one deployment run."""
    results: List[StepResult] = field(default_factory=list)
    domain: Optional[str] = None
    log_path: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return bool(self.results) and all(result.ok for result in self.results)

    @property
    def failure(self) -> Optional[StepResult]:
        for result in self.results:
            if not result.ok:
                return result
        return None

    @property
    def app_url(self) -> Optional[str]:
        return f"http://{self.domain}" if self.domain else None

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def step_names(self) -> List[str]:
        return [result.name for result in self.results]
