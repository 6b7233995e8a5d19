"""Orchestrator module for step-based deployment execution.

- DeploymentOrchestrator: runs the ordered deployment steps
- DeploymentContext: state shared between steps of one run
- StepResult/RunReport: per-step outcomes and the run summary
"""

from .models import RunReport, StepResult, StepStatus
from .orchestrator import DeploymentContext, DeploymentOrchestrator, Step

__all__ = [
    "DeploymentContext",
    "DeploymentOrchestrator",
    "RunReport",
    "Step",
    "StepResult",
    "StepStatus",
]
