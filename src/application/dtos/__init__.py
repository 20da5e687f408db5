"""Data transfer objects for the application layer."""

from src.application.dtos.workflow import (
    CompensationReport,
    RecoveryReport,
    WorkflowStatusView,
)

__all__ = [
    "CompensationReport",
    "RecoveryReport",
    "WorkflowStatusView",
]
