"""Application layer - use cases and orchestration.

This layer contains:
- Services: Workflow engine, catalogue adapter and maintenance passes
- DTOs: Status views and maintenance reports
"""

from src.application.dtos import (
    CompensationReport,
    RecoveryReport,
    WorkflowStatusView,
)
from src.application.services import (
    RecoveryScanner,
    VideoEventRouter,
    VideoProcessingAdapter,
    WorkflowEngine,
    WorkflowMonitoringService,
)

__all__ = [
    # DTOs
    "CompensationReport",
    "RecoveryReport",
    "WorkflowStatusView",
    # Services
    "RecoveryScanner",
    "VideoEventRouter",
    "VideoProcessingAdapter",
    "WorkflowEngine",
    "WorkflowMonitoringService",
]
