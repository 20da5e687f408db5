"""Application services for the video processing workflow."""

from src.application.services.cleanup import RenditionCleanup
from src.application.services.domain_events import VideoEventRouter
from src.application.services.monitoring import (
    MonitoringCounters,
    WorkflowMonitoringService,
)
from src.application.services.observer import (
    TransitionMetrics,
    TransitionObserverBase,
    WorkflowTransitionObserver,
)
from src.application.services.processing_adapter import VideoProcessingAdapter
from src.application.services.recovery import RecoveryScanner
from src.application.services.workflow_engine import TransitionResult, WorkflowEngine

__all__ = [
    "MonitoringCounters",
    "RecoveryScanner",
    "RenditionCleanup",
    "TransitionMetrics",
    "TransitionObserverBase",
    "TransitionResult",
    "VideoEventRouter",
    "VideoProcessingAdapter",
    "WorkflowEngine",
    "WorkflowMonitoringService",
    "WorkflowTransitionObserver",
]
