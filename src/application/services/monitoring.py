"""Periodic maintenance of the processing workflow.

One call of each pass does one sweep. An external scheduler owns the cadence.
"""

from dataclasses import dataclass

from src.application.dtos.workflow import CompensationReport, RecoveryReport
from src.application.services.cleanup import RenditionCleanup
from src.application.services.processing_adapter import VideoProcessingAdapter
from src.application.services.recovery import RecoveryScanner
from src.commons.settings.models import WorkflowSettings
from src.commons.telemetry import get_logger, log_exceptions, timed
from src.domain.models.processing import ProcessingState
from src.infrastructure.persistence.base import StateRecordStoreBase
from src.infrastructure.persistence.timeouts import bounded


@dataclass
class MonitoringCounters:
    """Running totals across passes."""

    retries_attempted: int = 0
    retries_succeeded: int = 0
    retries_failed: int = 0
    compensations_completed: int = 0
    compensations_failed: int = 0


class WorkflowMonitoringService:
    """Retries failed videos and finishes pending rollbacks."""

    def __init__(
        self,
        store: StateRecordStoreBase,
        scanner: RecoveryScanner,
        adapter: VideoProcessingAdapter,
        settings: WorkflowSettings,
        cleanup: RenditionCleanup | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: State record store, for the per-state summary.
            scanner: Finds videos to retry or roll back.
            adapter: Applies recoveries and rollbacks.
            settings: Retry budget and recovery target.
            cleanup: Removes produced media before a rollback completes.
                Without it rollbacks only clear the flag.
        """
        self._store = store
        self._scanner = scanner
        self._adapter = adapter
        self._settings = settings
        self._cleanup = cleanup
        self.counters = MonitoringCounters()
        self._logger = get_logger(__name__)

    async def state_summary(self) -> dict[ProcessingState, int]:
        """Count videos per processing state."""
        timeout = self._settings.store_timeout_seconds
        return {
            state: await bounded("count", self._store.count_by_state(state), timeout)
            for state in ProcessingState
        }

    @timed
    @log_exceptions
    async def recover_failed_workflows(self) -> RecoveryReport:
        """Send every failed video with retries left back to the recovery target."""
        target = self._settings.recovery_target_state
        report = RecoveryReport(target_state=target)

        video_ids = await self._scanner.recoverable_ids(self._settings.max_retries)
        self._logger.info(
            "Found failed workflows to recover",
            extra={"count": len(video_ids)},
        )

        for video_id in video_ids:
            self.counters.retries_attempted += 1
            try:
                recovered = await self._adapter.recover_video(video_id, target)
            except Exception as e:
                self.counters.retries_failed += 1
                report.errors[video_id] = str(e) or type(e).__name__
                self._logger.exception(
                    "Error recovering workflow",
                    extra={"video_id": video_id},
                )
                continue

            if recovered:
                self.counters.retries_succeeded += 1
                report.recovered.append(video_id)
            else:
                self.counters.retries_failed += 1
                report.refused.append(video_id)

        self._logger.info(
            "Recovery pass finished",
            extra={
                "recovered": len(report.recovered),
                "refused": len(report.refused),
                "errors": len(report.errors),
            },
        )
        return report

    @timed
    @log_exceptions
    async def process_compensations(self) -> CompensationReport:
        """Finish every rollback in progress."""
        report = CompensationReport()

        video_ids = await self._scanner.compensation_ids()
        self._logger.info(
            "Found workflows needing compensation",
            extra={"count": len(video_ids)},
        )

        for video_id in video_ids:
            try:
                if self._cleanup is not None:
                    report.removed_objects += await self._cleanup.remove_outputs(
                        video_id
                    )
                completed = await self._adapter.complete_rollback(video_id)
            except Exception as e:
                self.counters.compensations_failed += 1
                report.failed[video_id] = str(e) or type(e).__name__
                self._logger.exception(
                    "Error processing compensation",
                    extra={"video_id": video_id},
                )
                continue

            if completed:
                self.counters.compensations_completed += 1
                report.completed.append(video_id)
            else:
                self.counters.compensations_failed += 1
                report.failed[video_id] = "record not found"

        return report
