"""Observers notified of every workflow transition attempt."""

from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field

from src.commons.telemetry import get_logger
from src.domain.exceptions import ConcurrentModificationException
from src.domain.models.processing import (
    TERMINAL_STATES,
    ProcessingEvent,
    ProcessingState,
)
from src.domain.models.transitions import to_domain_status
from src.infrastructure.notifications.base import (
    EventPublisherBase,
    WorkflowNotification,
)
from src.infrastructure.persistence.base import StateRecordStoreBase
from src.infrastructure.persistence.timeouts import bounded

_ERROR_WRITE_ATTEMPTS = 3


class TransitionObserverBase(ABC):
    """Receives accepted transitions, rejected events and engine errors.

    Implementations must never raise: a failing observer may not break the
    request that triggered the transition.
    """

    @abstractmethod
    async def on_state_changed(
        self,
        entity_id: str,
        source: ProcessingState,
        target: ProcessingState,
        event: ProcessingEvent,
    ) -> None:
        """Called once per accepted, already persisted transition."""

    @abstractmethod
    async def on_event_rejected(
        self,
        entity_id: str,
        state: ProcessingState,
        event: ProcessingEvent,
    ) -> None:
        """Called when ``event`` is not accepted in ``state``."""

    @abstractmethod
    async def on_error(self, entity_id: str, error: Exception) -> None:
        """Called when a transition fails with an unexpected exception."""


@dataclass
class TransitionMetrics:
    """In-process counters of transition outcomes."""

    accepted: Counter[tuple[ProcessingState, ProcessingState]] = field(
        default_factory=Counter
    )
    rejected: Counter[tuple[ProcessingState, ProcessingEvent]] = field(
        default_factory=Counter
    )
    errors: int = 0
    publish_failures: int = 0

    @property
    def total_accepted(self) -> int:
        return sum(self.accepted.values())

    @property
    def total_rejected(self) -> int:
        return sum(self.rejected.values())


class WorkflowTransitionObserver(TransitionObserverBase):
    """Logs transitions, keeps counters, announces terminal states and
    records engine errors on the state record.

    Terminal notifications are published only when the state actually
    changes. A repeated DELETE is an accepted DELETED to DELETED transition
    that is counted and logged but not published, so subscribers hear about
    a deletion once.
    """

    def __init__(
        self,
        store: StateRecordStoreBase,
        publisher: EventPublisherBase | None = None,
        metrics: TransitionMetrics | None = None,
        store_timeout_seconds: float = 10.0,
    ) -> None:
        """Initialize the observer.

        Args:
            store: Store used to record error details.
            publisher: Optional notification bus publisher.
            metrics: Optional shared counters.
            store_timeout_seconds: Upper bound for each store call.
        """
        self._store = store
        self._publisher = publisher
        self.metrics = metrics or TransitionMetrics()
        self._store_timeout = store_timeout_seconds
        self._logger = get_logger(__name__)

    async def on_state_changed(
        self,
        entity_id: str,
        source: ProcessingState,
        target: ProcessingState,
        event: ProcessingEvent,
    ) -> None:
        self.metrics.accepted[(source, target)] += 1
        self._logger.info(
            "State changed: %s -> %s",
            source.value,
            target.value,
            extra={"entity_id": entity_id, "event": event.value},
        )
        if target in TERMINAL_STATES and target != source:
            await self._publish(entity_id, source, target, event)

    async def on_event_rejected(
        self,
        entity_id: str,
        state: ProcessingState,
        event: ProcessingEvent,
    ) -> None:
        self.metrics.rejected[(state, event)] += 1
        self._logger.warning(
            "Event not accepted: %s in state %s",
            event.value,
            state.value,
            extra={"entity_id": entity_id},
        )

    async def on_error(self, entity_id: str, error: Exception) -> None:
        self.metrics.errors += 1
        self._logger.error(
            "Workflow error: %s",
            error,
            exc_info=error,
            extra={"entity_id": entity_id},
        )
        message = str(error) or type(error).__name__
        try:
            await self._record_error(entity_id, message)
        except Exception:
            self._logger.exception(
                "Could not record error details",
                extra={"entity_id": entity_id},
            )

    async def _record_error(self, entity_id: str, message: str) -> None:
        for _ in range(_ERROR_WRITE_ATTEMPTS):
            record = await bounded(
                "get", self._store.get(entity_id), self._store_timeout
            )
            if record is None:
                return
            try:
                await bounded(
                    "save",
                    self._store.save(record.with_error(message)),
                    self._store_timeout,
                )
                return
            except ConcurrentModificationException:
                continue
        self._logger.warning(
            "Gave up recording error details after concurrent updates",
            extra={"entity_id": entity_id},
        )

    async def _publish(
        self,
        entity_id: str,
        source: ProcessingState,
        target: ProcessingState,
        event: ProcessingEvent,
    ) -> None:
        if self._publisher is None:
            return
        notification = WorkflowNotification(
            video_id=entity_id,
            previous_state=source,
            state=target,
            status=to_domain_status(target),
            event=event,
        )
        try:
            await self._publisher.publish(notification)
        except Exception:
            self.metrics.publish_failures += 1
            self._logger.exception(
                "Failed to publish workflow notification",
                extra={"entity_id": entity_id, "state": target.value},
            )
