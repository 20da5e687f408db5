"""Table-driven workflow engine for video ingestion."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar, cast

from src.application.services.observer import (
    TransitionObserverBase,
    WorkflowTransitionObserver,
)
from src.commons.telemetry import LogContext, get_logger
from src.domain.exceptions import ConcurrentModificationException
from src.domain.models.processing import (
    RECOVERY_TARGETS,
    ProcessingEvent,
    ProcessingState,
)
from src.domain.models.state_record import StateRecord
from src.domain.models.transitions import next_state
from src.infrastructure.persistence.base import StateRecordStoreBase
from src.infrastructure.persistence.timeouts import bounded

T = TypeVar("T")

# Returns the record to save, or None to leave the stored record untouched
RecordChange = Callable[[StateRecord], StateRecord | None]


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of applying one event."""

    accepted: bool
    previous_state: ProcessingState
    record: StateRecord

    @property
    def state(self) -> ProcessingState:
        return self.record.current_state


class WorkflowEngine:
    """Drives videos through the ingestion pipeline.

    The engine keeps no machine instances in memory: every call rehydrates
    the record from the store, applies the change and writes it back with a
    version check. A version conflict means another writer got there first,
    so the call re-reads and re-evaluates against the fresh state. Calls for
    different videos never contend.

    Forward progress goes through the transition table only. ``retry`` is the
    privileged recovery path that may reset a FAILED video to an earlier step
    without consulting the table.
    """

    def __init__(
        self,
        store: StateRecordStoreBase,
        observer: TransitionObserverBase | None = None,
        *,
        max_conflict_retries: int = 5,
        store_timeout_seconds: float = 10.0,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Durable state record store.
            observer: Transition observer. Defaults to a logging-only observer.
            max_conflict_retries: Attempts per call before a version conflict
                is reported to the caller.
            store_timeout_seconds: Upper bound for each store call.
        """
        self._store = store
        self._observer = observer or WorkflowTransitionObserver(
            store, store_timeout_seconds=store_timeout_seconds
        )
        self._max_conflict_retries = max_conflict_retries
        self._store_timeout = store_timeout_seconds
        self._background_tasks: set[asyncio.Task[bool]] = set()
        self._logger = get_logger(__name__)

    async def initialize(self, entity_id: str) -> StateRecord:
        """Create the PENDING record of a new video. Safe to repeat."""
        record = await self._bounded("create", self._store.create(entity_id))
        self._logger.info(
            "Initialized workflow",
            extra={"entity_id": entity_id, "state": record.current_state.value},
        )
        return record

    async def get_record(self, entity_id: str) -> StateRecord | None:
        """Get the stored record, or None if the video was never started."""
        return await self._bounded("get", self._store.get(entity_id))

    async def current_state(self, entity_id: str) -> ProcessingState:
        """Get the current state. Unknown videos are PENDING."""
        record = await self.get_record(entity_id)
        return record.current_state if record else ProcessingState.PENDING

    async def is_terminal(self, entity_id: str) -> bool:
        """Check if the video is READY, FAILED or DELETED."""
        return (await self.current_state(entity_id)).is_terminal

    async def send_event(self, entity_id: str, event: ProcessingEvent) -> bool:
        """Apply ``event`` to a video.

        Returns:
            True if the event was accepted, False if the current state does
            not accept it. Rejected events are still stored as ``last_event``.
        """
        result = await self.apply_event(entity_id, event)
        return result.accepted

    async def apply_event(
        self,
        entity_id: str,
        event: ProcessingEvent,
        error_details: str | None = None,
    ) -> TransitionResult:
        """Apply ``event`` and return the full outcome.

        ``error_details``, when given, is stored in the same save as an
        accepted transition and ignored when the event is rejected.

        Raises:
            StateStoreException: If the store fails or times out.
            ConcurrentModificationException: If conflicts persist past the
                retry budget.
        """
        previous: list[ProcessingState] = []

        def change(record: StateRecord) -> StateRecord:
            previous.append(record.current_state)
            updated = record.with_event(event)
            target = next_state(record.current_state, event)
            if target is None:
                return updated
            updated = updated.with_state(target)
            if error_details is not None:
                updated = updated.with_error(error_details)
            return updated

        with LogContext(entity_id=entity_id, event=event.value):
            self._logger.debug("Sending event")
            try:
                saved = cast(
                    "StateRecord",
                    await self._mutate(entity_id, change, create=True),
                )
            except Exception as e:
                await self._observer.on_error(entity_id, e)
                raise

        source = previous[-1]
        accepted = next_state(source, event) is not None
        if accepted:
            await self._observer.on_state_changed(
                entity_id, source, saved.current_state, event
            )
        else:
            await self._observer.on_event_rejected(entity_id, source, event)
        return TransitionResult(accepted=accepted, previous_state=source, record=saved)

    def send_event_async(
        self,
        entity_id: str,
        event: ProcessingEvent,
    ) -> asyncio.Task[bool]:
        """Schedule ``send_event`` without waiting for it.

        Must be called from a running event loop. The returned task resolves
        to the same boolean ``send_event`` would return, or raises its error.
        """
        task = asyncio.get_running_loop().create_task(
            self.send_event(entity_id, event),
            name=f"send_event:{entity_id}:{event.value}",
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every event scheduled with ``send_event_async``."""
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

    async def record_failure(self, entity_id: str, message: str) -> bool:
        """Send MARK_AS_FAILED with ``message`` as the error details.

        An accepted failure and its message are written in one save. When the
        event is rejected the message is still recorded for diagnosis.
        """
        self._logger.error(
            "Handling failure: %s",
            message,
            extra={"entity_id": entity_id},
        )
        result = await self.apply_event(
            entity_id, ProcessingEvent.MARK_AS_FAILED, error_details=message
        )
        if not result.accepted:
            await self.set_error_details(entity_id, message)
        return result.accepted

    async def set_error_details(self, entity_id: str, message: str | None) -> bool:
        """Set or clear the error details of an existing or new record."""
        saved = await self._mutate(
            entity_id,
            lambda record: record.with_error(message),
            create=True,
        )
        return saved is not None

    async def retry(self, entity_id: str, target_state: ProcessingState) -> bool:
        """Reset a FAILED video to ``target_state`` for another attempt.

        Recovery is privileged and does not consult the transition table. The
        only restriction on the target is that it must be a pipeline step
        (PENDING through GENERATING_THUMBNAILS); a terminal target would leave
        the video with no way forward. It increments ``retry_count`` and
        clears the error details.

        Returns:
            False without changing anything if the video is not FAILED, a
            rollback is in progress, or ``target_state`` is terminal.
        """
        refusal: list[str] = []

        def change(record: StateRecord) -> StateRecord | None:
            if not record.is_failed:
                refusal.append("video is not FAILED")
                return None
            if record.compensating_transaction:
                refusal.append("rollback in progress")
                return None
            if target_state not in RECOVERY_TARGETS:
                refusal.append("target is a terminal state")
                return None
            return record.with_retry(target_state)

        with LogContext(entity_id=entity_id):
            try:
                saved = await self._mutate(entity_id, change)
            except Exception as e:
                await self._observer.on_error(entity_id, e)
                raise

            if saved is None:
                self._logger.warning(
                    "Retry refused: %s",
                    refusal[-1] if refusal else "no record",
                    extra={"target_state": target_state.value},
                )
                return False

            self._logger.info(
                "Retrying processing from %s",
                target_state.value,
                extra={"retry_count": saved.retry_count},
            )
            return True

    async def start_compensation(self, entity_id: str) -> bool:
        """Flag a FAILED video as being rolled back.

        Returns:
            False if the video has no record or is not FAILED.
        """

        def change(record: StateRecord) -> StateRecord | None:
            if not record.is_failed:
                return None
            if record.compensating_transaction:
                return record
            return record.with_compensation(True)

        saved = await self._mutate(entity_id, change)
        if saved is None:
            self._logger.warning(
                "Cannot start compensation outside FAILED",
                extra={"entity_id": entity_id},
            )
            return False
        self._logger.info("Started compensation", extra={"entity_id": entity_id})
        return True

    async def complete_compensation(self, entity_id: str) -> bool:
        """Clear the rollback flag and reset the retry budget.

        Without a rollback in progress nothing changes, so the retry budget
        is only refilled by a real compensation.

        Returns:
            False if the video has no record.
        """

        def change(record: StateRecord) -> StateRecord:
            if not record.compensating_transaction:
                return record
            return record.with_compensation(False)

        saved = await self._mutate(entity_id, change)
        if saved is None:
            return False
        self._logger.info("Completed compensation", extra={"entity_id": entity_id})
        return True

    async def _mutate(
        self,
        entity_id: str,
        change: RecordChange,
        *,
        create: bool = False,
    ) -> StateRecord | None:
        """Read-modify-write one record with optimistic concurrency.

        ``change`` returning the record it was given means there is nothing
        to write; returning None means its precondition failed.

        Returns:
            The stored record, or None if the record is missing (and
            ``create`` is False) or ``change`` declined.
        """
        for attempt in range(1, self._max_conflict_retries + 1):
            if create:
                record = await self._bounded("create", self._store.create(entity_id))
            else:
                record = await self._bounded("get", self._store.get(entity_id))
                if record is None:
                    return None

            updated = change(record)
            if updated is None or updated is record:
                return updated

            try:
                return await self._bounded("save", self._store.save(updated))
            except ConcurrentModificationException:
                self._logger.debug(
                    "Version conflict, re-reading",
                    extra={"entity_id": entity_id, "attempt": attempt},
                )

        raise ConcurrentModificationException(entity_id, record.version)

    async def _bounded(self, operation: str, awaitable: Awaitable[T]) -> T:
        return await bounded(operation, awaitable, self._store_timeout)
