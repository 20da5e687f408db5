"""Bounded store calls."""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from src.domain.exceptions import StateStoreException

T = TypeVar("T")


async def bounded(operation: str, awaitable: Awaitable[T], timeout_seconds: float) -> T:
    """Await a store call, failing instead of hanging past ``timeout_seconds``.

    Raises:
        StateStoreException: If the call does not finish in time.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except TimeoutError as e:
        raise StateStoreException(
            operation, f"timed out after {timeout_seconds:g}s"
        ) from e
