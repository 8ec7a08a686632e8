"""
Cooperative cancellation for backend calls.

A ``CancellationSignal`` is threaded through every operation. Cancelling it
aborts the in-flight gateway call and surfaces ``OperationCancelledError``
instead of a result.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
from collections.abc import Awaitable
from typing import TypeVar

from .exceptions import OperationCancelledError

T = TypeVar("T")


class CancellationSignal:
    """One-shot cancellation flag that can be awaited.

    Example:
        >>> signal = CancellationSignal()
        >>> task = asyncio.create_task(manager.sign_in_anonymously(cancel=signal))
        >>> signal.cancel()
        >>> await task  # raises OperationCancelledError
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        """Request cancellation. Idempotent."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        """Block until cancellation is requested."""
        await self._event.wait()

    def raise_if_cancelled(self, operation: str) -> None:
        if self._event.is_set():
            raise OperationCancelledError(operation)


async def run_cancellable(
    awaitable: Awaitable[T],
    cancel: CancellationSignal | None,
    operation: str,
) -> T:
    """Await ``awaitable`` unless ``cancel`` fires first.

    When the signal wins the race the pending call is cancelled and awaited
    before ``OperationCancelledError`` is raised, so nothing it would have
    produced escapes. A result that is already complete wins over a signal
    that fired at the same time.
    """
    if cancel is None:
        return await awaitable

    if cancel.cancelled:
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        raise OperationCancelledError(operation)

    call = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({call, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        call.cancel()
        waiter.cancel()
        raise

    if call.done():
        waiter.cancel()
        return call.result()

    call.cancel()
    try:
        with contextlib.suppress(asyncio.CancelledError):
            await call
    except Exception as exc:
        raise OperationCancelledError(operation) from exc
    raise OperationCancelledError(operation)
