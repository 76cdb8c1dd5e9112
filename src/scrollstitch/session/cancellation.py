"""
Cancellation Token
==================

Single-assignment cancellation signal for one session.

Rules:
    - cancel() takes effect once; later calls are ignored and return False
    - The first reason wins and never changes
    - Awaiting code races its work against wait() instead of polling a flag
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

from scrollstitch.errors import SessionCancelledError


T = TypeVar("T")


class CancellationToken:
    """
    Explicit, single-assignment cancellation token.

    Example:
        token = CancellationToken()
        frame = await token.run(source.capture(region))  # raises if cancelled
        ...
        token.cancel("escape pressed")
    """

    __slots__ = ("_reason", "_event")

    def __init__(self) -> None:
        self._reason: Optional[str] = None
        self._event: asyncio.Event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> bool:
        """
        Cancel once.

        Returns:
            True if this call cancelled the token, False if it already was
        """
        if self._reason is not None:
            return False
        self._reason = reason
        self._event.set()
        return True

    async def wait(self) -> str:
        """Block until cancelled; returns the reason."""
        await self._event.wait()
        return self._reason or "cancelled"

    def raise_if_cancelled(self) -> None:
        if self._reason is not None:
            raise SessionCancelledError(self._reason)

    async def run(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable`` unless the token is cancelled first.

        The pending work is cancelled when the token fires.

        Raises:
            SessionCancelledError: If the token fired before completion
        """
        self.raise_if_cancelled()

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()

        if work.done():
            return work.result()

        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        raise SessionCancelledError(self._reason or "cancelled")

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled}, reason={self._reason!r})"
