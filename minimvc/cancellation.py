"""
Cooperative cancellation signal.

A CancellationToken is handed down the middleware pipeline with every
request. Code that suspends (reading the body, reading the form, awaiting
an async action) checks it before and after the suspension point.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar

from .faults import RequestCancelledFault

T = TypeVar("T")


class CancellationToken:
    """
    Cancellation signal propagated from the caller.

    Example:
        token = CancellationToken()
        text = await request.read_text(token)
        token.cancel("client went away")
        token.raise_if_cancelled()  # raises RequestCancelledFault
    """

    __slots__ = ("_event", "_reason")

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @classmethod
    def none(cls) -> "CancellationToken":
        """A token that is never cancelled by anyone."""
        return cls()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RequestCancelledFault(self._reason or "cancelled")

    async def wait(self) -> None:
        await self._event.wait()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable`` unless the token fires first.

        If the token is cancelled while waiting, the pending work is
        cancelled and RequestCancelledFault is raised.
        """
        self.raise_if_cancelled()

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        except BaseException:
            task.cancel()
            waiter.cancel()
            raise

        if task in done:
            waiter.cancel()
            return task.result()

        task.cancel()
        await asyncio.wait({task})
        raise RequestCancelledFault(self._reason or "cancelled")
