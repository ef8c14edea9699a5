"""
Middleware pipeline - composable async stages sharing one AppContext.

A stage receives the context, the next handler and the request's
cancellation token. It may finish the request itself or call ``next``.
"""

from __future__ import annotations

from typing import Callable, Awaitable, Optional, List
from dataclasses import dataclass
import time
import logging

from .cancellation import CancellationToken
from .context import AppContext

Handler = Callable[[AppContext, CancellationToken], Awaitable[None]]
Middleware = Callable[[AppContext, Handler, CancellationToken], Awaitable[None]]


@dataclass
class MiddlewareDescriptor:
    """Descriptor for middleware registration."""
    middleware: Middleware
    priority: int
    name: str


class MiddlewareStack:
    """
    Manages middleware stack with deterministic ordering.

    Lower priority runs first (outermost); equal priorities keep
    registration order.
    """

    def __init__(self):
        self.middlewares: List[MiddlewareDescriptor] = []
        self._sorted = True  # Track if sorting is needed

    def add(
        self,
        middleware: Middleware,
        priority: int = 50,
        name: Optional[str] = None,
    ) -> None:
        """Add middleware to stack."""
        if name is None:
            name = getattr(middleware, "__name__", type(middleware).__name__)

        self.middlewares.append(MiddlewareDescriptor(
            middleware=middleware,
            priority=priority,
            name=name,
        ))
        self._sorted = False  # Defer sorting until build_handler()

    def build_handler(self, final_handler: Handler) -> Handler:
        """Build middleware chain wrapping the final handler."""
        if not self._sorted:
            # list.sort is stable
            self.middlewares.sort(key=lambda desc: desc.priority)
            self._sorted = True

        handler = final_handler

        # Wrap in reverse order so first middleware is outermost
        for desc in reversed(self.middlewares):
            handler = self._wrap_middleware(desc.middleware, handler)

        return handler

    def _wrap_middleware(self, middleware: Middleware, next_handler: Handler) -> Handler:
        """Wrap a handler with middleware."""
        async def wrapped(context: AppContext, cancellation: CancellationToken) -> None:
            await middleware(context, next_handler, cancellation)

        return wrapped

    def __len__(self) -> int:
        return len(self.middlewares)


class LoggingMiddleware:
    """Logs request/response with timing.

    Checks logger.isEnabledFor(INFO) once per request and skips all work
    if disabled.
    """

    def __init__(self, slow_request_ms: float = 1000.0):
        self.logger = logging.getLogger("minimvc.requests")
        self.slow_request_ms = slow_request_ms

    async def __call__(self, context: AppContext, next: Handler, cancellation: CancellationToken) -> None:
        if not self.logger.isEnabledFor(logging.INFO):
            await next(context, cancellation)
            return

        start = time.monotonic()
        await next(context, cancellation)
        elapsed_ms = (time.monotonic() - start) * 1000.0

        self.logger.info(
            "%s %s - %d (%.1fms)",
            context.method, context.path, context.response.status, elapsed_ms,
        )

        if elapsed_ms > self.slow_request_ms:
            self.logger.warning(
                "Slow request: %s %s took %.1fms",
                context.method, context.path, elapsed_ms,
            )
