"""
Middleware System (middleware.py)

Tests MiddlewareStack and LoggingMiddleware.
"""

import logging

import pytest

from minimvc.cancellation import CancellationToken
from minimvc.middleware import LoggingMiddleware, MiddlewareStack
from tests.conftest import make_context


def recorder(calls, name):
    async def mw(context, next_handler, cancellation):
        calls.append(f"{name}:before")
        await next_handler(context, cancellation)
        calls.append(f"{name}:after")

    mw.__name__ = name
    return mw


# ============================================================================
# MiddlewareStack
# ============================================================================

class TestMiddlewareStack:

    def test_init(self):
        stack = MiddlewareStack()
        assert len(stack) == 0

    def test_add_uses_function_name(self):
        stack = MiddlewareStack()
        stack.add(recorder([], "auth"))
        assert stack.middlewares[0].name == "auth"
        assert stack.middlewares[0].priority == 50

    def test_add_callable_object_uses_class_name(self):
        stack = MiddlewareStack()
        stack.add(LoggingMiddleware())
        assert stack.middlewares[0].name == "LoggingMiddleware"

    @pytest.mark.asyncio
    async def test_priority_order(self):
        calls = []
        stack = MiddlewareStack()
        stack.add(recorder(calls, "late"), priority=90)
        stack.add(recorder(calls, "early"), priority=10)

        async def final(context, cancellation):
            calls.append("final")

        await stack.build_handler(final)(make_context(), CancellationToken())
        assert calls == ["early:before", "late:before", "final", "late:after", "early:after"]

    @pytest.mark.asyncio
    async def test_equal_priority_keeps_registration_order(self):
        calls = []
        stack = MiddlewareStack()
        stack.add(recorder(calls, "first"))
        stack.add(recorder(calls, "second"))

        async def final(context, cancellation):
            pass

        await stack.build_handler(final)(make_context(), CancellationToken())
        assert calls[:2] == ["first:before", "second:before"]

    @pytest.mark.asyncio
    async def test_short_circuit(self):
        stack = MiddlewareStack()

        async def deny(context, next_handler, cancellation):
            context.response.status = 403

        async def final(context, cancellation):
            raise AssertionError("must not be reached")

        stack.add(deny)
        context = make_context()
        await stack.build_handler(final)(context, CancellationToken())
        assert context.response.status == 403

    @pytest.mark.asyncio
    async def test_token_passed_through(self):
        seen = []
        token = CancellationToken()
        stack = MiddlewareStack()
        stack.add(recorder([], "outer"))

        async def final(context, cancellation):
            seen.append(cancellation)

        await stack.build_handler(final)(make_context(), token)
        assert seen == [token]


# ============================================================================
# LoggingMiddleware
# ============================================================================

class TestLoggingMiddleware:

    @pytest.mark.asyncio
    async def test_logs_request(self, caplog):
        async def final(context, cancellation):
            context.response.status = 201

        with caplog.at_level(logging.INFO, logger="minimvc.requests"):
            await LoggingMiddleware()(make_context(method="POST", path="/orders"), final, CancellationToken())

        assert "POST /orders - 201" in caplog.text

    @pytest.mark.asyncio
    async def test_slow_request_warning(self, caplog):
        async def final(context, cancellation):
            pass

        with caplog.at_level(logging.INFO, logger="minimvc.requests"):
            await LoggingMiddleware(slow_request_ms=-1)(make_context(), final, CancellationToken())

        assert "Slow request" in caplog.text

    @pytest.mark.asyncio
    async def test_disabled_logger_still_calls_next(self, caplog):
        called = []

        async def final(context, cancellation):
            called.append(True)

        with caplog.at_level(logging.WARNING, logger="minimvc.requests"):
            await LoggingMiddleware()(make_context(), final, CancellationToken())

        assert called == [True]
        assert caplog.text == ""
