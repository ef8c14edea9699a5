"""
Action invocation and result handling (controller/invoker.py).
"""

from typing import Annotated

import pytest

from minimvc.cancellation import CancellationToken
from minimvc.controller.invoker import ActionInvoker, Dispatch, DispatchState
from minimvc.controller.metadata import describe_action
from minimvc.controller.results import ActionResultContext
from minimvc.controller.sources import FromQuery
from minimvc.di import Container
from minimvc.faults import RequestCancelledFault
from minimvc.response import StringContent
from tests.conftest import make_context


class RecordingResult:
    """Self-executing result that keeps what it was given."""

    def __init__(self):
        self.seen = None

    async def execute(self, context: ActionResultContext) -> None:
        self.seen = context
        context.response.status = 202


class ShopController:

    def __init__(self):
        self.result = RecordingResult()

    def greet(self, name: Annotated[str, FromQuery()]):
        return f"hello {name}"

    def count(self, n: int):
        return n * 2

    async def fire_and_forget(self):
        return None

    def forgot_return(self):
        pass

    def custom(self):
        return self.result

    async def custom_async(self):
        return self.result

    def explode(self):
        raise RuntimeError("boom")


async def run(method_name, context=None, cancellation=None):
    controller = ShopController()
    context = context or make_context()
    dispatch = Dispatch(describe_action(ShopController, method_name))
    scope = Container().create_request_scope()
    ok = await ActionInvoker().invoke(dispatch, controller, context, scope, cancellation)
    return ok, dispatch, context, controller


class TestDispatch:

    def test_moves_forward_only(self):
        dispatch = Dispatch(describe_action(ShopController, "greet"))
        dispatch.advance(DispatchState.BINDING)
        with pytest.raises(RuntimeError):
            dispatch.advance(DispatchState.RESOLVING)

    def test_fault_is_final(self):
        dispatch = Dispatch(describe_action(ShopController, "greet"))
        dispatch.fault()
        dispatch.fault()
        assert dispatch.faulted
        assert dispatch.history == [DispatchState.RESOLVING, DispatchState.FAULTED]
        with pytest.raises(RuntimeError):
            dispatch.advance(DispatchState.BINDING)


class TestPlainValues:

    @pytest.mark.asyncio
    async def test_string_result(self):
        ok, dispatch, context, _ = await run("greet", make_context(query_string="name=ada"))
        assert ok is True
        assert context.response.content == StringContent("hello ada")
        assert dispatch.state is DispatchState.DONE
        assert dispatch.history == [
            DispatchState.RESOLVING,
            DispatchState.BINDING,
            DispatchState.INVOKING,
            DispatchState.RESULT_HANDLING,
            DispatchState.DONE,
        ]

    @pytest.mark.asyncio
    async def test_non_string_rendered_with_str(self):
        ok, _, context, _ = await run("count", make_context(query_string="n=21"))
        assert ok is True
        assert context.response.content.text == "42"

    @pytest.mark.asyncio
    async def test_async_none_is_empty_content(self):
        ok, dispatch, context, _ = await run("fire_and_forget")
        assert ok is True
        assert context.response.content == StringContent.empty()
        assert dispatch.state is DispatchState.DONE

    @pytest.mark.asyncio
    async def test_sync_none_fails(self):
        ok, dispatch, context, _ = await run("forgot_return")
        assert ok is False
        assert dispatch.faulted
        assert context.response.content is None


class TestSelfExecutingResults:

    @pytest.mark.asyncio
    async def test_result_executes_with_context(self):
        ok, _, context, controller = await run("custom")
        assert ok is True
        seen = controller.result.seen
        assert seen.controller is controller
        assert seen.action.name == "custom"
        assert seen.context is context
        assert context.response.status == 202
        assert context.response.content is None

    @pytest.mark.asyncio
    async def test_async_action_returning_result(self):
        ok, _, context, controller = await run("custom_async")
        assert ok is True
        assert controller.result.seen.context is context


class TestFailures:

    @pytest.mark.asyncio
    async def test_binding_failure_stops_before_invoking(self):
        ok, dispatch, context, _ = await run("greet")
        assert ok is False
        assert dispatch.history == [DispatchState.RESOLVING, DispatchState.BINDING, DispatchState.FAULTED]
        assert context.response.content is None

    @pytest.mark.asyncio
    async def test_action_errors_propagate(self):
        with pytest.raises(RuntimeError, match="boom"):
            await run("explode")

    @pytest.mark.asyncio
    async def test_cancelled_before_invoking(self):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(RequestCancelledFault):
            await run("fire_and_forget", cancellation=token)
