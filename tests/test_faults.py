"""
Faults (faults/) and cooperative cancellation (cancellation.py).
"""

import asyncio

import pytest

from minimvc.cancellation import CancellationToken
from minimvc.faults import (
    ActionNotFoundFault,
    ControllerConstructionFault,
    Fault,
    FaultDomain,
    RequestCancelledFault,
    Severity,
)


class TestFault:

    def test_requires_code_message_domain(self):
        with pytest.raises(TypeError):
            Fault(code="X")

    def test_domain_defaults(self):
        fault = Fault(code="X", message="m", domain=FaultDomain.IO)
        assert fault.severity is Severity.WARN
        assert fault.retryable is True

    def test_class_attribute_declaration(self):
        class Teapot(Fault):
            code = "TEAPOT"
            message = "short and stout"
            domain = FaultDomain.DI

        fault = Teapot()
        assert str(fault) == "[TEAPOT] short and stout"
        assert fault.severity is Severity.ERROR

    def test_to_dict(self):
        fault = ControllerConstructionFault("HomeController", "no Greeter")
        data = fault.to_dict()
        assert data["code"] == "CONTROLLER_CONSTRUCTION_FAILED"
        assert data["domain"] == "di"
        assert data["metadata"] == {"controller": "HomeController", "reason": "no Greeter"}
        assert "HomeController" in data["message"]

    def test_action_not_found_is_fatal(self):
        fault = ActionNotFoundFault("HomeController", "missing")
        assert fault.severity is Severity.FATAL
        assert fault.domain == FaultDomain.ROUTING
        assert fault.domain == "routing"

    def test_cancelled_is_public_warning(self):
        fault = RequestCancelledFault("client went away")
        assert fault.public is True
        assert fault.severity is Severity.WARN
        assert "client went away" in str(fault)


class TestCancellationToken:

    def test_initially_not_cancelled(self):
        token = CancellationToken()
        assert token.cancelled is False
        token.raise_if_cancelled()

    def test_none_tokens_are_independent(self):
        first = CancellationToken.none()
        first.cancel()
        assert CancellationToken.none().cancelled is False

    def test_first_reason_wins(self):
        token = CancellationToken()
        token.cancel("timeout")
        token.cancel("disconnect")
        assert token.reason == "timeout"
        with pytest.raises(RequestCancelledFault, match="timeout"):
            token.raise_if_cancelled()

    @pytest.mark.asyncio
    async def test_guard_returns_result(self):
        async def work():
            return 7

        assert await CancellationToken().guard(work()) == 7

    @pytest.mark.asyncio
    async def test_guard_cancels_pending_work(self):
        token = CancellationToken()
        started = asyncio.Event()
        finished = []

        async def work():
            started.set()
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                finished.append("cancelled")
                raise

        async def cancel_when_started():
            await started.wait()
            token.cancel("stop")

        canceller = asyncio.ensure_future(cancel_when_started())
        with pytest.raises(RequestCancelledFault):
            await token.guard(work())
        await canceller
        assert finished == ["cancelled"]

    @pytest.mark.asyncio
    async def test_guard_propagates_errors(self):
        async def work():
            raise ValueError("bad")

        with pytest.raises(ValueError):
            await CancellationToken().guard(work())

    @pytest.mark.asyncio
    async def test_wait(self):
        token = CancellationToken()
        asyncio.get_running_loop().call_soon(token.cancel)
        await asyncio.wait_for(token.wait(), timeout=1)
        assert token.cancelled


class TestFaultDomain:

    def test_unknown_domain_uses_error_defaults(self):
        fault = Fault(code="X", message="m", domain=FaultDomain("plugin"))
        assert fault.severity is Severity.ERROR
        assert fault.retryable is False

    def test_only_dispatch_domains_registered(self):
        assert not hasattr(FaultDomain, "FLOW")
        assert not hasattr(FaultDomain, "SYSTEM")
        assert not hasattr(FaultDomain, "CONFIG")
