"""
Action invoker - binds parameters, calls the action, writes the result.
"""

from __future__ import annotations

import enum
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..cancellation import CancellationToken
from ..context import AppContext
from ..di import Container
from ..response import StringContent
from .binding import ParameterBinder
from .metadata import ActionDescriptor
from .results import ActionResultContext, SelfExecuting, normalize_result

logger = logging.getLogger("minimvc.mvc")


class DispatchState(str, enum.Enum):
    RESOLVING = "resolving"
    BINDING = "binding"
    INVOKING = "invoking"
    RESULT_HANDLING = "result_handling"
    DONE = "done"
    FAULTED = "faulted"


_ORDER = [
    DispatchState.RESOLVING,
    DispatchState.BINDING,
    DispatchState.INVOKING,
    DispatchState.RESULT_HANDLING,
    DispatchState.DONE,
]


@dataclass
class Dispatch:
    """
    Progress of one action dispatch.

    States only move forward. FAULTED can be entered from any state and
    is final.
    """

    action: ActionDescriptor
    state: DispatchState = DispatchState.RESOLVING
    history: List[DispatchState] = field(default_factory=lambda: [DispatchState.RESOLVING])

    @property
    def faulted(self) -> bool:
        return self.state is DispatchState.FAULTED

    def advance(self, state: DispatchState) -> None:
        if self.state in (DispatchState.FAULTED, DispatchState.DONE):
            raise RuntimeError(f"Dispatch of {self.action} already {self.state.value}")
        if _ORDER.index(state) <= _ORDER.index(self.state):
            raise RuntimeError(f"Cannot move dispatch from {self.state.value} to {state.value}")
        self.state = state
        self.history.append(state)

    def fault(self) -> None:
        if self.state is not DispatchState.FAULTED:
            self.state = DispatchState.FAULTED
            self.history.append(DispatchState.FAULTED)


class ActionInvoker:
    """
    Runs one action against an already constructed controller.

    ``invoke`` returns False when the action could not run or produced no
    result; errors raised by the action itself propagate to the caller.
    """

    def __init__(self, binder: Optional[ParameterBinder] = None):
        self.binder = binder or ParameterBinder()

    async def invoke(
        self,
        dispatch: Dispatch,
        controller: Any,
        context: AppContext,
        scope: Container,
        cancellation: Optional[CancellationToken] = None,
    ) -> bool:
        token = cancellation or CancellationToken.none()
        action = dispatch.action

        dispatch.advance(DispatchState.BINDING)
        kwargs: Dict[str, Any] = {}
        for parameter in action.parameters:
            outcome = await self.binder.bind(parameter, context, scope, token)
            if not outcome.success:
                logger.error("Action %s: parameter '%s' could not be bound", action, parameter.name)
                dispatch.fault()
                return False
            kwargs[parameter.name] = outcome.value

        dispatch.advance(DispatchState.INVOKING)
        token.raise_if_cancelled()
        value = action.bind(controller)(**kwargs)
        awaited = inspect.isawaitable(value)
        if awaited:
            value = await token.guard(value)

        dispatch.advance(DispatchState.RESULT_HANDLING)
        if value is None:
            if not awaited:
                logger.error("Action %s produced no result", action)
                dispatch.fault()
                return False
            context.response.set_content(StringContent.empty())
        else:
            variant = normalize_result(value)
            if isinstance(variant, SelfExecuting):
                await variant.result.execute(ActionResultContext(controller, action, context))
            else:
                context.response.set_content(StringContent(str(variant.value)))

        dispatch.advance(DispatchState.DONE)
        return True
