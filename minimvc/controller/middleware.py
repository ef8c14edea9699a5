"""
MVC middleware - the pipeline stage that dispatches controller actions.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..cancellation import CancellationToken
from ..config import MvcConfig
from ..context import AppContext
from ..di import Container
from ..faults import Fault, Severity
from ..middleware import Handler
from ..views import ViewEngine
from .base import Controller, ControllerContext
from .binding import ParameterBinder
from .factory import ControllerFactory
from .finder import ActionFinder
from .invoker import ActionInvoker, Dispatch

logger = logging.getLogger("minimvc.mvc")

_FAULT_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARN: logging.WARNING,
    Severity.ERROR: logging.ERROR,
    Severity.FATAL: logging.CRITICAL,
}


class MvcMiddleware:
    """
    Dispatches requests that the finder maps to an action.

    Requests without an action go to the next stage untouched. For the
    others a request scope is layered over the container, the controller
    is built from it and the action runs. Every fault on that path, and any
    error raised while resolving the action, is caught here, logged, and
    turned into ``config.fault_status``. The request scope is shut down on
    every exit path. Errors from the next stage propagate.
    """

    def __init__(
        self,
        finder: ActionFinder,
        container: Container,
        config: Optional[MvcConfig] = None,
        *,
        invoker: Optional[ActionInvoker] = None,
        factory: Optional[ControllerFactory] = None,
    ):
        self.finder = finder
        self.container = container
        self.config = config or MvcConfig()
        self.invoker = invoker or ActionInvoker(ParameterBinder(form_methods=self.config.form_methods))
        self.factory = factory or ControllerFactory()

    async def __call__(self, context: AppContext, next: Handler, cancellation: CancellationToken) -> None:
        try:
            action = self.finder.find(context)
        except Exception as exc:
            self._log_failure(context, "action resolution", exc)
            context.response.status = self.config.fault_status
            return

        if action is None:
            await next(context, cancellation)
            return

        dispatch = Dispatch(action)
        scope: Optional[Container] = None
        try:
            scope = await self._build_scope(context)
            controller = await self.factory.create(action.controller_type, scope)
            await self._attach_controller_context(controller, context, scope)

            if not await self.invoker.invoke(dispatch, controller, context, scope, cancellation):
                self._set_fault_status(context, dispatch)
        except Exception as exc:
            self._log_failure(context, action, exc)
            self._set_fault_status(context, dispatch)
        finally:
            if scope is not None:
                await scope.shutdown()

    def _log_failure(self, context: AppContext, target: Any, exc: Exception) -> None:
        if isinstance(exc, Fault):
            logger.log(
                _FAULT_LOG_LEVELS.get(exc.severity, logging.ERROR),
                "Dispatch of %s %s to %s failed: %s",
                context.method,
                context.path,
                target,
                exc,
                exc_info=exc.severity in (Severity.ERROR, Severity.FATAL),
            )
        else:
            logger.error(
                "Unhandled error dispatching %s %s to %s",
                context.method,
                context.path,
                target,
                exc_info=exc,
            )

    async def _build_scope(self, context: AppContext) -> Container:
        """Request scope over the process-wide container, with the current context bound."""
        scope = self.container.create_request_scope()
        await scope.register_instance(AppContext, context, scope="request")
        return scope

    async def _attach_controller_context(self, controller: Any, context: AppContext, scope: Container) -> None:
        if not isinstance(controller, Controller):
            return
        view_engine = await scope.resolve_async(ViewEngine, optional=True)
        controller.controller_context = ControllerContext(context, view_engine)

    def _set_fault_status(self, context: AppContext, dispatch: Dispatch) -> None:
        dispatch.fault()
        context.response.status = self.config.fault_status
