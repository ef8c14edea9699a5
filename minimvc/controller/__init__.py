"""
Controller layer - action metadata, parameter binding, invocation and the
MVC middleware.
"""

from .base import Controller, ControllerContext
from .binding import BindingOutcome, ParameterBinder
from .coercion import CoercionRegistry, ParseResult, default_registry
from .factory import ControllerFactory
from .finder import ActionFinder, RouteTableActionFinder
from .invoker import ActionInvoker, Dispatch, DispatchState
from .metadata import (
    ActionDescriptor,
    MethodDescriptor,
    ParameterDescriptor,
    describe_action,
)
from .middleware import MvcMiddleware
from .results import (
    ActionResult,
    ActionResultContext,
    ContentResult,
    JsonResult,
    PlainValue,
    SelfExecuting,
    StatusCodeResult,
    ViewResult,
    normalize_result,
)
from .sources import (
    FromBody,
    FromForm,
    FromHeader,
    FromQuery,
    ParameterSources,
    classify_sources,
)

__all__ = [
    "Controller",
    "ControllerContext",
    "BindingOutcome",
    "ParameterBinder",
    "CoercionRegistry",
    "ParseResult",
    "default_registry",
    "ControllerFactory",
    "ActionFinder",
    "RouteTableActionFinder",
    "ActionInvoker",
    "Dispatch",
    "DispatchState",
    "ActionDescriptor",
    "MethodDescriptor",
    "ParameterDescriptor",
    "describe_action",
    "MvcMiddleware",
    "ActionResult",
    "ActionResultContext",
    "ContentResult",
    "JsonResult",
    "PlainValue",
    "SelfExecuting",
    "StatusCodeResult",
    "ViewResult",
    "normalize_result",
    "FromBody",
    "FromForm",
    "FromHeader",
    "FromQuery",
    "ParameterSources",
    "classify_sources",
]
