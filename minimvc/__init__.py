"""
MiniMVC - async MVC dispatch core

Dispatches requests to controller actions:
- Sources: query, header, form and JSON body binding via Annotated markers
- Coercion: pluggable try-parse and converter strategies
- DI: process-wide container with a fresh request scope per dispatch
- Results: plain values, awaitables and self-executing result objects
- Faults: every dispatch failure becomes a configurable fault status
"""

__version__ = "0.1.0"

# ============================================================================
# Core
# ============================================================================

from .app import MiniApp
from .cancellation import CancellationToken
from .config import ConfigError, ConfigLoader, MvcConfig
from .context import AppContext
from .request import Request
from .response import Response, StringContent

from ._datastructures import (
    MultiDict,
    Headers,
)

# ============================================================================
# Controllers
# ============================================================================

from .controller import (
    ActionDescriptor,
    ActionInvoker,
    ActionResult,
    ActionResultContext,
    BindingOutcome,
    CoercionRegistry,
    ContentResult,
    Controller,
    ControllerContext,
    FromBody,
    FromForm,
    FromHeader,
    FromQuery,
    JsonResult,
    MvcMiddleware,
    ParameterBinder,
    ParameterSources,
    ParseResult,
    RouteTableActionFinder,
    StatusCodeResult,
    ViewResult,
    describe_action,
)

# ============================================================================
# DI, middleware, views, faults
# ============================================================================

from .di import Container
from .middleware import LoggingMiddleware, MiddlewareStack
from .views import DefaultViewFinder, JinjaViewEngine, ViewContent, ViewEngine
from .faults import (
    Fault,
    FaultDomain,
    Severity,
    ControllerConstructionFault,
    ActionNotFoundFault,
    RequestCancelledFault,
)

__all__ = [
    "__version__",
    "MiniApp",
    "CancellationToken",
    "ConfigError",
    "ConfigLoader",
    "MvcConfig",
    "AppContext",
    "Request",
    "Response",
    "StringContent",
    "MultiDict",
    "Headers",
    "ActionDescriptor",
    "ActionInvoker",
    "ActionResult",
    "ActionResultContext",
    "BindingOutcome",
    "CoercionRegistry",
    "ContentResult",
    "Controller",
    "ControllerContext",
    "FromBody",
    "FromForm",
    "FromHeader",
    "FromQuery",
    "JsonResult",
    "MvcMiddleware",
    "ParameterBinder",
    "ParameterSources",
    "ParseResult",
    "RouteTableActionFinder",
    "StatusCodeResult",
    "ViewResult",
    "describe_action",
    "Container",
    "LoggingMiddleware",
    "MiddlewareStack",
    "DefaultViewFinder",
    "JinjaViewEngine",
    "ViewContent",
    "ViewEngine",
    "Fault",
    "FaultDomain",
    "Severity",
    "ControllerConstructionFault",
    "ActionNotFoundFault",
    "RequestCancelledFault",
]
