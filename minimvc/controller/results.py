"""
Action results.

An action may return any value. Values that implement ``ActionResult``
write the response themselves; anything else is rendered with ``str()``.
"""

from __future__ import annotations

import dataclasses
import enum
import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional, Protocol, Union, runtime_checkable

from ..response import HttpStatus, StringContent

if TYPE_CHECKING:
    from ..context import AppContext
    from .metadata import ActionDescriptor

logger = logging.getLogger("minimvc.views")


@dataclass(frozen=True)
class ActionResultContext:
    """What a self-executing result gets to work with."""

    controller: Any
    action: "ActionDescriptor"
    context: "AppContext"

    @property
    def response(self):
        return self.context.response


@runtime_checkable
class ActionResult(Protocol):
    """A result that writes the response itself."""

    async def execute(self, context: ActionResultContext) -> None:
        ...


# ============================================================================
# Result normalization
# ============================================================================

@dataclass(frozen=True)
class PlainValue:
    """A return value to be written as text."""

    value: Any


@dataclass(frozen=True)
class SelfExecuting:
    """A return value that implements ActionResult."""

    result: ActionResult


ResultVariant = Union[PlainValue, SelfExecuting]


def normalize_result(value: Any) -> ResultVariant:
    if isinstance(value, ActionResult):
        return SelfExecuting(value)
    return PlainValue(value)


# ============================================================================
# Built-in results
# ============================================================================

def _json_default_serializer(o):
    """Default JSON serializer for non-standard types."""
    if dataclasses.is_dataclass(o) and not isinstance(o, type):
        return dataclasses.asdict(o)
    if isinstance(o, enum.Enum):
        return o.value
    if isinstance(o, (set, frozenset, tuple)):
        return list(o)
    if hasattr(o, "model_dump"):
        return o.model_dump()
    if hasattr(o, "isoformat"):
        return o.isoformat()
    return str(o)


@dataclass
class ContentResult:
    """Plain text (or any textual) content."""

    content: str
    content_type: str = "text/plain; charset=utf-8"
    status: Optional[int] = None

    async def execute(self, context: ActionResultContext) -> None:
        response = context.response
        if self.status is not None:
            response.status = self.status
        response.set_content(StringContent(self.content, self.content_type))


@dataclass
class JsonResult:
    """``value`` serialized as JSON."""

    value: Any
    status: Optional[int] = None

    async def execute(self, context: ActionResultContext) -> None:
        text = json.dumps(self.value, default=_json_default_serializer, ensure_ascii=False)
        response = context.response
        if self.status is not None:
            response.status = self.status
        response.set_content(StringContent(text, "application/json; charset=utf-8"))


@dataclass
class StatusCodeResult:
    """A bare status code with no body."""

    status: int

    async def execute(self, context: ActionResultContext) -> None:
        context.response.status = self.status


@dataclass
class ViewResult:
    """
    A rendered view.

    The view engine comes from the controller's ControllerContext. When no
    engine is available, or it produces nothing, the response gets the
    internal-error status.
    """

    view_name: Optional[str] = None
    model: Any = None
    view_data: Dict[str, Any] = field(default_factory=dict)

    async def execute(self, context: ActionResultContext) -> None:
        response = context.response
        view_name = self.view_name or context.action.name

        controller_context = getattr(context.controller, "controller_context", None)
        engine = getattr(controller_context, "view_engine", None)
        if engine is None:
            logger.error("No view engine available to render view '%s'", view_name)
            response.status = HttpStatus.INTERNAL_SERVER_ERROR
            return

        view = await engine.render(context, view_name, self.model, self.view_data)
        if view is None:
            logger.error("View engine returned nothing for view '%s'", view_name)
            response.status = HttpStatus.INTERNAL_SERVER_ERROR
            return

        response.status = view.status
        response.set_content(StringContent(view.text, view.content_type))
