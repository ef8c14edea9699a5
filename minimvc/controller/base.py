"""
Controller Base Class

Provides the base Controller class and ControllerContext.
"""

from typing import Any, Dict, Optional, TYPE_CHECKING
from dataclasses import dataclass

from .results import ContentResult, JsonResult, StatusCodeResult, ViewResult

if TYPE_CHECKING:
    from ..context import AppContext
    from ..request import Request
    from ..response import Response
    from ..views import ViewEngine


@dataclass
class ControllerContext:
    """
    Per-dispatch context handed to a controller before its action runs.

    Attributes:
        app_context: The current request/response pair
        view_engine: Engine used by ViewResult (None when views are not set up)
    """

    app_context: "AppContext"
    view_engine: Optional["ViewEngine"] = None

    @property
    def request(self) -> "Request":
        return self.app_context.request

    @property
    def response(self) -> "Response":
        return self.app_context.response


class Controller:
    """
    Base Controller class.

    Subclassing is optional: any class can serve actions. Subclasses get
    the ``controller_context`` of the current dispatch and helpers that
    build result objects.

    Example:
        class HomeController(Controller):
            def __init__(self, greeter: Greeter):
                self.greeter = greeter

            async def index(self, name: Annotated[str, FromQuery()] = "world"):
                return self.view(model={"greeting": self.greeter.greet(name)})
    """

    controller_context: Optional[ControllerContext] = None

    @property
    def request(self) -> "Request":
        return self.controller_context.request

    @property
    def response(self) -> "Response":
        return self.controller_context.response

    def content(self, text: str, content_type: str = "text/plain; charset=utf-8") -> ContentResult:
        return ContentResult(text, content_type)

    def json(self, value: Any, status: Optional[int] = None) -> JsonResult:
        return JsonResult(value, status)

    def status_code(self, status: int) -> StatusCodeResult:
        return StatusCodeResult(status)

    def view(
        self,
        view_name: Optional[str] = None,
        model: Any = None,
        view_data: Optional[Dict[str, Any]] = None,
    ) -> ViewResult:
        """
        Render a view. ``view_name`` defaults to the action name.
        """
        return ViewResult(view_name, model, dict(view_data or {}))
