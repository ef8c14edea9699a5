"""
Views - template rendering for ViewResult.

The engine finds a template for (controller, view name), renders it with
Jinja2 in a sandbox and returns a fully materialized ViewContent.
Compiled templates are not cached: every render compiles the source anew.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, runtime_checkable

from jinja2 import FileSystemLoader
from jinja2.sandbox import SandboxedEnvironment

if TYPE_CHECKING:
    from .controller.results import ActionResultContext

logger = logging.getLogger("minimvc.views")

DEFAULT_VIEWS_FOLDER = "Views"


@dataclass(frozen=True)
class ViewContent:
    """Rendered view text plus the status it should be sent with."""

    text: str
    status: int = 200
    content_type: str = "text/html; charset=utf-8"

    @classmethod
    def internal_error(cls) -> "ViewContent":
        return cls("Internal Server Error", status=500, content_type="text/plain; charset=utf-8")


@runtime_checkable
class ViewEngine(Protocol):
    async def render(
        self,
        context: "ActionResultContext",
        view_name: str,
        model: Any,
        view_data: Dict[str, Any],
    ) -> Optional[ViewContent]:
        ...


@runtime_checkable
class ViewFinder(Protocol):
    def find(self, context: "ActionResultContext", view_name: str) -> Optional[str]:
        """Return the template source for the view, or None."""
        ...


class DefaultViewFinder:
    """
    Looks up ``{folder}/{Controller}/{view}.html`` then ``{folder}/Shared/{view}.html``.

    ``{Controller}`` is the controller class name without a trailing
    "Controller" (``HomeController`` -> ``Home``).
    """

    def __init__(self, views_folder: str = DEFAULT_VIEWS_FOLDER, extension: str = ".html"):
        self.views_folder = Path(views_folder)
        self.extension = extension

    def candidates(self, context: "ActionResultContext", view_name: str) -> List[Path]:
        controller_name = type(context.controller).__name__
        if controller_name.endswith("Controller") and controller_name != "Controller":
            controller_name = controller_name[: -len("Controller")]

        file_name = view_name if view_name.endswith(self.extension) else view_name + self.extension
        return [
            self.views_folder / controller_name / file_name,
            self.views_folder / "Shared" / file_name,
        ]

    def find(self, context: "ActionResultContext", view_name: str) -> Optional[str]:
        for path in self.candidates(context, view_name):
            if path.is_file():
                return path.read_text(encoding="utf-8")
        return None


class JinjaViewEngine:
    """
    Jinja2 view engine.

    Templates run in a ``SandboxedEnvironment`` and see ``model``,
    ``view_data`` (also spread as top-level names) and ``request``.
    ``{% include %}`` / ``{% extends %}`` resolve relative to the views folder.

    Args:
        finder: Locates template sources (DefaultViewFinder by default)
        views_folder: Root folder of views
        autoescape: HTML-escape output
        globals: Extra template globals
    """

    def __init__(
        self,
        finder: Optional[ViewFinder] = None,
        *,
        views_folder: str = DEFAULT_VIEWS_FOLDER,
        autoescape: bool = True,
        globals: Optional[Dict[str, Any]] = None,
    ):
        self.finder = finder or DefaultViewFinder(views_folder)
        self.env = SandboxedEnvironment(
            loader=FileSystemLoader(views_folder),
            autoescape=autoescape,
            cache_size=0,
            enable_async=True,
        )
        if globals:
            self.env.globals.update(globals)

    async def render(
        self,
        context: "ActionResultContext",
        view_name: str,
        model: Any,
        view_data: Dict[str, Any],
    ) -> Optional[ViewContent]:
        try:
            source = self.finder.find(context, view_name)
            if source is None:
                logger.error("View not found: %s", view_name)
                return ViewContent.internal_error()

            template = self.env.from_string(source)
            variables = dict(view_data)
            variables.update(
                model=model,
                view_data=view_data,
                request=context.context.request,
            )
            text = await template.render_async(**variables)
            return ViewContent(text)
        except Exception:
            logger.error("Error rendering view: %s", view_name, exc_info=True)
            return ViewContent.internal_error()
