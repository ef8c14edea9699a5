"""
Action finders - map a request to the action that handles it.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, Optional, Protocol, Tuple, Type, runtime_checkable

from ..context import AppContext
from .metadata import ActionDescriptor, describe_action

logger = logging.getLogger("minimvc.mvc")


@runtime_checkable
class ActionFinder(Protocol):
    """Returns the action for a request, or None when it is not an MVC request."""

    def find(self, context: AppContext) -> Optional[ActionDescriptor]:
        ...


class RouteTableActionFinder:
    """
    Exact ``(method, path)`` lookup.

    Actions are described when added, so signature problems surface at
    startup rather than on the first request.
    """

    def __init__(self):
        self._routes: Dict[Tuple[str, str], ActionDescriptor] = {}

    def add(self, method: str, path: str, controller_cls: Type, method_name: str) -> ActionDescriptor:
        """
        Register ``controller_cls.method_name`` for ``method path``.

        Raises:
            ActionNotFoundFault: If the controller has no such method
            ValueError: If the route is already taken
        """
        key = (method.upper(), _normalize_path(path))
        if key in self._routes:
            raise ValueError(f"Route {key[0]} {key[1]} is already mapped to {self._routes[key]}")

        action = describe_action(controller_cls, method_name)
        self._routes[key] = action
        logger.debug("Mapped %s %s -> %s", key[0], key[1], action)
        return action

    def find(self, context: AppContext) -> Optional[ActionDescriptor]:
        return self._routes.get((context.method, _normalize_path(context.path)))

    def __iter__(self) -> Iterator[Tuple[Tuple[str, str], ActionDescriptor]]:
        return iter(self._routes.items())

    def __len__(self) -> int:
        return len(self._routes)


def _normalize_path(path: str) -> str:
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/")
    return path
