"""
AppContext - the per-request context handed down the pipeline.

Pairs the transport-owned Request with the Response sink. It is also the
single request-specific binding placed into every request scope, so
controllers and actions can ask for it by type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from .request import Request
from .response import Response


@dataclass
class AppContext:
    """
    Request/response pair for one dispatch.

    Attributes:
        request: The inbound request (read-only for the core)
        response: The outbound response slots
        items: Free-form per-request state shared between middleware
    """

    request: Request
    response: Response = field(default_factory=Response)
    items: Dict[str, Any] = field(default_factory=dict)

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def path(self) -> str:
        return self.request.path
