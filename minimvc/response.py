"""
Response - the mutable outbound sink written by the dispatch core.

The core writes exactly two things: the status slot (on faults) and the
content slot (from results). Bodies are fully materialized strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Tuple


class HttpStatus:
    """Status codes used by the dispatch core."""
    OK = 200
    NO_CONTENT = 204
    BAD_REQUEST = 400
    NOT_FOUND = 404
    INTERNAL_SERVER_ERROR = 500


@dataclass(frozen=True)
class StringContent:
    """Fully materialized textual body."""

    text: str = ""
    content_type: str = "text/plain; charset=utf-8"

    @classmethod
    def empty(cls) -> "StringContent":
        return cls("")

    def encode(self) -> bytes:
        return self.text.encode("utf-8")


class Response:
    """
    Outbound response slots.

    Attributes:
        status: Status code slot (defaults to 200)
        content: Content slot (None until a result writes it)
        headers: Extra headers (lower-cased names)
    """

    def __init__(self, status: int = HttpStatus.OK):
        self.status = status
        self.content: Optional[StringContent] = None
        self.headers: Dict[str, str] = {}

    def set_content(self, content: StringContent) -> None:
        self.content = content

    def set_header(self, name: str, value: str) -> None:
        self.headers[name.lower()] = value

    def _prepare_headers(self, body: bytes) -> List[Tuple[bytes, bytes]]:
        headers = dict(self.headers)
        if self.content is not None:
            headers.setdefault("content-type", self.content.content_type)
        headers["content-length"] = str(len(body))
        return [
            (name.encode("latin-1"), value.encode("latin-1"))
            for name, value in headers.items()
        ]

    async def send_asgi(self, send: Callable[[dict], Awaitable[None]]) -> None:
        """Send status, headers and the materialized body via ASGI."""
        body = self.content.encode() if self.content is not None else b""
        await send({
            "type": "http.response.start",
            "status": self.status,
            "headers": self._prepare_headers(body),
        })
        await send({
            "type": "http.response.body",
            "body": body,
            "more_body": False,
        })

    def __repr__(self) -> str:
        return f"<Response {self.status} content={self.content!r}>"
