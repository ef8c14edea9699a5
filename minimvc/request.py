"""
Request - ASGI request wrapper consumed by the dispatch core.

Provides:
- Method, path, query parameters and headers (case-insensitive lookups)
- Idempotent, size-limited body reading with cooperative cancellation
- Text, JSON and urlencoded form readers
"""

from __future__ import annotations

import json as stdlib_json
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional
from urllib.parse import parse_qsl

from ._datastructures import Headers, MultiDict, ParsedContentType
from .cancellation import CancellationToken
from .faults import Fault, FaultDomain, Severity


FORM_URLENCODED = "application/x-www-form-urlencoded"


# ============================================================================
# Request Faults
# ============================================================================

class RequestFault(Fault):
    """Base class for request-related faults."""
    domain = FaultDomain.IO
    severity = Severity.ERROR


class PayloadTooLarge(RequestFault):
    """Request body exceeds configured limit."""
    code = "PAYLOAD_TOO_LARGE"

    def __init__(self, message: str = None, **metadata):
        super().__init__(
            message=message or "Request payload too large",
            metadata=metadata,
        )


class UnsupportedMediaType(RequestFault):
    """Request body has a content type the reader cannot handle."""
    code = "UNSUPPORTED_MEDIA_TYPE"

    def __init__(self, message: str = None, **metadata):
        super().__init__(
            message=message or "Unsupported media type",
            metadata=metadata,
        )


class InvalidJSON(RequestFault):
    """Request body is not valid JSON."""
    code = "INVALID_JSON"

    def __init__(self, message: str = None, **metadata):
        super().__init__(
            message=message or "Invalid JSON",
            metadata=metadata,
        )


# ============================================================================
# Request
# ============================================================================

class Request:
    """
    Request object for the dispatch core.

    The request is owned by the transport; the core reads from it and never
    mutates it. Reads that suspend (body, text, JSON, form) accept a
    CancellationToken.
    """

    def __init__(
        self,
        scope: Mapping[str, Any],
        receive: Callable[..., Awaitable[dict]],
        *,
        max_body_size: int = 10_485_760,  # 10 MiB
        json_max_depth: int = 64,
    ):
        self.scope = scope
        self._receive = receive

        self.max_body_size = max_body_size
        self.json_max_depth = json_max_depth

        self.state: Dict[str, Any] = {}

        self._body: Optional[bytes] = None
        self._json: Any = None
        self._json_loaded = False
        self._form: Optional[MultiDict] = None
        self._query_params: Optional[MultiDict] = None
        self._headers: Optional[Headers] = None

    # ========================================================================
    # Basic Properties
    # ========================================================================

    @property
    def method(self) -> str:
        """HTTP method (GET, POST, etc.)."""
        return self.scope.get("method", "GET").upper()

    @property
    def path(self) -> str:
        return self.scope.get("path", "/")

    @property
    def query_string(self) -> str:
        return self.scope.get("query_string", b"").decode("utf-8")

    @property
    def query_params(self) -> MultiDict:
        """Parsed query parameters, in order of appearance."""
        if self._query_params is None:
            query_string = self.query_string
            if query_string:
                self._query_params = MultiDict(parse_qsl(query_string, keep_blank_values=True))
            else:
                self._query_params = MultiDict()
        return self._query_params

    @property
    def headers(self) -> Headers:
        if self._headers is None:
            self._headers = Headers(raw=list(self.scope.get("headers", [])))
        return self._headers

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get single header (case-insensitive)."""
        return self.headers.get(name, default)

    def content_type(self) -> Optional[str]:
        return self.headers.get("content-type")

    def has_form_content_type(self) -> bool:
        parsed = ParsedContentType.parse(self.content_type())
        return parsed is not None and parsed.media_type == FORM_URLENCODED

    # ========================================================================
    # Body
    # ========================================================================

    async def body(self, cancellation: Optional[CancellationToken] = None) -> bytes:
        """
        Read full request body (idempotent).

        Raises:
            PayloadTooLarge: If body exceeds max_body_size
            RequestCancelledFault: If the token fires while reading
        """
        if self._body is not None:
            return self._body

        token = cancellation or CancellationToken.none()
        chunks = []
        total = 0
        more_body = True

        while more_body:
            message = await token.guard(self._receive())
            if message.get("type") == "http.disconnect":
                token.cancel("client disconnected")
                token.raise_if_cancelled()

            chunk = message.get("body", b"")
            total += len(chunk)
            if total > self.max_body_size:
                raise PayloadTooLarge(
                    "Request body exceeds maximum size",
                    max_allowed=self.max_body_size,
                )
            if chunk:
                chunks.append(chunk)
            more_body = message.get("more_body", False)

        self._body = b"".join(chunks)
        return self._body

    async def read_text(self, cancellation: Optional[CancellationToken] = None) -> str:
        """Read the whole body as text, decoded with the Content-Type charset."""
        body_bytes = await self.body(cancellation)
        parsed = ParsedContentType.parse(self.content_type())
        encoding = parsed.charset if parsed else "utf-8"
        return body_bytes.decode(encoding)

    async def json(self, cancellation: Optional[CancellationToken] = None) -> Any:
        """
        Parse request body as JSON.

        Raises:
            InvalidJSON: If JSON is malformed or nested too deeply
        """
        if self._json_loaded:
            return self._json

        try:
            text = await self.read_text(cancellation)
        except UnicodeDecodeError as e:
            raise InvalidJSON(f"Invalid text encoding in JSON payload: {e}")
        except LookupError as e:
            raise InvalidJSON(f"Unknown charset in JSON payload: {e}")

        try:
            data = stdlib_json.loads(text)
        except stdlib_json.JSONDecodeError as e:
            raise InvalidJSON(f"Invalid JSON: {e}")

        if not self._check_json_depth(data, self.json_max_depth):
            raise InvalidJSON(
                "JSON nesting exceeds maximum depth",
                max_depth=self.json_max_depth,
            )

        self._json = data
        self._json_loaded = True
        return data

    def _check_json_depth(self, obj: Any, max_depth: int, current_depth: int = 0) -> bool:
        if current_depth > max_depth:
            return False
        if isinstance(obj, dict):
            return all(self._check_json_depth(v, max_depth, current_depth + 1) for v in obj.values())
        if isinstance(obj, list):
            return all(self._check_json_depth(v, max_depth, current_depth + 1) for v in obj)
        return True

    async def read_form(self, cancellation: Optional[CancellationToken] = None) -> MultiDict:
        """
        Parse application/x-www-form-urlencoded form data.

        Raises:
            UnsupportedMediaType: If Content-Type is not form-urlencoded
        """
        if self._form is not None:
            return self._form

        parsed = ParsedContentType.parse(self.content_type())
        if parsed is None or parsed.media_type != FORM_URLENCODED:
            raise UnsupportedMediaType(
                f"Expected {FORM_URLENCODED}, got {self.content_type()}"
            )

        body_bytes = await self.body(cancellation)
        items = parse_qsl(body_bytes.decode(parsed.charset), keep_blank_values=True)
        self._form = MultiDict(items)
        return self._form

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.path}>"
