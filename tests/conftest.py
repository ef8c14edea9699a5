"""
Shared test fixtures and helpers for the MiniMVC test suite.
"""

import json
from typing import Any, List, Optional

import pytest

from minimvc.context import AppContext
from minimvc.di import Container
from minimvc.request import Request


# ============================================================================
# Request Helpers
# ============================================================================


def make_scope(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
) -> dict:
    """Build a minimal ASGI HTTP scope."""
    raw_headers = []
    if headers:
        for name, value in headers:
            raw_headers.append(
                (name.encode("latin-1") if isinstance(name, str) else name,
                 value.encode("latin-1") if isinstance(value, str) else value)
            )
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": query_string.encode("utf-8") if isinstance(query_string, str) else query_string,
        "headers": raw_headers,
        "scheme": "http",
        "server": ("127.0.0.1", 8000),
        "client": ("127.0.0.1", 12345),
        "root_path": "",
    }


def make_receive(body: bytes = b"", *, chunks: Optional[List[bytes]] = None):
    """Create an ASGI receive callable from body bytes or chunked list."""
    if chunks:
        messages = []
        for i, chunk in enumerate(chunks):
            messages.append({
                "type": "http.request",
                "body": chunk,
                "more_body": i < len(chunks) - 1,
            })
    else:
        messages = [{"type": "http.request", "body": body, "more_body": False}]

    idx = 0

    async def receive():
        nonlocal idx
        if idx < len(messages):
            msg = messages[idx]
            idx += 1
            return msg
        return {"type": "http.disconnect"}

    return receive


def make_request(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
    body: bytes = b"",
    **kwargs,
) -> Request:
    """Build a full Request object for testing."""
    scope = make_scope(method=method, path=path, query_string=query_string, headers=headers)
    return Request(scope, make_receive(body), **kwargs)


def make_context(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
    body: bytes = b"",
    json_body: Any = None,
    form: Optional[str] = None,
    **kwargs,
) -> AppContext:
    """
    Build an AppContext.

    ``json_body`` is encoded and sent as application/json; ``form`` is sent
    as an urlencoded body.
    """
    headers = list(headers or [])
    if json_body is not None:
        body = json.dumps(json_body).encode("utf-8")
        headers.append(("content-type", "application/json"))
    elif form is not None:
        body = form.encode("utf-8")
        headers.append(("content-type", "application/x-www-form-urlencoded"))
    return AppContext(make_request(method, path, query_string, headers, body, **kwargs))


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def container() -> Container:
    return Container(scope="app")


@pytest.fixture
def request_scope(container: Container) -> Container:
    return container.create_request_scope()
