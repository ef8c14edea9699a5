"""
Scope definitions.
"""

from enum import Enum


class ServiceScope(str, Enum):
    """Service lifetime scopes."""

    SINGLETON = "singleton"  # One instance per process-wide container
    REQUEST = "request"      # One instance per dispatch
    TRANSIENT = "transient"  # New instance every resolve


# Scopes whose instances are cached by the container that owns them
CACHEABLE_SCOPES = frozenset((ServiceScope.SINGLETON.value, ServiceScope.REQUEST.value))


def normalize_scope(scope: "str | ServiceScope") -> str:
    """Accept enum members or plain strings; ``app`` is an alias of singleton."""
    value = scope.value if isinstance(scope, ServiceScope) else str(scope)
    if value == "app":
        return ServiceScope.SINGLETON.value
    if value not in {s.value for s in ServiceScope}:
        raise ValueError(f"Unknown service scope: {scope!r}")
    return value
