"""
Faults - Domain-specific fault types.

Provides concrete fault classes for the domains the dispatch core touches:
- DI faults (controller construction)
- ROUTING faults (action registration)
- IO faults (cancellation)
"""

from typing import Any, Optional

from .core import Fault, FaultDomain, Severity


# ============================================================================
# DI Faults
# ============================================================================

class DIFault(Fault):
    """Base class for dependency injection faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.DI,
            severity=severity,
            retryable=False,
            public=False,
            metadata=metadata,
        )


class ControllerConstructionFault(DIFault):
    """Controller could not be instantiated through the request scope."""

    def __init__(self, controller: str, reason: str, **kwargs):
        super().__init__(
            code="CONTROLLER_CONSTRUCTION_FAILED",
            message=f"Error instantiating controller '{controller}': {reason}",
            metadata={"controller": controller, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# ROUTING Faults
# ============================================================================

class RoutingFault(Fault):
    """Base class for action resolution faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.ROUTING,
            severity=severity,
            retryable=False,
            public=False,
            metadata=metadata,
        )


class ActionNotFoundFault(RoutingFault):
    """An action names a method its controller does not define."""

    def __init__(self, controller: str, action: str, **kwargs):
        super().__init__(
            code="ACTION_NOT_FOUND",
            message=f"Controller '{controller}' has no action method '{action}'",
            severity=Severity.FATAL,
            metadata={"controller": controller, "action": action, **kwargs.get("metadata", {})},
        )


# ============================================================================
# IO Faults
# ============================================================================

class RequestCancelledFault(Fault):
    """The dispatch was cancelled at a suspension point."""

    def __init__(self, reason: str = "cancelled", **kwargs):
        super().__init__(
            code="REQUEST_CANCELLED",
            message=f"Request cancelled: {reason}",
            domain=FaultDomain.IO,
            severity=Severity.WARN,
            retryable=False,
            public=True,
            metadata={"reason": reason, **kwargs.get("metadata", {})},
        )
