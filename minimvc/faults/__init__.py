"""
Faults - typed fault signals for the dispatch core.

Faults are exceptions that carry a stable code, a domain and a severity.
Everything that escapes an action dispatch is caught once at the MVC
middleware boundary and mapped to the configured fault status.
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    DIFault,
    ControllerConstructionFault,
    RoutingFault,
    ActionNotFoundFault,
    RequestCancelledFault,
)

__all__ = [
    "Fault",
    "FaultDomain",
    "Severity",
    "DIFault",
    "ControllerConstructionFault",
    "RoutingFault",
    "ActionNotFoundFault",
    "RequestCancelledFault",
]
