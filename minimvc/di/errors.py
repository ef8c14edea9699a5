"""
DI-specific error types with rich diagnostics.
"""

from typing import List, Optional


class DIError(Exception):
    """Base exception for DI errors."""
    pass


class ProviderNotFoundError(DIError):
    """Provider not found for requested token."""

    def __init__(
        self,
        token: str,
        tag: Optional[str] = None,
        candidates: Optional[List[str]] = None,
    ):
        self.token = token
        self.tag = tag
        self.candidates = candidates or []

        msg = f"No provider found for token={token}"
        if tag:
            msg += f" (tag={tag})"

        if self.candidates:
            msg += "\n\nCandidates found:"
            for candidate in self.candidates:
                msg += f"\n  - {candidate}"

        super().__init__(msg)


class ScopeViolationError(DIError):
    """A request-scoped provider was resolved outside a request scope."""

    def __init__(self, provider_token: str, provider_scope: str, container_scope: str):
        self.provider_token = provider_token
        self.provider_scope = provider_scope
        self.container_scope = container_scope

        super().__init__(
            f"Scope violation: {provider_scope}-scoped provider '{provider_token}' "
            f"resolved from a {container_scope} container. "
            f"Resolve it through create_request_scope() instead."
        )


class ContainerFrozenError(DIError):
    """Registration attempted on a frozen process-wide container."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(
            f"Cannot register '{token}': the container is frozen. "
            f"Process-wide registrations must happen before the first dispatch."
        )


class DependencyCycleError(DIError):
    """Circular dependency detected during resolution."""

    def __init__(self, cycle: List[str]):
        self.cycle = cycle
        super().__init__("Detected dependency cycle: " + " -> ".join(cycle))
