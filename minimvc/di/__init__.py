"""
Dependency injection: process-wide container plus per-dispatch request scopes.
"""

from .core import Container, Provider, ProviderMeta, ResolveCtx, token_to_key
from .errors import (
    ContainerFrozenError,
    DependencyCycleError,
    DIError,
    ProviderNotFoundError,
    ScopeViolationError,
)
from .providers import ClassProvider, FactoryProvider, ValueProvider
from .scopes import ServiceScope, normalize_scope

__all__ = [
    "Container",
    "Provider",
    "ProviderMeta",
    "ResolveCtx",
    "token_to_key",
    "ClassProvider",
    "FactoryProvider",
    "ValueProvider",
    "ServiceScope",
    "normalize_scope",
    "DIError",
    "ProviderNotFoundError",
    "ScopeViolationError",
    "ContainerFrozenError",
    "DependencyCycleError",
]
