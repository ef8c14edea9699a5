"""
Core DI types and protocols.

Defines the container that backs both the process-wide registry and the
per-dispatch request scope.
"""

from typing import (
    Any,
    Callable,
    Coroutine,
    Type,
    Optional,
    Protocol,
    Dict,
    List,
    TypeVar,
    runtime_checkable,
)
from dataclasses import dataclass, field
import inspect
import logging

from .scopes import CACHEABLE_SCOPES, ServiceScope

logger = logging.getLogger("minimvc.di")

# Module-level cache: type -> "module.qualname" string
_type_key_cache: Dict[type, str] = {}

T = TypeVar("T")


def token_to_key(token: Any) -> str:
    """Convert type or string to a stable registry key."""
    if isinstance(token, str):
        return token
    if isinstance(token, type):
        key = _type_key_cache.get(token)
        if key is None:
            key = f"{token.__module__}.{token.__qualname__}"
            _type_key_cache[token] = key
        return key
    # typing generics and other annotation objects
    return str(token)


@dataclass(frozen=True, slots=True)
class ProviderMeta:
    """Compact provider metadata."""
    name: str
    token: str  # Type name or string key
    scope: str  # "singleton", "request", "transient"
    tags: tuple[str, ...] = field(default_factory=tuple)
    module: str = ""
    qualname: str = ""


class ResolveCtx:
    """
    Context for resolution operations.

    Tracks the resolution stack for cycle detection and diagnostics.
    """
    __slots__ = ("container", "stack")

    def __init__(self, container: "Container", stack: Optional[List[str]] = None):
        self.container = container
        self.stack: List[str] = stack if stack is not None else []

    def push(self, token: str) -> None:
        self.stack.append(token)

    def pop(self) -> None:
        self.stack.pop()

    def in_cycle(self, token: str) -> bool:
        return token in self.stack

    async def resolve(self, token: Any, *, tag: Optional[str] = None, optional: bool = False) -> Any:
        """Resolve a nested dependency, keeping the current stack."""
        return await self.container._resolve(token, tag, optional, self.stack)


@runtime_checkable
class Provider(Protocol):
    """
    Provider protocol - how to instantiate a dependency.
    """

    @property
    def meta(self) -> ProviderMeta:
        ...

    async def instantiate(self, ctx: ResolveCtx) -> Any:
        ...


class Container:
    """
    DI Container - manages provider instances and scopes.

    The root ("app") container holds the process-wide registrations and
    caches singletons. ``create_request_scope()`` layers a request container
    over it: the child owns its own (initially empty) provider overlay and
    instance cache, and looks up everything else in the parent. The parent
    is never mutated by the child.
    """

    __slots__ = (
        "_providers",
        "_cache",
        "_scope",
        "_parent",
        "_finalizers",
        "_frozen",
    )

    def __init__(
        self,
        scope: str = "app",
        parent: Optional["Container"] = None,
    ):
        self._providers: Dict[str, Any] = {}  # {cache_key: provider}
        self._cache: Dict[str, Any] = {}  # {cache_key: instance}
        self._scope = scope
        self._parent = parent
        self._finalizers: List[Callable[[], Coroutine]] = []  # LIFO cleanup
        self._frozen = False

    @property
    def scope(self) -> str:
        return self._scope

    @property
    def parent(self) -> Optional["Container"]:
        return self._parent

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Make the registration set read-only."""
        self._frozen = True

    def register(self, provider: Any, tag: Optional[str] = None) -> None:
        """
        Register a provider.

        Args:
            provider: Provider instance
            tag: Optional tag for disambiguation

        Raises:
            ContainerFrozenError: If the container has been frozen
            ValueError: If a different provider is already registered for the key
        """
        meta = provider.meta
        key = self._make_cache_key(meta.token, tag)

        if self._frozen:
            from .errors import ContainerFrozenError
            raise ContainerFrozenError(key)

        if key in self._providers:
            existing = self._providers[key]
            if existing is provider:
                return
            raise ValueError(
                f"Provider for {meta.token} (tag={tag}) already registered: {existing.meta.name}"
            )

        self._providers[key] = provider
        logger.debug("Registered %s (%s) as %s", meta.name, meta.scope, key)

    def bind(self, interface: Type, implementation: Type, scope: str = "singleton", tag: Optional[str] = None) -> None:
        """
        Bind an interface to an implementation class.

        Example:
            container.bind(UserRepository, SqlUserRepository)
        """
        from .providers import ClassProvider
        provider = ClassProvider(implementation, scope=scope, token=interface)
        self.register(provider, tag=tag)

    async def register_instance(
        self,
        token: Type[T] | str,
        instance: T,
        scope: str = "request",
        tag: Optional[str] = None,
    ) -> None:
        """
        Register a pre-instantiated object as a provider.

        Used to place the current request context into a request scope.
        """
        from .providers import ValueProvider

        provider = ValueProvider(
            token=token,
            value=instance,
            scope=scope,
            name=f"{token.__name__ if hasattr(token, '__name__') else token}_instance",
        )
        self.register(provider, tag=tag)

    async def resolve_async(
        self,
        token: Type[T] | str,
        *,
        tag: Optional[str] = None,
        optional: bool = False,
    ) -> T:
        """
        Resolve a dependency.

        Args:
            token: Type or string key
            tag: Optional tag for disambiguation
            optional: If True, return None if not found instead of raising

        Raises:
            ProviderNotFoundError: If provider not found and not optional
        """
        return await self._resolve(token, tag, optional, [])

    async def _resolve(self, token: Any, tag: Optional[str], optional: bool, stack: List[str]) -> Any:
        token_key = token_to_key(token)
        cache_key = self._make_cache_key(token_key, tag)

        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        provider = self._lookup_provider(token_key, tag)
        if provider is None:
            if optional:
                return None
            self._raise_not_found(token_key, tag)

        scope = provider.meta.scope

        # Singletons live in the root container
        if (
            self._parent is not None
            and scope == ServiceScope.SINGLETON.value
            and cache_key not in self._providers
        ):
            return await self._parent._resolve(token, tag, optional, stack)

        if scope == ServiceScope.REQUEST.value and self._scope != "request":
            from .errors import ScopeViolationError
            raise ScopeViolationError(cache_key, scope, self._scope)

        ctx = ResolveCtx(container=self, stack=stack)
        if ctx.in_cycle(cache_key):
            from .errors import DependencyCycleError
            raise DependencyCycleError(ctx.stack + [cache_key])

        ctx.push(cache_key)
        try:
            instance = await provider.instantiate(ctx)
        finally:
            ctx.pop()

        if scope in CACHEABLE_SCOPES:
            self._cache[cache_key] = instance
            self._register_finalizer(instance)
        elif self._scope == "request":
            # Transient disposables created during a dispatch die with it
            self._register_finalizer(instance)

        return instance

    def is_registered(self, token: Type[T] | str, tag: Optional[str] = None) -> bool:
        """Check if a provider is registered for the token."""
        return self._lookup_provider(token_to_key(token), tag) is not None

    def create_request_scope(self) -> "Container":
        """
        Create a request-scoped child container.

        The child starts with an empty provider overlay and cache; lookups
        fall through to this container. Nothing is copied.
        """
        return Container(scope="request", parent=self)

    async def shutdown(self) -> None:
        """
        Shutdown container - run finalizers in LIFO order.

        Finalizer errors are logged and do not stop the remaining finalizers.
        """
        if not self._finalizers and not self._cache:
            return

        for finalizer in reversed(self._finalizers):
            try:
                result = finalizer()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.error("Error during %s-scope finalizer", self._scope, exc_info=True)

        self._finalizers.clear()
        self._cache.clear()

    async def __aenter__(self) -> "Container":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()

    def _make_cache_key(self, token: str, tag: Optional[str]) -> str:
        if tag:
            return f"{token}#{tag}"
        return token

    def _lookup_provider(self, token: str, tag: Optional[str]) -> Optional[Any]:
        """Lookup provider in current container, then parent."""
        key = self._make_cache_key(token, tag)
        if key in self._providers:
            return self._providers[key]
        if self._parent is not None:
            return self._parent._lookup_provider(token, tag)
        return None

    def _register_finalizer(self, instance: Any) -> None:
        if instance is None or isinstance(instance, Container):
            return
        if hasattr(instance, "__aexit__"):
            self._finalizers.append(lambda: instance.__aexit__(None, None, None))
        elif callable(getattr(instance, "shutdown", None)):
            self._finalizers.append(instance.shutdown)

    def _raise_not_found(self, token: str, tag: Optional[str]) -> None:
        from .errors import ProviderNotFoundError

        candidates = []
        container: Optional[Container] = self
        while container is not None:
            candidates.extend(key for key in container._providers if token in key)
            container = container._parent

        raise ProviderNotFoundError(token=token, tag=tag, candidates=candidates)
