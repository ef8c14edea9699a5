"""
Provider implementations for different instantiation strategies.
"""

from typing import Any, Callable, Dict, Optional, Type, TypeVar, Union, get_args, get_origin
import inspect
import types

from .core import ProviderMeta, ResolveCtx, token_to_key
from .errors import DIError
from .scopes import normalize_scope


T = TypeVar("T")


def _parse_annotation(annotation: Any) -> Dict[str, Any]:
    """Turn a parameter annotation into a dependency token."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return {"token": args[0], "optional": True}
    return {"token": annotation}


def _extract_dependencies(func: Callable, owner: str) -> Dict[str, Dict[str, Any]]:
    deps: Dict[str, Dict[str, Any]] = {}

    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        # Builtins without an introspectable signature
        return deps

    try:
        type_hints = inspect.get_annotations(func, eval_str=True)
    except (NameError, TypeError):
        type_hints = {}

    for param_name, param in sig.parameters.items():
        if param_name in ("self", "cls"):
            continue
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue

        annotation = type_hints.get(param_name, param.annotation)
        has_default = param.default is not inspect.Parameter.empty

        if annotation is inspect.Parameter.empty:
            if has_default:
                continue
            raise DIError(
                f"Missing type annotation for parameter '{param_name}' in {owner}"
            )

        dep_info = _parse_annotation(annotation)
        dep_info["optional"] = dep_info.get("optional", False) or has_default
        deps[param_name] = dep_info

    return deps


async def _resolve_dependencies(
    ctx: ResolveCtx, dependencies: Dict[str, Dict[str, Any]]
) -> Dict[str, Any]:
    resolved = {}
    for dep_name, dep_info in dependencies.items():
        value = await ctx.resolve(
            dep_info["token"],
            tag=dep_info.get("tag"),
            optional=dep_info.get("optional", False),
        )
        # Leave the parameter default in place when an optional dep is missing
        if value is None and dep_info.get("optional"):
            continue
        resolved[dep_name] = value
    return resolved


class ClassProvider:
    """
    Provider that instantiates a class by resolving constructor dependencies.

    Supports async initialization via the ``async_init()`` convention.
    """

    __slots__ = ("_meta", "_cls", "_dependencies", "_has_async_init")

    def __init__(
        self,
        cls: Type[T],
        scope: str = "singleton",
        tags: tuple[str, ...] = (),
        token: Optional[Type | str] = None,
    ):
        self._cls = cls
        self._dependencies = (
            {} if cls.__init__ is object.__init__
            else _extract_dependencies(cls.__init__, f"{cls.__qualname__}.__init__")
        )
        self._has_async_init = hasattr(cls, "async_init")

        self._meta = ProviderMeta(
            name=cls.__name__,
            token=token_to_key(token if token is not None else cls),
            scope=normalize_scope(scope),
            tags=tags,
            module=cls.__module__,
            qualname=cls.__qualname__,
        )

    @property
    def meta(self) -> ProviderMeta:
        return self._meta

    async def instantiate(self, ctx: ResolveCtx) -> Any:
        """Instantiate class by resolving dependencies."""
        resolved_deps = await _resolve_dependencies(ctx, self._dependencies)
        instance = self._cls(**resolved_deps)

        if self._has_async_init:
            await instance.async_init()

        return instance


class FactoryProvider:
    """
    Provider that calls a factory function to produce instances.

    Supports both sync and async factories.
    """

    __slots__ = ("_meta", "_factory", "_is_async", "_dependencies")

    def __init__(
        self,
        factory: Callable,
        scope: str = "singleton",
        tags: tuple[str, ...] = (),
        token: Optional[Type | str] = None,
        name: Optional[str] = None,
    ):
        self._factory = factory
        self._is_async = inspect.iscoroutinefunction(factory)
        self._dependencies = _extract_dependencies(factory, factory.__qualname__)

        if token is None:
            # Fall back to the factory's declared return type
            hints = inspect.get_annotations(factory, eval_str=True)
            token = hints.get("return") or f"{factory.__module__}.{factory.__qualname__}"

        self._meta = ProviderMeta(
            name=name or factory.__name__,
            token=token_to_key(token),
            scope=normalize_scope(scope),
            tags=tags,
            module=factory.__module__,
            qualname=factory.__qualname__,
        )

    @property
    def meta(self) -> ProviderMeta:
        return self._meta

    async def instantiate(self, ctx: ResolveCtx) -> Any:
        """Call factory with resolved dependencies."""
        resolved_deps = await _resolve_dependencies(ctx, self._dependencies)
        if self._is_async:
            return await self._factory(**resolved_deps)
        return self._factory(**resolved_deps)


class ValueProvider:
    """Provider that returns a pre-bound constant value."""

    __slots__ = ("_meta", "_value")

    def __init__(
        self,
        value: Any,
        token: Type | str,
        name: Optional[str] = None,
        scope: str = "singleton",
        tags: tuple[str, ...] = (),
    ):
        self._value = value
        self._meta = ProviderMeta(
            name=name or "value",
            token=token_to_key(token),
            scope=normalize_scope(scope),
            tags=tags,
        )

    @property
    def meta(self) -> ProviderMeta:
        return self._meta

    async def instantiate(self, ctx: ResolveCtx) -> Any:
        """Return pre-bound value."""
        return self._value
