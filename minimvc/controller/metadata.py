"""
Action metadata.

Describes controller actions once, when they are registered, so dispatch
never re-inspects signatures per request.
"""

from __future__ import annotations

import inspect
import types
from dataclasses import dataclass
from typing import Annotated, Any, Optional, Tuple, Type, Union, get_args, get_origin, get_type_hints

from ..faults import ActionNotFoundFault
from .sources import ParameterSources, as_marker, classify_sources


@dataclass(frozen=True)
class ParameterDescriptor:
    """
    One action parameter.

    Attributes:
        name: Parameter name (used as the lookup key in every source)
        type: Declared type, as written (``Optional[int]`` stays ``Optional[int]``)
        target_type: The type values are coerced to (the non-None member)
        has_default: Whether the signature declares a default
        default: The default value, if any
        nullable: Whether None is an acceptable fallback value
        markers: Source markers, in declaration order
        sources: Classified source set, or None when the markers conflict
    """

    name: str
    type: Any
    target_type: Any
    has_default: bool = False
    default: Any = None
    nullable: bool = False
    markers: Tuple[Any, ...] = ()
    sources: Optional[ParameterSources] = ParameterSources.ANY

    def __post_init__(self):
        if not self.name:
            raise ValueError("Parameter name must be a non-empty string")


@dataclass(frozen=True)
class MethodDescriptor:
    """Name, ordered parameters and return type of an action method."""

    name: str
    parameters: Tuple[ParameterDescriptor, ...] = ()
    return_type: Any = None
    is_async: bool = False


@dataclass(frozen=True)
class ActionDescriptor:
    """A controller type plus the method that handles the request."""

    controller_type: Type
    method: MethodDescriptor

    @property
    def name(self) -> str:
        return self.method.name

    @property
    def parameters(self) -> Tuple[ParameterDescriptor, ...]:
        return self.method.parameters

    def bind(self, controller: Any):
        """Return the action as a bound method of ``controller``."""
        return getattr(controller, self.method.name)

    def __str__(self) -> str:
        return f"{self.controller_type.__name__}.{self.method.name}"


def _split_optional(annotation: Any) -> Tuple[Any, bool]:
    """Return ``(inner, nullable)`` for ``Optional[T]`` / ``T | None``."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = get_args(annotation)
        if type(None) in args:
            rest = tuple(a for a in args if a is not type(None))
            if len(rest) == 1:
                return rest[0], True
            return Union[rest], True
    return annotation, False


def describe_parameter(param: inspect.Parameter, annotation: Any) -> ParameterDescriptor:
    """Build a ParameterDescriptor from a signature parameter and its resolved hint."""
    if annotation is inspect.Parameter.empty:
        # Unannotated parameters bind the raw string
        annotation = str

    markers: Tuple[Any, ...] = ()
    declared = annotation
    if get_origin(annotation) is Annotated:
        declared, *extras = get_args(annotation)
        markers = tuple(m for m in extras if as_marker(m) is not None)

    target, nullable = _split_optional(declared)
    # A parameter may also wrap its Annotated inside Optional
    if get_origin(target) is Annotated:
        target, *extras = get_args(target)
        markers = markers + tuple(m for m in extras if as_marker(m) is not None)

    has_default = param.default is not inspect.Parameter.empty
    default = param.default if has_default else None
    if has_default and default is None:
        nullable = True
    if target is Any or target is object:
        nullable = True

    return ParameterDescriptor(
        name=param.name,
        type=declared,
        target_type=target,
        has_default=has_default,
        default=default,
        nullable=nullable,
        markers=markers,
        sources=classify_sources(param.name, markers),
    )


def describe_action(controller_cls: Type, method_name: str) -> ActionDescriptor:
    """
    Describe ``controller_cls.method_name`` as an ActionDescriptor.

    Raises:
        ActionNotFoundFault: If the class has no such callable attribute
    """
    func = getattr(controller_cls, method_name, None)
    if func is None or not callable(func) or method_name.startswith("_"):
        raise ActionNotFoundFault(controller_cls.__name__, method_name)

    signature = inspect.signature(func)
    try:
        hints = get_type_hints(func, include_extras=True)
    except NameError:
        # Forward references that cannot be resolved: keep raw annotations
        hints = {}

    parameters = []
    for name, param in signature.parameters.items():
        if name in ("self", "cls"):
            continue
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        parameters.append(describe_parameter(param, hints.get(name, param.annotation)))

    method = MethodDescriptor(
        name=method_name,
        parameters=tuple(parameters),
        return_type=hints.get("return", signature.return_annotation),
        is_async=inspect.iscoroutinefunction(func),
    )
    return ActionDescriptor(controller_type=controller_cls, method=method)
