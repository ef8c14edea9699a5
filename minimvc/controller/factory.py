"""
Controller Factory

Builds one controller instance per dispatch, resolving constructor
parameters from the request scope.
"""

from typing import Any, Dict, List, Tuple, Type, Union, get_args, get_origin, get_type_hints
import inspect
import types

from ..di import Container, DIError
from ..faults import ControllerConstructionFault

# (name, type, has_default, default)
CtorParam = Tuple[str, Any, bool, Any]


class ControllerFactory:
    """
    Factory for creating controller instances.

    Every constructor parameter is resolved by type from the scope. A
    parameter with a default (or an ``Optional`` annotation) tolerates a
    missing registration; anything else missing is a construction fault.
    """

    # Class-level cache for constructor analysis
    _ctor_info_cache: Dict[Type, List[CtorParam]] = {}

    async def create(self, controller_class: Type, scope: Container) -> Any:
        """
        Create a controller instance.

        Raises:
            ControllerConstructionFault: If a dependency cannot be resolved
                or the constructor raises
        """
        ctor_info = ControllerFactory._ctor_info_cache.get(controller_class)
        if ctor_info is None:
            ctor_info = self._analyze_constructor(controller_class)
            ControllerFactory._ctor_info_cache[controller_class] = ctor_info

        try:
            params = {}
            for param_name, param_type, has_default, default_val in ctor_info:
                token, optional = _unwrap_optional(param_type)
                resolved = await scope.resolve_async(token, optional=optional or has_default)
                if resolved is None:
                    if has_default:
                        params[param_name] = default_val
                        continue
                    if not optional:
                        raise DIError(f"Nothing registered for '{param_name}'")
                params[param_name] = resolved

            return controller_class(**params)
        except ControllerConstructionFault:
            raise
        except Exception as exc:
            raise ControllerConstructionFault(controller_class.__name__, str(exc)) from exc

    @staticmethod
    def _analyze_constructor(controller_class: Type) -> List[CtorParam]:
        """Analyze the constructor once: (name, type, has_default, default) per parameter."""
        if controller_class.__init__ is object.__init__:
            return []

        sig = inspect.signature(controller_class.__init__)
        try:
            type_hints = get_type_hints(controller_class.__init__)
        except NameError:
            type_hints = {}

        _EMPTY = inspect.Parameter.empty
        result = []

        for param_name, param in sig.parameters.items():
            if param_name == "self":
                continue
            if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                continue

            param_type = type_hints.get(param_name, param.annotation)
            has_default = param.default is not _EMPTY
            if param_type is _EMPTY:
                if not has_default:
                    raise ControllerConstructionFault(
                        controller_class.__name__,
                        f"constructor parameter '{param_name}' has no type annotation",
                    )
                # Nothing to resolve, the default applies
                continue

            default_val = param.default if has_default else None
            result.append((param_name, param_type, has_default, default_val))

        return result


def _unwrap_optional(param_type: Any) -> Tuple[Any, bool]:
    origin = get_origin(param_type)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(param_type) if a is not type(None)]
        if len(args) == 1:
            return args[0], True
    return param_type, False
