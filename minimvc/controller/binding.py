"""
Parameter binding - supplies each action parameter a value.

For every parameter the binder walks a fixed chain and stops at the first
step that produces a value:

1. Body-only parameters: the request body, parsed as JSON into the type.
2. Otherwise the first raw string found under the parameter name in the
   enabled sources (query, then header, then form).
3. A found string is used verbatim for ``str``; other types go through
   the coercion registry.
4. The request scope, for class-typed parameters.
5. The declared default, or None for nullable parameters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Tuple

from ..cancellation import CancellationToken
from ..context import AppContext
from ..di import Container
from ..request import Request, RequestFault
from .coercion import CoercionRegistry, default_registry
from .metadata import ParameterDescriptor
from .sources import ParameterSources

logger = logging.getLogger("minimvc.controller.binding")

DEFAULT_FORM_METHODS: Tuple[str, ...] = ("POST", "PUT", "PATCH", "DELETE")


@dataclass(frozen=True)
class BindingOutcome:
    """Either ``created(value)`` (value may be None) or ``failed()``."""

    success: bool
    value: Any = None

    @classmethod
    def created(cls, value: Any) -> "BindingOutcome":
        return cls(True, value)

    @classmethod
    def failed(cls) -> "BindingOutcome":
        return _FAILED


_FAILED = BindingOutcome(False)


class ParameterBinder:
    """
    Binds action parameters from a request.

    Args:
        registry: Coercion strategies for string and JSON values
        form_methods: HTTP methods whose requests may carry a form body
    """

    def __init__(
        self,
        registry: Optional[CoercionRegistry] = None,
        form_methods: Iterable[str] = DEFAULT_FORM_METHODS,
    ):
        self.registry = registry or default_registry
        self.form_methods = frozenset(m.upper() for m in form_methods)

    async def bind(
        self,
        parameter: ParameterDescriptor,
        context: AppContext,
        scope: Container,
        cancellation: Optional[CancellationToken] = None,
    ) -> BindingOutcome:
        """
        Produce a value for ``parameter``.

        Classification and coercion problems come back as ``failed()``.
        Cancellation and dependency-resolution errors propagate.
        """
        token = cancellation or CancellationToken.none()
        token.raise_if_cancelled()

        sources = parameter.sources
        if sources is None:
            logger.error(
                "Parameter '%s' cannot be bound: its source annotations conflict",
                parameter.name,
            )
            return BindingOutcome.failed()

        request = context.request
        target = parameter.target_type

        if sources == ParameterSources.BODY:
            return await self._bind_body(parameter, request, token)

        raw = await self._find_raw_value(parameter.name, sources, request, token)
        if raw is not None:
            if target is str or target is Any or target is object:
                return BindingOutcome.created(raw)

            parsed = self.registry.try_parse(target, raw)
            if parsed is not None:
                if parsed.success:
                    return BindingOutcome.created(parsed.value)
                logger.debug(
                    "Parameter '%s': %r is not a valid %s, trying services and defaults",
                    parameter.name,
                    raw,
                    _type_name(target),
                )
            else:
                converter = self.registry.find_converter(target)
                if converter is not None:
                    try:
                        return BindingOutcome.created(converter(raw))
                    except (ValueError, TypeError) as exc:
                        logger.warning(
                            "Parameter '%s': cannot convert %r to %s: %s",
                            parameter.name,
                            raw,
                            _type_name(target),
                            exc,
                        )
                        return BindingOutcome.failed()

        if isinstance(target, type):
            service = await scope.resolve_async(target, optional=True)
            if service is not None:
                return BindingOutcome.created(service)

        if parameter.has_default:
            return BindingOutcome.created(parameter.default)
        if parameter.nullable:
            return BindingOutcome.created(None)

        if raw is not None:
            logger.warning(
                "Parameter '%s': %r could not be coerced to %s",
                parameter.name,
                raw,
                _type_name(target),
            )
        else:
            logger.warning(
                "Parameter '%s' (%s) was not found in %s and no service, default or null applies",
                parameter.name,
                _type_name(target),
                sources,
            )
        return BindingOutcome.failed()

    async def _bind_body(
        self,
        parameter: ParameterDescriptor,
        request: Request,
        token: CancellationToken,
    ) -> BindingOutcome:
        try:
            data = await request.json(token)
            if data is None and parameter.nullable:
                return BindingOutcome.created(None)
            value = self.registry.from_json(parameter.target_type, data)
        except RequestFault as exc:
            logger.warning("Parameter '%s': cannot read request body: %s", parameter.name, exc)
            return BindingOutcome.failed()
        except (ValueError, TypeError) as exc:
            logger.warning(
                "Parameter '%s': cannot deserialize body into %s: %s",
                parameter.name,
                _type_name(parameter.target_type),
                exc,
            )
            return BindingOutcome.failed()
        return BindingOutcome.created(value)

    async def _find_raw_value(
        self,
        name: str,
        sources: ParameterSources,
        request: Request,
        token: CancellationToken,
    ) -> Optional[str]:
        """First value for ``name`` in the enabled sources, in priority order."""
        found = False
        value: Optional[str] = None

        if sources & ParameterSources.QUERY:
            found, value = request.query_params.find_first(name)

        if not found and sources & ParameterSources.HEADER:
            found, value = request.headers.find_first(name)

        if not found and sources & ParameterSources.FORM and self._can_read_form(request):
            form = await request.read_form(token)
            found, value = form.find_first(name)

        return value if found else None

    def _can_read_form(self, request: Request) -> bool:
        return request.method in self.form_methods and request.has_form_content_type()


def _type_name(target: Any) -> str:
    return getattr(target, "__name__", repr(target))
