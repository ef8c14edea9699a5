"""
Parameter source markers and the source classifier.

Actions declare where a parameter may come from with ``typing.Annotated``::

    async def search(self, q: Annotated[str, FromQuery()], page: int = 1): ...

Unmarked parameters may come from any non-body source.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

logger = logging.getLogger("minimvc.controller.sources")


class ParameterSources(enum.IntFlag):
    """Bitset of the places a parameter value may be read from."""

    NONE = 0
    QUERY = 1
    HEADER = 2
    FORM = 4
    BODY = 8
    ANY = QUERY | HEADER | FORM


@dataclass(frozen=True)
class SourceMarker:
    """Base for the ``From*`` annotations."""

    source = ParameterSources.NONE

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


@dataclass(frozen=True, repr=False)
class FromQuery(SourceMarker):
    source = ParameterSources.QUERY


@dataclass(frozen=True, repr=False)
class FromHeader(SourceMarker):
    source = ParameterSources.HEADER


@dataclass(frozen=True, repr=False)
class FromForm(SourceMarker):
    source = ParameterSources.FORM


@dataclass(frozen=True, repr=False)
class FromBody(SourceMarker):
    """The whole request body, deserialized from JSON. Excludes every other source."""

    source = ParameterSources.BODY


def as_marker(obj: Any) -> Optional[SourceMarker]:
    """Accept both ``FromQuery()`` and the bare ``FromQuery`` class."""
    if isinstance(obj, SourceMarker):
        return obj
    if isinstance(obj, type) and issubclass(obj, SourceMarker) and obj is not SourceMarker:
        return obj()
    return None


def classify_sources(parameter_name: str, markers: Iterable[Any]) -> Optional[ParameterSources]:
    """
    Fold a parameter's source markers into a ``ParameterSources`` set.

    Markers are scanned in declaration order. Body cannot be added once any
    other source is set, and no other source can be added once Body is set.
    A parameter without markers resolves to ``ANY``.

    Returns:
        The source set, or None when the markers conflict. The conflict is
        logged with the parameter name and the offending pair.
    """
    sources = ParameterSources.NONE
    first: Optional[SourceMarker] = None

    for item in markers:
        marker = as_marker(item)
        if marker is None:
            continue

        if marker.source is ParameterSources.BODY:
            if sources:
                _log_conflict(parameter_name, first, marker)
                return None
        elif sources & ParameterSources.BODY:
            _log_conflict(parameter_name, first, marker)
            return None

        if first is None:
            first = marker
        sources |= marker.source

    if not sources:
        return ParameterSources.ANY
    return sources


def _log_conflict(parameter_name: str, existing: Optional[SourceMarker], added: SourceMarker) -> None:
    logger.warning(
        "Parameter '%s' declares conflicting sources: %r cannot be combined with %r",
        parameter_name,
        existing,
        added,
    )
