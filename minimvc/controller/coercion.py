"""
Coercion strategies - turning raw request strings and JSON payloads into
typed parameter values.

Two ordered strategy lists are kept:

* parse strategies follow the try-parse convention: ``parse(text)`` returns
  a ``ParseResult`` and never raises. A failed parse is not fatal; the
  binder moves on to dependency lookup and defaults.
* converter strategies are only consulted when no parse strategy matches.
  A converter rejects a string by raising ``ValueError`` or ``TypeError``,
  and that rejection fails the parameter.

New types are supported by registering a strategy instead of relying on
introspection at dispatch time.
"""

from __future__ import annotations

import dataclasses
import datetime
import decimal
import enum
import ipaddress
import re
import types
import uuid
from pathlib import PurePath
from typing import (
    Any,
    Callable,
    List,
    NamedTuple,
    Optional,
    Tuple,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)


class ParseResult(NamedTuple):
    """Outcome of a try-parse: ``(success, value)``."""

    success: bool
    value: Any = None

    @classmethod
    def ok(cls, value: Any) -> "ParseResult":
        return cls(True, value)

    @classmethod
    def fail(cls) -> "ParseResult":
        return cls(False, None)


Predicate = Callable[[Any], bool]
Parser = Callable[[str], ParseResult]
Converter = Callable[[str], Any]


def _subclass_of(target: Any, base: type) -> bool:
    return isinstance(target, type) and issubclass(target, base)


# ============================================================================
# Built-in parse strategies
# ============================================================================

_INT_RE = re.compile(r"^\s*[+-]?\d+\s*$")


def parse_bool(text: str) -> ParseResult:
    lowered = text.strip().lower()
    if lowered == "true":
        return ParseResult.ok(True)
    if lowered == "false":
        return ParseResult.ok(False)
    return ParseResult.fail()


def parse_int(text: str) -> ParseResult:
    if not _INT_RE.match(text):
        return ParseResult.fail()
    return ParseResult.ok(int(text))


def parse_float(text: str) -> ParseResult:
    try:
        return ParseResult.ok(float(text))
    except ValueError:
        return ParseResult.fail()


def parse_decimal(text: str) -> ParseResult:
    try:
        return ParseResult.ok(decimal.Decimal(text.strip()))
    except decimal.InvalidOperation:
        return ParseResult.fail()


def parse_uuid(text: str) -> ParseResult:
    try:
        return ParseResult.ok(uuid.UUID(text.strip()))
    except ValueError:
        return ParseResult.fail()


def _iso_parser(cls) -> Parser:
    def parse(text: str) -> ParseResult:
        try:
            return ParseResult.ok(cls.fromisoformat(text.strip()))
        except ValueError:
            return ParseResult.fail()
    parse.__name__ = f"parse_{cls.__name__}"
    return parse


def _has_try_parse(target: Any) -> bool:
    return isinstance(target, type) and callable(getattr(target, "try_parse", None))


def _convention_parser(target: type) -> Parser:
    def parse(text: str) -> ParseResult:
        success, value = target.try_parse(text)
        return ParseResult(bool(success), value if success else None)
    return parse


# ============================================================================
# Built-in converter strategies
# ============================================================================

def _enum_converter(target: type) -> Converter:
    def convert(text: str) -> Any:
        for member in target:
            if str(member.value) == text:
                return member
        folded = text.strip().casefold()
        for name, member in target.__members__.items():
            if name.casefold() == folded:
                return member
        raise ValueError(f"{text!r} is not a valid {target.__name__}")
    return convert


def _has_from_string(target: Any) -> bool:
    return isinstance(target, type) and callable(getattr(target, "from_string", None))


_IP_TYPES = (
    ipaddress.IPv4Address,
    ipaddress.IPv6Address,
    ipaddress.IPv4Network,
    ipaddress.IPv6Network,
)


class CoercionRegistry:
    """
    Ordered coercion strategies.

    Parse strategies are ``(predicate, factory)`` pairs where ``factory(target)``
    returns the parser for that type; converter strategies have the same
    shape. The first matching predicate wins.
    """

    def __init__(self):
        self._parsers: List[Tuple[Predicate, Callable[[Any], Parser]]] = []
        self._converters: List[Tuple[Predicate, Callable[[Any], Converter]]] = []

    @classmethod
    def with_defaults(cls) -> "CoercionRegistry":
        registry = cls()

        registry.add_parser(bool, parse_bool)
        registry.add_parser(int, parse_int)
        registry.add_parser(float, parse_float)
        registry.add_parser(decimal.Decimal, parse_decimal)
        registry.add_parser(uuid.UUID, parse_uuid)
        registry.add_parser(datetime.datetime, _iso_parser(datetime.datetime))
        registry.add_parser(datetime.date, _iso_parser(datetime.date))
        registry.add_parser(datetime.time, _iso_parser(datetime.time))
        registry.add_parser_strategy(_has_try_parse, _convention_parser)

        registry.add_converter_strategy(lambda t: _subclass_of(t, enum.Enum), _enum_converter)
        registry.add_converter_strategy(lambda t: _subclass_of(t, PurePath), lambda t: t)
        registry.add_converter_strategy(lambda t: t in _IP_TYPES, lambda t: t)
        registry.add_converter_strategy(_has_from_string, lambda t: t.from_string)
        return registry

    # ------------------------------------------------------------------ parsers

    def add_parser(self, target: type, parse: Parser, *, first: bool = False) -> None:
        """Register a parser for exactly ``target``."""
        self.add_parser_strategy(lambda t, _target=target: t is _target, lambda t: parse, first=first)

    def add_parser_strategy(
        self,
        predicate: Predicate,
        factory: Callable[[Any], Parser],
        *,
        first: bool = False,
    ) -> None:
        entry = (predicate, factory)
        if first:
            self._parsers.insert(0, entry)
        else:
            self._parsers.append(entry)

    def find_parser(self, target: Any) -> Optional[Parser]:
        for predicate, factory in self._parsers:
            if predicate(target):
                return factory(target)
        return None

    def try_parse(self, target: Any, text: str) -> Optional[ParseResult]:
        """Run the parse strategy for ``target``, or return None if there is none."""
        parser = self.find_parser(target)
        if parser is None:
            return None
        return parser(text)

    # --------------------------------------------------------------- converters

    def add_converter(self, target: type, convert: Converter, *, first: bool = False) -> None:
        """Register a converter for exactly ``target``."""
        self.add_converter_strategy(lambda t, _target=target: t is _target, lambda t: convert, first=first)

    def add_converter_strategy(
        self,
        predicate: Predicate,
        factory: Callable[[Any], Converter],
        *,
        first: bool = False,
    ) -> None:
        entry = (predicate, factory)
        if first:
            self._converters.insert(0, entry)
        else:
            self._converters.append(entry)

    def find_converter(self, target: Any) -> Optional[Converter]:
        for predicate, factory in self._converters:
            if predicate(target):
                return factory(target)
        return None

    # --------------------------------------------------------------------- JSON

    def from_json(self, target: Any, data: Any) -> Any:
        """
        Build an instance of ``target`` from decoded JSON.

        Raises:
            ValueError / TypeError: When the payload does not fit the type
        """
        if target is Any or target is object:
            return data

        origin = get_origin(target)
        if origin is Union or origin is types.UnionType:
            args = get_args(target)
            if data is None and type(None) in args:
                return None
            errors = []
            for arg in args:
                if arg is type(None):
                    continue
                try:
                    return self.from_json(arg, data)
                except (TypeError, ValueError) as exc:
                    errors.append(str(exc))
            raise TypeError(f"Value does not match any of {target}: {'; '.join(errors)}")

        if data is None:
            raise TypeError(f"null is not a valid {_type_name(target)}")

        if origin in (list, tuple, set, frozenset):
            if not isinstance(data, list):
                raise TypeError(f"Expected a JSON array for {target}")
            args = get_args(target)
            item_type = args[0] if args else Any
            items = [self.from_json(item_type, item) for item in data]
            return origin(items) if origin in (tuple, set, frozenset) else items

        if origin is dict:
            if not isinstance(data, dict):
                raise TypeError(f"Expected a JSON object for {target}")
            args = get_args(target)
            value_type = args[1] if len(args) == 2 else Any
            return {key: self.from_json(value_type, value) for key, value in data.items()}

        if target in (dict, list):
            if not isinstance(data, target):
                raise TypeError(f"Expected a JSON {'object' if target is dict else 'array'}")
            return data

        if target is bool:
            if not isinstance(data, bool):
                raise TypeError("Expected a JSON boolean")
            return data
        if target is int:
            if isinstance(data, bool) or not isinstance(data, int):
                raise TypeError("Expected a JSON integer")
            return data
        if target is float:
            if isinstance(data, bool) or not isinstance(data, (int, float)):
                raise TypeError("Expected a JSON number")
            return float(data)
        if target is str:
            if not isinstance(data, str):
                raise TypeError("Expected a JSON string")
            return data

        validate = getattr(target, "model_validate", None)
        if callable(validate):
            return validate(data)

        if dataclasses.is_dataclass(target) and isinstance(target, type):
            return self._dataclass_from_json(target, data)

        if isinstance(data, str):
            parsed = self.try_parse(target, data)
            if parsed is not None:
                if not parsed.success:
                    raise ValueError(f"{data!r} is not a valid {_type_name(target)}")
                return parsed.value
            converter = self.find_converter(target)
            if converter is not None:
                return converter(data)

        if isinstance(target, type):
            if isinstance(data, dict):
                return target(**data)
            return target(data)

        raise TypeError(f"Cannot deserialize JSON into {target!r}")

    def _dataclass_from_json(self, target: type, data: Any) -> Any:
        if not isinstance(data, dict):
            raise TypeError(f"Expected a JSON object for {target.__name__}")

        hints = get_type_hints(target)
        known = {f.name: f for f in dataclasses.fields(target) if f.init}
        unknown = set(data) - set(known)
        if unknown:
            raise TypeError(
                f"Unexpected field(s) for {target.__name__}: {', '.join(sorted(unknown))}"
            )

        kwargs = {
            name: self.from_json(hints.get(name, Any), value)
            for name, value in data.items()
        }
        return target(**kwargs)


def _type_name(target: Any) -> str:
    return getattr(target, "__name__", repr(target))


default_registry = CoercionRegistry.with_defaults()
