"""
Coercion strategies (controller/coercion.py).
"""

import datetime
import decimal
import enum
import uuid
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Dict, List, Optional

import pytest

from minimvc.controller.coercion import CoercionRegistry, ParseResult, default_registry


class Color(enum.Enum):
    RED = "red"
    GREEN = "green"


class Priority(enum.IntEnum):
    LOW = 1
    HIGH = 2


class Money:
    def __init__(self, cents: int):
        self.cents = cents

    @classmethod
    def try_parse(cls, text):
        if text.startswith("$"):
            try:
                return True, cls(int(round(float(text[1:]) * 100)))
            except ValueError:
                return False, None
        return False, None


class Slug:
    def __init__(self, value: str):
        self.value = value

    @classmethod
    def from_string(cls, text):
        if " " in text:
            raise ValueError("slugs cannot contain spaces")
        return cls(text)


@dataclass
class Address:
    city: str
    zip: Optional[str] = None


@dataclass
class Person:
    name: str
    age: int
    tags: List[str] = field(default_factory=list)
    address: Optional[Address] = None


class TestParseStrategies:

    @pytest.mark.parametrize("text,expected", [
        ("42", 42), ("-7", -7), (" 8 ", 8), ("+3", 3),
    ])
    def test_int(self, text, expected):
        assert default_registry.try_parse(int, text) == ParseResult(True, expected)

    @pytest.mark.parametrize("text", ["abc", "4.2", "", "1_000"])
    def test_int_rejects(self, text):
        result = default_registry.try_parse(int, text)
        assert result is not None and result.success is False

    def test_bool(self):
        assert default_registry.try_parse(bool, "True").value is True
        assert default_registry.try_parse(bool, "false").value is False
        assert default_registry.try_parse(bool, "yes").success is False

    def test_float_and_decimal(self):
        assert default_registry.try_parse(float, "2.5").value == 2.5
        assert default_registry.try_parse(decimal.Decimal, "1.10").value == decimal.Decimal("1.10")
        assert default_registry.try_parse(decimal.Decimal, "x").success is False

    def test_uuid(self):
        value = uuid.uuid4()
        assert default_registry.try_parse(uuid.UUID, str(value)).value == value
        assert default_registry.try_parse(uuid.UUID, "not-a-uuid").success is False

    def test_dates(self):
        assert default_registry.try_parse(datetime.date, "2024-02-29").value == datetime.date(2024, 2, 29)
        assert default_registry.try_parse(datetime.datetime, "2024-01-01T10:30:00").value == (
            datetime.datetime(2024, 1, 1, 10, 30)
        )
        assert default_registry.try_parse(datetime.time, "10:15").value == datetime.time(10, 15)
        assert default_registry.try_parse(datetime.date, "yesterday").success is False

    def test_try_parse_convention_roundtrip(self):
        direct_ok, direct = Money.try_parse("$12.34")
        result = default_registry.try_parse(Money, "$12.34")
        assert direct_ok and result.success
        assert result.value.cents == direct.cents == 1234

    def test_try_parse_convention_failure(self):
        result = default_registry.try_parse(Money, "12")
        assert result == ParseResult(False, None)

    def test_no_parser_for_unknown_type(self):
        assert default_registry.try_parse(Color, "red") is None
        assert default_registry.try_parse(object, "x") is None


class TestConverterStrategies:

    def test_enum_by_value_then_name(self):
        convert = default_registry.find_converter(Color)
        assert convert("red") is Color.RED
        assert convert("GREEN") is Color.GREEN
        assert convert("green") is Color.GREEN

    def test_int_enum_by_value(self):
        assert default_registry.find_converter(Priority)("2") is Priority.HIGH

    def test_enum_rejects(self):
        with pytest.raises(ValueError):
            default_registry.find_converter(Color)("purple")

    def test_path_converter(self):
        assert default_registry.find_converter(PurePosixPath)("a/b") == PurePosixPath("a/b")

    def test_from_string_convention(self):
        convert = default_registry.find_converter(Slug)
        assert convert("hello-world").value == "hello-world"
        with pytest.raises(ValueError):
            convert("hello world")

    def test_no_converter(self):
        assert default_registry.find_converter(Person) is None


class TestRegistration:

    def test_custom_parser_first(self):
        registry = CoercionRegistry.with_defaults()
        registry.add_parser(int, lambda text: ParseResult(True, 99), first=True)
        assert registry.try_parse(int, "1").value == 99
        assert default_registry.try_parse(int, "1").value == 1

    def test_custom_converter(self):
        registry = CoercionRegistry()
        registry.add_converter(complex, complex)
        assert registry.find_converter(complex)("1+2j") == complex(1, 2)

    def test_empty_registry(self):
        registry = CoercionRegistry()
        assert registry.try_parse(int, "1") is None
        assert registry.find_converter(Color) is None


class TestFromJson:

    def test_dataclass_nested(self):
        data = {"name": "Ada", "age": 36, "tags": ["math"], "address": {"city": "London"}}
        person = default_registry.from_json(Person, data)
        assert person == Person("Ada", 36, ["math"], Address("London"))

    def test_dataclass_unknown_field(self):
        with pytest.raises(TypeError):
            default_registry.from_json(Address, {"city": "Oslo", "planet": "Earth"})

    def test_dataclass_missing_required(self):
        with pytest.raises(TypeError):
            default_registry.from_json(Person, {"name": "Ada"})

    def test_primitives_strict(self):
        assert default_registry.from_json(int, 5) == 5
        assert default_registry.from_json(float, 5) == 5.0
        with pytest.raises(TypeError):
            default_registry.from_json(int, "5")
        with pytest.raises(TypeError):
            default_registry.from_json(int, True)
        with pytest.raises(TypeError):
            default_registry.from_json(str, 1)

    def test_raw_containers(self):
        assert default_registry.from_json(dict, {"a": 1}) == {"a": 1}
        assert default_registry.from_json(List[int], [1, 2]) == [1, 2]
        assert default_registry.from_json(Dict[str, int], {"a": 1}) == {"a": 1}
        with pytest.raises(TypeError):
            default_registry.from_json(list, {"a": 1})

    def test_optional(self):
        assert default_registry.from_json(Optional[int], None) is None
        assert default_registry.from_json(Optional[int], 3) == 3

    def test_null_for_required(self):
        with pytest.raises(TypeError):
            default_registry.from_json(Person, None)

    def test_string_values_use_parsers(self):
        assert default_registry.from_json(datetime.date, "2024-05-01") == datetime.date(2024, 5, 1)
        assert default_registry.from_json(Color, "red") is Color.RED
        with pytest.raises(ValueError):
            default_registry.from_json(uuid.UUID, "nope")

    def test_model_validate_hook(self):
        class Model:
            def __init__(self, data):
                self.data = data

            @classmethod
            def model_validate(cls, data):
                return cls(data)

        assert default_registry.from_json(Model, {"x": 1}).data == {"x": 1}
