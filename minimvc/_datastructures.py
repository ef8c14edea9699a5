"""
Core data structures for request handling.

Provides:
- MultiDict: Ordered multi-value dictionary for query params and form data,
  with case-insensitive lookup
- Headers: Case-insensitive header access over raw ASGI header pairs
- ParsedContentType: Content-Type parsing helper
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    Dict, Iterator, List, Mapping, MutableMapping,
    Optional, Tuple, Union
)


# ============================================================================
# MultiDict
# ============================================================================

class MultiDict(MutableMapping[str, List[str]]):
    """
    Dictionary that supports multiple values per key.

    Keys keep their original casing and insertion order. Item access is
    exact; ``find()`` / ``find_first()`` compare keys case-insensitively
    and return the first matching key in insertion order.
    """

    def __init__(self, items: Optional[Union[List[Tuple[str, str]], Mapping[str, Union[str, List[str]]]]] = None):
        self._data: Dict[str, List[str]] = {}

        if items:
            if isinstance(items, list):
                for key, value in items:
                    self.add(key, value)
            elif isinstance(items, Mapping):
                for key, value in items.items():
                    if isinstance(value, list):
                        self._data[key] = value.copy()
                    else:
                        self._data[key] = [value]

    def __getitem__(self, key: str) -> List[str]:
        return self._data[key]

    def __setitem__(self, key: str, value: Union[str, List[str]]) -> None:
        if isinstance(value, list):
            self._data[key] = value
        else:
            self._data[key] = [value]

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"MultiDict({dict(self._data)})"

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get first value for a key (exact match)."""
        values = self._data.get(key)
        return values[0] if values else default

    def get_all(self, key: str) -> List[str]:
        """Get all values for a key (exact match)."""
        return self._data.get(key, [])

    def add(self, key: str, value: str) -> None:
        """Add a value to a key (appends to list)."""
        if key in self._data:
            self._data[key].append(value)
        else:
            self._data[key] = [value]

    def find(self, key: str) -> Optional[List[str]]:
        """
        Case-insensitive lookup.

        Returns the value list of the first key (in insertion order) equal
        to ``key`` ignoring case, or None when no key matches.
        """
        folded = key.casefold()
        for name, values in self._data.items():
            if name.casefold() == folded:
                return values
        return None

    def find_first(self, key: str) -> Tuple[bool, Optional[str]]:
        """
        Case-insensitive lookup of the first value.

        Returns ``(found, value)``. A key that is present with an empty
        value list is reported as found with a None value.
        """
        values = self.find(key)
        if values is None:
            return False, None
        return True, (values[0] if values else None)

    def items_list(self) -> List[Tuple[str, str]]:
        """Return all items as flat list of tuples."""
        result = []
        for key, values in self._data.items():
            for value in values:
                result.append((key, value))
        return result

    def to_dict(self, multi: bool = False) -> Dict[str, Union[str, List[str]]]:
        """
        Convert to regular dict.

        Args:
            multi: If True, return lists for all keys.
                   If False, return first value only.
        """
        if multi:
            return dict(self._data)
        return {k: v[0] for k, v in self._data.items() if v}


# ============================================================================
# Headers
# ============================================================================

@dataclass
class Headers:
    """
    Case-insensitive header access with raw preservation.

    Normalizes header names while preserving original casing.
    """

    raw: List[Tuple[bytes, bytes]] = field(default_factory=list)
    _index: Dict[str, List[Tuple[bytes, bytes]]] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self):
        self._index = {}
        for name, value in self.raw:
            key = name.decode("latin-1").lower()
            self._index.setdefault(key, []).append((name, value))

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get first value for header (case-insensitive)."""
        pairs = self._index.get(name.lower())
        if pairs:
            return pairs[0][1].decode("latin-1")
        return default

    def get_all(self, name: str) -> List[str]:
        """Get all values for header (case-insensitive)."""
        pairs = self._index.get(name.lower(), [])
        return [value.decode("latin-1") for _, value in pairs]

    def find_first(self, name: str) -> Tuple[bool, Optional[str]]:
        """Same contract as ``MultiDict.find_first``."""
        pairs = self._index.get(name.lower())
        if not pairs:
            return False, None
        return True, pairs[0][1].decode("latin-1")

    def has(self, name: str) -> bool:
        return name.lower() in self._index

    def items(self) -> Iterator[Tuple[str, str]]:
        for name, value in self.raw:
            yield name.decode("latin-1"), value.decode("latin-1")

    def keys(self) -> Iterator[str]:
        for name, _ in self.raw:
            yield name.decode("latin-1")

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __getitem__(self, name: str) -> str:
        value = self.get(name)
        if value is None:
            raise KeyError(f"Header '{name}' not found")
        return value

    def __repr__(self) -> str:
        return f"Headers({list(self.items())})"


# ============================================================================
# ParsedContentType
# ============================================================================

@dataclass
class ParsedContentType:
    """
    Parsed Content-Type header.

    Extracts media type and parameters (e.g., charset).
    """

    media_type: str
    params: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def parse(cls, content_type: Optional[str]) -> Optional["ParsedContentType"]:
        if not content_type:
            return None

        parts = content_type.split(";")
        media_type = parts[0].strip().lower()

        params = {}
        for part in parts[1:]:
            if "=" in part:
                key, value = part.split("=", 1)
                params[key.strip().lower()] = value.strip().strip('"')

        return cls(media_type=media_type, params=params)

    @property
    def charset(self) -> str:
        """Get charset parameter (default: utf-8)."""
        return self.params.get("charset", "utf-8")
