"""
Typed tool arguments.

A Property describes one named argument of a tool (boolean, integer or
string), optionally with a default value and, for integers, an inclusive
range. A PropertyList is the ordered set of properties a tool declares.

The same PropertyList type serves as the tool's signature (the template
registered once) and as the concrete arguments handed to the tool body
(a fresh copy bound per call by bind_arguments):

    schema = PropertyList([
        Property("volume", PropertyType.INTEGER, min_value=0, max_value=100),
    ])
    bound = bind_arguments(schema, {"volume": 50})
    bound["volume"].value   # 50
"""

from __future__ import annotations

import copy
import math
from enum import Enum
from typing import Any, Iterable, Iterator


class PropertyType(Enum):
    BOOLEAN = "boolean"
    INTEGER = "integer"
    STRING = "string"


class MissingArgument(Exception):
    """A required argument was absent (or had the wrong JSON type)."""

    def __init__(self, name: str):
        super().__init__(f"Missing valid argument: {name}")
        self.name = name


def _matches(kind: PropertyType, value: Any) -> bool:
    """Strict JSON type check. bool is never accepted where a number is expected."""
    if kind is PropertyType.BOOLEAN:
        return isinstance(value, bool)
    if kind is PropertyType.INTEGER:
        if isinstance(value, float):
            return math.isfinite(value)
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, str)


class Property:
    """
    One named, typed tool argument.

    Args:
        name: Argument name as it appears in the JSON arguments object
        kind: The declared PropertyType
        default: Optional default; the argument is required when omitted
        min_value / max_value: Inclusive range, integers only
    """

    _NO_DEFAULT = object()

    def __init__(
        self,
        name: str,
        kind: PropertyType,
        default: Any = _NO_DEFAULT,
        min_value: int | None = None,
        max_value: int | None = None,
    ):
        if not name:
            raise ValueError("Property name must not be empty")
        has_range = min_value is not None or max_value is not None
        if has_range and kind is not PropertyType.INTEGER:
            raise ValueError(f"Property {name}: only integer properties can have a range")
        if has_range and (min_value is None or max_value is None):
            raise ValueError(f"Property {name}: range needs both minimum and maximum")
        if has_range and min_value > max_value:
            raise ValueError(f"Property {name}: minimum {min_value} is above maximum {max_value}")

        self.name = name
        self.kind = kind
        self.min_value = min_value
        self.max_value = max_value
        self.has_default = default is not Property._NO_DEFAULT
        self.default: Any = None
        self.provided = False
        self._value: Any = None

        if self.has_default:
            if not _matches(kind, default):
                raise TypeError(
                    f"Property {name}: default {default!r} is not a {kind.value}"
                )
            if kind is PropertyType.INTEGER:
                default = int(default)
                if not self.in_range(default):
                    raise ValueError(
                        f"Property {name}: default {default} is outside "
                        f"[{min_value}, {max_value}]"
                    )
            self.default = default
            self._value = default

    @property
    def has_range(self) -> bool:
        return self.min_value is not None

    @property
    def value(self) -> Any:
        return self._value

    def accept(self, raw: Any) -> bool:
        """
        Take a JSON value supplied by the caller.

        Returns False (leaving the current value alone) when the JSON type
        does not match the declared type. Integers arriving as JSON floats
        are truncated toward zero.
        """
        if not _matches(self.kind, raw):
            return False
        self._value = int(raw) if self.kind is PropertyType.INTEGER else raw
        self.provided = True
        return True

    def in_range(self, value: int) -> bool:
        if not self.has_range:
            return True
        return self.min_value <= value <= self.max_value

    def check_range(self) -> Any:
        """Return the value, raising ValueError if it falls outside the declared range."""
        if self.has_range and self._value is not None:
            if self._value < self.min_value:
                raise ValueError(f"Value is below minimum allowed: {self.min_value}")
            if self._value > self.max_value:
                raise ValueError(f"Value exceeds maximum allowed: {self.max_value}")
        return self._value

    def to_json(self) -> dict[str, Any]:
        """JSON-schema fragment for inputSchema.properties."""
        schema: dict[str, Any] = {"type": self.kind.value}
        if self.has_default:
            schema["default"] = self.default
        if self.has_range:
            schema["minimum"] = self.min_value
            schema["maximum"] = self.max_value
        return schema

    def __repr__(self) -> str:
        return f"Property({self.name!r}, {self.kind.value}, value={self._value!r})"


class PropertyList:
    """Ordered, name-unique collection of Property objects."""

    def __init__(self, properties: Iterable[Property] = ()):
        self._properties: list[Property] = []
        for prop in properties:
            self.add(prop)

    def add(self, prop: Property) -> None:
        if any(p.name == prop.name for p in self._properties):
            raise ValueError(f"Duplicate property: {prop.name}")
        self._properties.append(prop)

    def __getitem__(self, name: str) -> Property:
        for prop in self._properties:
            if prop.name == name:
                return prop
        raise KeyError(f"Property not found: {name}")

    def __contains__(self, name: object) -> bool:
        return any(p.name == name for p in self._properties)

    def __iter__(self) -> Iterator[Property]:
        return iter(self._properties)

    def __len__(self) -> int:
        return len(self._properties)

    def copy(self) -> "PropertyList":
        """Copy every property, so a bound argument set never aliases the template."""
        return PropertyList(copy.copy(p) for p in self._properties)

    def required(self) -> list[str]:
        return [p.name for p in self._properties if not p.has_default]

    def to_json(self) -> dict[str, Any]:
        return {p.name: p.to_json() for p in self._properties}

    def as_dict(self) -> dict[str, Any]:
        """Plain name -> value mapping of the current values."""
        return {p.name: p.value for p in self._properties}


def bind_arguments(template: PropertyList, arguments: dict[str, Any] | None) -> PropertyList:
    """
    Bind a JSON arguments object against a tool's declared properties.

    Every declared property is visited in order. A same-named field of the
    right JSON type overwrites the value; a missing or wrong-typed field
    falls back to the default, or raises MissingArgument when there is
    none. Undeclared fields are ignored. Ranges are not checked here.

    Returns:
        A new PropertyList; the template is left untouched.
    """
    arguments = arguments or {}
    bound = template.copy()
    for prop in bound:
        found = prop.name in arguments and prop.accept(arguments[prop.name])
        if not found and not prop.has_default:
            raise MissingArgument(prop.name)
    return bound
