"""Register descriptions, register types and register filtering."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Protocol, TypeVar


class RegisterType(IntEnum):
    """Kind of value a register holds."""

    UNDEFINED = 0
    NUMBER = 1
    TEXT = 2
    ENUM = 3

    def __str__(self) -> str:
        return _TYPE_NAMES.get(self, "")

    @classmethod
    def from_string(cls, s: str) -> "RegisterType":
        """Parse a type name; unknown names give UNDEFINED."""
        for register_type, name in _TYPE_NAMES.items():
            if name == s:
                return register_type
        return cls.UNDEFINED


_TYPE_NAMES = {
    RegisterType.NUMBER: "number",
    RegisterType.TEXT: "string",
    RegisterType.ENUM: "enum",
}


def _enum_equals(a: Mapping[int, str] | None, b: Mapping[int, str] | None) -> bool:
    a = a or {}
    b = b or {}
    if len(a) != len(b):
        return False
    return all(k in b and b[k] == v for k, v in a.items())


@dataclass(frozen=True, eq=False)
class Register:
    """Description of a single register of a device."""

    category: str
    name: str
    description: str
    register_type: RegisterType
    enum: Mapping[int, str] | None
    unit: str
    sort: int
    writable: bool

    @classmethod
    def from_register(cls, reg: Any) -> "Register":
        """Build a Register from any object exposing the register attributes."""
        return cls(
            category=reg.category,
            name=reg.name,
            description=reg.description,
            register_type=reg.register_type,
            enum=reg.enum,
            unit=reg.unit,
            sort=reg.sort,
            writable=reg.writable,
        )

    def equals(self, other: "Register") -> bool:
        """True when all properties, including the enum labels, match."""
        return (
            self.category == other.category
            and self.name == other.name
            and self.description == other.description
            and self.register_type == other.register_type
            and self.unit == other.unit
            and self.sort == other.sort
            and self.writable == other.writable
            and _enum_equals(self.enum, other.enum)
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Register):
            return NotImplemented
        return self.equals(other)

    def __hash__(self) -> int:
        return hash(
            (
                self.category,
                self.name,
                self.description,
                self.register_type,
                self.unit,
                self.sort,
                self.writable,
            )
        )


class Filterable(Protocol):
    name: str
    category: str


RegisterFilterFunc = Callable[[Any], bool]


@dataclass(frozen=True)
class FilterConfig:
    """Which registers to include or skip, by name and by category."""

    include_registers: Sequence[str] = field(default_factory=tuple)
    skip_registers: Sequence[str] = field(default_factory=tuple)
    include_categories: Sequence[str] = field(default_factory=tuple)
    skip_categories: Sequence[str] = field(default_factory=tuple)
    default_include: bool = True


def register_filter(conf: Any) -> RegisterFilterFunc:
    """Build a predicate from a filter configuration.

    Precedence: included register, skipped register, included category,
    skipped category, then the default.
    """
    include_registers = frozenset(conf.include_registers or ())
    skip_registers = frozenset(conf.skip_registers or ())
    include_categories = frozenset(conf.include_categories or ())
    skip_categories = frozenset(conf.skip_categories or ())
    default_include = bool(conf.default_include)

    def accept(reg: Any) -> bool:
        if reg.name in include_registers:
            return True
        if reg.name in skip_registers:
            return False
        if reg.category in include_categories:
            return True
        if reg.category in skip_categories:
            return False
        return default_include

    return accept


# an empty configuration that includes by default accepts every register
_ACCEPT_ALL = register_filter(FilterConfig())


def all_register_filter(reg: Any) -> bool:
    """Accept every register."""
    return _ACCEPT_ALL(reg)


R = TypeVar("R")


def filter_registers(registers: Iterable[R], conf: Any) -> list[R]:
    """Return the registers accepted by the filter configuration, in order."""
    accept = register_filter(conf)
    return [r for r in registers if accept(r)]


def sort_registers(registers: Iterable[Register]) -> list[Register]:
    """Return the registers ordered by their sort key (stable)."""
    return sorted(registers, key=lambda r: r.sort)