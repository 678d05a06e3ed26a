"""Register values, value filters and a logging sink."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Protocol

from iotdevice.registers import Register, all_register_filter, register_filter

logger = logging.getLogger(__name__)


class Fillable(Protocol):
    """Anything that accepts values."""

    def fill(self, value: "Value") -> None: ...


@dataclass(frozen=True, eq=False)
class Value:
    """A value of a register of a named device."""

    device_name: str
    register: Register

    @property
    def generic_value(self) -> Any:
        raise NotImplementedError

    def equals(self, other: "Value") -> bool:
        raise NotImplementedError


@dataclass(frozen=True, eq=False)
class NumericValue(Value):
    value: float

    def __str__(self) -> str:
        return f"{self.register.name}={self.value:f}{self.register.unit}"

    @property
    def generic_value(self) -> float:
        return self.value

    def equals(self, other: Value) -> bool:
        return (
            isinstance(other, NumericValue)
            and self.register.name == other.register.name
            and self.value == other.value
        )


@dataclass(frozen=True, eq=False)
class TextValue(Value):
    value: str

    def __str__(self) -> str:
        return f"{self.register.name}={self.value}"

    @property
    def generic_value(self) -> str:
        return self.value

    def equals(self, other: Value) -> bool:
        return (
            isinstance(other, TextValue)
            and self.register.name == other.register.name
            and self.value == other.value
        )


@dataclass(frozen=True, eq=False)
class EnumValue(Value):
    enum_idx: int

    @property
    def value(self) -> str:
        """Label of the enum index, or an empty string if unknown."""
        return (self.register.enum or {}).get(self.enum_idx, "")

    def __str__(self) -> str:
        label = (self.register.enum or {}).get(self.enum_idx)
        if label is not None:
            return f"{self.register.name}={self.enum_idx}:{label}"
        return f"{self.register.name}={self.enum_idx}"

    @property
    def generic_value(self) -> int:
        return self.enum_idx

    def equals(self, other: Value) -> bool:
        return (
            isinstance(other, EnumValue)
            and self.register.name == other.register.name
            and self.enum_idx == other.enum_idx
        )


@dataclass(frozen=True, eq=False)
class NullValue(Value):
    """Absence of a value; removes the register's state when stored."""

    def __str__(self) -> str:
        return "NULL"

    @property
    def generic_value(self) -> None:
        return None

    def equals(self, other: Value) -> bool:
        return isinstance(other, NullValue)


ValueFilterFunc = Callable[[Value], bool]


def device_name_value_filter(device_name: str) -> ValueFilterFunc:
    """Accept values of the given device."""
    return lambda value: value.device_name == device_name


def register_value_filter(conf: Any) -> ValueFilterFunc:
    """Accept values whose register passes the filter configuration."""
    accept = register_filter(conf)
    return lambda value: accept(value.register)


def all_value_filter(value: Value) -> bool:
    """Accept every value."""
    return all_register_filter(value.register)


def non_null_value_filter(value: Value) -> bool:
    """Accept every value that is not a NullValue."""
    return not isinstance(value, NullValue)


def device_non_null_value_filter(device_name: str) -> ValueFilterFunc:
    """Accept non-null values of the given device."""
    by_device = device_name_value_filter(device_name)
    return lambda value: non_null_value_filter(value) and by_device(value)


def sink_log(prefix: str, values: Iterable[Value]) -> None:
    """Log every value until the iterable is exhausted."""
    for value in values:
        logger.info("%s: %s: %s", prefix, value.device_name, value)