"""State shared by all devices: config, storage, registers and availability."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from iotdevice.register_db import RegisterDb
from iotdevice.registers import FilterConfig, Register, RegisterType
from iotdevice.value_storage import ValueStorage, ValueSubscription
from iotdevice.values import EnumValue, Value

AVAILABILITY_REGISTER_NAME = "Available"
AVAILABILITY_OFFLINE_VALUE = "offline"
AVAILABILITY_ONLINE_VALUE = "online"

availability_register = Register(
    category=AVAILABILITY_REGISTER_NAME,
    name=AVAILABILITY_REGISTER_NAME,
    description=AVAILABILITY_REGISTER_NAME,
    register_type=RegisterType.ENUM,
    enum={0: AVAILABILITY_OFFLINE_VALUE, 1: AVAILABILITY_ONLINE_VALUE},
    unit="",
    sort=1000,
    writable=False,
)


@dataclass(frozen=True)
class DeviceConfig:
    """Settings common to every device."""

    name: str
    filter: FilterConfig = field(default_factory=FilterConfig)
    log_debug: bool = False
    log_com_debug: bool = False


class DeviceRunError(Exception):
    """A device run failed; immediate errors happen before it went online."""

    def __init__(self, message: str, immediate: bool = False) -> None:
        super().__init__(message)
        self.immediate = immediate


class AvailabilitySubscription:
    """Iterates the availability of a device whenever it changes."""

    def __init__(
        self,
        state: "DeviceState",
        initial: bool | None,
        subscription: ValueSubscription,
    ) -> None:
        self._state = state
        self._initial = initial
        self._subscription = subscription

    def __iter__(self) -> Iterator[bool]:
        available = bool(self._initial)
        if self._initial is not None:
            yield available
        for value in self._subscription.drain():
            available, updated = self._state.update_available(available, value)
            if updated:
                yield available

    def cancel(self) -> None:
        """End the iteration once pending updates are delivered."""
        self._subscription.cancel()

    def __enter__(self) -> "AvailabilitySubscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()


class DeviceState:
    """Base state of a device, including its availability register."""

    def __init__(self, config: Any, state_storage: ValueStorage) -> None:
        self.config = config
        self.state_storage = state_storage
        self.register_db = RegisterDb()
        self.register_db.add(availability_register)
        self._unavailable_value = EnumValue(config.name, availability_register, 0)
        self._available_value = EnumValue(config.name, availability_register, 1)

    @property
    def name(self) -> str:
        return self.config.name

    def set_available(self, available: bool) -> None:
        """Publish the device as online or offline."""
        self.state_storage.fill(
            self._available_value if available else self._unavailable_value
        )

    def subscribe_available_send_initial(self) -> AvailabilitySubscription:
        """Subscribe to availability changes, starting with the current one."""
        name = self.name

        def accept(value: Value) -> bool:
            if value.device_name != name:
                return False
            reg = value.register
            return (
                reg.register_type == RegisterType.ENUM
                and reg.name == AVAILABILITY_REGISTER_NAME
            )

        initial_state, subscription = self.state_storage.subscribe_return_initial(accept)
        return AvailabilitySubscription(
            self, self.get_available_by_state(initial_state), subscription
        )

    def get_available_by_state(self, state: Iterable[Value]) -> bool | None:
        """Availability found in the given values, or None if absent."""
        for value in state:
            if value.device_name != self.name:
                continue
            if value.equals(self._available_value):
                return True
            if value.equals(self._unavailable_value):
                return False
        return None

    def update_available(self, old_available: bool, value: Value) -> tuple[bool, bool]:
        """Return (availability, updated) after seeing a value."""
        if value.device_name == self.name:
            if value.equals(self._available_value):
                return True, True
            if value.equals(self._unavailable_value):
                return False, True
        return old_available, False