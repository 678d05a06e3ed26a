"""Thread-safe store of register descriptions with change subscriptions."""

from __future__ import annotations

import queue
import threading
from collections.abc import Callable, Iterator
from typing import Any

from iotdevice.registers import Register, RegisterFilterFunc

_CLOSED = object()


class RegisterSubscription:
    """Stream of registers accepted by a filter.

    Iterating yields the registers known at subscription time, then every
    new or changed register, until the subscription is cancelled.
    """

    def __init__(
        self,
        register_filter: RegisterFilterFunc,
        on_cancel: Callable[["RegisterSubscription"], None],
    ) -> None:
        self.register_filter = register_filter
        self._on_cancel = on_cancel
        self._queue: queue.SimpleQueue[Any] = queue.SimpleQueue()
        self._cancelled = False
        self._cancel_lock = threading.Lock()

    def _push(self, register: Register) -> None:
        self._queue.put(register)

    def cancel(self) -> None:
        """Stop the subscription; iteration ends after pending registers."""
        with self._cancel_lock:
            if self._cancelled:
                return
            self._cancelled = True
        self._on_cancel(self)
        self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[Register]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                # keep the marker so later iterations terminate as well
                self._queue.put(_CLOSED)
                return
            yield item

    def __enter__(self) -> "RegisterSubscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()


class RegisterDb:
    """Registers of a device, keyed by register name."""

    def __init__(self) -> None:
        self._registers: dict[str, Register] = {}
        self._subscriptions: list[RegisterSubscription] = []
        self._lock = threading.RLock()

    def add(self, *args: Any) -> None:
        """Add registers; unchanged registers are ignored, changed ones replaced."""
        registers = [
            r if isinstance(r, Register) else Register.from_register(r) for r in args
        ]
        with self._lock:
            for reg in registers:
                old = self._registers.get(reg.name)
                if old is not None and reg.equals(old):
                    continue
                self._registers[reg.name] = reg
                for subscription in self._subscriptions:
                    if subscription.register_filter(reg):
                        subscription._push(reg)

    def get_all(self) -> list[Register]:
        """Every register currently stored."""
        with self._lock:
            return list(self._registers.values())

    def get_filtered(self, register_filter: RegisterFilterFunc) -> list[Register]:
        """Registers accepted by the given filter."""
        with self._lock:
            return [r for r in self._registers.values() if register_filter(r)]

    def get_by_name(self, name: str) -> Register | None:
        """The register with this name, or None."""
        with self._lock:
            return self._registers.get(name)

    def subscribe(self, register_filter: RegisterFilterFunc) -> RegisterSubscription:
        """Subscribe to current and future registers accepted by the filter."""
        subscription = RegisterSubscription(register_filter, self._unsubscribe)
        with self._lock:
            for reg in self._registers.values():
                if register_filter(reg):
                    subscription._push(reg)
            self._subscriptions.append(subscription)
        return subscription

    def _unsubscribe(self, subscription: RegisterSubscription) -> None:
        with self._lock:
            self._subscriptions = [
                s for s in self._subscriptions if s is not subscription
            ]