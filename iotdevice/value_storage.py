"""Current state of all register values with change subscriptions."""

from __future__ import annotations

import queue
import threading
from collections.abc import Iterator
from typing import Any

from iotdevice.values import NullValue, Value, ValueFilterFunc

_CLOSED = object()
_STOP = object()


class ValueSubscription:
    """Stream of values accepted by a filter, ended by cancel()."""

    def __init__(self, storage: "ValueStorage", value_filter: ValueFilterFunc) -> None:
        self._storage = storage
        self.value_filter = value_filter
        self._queue: queue.SimpleQueue[Any] = queue.SimpleQueue()
        self._cancelled = False
        self._cancel_lock = threading.Lock()

    def _push(self, value: Value) -> None:
        self._queue.put(value)

    def drain(self) -> Iterator[Value]:
        """Yield values until the subscription is cancelled."""
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                self._queue.put(_CLOSED)
                return
            yield item

    def cancel(self) -> None:
        """Stop receiving values; draining ends after pending values."""
        with self._cancel_lock:
            if self._cancelled:
                return
            self._cancelled = True
        self._storage._unsubscribe(self)
        self._queue.put(_CLOSED)

    def __enter__(self) -> "ValueSubscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()


class ValueStorage:
    """Holds the latest value per device and register.

    Values are processed in order by a background thread; only changed
    values are stored and forwarded. A NullValue removes the entry.
    """

    def __init__(self) -> None:
        self._state: dict[tuple[str, str], Value] = {}
        self._subscriptions: list[ValueSubscription] = []
        self._lock = threading.RLock()
        self._input: queue.Queue[Any] = queue.Queue()
        self._closed = False
        self._worker = threading.Thread(target=self._main, daemon=True)
        self._worker.start()

    def _main(self) -> None:
        while True:
            item = self._input.get()
            try:
                if item is _STOP:
                    return
                with self._lock:
                    if self._update_state(item):
                        for subscription in self._subscriptions:
                            if subscription.value_filter(item):
                                subscription._push(item)
            finally:
                self._input.task_done()

    def _update_state(self, value: Value) -> bool:
        key = (value.device_name, value.register.name)
        current = self._state.get(key)
        if current is not None and current.equals(value):
            return False
        if isinstance(value, NullValue):
            if current is None:
                # nothing stored and nothing to remove
                return True
            del self._state[key]
        else:
            self._state[key] = value
        return True

    def fill(self, value: Value) -> None:
        """Queue a value for processing."""
        if self._closed:
            raise RuntimeError("value storage is shut down")
        self._input.put(value)

    def wait(self) -> None:
        """Block until every queued value has been processed."""
        self._input.join()

    def shutdown(self) -> None:
        """Stop processing; later fills raise RuntimeError."""
        if self._closed:
            return
        self._closed = True
        self._input.put(_STOP)
        self._worker.join()

    def __enter__(self) -> "ValueStorage":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def get_state(self) -> list[Value]:
        """All stored values."""
        with self._lock:
            return list(self._state.values())

    def get_state_filtered(self, value_filter: ValueFilterFunc) -> list[Value]:
        """Stored values accepted by the filter."""
        with self._lock:
            return [v for v in self._state.values() if value_filter(v)]

    def _new_subscription(
        self, value_filter: ValueFilterFunc, send_initial: bool
    ) -> tuple[list[Value], ValueSubscription]:
        subscription = ValueSubscription(self, value_filter)
        with self._lock:
            initial = [v for v in self._state.values() if value_filter(v)]
            if send_initial:
                for v in initial:
                    subscription._push(v)
            self._subscriptions.append(subscription)
        return initial, subscription

    def subscribe_return_initial(
        self, value_filter: ValueFilterFunc
    ) -> tuple[list[Value], ValueSubscription]:
        """Return the current matching values and a subscription for changes."""
        return self._new_subscription(value_filter, send_initial=False)

    def subscribe_send_initial(self, value_filter: ValueFilterFunc) -> ValueSubscription:
        """Subscribe; the current matching values are delivered first."""
        _, subscription = self._new_subscription(value_filter, send_initial=True)
        return subscription

    def _unsubscribe(self, subscription: ValueSubscription) -> None:
        with self._lock:
            self._subscriptions = [
                s for s in self._subscriptions if s is not subscription
            ]