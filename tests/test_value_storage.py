import pytest

from iotdevice.registers import FilterConfig, Register, RegisterType
from iotdevice.value_storage import ValueStorage
from iotdevice.values import (
    NullValue,
    NumericValue,
    all_value_filter,
    device_name_value_filter,
    register_value_filter,
)


def simple_register(category, name):
    return Register(category, name, "", RegisterType.NUMBER, {}, "", 40, False)


FILL_SET_A_LENGTH = 4
FILL_SET_B_LENGTH = 2
FILL_SET_C_LENGTH = 1000


def fill_set_a(storage):
    storage.fill(NumericValue("device-0", simple_register("set-a", "register-a"), 0))
    storage.fill(NumericValue("device-0", simple_register("set-a", "register-a"), 1))
    for _ in range(10):
        storage.fill(NumericValue("device-0", simple_register("set-a", "register-b"), 10))
        storage.fill(NumericValue("device-1", simple_register("set-a", "register-a"), 100))


def fill_set_b(storage):
    storage.fill(NumericValue("device-1", simple_register("set-b", "register-a"), 101))
    storage.fill(NumericValue("device-2", simple_register("set-b", "register-a"), 200))


def fill_set_c(storage):
    for i in range(FILL_SET_C_LENGTH):
        storage.fill(
            NumericValue("device-3", simple_register("set-c", f"register-{i}"), float(i))
        )


def as_strings(values):
    return sorted(f"{v.device_name}:{v}" for v in values)


@pytest.fixture
def storage():
    s = ValueStorage()
    yield s
    s.shutdown()


def test_get_slice(storage):
    fill_set_a(storage)
    storage.wait()
    assert as_strings(storage.get_state()) == sorted(
        [
            "device-0:register-a=1.000000",
            "device-0:register-b=10.000000",
            "device-1:register-a=100.000000",
        ]
    )

    fill_set_b(storage)
    storage.wait()
    assert as_strings(storage.get_state()) == sorted(
        [
            "device-0:register-a=1.000000",
            "device-0:register-b=10.000000",
            "device-1:register-a=101.000000",
            "device-2:register-a=200.000000",
        ]
    )

    fill_set_c(storage)
    storage.wait()
    assert as_strings(
        storage.get_state_filtered(device_name_value_filter("device-0"))
    ) == sorted(["device-0:register-a=1.000000", "device-0:register-b=10.000000"])

    conf = FilterConfig(
        skip_registers=["register-b"],
        skip_categories=["set-b", "set-c"],
        default_include=True,
    )
    assert as_strings(storage.get_state_filtered(register_value_filter(conf))) == [
        "device-0:register-a=1.000000"
    ]


def test_subscribe_counts(storage):
    subscriptions = [storage.subscribe_send_initial(all_value_filter) for _ in range(42)]
    fill_set_a(storage)
    fill_set_b(storage)
    fill_set_c(storage)
    storage.wait()
    for s in subscriptions:
        s.cancel()
    expect = FILL_SET_A_LENGTH + FILL_SET_B_LENGTH + FILL_SET_C_LENGTH
    counts = [sum(1 for _ in s.drain()) for s in subscriptions]
    assert counts == [expect] * 42


def run_with_filter(value_filter):
    storage = ValueStorage()
    try:
        subscription = storage.subscribe_send_initial(value_filter)
        fill_set_a(storage)
        fill_set_b(storage)
        fill_set_c(storage)
        storage.wait()
        subscription.cancel()
        return list(subscription.drain())
    finally:
        storage.shutdown()


def test_subscribe_filter_device():
    values = run_with_filter(device_name_value_filter("device-0"))
    assert as_strings(values) == sorted(
        [
            "device-0:register-a=0.000000",
            "device-0:register-a=1.000000",
            "device-0:register-b=10.000000",
        ]
    )


def test_subscribe_filter_skip_register_categories():
    conf = FilterConfig(
        skip_registers=["register-b"], skip_categories=["set-c"], default_include=True
    )
    values = run_with_filter(register_value_filter(conf))
    assert as_strings(values) == sorted(
        [
            "device-0:register-a=0.000000",
            "device-0:register-a=1.000000",
            "device-1:register-a=100.000000",
            "device-1:register-a=101.000000",
            "device-2:register-a=200.000000",
        ]
    )


def test_send_initial_delivers_existing_state(storage):
    fill_set_a(storage)
    storage.wait()
    with storage.subscribe_send_initial(device_name_value_filter("device-1")) as sub:
        pass
    assert as_strings(sub.drain()) == ["device-1:register-a=100.000000"]


def test_return_initial_does_not_resend(storage):
    fill_set_a(storage)
    storage.wait()
    initial, sub = storage.subscribe_return_initial(device_name_value_filter("device-1"))
    fill_set_b(storage)
    storage.wait()
    sub.cancel()
    assert as_strings(initial) == ["device-1:register-a=100.000000"]
    assert as_strings(sub.drain()) == ["device-1:register-a=101.000000"]


def test_null_value_removes_state(storage):
    reg = simple_register("set-a", "register-a")
    storage.fill(NumericValue("device-0", reg, 5))
    storage.wait()
    assert len(storage.get_state()) == 1
    storage.fill(NullValue("device-0", reg))
    storage.wait()
    assert storage.get_state() == []


def test_fill_after_shutdown_raises():
    storage = ValueStorage()
    storage.shutdown()
    with pytest.raises(RuntimeError):
        storage.fill(NumericValue("d", simple_register("c", "r"), 1))