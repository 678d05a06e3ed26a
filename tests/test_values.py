import logging

from iotdevice.registers import FilterConfig, Register, RegisterType
from iotdevice.values import (
    EnumValue,
    NullValue,
    NumericValue,
    TextValue,
    all_value_filter,
    device_name_value_filter,
    device_non_null_value_filter,
    non_null_value_filter,
    register_value_filter,
    sink_log,
)


def text_register():
    return Register(
        "test-text-register-category",
        "test-text-register-name",
        "test-text-register-description",
        RegisterType.TEXT,
        {},
        "test-text-register-unit",
        40,
        False,
    )


def number_register():
    return Register(
        "test-number-register-category",
        "test-number-register-name",
        "test-number-register-description",
        RegisterType.NUMBER,
        {},
        "test-number-register-unit",
        41,
        False,
    )


def enum_register():
    return Register(
        "test-enum-register-category",
        "test-enum-register-name",
        "test-enum-register-description",
        RegisterType.ENUM,
        {0: "A", 1: "B"},
        "test-enum-register-unit",
        42,
        False,
    )


def test_numeric_value():
    reg = number_register()
    v = NumericValue("device-name", reg, 3.14)
    assert v.device_name == "device-name"
    assert v.register == reg
    assert str(v) == "test-number-register-name=3.140000test-number-register-unit"
    assert v.value == 3.14
    assert v.generic_value == 3.14

    assert v.equals(NumericValue("device-name", number_register(), 3.14))
    assert not v.equals(NumericValue("device-name", number_register(), 3.15))
    assert not v.equals(NumericValue("device-name", text_register(), 3.14))


def test_numeric_not_equal_to_other_kind():
    reg = number_register()
    assert not NumericValue("d", reg, 1.0).equals(EnumValue("d", reg, 1))


def test_text_value():
    reg = number_register()
    v = TextValue("device-name", reg, "foobar")
    assert v.device_name == "device-name"
    assert v.register == reg
    assert str(v) == "test-number-register-name=foobar"
    assert v.value == "foobar"
    assert v.generic_value == "foobar"
    assert v.equals(TextValue("other", reg, "foobar"))
    assert not v.equals(TextValue("device-name", reg, "baz"))


def test_enum_value():
    reg = enum_register()
    v = EnumValue("device-name", reg, 1)
    assert v.device_name == "device-name"
    assert v.register == reg
    assert str(v) == "test-enum-register-name=1:B"
    assert v.enum_idx == 1
    assert v.generic_value == 1
    assert v.value == "B"
    assert v.equals(EnumValue("device-name", reg, 1))
    assert not v.equals(EnumValue("device-name", reg, 0))


def test_enum_value_unknown_index():
    v = EnumValue("device-name", enum_register(), 5)
    assert str(v) == "test-enum-register-name=5"
    assert v.value == ""


def test_null_value():
    reg = enum_register()
    v = NullValue("device-name", reg)
    assert v.device_name == "device-name"
    assert v.register == reg
    assert str(v) == "NULL"
    assert v.generic_value is None
    assert v.equals(NullValue("x", number_register()))
    assert not v.equals(EnumValue("device-name", reg, 0))


def test_device_filters():
    reg = number_register()
    a = NumericValue("a", reg, 1.0)
    b = NumericValue("b", reg, 1.0)
    null_a = NullValue("a", reg)

    by_a = device_name_value_filter("a")
    assert [by_a(v) for v in (a, b, null_a)] == [True, False, True]

    non_null_a = device_non_null_value_filter("a")
    assert [non_null_a(v) for v in (a, b, null_a)] == [True, False, False]

    assert non_null_value_filter(a) is True
    assert non_null_value_filter(null_a) is False
    assert all_value_filter(null_a) is True


def test_register_value_filter():
    f = register_value_filter(
        FilterConfig(skip_categories=["test-number-register-category"])
    )
    assert f(NumericValue("d", number_register(), 1.0)) is False
    assert f(TextValue("d", text_register(), "x")) is True


def test_sink_log(caplog):
    values = [
        NumericValue("dev", number_register(), 2.5),
        NullValue("dev", number_register()),
    ]
    with caplog.at_level(logging.INFO, logger="iotdevice.values"):
        sink_log("pre", values)
    assert [r.getMessage() for r in caplog.records] == [
        "pre: dev: test-number-register-name=2.500000test-number-register-unit",
        "pre: dev: NULL",
    ]