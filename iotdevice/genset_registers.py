"""Registers published by the genset controller device."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from iotdevice.genset import state_node_map
from iotdevice.register_db import RegisterDb
from iotdevice.registers import Register, RegisterType


def bool_to_on_off(value: bool) -> int:
    """Enum index of an on/off register: 1 for on, 0 for off."""
    return 1 if value else 0


ON_OFF_ENUM = {
    bool_to_on_off(False): "Off",
    bool_to_on_off(True): "On",
}


def new_on_off_register(
    category: str, name: str, description: str, sort: int, writable: bool
) -> Register:
    """An enum register with the labels Off and On."""
    return Register(
        category=category,
        name=name,
        description=description,
        register_type=RegisterType.ENUM,
        enum=ON_OFF_ENUM,
        unit="",
        sort=sort,
        writable=writable,
    )


def new_number_register(
    category: str, name: str, description: str, unit: str, sort: int
) -> Register:
    """A read-only numeric register."""
    return Register(
        category=category,
        name=name,
        description=description,
        register_type=RegisterType.NUMBER,
        enum=None,
        unit=unit,
        sort=sort,
        writable=False,
    )


ARM_SWITCH_REGISTER = new_on_off_register("Switches", "ArmSwitch", "Arm switch", 0, True)
ARM_SWITCH_REGISTER_RO = new_on_off_register("Switches", "ArmSwitchRO", "Arm switch", 0, False)
COMMAND_SWITCH_REGISTER = new_on_off_register(
    "Switches", "CommandSwitch", "Command switch", 1, True
)
COMMAND_SWITCH_REGISTER_RO = new_on_off_register(
    "Switches", "CommandSwitchRO", "Command switch", 1, False
)
RESET_SWITCH_REGISTER = new_on_off_register(
    "Switches", "ResetSwitch", "Emergency off and reset switch", 2, True
)
RESET_SWITCH_REGISTER_RO = new_on_off_register(
    "Switches", "ResetSwitchRO", "Emergency off and reset switch", 2, False
)

IO_AVAILABLE_REGISTER = new_on_off_register(
    "Inputs", "IOAvailable", "I/O controller available", 10, False
)
FIRE_DETECTED_REGISTER = new_on_off_register("Inputs", "FireDetected", "Fire detected", 11, False)
ENGINE_TEMP_REGISTER = new_number_register("Inputs", "EngineTemp", "Engine temperature", "°C", 12)
AUX_TEMP0_REGISTER = new_number_register("Inputs", "AuxTemp0", "Auxiliary temperature 0", "°C", 13)
AUX_TEMP1_REGISTER = new_number_register("Inputs", "AuxTemp1", "Auxiliary temperature 1", "°C", 14)

OUTPUT_AVAILABLE_REGISTER = new_on_off_register(
    "Inputs", "OutputAvailable", "Output available", 20, False
)
U1_REGISTER = new_number_register("Inputs", "U1", "Voltage U1", "V", 21)
U2_REGISTER = new_number_register("Inputs", "U2", "Voltage U2", "V", 22)
U3_REGISTER = new_number_register("Inputs", "U3", "Voltage U3", "V", 23)
P1_REGISTER = new_number_register("Inputs", "P1", "Load P1", "W", 24)
P2_REGISTER = new_number_register("Inputs", "P2", "Load P2", "W", 25)
P3_REGISTER = new_number_register("Inputs", "P3", "Load P3", "W", 26)
F_REGISTER = new_number_register("Inputs", "F", "Frequency", "Hz", 27)

INPUT_REGISTERS_3P = (
    IO_AVAILABLE_REGISTER,
    FIRE_DETECTED_REGISTER,
    ENGINE_TEMP_REGISTER,
    AUX_TEMP0_REGISTER,
    AUX_TEMP1_REGISTER,
    OUTPUT_AVAILABLE_REGISTER,
    U1_REGISTER,
    P1_REGISTER,
    F_REGISTER,
    # only for 3-phase
    U2_REGISTER,
    U3_REGISTER,
    P2_REGISTER,
    P3_REGISTER,
)

INPUT_REGISTERS_1P = INPUT_REGISTERS_3P[:-4]

STATE_REGISTER = Register(
    category="State",
    name="State",
    description="Controller State",
    register_type=RegisterType.ENUM,
    enum={int(node): label for node, label in state_node_map().items()},
    unit="",
    sort=30,
    writable=False,
)

STATE_CHANGED_REGISTER = Register(
    category="State",
    name="StateChanged",
    description="Controller State Changed",
    register_type=RegisterType.TEXT,
    enum=None,
    unit="",
    sort=31,
    writable=False,
)

STATE_REGISTERS = (STATE_REGISTER, STATE_CHANGED_REGISTER)

IGNITION_REGISTER = new_on_off_register("Outputs", "Ignition", "Ignition", 40, False)
STARTER_REGISTER = new_on_off_register("Outputs", "Starter", "Starter", 41, False)
FAN_REGISTER = new_on_off_register("Outputs", "Fan", "Fan", 42, False)
PUMP_REGISTER = new_on_off_register("Outputs", "Pump", "Pump", 43, False)
LOAD_REGISTER = new_on_off_register("Outputs", "Load", "Load", 44, False)
TIME_IN_STATE_REGISTER = new_number_register("Outputs", "TimeInState", "Time in state", "s", 45)
IO_CHECK_REGISTER = new_on_off_register("Outputs", "IoCheck", "I/O check", 46, False)
OUTPUT_CHECK_REGISTER = new_on_off_register("Outputs", "OutputCheck", "Output check", 47, False)

OUTPUT_REGISTERS = (
    IGNITION_REGISTER,
    STARTER_REGISTER,
    FAN_REGISTER,
    PUMP_REGISTER,
    LOAD_REGISTER,
    TIME_IN_STATE_REGISTER,
    IO_CHECK_REGISTER,
    OUTPUT_CHECK_REGISTER,
)


def is_binded_input(name: str, input_bindings: Iterable[Any]) -> bool:
    """True when one of the bindings targets a register of this name."""
    return any(b.register_name == name for b in input_bindings)


def add_to_register_db(
    register_db: RegisterDb, single_phase: bool, input_bindings: Iterable[Any]
) -> list[Register]:
    """Add the genset registers and return the writable command registers.

    A switch bound to an input is published read-only; otherwise it becomes
    a command register.
    """
    bindings = list(input_bindings)
    command_registers: list[Register] = []

    for writable, read_only in (
        (ARM_SWITCH_REGISTER, ARM_SWITCH_REGISTER_RO),
        (COMMAND_SWITCH_REGISTER, COMMAND_SWITCH_REGISTER_RO),
        (RESET_SWITCH_REGISTER, RESET_SWITCH_REGISTER_RO),
    ):
        if is_binded_input(writable.name, bindings):
            register_db.add(read_only)
        else:
            command_registers.append(writable)

    register_db.add(*command_registers)
    register_db.add(*(INPUT_REGISTERS_1P if single_phase else INPUT_REGISTERS_3P))
    register_db.add(*STATE_REGISTERS)
    register_db.add(*OUTPUT_REGISTERS)

    return command_registers