from dataclasses import dataclass

from iotdevice.genset import StateNode, state_node_map
from iotdevice.genset_registers import (
    ARM_SWITCH_REGISTER,
    COMMAND_SWITCH_REGISTER,
    ON_OFF_ENUM,
    OUTPUT_REGISTERS,
    RESET_SWITCH_REGISTER,
    STATE_REGISTER,
    add_to_register_db,
    bool_to_on_off,
    is_binded_input,
    new_number_register,
    new_on_off_register,
)
from iotdevice.register_db import RegisterDb
from iotdevice.registers import RegisterType


@dataclass
class _Binding:
    name: str
    device_name: str
    register_name: str


def test_bool_to_on_off():
    assert bool_to_on_off(True) == 1
    assert bool_to_on_off(False) == 0


def test_on_off_enum_labels():
    reg = new_on_off_register("Outputs", "Fan", "Fan", 42, False)
    assert reg.enum[bool_to_on_off(False)] == "Off"
    assert reg.enum[bool_to_on_off(True)] == "On"
    assert dict(reg.enum) == {0: "Off", 1: "On"}


def test_new_on_off_register():
    reg = new_on_off_register("Switches", "ArmSwitch", "Arm switch", 0, True)
    assert reg.register_type == RegisterType.ENUM
    assert reg.enum == ON_OFF_ENUM
    assert reg.writable is True
    assert reg.unit == ""
    assert reg.equals(ARM_SWITCH_REGISTER)


def test_new_number_register():
    reg = new_number_register("Inputs", "F", "Frequency", "Hz", 27)
    assert reg.register_type == RegisterType.NUMBER
    assert reg.enum is None
    assert reg.writable is False
    assert reg.unit == "Hz"
    assert reg.sort == 27


def _input_names(single_phase):
    db = RegisterDb()
    add_to_register_db(db, single_phase, [])
    return {r.name for r in db.get_all() if r.category == "Inputs"}


def test_single_phase_inputs_drop_extra_phases():
    names_1p = _input_names(True)
    names_3p = _input_names(False)
    assert len(names_1p) == len(names_3p) - 4
    assert names_3p - names_1p == {"U2", "U3", "P2", "P3"}


def test_state_register_enum_covers_all_nodes():
    assert STATE_REGISTER.enum[int(StateNode.ERROR)] == "Error"
    assert STATE_REGISTER.enum[int(StateNode.ENCLOSURE_COOL_DOWN)] == "EnclosureCoolDown"
    assert set(STATE_REGISTER.enum.values()) == set(state_node_map().values())


def test_is_binded_input_checks_register_name():
    bindings = [_Binding("x", "dev", "ArmSwitch")]
    assert is_binded_input("ArmSwitch", bindings)
    assert not is_binded_input("CommandSwitch", bindings)
    assert not is_binded_input("ArmSwitch", [])


def test_add_to_register_db_without_bindings():
    db = RegisterDb()
    commands = add_to_register_db(db, False, [])
    assert commands == [ARM_SWITCH_REGISTER, COMMAND_SWITCH_REGISTER, RESET_SWITCH_REGISTER]
    assert db.get_by_name("ArmSwitchRO") is None
    assert db.get_by_name("ArmSwitch") == ARM_SWITCH_REGISTER
    assert db.get_by_name("U3") is not None
    for reg in OUTPUT_REGISTERS:
        assert db.get_by_name(reg.name) == reg
    assert db.get_by_name("State") == STATE_REGISTER


def test_add_to_register_db_with_binding_and_single_phase():
    db = RegisterDb()
    commands = add_to_register_db(db, True, [_Binding("ArmSwitch", "io", "ArmSwitch")])
    assert commands == [COMMAND_SWITCH_REGISTER, RESET_SWITCH_REGISTER]
    assert db.get_by_name("ArmSwitch") is None
    ro = db.get_by_name("ArmSwitchRO")
    assert ro.writable is False
    assert db.get_by_name("U2") is None
    assert db.get_by_name("U1") is not None