"""Device that runs the genset controller on values from the storages."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, fields, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from iotdevice.device_state import DeviceRunError, DeviceState
from iotdevice.genset import Controller, Inputs, Outputs, Params, State, StateNode
from iotdevice.genset_registers import (
    ARM_SWITCH_REGISTER,
    ARM_SWITCH_REGISTER_RO,
    AUX_TEMP0_REGISTER,
    AUX_TEMP1_REGISTER,
    COMMAND_SWITCH_REGISTER,
    COMMAND_SWITCH_REGISTER_RO,
    ENGINE_TEMP_REGISTER,
    F_REGISTER,
    FAN_REGISTER,
    FIRE_DETECTED_REGISTER,
    IGNITION_REGISTER,
    IO_AVAILABLE_REGISTER,
    IO_CHECK_REGISTER,
    LOAD_REGISTER,
    OUTPUT_AVAILABLE_REGISTER,
    OUTPUT_CHECK_REGISTER,
    P1_REGISTER,
    P2_REGISTER,
    P3_REGISTER,
    PUMP_REGISTER,
    RESET_SWITCH_REGISTER,
    RESET_SWITCH_REGISTER_RO,
    STARTER_REGISTER,
    STATE_CHANGED_REGISTER,
    STATE_REGISTER,
    TIME_IN_STATE_REGISTER,
    U1_REGISTER,
    U2_REGISTER,
    U3_REGISTER,
    add_to_register_db,
    bool_to_on_off,
)
from iotdevice.registers import Register, RegisterType
from iotdevice.value_storage import ValueStorage, ValueSubscription
from iotdevice.values import EnumValue, NumericValue, TextValue, Value

logger = logging.getLogger(__name__)

Setter = Callable[[Any, Value], None]


class UnknownInputNameError(ValueError):
    """The name does not denote an input of the genset controller."""


@dataclass(frozen=True)
class Binding:
    """Feeds a register of another device into a controller input."""

    name: str
    device_name: str
    register_name: str


@dataclass(frozen=True)
class GensetConfig:
    """Bindings and controller parameters of a genset device."""

    input_bindings: Sequence[Binding] = ()
    output_bindings: Sequence[Binding] = ()

    priming_timeout: timedelta = timedelta(0)
    cranking_timeout: timedelta = timedelta(0)
    warm_up_timeout: timedelta = timedelta(0)
    warm_up_min_time: timedelta = timedelta(0)
    warm_up_temp: float = 0.0
    engine_cool_down_timeout: timedelta = timedelta(0)
    engine_cool_down_min_time: timedelta = timedelta(0)
    engine_cool_down_temp: float = 0.0
    enclosure_cool_down_timeout: timedelta = timedelta(0)
    enclosure_cool_down_min_time: timedelta = timedelta(0)
    enclosure_cool_down_temp: float = 0.0

    engine_temp_min: float = 0.0
    engine_temp_max: float = 0.0
    aux_temp0_min: float = 0.0
    aux_temp0_max: float = 0.0
    aux_temp1_min: float = 0.0
    aux_temp1_max: float = 0.0

    single_phase: bool = False
    u_min: float = 0.0
    u_max: float = 0.0
    f_min: float = 0.0
    f_max: float = 0.0
    p_max: float = 0.0
    p_tot_max: float = 0.0

    def params(self) -> Params:
        """The controller parameters held by this configuration."""
        return Params(**{f.name: getattr(self, f.name) for f in fields(Params)})


# input name -> (register to publish, field of Inputs, register type)
_INPUTS: dict[str, tuple[Register, str, RegisterType]] = {
    "ArmSwitch": (ARM_SWITCH_REGISTER, "arm_switch", RegisterType.ENUM),
    "ArmSwitchRO": (ARM_SWITCH_REGISTER_RO, "arm_switch", RegisterType.ENUM),
    "CommandSwitch": (COMMAND_SWITCH_REGISTER, "command_switch", RegisterType.ENUM),
    "CommandSwitchRO": (COMMAND_SWITCH_REGISTER_RO, "command_switch", RegisterType.ENUM),
    "ResetSwitch": (RESET_SWITCH_REGISTER, "reset_switch", RegisterType.ENUM),
    "ResetSwitchRO": (RESET_SWITCH_REGISTER_RO, "reset_switch", RegisterType.ENUM),
    "IOAvailable": (IO_AVAILABLE_REGISTER, "io_available", RegisterType.ENUM),
    "FireDetected": (FIRE_DETECTED_REGISTER, "fire_detected", RegisterType.ENUM),
    "EngineTemp": (ENGINE_TEMP_REGISTER, "engine_temp", RegisterType.NUMBER),
    "AuxTemp0": (AUX_TEMP0_REGISTER, "aux_temp0", RegisterType.NUMBER),
    "AuxTemp1": (AUX_TEMP1_REGISTER, "aux_temp1", RegisterType.NUMBER),
    "OutputAvailable": (OUTPUT_AVAILABLE_REGISTER, "output_available", RegisterType.ENUM),
    "U1": (U1_REGISTER, "u1", RegisterType.NUMBER),
    "U2": (U2_REGISTER, "u2", RegisterType.NUMBER),
    "U3": (U3_REGISTER, "u3", RegisterType.NUMBER),
    "P1": (P1_REGISTER, "p1", RegisterType.NUMBER),
    "P2": (P2_REGISTER, "p2", RegisterType.NUMBER),
    "P3": (P3_REGISTER, "p3", RegisterType.NUMBER),
    "F": (F_REGISTER, "f", RegisterType.NUMBER),
}


def _value_filter(device_name: str, register_name: str) -> Callable[[Value], bool]:
    return lambda v: v.device_name == device_name and v.register.name == register_name


class GensetDevice(DeviceState):
    """Genset controller exposed as a device with registers."""

    def __init__(
        self,
        device_config: Any,
        genset_config: GensetConfig,
        state_storage: ValueStorage,
        command_storage: ValueStorage,
    ) -> None:
        super().__init__(device_config, state_storage)
        self.genset_config = genset_config
        self.command_storage = command_storage
        self.controller: Optional[Controller] = None

    def model(self) -> str:
        return "Genset Controller"

    def input_setter(self, name: str) -> Setter:
        """Setter that feeds a value into the named controller input.

        Raises UnknownInputNameError for names that are no input.
        """
        try:
            register, field_name, kind = _INPUTS[name]
        except KeyError:
            raise UnknownInputNameError(f"unknown input name: {name}") from None

        if kind == RegisterType.ENUM:

            def set_enum(controller: Any, value: Value) -> None:
                if not isinstance(value, EnumValue):
                    logger.warning(
                        "gensetDevice: %s: expected an enum, got %s",
                        name,
                        value.register.register_type,
                    )
                    return
                on = value.enum_idx != 0
                controller.update_inputs(lambda i: replace(i, **{field_name: on}))
                self.state_storage.fill(EnumValue(self.name, register, value.enum_idx))

            return set_enum

        def set_number(controller: Any, value: Value) -> None:
            if not isinstance(value, NumericValue):
                logger.warning(
                    "gensetDevice: %s: expected a number, got %s",
                    name,
                    value.register.register_type,
                )
                return
            number = value.value
            controller.update_inputs(lambda i: replace(i, **{field_name: number}))
            self.state_storage.fill(NumericValue(self.name, register, number))

        return set_number

    def _setter_or_fail(self, name: str) -> Setter:
        try:
            return self.input_setter(name)
        except UnknownInputNameError as e:
            raise DeviceRunError(
                f"gensetDevice[{self.name}]: input setter failed: {e}", immediate=True
            ) from e

    def run(self, stop: threading.Event) -> None:
        """Run the controller until stop is set.

        Raises DeviceRunError (immediate) when an input binding is invalid.
        """
        name = self.name
        storage = self.state_storage
        cfg = self.genset_config

        controller = Controller(cfg.params(), StateNode.OFF, Inputs())
        self.controller = controller

        command_registers = add_to_register_db(
            self.register_db, cfg.single_phase, cfg.input_bindings
        )

        subscriptions: list[ValueSubscription] = []
        threads: list[threading.Thread] = []
        halt = threading.Event()

        def start(target: Callable[[], None]) -> None:
            thread = threading.Thread(target=target, daemon=True)
            threads.append(thread)
            thread.start()

        def feed(sub: ValueSubscription, setter: Setter, log_commands: bool) -> Callable[[], None]:
            def loop() -> None:
                for value in sub.drain():
                    if log_commands:
                        logger.info("gensetDevice[%s]: command %s", name, value)
                    setter(controller, value)

            return loop

        self.set_available(True)
        try:
            for binding in cfg.input_bindings:
                setter = self._setter_or_fail(binding.name)
                sub = storage.subscribe_send_initial(
                    _value_filter(binding.device_name, binding.register_name)
                )
                subscriptions.append(sub)
                start(feed(sub, setter, False))

            for register in command_registers:
                setter = self._setter_or_fail(register.name)
                _, sub = self.command_storage.subscribe_return_initial(
                    _value_filter(name, register.name)
                )
                subscriptions.append(sub)
                start(feed(sub, setter, True))

            def tick() -> None:
                while not halt.wait(1.0):
                    now = datetime.now(timezone.utc)
                    controller.update_inputs(lambda i, t=now: replace(i, time=t))

            start(tick)

            last_node = StateNode.OFF

            def on_state_update(state: State) -> None:
                nonlocal last_node
                if state.node != last_node:
                    last_node = state.node
                    logger.info("gensetDevice[%s]: state changed: %s", name, state.node)
                    storage.fill(EnumValue(name, STATE_REGISTER, int(state.node)))
                storage.fill(TextValue(name, STATE_CHANGED_REGISTER, str(state.changed)))

            def on_output_update(o: Outputs) -> None:
                for register, flag in (
                    (IGNITION_REGISTER, o.ignition),
                    (STARTER_REGISTER, o.starter),
                    (FAN_REGISTER, o.fan),
                    (PUMP_REGISTER, o.pump),
                    (LOAD_REGISTER, o.load),
                ):
                    storage.fill(EnumValue(name, register, bool_to_on_off(flag)))
                storage.fill(
                    NumericValue(name, TIME_IN_STATE_REGISTER, o.time_in_state.total_seconds())
                )
                storage.fill(EnumValue(name, IO_CHECK_REGISTER, bool_to_on_off(o.io_check)))
                storage.fill(
                    EnumValue(name, OUTPUT_CHECK_REGISTER, bool_to_on_off(o.output_check))
                )

            controller.on_state_update = on_state_update
            controller.on_output_update = on_output_update

            controller.run()
            try:
                stop.wait()
            finally:
                controller.end()
        finally:
            halt.set()
            for sub in subscriptions:
                sub.cancel()
            for thread in threads:
                thread.join()
            self.set_available(False)