"""State machine that controls a generator set (genset)."""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Any, Optional

logger = logging.getLogger(__name__)

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
_END = object()


class StateNode(IntEnum):
    """Node of the genset state machine."""

    ERROR = 0
    RESET = 1
    OFF = 2
    READY = 3
    PRIMING = 4
    CRANKING = 5
    WARM_UP = 6
    PRODUCING = 7
    ENGINE_COOL_DOWN = 8
    ENCLOSURE_COOL_DOWN = 9

    def __str__(self) -> str:
        return _NODE_NAMES.get(self, "Unknown")


_NODE_NAMES = {
    StateNode.ERROR: "Error",
    StateNode.RESET: "Reset",
    StateNode.OFF: "Off",
    StateNode.READY: "Ready",
    StateNode.PRIMING: "Priming",
    StateNode.CRANKING: "Cranking",
    StateNode.WARM_UP: "WarmUp",
    StateNode.PRODUCING: "Producing",
    StateNode.ENGINE_COOL_DOWN: "EngineCoolDown",
    StateNode.ENCLOSURE_COOL_DOWN: "EnclosureCoolDown",
}


def state_node_map() -> dict[StateNode, str]:
    """Every state node with its display name."""
    return dict(_NODE_NAMES)


def _b(value: bool) -> str:
    return str(bool(value)).lower()


@dataclass(frozen=True)
class Params:
    """Parameters of the genset controller."""

    # transition params
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

    # I/O check
    engine_temp_min: float = 0.0
    engine_temp_max: float = 0.0
    aux_temp0_min: float = 0.0
    aux_temp0_max: float = 0.0
    aux_temp1_min: float = 0.0
    aux_temp1_max: float = 0.0

    # output check
    single_phase: bool = False
    u_min: float = 0.0
    u_max: float = 0.0
    f_min: float = 0.0
    f_max: float = 0.0
    p_max: float = 0.0
    p_tot_max: float = 0.0


@dataclass(frozen=True)
class Inputs:
    """Inputs of the controller; time drives the time-based transitions."""

    time: datetime = _ZERO_TIME

    arm_switch: bool = False
    command_switch: bool = False
    reset_switch: bool = False

    io_available: bool = False
    fire_detected: bool = False
    engine_temp: float = 0.0
    aux_temp0: float = 0.0
    aux_temp1: float = 0.0

    output_available: bool = False
    u1: float = 0.0
    u2: float = 0.0
    u3: float = 0.0
    p1: float = 0.0
    p2: float = 0.0
    p3: float = 0.0
    f: float = 0.0

    def __str__(self) -> str:
        return (
            f"Inputs{{Time: {self.time}, CommandSwitch: {_b(self.command_switch)}, "
            f"ResetSwitch: {_b(self.reset_switch)}, IOAvailable: {_b(self.io_available)}, "
            f"ArmSwitch: {_b(self.arm_switch)}, FireDetected: {_b(self.fire_detected)}, "
            f"EngineTemp: {self.engine_temp}, AuxTemp0: {self.aux_temp0}, "
            f"AuxTemp1: {self.aux_temp1}, OutputAvailable: {_b(self.output_available)}, "
            f"U1: {self.u1}, U2: {self.u2}, U3: {self.u3}, "
            f"P1: {self.p1}, P2: {self.p2}, P3: {self.p3}, F: {self.f}}}"
        )


@dataclass(frozen=True)
class State:
    """Current node and the time it was entered."""

    node: StateNode
    changed: datetime

    def __str__(self) -> str:
        return f"State{{Node:\t{self.node},\tChanged: {self.changed}}}"


@dataclass(frozen=True)
class Outputs:
    """Outputs computed from the state and the inputs."""

    ignition: bool = False
    starter: bool = False
    fan: bool = False
    pump: bool = False
    load: bool = False

    time_in_state: timedelta = timedelta(0)
    io_check: bool = False
    output_check: bool = False

    def __str__(self) -> str:
        return (
            f"Outputs{{Ignition: {_b(self.ignition)}, Starter: {_b(self.starter)}, "
            f"Fan: {_b(self.fan)}, Pump: {_b(self.pump)}, Load: {_b(self.load)} "
            f"TimeInState: {self.time_in_state}, IoCheck: {_b(self.io_check)}, "
            f"OutputCheck: {_b(self.output_check)}}}"
        )


InputChange = Callable[[Inputs], Inputs]


class Controller:
    """Runs the state machine in a worker thread fed with input changes.

    Set on_state_update and on_output_update before calling run(); they are
    called from the worker thread.
    """

    def __init__(self, params: Params, initial_node: StateNode, initial_inputs: Inputs) -> None:
        self.params = params
        self._inputs = initial_inputs
        self._state = State(initial_node, initial_inputs.time)
        self._outputs = compute_outputs(params, initial_inputs, self._state)
        self._changes: queue.Queue[Any] = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._ended = False
        self.on_state_update: Optional[Callable[[State], None]] = None
        self.on_output_update: Optional[Callable[[Outputs], None]] = None

    def update_inputs(self, change: InputChange) -> None:
        """Queue a change of the inputs."""
        self._changes.put((change, None))

    def update_inputs_sync(self, change: InputChange) -> None:
        """Apply a change and wait until state, outputs and callbacks are done."""
        done = threading.Event()
        self._changes.put((change, done))
        done.wait()

    def run(self) -> None:
        """Start the worker; returns after the initial updates were sent."""
        init_done = threading.Event()
        self._thread = threading.Thread(target=self._loop, args=(init_done,), daemon=True)
        self._thread.start()
        init_done.wait()

    def end(self) -> None:
        """Stop the worker."""
        if self._ended:
            return
        self._ended = True
        self._changes.put(_END)
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()

    def __enter__(self) -> "Controller":
        self.run()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.end()

    def _loop(self, init_done: threading.Event) -> None:
        try:
            if self.on_state_update is not None:
                self.on_state_update(self._state)
            if self.on_output_update is not None:
                self.on_output_update(self._outputs)
            self._compute()
        except Exception:
            logger.exception("genset controller: initial computation failed")
        finally:
            init_done.set()

        while True:
            item = self._changes.get()
            if item is _END:
                return
            change, done = item
            try:
                next_inputs = change(self._inputs)
                if next_inputs != self._inputs:
                    self._inputs = next_inputs
                    self._compute()
            except Exception:
                logger.exception("genset controller: input change failed")
            finally:
                if done is not None:
                    done.set()

    def _compute(self) -> None:
        # the final state is assumed to be reached within 8 iterations
        for _ in range(8):
            next_state = compute_state(self.params, self._inputs, self._state)
            if next_state == self._state:
                break
            self._state = next_state
            if self.on_state_update is not None:
                self.on_state_update(self._state)

        next_outputs = compute_outputs(self.params, self._inputs, self._state)
        if next_outputs == self._outputs:
            return
        self._outputs = next_outputs
        if self.on_output_update is not None:
            self.on_output_update(self._outputs)


def compute_state(params: Params, inputs: Inputs, prev: State) -> State:
    """Next state; the changed time moves only when the node changes."""
    node = compute_state_node(params, inputs, prev)
    changed = inputs.time if node != prev.node else prev.changed
    return State(node, changed)


def compute_state_node(params: Params, inputs: Inputs, prev: State) -> StateNode:
    """Next node of the state machine."""
    p, i = params, inputs
    if i.reset_switch:
        return StateNode.RESET

    if prev.node not in (StateNode.RESET, StateNode.OFF, StateNode.ERROR) and not io_check(p, i):
        return StateNode.ERROR

    out_check = output_check(p, i)
    if (
        prev.node in (StateNode.WARM_UP, StateNode.PRODUCING, StateNode.ENGINE_COOL_DOWN)
        and not out_check
    ):
        return StateNode.ERROR

    master = i.arm_switch and i.command_switch
    time_in_state = i.time - prev.changed
    node = prev.node

    if node == StateNode.RESET:
        if not i.reset_switch and not master:
            return StateNode.OFF
    elif node == StateNode.OFF:
        if i.io_available:
            return StateNode.READY
    elif node == StateNode.READY:
        if master:
            return StateNode.PRIMING
    elif node == StateNode.PRIMING:
        if not master:
            return StateNode.READY
        if time_in_state >= p.priming_timeout:
            return StateNode.CRANKING
    elif node == StateNode.CRANKING:
        if not master:
            return StateNode.READY
        if time_in_state >= p.cranking_timeout:
            return StateNode.ERROR
        if out_check:
            return StateNode.WARM_UP
    elif node == StateNode.WARM_UP:
        if not master:
            return StateNode.ENCLOSURE_COOL_DOWN
        if time_in_state >= p.warm_up_min_time and (
            time_in_state >= p.warm_up_timeout or i.engine_temp >= p.warm_up_temp
        ):
            return StateNode.PRODUCING
    elif node == StateNode.PRODUCING:
        if not master:
            return StateNode.ENGINE_COOL_DOWN
    elif node == StateNode.ENGINE_COOL_DOWN:
        if master:
            return StateNode.PRODUCING
        if time_in_state >= p.engine_cool_down_min_time and (
            time_in_state >= p.engine_cool_down_timeout
            or i.engine_temp <= p.engine_cool_down_temp
        ):
            return StateNode.ENCLOSURE_COOL_DOWN
    elif node == StateNode.ENCLOSURE_COOL_DOWN:
        if master:
            return StateNode.PRIMING
        if time_in_state >= p.enclosure_cool_down_min_time and (
            time_in_state >= p.enclosure_cool_down_timeout
            or i.engine_temp <= p.enclosure_cool_down_temp
        ):
            return StateNode.READY

    return prev.node


def compute_outputs(params: Params, inputs: Inputs, state: State) -> Outputs:
    """Outputs for the given state and inputs."""
    n = state.node
    running = n in (
        StateNode.CRANKING,
        StateNode.WARM_UP,
        StateNode.PRODUCING,
        StateNode.ENGINE_COOL_DOWN,
    )
    return Outputs(
        ignition=running,
        starter=n == StateNode.CRANKING,
        fan=running or n in (StateNode.PRIMING, StateNode.ENCLOSURE_COOL_DOWN),
        pump=running or n == StateNode.PRIMING,
        load=n == StateNode.PRODUCING,
        time_in_state=inputs.time - state.changed,
        io_check=io_check(params, inputs),
        output_check=output_check(params, inputs),
    )


def io_check(params: Params, inputs: Inputs) -> bool:
    """True when the I/O controller is up, no fire and temperatures in range."""
    p, i = params, inputs
    return (
        not i.fire_detected
        and i.io_available
        and p.engine_temp_min <= i.engine_temp <= p.engine_temp_max
        and p.aux_temp0_min <= i.aux_temp0 <= p.aux_temp0_max
        and p.aux_temp1_min <= i.aux_temp1 <= p.aux_temp1_max
    )


def output_check(params: Params, inputs: Inputs) -> bool:
    """True when voltage, frequency and power of the output are in range."""
    p, i = params, inputs
    if not i.output_available:
        return False
    if i.f < p.f_min or i.f > p.f_max:
        return False
    if p.single_phase:
        return p.u_min <= i.u1 <= p.u_max and i.p1 <= p.p_max and i.p1 <= p.p_tot_max
    return (
        p.u_min <= i.u1 <= p.u_max
        and p.u_min <= i.u2 <= p.u_max
        and p.u_min <= i.u3 <= p.u_max
        and i.p1 <= p.p_max
        and i.p2 <= p.p_max
        and i.p3 <= p.p_max
        and i.p1 + i.p2 + i.p3 <= p.p_tot_max
    )