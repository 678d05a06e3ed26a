# iotdevice

Building blocks for collecting and controlling data from IoT devices.

- **Registers** (`iotdevice.registers`): `Register` describes a data point
  with its category, name, description, `RegisterType`, enum labels, unit,
  sort order and writability. `FilterConfig` and `register_filter()` build
  include/skip predicates. The predicate checks an included register first,
  then a skipped register, then an included category, then a skipped
  category, and otherwise falls back to the default. `filter_registers()`
  and `sort_registers()` work on lists of registers.
- **Values** (`iotdevice.values`): `NumericValue`, `TextValue`, `EnumValue`
  and `NullValue` bind a value to a device name and a register. The module
  also provides the filters `device_name_value_filter()`,
  `register_value_filter()`, `all_value_filter()`, `non_null_value_filter()`
  and `device_non_null_value_filter()`, and a `sink_log()` that logs every
  value of an iterable.
- **Register database** (`iotdevice.register_db`): `RegisterDb` is a
  thread-safe set of registers keyed by name. Adding a register that has not
  changed does nothing. `subscribe()` returns a `RegisterSubscription`, an
  iterable that yields the matching registers already known and then each
  new or changed one until `cancel()` is called.
- **Value storage** (`iotdevice.value_storage`): `ValueStorage` keeps the
  latest value per device and register. A background thread processes values
  in order. Only changed values are stored and passed to subscribers, and a
  `NullValue` removes the entry. `wait()` blocks until every queued value has
  been processed. After `shutdown()`, `fill()` raises `RuntimeError`.
  Subscriptions (`ValueSubscription`) either deliver the current values first
  (`subscribe_send_initial()`) or return them alongside the subscription
  (`subscribe_return_initial()`).
- **Device state** (`iotdevice.device_state`): `DeviceState` is the common
  part of a device. It holds a config with a name, the state storage, a
  `RegisterDb` that already contains the `Available` register, and the
  availability helpers `set_available()` and
  `subscribe_available_send_initial()`. `DeviceRunError` reports a failed
  run; its `immediate` flag marks failures that happen before the device
  went online.
- **Genset controller** (`iotdevice.genset`): a state machine for a generator
  set. It runs through Off, Ready, Priming, Cranking, WarmUp, Producing,
  EngineCoolDown and EnclosureCoolDown, with Error and Reset nodes, and
  applies I/O and output checks. The pure functions `compute_state()`,
  `compute_outputs()`, `io_check()` and `output_check()` can be used without
  the threaded `Controller`.
- **Genset device** (`iotdevice.genset_registers`, `iotdevice.genset_device`):
  `GensetDevice` runs the controller as a device. `Binding`s feed registers of
  other devices into controller inputs. Switches that are not bound are
  exposed as writable command registers and read from a command storage.
  State and outputs are published to the state storage.
  `GensetDevice.run(stop)` runs until the `threading.Event` `stop` is set.

## Installation

```
pip install .
```

The package uses only the Python standard library and supports Python 3.10
and later.

## Example: value storage

```python
from iotdevice.registers import Register, RegisterType
from iotdevice.values import NumericValue, device_name_value_filter
from iotdevice.value_storage import ValueStorage

power = Register(
    category="Essential",
    name="TotalPower",
    description="Total Power",
    register_type=RegisterType.NUMBER,
    enum={},
    unit="W",
    sort=0,
    writable=False,
)

storage = ValueStorage()
storage.fill(NumericValue("meter", power, 1250.0))
storage.wait()

for value in storage.get_state_filtered(device_name_value_filter("meter")):
    print(value.device_name, value)   # meter TotalPower=1250.000000W

storage.shutdown()
```

## Example: genset controller

```python
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from iotdevice.genset import Controller, Inputs, Params, StateNode

params = Params(
    priming_timeout=timedelta(seconds=10),
    engine_temp_min=10, engine_temp_max=90,
    aux_temp0_min=0, aux_temp0_max=100,
    aux_temp1_min=-10, aux_temp1_max=150,
)
t0 = datetime(2000, 1, 1, tzinfo=timezone.utc)

controller = Controller(params, StateNode.OFF, Inputs(time=t0))
controller.on_state_update = print
controller.run()
controller.update_inputs_sync(lambda i: replace(i, io_available=True, engine_temp=20))
# prints the initial Off state, then the Ready state
controller.end()
```

`update_inputs(change)` queues a change and returns at once.
`update_inputs_sync(change)` waits until the state, the outputs and the
callbacks have been processed. The callbacks run in the controller's worker
thread. A `Controller` can also be used as a context manager, which calls
`run()` on entry and `end()` on exit.

## What this package does not do

It has no command-line program and no server. It does not talk to real
devices: there are no readers for HTTP, Modbus, GPIO, MQTT or serial devices.
Values enter only through `ValueStorage.fill()`. The only device provided is
the genset controller device. Configuration is built in code from
`DeviceConfig`, `FilterConfig`, `GensetConfig` and `Binding`; there is no
configuration file reader.

## Running the tests

```
pip install .[test]
pytest
```