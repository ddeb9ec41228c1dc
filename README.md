# tmcstep

Control TMC2209 stepper motor drivers from Python through their single-wire
UART interface, using a serial port such as one opened with pyserial.

The package builds and checks the driver's datagrams (sync byte, serial
address, register address, data and CRC), keeps a copy of the write-only
configuration registers, and gives each driver feature a method of its own:
currents, microstepping, StealthChop, CoolStep, StallGuard, standstill mode
and velocity control.

## Installing

```
pip install .
```

For the tests:

```
pip install .[test]
pytest
```

## Using the driver

```python
import serial

from tmcstep.driver import TMC2209
from tmcstep.registers import SerialAddress, StandstillMode

port = serial.Serial("/dev/ttyUSB0", 115200, timeout=0.1)

driver = TMC2209()
driver.setup(port, SerialAddress.SERIAL_ADDRESS_0)

driver.set_run_current(80)
driver.set_hold_current(20)
driver.set_microsteps_per_step(16)
driver.set_standstill_mode(StandstillMode.FREEWHEELING)
driver.enable_stealth_chop()
driver.enable()

driver.move_at_velocity(20000)

if driver.is_setup_and_communicating():
    settings = driver.get_settings()
    print(settings.microsteps_per_step, settings.irun_percent)
    status = driver.get_status()
    print(status.over_temperature_warning, status.standstill)
```

`setup` writes the driver's start-up configuration: serial operation mode,
register defaults, a cleared drive error, minimal motor current, and the
driver disabled with automatic current scaling and gradient adaptation off.
Call `enable` before moving the motor.

The port passed to `setup` needs `in_waiting`, `write`, `read`, `flush` and
`reset_input_buffer`, as a pyserial port has. Before `setup` is called,
setter methods only change the stored register copies and every read
returns 0.

When a hardware enable pin is wired, pass `set_hardware_enable_pin` a
callable that takes the pin level (`True` for high). It is driven high at
once, low by `enable` and high by `disable`.

Writes are one-way. A read sends a request, drops the bytes echoed back on
the single-wire bus, and checks the reply's CRC, retrying up to
`max_read_retries` times on a bad CRC. A read returns 0 when no reply
arrives or every retry fails, so a silent driver shows up as
`is_communicating()` being false.

## Lower-level pieces

- `tmcstep.registers` holds the register addresses (`RegisterAddress`), the
  enumerations (`SerialAddress`, `StandstillMode`, `CurrentIncrement`,
  `MeasurementCount`), a dataclass for each register with `from_int` and
  `to_int`, and the conversions between percentages and register values
  (`percent_to_current_setting`, `current_setting_to_percent`,
  `percent_to_hold_delay_setting`, `hold_delay_setting_to_percent`) and
  between microsteps and the MRES field (`microsteps_to_exponent`,
  `exponent_to_mres`, `mres_to_microsteps`).
- `tmcstep.datagram` builds write datagrams and read requests
  (`build_write_datagram`, `build_read_request`), checks replies
  (`parse_read_reply`, raising `DatagramError` on a wrong length or CRC),
  computes the CRC (`calculate_crc`) and swaps byte order (`reverse_data`).

## Command line

```
tmcstep /dev/ttyUSB0
```

opens the serial port, sets the driver up, and prints its settings, whether
it is disabled by its hardware enable input, and its driver status. The
options are `--baud` (default 115200) and `--address` (0 to 3, default 0).
It exits with status 1 if the port cannot be opened.

## What it does not do

The package talks to the driver only over UART. It does not generate step
and direction pulses; motion without them is limited to
`move_at_velocity`, which uses the driver's internal step generator.