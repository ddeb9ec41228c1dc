"""Command that prints a TMC2209's settings and status."""

from __future__ import annotations

import argparse
import sys

import serial

from .driver import TMC2209
from .registers import SerialAddress

_RULE = "*" * 25

_SETTINGS_FIELDS = (
    "is_communicating",
    "is_setup",
    "software_enabled",
    "microsteps_per_step",
    "inverse_motor_direction_enabled",
    "stealth_chop_enabled",
    "standstill_mode",
    "irun_percent",
    "irun_register_value",
    "ihold_percent",
    "ihold_register_value",
    "iholddelay_percent",
    "iholddelay_register_value",
    "automatic_current_scaling_enabled",
    "automatic_gradient_adaptation_enabled",
    "pwm_offset",
    "pwm_gradient",
    "cool_step_enabled",
    "analog_current_scaling_enabled",
    "internal_sense_resistors_enabled",
)

_STATUS_FIELDS = (
    "over_temperature_warning",
    "over_temperature_shutdown",
    "short_to_ground_a",
    "short_to_ground_b",
    "low_side_short_a",
    "low_side_short_b",
    "open_load_a",
    "open_load_b",
    "over_temperature_120c",
    "over_temperature_143c",
    "over_temperature_150c",
    "over_temperature_157c",
    "current_scaling",
    "stealth_chop_mode",
    "standstill",
)


def format_settings(settings):
    """Return one 'settings.<name> = <value>' line per reported setting."""
    lines = []
    for name in _SETTINGS_FIELDS:
        value = getattr(settings, name)
        if name == "standstill_mode":
            text = value.name.lower()
        else:
            text = str(int(value))
        lines.append(f"settings.{name} = {text}")
    return "\n".join(lines)


def format_status(status):
    """Return one 'status.<name> = <value>' line per status flag."""
    return "\n".join(f"status.{name} = {int(getattr(status, name))}" for name in _STATUS_FIELDS)


def _section(title, body):
    return "\n".join((_RULE, title, body, _RULE, ""))


def report(driver):
    """Read settings, enable state and status from a driver and format them."""
    return "\n".join(
        (
            _section("getSettings()", format_settings(driver.get_settings())),
            _section("hardwareDisabled()", f"hardware_disabled = {int(driver.hardware_disabled())}"),
            _section("getStatus()", format_status(driver.get_status())),
        )
    )


def main(argv=None):
    parser = argparse.ArgumentParser(description="Report the settings and status of a TMC2209.")
    parser.add_argument("port", help="serial port connected to the driver's UART")
    parser.add_argument("--baud", type=int, default=115200, help="baud rate (default 115200)")
    parser.add_argument(
        "--address", type=int, choices=[a.value for a in SerialAddress], default=0, help="serial address"
    )
    args = parser.parse_args(argv)

    try:
        port = serial.Serial(port=args.port, baudrate=args.baud, timeout=0.05)
    except serial.SerialException as exc:
        print(f"cannot open {args.port}: {exc}", file=sys.stderr)
        return 1
    try:
        driver = TMC2209()
        driver.setup(port, SerialAddress(args.address))
        print(report(driver))
    finally:
        port.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())