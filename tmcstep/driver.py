"""Control of a TMC2209 stepper driver over its single-wire UART."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from .datagram import (
    WRITE_READ_REPLY_DATAGRAM_SIZE,
    DatagramError,
    build_read_request,
    build_write_datagram,
    parse_read_reply,
)
from .registers import (
    CHOPPER_CONFIG_DEFAULT,
    COOLCONF_DEFAULT,
    CURRENT_SETTING_MAX,
    CURRENT_SETTING_MIN,
    DOUBLE_EDGE_DISABLE,
    DOUBLE_EDGE_ENABLE,
    HEND_DEFAULT,
    HSTART_DEFAULT,
    IHOLD_DEFAULT,
    IHOLDDELAY_DEFAULT,
    IRUN_DEFAULT,
    PWM_CONFIG_DEFAULT,
    REPLY_DELAY_MAX,
    SEIMIN_LOWER_SETTING,
    SEIMIN_UPPER_CURRENT_LIMIT,
    SEIMIN_UPPER_SETTING,
    SEMAX_MAX,
    SEMAX_MIN,
    SEMIN_MAX,
    SEMIN_MIN,
    SEMIN_OFF,
    SGTHRS_DEFAULT,
    TBL_DEFAULT,
    TCOOLTHRS_DEFAULT,
    TOFF_DEFAULT,
    TOFF_DISABLE,
    TPOWERDOWN_DEFAULT,
    TPWMTHRS_DEFAULT,
    VACTUAL_DEFAULT,
    VACTUAL_STEP_DIR_INTERFACE,
    VERSION,
    VSENSE_DISABLE,
    VSENSE_ENABLE,
    ChopperConfig,
    CoolConfig,
    CurrentIncrement,
    DriverCurrent,
    DriverStatus,
    GlobalConfig,
    GlobalStatus,
    InputPins,
    MeasurementCount,
    PwmAuto,
    PwmConfig,
    PwmScale,
    RegisterAddress,
    ReplyDelay,
    SerialAddress,
    StandstillMode,
    constrain,
    current_setting_to_percent,
    exponent_to_mres,
    hold_delay_setting_to_percent,
    microsteps_to_exponent,
    mres_to_microsteps,
    percent_to_current_setting,
    percent_to_hold_delay_setting,
)


class SerialPort(Protocol):
    """The part of a serial port the driver uses; a pyserial port fits."""

    @property
    def in_waiting(self) -> int: ...

    def write(self, data: bytes) -> Optional[int]: ...

    def read(self, size: int) -> bytes: ...

    def flush(self) -> None: ...

    def reset_input_buffer(self) -> None: ...


@dataclass
class Settings:
    """Driver settings as read back from the chip."""

    is_communicating: bool = False
    is_setup: bool = False
    software_enabled: bool = False
    microsteps_per_step: int = 0
    inverse_motor_direction_enabled: bool = False
    index_shows_overtemp: bool = False
    index_shows_step: bool = False
    stealth_chop_enabled: bool = False
    standstill_mode: StandstillMode = StandstillMode.NORMAL
    irun_percent: int = 0
    irun_register_value: int = 0
    ihold_percent: int = 0
    ihold_register_value: int = 0
    iholddelay_percent: int = 0
    iholddelay_register_value: int = 0
    automatic_current_scaling_enabled: bool = False
    automatic_gradient_adaptation_enabled: bool = False
    pwm_offset: int = 0
    pwm_gradient: int = 0
    cool_step_enabled: bool = False
    analog_current_scaling_enabled: bool = False
    internal_sense_resistors_enabled: bool = False


class TMC2209:
    """A TMC2209 stepper driver reached through a serial port.

    Until ``setup`` is given a port, writes only update the stored
    register copies and reads return 0.
    """

    echo_timeout = 0.004
    reply_timeout = 0.010
    read_retry_delay = 0.020
    max_read_retries = 5

    def __init__(self):
        self._serial: Optional[SerialPort] = None
        self._serial_address = SerialAddress.SERIAL_ADDRESS_0
        self._enable_pin: Optional[Callable[[bool], object]] = None
        self._cool_step_enabled = False
        self._toff = TOFF_DEFAULT
        self._global_config = GlobalConfig()
        self._driver_current = DriverCurrent()
        self._chopper_config = ChopperConfig()
        self._pwm_config = PwmConfig()
        self._cool_config = CoolConfig()

    def setup(self, serial, serial_address=SerialAddress.SERIAL_ADDRESS_0):
        """Attach an opened serial port and load the driver's start-up configuration."""
        self._serial = serial
        self._set_operation_mode_to_serial(SerialAddress(serial_address))
        self._set_registers_to_defaults()
        self.clear_drive_error()
        self._minimize_motor_current()
        self.disable()
        self.disable_automatic_current_scaling()
        self.disable_automatic_gradient_adaptation()

    # unidirectional methods

    def set_hardware_enable_pin(self, pin):
        """Use a callable taking the pin level (True is high) as the enable input."""
        self._enable_pin = pin
        pin(True)

    def enable(self):
        if self._enable_pin is not None:
            self._enable_pin(False)
        self._chopper_config.toff = self._toff
        self._write_stored_chopper_config()

    def disable(self):
        if self._enable_pin is not None:
            self._enable_pin(True)
        self._chopper_config.toff = TOFF_DISABLE
        self._write_stored_chopper_config()

    def set_microsteps_per_step(self, microsteps_per_step):
        """Set microstepping; values that are not powers of two are rounded down."""
        self.set_microsteps_per_step_power_of_two(microsteps_to_exponent(microsteps_per_step))

    def set_microsteps_per_step_power_of_two(self, exponent):
        self._chopper_config.mres = exponent_to_mres(exponent)
        self._write_stored_chopper_config()

    def set_run_current(self, percent):
        self._driver_current.irun = percent_to_current_setting(percent)
        self._write_stored_driver_current()

    def set_hold_current(self, percent):
        self._driver_current.ihold = percent_to_current_setting(percent)
        self._write_stored_driver_current()

    def set_hold_delay(self, percent):
        self._driver_current.iholddelay = percent_to_hold_delay_setting(percent)
        self._write_stored_driver_current()

    def set_all_current_values(self, run_current_percent, hold_current_percent, hold_delay_percent):
        self._driver_current.irun = percent_to_current_setting(run_current_percent)
        self._driver_current.ihold = percent_to_current_setting(hold_current_percent)
        self._driver_current.iholddelay = percent_to_hold_delay_setting(hold_delay_percent)
        self._write_stored_driver_current()

    def set_rms_current(self, milliamps, r_sense, hold_multiplier=0.5):
        """Set run and hold current from an RMS current and sense resistance."""
        scale = 32.0 * 1.41421 * milliamps / 1000.0 * (r_sense + 0.02)
        current_scale = int(scale / 0.325 - 1)
        if current_scale < 16:
            self.enable_vsense()
            current_scale = int(scale / 0.180 - 1)
        else:
            self.disable_vsense()
        current_scale = constrain(current_scale, CURRENT_SETTING_MIN, CURRENT_SETTING_MAX)
        self._driver_current.irun = current_scale
        self._driver_current.ihold = constrain(
            int(current_scale * hold_multiplier), CURRENT_SETTING_MIN, CURRENT_SETTING_MAX
        )
        self._write_stored_driver_current()

    def enable_double_edge(self):
        self._chopper_config.double_edge = DOUBLE_EDGE_ENABLE
        self._write_stored_chopper_config()

    def disable_double_edge(self):
        self._chopper_config.double_edge = DOUBLE_EDGE_DISABLE
        self._write_stored_chopper_config()

    def enable_vsense(self):
        self._chopper_config.vsense = VSENSE_ENABLE
        self._write_stored_chopper_config()

    def disable_vsense(self):
        self._chopper_config.vsense = VSENSE_DISABLE
        self._write_stored_chopper_config()

    def enable_inverse_motor_direction(self):
        self._global_config.shaft = 1
        self._write_stored_global_config()

    def disable_inverse_motor_direction(self):
        self._global_config.shaft = 0
        self._write_stored_global_config()

    def enable_index_overtemp(self):
        self._global_config.index_otpw = 1
        self._write_stored_global_config()

    def disable_index_overtemp(self):
        self._global_config.index_otpw = 0
        self._write_stored_global_config()

    def enable_index_step(self):
        self._global_config.index_step = 1
        self._write_stored_global_config()

    def disable_index_step(self):
        self._global_config.index_step = 0
        self._write_stored_global_config()

    def set_standstill_mode(self, mode):
        self._pwm_config.freewheel = StandstillMode(mode)
        self._write_stored_pwm_config()

    def enable_automatic_current_scaling(self):
        self._pwm_config.pwm_autoscale = 1
        self._write_stored_pwm_config()

    def disable_automatic_current_scaling(self):
        self._pwm_config.pwm_autoscale = 0
        self._write_stored_pwm_config()

    def enable_automatic_gradient_adaptation(self):
        self._pwm_config.pwm_autograd = 1
        self._write_stored_pwm_config()

    def disable_automatic_gradient_adaptation(self):
        self._pwm_config.pwm_autograd = 0
        self._write_stored_pwm_config()

    def set_pwm_offset(self, pwm_amplitude):
        self._pwm_config.pwm_offset = pwm_amplitude
        self._write_stored_pwm_config()

    def set_pwm_gradient(self, pwm_amplitude):
        self._pwm_config.pwm_grad = pwm_amplitude
        self._write_stored_pwm_config()

    def set_power_down_delay(self, power_down_delay):
        self._write(RegisterAddress.TPOWERDOWN, power_down_delay)

    def set_reply_delay(self, reply_delay):
        """Set the reply delay, capped at REPLY_DELAY_MAX."""
        delay = min(reply_delay, REPLY_DELAY_MAX)
        self._write(RegisterAddress.REPLYDELAY, ReplyDelay(replydelay=delay).to_int())

    def move_at_velocity(self, microsteps_per_period):
        self._write(RegisterAddress.VACTUAL, microsteps_per_period)

    def move_using_step_dir_interface(self):
        self._write(RegisterAddress.VACTUAL, VACTUAL_STEP_DIR_INTERFACE)

    def enable_stealth_chop(self):
        self._global_config.enable_spread_cycle = 0
        self._write_stored_global_config()

    def disable_stealth_chop(self):
        self._global_config.enable_spread_cycle = 1
        self._write_stored_global_config()

    def set_stealth_chop_duration_threshold(self, duration_threshold):
        self._write(RegisterAddress.TPWMTHRS, duration_threshold)

    def set_stall_guard_threshold(self, stall_guard_threshold):
        self._write(RegisterAddress.SGTHRS, stall_guard_threshold)

    def enable_cool_step(self, lower_threshold=1, upper_threshold=0):
        """Enable CoolStep; lower threshold is kept in 1..15, upper in 0..15."""
        self._cool_config.semin = constrain(lower_threshold, SEMIN_MIN, SEMIN_MAX)
        self._cool_config.semax = constrain(upper_threshold, SEMAX_MIN, SEMAX_MAX)
        self._write(RegisterAddress.COOLCONF, self._cool_config.to_int())
        self._cool_step_enabled = True

    def disable_cool_step(self):
        self._cool_config.semin = SEMIN_OFF
        self._write(RegisterAddress.COOLCONF, self._cool_config.to_int())
        self._cool_step_enabled = False

    def set_cool_step_current_increment(self, current_increment):
        self._cool_config.seup = CurrentIncrement(current_increment)
        self._write(RegisterAddress.COOLCONF, self._cool_config.to_int())

    def set_cool_step_measurement_count(self, measurement_count):
        self._cool_config.sedn = MeasurementCount(measurement_count)
        self._write(RegisterAddress.COOLCONF, self._cool_config.to_int())

    def set_cool_step_duration_threshold(self, duration_threshold):
        self._write(RegisterAddress.TCOOLTHRS, duration_threshold)

    def enable_analog_current_scaling(self):
        self._global_config.i_scale_analog = 1
        self._write_stored_global_config()

    def disable_analog_current_scaling(self):
        self._global_config.i_scale_analog = 0
        self._write_stored_global_config()

    def use_external_sense_resistors(self):
        self._global_config.internal_rsense = 0
        self._write_stored_global_config()

    def use_internal_sense_resistors(self):
        self._global_config.internal_rsense = 1
        self._write_stored_global_config()

    # bidirectional methods

    def get_version(self):
        return InputPins.from_int(self._read(RegisterAddress.IOIN)).version

    def is_communicating(self):
        return self.get_version() == VERSION

    def is_setup_and_communicating(self):
        return bool(GlobalConfig.from_int(self._read(RegisterAddress.GCONF)).pdn_disable)

    def is_communicating_but_not_setup(self):
        return self.is_communicating() and not self.is_setup_and_communicating()

    def hardware_disabled(self):
        return bool(InputPins.from_int(self._read(RegisterAddress.IOIN)).enn)

    def stall_detected(self):
        return bool(InputPins.from_int(self._read(RegisterAddress.IOIN)).diag)

    def get_microsteps_per_step(self):
        return mres_to_microsteps(self._chopper_config.mres)

    def get_settings(self):
        """Read back the configuration; all fields are off when not communicating."""
        if not self.is_communicating():
            return Settings(standstill_mode=StandstillMode(self._pwm_config.freewheel))

        self._global_config = GlobalConfig.from_int(self._read(RegisterAddress.GCONF))
        self._chopper_config = ChopperConfig.from_int(self._read(RegisterAddress.CHOPCONF))
        self._pwm_config = PwmConfig.from_int(self._read(RegisterAddress.PWMCONF))

        gconf = self._global_config
        current = self._driver_current
        pwm = self._pwm_config
        return Settings(
            is_communicating=True,
            is_setup=bool(gconf.pdn_disable),
            software_enabled=self._chopper_config.toff > TOFF_DISABLE,
            microsteps_per_step=self.get_microsteps_per_step(),
            inverse_motor_direction_enabled=bool(gconf.shaft),
            index_shows_overtemp=bool(gconf.index_otpw),
            index_shows_step=bool(gconf.index_step),
            stealth_chop_enabled=not gconf.enable_spread_cycle,
            standstill_mode=StandstillMode(pwm.freewheel),
            irun_percent=current_setting_to_percent(current.irun),
            irun_register_value=current.irun,
            ihold_percent=current_setting_to_percent(current.ihold),
            ihold_register_value=current.ihold,
            iholddelay_percent=hold_delay_setting_to_percent(current.iholddelay),
            iholddelay_register_value=current.iholddelay,
            automatic_current_scaling_enabled=bool(pwm.pwm_autoscale),
            automatic_gradient_adaptation_enabled=bool(pwm.pwm_autograd),
            pwm_offset=pwm.pwm_offset,
            pwm_gradient=pwm.pwm_grad,
            cool_step_enabled=self._cool_step_enabled,
            analog_current_scaling_enabled=bool(gconf.i_scale_analog),
            internal_sense_resistors_enabled=bool(gconf.internal_rsense),
        )

    def get_status(self):
        return DriverStatus.from_int(self._read(RegisterAddress.DRV_STATUS))

    def get_global_status(self):
        return GlobalStatus.from_int(self._read(RegisterAddress.GSTAT))

    def clear_reset(self):
        self._write(RegisterAddress.GSTAT, GlobalStatus(reset=1).to_int())

    def clear_drive_error(self):
        self._write(RegisterAddress.GSTAT, GlobalStatus(drv_err=1).to_int())

    def get_interface_transmission_counter(self):
        return self._read(RegisterAddress.IFCNT) & 0xFF

    def get_interstep_duration(self):
        return self._read(RegisterAddress.TSTEP)

    def get_stall_guard_result(self):
        return self._read(RegisterAddress.SG_RESULT) & 0xFFFF

    def get_pwm_scale_sum(self):
        return PwmScale.from_int(self._read(RegisterAddress.PWM_SCALE)).pwm_scale_sum

    def get_pwm_scale_auto(self):
        return PwmScale.from_int(self._read(RegisterAddress.PWM_SCALE)).pwm_scale_auto

    def get_pwm_offset_auto(self):
        return PwmAuto.from_int(self._read(RegisterAddress.PWM_AUTO)).pwm_offset_auto

    def get_pwm_gradient_auto(self):
        return PwmAuto.from_int(self._read(RegisterAddress.PWM_AUTO)).pwm_gradient_auto

    def get_microstep_counter(self):
        return self._read(RegisterAddress.MSCNT) & 0xFFFF

    # internals

    def _set_operation_mode_to_serial(self, serial_address):
        self._serial_address = serial_address
        self._global_config = GlobalConfig(
            i_scale_analog=0,
            index_otpw=0,
            index_step=1,
            pdn_disable=1,
            mstep_reg_select=1,
            multistep_filt=1,
        )
        self._write_stored_global_config()

    def _set_registers_to_defaults(self):
        self._driver_current = DriverCurrent(
            ihold=IHOLD_DEFAULT, irun=IRUN_DEFAULT, iholddelay=IHOLDDELAY_DEFAULT
        )
        self._write(RegisterAddress.IHOLD_IRUN, self._driver_current.to_int())

        chopper = ChopperConfig.from_int(CHOPPER_CONFIG_DEFAULT)
        chopper.tbl = TBL_DEFAULT
        chopper.hend = HEND_DEFAULT
        chopper.hstart = HSTART_DEFAULT
        chopper.toff = TOFF_DEFAULT
        self._chopper_config = chopper
        self._write_stored_chopper_config()

        self._pwm_config = PwmConfig.from_int(PWM_CONFIG_DEFAULT)
        self._write_stored_pwm_config()

        self._cool_config = CoolConfig.from_int(COOLCONF_DEFAULT)
        self._write(RegisterAddress.COOLCONF, self._cool_config.to_int())

        self._write(RegisterAddress.TPOWERDOWN, TPOWERDOWN_DEFAULT)
        self._write(RegisterAddress.TPWMTHRS, TPWMTHRS_DEFAULT)
        self._write(RegisterAddress.VACTUAL, VACTUAL_DEFAULT)
        self._write(RegisterAddress.TCOOLTHRS, TCOOLTHRS_DEFAULT)
        self._write(RegisterAddress.SGTHRS, SGTHRS_DEFAULT)
        self._write(RegisterAddress.COOLCONF, COOLCONF_DEFAULT)

    def _minimize_motor_current(self):
        self._driver_current.irun = CURRENT_SETTING_MIN
        self._driver_current.ihold = CURRENT_SETTING_MIN
        self._write_stored_driver_current()

    def _write_stored_global_config(self):
        self._write(RegisterAddress.GCONF, self._global_config.to_int())

    def _write_stored_chopper_config(self):
        self._write(RegisterAddress.CHOPCONF, self._chopper_config.to_int())

    def _write_stored_pwm_config(self):
        self._write(RegisterAddress.PWMCONF, self._pwm_config.to_int())

    def _write_stored_driver_current(self):
        self._write(RegisterAddress.IHOLD_IRUN, self._driver_current.to_int())
        if self._driver_current.irun >= SEIMIN_UPPER_CURRENT_LIMIT:
            self._cool_config.seimin = SEIMIN_UPPER_SETTING
        else:
            self._cool_config.seimin = SEIMIN_LOWER_SETTING
        if self._cool_step_enabled:
            self._write(RegisterAddress.COOLCONF, self._cool_config.to_int())

    def _write(self, register_address, data):
        if self._serial is None:
            return
        self._serial.write(build_write_datagram(self._serial_address, register_address, data))

    def _wait_for(self, count, timeout):
        deadline = time.monotonic() + timeout
        while self._serial.in_waiting < count:
            if time.monotonic() >= deadline:
                return False
            time.sleep(0)
        return True

    def _send_bidirectional(self, datagram):
        port = self._serial
        port.flush()
        port.reset_input_buffer()
        port.write(datagram)
        port.flush()
        # The single-wire bus echoes every sent byte back on the receive line.
        if self._wait_for(len(datagram), self.echo_timeout):
            port.read(len(datagram))

    def _read(self, register_address):
        # A silent or garbled chip reads as 0, which callers treat as "not communicating".
        if self._serial is None:
            return 0
        request = build_read_request(self._serial_address, register_address)
        for _ in range(self.max_read_retries):
            self._send_bidirectional(request)
            if not self._wait_for(WRITE_READ_REPLY_DATAGRAM_SIZE, self.reply_timeout):
                return 0
            reply = self._serial.read(WRITE_READ_REPLY_DATAGRAM_SIZE)
            try:
                return parse_read_reply(reply)
            except DatagramError:
                time.sleep(self.read_retry_delay)
        return 0