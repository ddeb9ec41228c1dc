"""Register map of the TMC2209 stepper driver and value conversions."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import IntEnum
from functools import lru_cache

REGISTER_BITS = 32
_REGISTER_MASK = (1 << REGISTER_BITS) - 1

VERSION = 0x21
REPLY_DELAY_MAX = 15
CURRENT_SCALING_MAX = 31

PERCENT_MIN = 0
PERCENT_MAX = 100
CURRENT_SETTING_MIN = 0
CURRENT_SETTING_MAX = 31
HOLD_DELAY_MIN = 0
HOLD_DELAY_MAX = 15
IHOLD_DEFAULT = 16
IRUN_DEFAULT = 31
IHOLDDELAY_DEFAULT = 1

TPOWERDOWN_DEFAULT = 20
TPWMTHRS_DEFAULT = 0
VACTUAL_DEFAULT = 0
VACTUAL_STEP_DIR_INTERFACE = 0
TCOOLTHRS_DEFAULT = 0
SGTHRS_DEFAULT = 0
COOLCONF_DEFAULT = 0

SEIMIN_UPPER_CURRENT_LIMIT = 20
SEIMIN_LOWER_SETTING = 0
SEIMIN_UPPER_SETTING = 1
SEMIN_OFF = 0
SEMIN_MIN = 1
SEMIN_MAX = 15
SEMAX_MIN = 0
SEMAX_MAX = 15

CHOPPER_CONFIG_DEFAULT = 0x10000053
TBL_DEFAULT = 0b10
HEND_DEFAULT = 0
HSTART_DEFAULT = 5
TOFF_DEFAULT = 3
TOFF_DISABLE = 0
DOUBLE_EDGE_DISABLE = 0
DOUBLE_EDGE_ENABLE = 1
VSENSE_DISABLE = 0
VSENSE_ENABLE = 1

PWM_CONFIG_DEFAULT = 0xC10D0024
PWM_OFFSET_DEFAULT = 0x24
PWM_GRAD_DEFAULT = 0x14

MRES_256 = 0b0000
MRES_001 = 0b1000
MICROSTEPS_PER_STEP_MIN = 1
MICROSTEPS_PER_STEP_MAX = 256
_MAX_EXPONENT = 8


class SerialAddress(IntEnum):
    SERIAL_ADDRESS_0 = 0
    SERIAL_ADDRESS_1 = 1
    SERIAL_ADDRESS_2 = 2
    SERIAL_ADDRESS_3 = 3


class StandstillMode(IntEnum):
    NORMAL = 0
    FREEWHEELING = 1
    STRONG_BRAKING = 2
    BRAKING = 3


class CurrentIncrement(IntEnum):
    CURRENT_INCREMENT_1 = 0
    CURRENT_INCREMENT_2 = 1
    CURRENT_INCREMENT_4 = 2
    CURRENT_INCREMENT_8 = 3


class MeasurementCount(IntEnum):
    MEASUREMENT_COUNT_32 = 0
    MEASUREMENT_COUNT_8 = 1
    MEASUREMENT_COUNT_2 = 2
    MEASUREMENT_COUNT_1 = 3


class RegisterAddress(IntEnum):
    GCONF = 0x00
    GSTAT = 0x01
    IFCNT = 0x02
    REPLYDELAY = 0x03
    IOIN = 0x06
    IHOLD_IRUN = 0x10
    TPOWERDOWN = 0x11
    TSTEP = 0x12
    TPWMTHRS = 0x13
    TCOOLTHRS = 0x14
    VACTUAL = 0x22
    SGTHRS = 0x40
    SG_RESULT = 0x41
    COOLCONF = 0x42
    MSCNT = 0x6A
    MSCURACT = 0x6B
    CHOPCONF = 0x6C
    DRV_STATUS = 0x6F
    PWMCONF = 0x70
    PWM_SCALE = 0x71
    PWM_AUTO = 0x72


def _bits(width: int, *, reserved: bool = False):
    return field(default=0, repr=not reserved, metadata={"width": width})


@lru_cache(maxsize=None)
def _layout(cls: type) -> tuple[tuple[str, int, int], ...]:
    """Return (name, offset, mask) for each field, least significant first."""
    offset = 0
    layout = []
    for f in fields(cls):
        width = f.metadata["width"]
        layout.append((f.name, offset, (1 << width) - 1))
        offset += width
    return tuple(layout)


def _decode(cls, value):
    if not 0 <= value <= _REGISTER_MASK:
        raise ValueError(f"register value out of 32-bit range: {value!r}")
    return cls(**{name: (value >> offset) & mask for name, offset, mask in _layout(cls)})


def _encode(register) -> int:
    result = 0
    for name, offset, mask in _layout(type(register)):
        result |= (int(getattr(register, name)) & mask) << offset
    return result


@dataclass
class GlobalConfig:
    i_scale_analog: int = _bits(1)
    internal_rsense: int = _bits(1)
    enable_spread_cycle: int = _bits(1)
    shaft: int = _bits(1)
    index_otpw: int = _bits(1)
    index_step: int = _bits(1)
    pdn_disable: int = _bits(1)
    mstep_reg_select: int = _bits(1)
    multistep_filt: int = _bits(1)
    test_mode: int = _bits(1)
    reserved: int = _bits(22, reserved=True)

    @classmethod
    def from_int(cls, value):
        """Decode a 32-bit register value."""
        return _decode(cls, value)

    def to_int(self):
        """Encode the fields as a 32-bit register value."""
        return _encode(self)


@dataclass
class GlobalStatus:
    reset: int = _bits(1)
    drv_err: int = _bits(1)
    uv_cp: int = _bits(1)
    reserved: int = _bits(29, reserved=True)

    @classmethod
    def from_int(cls, value):
        """Decode a 32-bit register value."""
        return _decode(cls, value)

    def to_int(self):
        """Encode the fields as a 32-bit register value."""
        return _encode(self)


@dataclass
class ReplyDelay:
    reserved_0: int = _bits(8, reserved=True)
    replydelay: int = _bits(4)
    reserved_1: int = _bits(20, reserved=True)

    @classmethod
    def from_int(cls, value):
        """Decode a 32-bit register value."""
        return _decode(cls, value)

    def to_int(self):
        """Encode the fields as a 32-bit register value."""
        return _encode(self)


@dataclass
class InputPins:
    enn: int = _bits(1)
    reserved_0: int = _bits(1, reserved=True)
    ms1: int = _bits(1)
    ms2: int = _bits(1)
    diag: int = _bits(1)
    reserved_1: int = _bits(1, reserved=True)
    pdn_serial: int = _bits(1)
    step: int = _bits(1)
    spread_en: int = _bits(1)
    direction: int = _bits(1)
    reserved_2: int = _bits(14, reserved=True)
    version: int = _bits(8)

    @classmethod
    def from_int(cls, value):
        """Decode a 32-bit register value."""
        return _decode(cls, value)

    def to_int(self):
        """Encode the fields as a 32-bit register value."""
        return _encode(self)


@dataclass
class DriverCurrent:
    ihold: int = _bits(5)
    reserved_0: int = _bits(3, reserved=True)
    irun: int = _bits(5)
    reserved_1: int = _bits(3, reserved=True)
    iholddelay: int = _bits(4)
    reserved_2: int = _bits(12, reserved=True)

    @classmethod
    def from_int(cls, value):
        """Decode a 32-bit register value."""
        return _decode(cls, value)

    def to_int(self):
        """Encode the fields as a 32-bit register value."""
        return _encode(self)


@dataclass
class CoolConfig:
    semin: int = _bits(4)
    reserved_0: int = _bits(1, reserved=True)
    seup: int = _bits(2)
    reserved_1: int = _bits(1, reserved=True)
    semax: int = _bits(4)
    reserved_2: int = _bits(1, reserved=True)
    sedn: int = _bits(2)
    seimin: int = _bits(1)
    reserved_3: int = _bits(16, reserved=True)

    @classmethod
    def from_int(cls, value):
        """Decode a 32-bit register value."""
        return _decode(cls, value)

    def to_int(self):
        """Encode the fields as a 32-bit register value."""
        return _encode(self)


@dataclass
class ChopperConfig:
    toff: int = _bits(4)
    hstart: int = _bits(3)
    hend: int = _bits(4)
    reserved_0: int = _bits(4, reserved=True)
    tbl: int = _bits(2)
    vsense: int = _bits(1)
    reserved_1: int = _bits(6, reserved=True)
    mres: int = _bits(4)
    interpolation: int = _bits(1)
    double_edge: int = _bits(1)
    diss2g: int = _bits(1)
    diss2vs: int = _bits(1)

    @classmethod
    def from_int(cls, value):
        """Decode a 32-bit register value."""
        return _decode(cls, value)

    def to_int(self):
        """Encode the fields as a 32-bit register value."""
        return _encode(self)


@dataclass
class PwmConfig:
    pwm_offset: int = _bits(8)
    pwm_grad: int = _bits(8)
    pwm_freq: int = _bits(2)
    pwm_autoscale: int = _bits(1)
    pwm_autograd: int = _bits(1)
    freewheel: int = _bits(2)
    reserved: int = _bits(2, reserved=True)
    pwm_reg: int = _bits(4)
    pwm_lim: int = _bits(4)

    @classmethod
    def from_int(cls, value):
        """Decode a 32-bit register value."""
        return _decode(cls, value)

    def to_int(self):
        """Encode the fields as a 32-bit register value."""
        return _encode(self)


@dataclass
class PwmScale:
    pwm_scale_sum: int = _bits(8)
    reserved_0: int = _bits(8, reserved=True)
    pwm_scale_auto: int = _bits(9)
    reserved_1: int = _bits(7, reserved=True)

    @classmethod
    def from_int(cls, value):
        """Decode a 32-bit register value."""
        return _decode(cls, value)

    def to_int(self):
        """Encode the fields as a 32-bit register value."""
        return _encode(self)


@dataclass
class PwmAuto:
    pwm_offset_auto: int = _bits(8)
    reserved_0: int = _bits(8, reserved=True)
    pwm_gradient_auto: int = _bits(8)
    reserved_1: int = _bits(8, reserved=True)

    @classmethod
    def from_int(cls, value):
        """Decode a 32-bit register value."""
        return _decode(cls, value)

    def to_int(self):
        """Encode the fields as a 32-bit register value."""
        return _encode(self)


@dataclass
class DriverStatus:
    over_temperature_warning: int = _bits(1)
    over_temperature_shutdown: int = _bits(1)
    short_to_ground_a: int = _bits(1)
    short_to_ground_b: int = _bits(1)
    low_side_short_a: int = _bits(1)
    low_side_short_b: int = _bits(1)
    open_load_a: int = _bits(1)
    open_load_b: int = _bits(1)
    over_temperature_120c: int = _bits(1)
    over_temperature_143c: int = _bits(1)
    over_temperature_150c: int = _bits(1)
    over_temperature_157c: int = _bits(1)
    reserved0: int = _bits(4, reserved=True)
    current_scaling: int = _bits(5)
    reserved1: int = _bits(9, reserved=True)
    stealth_chop_mode: int = _bits(1)
    standstill: int = _bits(1)

    @classmethod
    def from_int(cls, value):
        """Decode a 32-bit register value."""
        return _decode(cls, value)

    def to_int(self):
        """Encode the fields as a 32-bit register value."""
        return _encode(self)


def constrain(value, low, high):
    """Clamp value into the closed range [low, high]."""
    return low if value < low else high if value > high else value


def map_range(value, in_min, in_max, out_min, out_max):
    """Linearly rescale an integer, truncating the quotient toward zero."""
    span = in_max - in_min
    if span == 0:
        raise ValueError("input range must not be empty")
    numerator = (value - in_min) * (out_max - out_min)
    quotient = abs(numerator) // abs(span)
    if (numerator < 0) != (span < 0):
        quotient = -quotient
    return quotient + out_min


def percent_to_current_setting(percent):
    """Convert a 0-100 percentage into a 0-31 current register setting."""
    clamped = constrain(percent, PERCENT_MIN, PERCENT_MAX)
    return map_range(clamped, PERCENT_MIN, PERCENT_MAX, CURRENT_SETTING_MIN, CURRENT_SETTING_MAX)


def current_setting_to_percent(current_setting):
    """Convert a 0-31 current register setting into a percentage."""
    return map_range(current_setting, CURRENT_SETTING_MIN, CURRENT_SETTING_MAX, PERCENT_MIN, PERCENT_MAX)


def percent_to_hold_delay_setting(percent):
    """Convert a 0-100 percentage into a 0-15 hold delay setting."""
    clamped = constrain(percent, PERCENT_MIN, PERCENT_MAX)
    return map_range(clamped, PERCENT_MIN, PERCENT_MAX, HOLD_DELAY_MIN, HOLD_DELAY_MAX)


def hold_delay_setting_to_percent(hold_delay_setting):
    """Convert a 0-15 hold delay setting into a percentage."""
    return map_range(hold_delay_setting, HOLD_DELAY_MIN, HOLD_DELAY_MAX, PERCENT_MIN, PERCENT_MAX)


def exponent_to_mres(exponent):
    """Return the MRES field for 2**exponent microsteps; out of range means 256."""
    if 0 <= exponent <= _MAX_EXPONENT:
        return MRES_001 - exponent
    return MRES_256


def mres_to_microsteps(mres):
    """Return microsteps per step encoded by an MRES field value."""
    if 0 <= mres <= MRES_001:
        return 1 << (MRES_001 - mres)
    return MICROSTEPS_PER_STEP_MAX


def microsteps_to_exponent(microsteps_per_step):
    """Return the power-of-two exponent, rounding microsteps down to 1..256."""
    clamped = constrain(microsteps_per_step, MICROSTEPS_PER_STEP_MIN, MICROSTEPS_PER_STEP_MAX)
    return clamped.bit_length() - 1