import pytest

from tmcstep.registers import (
    CHOPPER_CONFIG_DEFAULT,
    CURRENT_SETTING_MAX,
    HOLD_DELAY_MAX,
    HSTART_DEFAULT,
    MRES_001,
    MRES_256,
    PWM_CONFIG_DEFAULT,
    PWM_OFFSET_DEFAULT,
    TOFF_DEFAULT,
    ChopperConfig,
    CoolConfig,
    DriverCurrent,
    DriverStatus,
    GlobalConfig,
    GlobalStatus,
    InputPins,
    PwmAuto,
    PwmConfig,
    PwmScale,
    ReplyDelay,
    StandstillMode,
    constrain,
    current_setting_to_percent,
    exponent_to_mres,
    hold_delay_setting_to_percent,
    map_range,
    mres_to_microsteps,
    microsteps_to_exponent,
    percent_to_current_setting,
    percent_to_hold_delay_setting,
)

SAMPLE_VALUES = [0, 1, 0xFFFFFFFF, 0x12345678, 0x80000000, CHOPPER_CONFIG_DEFAULT, PWM_CONFIG_DEFAULT]


@pytest.mark.parametrize("value", SAMPLE_VALUES)
def test_round_trip(value):
    assert GlobalConfig.from_int(value).to_int() == value
    assert GlobalStatus.from_int(value).to_int() == value
    assert ReplyDelay.from_int(value).to_int() == value
    assert InputPins.from_int(value).to_int() == value
    assert DriverCurrent.from_int(value).to_int() == value
    assert CoolConfig.from_int(value).to_int() == value
    assert ChopperConfig.from_int(value).to_int() == value
    assert PwmConfig.from_int(value).to_int() == value
    assert PwmScale.from_int(value).to_int() == value
    assert PwmAuto.from_int(value).to_int() == value
    assert DriverStatus.from_int(value).to_int() == value


def test_default_instance_is_zero():
    assert GlobalConfig().to_int() == 0
    assert GlobalStatus().to_int() == 0
    assert ReplyDelay().to_int() == 0
    assert InputPins().to_int() == 0
    assert DriverCurrent().to_int() == 0
    assert CoolConfig().to_int() == 0
    assert ChopperConfig().to_int() == 0
    assert PwmConfig().to_int() == 0
    assert PwmScale().to_int() == 0
    assert PwmAuto().to_int() == 0
    assert DriverStatus().to_int() == 0


@pytest.mark.parametrize("value", [-1, 1 << 32])
def test_out_of_range_rejected(value):
    with pytest.raises(ValueError):
        GlobalConfig.from_int(value)
    with pytest.raises(ValueError):
        GlobalStatus.from_int(value)
    with pytest.raises(ValueError):
        ReplyDelay.from_int(value)
    with pytest.raises(ValueError):
        InputPins.from_int(value)
    with pytest.raises(ValueError):
        DriverCurrent.from_int(value)
    with pytest.raises(ValueError):
        CoolConfig.from_int(value)
    with pytest.raises(ValueError):
        ChopperConfig.from_int(value)
    with pytest.raises(ValueError):
        PwmConfig.from_int(value)
    with pytest.raises(ValueError):
        PwmScale.from_int(value)
    with pytest.raises(ValueError):
        PwmAuto.from_int(value)
    with pytest.raises(ValueError):
        DriverStatus.from_int(value)


def test_chopper_default_fields():
    config = ChopperConfig.from_int(CHOPPER_CONFIG_DEFAULT)
    assert config.toff == TOFF_DEFAULT
    assert config.hstart == HSTART_DEFAULT
    assert config.interpolation == 1
    assert config.mres == MRES_256


def test_pwm_default_fields():
    config = PwmConfig.from_int(PWM_CONFIG_DEFAULT)
    assert config.pwm_offset == PWM_OFFSET_DEFAULT
    assert config.pwm_autoscale == 1
    assert config.pwm_autograd == 1
    assert config.freewheel == StandstillMode.NORMAL


def test_field_update_survives_round_trip():
    config = PwmConfig.from_int(PWM_CONFIG_DEFAULT)
    config.freewheel = StandstillMode.BRAKING
    decoded = PwmConfig.from_int(config.to_int())
    assert decoded.freewheel == StandstillMode.BRAKING
    assert decoded.pwm_offset == PWM_OFFSET_DEFAULT


def test_oversized_field_is_truncated():
    current = DriverCurrent(irun=0x3F, ihold=0)
    decoded = DriverCurrent.from_int(current.to_int())
    assert decoded.irun == CURRENT_SETTING_MAX
    assert decoded.ihold == 0


def test_fields_do_not_overlap():
    reply = ReplyDelay(replydelay=5)
    decoded = ReplyDelay.from_int(reply.to_int())
    assert decoded.replydelay == 5
    assert decoded.reserved_0 == 0
    assert decoded.reserved_1 == 0


def test_input_version_is_top_byte():
    pins = InputPins.from_int(0x21000000)
    assert pins.version == 0x21
    assert pins.enn == 0


def test_driver_status_flags():
    status = DriverStatus(standstill=1, current_scaling=CURRENT_SETTING_MAX)
    decoded = DriverStatus.from_int(status.to_int())
    assert decoded.standstill == 1
    assert decoded.current_scaling == CURRENT_SETTING_MAX
    assert decoded.stealth_chop_mode == 0
    assert status.to_int() >> 31 == 1


@pytest.mark.parametrize("value,low,high,expected", [(5, 1, 10, 5), (0, 1, 10, 1), (20, 1, 10, 10)])
def test_constrain(value, low, high, expected):
    assert constrain(value, low, high) == expected


@pytest.mark.parametrize("value", [0, 3, 7, 10])
def test_map_range_identity(value):
    assert map_range(value, 0, 10, 0, 10) == value


def test_map_range_endpoints():
    assert map_range(0, 0, 100, 0, 31) == 0
    assert map_range(100, 0, 100, 0, 31) == 31


def test_map_range_truncates_toward_zero():
    assert map_range(-1, 0, 3, 0, 2) == 0


def test_map_range_empty_input_range():
    with pytest.raises(ValueError):
        map_range(1, 5, 5, 0, 10)


def test_percent_to_current_setting_limits():
    assert percent_to_current_setting(0) == 0
    assert percent_to_current_setting(100) == CURRENT_SETTING_MAX
    assert percent_to_current_setting(250) == CURRENT_SETTING_MAX
    assert percent_to_current_setting(-5) == 0


def test_percent_to_current_setting_monotonic():
    settings = [percent_to_current_setting(p) for p in range(101)]
    assert settings == sorted(settings)


def test_current_setting_to_percent_limits():
    assert current_setting_to_percent(0) == 0
    assert current_setting_to_percent(CURRENT_SETTING_MAX) == 100


@pytest.mark.parametrize("setting", range(CURRENT_SETTING_MAX + 1))
def test_current_setting_survives_percent_round_trip(setting):
    assert percent_to_current_setting(current_setting_to_percent(setting)) == setting


def test_hold_delay_limits():
    assert percent_to_hold_delay_setting(0) == 0
    assert percent_to_hold_delay_setting(100) == HOLD_DELAY_MAX
    assert percent_to_hold_delay_setting(1000) == HOLD_DELAY_MAX
    assert hold_delay_setting_to_percent(HOLD_DELAY_MAX) == 100


@pytest.mark.parametrize("setting", range(HOLD_DELAY_MAX + 1))
def test_hold_delay_survives_percent_round_trip(setting):
    assert percent_to_hold_delay_setting(hold_delay_setting_to_percent(setting)) == setting


def test_exponent_to_mres_endpoints():
    assert exponent_to_mres(0) == MRES_001
    assert exponent_to_mres(8) == MRES_256
    assert exponent_to_mres(12) == MRES_256


@pytest.mark.parametrize("exponent", range(9))
def test_exponent_mres_microsteps_agree(exponent):
    assert mres_to_microsteps(exponent_to_mres(exponent)) == 2 ** exponent
    assert microsteps_to_exponent(2 ** exponent) == exponent


def test_reserved_mres_means_256():
    assert mres_to_microsteps(0b1111) == 256


def test_microsteps_round_down_and_clamp():
    assert microsteps_to_exponent(3) == 1
    assert microsteps_to_exponent(0) == 0
    assert microsteps_to_exponent(1000) == microsteps_to_exponent(256)