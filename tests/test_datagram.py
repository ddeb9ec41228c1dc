import pytest

from tmcstep.datagram import (
    DatagramError,
    build_read_request,
    build_write_datagram,
    calculate_crc,
    parse_read_reply,
    reverse_data,
)


def test_reverse_data_swaps_bytes():
    assert reverse_data(0x12345678) == 0x78563412


@pytest.mark.parametrize("value", [0, 1, 0xFF, 0x12345678, 0xFFFFFFFF, 0xC10D0024])
def test_reverse_data_is_an_involution(value):
    assert reverse_data(reverse_data(value)) == value


@pytest.mark.parametrize("value", [-1, 1 << 32])
def test_reverse_data_rejects_out_of_range(value):
    with pytest.raises(ValueError):
        reverse_data(value)


def test_crc_of_zero_bytes_is_zero():
    assert calculate_crc(bytes(8)) == 0


def test_crc_ignores_last_byte():
    assert calculate_crc(b"\x05\x00\x06\x00") == calculate_crc(b"\x05\x00\x06\xAB")


def test_crc_rejects_empty():
    with pytest.raises(ValueError):
        calculate_crc(b"")


@pytest.mark.parametrize("bit", range(24))
def test_crc_detects_single_bit_flip(bit):
    request = bytearray(build_read_request(0, 0x06))
    original = calculate_crc(request)
    request[bit // 8] ^= 1 << (bit % 8)
    assert calculate_crc(request) != original


def test_write_datagram_layout():
    datagram = build_write_datagram(2, 0x10, 0x12345678)
    assert len(datagram) == 8
    assert datagram[0] == 0x05
    assert datagram[1] == 2
    assert datagram[2] == 0x90
    assert datagram[3:7] == bytes([0x12, 0x34, 0x56, 0x78])
    assert datagram[7] == calculate_crc(datagram)


def test_write_datagram_negative_data_is_twos_complement():
    datagram = build_write_datagram(0, 0x22, -1)
    assert datagram[3:7] == b"\xff\xff\xff\xff"


def test_read_request_layout():
    request = build_read_request(3, 0x6C)
    assert len(request) == 4
    assert request[0] == 0x05
    assert request[1] == 3
    assert request[2] == 0x6C
    assert request[3] == calculate_crc(request)


@pytest.mark.parametrize(
    "serial_address, register_address",
    [(-1, 0), (256, 0), (0, 0x80), (0, -1)],
)
def test_header_rejects_out_of_range(serial_address, register_address):
    with pytest.raises(ValueError):
        build_read_request(serial_address, register_address)
    with pytest.raises(ValueError):
        build_write_datagram(serial_address, register_address, 0)


@pytest.mark.parametrize("data", [-(1 << 31) - 1, 1 << 32])
def test_write_datagram_rejects_out_of_range_data(data):
    with pytest.raises(ValueError):
        build_write_datagram(0, 0, data)


@pytest.mark.parametrize("data", [0, 0x21000000, 0xC10D0024, 0xFFFFFFFF, 0x10000053])
def test_reply_round_trip(data):
    reply = build_write_datagram(0xFF, 0x06, data)
    assert parse_read_reply(reply) == data


def test_reply_with_bad_crc_raises():
    reply = bytearray(build_write_datagram(0xFF, 0x00, 0x1C0))
    reply[-1] ^= 0x01
    with pytest.raises(DatagramError):
        parse_read_reply(reply)


def test_reply_with_corrupted_data_raises():
    reply = bytearray(build_write_datagram(0xFF, 0x00, 0x1C0))
    reply[4] ^= 0x10
    with pytest.raises(DatagramError):
        parse_read_reply(reply)


@pytest.mark.parametrize("length", [0, 4, 7, 9])
def test_reply_with_wrong_length_raises(length):
    with pytest.raises(DatagramError):
        parse_read_reply(bytes(length))


def test_datagram_error_is_value_error():
    with pytest.raises(ValueError):
        parse_read_reply(b"\x05")