"""UART datagrams exchanged with the TMC2209: framing, CRC and byte order."""

from __future__ import annotations

SYNC = 0b0101
RW_READ = 0
RW_WRITE = 1
READ_REPLY_SERIAL_ADDRESS = 0xFF

WRITE_READ_REPLY_DATAGRAM_SIZE = 8
READ_REQUEST_DATAGRAM_SIZE = 4
DATA_SIZE = 4

_CRC_POLYNOMIAL = 0x07
_DATA_MASK = (1 << (DATA_SIZE * 8)) - 1
_REGISTER_ADDRESS_MAX = 0x7F
_SERIAL_ADDRESS_MAX = 0xFF


class DatagramError(ValueError):
    """Raised when a received datagram is malformed or fails its CRC check."""


def reverse_data(data):
    """Swap the byte order of a 32-bit value."""
    if not 0 <= data <= _DATA_MASK:
        raise ValueError(f"data out of 32-bit range: {data!r}")
    return int.from_bytes(data.to_bytes(DATA_SIZE, "little"), "big")


def _crc8(payload):
    crc = 0
    for byte in payload:
        for _ in range(8):
            if (crc >> 7) ^ (byte & 0x01):
                crc = ((crc << 1) ^ _CRC_POLYNOMIAL) & 0xFF
            else:
                crc = (crc << 1) & 0xFF
            byte >>= 1
    return crc


def calculate_crc(datagram):
    """Return the CRC of a whole datagram, computed over all but its last byte.

    The last byte is the CRC slot and is ignored.
    """
    datagram = bytes(datagram)
    if not datagram:
        raise ValueError("datagram must not be empty")
    return _crc8(datagram[:-1])


def _header(serial_address, register_address, rw):
    if not 0 <= serial_address <= _SERIAL_ADDRESS_MAX:
        raise ValueError(f"serial address out of range: {serial_address!r}")
    if not 0 <= register_address <= _REGISTER_ADDRESS_MAX:
        raise ValueError(f"register address out of range: {register_address!r}")
    return bytes((SYNC, int(serial_address), int(register_address) | (rw << 7)))


def build_write_datagram(serial_address, register_address, data):
    """Return the 8-byte datagram that writes data to a register.

    Negative data is sent as its 32-bit two's complement.
    """
    if not -(1 << 31) <= data <= _DATA_MASK:
        raise ValueError(f"data out of 32-bit range: {data!r}")
    payload = _header(serial_address, register_address, RW_WRITE)
    payload += (int(data) & _DATA_MASK).to_bytes(DATA_SIZE, "big")
    return payload + bytes((_crc8(payload),))


def build_read_request(serial_address, register_address):
    """Return the 4-byte datagram that requests a register's contents."""
    payload = _header(serial_address, register_address, RW_READ)
    return payload + bytes((_crc8(payload),))


def parse_read_reply(reply):
    """Check a read reply's length and CRC and return the register value."""
    reply = bytes(reply)
    if len(reply) != WRITE_READ_REPLY_DATAGRAM_SIZE:
        raise DatagramError(
            f"reply must be {WRITE_READ_REPLY_DATAGRAM_SIZE} bytes, got {len(reply)}"
        )
    expected = calculate_crc(reply)
    if reply[-1] != expected:
        raise DatagramError(
            f"CRC mismatch: received 0x{reply[-1]:02X}, expected 0x{expected:02X}"
        )
    return int.from_bytes(reply[3:3 + DATA_SIZE], "big")