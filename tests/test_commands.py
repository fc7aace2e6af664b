"""Tests for the command catalog and request frame checksums."""

import pytest

from rplidarx.commands import (
    COMMANDS,
    START_FLAG,
    checksum,
    frame_for,
    verify_frame,
)
from rplidarx.exceptions import ChecksumMismatch, RPLidarException


def test_command_opcodes():
    """Opcodes must match the RPLidar protocol."""
    assert COMMANDS["STOP"].opcode == 0x25
    assert COMMANDS["RESET"].opcode == 0x40
    assert COMMANDS["SCAN"].opcode == 0x20
    assert COMMANDS["EXPRESS_SCAN"].opcode == 0x82
    assert COMMANDS["FORCE_SCAN"].opcode == 0x21
    assert COMMANDS["GET_INFO"].opcode == 0x50
    assert COMMANDS["GET_HEALTH"].opcode == 0x52
    assert COMMANDS["GET_SAMPLERATE"].opcode == 0x59
    assert COMMANDS["GET_ACC_BOARD_FLAG"].opcode == 0xFF
    assert COMMANDS["SET_MOTOR_PWM"].opcode == 0xF0


@pytest.mark.parametrize("name", ["STOP", "RESET", "SCAN", "GET_INFO",
                                  "GET_HEALTH"])
def test_frames_without_payload(name):
    """Commands without payload are the start flag followed by the opcode."""
    assert frame_for(name) == bytes([START_FLAG, COMMANDS[name].opcode])


def test_get_health_frame_bytes():
    assert frame_for("GET_HEALTH") == b"\xa5\x52"


def test_payload_frame_layout():
    """Payload frames carry size, payload and XOR checksum."""
    frame = frame_for("SET_MOTOR_PWM", b"\x94\x02")
    assert frame == b"\xa5\xf0\x02\x94\x02\xc1"


def test_default_payload_is_used():
    frame = frame_for("GET_ACC_BOARD_FLAG")
    assert frame[:3] == b"\xa5\xff\x04"
    assert len(frame) == 3 + 4 + 1
    assert frame[-1] == checksum(frame[:-1])


def test_checksum_of_empty_data():
    assert checksum(b"") == 0


def test_verify_frame_returns_body():
    frame = frame_for("SET_MOTOR_PWM", b"\x00\x03")
    assert verify_frame(frame) == frame[:-1]


def test_verify_frame_detects_corruption():
    frame = bytearray(frame_for("SET_MOTOR_PWM", b"\x00\x03"))
    frame[3] ^= 0x10
    with pytest.raises(ChecksumMismatch):
        verify_frame(frame)


def test_verify_frame_rejects_size_mismatch():
    with pytest.raises(RPLidarException):
        verify_frame(b"\xa5\xf0\x05\x00\x03\x56")


def test_unknown_command():
    """Unknown command names are programming errors."""
    with pytest.raises(RPLidarException):
        frame_for("SELF_DESTRUCT")


def test_payload_too_long():
    with pytest.raises(RPLidarException):
        frame_for("SET_MOTOR_PWM", bytes(256))
