"""Tests for reply classification and parsing."""

import pytest

from rplidarx.exceptions import ProtocolMismatch
from rplidarx.responses import (
    DeviceInfo,
    HealthStatus,
    ResponseKind,
    classify,
    parse_boot,
    parse_health,
    parse_info,
    split_reply,
)
from rplidarx.statuses import HealthState

from fakes import BOOT, HEALTH_GOOD, INFO, SCAN_START_ACK


def test_classify_health():
    assert classify(HEALTH_GOOD) == ResponseKind.HEALTH


def test_parse_health_good():
    """Good health with zero error code."""
    health = parse_health(HEALTH_GOOD)
    assert health == HealthStatus(HealthState.GOOD, 0)
    assert health.status == 0


def test_parse_health_error_code_byte_order():
    """Byte 9 is the high-order half of the error code."""
    health = parse_health(bytes.fromhex("a55a0300000006020201"))
    assert health.status == HealthState.ERROR
    assert health.error_code == 0x0102


def test_parse_health_unknown_status():
    with pytest.raises(ProtocolMismatch):
        parse_health(bytes.fromhex("a55a0300000006070000"))


def test_parse_health_rejects_other_reply():
    with pytest.raises(ProtocolMismatch):
        parse_health(INFO)


def test_classify_info():
    assert len(INFO) == 27
    assert classify(INFO) == ResponseKind.INFO


def test_parse_info():
    info = parse_info(INFO)
    assert info == DeviceInfo(24, 29, 1, 7, "000102030405060708090A0B0C0D0E0F")


def test_info_serial_number_is_zero_padded():
    info = parse_info(INFO)
    assert len(info.serial_number) == 32


def test_classify_scan_start():
    assert classify(SCAN_START_ACK) == ResponseKind.SCAN_START


def test_classify_boot():
    """56 bytes starting with "RP LIDAR" announce a boot."""
    assert BOOT[:8] == bytes.fromhex("5250204c49444152")
    assert classify(BOOT) == ResponseKind.BOOT


def test_parse_boot_text():
    assert parse_boot(BOOT).startswith("RP LIDAR System.")


def test_boot_of_wrong_length_is_unrecognized():
    assert classify(BOOT[:40]) == ResponseKind.UNRECOGNIZED


def test_unmatched_chunk_is_scan_data():
    assert classify(bytes(256)) == ResponseKind.SCAN_DATA


def test_custom_chunk_size():
    assert classify(bytes(128), chunk_size=128) == ResponseKind.SCAN_DATA
    assert classify(bytes(256), chunk_size=128) == ResponseKind.UNRECOGNIZED


@pytest.mark.parametrize("buffer", [
    b"",
    b"\xa5\x5a",
    HEALTH_GOOD + b"\x00",
    SCAN_START_ACK[:-1] + b"\x82",
    bytes(255),
])
def test_unrecognized(buffer):
    assert classify(buffer) == ResponseKind.UNRECOGNIZED


def test_reply_preamble_wins_over_chunk_size():
    """A reply whose length equals the chunk size is still a reply."""
    assert classify(HEALTH_GOOD, chunk_size=10) == ResponseKind.HEALTH


def test_split_reply():
    rest = split_reply(SCAN_START_ACK + b"\x01\x02\x03",
                       ResponseKind.SCAN_START)
    assert rest == b"\x01\x02\x03"


def test_split_reply_without_trailing_data():
    assert split_reply(SCAN_START_ACK, ResponseKind.SCAN_START) is None


def test_split_reply_other_prefix():
    assert split_reply(bytes(20), ResponseKind.SCAN_START) is None
