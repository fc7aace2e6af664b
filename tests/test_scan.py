"""Tests for scan unit parsing and chunked stream decoding."""

import numpy as np
import pytest

from rplidarx.exceptions import ParseError
from rplidarx.scan import (
    ScanDecoder,
    ScanSample,
    filter_scan,
    parse_unit,
    to_array,
)

from fakes import encode_unit, make_chunk, make_units


def test_parse_reference_unit():
    """Minimal unit: quality 0, start set, angle 1/64 deg, distance 1 mm."""
    sample = parse_unit(bytes([0b00000001, 0b00000011, 0b00000000,
                               0b00000100, 0b00000000]))
    assert sample == ScanSample(True, 0, 0.015625, 1.0)


@pytest.mark.parametrize("quality, angle, distance, start", [
    (63, 359.984375, 16383.75, False),
    (15, 90.5, 1234.25, True),
    (0, 0.0, 0.0, False),
    (47, 360.0, 500.0, True),
])
def test_round_trip(quality, angle, distance, start):
    sample = parse_unit(encode_unit(quality, angle, distance, start))
    assert sample.quality == quality
    assert sample.angle == angle
    assert sample.distance == distance
    assert sample.start_flag is start


@pytest.mark.parametrize("start", [True, False])
def test_start_equals_inverse_start(start):
    unit = encode_unit(10, 10.0, 100.0, start=start, inverse=start)
    with pytest.raises(ParseError):
        parse_unit(unit)


def test_check_bit_not_set():
    with pytest.raises(ParseError, match="Check bit"):
        parse_unit(encode_unit(10, 10.0, 100.0, check=0))


def test_angle_out_of_range():
    with pytest.raises(ParseError, match="Angle out of range"):
        parse_unit(encode_unit(10, 361.0, 100.0))


def test_parse_error_carries_unit():
    unit = encode_unit(10, 10.0, 100.0, check=0)
    with pytest.raises(ParseError) as info:
        parse_unit(unit)
    assert info.value.unit == unit
    assert unit.hex(" ") in str(info.value)


def test_wrong_unit_size():
    with pytest.raises(ParseError):
        parse_unit(b"\x01\x03")


def test_decode_keeps_residue():
    """256 bytes make 51 units and 1 byte of residue."""
    decoder = ScanDecoder()
    chunk = make_chunk(make_units(52))
    samples = list(decoder.decode(chunk))
    assert len(samples) == 51
    assert decoder.residue == chunk[-1:]


def test_residue_completes_next_unit():
    units = make_units(103)
    stream = b"".join(units)
    decoder = ScanDecoder()
    first = list(decoder.decode(stream[:256]))
    second = list(decoder.decode(stream[256:512]))
    assert len(first) == 51
    assert len(second) == 51
    assert decoder.residue == stream[510:512]
    assert second[0] == parse_unit(units[51])


def test_residue_is_updated_without_iteration():
    decoder = ScanDecoder()
    decoder.decode(b"\x01\x03\x00")
    assert decoder.residue == b"\x01\x03\x00"
    samples = list(decoder.decode(b"\x04\x00"))
    assert samples == [ScanSample(True, 0, 0.015625, 1.0)]
    assert decoder.residue == b""


@pytest.mark.parametrize("split", [1, 3, 4, 5, 128, 200, 254, 255])
def test_split_chunk_decodes_like_whole(split):
    """Splitting a chunk between two deliveries doesn't change samples."""
    chunk = make_chunk(make_units(52))
    whole = list(ScanDecoder().decode(chunk))
    decoder = ScanDecoder()
    parts = list(decoder.decode(chunk[:split]))
    parts += list(decoder.decode(chunk[split:]))
    assert parts == whole


def test_malformed_unit_is_skipped():
    """Units after a malformed one are still decoded."""
    units = make_units(6)
    units[2] = encode_unit(1, 1.0, 1.0, check=0)
    errors = []
    decoder = ScanDecoder(on_error=errors.append)
    samples = list(decoder.decode(b"".join(units)))
    assert len(samples) == 5
    assert samples[2] == parse_unit(units[3])
    assert len(errors) == 1
    assert isinstance(errors[0], ParseError)


def test_strict_decoder_aborts_chunk():
    units = make_units(6)
    units[2] = encode_unit(1, 1.0, 1.0, check=0)
    decoder = ScanDecoder(strict=True)
    stream = b"".join(units) + b"\x01\x03"
    samples = []
    with pytest.raises(ParseError):
        for sample in decoder.decode(stream):
            samples.append(sample)
    assert len(samples) == 2
    assert decoder.residue == b"\x01\x03"


def test_reset_drops_residue():
    decoder = ScanDecoder()
    decoder.decode(b"\x01\x03")
    decoder.reset()
    assert decoder.residue == b""


def test_to_array():
    samples = [parse_unit(unit) for unit in make_units(4)]
    scan = to_array(samples)
    assert scan.shape == (4, 4)
    assert scan[1, 0] == samples[1].angle
    assert scan[1, 1] == samples[1].distance
    assert scan[1, 2] == samples[1].quality
    assert scan[0, 3] == 1.0


def test_to_array_empty():
    assert to_array([]).shape == (0, 4)


def test_filter_scan():
    scan = np.array([
        [0.0, 0.0, 10, 1],
        [10.0, 100.0, 10, 0],
        [20.0, 1000.0, 2, 0],
        [30.0, 20000.0, 30, 0],
    ])
    assert len(filter_scan(scan)) == 3
    assert filter_scan(scan, dmin=150, dmax=12000)[:, 0].tolist() == [20.0]
    assert filter_scan(scan, qmin=5)[:, 0].tolist() == [10.0, 30.0]
