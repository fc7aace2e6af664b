'''Decoding of the standard scan data stream.

Every measurement is sent as 5 bytes unit::

    byte0: quality (6 bits) | inverse start flag | start flag
    byte1: angle[6:0] (7 bits) | check bit (always 1)
    byte2: angle[14:7]
    byte3: distance[7:0]
    byte4: distance[15:8]

Angle is fixed point value with 1/64 degree resolution and distance is
fixed point value with 1/4 millimeter resolution.
'''
import logging
from collections import namedtuple
import numpy as np
from .exceptions import ParseError

UNIT_SIZE = 5

ScanSample = namedtuple('ScanSample', 'start_flag quality angle distance')

logger = logging.getLogger(__name__)


def parse_unit(unit):
    '''Converts one 5 bytes scan unit to `ScanSample`

    Examples
    --------
    >>> parse_unit(b'\\x01\\x03\\x00\\x04\\x00')
    ScanSample(start_flag=True, quality=0, angle=0.015625, distance=1.0)
    '''
    if len(unit) != UNIT_SIZE:
        raise ParseError('Scan unit must be %d bytes, got %d' %
                         (UNIT_SIZE, len(unit)), unit)
    byte0, byte1, byte2, byte3, byte4 = bytearray(unit)
    start = byte0 & 0x01
    inverse_start = (byte0 >> 1) & 0x01
    if start == inverse_start:
        raise ParseError('Start flag equals inverse start flag', unit)
    if not byte1 & 0x01:
        raise ParseError('Check bit not set', unit)
    angle = ((byte1 >> 1) | (byte2 << 7)) / 64.0
    if not 0 <= angle <= 360:
        raise ParseError('Angle out of range: %.3f' % angle, unit)
    distance = (byte3 | (byte4 << 8)) / 4.0
    return ScanSample(bool(start), byte0 >> 2, angle, distance)


class ScanDecoder(object):
    '''Stateful decoder of chunked scan data stream. Bytes of the incomplete
    trailing unit are kept in `residue` and prepended to the next chunk,
    so chunks must be fed in arrival order.'''

    residue = b'' #: Incomplete trailing unit of the last chunk

    def __init__(self, strict=False, on_error=None):
        '''
        Parameters
        ----------
        strict : bool, optional
            Abort decoding of the chunk on the first malformed unit?
            (the default is False, which skips malformed units)
        on_error : callable, optional
            Called with `ParseError` for every skipped malformed unit
        '''
        self.strict = strict
        self.on_error = on_error
        self.residue = b''

    def reset(self):
        '''Drops carried residue'''
        self.residue = b''

    def decode(self, chunk):
        '''Decodes the given chunk. Residue is updated immediately, returned
        iterator yields `ScanSample` for every complete unit.'''
        data = self.residue + bytes(chunk)
        end = len(data) - len(data) % UNIT_SIZE
        self.residue = data[end:]
        return self._iter_units(data[:end])

    def _iter_units(self, data):
        for offset in range(0, len(data), UNIT_SIZE):
            unit = data[offset:offset + UNIT_SIZE]
            try:
                sample = parse_unit(unit)
            except ParseError as e:
                if self.strict:
                    raise
                logger.warning('Skipped malformed scan unit: %s', e)
                if self.on_error is not None:
                    self.on_error(e)
                continue
            yield sample


def to_array(samples):
    '''Converts samples to ndarray with columns: angle (degrees),
    distance (millimeters), quality and start flag'''
    data = np.array([(s.angle, s.distance, s.quality, s.start_flag)
                     for s in samples], np.float64)
    return data.reshape((len(data), 4))


def filter_scan(scan, dmin=None, dmax=None, qmin=None):
    '''Filters scan array produced by `to_array` by distance and quality.
    Zero distance marks invalid measurement and is always dropped.'''
    scan = scan[scan[:, 1] > 0]
    if dmin is not None:
        scan = scan[scan[:, 1] >= dmin]
    if dmax is not None:
        scan = scan[scan[:, 1] <= dmax]
    if qmin is not None:
        scan = scan[scan[:, 2] >= qmin]
    return scan
