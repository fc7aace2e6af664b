'''Classification and parsing of RPLidar replies.

Reply descriptor layout::

    Start flag 1 | Start flag 2 | Data response length | Send mode | Data type
    1 byte (0xA5)| 1 byte (0x5A)| 30 bits              | 2 bits    | 1 byte

Replies have no explicit message boundary, so inbound buffers are recognized
by their fixed preamble and total length.
'''
from collections import namedtuple
from codecs import encode, decode
from enum import Enum
from .exceptions import ProtocolMismatch
from .statuses import HealthState

SCAN_CHUNK_SIZE = 256


class ResponseKind(Enum):
    '''Kinds of inbound buffers'''
    HEALTH = 'health'
    INFO = 'info'
    SCAN_START = 'scan-start'
    BOOT = 'boot'
    SCAN_DATA = 'scan-data'
    UNRECOGNIZED = 'unrecognized'


ResponseDescriptor = namedtuple('ResponseDescriptor',
                                'kind preamble data_length')
HealthStatus = namedtuple('HealthStatus', 'status error_code')
DeviceInfo = namedtuple('DeviceInfo', 'model firmware_minor firmware_major '
                                      'hardware serial_number')

#: Known replies in the order they are checked
RESPONSES = {
    ResponseKind.HEALTH: ResponseDescriptor(
        ResponseKind.HEALTH, b'\xa5\x5a\x03\x00\x00\x00\x06', 3),
    ResponseKind.INFO: ResponseDescriptor(
        ResponseKind.INFO, b'\xa5\x5a\x14\x00\x00\x00\x04', 20),
    ResponseKind.SCAN_START: ResponseDescriptor(
        ResponseKind.SCAN_START, b'\xa5\x5a\x05\x00\x00\x40\x81', 0),
    ResponseKind.BOOT: ResponseDescriptor(
        ResponseKind.BOOT, b'RP LIDAR', 48),
}


def _matches(buffer, desc):
    return (len(buffer) == len(desc.preamble) + desc.data_length and
            buffer.startswith(desc.preamble))


def classify(buffer, chunk_size=SCAN_CHUNK_SIZE):
    '''Determines which reply the given buffer represents.

    Parameters
    ----------
    buffer : bytes
        Inbound buffer as delivered by the transport
    chunk_size : int, optional
        Size of scan data chunks, unmatched buffers of exactly this size
        are regarded as scan data (the default is 256)

    Returns
    -------
    ResponseKind
        Kind of the buffer

    Examples
    --------
    >>> classify(bytes.fromhex('a55a0300000006000000'))
    <ResponseKind.HEALTH: 'health'>
    '''
    buffer = bytes(buffer)
    for kind, desc in RESPONSES.items():
        if _matches(buffer, desc):
            return kind
    if len(buffer) == chunk_size:
        return ResponseKind.SCAN_DATA
    return ResponseKind.UNRECOGNIZED


def split_reply(buffer, kind):
    '''If the given buffer starts with complete reply of the given kind
    followed by other data returns that data, otherwise returns None'''
    desc = RESPONSES[kind]
    size = len(desc.preamble) + desc.data_length
    buffer = bytes(buffer)
    if len(buffer) <= size or not buffer.startswith(desc.preamble):
        return None
    return buffer[size:]


def parse_health(buffer):
    '''Parses `GET_HEALTH` reply into `HealthStatus`

    Examples
    --------
    >>> parse_health(bytes.fromhex('a55a0300000006010201'))
    HealthStatus(status=<HealthState.WARNING: 1>, error_code=258)
    '''
    if not _matches(bytes(buffer), RESPONSES[ResponseKind.HEALTH]):
        raise ProtocolMismatch('Not a health reply: %s' %
                               bytes(buffer).hex(' '))
    try:
        status = HealthState(buffer[7])
    except ValueError:
        raise ProtocolMismatch('Unknown health status code: %d' % buffer[7])
    return HealthStatus(status, buffer[8] | buffer[9] << 8)


def parse_info(buffer):
    '''Parses `GET_INFO` reply into `DeviceInfo`. Serial number is returned
    as 32 chars uppercase hex string'''
    if not _matches(bytes(buffer), RESPONSES[ResponseKind.INFO]):
        raise ProtocolMismatch('Not an info reply: %s' %
                               bytes(buffer).hex(' '))
    serial = decode(encode(bytes(buffer[11:27]), 'hex'), 'ascii').upper()
    return DeviceInfo(buffer[7], buffer[8], buffer[9], buffer[10], serial)


def parse_boot(buffer):
    '''Returns text of the boot announcement'''
    return decode(bytes(buffer), 'ascii', 'replace').strip('\r\n\x00')
