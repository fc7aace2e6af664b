'''Request frames of the RPLidar communication protocol.

Request frame layout::

    Start flag | Command | Payload size | Payload data | Checksum
    1 byte     | 1 byte  | 1 byte       | 0-255 bytes  | 1 byte
    (0xA5)               |-------- optional section ---------------|

Checksum is XOR of all preceding bytes of the frame and is present only
for commands carrying a payload.
'''
from collections import namedtuple
from functools import reduce
from operator import xor
from .exceptions import RPLidarException, ChecksumMismatch

START_FLAG = 0xA5

Command = namedtuple('Command', 'name opcode payload')

#: All commands known to the protocol. Only STOP, RESET, SCAN, GET_INFO and
#: GET_HEALTH are used by `RPLidar`, others are kept for completeness.
COMMANDS = dict((cmd.name, cmd) for cmd in [
    Command('STOP', 0x25, None),
    Command('RESET', 0x40, None),
    Command('SCAN', 0x20, None),
    Command('EXPRESS_SCAN', 0x82, b'\x00\x00\x00\x00\x00'),
    Command('FORCE_SCAN', 0x21, None),
    Command('GET_INFO', 0x50, None),
    Command('GET_HEALTH', 0x52, None),
    Command('GET_SAMPLERATE', 0x59, None),
    Command('GET_ACC_BOARD_FLAG', 0xFF, b'\x00\x00\x00\x00'),
    Command('SET_MOTOR_PWM', 0xF0, b'\x00\x00'),
])


def checksum(data):
    '''Returns XOR checksum of the given bytes'''
    return reduce(xor, bytearray(data), 0)


def frame_for(name, payload=None):
    '''Builds request frame for the command with the given name.

    Parameters
    ----------
    name : str
        Command name, one of `COMMANDS` keys
    payload : bytes, optional
        Payload which overrides the default command payload
        (the default is None)

    Returns
    -------
    bytes
        Request frame ready to be written to the sensor

    Examples
    --------
    >>> frame_for('GET_HEALTH')
    b'\\xa5R'
    >>> frame_for('SET_MOTOR_PWM', b'\\x94\\x02')
    b'\\xa5\\xf0\\x02\\x94\\x02\\xc1'
    '''
    try:
        cmd = COMMANDS[name]
    except KeyError:
        raise RPLidarException('Unknown command: %s' % name)
    payload = cmd.payload if payload is None else bytes(payload)
    frame = bytes([START_FLAG, cmd.opcode])
    if not payload:
        return frame
    if len(payload) > 255:
        raise RPLidarException(
            'Payload of %s must not exceed 255 bytes, got %d' %
            (name, len(payload)))
    frame += bytes([len(payload)]) + payload
    return frame + bytes([checksum(frame)])


def verify_frame(frame):
    '''Checks the checksum of the given request frame carrying payload.
    Returns frame without checksum byte'''
    frame = bytes(frame)
    if len(frame) < 4 or frame[0] != START_FLAG:
        raise RPLidarException('Not a payload frame: %s' % frame.hex(' '))
    body, cc = frame[:-1], frame[-1]
    if body[2] != len(body) - 3:
        raise RPLidarException(
            'Payload size mismatch: declared %d, got %d' %
            (body[2], len(body) - 3))
    calc = checksum(body)
    if calc != cc:
        raise ChecksumMismatch(
            'For frame %s checksum mismatch: %02X vs %02X' %
            (body.hex(' '), calc, cc))
    return body
