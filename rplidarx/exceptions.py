'''Exceptions used in rplidarx module'''

class RPLidarException(Exception):
    '''Basic exception class for RPLidar laser scanners'''
    pass


class TransportError(RPLidarException):
    '''Exception class which represents failures of the underlying byte
    stream: port can't be opened, write failed or device disconnected'''
    pass


class ParseError(RPLidarException):
    '''Exception class which represents malformed scan units inside
    RPLidar scan data stream'''
    unit = None

    def __init__(self, message, unit=None):
        super(ParseError, self).__init__(message)
        self.unit = unit

    def __str__(self):
        msg = super(ParseError, self).__str__()
        if self.unit is None:
            return msg
        return '%s (unit: %s)' % (msg, bytes(self.unit).hex(' '))


class ProtocolMismatch(RPLidarException):
    '''Exception class which represents replies that don't match any known
    response descriptor or carry invalid field values'''
    pass


class ChecksumMismatch(RPLidarException):
    '''Exception class which represents checksum mismatch errors inside
    RPLidar request frames'''
    pass


class RPLidarBusy(RPLidarException):
    '''Raised when a request is issued while another one is still
    awaiting its reply and request queueing is disabled'''
    pass


class RPLidarTimeout(RPLidarException):
    '''Raised when the sensor doesn't reply to a request in time'''
    pass
