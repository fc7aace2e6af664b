'''Byte stream transports used by RPLidar class'''
import asyncio
import logging
import threading
import serial
from .exceptions import TransportError


class Transport(object):
    '''Interface of a byte stream channel to the sensor.

    Owner assigns the callbacks before calling `open`: `on_data(chunk)`,
    `on_error(exc)`, `on_disconnect()` and `on_close()`. Callbacks are
    always invoked inside the event loop which called `open`.'''

    on_data = None
    on_error = None
    on_disconnect = None
    on_close = None

    async def open(self, path, baudrate=115200, chunk_size=256):
        raise NotImplementedError

    def write(self, data):
        raise NotImplementedError

    async def flush(self):
        raise NotImplementedError

    def set_control_line(self, name, value):
        raise NotImplementedError

    async def close(self):
        raise NotImplementedError

    @property
    def is_open(self):
        raise NotImplementedError

    def _emit(self, name, *args):
        callback = getattr(self, name)
        if callback is not None:
            callback(*args)


class SerialTransport(Transport):
    '''Serial port transport based on pyserial. Port is read by a background
    thread in blocks of `chunk_size` bytes, every received block is handed
    over to the event loop.'''

    control_lines = ('dtr', 'rts') #: Supported modem control lines

    def __init__(self, read_timeout=0.1, inter_byte_timeout=0.005,
                 logger=None):
        '''
        Parameters
        ----------
        read_timeout : float, optional
            Maximum time of one blocking read in seconds (the default is 0.1)
        inter_byte_timeout : float, optional
            Silence interval which ends short replies in seconds
            (the default is 0.005)
        logger : `logging.Logger` instance, optional
            Logger instance, if none is provided new instance is created
        '''
        self.read_timeout = read_timeout
        self.inter_byte_timeout = inter_byte_timeout
        self.chunk_size = 256
        self._logger = logging.getLogger('rplidar') if logger is None \
            else logger
        self._serial = None
        self._loop = None
        self._thread = None
        self._running = False

    @property
    def is_open(self):
        return self._running and self._serial is not None

    async def open(self, path, baudrate=115200, chunk_size=256):
        if self.is_open:
            raise TransportError('Port %s is already opened' % path)
        if self._serial is not None:
            # left over by disconnect
            self._serial.close()
        self._logger.info('Opening serial port %s at %d baud', path, baudrate)
        self.chunk_size = chunk_size
        self._loop = asyncio.get_running_loop()
        try:
            self._serial = serial.Serial(
                port=path, baudrate=baudrate, timeout=self.read_timeout,
                inter_byte_timeout=self.inter_byte_timeout)
        except (serial.SerialException, ValueError) as e:
            raise TransportError('Failed to open %s: %s' % (path, e))
        self._running = True
        self._thread = threading.Thread(
            target=self._read_loop, name='rplidar-reader', daemon=True)
        self._thread.start()

    def _read_loop(self):
        while self._running:
            try:
                chunk = self._serial.read(self.chunk_size)
            except (serial.SerialException, OSError, TypeError) as e:
                # TypeError is raised by pyserial when port is closed under
                # a blocked read
                if self._running:
                    self._running = False
                    self._schedule('on_error',
                                   TransportError('Read failed: %s' % e))
                    self._schedule('on_disconnect')
                return
            if chunk and self._running:
                self._schedule('on_data', chunk)

    def _schedule(self, name, *args):
        '''Hands callback over to the event loop, stops reading if the loop
        is already closed'''
        if not self._loop.is_closed():
            try:
                self._loop.call_soon_threadsafe(self._emit, name, *args)
                return
            except RuntimeError:
                # loop was closed after the check
                pass
        if self._running:
            self._logger.warning('Event loop closed before the port, '
                                 'stopping reader')
        self._running = False

    def write(self, data):
        if not self.is_open:
            raise TransportError('Serial port is not opened')
        try:
            n = self._serial.write(data)
        except serial.SerialException as e:
            raise TransportError('Write failed: %s' % e)
        if n is not None and n != len(data):
            raise TransportError('Failed to send all data to the sensor')

    async def flush(self):
        if not self.is_open:
            raise TransportError('Serial port is not opened')
        try:
            self._serial.reset_input_buffer()
            self._serial.reset_output_buffer()
        except serial.SerialException as e:
            raise TransportError('Flush failed: %s' % e)

    def set_control_line(self, name, value):
        if name not in self.control_lines:
            raise TransportError('Unknown control line: %s' % name)
        if not self.is_open:
            raise TransportError('Serial port is not opened')
        setattr(self._serial, name, bool(value))

    async def close(self):
        if self._serial is None:
            self._logger.info('Close: port already closed')
            return
        self._logger.info('Close: closing serial port %s', self._serial.port)
        self._running = False
        self._serial.cancel_read()
        thread, self._thread = self._thread, None
        if thread is not None:
            await self._loop.run_in_executor(None, thread.join,
                                             2*self.read_timeout)
        self._serial.close()
        self._serial = None
        self._emit('on_close')
