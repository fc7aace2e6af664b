'''RPLidar class code'''
import asyncio
import logging
from collections import namedtuple
from .commands import frame_for
from .exceptions import RPLidarException, RPLidarBusy, RPLidarTimeout
from .exceptions import TransportError, ParseError, ProtocolMismatch
from .notifications import Notifier, EventKind
from .responses import ResponseKind, classify, split_reply
from .responses import parse_health, parse_info, parse_boot
from .scan import ScanDecoder, to_array, filter_scan
from .statuses import DeviceState, MotorState, device_states
from .transport import SerialTransport

#: Reply awaited by the request in flight
PendingRequest = namedtuple('PendingRequest', 'kind future')

#: Notification published for every recognized reply
_reply_events = {
    ResponseKind.HEALTH: EventKind.HEALTH,
    ResponseKind.INFO: EventKind.INFO,
    ResponseKind.SCAN_START: EventKind.SCAN_START,
    ResponseKind.BOOT: EventKind.BOOT,
}

#: Device state entered after the awaited reply is received
_reply_states = {
    ResponseKind.HEALTH: DeviceState.IDLE,
    ResponseKind.INFO: DeviceState.IDLE,
    ResponseKind.SCAN_START: DeviceState.SCANNING,
    ResponseKind.BOOT: DeviceState.IDLE,
}


class RPLidar(object):
    '''Class for working with RPLidar laser rangefinders over serial port.

    All public methods are coroutines and must be awaited inside a single
    event loop. Decoded data is delivered through `notifier`, see
    `subscribe` method.'''

    port = '/dev/ttyUSB0' #: Serial port of the sensor
    baudrate = 115200 #: Serial port baud rate
    chunk_size = 256 #: Size of scan data chunks delivered by transport
    timeout = 5 #: Default reply timeout in seconds, None disables it
    motor_delay = 0.005 #: Settle delay after motor control in seconds
    stop_delay = 0.001 #: Delay after STOP command in seconds
    queue_requests = True #: Queue concurrent requests or reject them?
    dmin = 150 #: Minimum measurable distance (in millimeters)
    dmax = 12000 #: Maximum measurable distance (in millimeters)

    state = DeviceState.UNKNOWN #: Current device state
    motor_state = MotorState.OFF #: The motor seems to always start as off

    _transport = None #: Byte stream channel to the sensor
    _logger = None #: Logger instance for performing logging operations

    def __init__(self, port=None, baudrate=None, chunk_size=None, timeout=5,
                 motor_delay=None, stop_delay=None, queue_requests=True,
                 strict_decoding=False, transport=None, notifier=None,
                 logger=None):
        '''Creates new object for communications with the sensor. Port is
        not opened until `open` is awaited.

        Parameters
        ----------
        port : str, optional
            Serial port of the sensor (the default is `'/dev/ttyUSB0'`)
        baudrate : int, optional
            Serial port baud rate (the default is 115200)
        chunk_size : int, optional
            Size of scan data chunks (the default is 256)
        timeout : float, optional
            Reply timeout of requests in seconds, None waits forever
            (the default is 5)
        motor_delay : float, optional
            Settle delay after motor start or stop in seconds
            (the default is 0.005)
        stop_delay : float, optional
            Delay after STOP command in seconds (the default is 0.001)
        queue_requests : bool, optional
            Wait for the request in flight to finish instead of raising
            `RPLidarBusy`? (the default is True)
        strict_decoding : bool, optional
            Drop the rest of scan chunk after malformed unit instead of
            skipping only that unit? (the default is False)
        transport : `Transport` instance, optional
            Byte stream channel, if none is provided `SerialTransport`
            is created
        notifier : `Notifier` instance, optional
            Notification channel, if none is provided new instance is created
        logger : `logging.Logger` instance, optional
            Logger instance, if none is provided new instance is created
        '''
        super(RPLidar, self).__init__()
        if port is not None:
            self.port = port
        if baudrate is not None:
            self.baudrate = baudrate
        if chunk_size is not None:
            self.chunk_size = chunk_size
        if motor_delay is not None:
            self.motor_delay = motor_delay
        if stop_delay is not None:
            self.stop_delay = stop_delay
        self.timeout = timeout
        self.queue_requests = queue_requests
        self._logger = logging.getLogger('rplidar') if logger is None \
            else logger
        self.notifier = Notifier(self._logger) if notifier is None \
            else notifier
        self._transport = SerialTransport(logger=self._logger) \
            if transport is None else transport
        self._decoder = ScanDecoder(strict_decoding, self._on_parse_error)
        self._pending = None
        self._lock = None
        self.state = DeviceState.UNKNOWN
        self.motor_state = MotorState.OFF

    def subscribe(self, callback, kinds=None):
        '''Subscribes callback to the events of the sensor, returns function
        which cancels subscription. See `Notifier.subscribe`.'''
        return self.notifier.subscribe(callback, kinds)

    def describe_state(self):
        '''Returns the current device state

        Returns
        -------
        int
            Device state code
        str
            Device state description
        '''
        return int(self.state), device_states[self.state]

    def _set_state(self, state):
        if state != self.state:
            self._logger.debug('State change: %s -> %s',
                               self.state.name, state.name)
        self.state = state

    #Low level connection methods

    async def open(self):
        '''Opens the port, flushes it and switches to the idle state'''
        if self.state != DeviceState.UNKNOWN:
            raise RPLidarException('Port %s is already opened' % self.port)
        self._logger.info('Connecting to the laser on %s', self.port)
        transport = self._transport
        transport.on_data = self._on_data
        transport.on_error = self._on_error
        transport.on_disconnect = self._on_disconnect
        transport.on_close = self._on_close
        await transport.open(self.port, self.baudrate, self.chunk_size)
        try:
            await transport.flush()
        except TransportError:
            self._logger.error('Failed to flush %s, closing it', self.port)
            await transport.close()
            raise
        self._lock = asyncio.Lock()
        self._decoder.reset()
        self._set_state(DeviceState.IDLE)
        self.notifier.publish(EventKind.READY)

    async def close(self):
        '''Fails pending request and closes the port'''
        self._logger.info('Close: closing connection to sensor')
        self._fail_pending(RPLidarException('Connection closed'))
        await self._transport.close()
        self._decoder.reset()
        self._set_state(DeviceState.UNKNOWN)
        self.motor_state = MotorState.OFF

    def _send_cmd(self, name, payload=None):
        '''Writes request frame of the given command to the sensor'''
        if self.state == DeviceState.UNKNOWN:
            raise RPLidarException('Not connected to the laser')
        frame = frame_for(name, payload)
        self._logger.debug('Sending command %s: %s', name, frame.hex(' '))
        try:
            self._transport.write(frame)
        except TransportError as e:
            self.notifier.publish(EventKind.ERROR, e)
            raise
        return frame

    async def _send_req(self, name, kind, timeout=None, sent_state=None,
                        force=False):
        '''Sends given command to the sensor and awaits reply of the given
        kind. Only one request is in flight, others wait for their turn.
        Forced requests wait even if `queue_requests` is disabled.'''
        if self._lock is None or self.state == DeviceState.UNKNOWN:
            raise RPLidarException('Not connected to the laser')
        if self._lock.locked() and not (self.queue_requests or force):
            raise RPLidarBusy('Command %s issued while awaiting %s reply' %
                              (name, self._pending.kind.value
                               if self._pending else 'another'))
        timeout = self.timeout if timeout is None else timeout
        async with self._lock:
            if self.state == DeviceState.SCANNING:
                raise RPLidarException(
                    'Command %s is not valid while scanning' % name)
            future = asyncio.get_running_loop().create_future()
            self._pending = PendingRequest(kind, future)
            self._set_state(DeviceState.PROCESSING)
            try:
                self._send_cmd(name)
                if sent_state is not None:
                    self._set_state(sent_state)
                return await asyncio.wait_for(future, timeout)
            except asyncio.TimeoutError:
                self._logger.warning('No %s reply to %s in %s seconds',
                                     kind.value, name, timeout)
                raise RPLidarTimeout('Sensor did not reply to %s in %s '
                                     'seconds' % (name, timeout))
            finally:
                if self._pending is not None and \
                        self._pending.future is future:
                    self._pending = None
                if not _resolved(future) and self.state in (
                        DeviceState.PROCESSING, DeviceState.STOPPED):
                    self._set_state(DeviceState.IDLE)

    def _fail_pending(self, exc):
        pending, self._pending = self._pending, None
        if pending is not None and not pending.future.done():
            pending.future.set_exception(exc)

    #Processing of inbound data

    def _on_data(self, chunk):
        '''Classifies chunk delivered by transport and dispatches it'''
        chunk = bytes(chunk)
        pending = self._pending
        if pending is not None and pending.kind == ResponseKind.SCAN_START:
            rest = split_reply(chunk, ResponseKind.SCAN_START)
            if rest is not None:
                self._process_reply(ResponseKind.SCAN_START,
                                    chunk[:len(chunk) - len(rest)])
                self._process_scan(rest)
                return
        kind = classify(chunk, self.chunk_size)
        if kind == ResponseKind.SCAN_DATA:
            self._process_scan(chunk)
        elif kind == ResponseKind.UNRECOGNIZED:
            self._logger.debug('Unknown packet of %d bytes: %s',
                               len(chunk), chunk.hex(' '))
        else:
            self._process_reply(kind, chunk)

    def _process_reply(self, kind, buffer):
        '''Parses reply, resolves pending request and publishes it'''
        self._logger.debug('Received %s reply: %s', kind.value, buffer.hex(' '))
        try:
            if kind == ResponseKind.HEALTH:
                payload = parse_health(buffer)
            elif kind == ResponseKind.INFO:
                payload = parse_info(buffer)
            elif kind == ResponseKind.BOOT:
                payload = parse_boot(buffer)
            else:
                payload = None
        except ProtocolMismatch as e:
            self._logger.warning('Malformed %s reply: %s', kind.value, e)
            if self._pending is not None and self._pending.kind == kind:
                self._fail_pending(e)
            self.notifier.publish(EventKind.ERROR, e)
            return
        pending = self._pending
        if pending is not None and pending.kind == kind:
            self._pending = None
            if kind == ResponseKind.SCAN_START:
                self._decoder.reset()
            self._set_state(_reply_states[kind])
            if not pending.future.done():
                pending.future.set_result(payload)
        self.notifier.publish(_reply_events[kind], payload)

    def _process_scan(self, data):
        '''Decodes scan data and publishes every sample'''
        if self.state != DeviceState.SCANNING:
            # probably a lost packet fragment from ungraceful shutdown
            # during scanning
            self._logger.debug('Discarded %d bytes of garbage', len(data))
            return
        try:
            for sample in self._decoder.decode(data):
                self.notifier.publish(EventKind.DATA, sample)
        except ParseError as e:
            self._logger.warning('Dropped rest of scan chunk: %s', e)
            self.notifier.publish(EventKind.ERROR, e)

    def _on_parse_error(self, exc):
        self.notifier.publish(EventKind.ERROR, exc)

    def _on_error(self, exc):
        self._logger.error('Transport error: %s', exc)
        self.notifier.publish(EventKind.ERROR, exc)

    def _on_disconnect(self):
        self._logger.warning('Sensor disconnected')
        self._fail_pending(TransportError('Sensor disconnected'))
        self._decoder.reset()
        self._set_state(DeviceState.UNKNOWN)
        self.motor_state = MotorState.OFF
        self.notifier.publish(EventKind.DISCONNECT)

    def _on_close(self):
        self.notifier.publish(EventKind.CLOSE)

    #Sensor information

    async def get_health(self, timeout=None):
        '''Requests health status of the sensor.

        Parameters
        ----------
        timeout : float, optional
            Reply timeout in seconds (the default is None, which implies
            `self.timeout`)

        Returns
        -------
        HealthStatus
            Status and error code

        Examples
        --------
        >>> await laser.get_health()
        HealthStatus(status=<HealthState.GOOD: 0>, error_code=0)
        '''
        self._logger.info('Retrieving sensor health')
        return await self._send_req('GET_HEALTH', ResponseKind.HEALTH,
                                    timeout)

    async def get_info(self, timeout=None):
        '''Requests model, firmware and hardware versions and serial number
        of the sensor, returns `DeviceInfo`'''
        self._logger.info('Retrieving sensor information')
        return await self._send_req('GET_INFO', ResponseKind.INFO, timeout)

    #Control of sensor state

    async def reset(self, timeout=None):
        '''Resets the sensor core and waits for its boot announcement.
        Valid in any state, active scan is terminated.'''
        self._logger.info('Performing sensor reset')
        self._fail_pending(RPLidarException('Interrupted by reset'))
        if self.state == DeviceState.SCANNING:
            self._set_state(DeviceState.STOPPED)
        self._decoder.reset()
        await self._send_req('RESET', ResponseKind.BOOT, timeout,
                             DeviceState.STOPPED, force=True)
        self._logger.info('Finished reset')

    async def start_motor(self):
        '''Starts rotation of the sensor head'''
        self._logger.info('Starting motor')
        self._transport.set_control_line('dtr', False)
        self.motor_state = MotorState.ON
        await asyncio.sleep(self.motor_delay)

    async def stop_motor(self):
        '''Stops rotation of the sensor head'''
        self._logger.info('Stopping motor')
        self._transport.set_control_line('dtr', True)
        self.motor_state = MotorState.OFF
        await asyncio.sleep(self.motor_delay)

    async def scan(self, timeout=None):
        '''Starts the motor if it is off and switches the sensor to the
        scanning state. Samples are published as `EventKind.DATA` events
        until `stop_scan` is awaited.'''
        if self.motor_state == MotorState.OFF:
            await self.start_motor()
        else:
            await asyncio.sleep(0)
        self._logger.info('Starting scan')
        await self._send_req('SCAN', ResponseKind.SCAN_START, timeout)
        self._logger.info('Scan started')

    async def stop_scan(self):
        '''Stops scanning and switches to the idle state. Motor keeps
        rotating, use `stop_motor` to stop it.'''
        self._logger.info('Stopping scan')
        self._send_cmd('STOP')
        self._fail_pending(RPLidarException('Interrupted by stop command'))
        self._set_state(DeviceState.STOPPED)
        self._decoder.reset()
        await asyncio.sleep(self.stop_delay)
        if self.state == DeviceState.STOPPED:
            self._set_state(DeviceState.IDLE)

    #Continous measurments

    async def iter_scans(self, max_scans=0, dmin=None, dmax=None, qmin=None):
        '''Generator which groups published samples into full rotations.
        Scan is started if the sensor is not scanning yet. First incomplete
        rotation is skipped.

        Parameters
        ----------
        max_scans : int, optional
            Number of rotations to yield (the default is 0, which means
            infinite number of rotations)
        dmin : float, optional
            Minimal distance for filtering (the default is None,
            which implies `self.dmin`)
        dmax : float, optional
            Maximum distance for filtering (the default is None,
            which implies `self.dmax`)
        qmin : int, optional
            Minimum quality for filtering (the default is None,
            which disables quality filter)

        Yields
        ------
        ndarray
            Array with angles, distances, qualities and start flags
        '''
        dmin = self.dmin if dmin is None else dmin
        dmax = self.dmax if dmax is None else dmax
        queue = asyncio.Queue()
        unsubscribe = self.subscribe(
            queue.put_nowait,
            [EventKind.DATA, EventKind.DISCONNECT, EventKind.CLOSE])
        try:
            if self.state != DeviceState.SCANNING:
                await self.scan()
            samples = []
            count = 0
            while True:
                event = await queue.get()
                if event.kind == EventKind.DISCONNECT:
                    raise TransportError('Sensor disconnected')
                if event.kind == EventKind.CLOSE:
                    self._logger.info('Port closed, exiting generator')
                    return
                sample = event.payload
                if sample.start_flag:
                    if samples:
                        self._logger.debug('Got new rotation of %d samples',
                                           len(samples))
                        yield filter_scan(to_array(samples), dmin, dmax, qmin)
                        count += 1
                        if max_scans and count >= max_scans:
                            self._logger.info('Last scan received, '
                                              'exiting generator')
                            return
                    samples = [sample]
                elif samples:
                    samples.append(sample)
        finally:
            unsubscribe()


def _resolved(future):
    '''Checks that future completed with result'''
    return (future.done() and not future.cancelled() and
            future.exception() is None)
