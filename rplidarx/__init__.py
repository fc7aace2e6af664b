'''This module aims to implement host side of the communication protocol
with RoboPeak RPLidar laser rangefinder scanners connected over serial port.
It covers device health and information requests, reset, motor control and
the standard scan mode. For protocol specifications please refer to the
following document:

- http://www.slamtec.com/download/lidar/documents/en-us/rplidar_interface_protocol_en.pdf

Usage example:

>>> import asyncio
>>> from rplidarx import RPLidar, EventKind
>>> async def main():
...     laser = RPLidar('/dev/ttyUSB0')
...     await laser.open()
...     print(await laser.get_health())
...     laser.subscribe(print, [EventKind.DATA]) # Every decoded sample
...     async for scan in laser.iter_scans(10): # Full rotations
...         print(len(scan))
...     await laser.stop_scan()
...     await laser.stop_motor()
...     await laser.close()
>>> asyncio.run(main())

For further information please refer to RPLidar class documentation
'''
from .rplidar import RPLidar
from .notifications import Notifier, Event, EventKind
from .responses import HealthStatus, DeviceInfo
from .scan import ScanSample, ScanDecoder
from .statuses import HealthState, DeviceState, MotorState
from .transport import Transport, SerialTransport
