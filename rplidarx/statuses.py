'''Various statuses, their codes and descriptions used in the rplidarx'''
from enum import IntEnum


class HealthState(IntEnum):
    '''Health status reported by `GET_HEALTH` reply'''
    GOOD = 0
    WARNING = 1
    ERROR = 2


class DeviceState(IntEnum):
    '''Driver side view of the sensor state'''
    UNKNOWN = 0
    IDLE = 1
    PROCESSING = 2
    SCANNING = 3
    STOPPED = 4


class MotorState(IntEnum):
    '''State of the rotating head motor'''
    OFF = 0
    ON = 1


#: Health statuses descriptions
health_statuses = {
    HealthState.GOOD: 'Good',
    HealthState.WARNING: 'Warning. The sensor works, but some problem '
                         'was detected.',
    HealthState.ERROR: 'Error. The sensor is in protection stop state, '
                       'reset is required.',
}

#: Device states descriptions
device_states = {
    DeviceState.UNKNOWN: 'Port is not opened',
    DeviceState.IDLE: 'Idle state, ready for requests',
    DeviceState.PROCESSING: 'Request was sent, awaiting reply',
    DeviceState.SCANNING: 'Scan data stream is active',
    DeviceState.STOPPED: 'Scanning was stopped or reset was requested',
}
