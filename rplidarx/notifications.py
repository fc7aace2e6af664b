'''Notification channel which delivers decoded events to subscribers'''
import asyncio
import logging
from collections import namedtuple
from enum import Enum


class EventKind(Enum):
    '''Kinds of published events'''
    READY = 'ready'
    HEALTH = 'health'
    INFO = 'info'
    SCAN_START = 'scan-start'
    BOOT = 'boot'
    DATA = 'data'
    ERROR = 'error'
    DISCONNECT = 'disconnect'
    CLOSE = 'close'


Event = namedtuple('Event', 'kind payload')


class Notifier(object):
    '''Single producer, multiple subscribers channel. Events are delivered
    synchronously in subscription order at the moment they are published.

    Examples
    --------
    >>> notifier = Notifier()
    >>> unsubscribe = notifier.subscribe(print, [EventKind.HEALTH])
    >>> notifier.publish(EventKind.HEALTH, 'ok')
    Event(kind=<EventKind.HEALTH: 'health'>, payload='ok')
    >>> unsubscribe()
    '''

    def __init__(self, logger=None):
        self._subscribers = []
        self._logger = logging.getLogger('rplidar') if logger is None \
            else logger

    def subscribe(self, callback, kinds=None):
        '''Registers callback which will be called with `Event` instances.

        Parameters
        ----------
        callback : callable
            Subscriber callback
        kinds : iterable of EventKind, optional
            Event kinds to deliver (the default is None, which means all)

        Returns
        -------
        callable
            Function which removes the subscription
        '''
        kinds = None if kinds is None else frozenset(EventKind(k)
                                                     for k in kinds)
        self._subscribers.append((callback, kinds))
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback):
        '''Removes all subscriptions of the given callback'''
        self._subscribers = [(cb, kinds) for cb, kinds in self._subscribers
                             if cb != callback]

    def publish(self, kind, payload=None):
        '''Delivers event to all interested subscribers'''
        event = Event(EventKind(kind), payload)
        for callback, kinds in list(self._subscribers):
            if kinds is not None and event.kind not in kinds:
                continue
            try:
                callback(event)
            except Exception:
                self._logger.exception('Subscriber %r failed on %s event',
                                       callback, event.kind.value)

    def wait_for(self, kind):
        '''Returns future resolved with the payload of the next event of
        the given kind. Must be called inside running event loop.'''
        kind = EventKind(kind)
        future = asyncio.get_running_loop().create_future()

        def waiter(event):
            self.unsubscribe(waiter)
            if not future.done():
                future.set_result(event.payload)

        self.subscribe(waiter, [kind])
        future.add_done_callback(lambda _: self.unsubscribe(waiter))
        return future
