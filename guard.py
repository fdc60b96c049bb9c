"""
Process guard: one context object holding the stop flag, signal
subscriptions, events and the process lock.

Typical host:

    guard = ProcessGuard()
    guard.mutex(lock_file)
    guard.install_shutdown_handlers()
    guard.setup_events()
    while guard.before_work():
        do_one_unit()
"""
import logging
import threading

import mutex
from events import Event, EventManager
from signals import KILL_SIGNALS, SHUTDOWN_SIGNALS, SignalRegistry

log = logging.getLogger("procguard.guard")

BEFORE_WORK = 'Queue.beforeWork'
SIGNAL_EVENT = 'CLI.signal'


class ProcessGuard:
    def __init__(self, registry=None, events=None):
        self.registry = registry or SignalRegistry()
        self.events = events or EventManager()
        self._stop = threading.Event()
        self._lock = None

    @property
    def lock(self):
        return self._lock

    @property
    def stopped(self):
        return self._stop.is_set()

    def should_stop(self):
        self.registry.dispatch_pending()
        return self._stop.is_set()

    def request_stop(self, reason=None):
        if self._stop.is_set():
            return
        self._stop.set()
        if reason:
            log.warning("Stop requested: %s", reason)

    def mutex(self, lock_file):
        """Take the process lock or exit; the guard keeps the handle alive"""
        log.info("Using lock file: %s", lock_file)
        self._lock = mutex.acquire(lock_file)
        return self._lock

    def setup_signals(self):
        """SIGTERM and SIGHUP set the stop flag"""
        def stop_server_loop(notification):
            log.warning("Got kill signal from signal handler (%s)", notification.name)
            self.request_stop()

        for name in SHUTDOWN_SIGNALS:
            self.registry.subscribe(name, stop_server_loop)

    def handle_kill_signals(self):
        """Publish a CLI.signal event for each of the common kill signals"""
        def publish(notification):
            log.warning('Got OS signal "%s"', notification.name)
            self.events.dispatch(Event(SIGNAL_EVENT, {'signo': notification.signo}, subject=self))

        for name in KILL_SIGNALS:
            self.registry.subscribe(name, publish)

    def install_shutdown_handlers(self):
        self.setup_signals()
        self.handle_kill_signals()

    def setup_events(self):
        def check_kill(event):
            if not self._stop.is_set():
                return
            log.warning("Got kill signal, exiting....")
            event.stop_propagation()

        self.events.on(check_kill, BEFORE_WORK)

    def before_work(self):
        """True when the next unit of work may run"""
        self.registry.dispatch_pending()
        event = self.events.dispatch(Event(BEFORE_WORK, subject=self))
        return not event.is_stopped()
