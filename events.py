"""
Named events with ordered listeners.

A listener may stop an event; listeners registered after it are then skipped
and the dispatcher can inspect is_stopped() to decide what to do next.
"""
import logging

log = logging.getLogger("procguard.events")


class Event:
    def __init__(self, name, data=None, subject=None):
        self.name = name
        self.data = dict(data or {})
        self.subject = subject
        self.result = None
        self._stopped = False

    def stop_propagation(self):
        self._stopped = True

    def is_stopped(self):
        return self._stopped

    def __repr__(self):
        return f"Event({self.name!r}, data={self.data!r}, stopped={self._stopped})"


class EventManager:
    def __init__(self):
        self._listeners = {}

    def on(self, callback, name):
        if not callable(callback):
            raise TypeError(f"Listener for {name!r} is not callable")
        self._listeners.setdefault(name, []).append(callback)

    def listeners(self, name):
        return list(self._listeners.get(name, ()))

    def dispatch(self, event):
        for listener in self.listeners(event.name):
            if event.is_stopped():
                break
            listener(event)
        if event.is_stopped():
            log.debug("Event %s stopped", event.name)
        return event
