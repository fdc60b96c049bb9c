"""
Signal table, subscriptions and dispatch.

OS handlers installed here never run subscriber code directly: they only put
the signal number on a SimpleQueue, whose put() is re-entrant. The worker
loop drains the queue at its next check-in point (dispatch_pending) or while
idling in wait(), and the subscribers run there.
"""
import logging
import queue
import signal
from dataclasses import dataclass

log = logging.getLogger("procguard.signals")

SIGNALS = {
    1: 'SIGHUP',
    2: 'SIGINT',
    3: 'SIGQUIT',
    4: 'SIGILL',
    5: 'SIGTRAP',
    6: 'SIGABRT',
    7: 'SIGBUS',
    8: 'SIGFPE',
    9: 'SIGKILL',
    10: 'SIGUSR1',
    11: 'SIGSEGV',
    12: 'SIGUSR2',
    13: 'SIGPIPE',
    14: 'SIGALRM',
    15: 'SIGTERM',
    16: 'SIG16',
    17: 'SIGCHLD',
    18: 'SIGCONT',
    19: 'SIGSTOP',
    20: 'SIGTSTP',
    21: 'SIGTTIN',
    22: 'SIGTTOU',
    23: 'SIGURG',
    24: 'SIGXCPU',
    25: 'SIGXFSZ',
    26: 'SIGVTALRM',
    27: 'SIGPROF',
    28: 'SIGWINCH',
    29: 'SIGIO',
    30: 'SIGPWR',
    31: 'SIGSYS',
    32: 'SIG32',
    33: 'SIG33',
    34: 'SIGRTMIN',
}
SIGNALS.update({34 + n: f'SIGRTMIN+{n}' for n in range(1, 16)})
SIGNALS.update({64 - n: f'SIGRTMAX-{n}' for n in range(14, 0, -1)})
SIGNALS[64] = 'SIGRTMAX'

SIGNAL_IDS = {name: signo for signo, name in SIGNALS.items()}

# Default graceful-shutdown set and the broader notification set
SHUTDOWN_SIGNALS = ('SIGTERM', 'SIGHUP')
KILL_SIGNALS = ('SIGHUP', 'SIGTERM', 'SIGINT', 'SIGQUIT', 'SIGUSR1', 'SIGUSR2')


class SignalError(Exception):
    """Base class for signal subscription failures"""


class UnknownSignal(SignalError):
    def __init__(self, signal_ref):
        super().__init__(f"Unknown signal: {signal_ref}")
        self.signal_ref = signal_ref


class NotCallable(SignalError, TypeError):
    def __init__(self, callback):
        super().__init__("Argument provided as callable is not callable")
        self.callback = callback


class RegistrationFailed(SignalError):
    def __init__(self, name, signo, reason=None):
        message = f"Could not subscribe to signal {name} ({signo})"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.name = name
        self.signo = signo


@dataclass(frozen=True)
class SignalNotification:
    signo: int
    name: str


def signal_name(signo):
    try:
        return SIGNALS[signo]
    except (KeyError, TypeError):
        raise UnknownSignal(signo) from None


def resolve(signal_ref):
    """
    Resolve a numeric id or a symbolic name to (signo, name).

    Names are matched case-insensitively, with or without the SIG prefix,
    so "SIGTERM", "sigterm" and "TERM" all resolve to 15.
    """
    if isinstance(signal_ref, bool):
        raise UnknownSignal(signal_ref)
    if isinstance(signal_ref, int):
        signo = int(signal_ref)
        return signo, signal_name(signo)
    if isinstance(signal_ref, str):
        key = signal_ref.strip().upper()
        if key.isdigit():
            signo = int(key)
            return signo, signal_name(signo)
        if not key.startswith('SIG'):
            key = 'SIG' + key
        if key in SIGNAL_IDS:
            return SIGNAL_IDS[key], key
    raise UnknownSignal(signal_ref)


class SignalRegistry:
    """
    Maps signal ids to ordered subscriber callbacks.

    `installer` has the signature of signal.signal and is called once per
    signal id, on its first subscription.
    """

    def __init__(self, installer=None):
        self._installer = installer or signal.signal
        self._subscribers = {}
        self._pending = queue.SimpleQueue()

    def subscribe(self, signal_ref, callback):
        signo, name = resolve(signal_ref)
        if not callable(callback):
            raise NotCallable(callback)

        if signo not in self._subscribers:
            try:
                self._installer(signo, self._trampoline)
            except (OSError, ValueError, RuntimeError) as e:
                log.error("Could not subscribe to signal %s (%d): %s", name, signo, e)
                raise RegistrationFailed(name, signo, e) from e
            self._subscribers[signo] = []

        self._subscribers[signo].append(callback)
        log.debug("Successfully subscribed to signal %s (%d)", name, signo)
        return signo

    def subscribers(self, signal_ref):
        signo, _ = resolve(signal_ref)
        return list(self._subscribers.get(signo, ()))

    def subscribed(self):
        return sorted(self._subscribers)

    def _trampoline(self, signo, frame):
        # Runs in signal context: no locks, logging or callbacks here
        self._pending.put(signo)

    def deliver(self, signo):
        """Invoke every subscriber of `signo`, in subscription order."""
        notification = SignalNotification(signo, signal_name(signo))
        callbacks = self._subscribers.get(signo)
        if not callbacks:
            log.debug("No subscribers for signal %s (%d)", notification.name, signo)
            return notification

        log.debug("Delivering signal %s (%d) to %d subscriber(s)",
                  notification.name, signo, len(callbacks))
        for callback in list(callbacks):
            try:
                callback(notification)
            except Exception:
                log.exception("Signal subscriber failed for %s (%d)", notification.name, signo)
        return notification

    def pending(self):
        return self._pending.qsize()

    def dispatch_pending(self):
        """Deliver every queued signal in arrival order. Returns how many."""
        delivered = 0
        while True:
            try:
                signo = self._pending.get_nowait()
            except queue.Empty:
                return delivered
            self.deliver(signo)
            delivered += 1

    def wait(self, timeout=None):
        """Sleep until a signal arrives or `timeout` elapses, then dispatch."""
        try:
            signo = self._pending.get(timeout=timeout)
        except queue.Empty:
            return 0
        self.deliver(signo)
        return 1 + self.dispatch_pending()
