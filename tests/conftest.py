import signal

import pytest

from signals import KILL_SIGNALS


class FakeInstaller:
    """Records handler installations instead of touching the process"""

    def __init__(self, refuse=()):
        self.calls = []
        self.refuse = set(refuse)

    def __call__(self, signo, handler):
        if signo in self.refuse:
            raise OSError(22, "Invalid argument")
        self.calls.append((signo, handler))


@pytest.fixture
def installer():
    return FakeInstaller()


@pytest.fixture
def refusing_installer():
    return FakeInstaller(refuse={signal.SIGUSR1})


@pytest.fixture(autouse=True)
def restore_signal_handlers():
    saved = {name: signal.getsignal(getattr(signal, name)) for name in KILL_SIGNALS}
    yield
    for name, handler in saved.items():
        if handler is not None:
            signal.signal(getattr(signal, name), handler)
