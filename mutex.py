"""
Exclusive process lock based on flock(2).

Only a held lock means "running"; the lock file may exist without one. The
holder writes its pid into the file so contenders and operators can see who
owns it.

There is no release call. The LockHandle owns the locked descriptor and the
OS lock goes away when the handle is destroyed or the process exits, so the
host must keep the handle referenced for as long as it runs.
"""
import errno
import fcntl
import logging
import os
import sys
from pathlib import Path

log = logging.getLogger("procguard.mutex")

# Exit status used when another instance holds the lock (EX_TEMPFAIL)
EXIT_LOCK_CONTENDED = 75


class LockError(Exception):
    def __init__(self, path, message):
        super().__init__(message)
        self.path = Path(path)


class LockContended(LockError):
    def __init__(self, path, holder_pid=None):
        message = f"Could not get exclusive lock on {path}, other process must be running"
        if holder_pid:
            message += f" (PID {holder_pid})"
        super().__init__(path, message)
        self.holder_pid = holder_pid


class LockIoError(LockError):
    def __init__(self, path, reason):
        super().__init__(path, f"Cannot use lock file {path}: {reason}")
        self.reason = reason


class LockHandle:
    def __init__(self, path, fh):
        self.path = Path(path)
        self.pid = os.getpid()
        self._fh = fh

    def fileno(self):
        return self._fh.fileno()

    @property
    def closed(self):
        return self._fh.closed

    def __del__(self):
        fh = getattr(self, '_fh', None)
        if fh is not None and not fh.closed:
            fh.close()

    def __repr__(self):
        return f"LockHandle(path={str(self.path)!r}, pid={self.pid})"


def read_pid(path):
    """Return the pid recorded in a lock file, or None"""
    try:
        content = Path(path).read_text().strip()
    except OSError:
        return None
    try:
        return int(content)
    except ValueError:
        return None


def try_acquire(path):
    """Take the lock or raise LockContended / LockIoError"""
    path = Path(path)
    try:
        # "a+" creates without truncating, so a contender never wipes the holder's pid
        fh = open(path, 'a+')
    except OSError as e:
        log.error("Could not open lock file %s: %s", path, e)
        raise LockIoError(path, e.strerror or str(e)) from e

    try:
        fcntl.flock(fh, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError as e:
        fh.close()
        if e.errno in (errno.EAGAIN, errno.EACCES, errno.EWOULDBLOCK):
            holder = read_pid(path)
            log.warning("Could not get exclusive lock, other process must be running (lock: %s, PID: %s)",
                        path, holder or 'unknown')
            raise LockContended(path, holder) from e
        log.error("Could not lock %s: %s", path, e)
        raise LockIoError(path, e.strerror or str(e)) from e

    try:
        fh.seek(0)
        fh.truncate()
        fh.write(str(os.getpid()))
        fh.flush()
    except OSError as e:
        fh.close()
        log.error("Could not write PID to lock file %s: %s", path, e)
        raise LockIoError(path, e.strerror or str(e)) from e

    log.info("My PID: %s", os.getpid())
    return LockHandle(path, fh)


def acquire(path):
    """
    Take the lock or terminate the process.

    Contention exits with EXIT_LOCK_CONTENDED; running without the lock is
    never an option. LockIoError is left to the caller.
    """
    try:
        return try_acquire(path)
    except LockContended:
        log.warning("Exiting with status %d", EXIT_LOCK_CONTENDED)
        sys.exit(EXIT_LOCK_CONTENDED)


def is_locked(path):
    """Check whether some process holds the lock, without taking it"""
    try:
        fh = open(path, 'r')
    except FileNotFoundError:
        return False
    except OSError as e:
        raise LockIoError(path, e.strerror or str(e)) from e

    with fh:
        try:
            fcntl.flock(fh, fcntl.LOCK_SH | fcntl.LOCK_NB)
        except BlockingIOError:
            return True
        fcntl.flock(fh, fcntl.LOCK_UN)
        return False
