import logging
import os
import re
import tempfile
from pathlib import Path

ENV_PREFIX = "PROCGUARD_"

DEFAULTS = {
    'lock_dir': tempfile.gettempdir(),
    'poll_interval': '1',
    'command_timeout': '30',
    'log_level': 'INFO',
}

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s  %(message)s"


def get_config(key, default=None):
    """Environment override (PROCGUARD_<KEY>) first, then built-in defaults"""
    value = os.environ.get(ENV_PREFIX + key.upper())
    if value is not None and value.strip():
        return value.strip()
    return DEFAULTS.get(key, default)


def setup_logging(level=None):
    level = (level or get_config('log_level')).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )


def get_lock_file(name, process_id=None, lock_dir=None):
    """
    Lock file path for a worker class.

    A process_id gives each supervised instance (e.g. supervisor's
    process_num) its own lock.
    """
    safe = re.sub(r'[^A-Za-z0-9_.-]+', '_', name).strip('._')
    if not safe:
        raise ValueError(f"Invalid worker name: {name!r}")
    filename = safe
    if process_id is not None and str(process_id) != '':
        filename += f".{process_id}"
    return Path(lock_dir or get_config('lock_dir')) / f"{filename}.lock"
