import logging
import subprocess
from dataclasses import dataclass

log = logging.getLogger("procguard.worker")

MAX_OUTPUT = 1000


@dataclass
class JobResult:
    command: str
    returncode: int | None
    output: str

    @property
    def ok(self):
        return self.returncode == 0


def execute_job(command, timeout=30):
    """Run one shell command as a unit of work"""
    try:
        result = subprocess.run(command, shell=True, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired:
        log.warning("Command timed out after %ss: %s", timeout, command)
        return JobResult(command, None, f"Timed out after {timeout}s")

    output = (result.stdout or result.stderr)[:MAX_OUTPUT]
    if result.returncode == 0:
        log.debug("Command succeeded: %s", command)
    else:
        log.warning("Command exited with %d: %s", result.returncode, command)
    return JobResult(command, result.returncode, output)
