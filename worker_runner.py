"""
Cooperative worker loop.
The guard is checked before every unit of work; a stop request ends the loop
at the next check-in instead of interrupting work in progress.
"""
import logging

log = logging.getLogger("procguard.worker_runner")


def worker_loop(guard, work, interval=1.0, max_iterations=None):
    """
    Call work() until the guard says stop. Returns the number of units run.

    A falsy return from work() means nothing was done; the loop then idles
    for `interval` seconds, waking early when a signal arrives.
    """
    runs = 0
    while guard.before_work():
        if max_iterations is not None and runs >= max_iterations:
            break

        runs += 1
        try:
            did_work = work()
        except KeyboardInterrupt:
            break
        except Exception:
            log.exception("Worker error")
            did_work = False

        if not did_work:
            guard.registry.wait(interval)

    log.info("Worker loop finished after %d unit(s)", runs)
    return runs
