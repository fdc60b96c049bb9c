#!/usr/bin/env python3
import os
import sys

import click

from guard import ProcessGuard
from mutex import LockError, is_locked, read_pid
from signals import SIGNALS, SignalError, resolve
from utils import get_config, get_lock_file, setup_logging
from worker import execute_job
from worker_runner import worker_loop


def lock_options(f):
    f = click.option('--lock-dir', default=None, type=click.Path(file_okay=False),
                     help='Directory holding lock files')(f)
    f = click.option('--process-id', default=None,
                     help='A process identifier to make locking work with Supervisor')(f)
    return f


@click.group()
@click.option('--log-level', default=None, help='DEBUG, INFO, WARNING or ERROR')
def cli(log_level):
    setup_logging(log_level)


@cli.command()
@click.argument('name')
@click.argument('command')
@lock_options
@click.option('--interval', default=None, type=float, help='Seconds between runs')
@click.option('--timeout', default=None, type=float, help='Seconds before a run is killed')
@click.option('--max-runs', default=None, type=int, help='Stop after this many runs')
def run(name, command, process_id, lock_dir, interval, timeout, max_runs):
    """Run COMMAND repeatedly as the single NAME worker"""
    interval = interval if interval is not None else float(get_config('poll_interval'))
    timeout = timeout if timeout is not None else float(get_config('command_timeout'))
    lock_file = get_lock_file(name, process_id, lock_dir)

    guard = ProcessGuard()
    try:
        guard.mutex(lock_file)
        guard.install_shutdown_handlers()
        # Ctrl-C stops an interactive run as well
        guard.registry.subscribe('SIGINT', lambda n: guard.request_stop(n.name))
    except (LockError, SignalError) as e:
        click.echo(f"✗ Error: {e}", err=True)
        sys.exit(1)
    guard.setup_events()

    def run_command():
        result = execute_job(command, timeout=timeout)
        if result.output:
            click.echo(result.output.rstrip())
        # always idle for `interval` between runs
        return False

    runs = worker_loop(guard, run_command, interval=interval, max_iterations=max_runs)
    click.echo(f"✓ Worker {name} stopped after {runs} run(s).")


@cli.command()
@click.argument('name')
@lock_options
def status(name, process_id, lock_dir):
    """Show whether the NAME worker holds its lock"""
    lock_file = get_lock_file(name, process_id, lock_dir)
    try:
        running = is_locked(lock_file)
    except LockError as e:
        click.echo(f"✗ Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Lock file : {lock_file}")
    if running:
        click.echo(f"Status    : running (PID {read_pid(lock_file) or 'unknown'})")
    else:
        click.echo("Status    : not running")


@cli.command()
@click.argument('name')
@lock_options
@click.option('--signal', 'signal_ref', default='SIGTERM', help='Signal name or number to send')
def stop(name, process_id, lock_dir, signal_ref):
    """Send a signal (SIGTERM by default) to the running NAME worker"""
    try:
        signo, signal_name = resolve(signal_ref)
    except SignalError as e:
        click.echo(f"✗ Error: {e}", err=True)
        sys.exit(1)

    lock_file = get_lock_file(name, process_id, lock_dir)
    try:
        running = is_locked(lock_file)
    except LockError as e:
        click.echo(f"✗ Error: {e}", err=True)
        sys.exit(1)

    pid = read_pid(lock_file) if running else None
    if not pid:
        click.echo("No worker running.")
        return

    try:
        os.kill(pid, signo)
    except ProcessLookupError:
        click.echo(f"Worker PID {pid} already exited.")
        return
    except OSError as e:
        click.echo(f"✗ Error stopping PID {pid}: {e}", err=True)
        sys.exit(1)

    click.echo(f"✓ Sent {signal_name} to worker PID {pid}.")


@cli.command('signals')
def list_signals():
    """List known signal numbers and names"""
    for signo, signal_name in SIGNALS.items():
        click.echo(f"{signo:>3}  {signal_name}")


@cli.command()
@click.option('--key', required=True, help='Configuration key')
def config_get(key):
    """Print the effective value of a config key"""
    value = get_config(key)
    if value:
        click.echo(f"{key} = {value}")
    else:
        click.echo(f"Config key '{key}' not found.", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
