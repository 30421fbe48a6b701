"""
Runs installer steps as child processes, appending all of their output to a
single log file and showing a spinner while each one is in flight.
"""
import logging
import os
import shlex
import subprocess
import sys
import tempfile
import time
from collections import deque
from typing import Dict, List, Optional, Sequence, Union

import click

logger = logging.getLogger(__name__)

SPINNER_FRAMES = '|/-\\'
POLL_INTERVAL = 0.1
COMMAND_NOT_FOUND = 127

Command = Union[str, Sequence[str]]


class StepFailed(Exception):
    """A fatal step exited with a non-zero status."""

    def __init__(self, description: str, exit_code: int, log_path: str):
        super().__init__(f"{description} failed with exit code {exit_code}")
        self.description = description
        self.exit_code = exit_code
        self.log_path = log_path


def shell_exit_code(returncode: int) -> int:
    """Map a signal death (negative returncode) to the shell's 128+N convention."""
    return 128 - returncode if returncode < 0 else returncode


def format_command(command: Command) -> str:
    if isinstance(command, str):
        return command
    return ' '.join(shlex.quote(part) for part in command)


class StepRunner:
    """
    Executes one command at a time. Step output never reaches the terminal;
    it is appended to log_path, which outlives the process for diagnostics.
    """

    def __init__(self, log_path: Optional[str] = None, spinner: Optional[bool] = None, tail_lines: int = 20):
        if log_path is None:
            fd, log_path = tempfile.mkstemp(prefix='zond-install-', suffix='.log')
            os.close(fd)
        self.log_path = log_path
        self.spinner = sys.stdout.isatty() if spinner is None else spinner
        self.tail_lines = tail_lines
        self.history: List[Dict] = []
        self._pending = None

    def note(self, text: str):
        """Append a free-form line to the log."""
        with open(self.log_path, 'a') as log:
            log.write(text.rstrip('\n') + '\n')

    def tail(self, lines: Optional[int] = None) -> List[str]:
        """Return the last lines of the log."""
        count = self.tail_lines if lines is None else lines
        try:
            with open(self.log_path, 'r', errors='replace') as f:
                return [line.rstrip('\n') for line in deque(f, maxlen=count)]
        except FileNotFoundError:
            return []

    def run(self, description: str, command: Command, cwd=None, env: Optional[Dict[str, str]] = None,
            fatal: bool = True) -> int:
        """
        Run command, wait for it, and report the outcome.

        Returns the exit code. When fatal is True a non-zero exit prints the
        log tail and raises StepFailed; otherwise a warning is printed and the
        caller decides what to do.
        """
        display = format_command(command)
        logger.info(f"Running step '{description}': {display}")

        with open(self.log_path, 'a') as log:
            offset = log.tell()
            log.write(f"\n==> {description}\n$ {display}\n")
            log.flush()
            try:
                process = subprocess.Popen(
                    command,
                    shell=isinstance(command, str),
                    cwd=cwd,
                    env=env,
                    stdin=subprocess.DEVNULL,
                    stdout=log,
                    stderr=subprocess.STDOUT,
                )
            except (FileNotFoundError, NotADirectoryError, PermissionError) as e:
                log.write(f"{e}\n")
                exit_code = COMMAND_NOT_FOUND
            else:
                exit_code = shell_exit_code(self._wait(process, description))

        self.history.append({
            'description': description,
            'command': display,
            'exit_code': exit_code,
            'log_offset': offset,
        })
        return self._report(description, exit_code, fatal)

    def start(self, description: str, command: str):
        """Open the log section of an in-process step."""
        with open(self.log_path, 'a') as log:
            self._pending = (description, command, log.tell())
            log.write(f"\n==> {description}\n$ {command}\n")

    def complete(self, description: str):
        """Report an in-process step as passed."""
        self._record_pending(description, 0)
        click.echo(f"✅ {description}")

    def fail(self, description: str, exit_code: int = 1):
        """Report an in-process step as failed, show the log tail, and raise StepFailed."""
        self._record_pending(description, exit_code)
        return self._report(description, exit_code, fatal=True)

    def _record_pending(self, description: str, exit_code: int):
        pending, self._pending = self._pending, None
        if pending is not None and pending[0] == description:
            command, offset = pending[1], pending[2]
        else:
            command = ''
            offset = os.path.getsize(self.log_path) if os.path.exists(self.log_path) else 0
        self.history.append({
            'description': description,
            'command': command,
            'exit_code': exit_code,
            'log_offset': offset,
        })

    def _wait(self, process: subprocess.Popen, description: str) -> int:
        if not self.spinner:
            return process.wait()

        frame = 0
        while process.poll() is None:
            click.echo(f"\r{SPINNER_FRAMES[frame % len(SPINNER_FRAMES)]} {description}...", nl=False)
            frame += 1
            time.sleep(POLL_INTERVAL)
        click.echo('\r' + ' ' * (len(description) + 5) + '\r', nl=False)
        return process.returncode

    def _report(self, description: str, exit_code: int, fatal: bool) -> int:
        if exit_code == 0:
            click.echo(f"✅ {description}")
            return exit_code

        if not fatal:
            logger.warning(f"Optional step '{description}' exited with {exit_code}")
            click.secho(f"⚠️  {description} (exit code {exit_code})", fg='yellow')
            return exit_code

        logger.error(f"Step '{description}' failed with exit code {exit_code}")
        click.secho(f"❌ {description} (exit code {exit_code})", fg='red', err=True)
        click.echo(f"See log: {self.log_path}", err=True)
        click.echo(f"Last {self.tail_lines} log lines:", err=True)
        for line in self.tail():
            click.echo(f"  {line}", err=True)
        raise StepFailed(description, exit_code, self.log_path)
