"""
Shared fixtures: a configuration rooted in a temporary home directory and a
runner that simulates the external build commands instead of running them.
"""
import os
from pathlib import Path

import pytest

from zond_installer.config import InstallerConfig
from zond_installer.context import InstallContext
from zond_installer.preflight import EnvironmentSnapshot
from zond_installer.prompts import ScriptedPrompter
from zond_installer.runner import StepRunner, format_command


def _make_executable(path: Path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text('#!/bin/sh\nexit 0\n')
    os.chmod(path, 0o755)


class FakeRunner(StepRunner):
    """
    Records every command. git clone, make all and go build leave behind the
    files the real tools would produce. fail_on maps a description substring
    to the exit code that step should return.
    """

    def __init__(self, log_path, fail_on=None):
        super().__init__(log_path=str(log_path), spinner=False)
        self.fail_on = fail_on or {}
        self.commands = []

    def run(self, description, command, cwd=None, env=None, fatal=True):
        self.commands.append(format_command(command))
        self.note(f"==> {description}")

        for needle, code in self.fail_on.items():
            if needle in description:
                return self._report(description, code, fatal)

        if isinstance(command, list) and cwd is not None:
            cwd = Path(cwd)
            if command[:2] == ['git', 'clone']:
                (cwd / command[-1]).mkdir(parents=True)
            elif command == ['make', 'all']:
                for name in ('gzond', 'clef'):
                    _make_executable(cwd / 'build' / 'bin' / name)
            elif command[:2] == ['go', 'build']:
                output = command[2].split('=', 1)[1]
                _make_executable((cwd / output).resolve())
        return self._report(description, 0, fatal)


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv('HOME', str(tmp_path))
    return tmp_path


@pytest.fixture
def config(home):
    return InstallerConfig(
        install_dir=str(home / 'zond-testnetv1'),
        shell_profile=str(home / '.bashrc'),
        systemd_user_dir=str(home / '.config' / 'systemd' / 'user'),
    )


@pytest.fixture
def good_snapshot():
    return EnvironmentSnapshot(
        os_id='ubuntu',
        os_version='24.04',
        pretty_name='Ubuntu 24.04.1 LTS',
        cpu_cores=4,
        ram_gb=16,
        free_disk_gb=500,
    )


@pytest.fixture
def fake_runner(tmp_path):
    return FakeRunner(tmp_path / 'install.log')


@pytest.fixture
def make_runner(tmp_path):
    def _make(fail_on=None, name='steps.log'):
        return FakeRunner(tmp_path / name, fail_on=fail_on)
    return _make


@pytest.fixture
def make_context(config, home, fake_runner):
    def _make(answers=None, runner=None):
        return InstallContext(
            config=config,
            runner=runner or fake_runner,
            prompter=ScriptedPrompter(answers),
            home=home,
        )
    return _make
