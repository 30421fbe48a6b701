"""
System packages and the Go toolchain (installed and pinned through gobrew).
"""
import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

import click

from .context import BuildEnvironment, InstallContext
from .results import StageResult

logger = logging.getLogger(__name__)

PROFILE_MARKER = 'gobrew/current/bin'
PROFILE_LINES = [
    'export PATH="$HOME/.gobrew/current/bin:$HOME/.gobrew/bin:$PATH"',
    'export GOPATH="$HOME/.gobrew/current/go"',
]


def is_root() -> bool:
    return os.geteuid() == 0


def sudo_prefix() -> List[str]:
    return [] if is_root() else ['sudo']


def ensure_sudo() -> bool:
    """
    Make sure privileged commands will not prompt mid-step. Runs `sudo -v`
    in the foreground so the password prompt reaches the terminal.
    """
    if is_root():
        return True
    if shutil.which('sudo') is None:
        logger.error("sudo is not available")
        return False
    click.echo("🔐 Checking sudo access (you may be asked for your password)...")
    return subprocess.run(['sudo', '-v']).returncode == 0


def install_system_packages(ctx: InstallContext) -> StageResult:
    if not ensure_sudo():
        return StageResult.fatal("sudo access is required to install system packages.")

    sudo = sudo_prefix()
    ctx.runner.run("Updating package lists", sudo + ['apt', 'update', '-y'])
    ctx.runner.run(
        f"Installing {', '.join(ctx.config.apt_packages)}",
        sudo + ['apt', 'install', '-y'] + list(ctx.config.apt_packages),
    )
    return StageResult.success()


def find_gobrew(home: Path) -> Optional[str]:
    """Resolve gobrew from PATH, then from its default install location."""
    found = shutil.which('gobrew')
    if found:
        return found
    candidate = home / '.gobrew' / 'bin' / 'gobrew'
    if candidate.exists() and os.access(candidate, os.X_OK):
        return str(candidate)
    return None


def append_profile_lines(profile: Path, lines: Sequence[str], marker: str) -> bool:
    """
    Append lines to a shell profile unless marker already occurs in it.
    Returns True when the profile was modified.
    """
    existing = profile.read_text() if profile.exists() else ''
    if marker in existing:
        return False

    profile.parent.mkdir(parents=True, exist_ok=True)
    with open(profile, 'a') as f:
        if existing and not existing.endswith('\n'):
            f.write('\n')
        for line in lines:
            f.write(line + '\n')
    return True


def install_toolchain(ctx: InstallContext) -> StageResult:
    if find_gobrew(ctx.home):
        click.echo("gobrew is already installed.")
    else:
        click.echo("Installing gobrew...")
        ctx.runner.run(
            "Installing gobrew",
            f"curl -sL {ctx.config.gobrew_installer_url} | bash",
        )

    profile = ctx.config.profile_path
    if append_profile_lines(profile, PROFILE_LINES, PROFILE_MARKER):
        click.echo(f"Added gobrew settings to {profile}")
    else:
        click.echo(f"gobrew settings already in {profile}")

    ctx.build_env = BuildEnvironment.for_home(ctx.home)
    gobrew = find_gobrew(ctx.home) or 'gobrew'
    ctx.runner.run(
        f"Selecting Go {ctx.config.go_version}",
        [gobrew, 'use', ctx.config.go_version],
        env=ctx.child_env(),
    )
    return StageResult.success()
