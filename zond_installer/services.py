"""
Wrapper launch scripts and user-level systemd units for gzond and the
beacon chain.

Rendering functions are pure: the same configuration always produces the
same bytes.
"""
import getpass
import logging
import os
from pathlib import Path
from typing import List

import click

from .config import InstallerConfig
from .context import InstallContext
from .prompts import CREATE_SERVICES_QUESTION, ENABLE_LINGER_QUESTION, START_SERVICES_QUESTION
from .results import StageResult
from .toolchain import ensure_sudo, sudo_prefix

logger = logging.getLogger(__name__)

GZOND_SCRIPT = '1-gzond.sh'
BEACON_SCRIPT = '2-beacon-chain.sh'
GZOND_UNIT = 'gzond.service'
BEACON_UNIT = 'beacon-chain.service'
UNITS = [GZOND_UNIT, BEACON_UNIT]


def _shell_script(executable: str, args: List[str]) -> str:
    lines = ['#!/bin/bash', f'{executable} \\']
    for i, arg in enumerate(args):
        suffix = ' \\' if i < len(args) - 1 else ''
        lines.append(f'  {arg}{suffix}')
    return '\n'.join(lines) + '\n'


def beacon_args(config: InstallerConfig) -> List[str]:
    beacon = config.beacon
    args = [
        '--datadir=beacondata',
        '--min-sync-peers=0',
        '--genesis-state=genesis.ssz',
        '--chain-config-file=config.yml',
        '--config-file=config.yml',
        f'--chain-id={beacon.chain_id}',
        f'--execution-endpoint={beacon.execution_endpoint}',
        '--accept-terms-of-use',
        f'--jwt-secret={beacon.jwt_secret}',
        '--contract-deployment-block=0',
        '--minimum-peers-per-subnet=0',
        '--p2p-static-id',
        f'--suggested-fee-recipient={beacon.fee_recipient}',
    ]
    args.extend(f'--bootstrap-node "{enr}"' for enr in beacon.bootstrap_nodes)
    args.extend([
        f'--verbosity {beacon.verbosity}',
        f'--log-file {beacon.log_file}',
        f'--log-format {beacon.log_format}',
    ])
    return args


def render_gzond_script(config: InstallerConfig) -> str:
    # The wrapper attaches an interactive console; the unit runs headless.
    return _shell_script('./gzond', list(config.gzond_flags) + ['console'])


def render_beacon_script(config: InstallerConfig) -> str:
    return _shell_script('./beacon-chain', beacon_args(config))


def _unit(description: str, working_dir: Path, exec_start: str, restart_sec: int) -> str:
    return (
        "[Unit]\n"
        f"Description={description}\n"
        "After=network-online.target\n"
        "Wants=network-online.target\n"
        "\n"
        "[Service]\n"
        "Type=simple\n"
        f"WorkingDirectory={working_dir}\n"
        f"ExecStart={exec_start}\n"
        "Restart=on-failure\n"
        f"RestartSec={restart_sec}\n"
        "StandardOutput=journal\n"
        "\n"
        "[Install]\n"
        "WantedBy=default.target\n"
    )


def render_gzond_unit(config: InstallerConfig) -> str:
    root = config.install_root
    exec_start = ' '.join([str(root / 'gzond')] + list(config.gzond_flags))
    return _unit("Execution Engine (gzond)", root, exec_start, config.restart_sec)


def render_beacon_unit(config: InstallerConfig) -> str:
    root = config.install_root
    return _unit("Beacon Chain (qrysm)", root, str(root / BEACON_SCRIPT), config.restart_sec)


def _write(path: Path, content: str, mode: int = 0o644):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    os.chmod(path, mode)
    logger.debug(f"Wrote {path}")


def write_wrapper_scripts(config: InstallerConfig) -> List[Path]:
    root = config.install_root
    written = []
    for name, content in ((GZOND_SCRIPT, render_gzond_script(config)),
                          (BEACON_SCRIPT, render_beacon_script(config))):
        path = root / name
        _write(path, content, 0o755)
        written.append(path)
    return written


def write_unit_files(config: InstallerConfig) -> List[Path]:
    unit_dir = config.unit_dir
    written = []
    for name, content in ((GZOND_UNIT, render_gzond_unit(config)),
                          (BEACON_UNIT, render_beacon_unit(config))):
        path = unit_dir / name
        _write(path, content)
        written.append(path)
    return written


def _enable_command() -> str:
    return f"systemctl --user enable --now {' '.join(UNITS)}"


def setup_services(ctx: InstallContext) -> StageResult:
    """Write the wrapper scripts, then optionally register and start units."""
    for path in write_wrapper_scripts(ctx.config):
        click.echo(f"✅ Wrote {path}")

    if not ctx.prompter.confirm(CREATE_SERVICES_QUESTION):
        return StageResult.success("Skipped systemd services")

    for path in write_unit_files(ctx.config):
        click.echo(f"✅ Wrote {path}")
    ctx.services_written = True

    click.echo("Reloading systemd --user daemon...")
    reload_code = ctx.runner.run(
        "Reloading systemd --user daemon", ['systemctl', '--user', 'daemon-reload'], fatal=False,
    )
    if reload_code == 0:
        if ctx.prompter.confirm(START_SERVICES_QUESTION):
            code = ctx.runner.run("Enabling and starting services",
                                  ['systemctl', '--user', 'enable', '--now'] + UNITS, fatal=False)
            if code == 0:
                click.echo("Enabled and started services (if your system supports user systemd).")
            else:
                click.echo(f"Could not start the services. Try manually with:\n  {_enable_command()}")
        else:
            click.echo("You can enable/start them later with:")
            click.echo(f"  {_enable_command()}")
    else:
        click.echo("Couldn't reload systemd --user daemon. You may need to run the following manually in a user session:")
        click.echo("  systemctl --user daemon-reload")
        click.echo("Then enable/start the services:")
        click.echo(f"  {_enable_command()}")

    if ctx.prompter.confirm(ENABLE_LINGER_QUESTION):
        user = getpass.getuser()
        if not ensure_sudo():
            click.secho(f"⚠️  sudo unavailable; run manually: sudo loginctl enable-linger {user}", fg='yellow')
        else:
            code = ctx.runner.run(f"Enabling linger for {user}",
                                  sudo_prefix() + ['loginctl', 'enable-linger', user], fatal=False)
            if code == 0:
                click.echo(f"Enabled linger for {user}. Services can now run across reboots when enabled.")
            else:
                click.echo(f"Run manually: sudo loginctl enable-linger {user}")

    return StageResult.success()
