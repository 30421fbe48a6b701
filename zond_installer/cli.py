import logging
import sys

import click
import yaml
from tabulate import tabulate

from .builder import BINARIES, verify_artifacts
from .config import ConfigError, get_config_path, load_config
from .context import InstallContext
from .installer import Installer
from .preflight import detect_environment, evaluate, run_preflight
from .prompts import ClickPrompter
from .results import Outcome
from .runner import StepRunner
from .services import write_wrapper_scripts
from .status import collect_status


def _load(ctx):
    try:
        return load_config(get_config_path(ctx.obj.get('config_path')))
    except ConfigError as e:
        raise click.ClickException(str(e))


@click.group(invoke_without_command=True)
@click.option('--config', '-c', 'config_path', type=click.Path(dir_okay=False),
              help='YAML file overriding the default settings')
@click.option('--verbose', '-v', is_flag=True, help='Show debug logging')
@click.pass_context
def cli(ctx, config_path, verbose):
    """🚀 Zond testnet node installer (gzond + qrysm beacon chain + validator)"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path
    if ctx.invoked_subcommand is None:
        ctx.invoke(install)


@cli.command(name='install')
@click.pass_context
def install(ctx):
    """📦 Check the machine, build the node and write launch scripts"""
    config = _load(ctx)
    install_ctx = InstallContext(config=config, runner=StepRunner(), prompter=ClickPrompter())
    ctx.exit(Installer(install_ctx).run())


@cli.command(name='preflight')
@click.pass_context
def preflight(ctx):
    """🔍 Run only the OS and hardware checks"""
    config = _load(ctx)
    report = evaluate(detect_environment(), config.requirements)
    result = run_preflight(report, ClickPrompter())
    if result.ok:
        click.echo("✅ Preflight checks passed")
    elif result.outcome is Outcome.DECLINED:
        click.echo(result.message)
    ctx.exit(result.exit_code)


@cli.command(name='scripts')
@click.pass_context
def scripts(ctx):
    """📝 (Re)write the gzond and beacon-chain wrapper scripts"""
    config = _load(ctx)
    for path in write_wrapper_scripts(config):
        click.echo(f"✅ Wrote {path}")


@cli.command(name='verify')
@click.pass_context
def verify(ctx):
    """✔️ Check that all node binaries exist and are executable"""
    config = _load(ctx)
    problems = verify_artifacts(config.install_root)
    rows = [[name, '❌' if name in problems else '✅'] for name in BINARIES]
    click.echo(tabulate(rows, headers=['Binary', 'Status'], tablefmt='simple'))
    if problems:
        click.secho(f"❌ Missing or not executable in {config.install_root}: {', '.join(problems)}",
                    fg='red', err=True)
        ctx.exit(1)


@cli.command(name='status')
@click.pass_context
def status(ctx):
    """📊 Show systemd unit state and sync status of the local node"""
    config = _load(ctx)
    rows = collect_status(config)
    headers = ['Service', 'Unit', 'Sync', 'Peers']
    table = [[row['service'], row['unit'], row['sync'], row['peers']] for row in rows]
    click.echo(tabulate(table, headers=headers, tablefmt='fancy_grid'))


@cli.command(name='show-config')
@click.pass_context
def show_config(ctx):
    """🔧 Print the effective configuration as YAML"""
    config = _load(ctx)
    click.echo(yaml.safe_dump(config.to_dict(), default_flow_style=False, sort_keys=False))


def main():
    cli(obj={})


if __name__ == '__main__':
    sys.exit(main())
