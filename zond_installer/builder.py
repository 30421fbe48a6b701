"""
Clones go-zond and qrysm and builds the node binaries into the install root.
"""
import logging
import os
import shutil
from pathlib import Path
from typing import List

import click

from .context import InstallContext
from .prompts import overwrite_question
from .results import StageResult

logger = logging.getLogger(__name__)

GO_ZOND_DIR = 'go-zond'
QRYSM_DIR = 'qrysm'
GO_ZOND_BINARIES = ['gzond', 'clef']
QRYSM_BINARIES = ['qrysmctl', 'beacon-chain', 'validator']
BINARIES = GO_ZOND_BINARIES + QRYSM_BINARIES


def prepare_install_root(ctx: InstallContext) -> StageResult:
    """
    Start from an empty install root. An existing one is either wiped or the
    whole run stops; stale installs are never updated in place.
    """
    root = ctx.install_root
    if root.exists():
        if not ctx.prompter.confirm(overwrite_question(root)):
            return StageResult.declined("Exiting as requested.", exit_code=0)
        logger.info(f"Removing existing install directory {root}")
        shutil.rmtree(root)

    root.mkdir(parents=True, exist_ok=True)
    return StageResult.success()


def _enter(root: Path, name: str) -> Path:
    path = root / name
    if not path.is_dir():
        raise NotADirectoryError(f"Cannot enter {path}")
    return path


def clone_sources(ctx: InstallContext) -> StageResult:
    root = ctx.install_root
    env = ctx.child_env()
    for repo, name in ((ctx.config.go_zond_repo, GO_ZOND_DIR), (ctx.config.qrysm_repo, QRYSM_DIR)):
        ctx.runner.run(f"Cloning {name}", ['git', 'clone', '--depth', '1', repo, name], cwd=root, env=env)
    return StageResult.success()


def build_binaries(ctx: InstallContext) -> StageResult:
    root = ctx.install_root
    env = ctx.child_env()

    try:
        go_zond = _enter(root, GO_ZOND_DIR)
    except NotADirectoryError as e:
        return StageResult.fatal(str(e))
    ctx.runner.run("Building go-zond (make all)", ['make', 'all'], cwd=go_zond, env=env)

    for binary in GO_ZOND_BINARIES:
        built = go_zond / 'build' / 'bin' / binary
        if not built.exists():
            return StageResult.fatal(f"Build output missing: {built}")
        shutil.copy2(built, root / binary)
        ctx.runner.note(f"copied {built} -> {root / binary}")

    try:
        qrysm = _enter(root, QRYSM_DIR)
    except NotADirectoryError as e:
        return StageResult.fatal(str(e))
    for binary in QRYSM_BINARIES:
        ctx.runner.run(
            f"Building {binary}",
            ['go', 'build', f'-o=../{binary}', f'./cmd/{binary}'],
            cwd=qrysm,
            env=env,
        )

    return StageResult.success()


def verify_artifacts(root: Path) -> List[str]:
    """Names of binaries missing from root or not executable."""
    problems = []
    for binary in BINARIES:
        path = root / binary
        if not path.is_file() or not os.access(path, os.X_OK):
            problems.append(binary)
    return problems


def check_artifacts(ctx: InstallContext) -> StageResult:
    problems = verify_artifacts(ctx.install_root)
    if problems:
        for binary in problems:
            click.secho(f"❌ Missing or not executable: {ctx.install_root / binary}", fg='red', err=True)
        return StageResult.fatal(f"Missing binaries: {', '.join(problems)}")
    click.echo(f"✅ All {len(BINARIES)} binaries present in {ctx.install_root}")
    return StageResult.success()
