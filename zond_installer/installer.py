"""
Installer driver: runs the stages in order and stops at the first one that
does not succeed.
"""
import logging
from typing import Callable, List, Optional, Tuple

import click

from . import builder, metadata, services, toolchain
from .context import InstallContext
from .preflight import EnvironmentSnapshot, detect_environment, evaluate, run_preflight
from .results import Outcome, StageResult
from .runner import StepFailed

logger = logging.getLogger(__name__)

Stage = Callable[[InstallContext], StageResult]


class Installer:
    """Runs the full provisioning sequence for one machine."""

    def __init__(self, ctx: InstallContext, detect: Optional[Callable[[], EnvironmentSnapshot]] = None):
        self.ctx = ctx
        self.detect = detect or (lambda: detect_environment(disk_path=ctx.home))
        self.completed: List[str] = []

    def stages(self) -> List[Tuple[str, Stage]]:
        return [
            ('preflight', self._preflight),
            ('system packages', toolchain.install_system_packages),
            ('go toolchain', toolchain.install_toolchain),
            ('install directory', builder.prepare_install_root),
            ('clone sources', builder.clone_sources),
            ('build binaries', builder.build_binaries),
            ('chain metadata', metadata.fetch_metadata),
            ('services', services.setup_services),
            ('verify binaries', builder.check_artifacts),
        ]

    def _preflight(self, ctx: InstallContext) -> StageResult:
        report = evaluate(self.detect(), ctx.config.requirements)
        return run_preflight(report, ctx.prompter)

    def run(self) -> int:
        """Run every stage; returns the process exit code."""
        click.echo(f"📝 Logging step output to {self.ctx.runner.log_path}")
        for name, stage in self.stages():
            logger.info(f"Stage: {name}")
            click.secho(f"\n▶ {name.capitalize()}", bold=True)
            try:
                result = stage(self.ctx)
            except StepFailed as e:
                result = StageResult.fatal(str(e), exit_code=e.exit_code)
            except OSError as e:
                logger.error(f"Stage '{name}' failed: {e}")
                result = StageResult.fatal(f"{name}: {e}")

            if not result.ok:
                return self._halt(name, result)
            self.completed.append(name)

        self._summary()
        return 0

    def _halt(self, name: str, result: StageResult) -> int:
        if result.outcome is Outcome.DECLINED:
            logger.info(f"Stopped at '{name}': {result.message}")
            click.echo(result.message)
        else:
            logger.error(f"Stage '{name}' failed: {result.message}")
            click.secho(f"❌ Installation failed during {name}: {result.message}", fg='red', err=True)
        return result.exit_code

    def _summary(self):
        root = self.ctx.install_root
        click.echo(f"\n🎉 All done. Files and binaries are in {root}")
        click.echo(f"Start gzond manually with: {root / services.GZOND_SCRIPT}")
        click.echo(f"Start beacon-chain manually with: {root / services.BEACON_SCRIPT}")
        if self.ctx.services_written:
            click.echo("Manage the systemd units with: systemctl --user (start|stop|status) "
                       f"{' '.join(services.UNITS)}")
