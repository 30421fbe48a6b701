"""
Preflight checks: operating system identity and hardware minimums.

Detection reads the machine once into an EnvironmentSnapshot. Evaluation is a
pure function of that snapshot and the configured Requirements, so the
verdicts can be tested without touching the host.
"""
import logging
import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import click
from tabulate import tabulate

from .config import Requirements
from .prompts import Prompter, low_storage_question
from .results import StageResult

logger = logging.getLogger(__name__)

GIB = 1024 ** 3


@dataclass(frozen=True)
class EnvironmentSnapshot:
    """Detected machine characteristics"""
    os_id: str
    os_version: str
    pretty_name: str
    cpu_cores: int
    ram_gb: int
    free_disk_gb: int


@dataclass(frozen=True)
class PreflightReport:
    snapshot: EnvironmentSnapshot
    requirements: Requirements
    os_ok: bool
    cpu_ok: bool
    ram_ok: bool
    storage_ok: bool

    @property
    def hard_failures(self) -> List[str]:
        failures = []
        if not self.os_ok:
            failures.append(
                f"This script requires {self.requirements.os_label}. Detected: {self.snapshot.pretty_name or 'unknown'}"
            )
        if not self.cpu_ok:
            failures.append(
                f"At least {self.requirements.min_cpu_cores} CPU cores are required. Detected: {self.snapshot.cpu_cores}"
            )
        if not self.ram_ok:
            failures.append(
                f"At least {self.requirements.min_ram_gb} GB of RAM is required. Detected: {self.snapshot.ram_gb} GB"
            )
        return failures

    @property
    def needs_storage_confirmation(self) -> bool:
        return not self.hard_failures and not self.storage_ok


def read_os_release(path='/etc/os-release') -> Dict[str, str]:
    """Parse KEY=value lines of an os-release file. A missing file yields {}."""
    values = {}
    try:
        with open(path, 'r') as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith('#') or '=' not in line:
                    continue
                key, value = line.split('=', 1)
                values[key] = value.strip().strip('"').strip("'")
    except FileNotFoundError:
        logger.warning(f"{path} not found")
    return values


def read_total_ram_gb(path='/proc/meminfo') -> int:
    """Total RAM in whole GiB, from the MemTotal line (kB)."""
    try:
        with open(path, 'r') as f:
            content = f.read()
    except FileNotFoundError:
        logger.warning(f"{path} not found")
        return 0

    match = re.search(r'MemTotal:\s*(?P<memkb>\d+)\s*kB', content)
    if not match:
        logger.error(f"Unable to parse MemTotal from {path}")
        return 0
    return int(match.group('memkb')) * 1024 // GIB


def read_free_disk_gb(path) -> int:
    """Free space in whole GiB on the filesystem holding path."""
    return shutil.disk_usage(path).free // GIB


def detect_environment(os_release_path='/etc/os-release', meminfo_path='/proc/meminfo',
                       disk_path: Optional[Path] = None) -> EnvironmentSnapshot:
    os_release = read_os_release(os_release_path)
    if disk_path is None:
        disk_path = Path.home()
    snapshot = EnvironmentSnapshot(
        os_id=os_release.get('ID', ''),
        os_version=os_release.get('VERSION_ID', ''),
        pretty_name=os_release.get('PRETTY_NAME', ''),
        cpu_cores=os.cpu_count() or 0,
        ram_gb=read_total_ram_gb(meminfo_path),
        free_disk_gb=read_free_disk_gb(disk_path),
    )
    logger.debug(f"Detected environment: {snapshot}")
    return snapshot


def evaluate(snapshot: EnvironmentSnapshot, requirements: Requirements) -> PreflightReport:
    return PreflightReport(
        snapshot=snapshot,
        requirements=requirements,
        os_ok=snapshot.os_id == requirements.os_id and snapshot.os_version == requirements.os_version,
        cpu_ok=snapshot.cpu_cores >= requirements.min_cpu_cores,
        ram_ok=snapshot.ram_gb >= requirements.min_ram_gb,
        storage_ok=snapshot.free_disk_gb >= requirements.min_storage_gb,
    )


def format_report(report: PreflightReport) -> str:
    snap, req = report.snapshot, report.requirements

    def mark(ok):
        return '✅' if ok else '❌'

    rows = [
        ['Operating system', snap.pretty_name or f"{snap.os_id} {snap.os_version}".strip(), req.os_label, mark(report.os_ok)],
        ['CPU cores', snap.cpu_cores, f">= {req.min_cpu_cores}", mark(report.cpu_ok)],
        ['RAM', f"{snap.ram_gb} GB", f">= {req.min_ram_gb} GB", mark(report.ram_ok)],
        ['Free storage', f"{snap.free_disk_gb} GB", f">= {req.min_storage_gb} GB",
         mark(report.storage_ok) if report.storage_ok else '⚠️'],
    ]
    return tabulate(rows, headers=['Check', 'Detected', 'Required', 'Status'], tablefmt='simple')


def run_preflight(report: PreflightReport, prompter: Prompter) -> StageResult:
    """Turn a report into a stage result, asking about low storage if needed."""
    click.echo(format_report(report))

    failures = report.hard_failures
    if failures:
        for failure in failures:
            click.secho(f"❌ {failure}", fg='red', err=True)
        return StageResult.fatal(failures[0])

    if report.needs_storage_confirmation:
        question = low_storage_question(report.snapshot.free_disk_gb, report.requirements.min_storage_gb)
        if not prompter.confirm(question):
            return StageResult.declined("Not enough free storage; installation aborted.", exit_code=1)
        logger.warning("Continuing with less free storage than recommended")

    return StageResult.success("Preflight checks passed")
