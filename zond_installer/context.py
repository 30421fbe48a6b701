"""
State shared by the installer stages for one run.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from .config import InstallerConfig
from .prompts import Prompter
from .runner import StepRunner


@dataclass
class BuildEnvironment:
    """Environment variables child processes need to find the Go toolchain."""
    path: str
    gopath: str

    @classmethod
    def for_home(cls, home: Path, base_path: Optional[str] = None) -> 'BuildEnvironment':
        if base_path is None:
            base_path = os.environ.get('PATH', '')
        gobrew = home / '.gobrew'
        path = f"{gobrew / 'current' / 'bin'}:{gobrew / 'bin'}"
        if base_path:
            path = f"{path}:{base_path}"
        return cls(path=path, gopath=str(gobrew / 'current' / 'go'))

    def as_env(self, base: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        env = dict(os.environ if base is None else base)
        env['PATH'] = self.path
        env['GOPATH'] = self.gopath
        return env


@dataclass
class InstallContext:
    config: InstallerConfig
    runner: StepRunner
    prompter: Prompter
    home: Path = field(default_factory=Path.home)
    build_env: Optional[BuildEnvironment] = None
    services_written: bool = False

    @property
    def install_root(self) -> Path:
        return self.config.install_root

    def child_env(self) -> Optional[Dict[str, str]]:
        if self.build_env is None:
            return None
        return self.build_env.as_env()
