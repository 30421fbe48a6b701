"""
Handles loading installer configuration from a YAML file and merging it
over the built-in defaults for the Zond testnet v1 node.
"""
import logging
import os
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = 'zond-installer.yaml'
CONFIG_ENV_VAR = 'ZOND_INSTALLER_CONFIG'

DEFAULT_BOOTSTRAP_NODES = [
    "enr:-MK4QM50zz3VrN3RgofTTWvFJaZx8fqPrebXtRPrfPma95LABun96pdS48x2vbs3tjjsba6hoTfJP60Jx5g68cjIGjGGAZiJNUY3h2F0dG5ldHOIAAAAAAAAAACEZXRoMpB0w1LqIAAAif__________gmlkgnY0gmlwhC0g6p2Jc2VjcDI1NmsxoQJXCfi0hbGBlSV7exFKsa4iPU41kqSjXvxoTJd9bYwjGohzeW5jbmV0cwCDdGNwgjLIg3VkcIIu4A",
    "enr:-MK4QKoucVoW4hO3nKFPXj1gyYq5_8T1NCpioRMTeFrOdX3IQk6j11_jeYCJ0r3FysBTv831YcuK1wKXfZJE81go7uWGAZiJNeqGh2F0dG5ldHOIAAAAAAAAAACEZXRoMpB0w1LqIAAAif__________gmlkgnY0gmlwhC1MJ0KJc2VjcDI1NmsxoQPp77MwBxOSTTwLPYUci16GSPW9_6tcK1Dj7yDVh87xvIhzeW5jbmV0cwCDdGNwgjLIg3VkcIIu4A",
]

METADATA_BASE = 'https://github.com/theQRL/go-zond-metadata/raw/refs/heads/main/testnet/testnetv1'
METADATA_RAW_BASE = 'https://raw.githubusercontent.com/theQRL/go-zond-metadata/refs/heads/main/testnet/testnetv1'


class ConfigError(Exception):
    """Raised when a configuration file cannot be used."""


@dataclass
class Requirements:
    os_id: str = 'ubuntu'
    os_version: str = '24.04'
    os_label: str = 'Ubuntu 24.04 LTS'
    min_cpu_cores: int = 2
    min_ram_gb: int = 2
    min_storage_gb: int = 50


@dataclass
class BeaconSettings:
    chain_id: int = 32382
    execution_endpoint: str = 'http://localhost:8551'
    jwt_secret: str = 'gzonddata/gzond/jwtsecret'
    fee_recipient: str = 'Z20e526833d2ab5bd20de64cc00f2c2c7a07060bf'
    bootstrap_nodes: List[str] = field(default_factory=lambda: list(DEFAULT_BOOTSTRAP_NODES))
    verbosity: str = 'debug'
    log_file: str = 'beacon.log'
    log_format: str = 'text'
    api_url: str = 'http://localhost:3500'


@dataclass
class InstallerConfig:
    """Effective settings for one installer run."""
    install_dir: str = '~/zond-testnetv1'
    shell_profile: str = '~/.bashrc'
    systemd_user_dir: str = '~/.config/systemd/user'
    go_version: str = '1.22.12'
    gobrew_installer_url: str = 'https://raw.githubusercontent.com/kevincobain2000/gobrew/master/git.io.sh'
    apt_packages: List[str] = field(default_factory=lambda: ['build-essential', 'git', 'curl', 'screen'])
    go_zond_repo: str = 'https://github.com/theQRL/go-zond.git'
    qrysm_repo: str = 'https://github.com/theQRL/qrysm.git'
    genesis_url: str = f'{METADATA_BASE}/genesis.ssz'
    genesis_sha256: Optional[str] = None
    chain_config_url: str = f'{METADATA_RAW_BASE}/config.yml'
    chain_config_sha256: Optional[str] = None
    download_timeout: int = 60
    gzond_flags: List[str] = field(default_factory=lambda: [
        '--nat=extip:0.0.0.0',
        '--testnet',
        '--http',
        '--http.api "web3,net,zond,engine"',
        '--datadir=gzonddata',
        '--syncmode=full',
        '--snapshot=false',
    ])
    gzond_rpc_url: str = 'http://localhost:8545'
    restart_sec: int = 10
    requirements: Requirements = field(default_factory=Requirements)
    beacon: BeaconSettings = field(default_factory=BeaconSettings)

    @property
    def install_root(self) -> Path:
        return Path(os.path.expanduser(self.install_dir))

    @property
    def profile_path(self) -> Path:
        return Path(os.path.expanduser(self.shell_profile))

    @property
    def unit_dir(self) -> Path:
        return Path(os.path.expanduser(self.systemd_user_dir))

    def to_dict(self) -> Dict:
        return asdict(self)


def get_config_path(explicit: Optional[str] = None) -> Optional[Path]:
    """
    Find the configuration file with priority:
    1. Path given on the command line
    2. zond-installer.yaml in the current working directory
    3. ZOND_INSTALLER_CONFIG environment variable
    Returns None when no file applies; the defaults are used then.
    """
    if explicit:
        return Path(explicit)

    current_dir_config = Path.cwd() / CONFIG_FILENAME
    if current_dir_config.exists():
        return current_dir_config

    env_config = os.environ.get(CONFIG_ENV_VAR)
    if env_config:
        return Path(env_config)

    return None


def _coerce(name: str, expected, value, where: str):
    """Convert a YAML value to the declared type of a configuration field."""
    if expected == Optional[str]:
        return None if value is None else str(value)
    if expected is str:
        if value is None or isinstance(value, (list, dict)):
            raise ConfigError(f"{where}{name} must be a string, got {value!r}")
        return str(value)
    if expected is int:
        if isinstance(value, bool):
            raise ConfigError(f"{where}{name} must be an integer, got {value!r}")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{where}{name} must be an integer, got {value!r}") from None
    if expected == List[str]:
        if not isinstance(value, list):
            raise ConfigError(f"{where}{name} must be a list, got {value!r}")
        return [str(item) for item in value]
    return value


def _coerce_all(section_cls, overrides: Dict, where: str) -> Dict:
    types = {f.name: f.type for f in fields(section_cls)}
    return {key: _coerce(key, types[key], value, where) for key, value in overrides.items()}


def _merge_section(section_cls, current, overrides: Dict, where: str):
    known = {f.name for f in fields(section_cls)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ConfigError(f"Unknown key(s) in {where}: {', '.join(unknown)}")
    values = asdict(current)
    values.update(_coerce_all(section_cls, overrides, f"{where}."))
    return section_cls(**values)


def config_from_dict(data: Optional[Dict]) -> InstallerConfig:
    """Build an InstallerConfig from a (possibly partial) mapping."""
    if data is None:
        return InstallerConfig()
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a mapping")

    data = dict(data)
    requirements = data.pop('requirements', None) or {}
    beacon = data.pop('beacon', None) or {}
    if not isinstance(requirements, dict) or not isinstance(beacon, dict):
        raise ConfigError("'requirements' and 'beacon' must be mappings")

    known = {f.name for f in fields(InstallerConfig)} - {'requirements', 'beacon'}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown configuration key(s): {', '.join(unknown)}")

    config = InstallerConfig(**_coerce_all(InstallerConfig, data, ""))
    config.requirements = _merge_section(Requirements, config.requirements, requirements, 'requirements')
    config.beacon = _merge_section(BeaconSettings, config.beacon, beacon, 'beacon')
    return config


def load_config(path: Optional[Path] = None) -> InstallerConfig:
    """Loads the configuration file at path, or the defaults when path is None."""
    if path is None:
        logger.debug("No configuration file found, using defaults")
        return InstallerConfig()

    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    logger.info(f"Loaded configuration from {path}")
    return config_from_dict(data)
