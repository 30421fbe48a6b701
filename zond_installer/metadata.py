"""
Downloads the testnet genesis state and chain configuration.
"""
import hashlib
import logging
import os
from pathlib import Path
from typing import Optional

import requests

from .context import InstallContext
from .results import StageResult

logger = logging.getLogger(__name__)

GENESIS_FILE = 'genesis.ssz'
CHAIN_CONFIG_FILE = 'config.yml'
CHUNK_SIZE = 64 * 1024


class DownloadError(Exception):
    pass


def download_file(url: str, destination: Path, timeout: int = 60, sha256: Optional[str] = None) -> int:
    """
    Stream url into destination through a temporary .part file.
    Returns the number of bytes written. Raises DownloadError on HTTP,
    connection or checksum failures; destination is left untouched then.
    """
    partial = destination.with_name(destination.name + '.part')
    digest = hashlib.sha256()
    size = 0
    try:
        with requests.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            with open(partial, 'wb') as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    f.write(chunk)
                    digest.update(chunk)
                    size += len(chunk)
    except requests.RequestException as e:
        partial.unlink(missing_ok=True)
        raise DownloadError(f"{url}: {e}") from e
    except OSError:
        partial.unlink(missing_ok=True)
        raise

    if sha256 and digest.hexdigest().lower() != sha256.lower():
        partial.unlink(missing_ok=True)
        raise DownloadError(f"{url}: sha256 mismatch (expected {sha256}, got {digest.hexdigest()})")

    os.replace(partial, destination)
    return size


def fetch_metadata(ctx: InstallContext) -> StageResult:
    config = ctx.config
    targets = [
        (config.genesis_url, GENESIS_FILE, config.genesis_sha256),
        (config.chain_config_url, CHAIN_CONFIG_FILE, config.chain_config_sha256),
    ]
    for url, name, sha256 in targets:
        description = f"Downloading {name}"
        destination = ctx.install_root / name
        ctx.runner.start(description, f"GET {url}")
        try:
            size = download_file(url, destination, timeout=config.download_timeout, sha256=sha256)
        except DownloadError as e:
            ctx.runner.note(str(e))
            logger.error(str(e))
            ctx.runner.fail(description)
        else:
            ctx.runner.note(f"saved {size} bytes to {destination}")
            ctx.runner.complete(description)
    return StageResult.success()
