"""
Status of an installed node: systemd unit state plus sync status from the
execution client JSON-RPC API and the beacon node API.
"""
import json
import subprocess
from typing import Dict, List

import requests

from .config import InstallerConfig
from .services import UNITS


def get_unit_state(unit: str) -> str:
    """Returns the `systemctl --user is-active` state of a unit."""
    try:
        process = subprocess.run(['systemctl', '--user', 'is-active', unit],
                                 capture_output=True, text=True, timeout=10)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return 'unavailable'
    return process.stdout.strip() or 'unknown'


def get_execution_sync_status(api_url: str) -> str:
    """
    Checks the gzond sync status via JSON-RPC.
    Returns 'Synced', 'Syncing', 'Error' or 'API Error'.
    """
    headers = {'Content-Type': 'application/json'}
    payload = json.dumps({"jsonrpc": "2.0", "method": "zond_syncing", "params": [], "id": 1})
    try:
        response = requests.post(api_url, headers=headers, data=payload, timeout=5)
        if response.status_code == 200:
            result = response.json().get('result')
            if result is False:
                return "Synced"
            elif isinstance(result, dict):
                return "Syncing"
        return "Error"
    except (requests.RequestException, ValueError):
        return "API Error"


def get_consensus_sync_status(api_url: str) -> str:
    """Checks the beacon node sync status via the Beacon API."""
    try:
        response = requests.get(f"{api_url}/eth/v1/node/syncing", timeout=5)
        if response.status_code == 200:
            is_syncing = response.json().get('data', {}).get('is_syncing', True)
            return "Syncing" if is_syncing else "Synced"
        return "Error"
    except (requests.RequestException, ValueError):
        return "API Error"


def get_consensus_peer_count(api_url: str) -> str:
    try:
        response = requests.get(f"{api_url}/eth/v1/node/peer_count", timeout=5)
        if response.status_code == 200:
            return str(response.json().get('data', {}).get('connected', '?'))
        return "?"
    except (requests.RequestException, ValueError):
        return "?"


def collect_status(config: InstallerConfig) -> List[Dict[str, str]]:
    gzond_unit, beacon_unit = UNITS
    beacon_api = config.beacon.api_url
    return [
        {
            'service': gzond_unit,
            'unit': get_unit_state(gzond_unit),
            'sync': get_execution_sync_status(config.gzond_rpc_url),
            'peers': '-',
        },
        {
            'service': beacon_unit,
            'unit': get_unit_state(beacon_unit),
            'sync': get_consensus_sync_status(beacon_api),
            'peers': get_consensus_peer_count(beacon_api),
        },
    ]
