"""
Configuration management for OHS.
"""

import json
import logging
from typing import Dict

# File paths
DB_FILE = "ohs_records_v1.db"
CONFIG_FILE = "ohs_config.json"
BACKUP_DIR = "backups"
MAX_BACKUPS = 10

# Persisted slot names
USERS_SLOT = "ohs_users_v1"
LICENSE_SLOT = "ohs_license_v1"
WORKERS_SLOT = "ohs_workers_data_v1"
LAST_SYNC_SLOT = "ohs_last_sync_time"
ORGANIZATIONS_SLOT = "ohs_organizations_v1"

# Shared secret for the storage obfuscation codec and license signatures.
# It ships with every client, so it offers no confidentiality.
SECRET_SALT = "OHS_SECURE_SALT_2025_#$*"

AUDIOMETRY_FREQUENCIES = [250, 500, 1000, 2000, 4000, 8000]

DEFAULT_CONFIG = {
    'STORAGE_CODEC': 'obfuscation',
    'TRIAL_DURATION_DAYS': 30,
    'ALLOW_MASTER_SIGNATURE': True,
    'MASTER_SIGNATURE': 'GOLD',
    'MASTER_RECOVERY_KEY': 'OHS-MASTER-RECOVERY-2025',
    'HEARING_THRESHOLD_DB': 25.0,
    'BP_LIMITS': {
        'SYSTOLIC': 140,
        'DIASTOLIC': 90
    },
    'SYNC_DELAY_SECONDS': 2.0,
    'LOG_LEVEL': 'INFO'
}


def load_config() -> Dict:
    """Load configuration from file or return defaults."""
    try:
        with open(CONFIG_FILE, 'r') as f:
            stored = json.load(f)
    except Exception:
        return DEFAULT_CONFIG.copy()
    config = DEFAULT_CONFIG.copy()
    config.update(stored)
    return config


def save_config(config: Dict) -> bool:
    """Save configuration to file."""
    try:
        with open(CONFIG_FILE, 'w') as f:
            json.dump(config, f, indent=2)
        return True
    except Exception:
        return False


def configure_logging(level: str = None) -> None:
    """Attach a basic console handler for applications embedding OHS.

    The package never calls this on import; library users keep control
    of their own logging setup.
    """
    level_name = (level or load_config().get('LOG_LEVEL', 'INFO')).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s]: %(message)s"
    )
