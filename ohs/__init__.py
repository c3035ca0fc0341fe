"""
OHS - Occupational Health Surveillance records core.

Workers, periodic medical exams, the officer/physician/specialist referral
workflow and local persistence with backup and restore.

Modules:
    analysis: Critical-case classification and population statistics
    auth: User accounts, lockout and password recovery
    backup: Backup files, rotation and startup protection
    config: Configuration management
    database: Persisted slot storage
    encryption: Pluggable storage codecs
    importers: Personnel import and report export
    license: Serial verification and trial countdown
    models: Domain records
    organizations: Client organizations and issued serials
    referral: Referral state machine
    repository: Worker and exam repository
    sync: Simulated server synchronisation
    utils: Utility functions
"""

__version__ = "1.0.0"

# Core modules
from . import config
from . import utils
from . import encryption
from . import database
from . import models
from . import license
from . import auth
from . import referral
from . import backup
from . import repository

# Feature modules
from . import importers
from . import organizations
from . import sync

# Sub-packages
from . import analysis

__all__ = [
    "__version__",
    "config",
    "utils",
    "encryption",
    "database",
    "models",
    "license",
    "auth",
    "referral",
    "backup",
    "repository",
    "importers",
    "organizations",
    "sync",
    "analysis",
]
