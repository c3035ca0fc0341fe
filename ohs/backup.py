"""
Backup files for OHS.

Backups are plain, pretty-printed UTF-8 JSON arrays of worker records.
They are deliberately not passed through the storage codec so they can be
moved between installations and inspected by hand.

Features:
    - Timestamped backup files with a reason suffix
    - Backup rotation to manage disk space
    - Listing and statistics for the data management screen
    - Startup protection (integrity check + startup backup)

Example:
    >>> from ohs.backup import create_backup, list_backups
    >>> path = create_backup(repository.backup_document(), "manual")
    >>> backups = list_backups()
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import BACKUP_DIR, MAX_BACKUPS

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "ohs_backup_full_"
BACKUP_SUFFIX = ".json"


class BackupError(Exception):
    """Exception raised for backup-related errors."""
    pass


class RestoreError(Exception):
    """Exception raised when a backup file cannot be read."""
    pass


def to_backup_json(records: List[Dict[str, Any]]) -> str:
    """Render records as the portable backup document."""
    return json.dumps(records, ensure_ascii=False, indent=2)


def ensure_backup_dir() -> Path:
    """Ensure backup directory exists and return its path.

    Raises:
        OSError: If directory creation fails due to permissions or disk issues.
    """
    backup_path = Path(BACKUP_DIR)
    backup_path.mkdir(exist_ok=True, parents=True)
    return backup_path


def create_backup(document: str, reason: str = "manual") -> Optional[str]:
    """Write a timestamped backup file.

    Args:
        document: Backup JSON text (see ``to_backup_json``).
        reason: Why backup was created. Common values:
            - "startup": Created on application startup
            - "manual": User-initiated backup
            - "pre_restore": Before restore operation
            - "pre_reset": Before factory reset

    Returns:
        Path to backup file as string, or None if backup failed.
    """
    try:
        backup_path = ensure_backup_dir()
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        backup_file = backup_path / f"{BACKUP_PREFIX}{timestamp}_{reason}{BACKUP_SUFFIX}"
        backup_file.write_text(document, encoding='utf-8')
        logger.info(f"Backup created: {backup_file}")

        rotate_backups()
        return str(backup_file)
    except OSError as e:
        logger.error(f"OS error during backup: {e}")
        return None


def rotate_backups() -> int:
    """Remove old backups, keeping only the most recent MAX_BACKUPS.

    Returns:
        Number of backups deleted.
    """
    deleted_count = 0

    try:
        backup_path = ensure_backup_dir()
        backups = sorted(
            backup_path.glob(f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}"),
            key=lambda x: (x.stat().st_mtime, x.name),
            reverse=True
        )

        for old_backup in backups[MAX_BACKUPS:]:
            try:
                old_backup.unlink()
                deleted_count += 1
                logger.debug(f"Deleted old backup: {old_backup.name}")
            except OSError as e:
                logger.warning(f"Could not delete backup {old_backup.name}: {e}")

    except OSError as e:
        logger.warning(f"Error during backup rotation: {e}")

    return deleted_count


def list_backups() -> List[Dict[str, Any]]:
    """List all available backups with metadata, newest first.

    Returns:
        List of dictionaries with filename, path, size_kb and created.
        Empty list if no backups exist or on error.
    """
    try:
        backup_path = ensure_backup_dir()
        backups = []

        for backup_file in sorted(
            backup_path.glob(f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}"),
            key=lambda x: (x.stat().st_mtime, x.name),
            reverse=True
        ):
            try:
                stat = backup_file.stat()
                backups.append({
                    'filename': backup_file.name,
                    'path': str(backup_file),
                    'size_kb': round(stat.st_size / 1024, 2),
                    'created': datetime.fromtimestamp(stat.st_mtime).strftime("%Y-%m-%d %H:%M:%S")
                })
            except OSError as e:
                logger.warning(f"Could not stat backup {backup_file.name}: {e}")
                continue

        return backups

    except OSError as e:
        logger.error(f"Error listing backups: {e}")
        return []


def read_backup(backup_path: str) -> str:
    """Read a backup file's text.

    Raises:
        RestoreError: If the file is missing, not JSON, or unreadable.
    """
    path = Path(backup_path)
    if not path.exists():
        raise RestoreError("Backup file not found")
    if path.suffix.lower() != BACKUP_SUFFIX:
        raise RestoreError("Invalid backup file format (must be .json file)")
    try:
        return path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Could not read backup {backup_path}: {e}")
        raise RestoreError(f"File access error: {e}")


def get_backup_stats() -> Dict[str, Any]:
    """Get statistics about current backups."""
    backups = list_backups()

    if not backups:
        return {
            'count': 0,
            'total_size_kb': 0.0,
            'oldest': None,
            'newest': None
        }

    return {
        'count': len(backups),
        'total_size_kb': round(sum(b['size_kb'] for b in backups), 2),
        'oldest': backups[-1]['created'],
        'newest': backups[0]['created']
    }


def startup_data_protection(repository) -> Dict[str, Any]:
    """Perform startup data protection tasks.

    1. Verifies slot database integrity (when the store supports it)
    2. Writes a startup backup of the worker collection

    Returns:
        Dictionary with backup_created, backup_path, integrity_ok,
        integrity_message and warnings.
    """
    status: Dict[str, Any] = {
        'backup_created': False,
        'backup_path': None,
        'integrity_ok': True,
        'integrity_message': 'Integrity check not supported by store',
        'warnings': []
    }

    verify = getattr(repository.slots.store, 'verify_integrity', None)
    if verify is not None:
        is_ok, message = verify()
        status['integrity_ok'] = is_ok
        status['integrity_message'] = message
        if not is_ok:
            status['warnings'].append(f"Database integrity issue: {message}")

    backup_path = create_backup(repository.backup_document(), "startup")
    if backup_path:
        status['backup_created'] = True
        status['backup_path'] = backup_path
    else:
        status['warnings'].append("Failed to create startup backup")

    return status
