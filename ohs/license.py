"""
License activation and trial management for OHS.

Serial keys have the form ``OHS-DATA-SIGN-FILL``. ``SIGN`` is a short
rolling hash of ``DATA`` plus a fixed secret, so a client can check a key
offline. Because the secret ships with the client this only stops random
strings from being accepted; it is not tamper-proof.

The ``GOLD`` master signature is accepted when ``ALLOW_MASTER_SIGNATURE`` is
enabled. It exists for support staff and is a known weakness: disable it in
deployments that do not need it.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Tuple

from . import config
from .config import LICENSE_SLOT, SECRET_SALT
from .models import LicenseInfo, LicenseType
from .utils import random_base36

logger = logging.getLogger(__name__)

SERIAL_PREFIX = "OHS"


def rolling_hash(text: str) -> int:
    """31-multiplier rolling hash folded to a signed 32-bit integer."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def compute_signature(data_part: str, secret: str = SECRET_SALT) -> str:
    """First four uppercase hex digits of |hash(data + secret)|."""
    return format(abs(rolling_hash(data_part + secret)), 'x')[:4].upper()


def verify_signature(serial: str, allow_master: Optional[bool] = None,
                     master_signature: Optional[str] = None) -> bool:
    """Check a serial's signature segment.

    Args:
        serial: Serial key as entered by the user.
        allow_master: Accept the master signature. None reads the setting
            from configuration.
        master_signature: The master signature. None reads the setting
            from configuration.
    """
    if not isinstance(serial, str):
        return False
    parts = serial.split('-')
    if len(parts) != 4 or parts[0] != SERIAL_PREFIX:
        return False

    data_part, signature = parts[1], parts[2]
    if signature == compute_signature(data_part):
        return True

    if allow_master is None or (allow_master and master_signature is None):
        cfg = config.load_config()
        if allow_master is None:
            allow_master = cfg.get('ALLOW_MASTER_SIGNATURE', False)
        if master_signature is None:
            master_signature = cfg.get('MASTER_SIGNATURE', 'GOLD')
    if allow_master and master_signature and signature == master_signature:
        logger.warning("License accepted through master signature")
        return True
    return False


def generate_serial() -> str:
    """Issue a new serial whose signature passes ``verify_signature``."""
    data_part = random_base36(4).upper()
    filler = random_base36(4).upper()
    return f"{SERIAL_PREFIX}-{data_part}-{compute_signature(data_part)}-{filler}"


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def trial_days_remaining(activation_date: datetime, now: datetime,
                         duration_days: int = 30) -> int:
    """Whole days left in a trial, never negative.

    Any started day counts as used.
    """
    elapsed_days = abs((now - activation_date).total_seconds()) / 86400
    return max(0, duration_days - math.ceil(elapsed_days))


class LicenseManager:
    """Persisted license state.

    Args:
        slots: ``EncodedSlots`` holding the license slot.
        clock: Callable returning the current aware datetime.
        settings: Configuration dict; loaded from file if omitted.
    """

    def __init__(self, slots, clock: Optional[Callable[[], datetime]] = None,
                 settings: Optional[Dict] = None):
        self.slots = slots
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.settings = settings or config.load_config()

    @property
    def trial_duration(self) -> int:
        return int(self.settings.get('TRIAL_DURATION_DAYS', 30))

    def _seed_trial(self) -> LicenseInfo:
        license_info = LicenseInfo(
            is_active=True,
            type=LicenseType.TRIAL,
            activation_date=self._clock().isoformat()
        )
        self.slots.write(LICENSE_SLOT, license_info.to_dict())
        logger.info("Started new trial license")
        return license_info

    def _expired_trial(self) -> LicenseInfo:
        """Inactive trial persisted when the stored record is unusable."""
        started = self._clock() - timedelta(days=self.trial_duration)
        license_info = LicenseInfo(
            is_active=False,
            type=LicenseType.TRIAL,
            activation_date=started.isoformat(),
            trial_days_remaining=0
        )
        self.slots.write(LICENSE_SLOT, license_info.to_dict())
        return license_info

    def _evaluate(self, license_info: LicenseInfo) -> LicenseInfo:
        if license_info.type == LicenseType.FULL:
            license_info.is_active = True
            license_info.trial_days_remaining = None
            return license_info

        remaining = trial_days_remaining(
            parse_timestamp(license_info.activation_date), self._clock(), self.trial_duration
        )
        license_info.trial_days_remaining = remaining
        license_info.is_active = remaining > 0
        return license_info

    def get_license_info(self) -> LicenseInfo:
        """Current license with trial countdown applied.

        An empty slot starts a fresh trial. A corrupted slot is replaced by
        an expired trial so the user is sent to activation.
        """
        if self.slots.read_plain(LICENSE_SLOT) is None:
            return self._evaluate(self._seed_trial())

        stored = self.slots.read(LICENSE_SLOT)
        try:
            return self._evaluate(LicenseInfo.from_dict(stored))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Stored license is corrupted, resetting to inactive trial: {e}")
            return self._evaluate(self._expired_trial())

    def is_entry_allowed(self) -> bool:
        return self.get_license_info().is_active

    def activate(self, serial: str) -> Tuple[bool, str]:
        """Activate a full license. Returns (success, message)."""
        serial = (serial or '').strip().upper()
        if not verify_signature(serial, bool(self.settings.get('ALLOW_MASTER_SIGNATURE')),
                                self.settings.get('MASTER_SIGNATURE', 'GOLD')):
            logger.info("License activation rejected")
            return False, "Invalid serial key"

        license_info = LicenseInfo(
            is_active=True,
            type=LicenseType.FULL,
            activation_date=self._clock().isoformat(),
            serial_key=serial
        )
        self.slots.write(LICENSE_SLOT, license_info.to_dict())
        logger.info("Full license activated")
        return True, "License activated"

    def active_serial(self) -> Optional[str]:
        """Serial of the active full license, if any."""
        license_info = self.get_license_info()
        if license_info.type == LicenseType.FULL and license_info.is_active:
            return license_info.serial_key
        return None
