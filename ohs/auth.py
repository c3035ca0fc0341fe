"""
Authentication and account management for OHS.
"""

import hashlib
import hmac
import logging
import re
import secrets
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from . import config
from .config import USERS_SLOT
from .models import Role, User
from .utils import generate_id

logger = logging.getLogger(__name__)

# Security constants
MAX_LOGIN_ATTEMPTS = 5
LOCKOUT_DURATION_MINUTES = 15
SESSION_TIMEOUT_MINUTES = 60

# Seeded accounts: (id, username, default password, role, display name)
DEFAULT_USERS = [
    ('dev-001', 'admin', 'admin123', Role.DEVELOPER, 'System Administrator'),
    ('doc-001', 'doctor', 'doctor123', Role.DOCTOR, 'Occupational Physician'),
    ('hse-001', 'hse', 'hse123', Role.HEALTH_OFFICER, 'Health Officer'),
]
PROTECTED_USERNAMES = frozenset(u[1] for u in DEFAULT_USERS)


def hash_password(password: str) -> str:
    """Hash password with salt using SHA256."""
    salt = secrets.token_hex(16)
    pwd_hash = hashlib.sha256((password + salt).encode()).hexdigest()
    return f"{salt}${pwd_hash}"


def verify_password(password: str, hash_str: str) -> bool:
    """Verify password against hash."""
    try:
        salt, pwd_hash = hash_str.split('$')
    except (ValueError, AttributeError):
        return False
    candidate = hashlib.sha256((password + salt).encode()).hexdigest()
    return hmac.compare_digest(candidate, pwd_hash)


def validate_password_strength(password: str) -> Tuple[bool, str]:
    """Validate password meets complexity requirements.

    Returns (is_valid, error_message)
    """
    if len(password) < 8:
        return False, "Password must be at least 8 characters long"
    if not re.search(r'[A-Z]', password):
        return False, "Password must contain at least one uppercase letter"
    if not re.search(r'[a-z]', password):
        return False, "Password must contain at least one lowercase letter"
    if not re.search(r'\d', password):
        return False, "Password must contain at least one number"
    return True, ""


def check_session_timeout(last_activity: datetime) -> Tuple[bool, datetime]:
    """Check if the session has timed out.

    Args:
        last_activity: Datetime of last user activity

    Returns:
        Tuple of (is_valid, new_last_activity)
    """
    elapsed = (datetime.now() - last_activity).total_seconds() / 60
    if elapsed > SESSION_TIMEOUT_MINUTES:
        return False, last_activity
    return True, datetime.now()


class UserStore:
    """User accounts persisted in the users slot.

    Args:
        slots: ``EncodedSlots`` holding the users slot.
        license_manager: Used to accept the active serial as a recovery key.
        settings: Configuration dict; loaded from file if omitted.
    """

    def __init__(self, slots, license_manager=None, settings: Optional[Dict] = None):
        self.slots = slots
        self.license_manager = license_manager
        self.settings = settings or config.load_config()
        self.seed_users()

    def seed_users(self) -> None:
        """Create the default accounts if the users slot is empty or unreadable."""
        if self._read_users() is not None:
            return
        now = datetime.now().isoformat()
        users = [
            User(id=uid, username=username, password_hash=hash_password(password),
                 role=role, name=name, created_at=now, must_change_password=True)
            for uid, username, password, role, name in DEFAULT_USERS
        ]
        self._save(users)
        logger.info("Seeded default user accounts")

    def _read_users(self) -> Optional[List[User]]:
        """Decoded accounts, or None when the slot is absent or malformed."""
        data = self.slots.read(USERS_SLOT)
        if data is None:
            return None
        if not isinstance(data, list):
            logger.warning("Stored user data unreadable")
            return None
        try:
            return [User.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Stored user data malformed: {e}")
            return None

    def _load(self) -> List[User]:
        users = self._read_users()
        if users is None:
            self.seed_users()
            users = self._read_users() or []
        return users

    def _save(self, users: List[User]) -> None:
        self.slots.write(USERS_SLOT, [u.to_dict() for u in users])

    @staticmethod
    def _find(users: List[User], username: str) -> Optional[User]:
        key = (username or '').strip().lower()
        return next((u for u in users if u.username.lower() == key), None)

    def list_users(self) -> List[Dict]:
        return [u.public_dict() for u in self._load()]

    def get_user(self, username: str) -> Optional[User]:
        return self._find(self._load(), username)

    def create_user(self, username: str, password: str, role: Role, name: str) -> Tuple[bool, str]:
        """Add an account. Usernames are unique regardless of case."""
        username = (username or '').strip()
        if not username or not name:
            return False, "Username and name are required"

        is_valid, error = validate_password_strength(password)
        if not is_valid:
            return False, error

        users = self._load()
        if self._find(users, username):
            return False, "Username already exists"

        users.append(User(
            id=generate_id(),
            username=username,
            password_hash=hash_password(password),
            role=Role(role),
            name=name,
            created_at=datetime.now().isoformat()
        ))
        self._save(users)
        logger.info(f"Created user {username} ({Role(role).value})")
        return True, "User created"

    def delete_user(self, user_id: str) -> Tuple[bool, str]:
        users = self._load()
        target = next((u for u in users if u.id == user_id), None)
        if target is None:
            return False, "User not found"
        if target.username.lower() in PROTECTED_USERNAMES:
            return False, "Built-in accounts cannot be deleted"

        self._save([u for u in users if u.id != user_id])
        logger.info(f"Deleted user {target.username}")
        return True, "User deleted"

    def authenticate(self, username: str, password: str) -> Optional[Dict]:
        """Authenticate user with account lockout protection.

        Returns:
            User dict if successful, error dict if locked, None if failed
        """
        users = self._load()
        user = self._find(users, username)
        if user is None:
            logger.info(f"Login failed: unknown username {username}")
            return None

        if user.locked_until:
            lock_time = datetime.fromisoformat(user.locked_until)
            if datetime.now() < lock_time:
                remaining = (lock_time - datetime.now()).seconds // 60
                logger.warning(f"Login blocked: account {user.username} locked")
                return {'error': f'Account locked. Try again in {remaining + 1} minutes.'}
            user.failed_login_attempts = 0
            user.locked_until = None

        if verify_password(password, user.password_hash):
            user.failed_login_attempts = 0
            user.locked_until = None
            self._save(users)
            logger.info(f"User {user.username} logged in")
            return user.public_dict()

        user.failed_login_attempts += 1
        if user.failed_login_attempts >= MAX_LOGIN_ATTEMPTS:
            user.locked_until = (datetime.now() + timedelta(minutes=LOCKOUT_DURATION_MINUTES)).isoformat()
            logger.warning(f"Account {user.username} locked after {MAX_LOGIN_ATTEMPTS} failed attempts")
        else:
            logger.info(f"Invalid password for {user.username} (attempt {user.failed_login_attempts})")
        self._save(users)
        return None

    def change_password(self, username: str, old_password: str, new_password: str) -> Tuple[bool, str]:
        users = self._load()
        user = self._find(users, username)
        if user is None or not verify_password(old_password, user.password_hash):
            return False, "Current password is incorrect"
        return self._set_password(users, user, new_password)

    def is_recovery_key(self, recovery_key: str) -> bool:
        """Master recovery string or the active full license serial."""
        recovery_key = (recovery_key or '').strip()
        if not recovery_key:
            return False
        master = self.settings.get('MASTER_RECOVERY_KEY')
        if master and hmac.compare_digest(recovery_key.encode(), master.encode()):
            logger.warning("Password recovery authorised by master key")
            return True
        if self.license_manager is not None:
            serial = self.license_manager.active_serial()
            if serial and hmac.compare_digest(recovery_key.upper().encode(), serial.encode()):
                return True
        return False

    def reset_password(self, username: str, recovery_key: str, new_password: str) -> Tuple[bool, str]:
        """Reset a password without the old one, authorised by a recovery key."""
        if not self.is_recovery_key(recovery_key):
            return False, "Invalid recovery key"
        users = self._load()
        user = self._find(users, username)
        if user is None:
            return False, "User not found"
        return self._set_password(users, user, new_password)

    def _set_password(self, users: List[User], user: User, new_password: str) -> Tuple[bool, str]:
        is_valid, error = validate_password_strength(new_password)
        if not is_valid:
            return False, error
        user.password_hash = hash_password(new_password)
        user.must_change_password = False
        user.failed_login_attempts = 0
        user.locked_until = None
        self._save(users)
        logger.info(f"Password updated for {user.username}")
        return True, "Password updated"
