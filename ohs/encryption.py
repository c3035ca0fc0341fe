"""
Pluggable storage codec framework for OHS.

Every persisted slot goes through a codec that turns a JSON-serializable
structure into an opaque printable string and back. Two backends are
provided:

- ``obfuscation`` (default): the legacy scheme used by existing
  installations. JSON is UTF-8 encoded, base64 encoded, each character is
  XOR-ed with a single key byte folded from a fixed secret, and the result
  is rendered as hex.
- ``fernet``: authenticated symmetric encryption (AES-128-CBC + HMAC) from
  the ``cryptography`` library.

Usage:
    from ohs.encryption import get_codec

    codec = get_codec()                       # obfuscation
    codec = get_codec('fernet', key=my_key)   # real encryption

    text = codec.encode({'name': 'Ali'})
    data = codec.decode(text)

Security Note:
    The obfuscation codec is NOT encryption. Its secret is embedded in
    every client, so it only deters casual inspection of the storage file.
    Anyone with the source can decode it. Use the ``fernet`` backend, with
    a key kept outside the data directory, when at-rest confidentiality is
    required.
"""

import base64
import binascii
import hashlib
import json
import logging
import secrets
from functools import reduce
from typing import Any, Dict, Optional, Protocol, Type, runtime_checkable

from cryptography.fernet import Fernet, InvalidToken

from .config import SECRET_SALT

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when a codec cannot be configured."""
    pass


class KeyDerivationError(EncryptionError):
    """Raised when key derivation fails."""
    pass


@runtime_checkable
class StorageCodec(Protocol):
    """Protocol defining the storage codec interface.

    Implementations must never raise from ``decode``; malformed or
    tampered input yields ``None``.
    """

    def encode(self, data: Any) -> str:
        """Serialize ``data`` into an opaque printable string."""
        ...

    def decode(self, text: Optional[str]) -> Optional[Any]:
        """Reverse ``encode``. Returns None for invalid input."""
        ...


def canonical_json(data: Any) -> str:
    """Compact JSON with non-ASCII characters kept as-is."""
    return json.dumps(data, ensure_ascii=False, separators=(',', ':'))


def fold_secret(secret: str) -> int:
    """XOR every character of ``secret`` into a single key value."""
    return reduce(lambda acc, ch: acc ^ ord(ch), secret, 0)


class ObfuscationCodec:
    """Legacy XOR/hex obfuscation codec.

    Compatible with data written by earlier releases of the application.

    Args:
        secret: Secret string folded into the XOR key.
    """

    def __init__(self, secret: str = SECRET_SALT):
        self._key = fold_secret(secret)

    def encode(self, data: Any) -> str:
        try:
            payload = canonical_json(data)
        except (TypeError, ValueError) as e:
            logger.error(f"Encoding failed: {e}")
            return ""
        ascii_text = base64.b64encode(payload.encode('utf-8')).decode('ascii')
        return ''.join(f"{ord(ch) ^ self._key:02x}" for ch in ascii_text)

    def decode(self, text: Optional[str]) -> Optional[Any]:
        if not text:
            return None
        try:
            raw = bytes.fromhex(text)
            ascii_text = bytes(b ^ self._key for b in raw)
            payload = base64.b64decode(ascii_text, validate=True).decode('utf-8')
            return json.loads(payload)
        except (ValueError, TypeError, binascii.Error, UnicodeDecodeError) as e:
            logger.warning(f"Decoding failed (data may be tampered or legacy format): {e}")
            return None


class FernetCodec:
    """Fernet authenticated encryption codec.

    Args:
        key: Urlsafe base64 32-byte key, or any passphrase (derived with
            PBKDF2). None generates a fresh key.

    Raises:
        KeyDerivationError: If the key cannot be used.
    """

    PREFIX = "FERNET:"

    def __init__(self, key: Optional[str] = None):
        if key is None:
            key = generate_key()
            logger.warning("Generated new storage encryption key. Store this securely!")
        self._key = key
        try:
            if len(key) == 44:
                self._fernet = Fernet(key.encode())
            else:
                self._fernet = Fernet(self._derive_key(key))
        except (ValueError, binascii.Error) as e:
            raise KeyDerivationError(f"Invalid encryption key: {e}")

    def _derive_key(self, password: str) -> bytes:
        """Derive a Fernet-compatible key from a passphrase."""
        key = hashlib.pbkdf2_hmac(
            'sha256',
            password.encode(),
            b'ohs_salt_v1',
            100000,
            dklen=32
        )
        return base64.urlsafe_b64encode(key)

    @property
    def key(self) -> str:
        """Get the encryption key (for secure storage)."""
        return self._key

    def encode(self, data: Any) -> str:
        try:
            payload = canonical_json(data)
        except (TypeError, ValueError) as e:
            logger.error(f"Encoding failed: {e}")
            return ""
        token = self._fernet.encrypt(payload.encode('utf-8')).decode('ascii')
        return f"{self.PREFIX}{token}"

    def decode(self, text: Optional[str]) -> Optional[Any]:
        if not text:
            return None
        if text.startswith(self.PREFIX):
            text = text[len(self.PREFIX):]
        try:
            payload = self._fernet.decrypt(text.encode('ascii')).decode('utf-8')
            return json.loads(payload)
        except (InvalidToken, ValueError, UnicodeError) as e:
            logger.warning(f"Decryption failed: {type(e).__name__}")
            return None


# Registry of available codec backends
_CODECS: Dict[str, Type[StorageCodec]] = {
    'obfuscation': ObfuscationCodec,
    'fernet': FernetCodec,
}


def register_codec(name: str, codec_class: Type[StorageCodec]) -> None:
    """Register a custom codec backend under ``name``."""
    _CODECS[name.lower()] = codec_class


def get_codec(backend: str = 'obfuscation', **kwargs: Any) -> StorageCodec:
    """Get a codec backend instance.

    Raises:
        ValueError: If backend name is not registered.
    """
    backend_lower = backend.lower()
    if backend_lower not in _CODECS:
        available = ', '.join(_CODECS.keys())
        raise ValueError(f"Unknown codec '{backend}'. Available: {available}")

    return _CODECS[backend_lower](**kwargs)


_default_codec = ObfuscationCodec()


def encrypt(data: Any) -> str:
    """Encode ``data`` with the default obfuscation codec."""
    return _default_codec.encode(data)


def decrypt(text: Optional[str]) -> Optional[Any]:
    """Decode text produced by ``encrypt``; None if invalid."""
    return _default_codec.decode(text)


def generate_key() -> str:
    """Generate a new key suitable for the Fernet codec."""
    return base64.urlsafe_b64encode(secrets.token_bytes(32)).decode()
