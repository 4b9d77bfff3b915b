"""Password hashing and verification.

Two encodings are understood:

* an argon2id PHC string (``$argon2id$v=19$...``), written for every new hash.
* a bare 64-character hex string: the legacy format, an unsalted SHA-256 of
  the UTF-8 password.  Stored credentials in that format still verify so
  existing accounts keep working, but nothing new is ever written with it.
"""

from __future__ import annotations

import hashlib
import hmac
import logging

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError

logger = logging.getLogger(__name__)

_ARGON2_PREFIX = "$argon2"

_hasher = PasswordHasher(type=Type.ID)


def hash_password(password: str) -> str:
    """Return the encoded argon2id hash of *password*."""
    return _hasher.hash(password)


def legacy_hash_password(password: str) -> str:
    """Unsalted SHA-256, kept only to verify and migrate old credentials."""
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def password_matches(password_hash: str, password: str) -> bool:
    """Check *password* against a stored hash of either encoding."""
    if password_hash.startswith(_ARGON2_PREFIX):
        try:
            return _hasher.verify(password_hash, password)
        except VerificationError:
            return False
        except InvalidHashError:
            logger.warning("Malformed argon2 password hash encountered")
            return False

    return hmac.compare_digest(legacy_hash_password(password), password_hash)


def needs_rehash(password_hash: str) -> bool:
    """True for legacy hashes and for argon2 hashes with outdated parameters."""
    if not password_hash.startswith(_ARGON2_PREFIX):
        return True
    try:
        return _hasher.check_needs_rehash(password_hash)
    except InvalidHashError:
        return True
