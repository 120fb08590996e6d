"""
Password hashing.

Hashes are salted pbkdf2_sha256 by default. Verification accepts any
scheme the context knows, so the default can change without locking
existing users out.
"""

from typing import Optional

from passlib.context import CryptContext

from fintrack.config import SecuritySettings, get_settings


class PasswordHasher:
    """Thin wrapper over a passlib CryptContext."""

    def __init__(self, settings: Optional[SecuritySettings] = None):
        settings = settings or get_settings().security
        schemes = [settings.hash_scheme]
        if "pbkdf2_sha256" not in schemes:
            schemes.append("pbkdf2_sha256")
        self._context = CryptContext(schemes=schemes, deprecated="auto")

    def hash_password(self, password: str) -> str:
        return self._context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        try:
            return self._context.verify(plain_password, hashed_password)
        except (TypeError, ValueError):
            # Unrecognized or malformed hash, or a non-text secret
            return False
