"""
Admin password hashing and checking.
Uses bcrypt; the hash lives in ADMIN_PASSWORD_HASH.
"""
import bcrypt

from mcoj_api.config import settings
from mcoj_api.errors import ConfigurationError


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.
    Used by `manage.py --hash-password` to produce ADMIN_PASSWORD_HASH.
    """
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, hashed_password: str) -> bool:
    """
    Check a plain password against a bcrypt hash.

    Returns:
        True if password matches, False otherwise (including malformed hashes)
    """
    try:
        return bcrypt.checkpw(
            password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        return False


def verify_admin_password(password: str, password_hash: str = None) -> bool:
    """
    Verify the admin password against the configured hash.

    Raises:
        ConfigurationError: If ADMIN_PASSWORD_HASH is not configured
    """
    password_hash = password_hash if password_hash is not None else settings.ADMIN_PASSWORD_HASH
    if not password_hash:
        raise ConfigurationError("ADMIN_PASSWORD_HASH not configured")

    return verify_password(password, password_hash)
