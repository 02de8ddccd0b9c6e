"""Password hashing"""

from typing import Optional

import bcrypt

# bcrypt only reads the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72

# Checked against when the account does not exist, so a miss costs the
# same as a wrong password.
_DUMMY_HASH = bcrypt.hashpw(b"residence-auth-dummy", bcrypt.gensalt()).decode("utf-8")


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def get_password_hash(password: str) -> str:
    """
    Hash a password with a fresh bcrypt salt

    Args:
        password: Plain text password

    Returns:
        str: bcrypt hash
    """
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    Check a password against a stored hash.

    A missing hash still pays for one bcrypt round, and a stored value
    that is not a bcrypt hash never matches.
    """
    try:
        return bcrypt.checkpw(
            _encode(plain_password),
            (hashed_password or _DUMMY_HASH).encode("utf-8"),
        ) and hashed_password is not None
    except ValueError:
        return False
