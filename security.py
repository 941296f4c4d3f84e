from functools import lru_cache
from typing import Optional

import bcrypt

from config import get_settings

MIN_PASSWORD_LENGTH = 6


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    cost = rounds or get_settings().bcrypt_rounds
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(cost)).decode(
        "utf-8"
    )


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password("unknown-user-placeholder")


def verify_unknown_user(password: str) -> bool:
    """Spend one bcrypt check for a username that does not exist; always False."""
    verify_password(password, _dummy_hash())
    return False
