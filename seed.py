import logging
import sys

from config import get_settings
from database import session_scope
from services import AuthService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed_default_user() -> bool:
    settings = get_settings()
    with session_scope() as session:
        user = AuthService(session).ensure_user(
            settings.seed_username, settings.seed_password
        )
        if user is None:
            logger.info("seed: user already exists, skipping")
            return False
        logger.info("seed: created user %s", user.username)
        return True


def main() -> None:
    try:
        seed_default_user()
    except ValueError as exc:
        logger.error("seed: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
