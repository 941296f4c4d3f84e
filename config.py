import os
from functools import lru_cache
from pathlib import Path

MONTH_CONFLICT_POLICIES = ("return_existing", "error")


class Settings:
    def __init__(
        self,
        database_url: str,
        session_secret: str,
        cookie_secure: bool,
        session_max_age_days: int,
        bcrypt_rounds: int,
        month_conflict_policy: str,
        log_level: str,
        seed_username: str,
        seed_password: str,
    ) -> None:
        self.database_url = database_url
        self.session_secret = session_secret
        self.cookie_secure = cookie_secure
        self.session_max_age_days = session_max_age_days
        self.bcrypt_rounds = bcrypt_rounds
        self.month_conflict_policy = month_conflict_policy
        self.log_level = log_level
        self.seed_username = seed_username
        self.seed_password = seed_password

    @property
    def session_max_age_secs(self) -> int:
        return self.session_max_age_days * 24 * 60 * 60


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("FINANCE_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    database_url = os.getenv("FINANCE_DATABASE_URL")
    if not database_url:
        database_url = f"sqlite:///{_ensure_data_dir() / 'finance.db'}"
    session_secret = os.getenv(
        "FINANCE_SESSION_SECRET",
        "3f0c6d2a9e8b47d1a5c4f7e2b9d08a61c3e5f7a9b1d3e5f70a2c4e6f8b0d2f41",
    )
    month_conflict_policy = os.getenv(
        "FINANCE_MONTH_CONFLICT_POLICY", "return_existing"
    ).strip().lower()
    if month_conflict_policy not in MONTH_CONFLICT_POLICIES:
        raise ValueError(
            f"Unsupported month conflict policy: {month_conflict_policy}"
        )
    return Settings(
        database_url=database_url,
        session_secret=session_secret,
        cookie_secure=_env_flag("FINANCE_COOKIE_SECURE"),
        session_max_age_days=int(os.getenv("FINANCE_SESSION_MAX_AGE_DAYS", "30")),
        bcrypt_rounds=int(os.getenv("FINANCE_BCRYPT_ROUNDS", "12")),
        month_conflict_policy=month_conflict_policy,
        log_level=os.getenv("FINANCE_LOG_LEVEL", "INFO").upper(),
        seed_username=os.getenv("FINANCE_SEED_USERNAME", "admin"),
        seed_password=os.getenv("FINANCE_SEED_PASSWORD", "changeme"),
    )
