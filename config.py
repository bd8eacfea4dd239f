import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        storage_backend: str,
        default_user_id: int,
        seed_defaults: bool,
        log_level: str,
    ) -> None:
        self.database_url = database_url
        self.storage_backend = storage_backend
        self.default_user_id = default_user_id
        self.seed_defaults = seed_defaults
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("FINANCE_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "finance.db"
    database_url = os.getenv("FINANCE_DATABASE_URL", f"sqlite:///{default_db}")
    storage_backend = os.getenv("FINANCE_STORAGE", "database").strip().lower()
    if storage_backend not in {"database", "memory"}:
        raise ValueError(f"Unknown storage backend: {storage_backend}")
    default_user_id = int(os.getenv("FINANCE_DEFAULT_USER_ID", "1"))
    seed_defaults = _env_flag("FINANCE_SEED_DEFAULTS", "1")
    log_level = os.getenv("FINANCE_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        storage_backend=storage_backend,
        default_user_id=default_user_id,
        seed_defaults=seed_defaults,
        log_level=log_level,
    )
