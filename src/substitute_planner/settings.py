from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path


def _load_local_env_file() -> None:
    """Loads variables from .env when present, without overriding exported ones."""
    env_path = Path('.env')
    if not env_path.exists():
        return

    for raw_line in env_path.read_text(encoding='utf-8').splitlines():
        line = raw_line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        key, value = line.split('=', 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        os.environ.setdefault(key, value)


_load_local_env_file()


def _optional_int(name: str) -> int | None:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    debug: bool
    db_backend: str
    database_url: str | None
    periods_per_day: int = 7
    fair_distribution_seed: int | None = None
    default_mode_id: str = "normalMode"


def load_settings() -> Settings:
    return Settings(
        app_name=os.getenv("APP_NAME", "substitute-planner"),
        app_version=os.getenv("APP_VERSION", "0.1.0"),
        debug=os.getenv("APP_DEBUG", "false").lower() in {"1", "true", "yes"},
        db_backend=os.getenv("DB_BACKEND", "memory"),
        database_url=os.getenv("DATABASE_URL"),
        periods_per_day=int(os.getenv("PERIODS_PER_DAY", "7")),
        fair_distribution_seed=_optional_int("FAIR_DISTRIBUTION_SEED"),
        default_mode_id=os.getenv("DEFAULT_MODE_ID", "normalMode"),
    )
