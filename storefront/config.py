"""
Environment-driven settings for the storefront server.

Everything tunable (listen address, session secret, where db.json lives, the
seed admin) is parsed here once; the rest of the package receives a Settings.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, List, Optional, TypeVar
import os

DEV_SECRET = "dev-secret-change-me"

T = TypeVar("T")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    app_env: str
    host: str
    port: int
    secret_key: str
    data_file: str
    storage_timeout_seconds: float
    session_ttl_seconds: int
    admin_name: str
    admin_email: str
    admin_password: str
    seed_sample_products: bool
    log_level: str
    cors_origins: List[str]

    @property
    def secret_is_default(self) -> bool:
        return self.secret_key == DEV_SECRET


def _env(name: str, parse: Callable[[str], T], default: T) -> T:
    """Parsed value of an environment variable; unset, blank or unparsable falls back to default."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return parse(raw.strip())
    except ValueError:
        return default


def _flag(raw: str) -> bool:
    return raw.lower() in _TRUTHY


def _origins(raw: str) -> List[str]:
    origins = [part.strip() for part in raw.split(",") if part.strip()]
    if not origins:
        raise ValueError("no origins")
    return origins


def _str(name: str, default: str) -> str:
    value: Optional[str] = os.getenv(name)
    return value if value else default


@lru_cache
def get_settings() -> Settings:
    return Settings(
        app_env=_str("APP_ENV", "dev").lower(),
        host=_str("HOST", "0.0.0.0"),
        port=_env("PORT", int, 3000),
        secret_key=_str("SECRET_KEY", DEV_SECRET),
        data_file=_str("DATA_FILE", os.path.join(os.getcwd(), "db.json")),
        storage_timeout_seconds=_env("STORAGE_TIMEOUT_SECONDS", float, 5.0),
        session_ttl_seconds=_env("SESSION_TTL_SECONDS", int, 86400),
        admin_name=_str("ADMIN_NAME", "Admin"),
        admin_email=_str("ADMIN_EMAIL", "admin@store.local"),
        admin_password=_str("ADMIN_PASSWORD", "admin123"),
        seed_sample_products=_env("SEED_SAMPLE_PRODUCTS", _flag, True),
        log_level=_str("LOG_LEVEL", "INFO").upper(),
        cors_origins=_env("CORS_ORIGINS", _origins, ["*"]),
    )
