# catalog/settings.py
import os
from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, read from the environment"""
    database_url: str = "sqlite:///catalog.db"
    openlibrary_base_url: str = "https://openlibrary.org"
    openlibrary_timeout: float = 10.0
    cache_ttl_days: int = 7
    attach_rate_limit: int = 10
    attach_rate_window: float = 60.0
    background_workers: int = 2

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(days=self.cache_ttl_days)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, falling back to defaults

        Recognised variables: DATABASE_URL, OPENLIBRARY_BASE_URL, OPENLIBRARY_TIMEOUT,
        CATALOG_CACHE_TTL_DAYS, CATALOG_ATTACH_RATE_LIMIT, CATALOG_ATTACH_RATE_WINDOW,
        CATALOG_BACKGROUND_WORKERS
        """
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            openlibrary_base_url=os.getenv("OPENLIBRARY_BASE_URL", cls.openlibrary_base_url).rstrip("/"),
            openlibrary_timeout=float(os.getenv("OPENLIBRARY_TIMEOUT", cls.openlibrary_timeout)),
            cache_ttl_days=int(os.getenv("CATALOG_CACHE_TTL_DAYS", cls.cache_ttl_days)),
            attach_rate_limit=int(os.getenv("CATALOG_ATTACH_RATE_LIMIT", cls.attach_rate_limit)),
            attach_rate_window=float(os.getenv("CATALOG_ATTACH_RATE_WINDOW", cls.attach_rate_window)),
            background_workers=int(os.getenv("CATALOG_BACKGROUND_WORKERS", cls.background_workers)),
        )


def get_settings() -> Settings:
    return Settings.from_env()
