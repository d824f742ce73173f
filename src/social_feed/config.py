from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

from dotenv import load_dotenv, find_dotenv

# Loads the repo root .env; existing environment variables are NOT overridden.
load_dotenv(find_dotenv())


def _split_origins(raw: str) -> tuple[str, ...]:
    return tuple(o.strip() for o in raw.split(",") if o.strip())


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///social_feed.db"
    cors_origins: tuple[str, ...] = field(default_factory=lambda: ("http://localhost:5173",))
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"
    feed_base_url: str = "http://127.0.0.1:8000"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        origins = os.getenv("CORS_ORIGINS")
        return cls(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            cors_origins=_split_origins(origins) if origins else defaults.cors_origins,
            host=os.getenv("HOST", defaults.host),
            port=int(os.getenv("PORT", str(defaults.port))),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
            feed_base_url=os.getenv("FEED_BASE_URL", defaults.feed_base_url).rstrip("/"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
