from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field

DATA_DIR = Path(__file__).parent / "data"

RANKING_CHOICES = ("fixed", "composite")


def _env(name: str, default: str) -> str:
    return os.getenv(name, "").strip() or default


class Settings(BaseModel):
    db_path: Path = Field(default_factory=lambda: Path(_env("DEALSCOUT_DB_PATH", str(DATA_DIR / "dealscout.db"))))
    ranking: str = Field(default_factory=lambda: _env("DEALSCOUT_RANKING", "fixed").lower())
    host: str = Field(default_factory=lambda: _env("DEALSCOUT_HOST", "127.0.0.1"))
    port: int = Field(default_factory=lambda: int(_env("DEALSCOUT_PORT", "8001")))
    log_level: str = Field(default_factory=lambda: _env("DEALSCOUT_LOG_LEVEL", "INFO").upper())


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()
    if settings.ranking not in RANKING_CHOICES:
        raise ValueError(
            f"Unknown DEALSCOUT_RANKING {settings.ranking!r} (expected one of {', '.join(RANKING_CHOICES)})"
        )
    return settings
