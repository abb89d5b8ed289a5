"""
Application settings loaded from environment variables.

All variables use the ``ONEMPLOYMENT_`` prefix, e.g.
``ONEMPLOYMENT_JWT_SECRET`` or ``ONEMPLOYMENT_BCRYPT_ROUNDS``.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    environment: Literal["development", "test", "production"] = "development"

    # ── Password hashing ─────────────────────────────────────────────────
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ── Tokens ───────────────────────────────────────────────────────────
    jwt_secret: Optional[str] = None                    # required in production
    jwt_issuer: str = "onemployment-auth"
    jwt_audience: str = "onemployment-api"
    jwt_lifetime_seconds: int = Field(default=8 * 60 * 60, gt=0)   # 8 hours

    # ── Storage ──────────────────────────────────────────────────────────
    database_path: Path = Path("data") / "users.db"

    # ── Logging ──────────────────────────────────────────────────────────
    log_level: Optional[str] = None     # derived from environment when unset

    model_config = SettingsConfigDict(
        env_prefix="ONEMPLOYMENT_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def effective_log_level(self) -> str:
        """Explicit ``log_level`` if set, otherwise one chosen per environment."""
        if self.log_level:
            return self.log_level.upper()
        return {
            "production": "WARNING",
            "test": "ERROR",
        }.get(self.environment, "DEBUG")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
