"""Runtime configuration for the payment service."""

import os
import logging
from enum import Enum
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./payfastacy.db"
DEFAULT_SEPAY_API_URL = "https://my.sepay.vn/userapi"


class MatchPolicy(str, Enum):
    """How a webhook memo that matches several pending payments is resolved."""
    FIRST = "first"
    STRICT = "strict"


def normalize_database_url(db_url: str) -> str:
    """Rewrite plain PostgreSQL URLs to use the asyncpg driver."""
    if db_url.startswith("postgresql://"):
        return db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if db_url.startswith("postgres://"):
        return db_url.replace("postgres://", "postgresql+asyncpg://", 1)
    return db_url


def _env_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Explicit configuration passed to the engine, gateway client and app.

    Build it once with :meth:`from_env` at process start; tests construct it
    directly.
    """
    database_url: str = DEFAULT_DATABASE_URL
    app_key: Optional[str] = None
    sepay_api_key: Optional[str] = None
    sepay_api_url: str = DEFAULT_SEPAY_API_URL
    sepay_timeout: float = Field(default=10.0, gt=0)
    content_length: int = Field(default=11, ge=4, le=20)
    content_max_attempts: int = Field(default=10, ge=1)
    min_amount: int = Field(default=0, ge=0)
    match_policy: MatchPolicy = MatchPolicy.FIRST
    match_whole_token: bool = False
    callback_rate_limit: str = "120/minute"
    log_level: str = "INFO"

    @field_validator("database_url")
    @classmethod
    def _normalize_url(cls, value: str) -> str:
        return normalize_database_url(value)

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """Load settings from the process environment.

        Args:
            env_file: Optional path to a ``.env`` file. Values already present
                in the environment win over the file.

        Returns:
            Settings instance.
        """
        load_dotenv(env_file)

        values = {
            "database_url": os.getenv("DB_URL") or os.getenv("DATABASE_URL"),
            "app_key": os.getenv("APP_KEY"),
            "sepay_api_key": os.getenv("SEPAY_API_KEY"),
            "sepay_api_url": os.getenv("SEPAY_API_URL"),
            "sepay_timeout": os.getenv("SEPAY_TIMEOUT"),
            "content_length": os.getenv("CONTENT_LENGTH"),
            "content_max_attempts": os.getenv("CONTENT_MAX_ATTEMPTS"),
            "min_amount": os.getenv("MIN_AMOUNT"),
            "match_policy": os.getenv("MATCH_POLICY"),
            "callback_rate_limit": os.getenv("CALLBACK_RATE_LIMIT"),
            "log_level": os.getenv("LOG_LEVEL"),
        }
        settings = {k: v for k, v in values.items() if v not in (None, "")}
        if os.getenv("MATCH_WHOLE_TOKEN") is not None:
            settings["match_whole_token"] = _env_bool(os.getenv("MATCH_WHOLE_TOKEN"))

        return cls(**settings)


def configure_logging(level: str = "INFO") -> None:
    """Install the root logging format used by the app and the CLI."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
