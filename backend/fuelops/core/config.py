"""Simple configuration management.

This module defines a ``Settings`` class that reads configuration
values from environment variables and provides sensible defaults.
``.env`` support is implemented by loading files from the repository
root in a defined order.  You can override any value via environment
variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from dotenv import load_dotenv, find_dotenv

# -----------------------------------------------------------------------------
# .env loading
#
# Prefer a .env in the repository root but allow fallback to whatever
# python-dotenv discovers from the current working directory.  Files are
# loaded in order without overriding already-set variables.

_THIS_FILE = Path(__file__).resolve()
_REPO_ROOT = _THIS_FILE.parents[3]
_ROOT_ENV = _REPO_ROOT / ".env"

_candidate_envs: list[str] = []
if _ROOT_ENV.exists():
    _candidate_envs.append(str(_ROOT_ENV))

_FOUND_ENV = find_dotenv(usecwd=True)
if _FOUND_ENV and _FOUND_ENV not in _candidate_envs:
    _candidate_envs.append(_FOUND_ENV)

_LOCAL_ENV = (_THIS_FILE.parent.parent.parent / ".env").as_posix()
if os.path.exists(_LOCAL_ENV) and _LOCAL_ENV not in _candidate_envs:
    _candidate_envs.append(_LOCAL_ENV)

for _env_path in _candidate_envs:
    load_dotenv(dotenv_path=_env_path, override=False)


class Settings(BaseSettings):
    """Application settings.

    Values are loaded from the environment with sensible defaults.  Any
    attribute defined here can be overridden by setting the corresponding
    environment variable.
    """

    model_config = SettingsConfigDict(
        env_file=tuple(_candidate_envs) if _candidate_envs else (".env",),
        case_sensitive=True,
        extra="allow",
    )

    # API Settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "FuelOps"
    ENVIRONMENT: str = Field(default="development")

    # Database
    DATABASE_URL: Optional[str] = Field(default=None)
    # Dev DB fallback: use a local SQLite file when DATABASE_URL is unset
    DB_DEV_FALLBACK_SQLITE: bool = Field(default=True)
    SQLITE_FALLBACK_URL: str = Field(default="sqlite+aiosqlite:///./fuelops.db")

    # Redis (report cache)
    REDIS_URL: str = Field(default="redis://localhost:6379/0")
    REPORT_CACHE_TTL_SECONDS: int = Field(default=60)

    # Auth
    # Tokens are issued by the hosted identity provider and signed with a
    # shared secret.  The API only verifies them.
    DEV_AUTH_BYPASS: bool = Field(default=False)
    AUTH_JWT_SECRET: Optional[str] = Field(default=None)
    AUTH_JWT_AUDIENCE: Optional[str] = Field(default="authenticated")
    AUTH_JWT_ISSUER: Optional[str] = Field(default=None)
    AUTH_JWT_ALGORITHMS: list[str] = Field(default=["HS256"])

    # Business thresholds
    DEVIATION_THRESHOLD_PERCENT: float = Field(default=20.0)
    TICKET_INITIATION_THRESHOLD_PERCENT: float = Field(default=85.0)
    PRIORITY_GRIDS: list[str] = Field(default=["C1", "C6"])
    FUELING_HISTORY_MONTHS: int = Field(default=6)

    # Alerts
    ALERT_COUNTRY_CODE: str = Field(default="92")
    ALERT_ROLES: list[str] = Field(default=["rm", "gtl", "security"])

    # CORS
    BACKEND_CORS_ORIGINS: list[str] = Field(
        default=["http://localhost:8081", "http://127.0.0.1:8081"],
    )

    # Sentry
    SENTRY_DSN: Optional[str] = Field(default=None)
    SENTRY_TRACES_SAMPLE_RATE: float = Field(default=0.0)
    SENTRY_PROFILES_SAMPLE_RATE: float = Field(default=0.0)
    SENTRY_RELEASE: Optional[str] = Field(default=None)


# Instantiate global settings
settings = Settings()
