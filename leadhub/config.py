"""Runtime configuration."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_DATABASE_URL = "postgresql://user:pass@db:5432/crm"
DEFAULT_REDIS_URL = "redis://redis:6379/0"

DUPLICATE_POLICIES = {"insert", "skip"}


@dataclass(slots=True, frozen=True)
class Settings:
    database_url: str
    redis_url: str
    queue_enabled: bool
    job_timeout: float = 180.0
    job_attempts: int = 3
    job_backoff: float = 5.0
    duplicate_policy: str = "insert"
    signing_secret: str = "change-me"
    log_level: str = "INFO"


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def load_settings() -> Settings:
    """Build settings from the environment (and a local .env file, if any)."""
    load_dotenv()
    queue_flag = os.environ.get("CSV_QUEUE_ENABLED", os.environ.get("REDIS_ENABLED"))
    policy = os.environ.get("LEAD_DUPLICATE_POLICY", "insert").strip().lower()
    if policy not in DUPLICATE_POLICIES:
        raise ValueError(f"LEAD_DUPLICATE_POLICY must be one of {sorted(DUPLICATE_POLICIES)}, got {policy!r}")
    return Settings(
        database_url=os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL),
        redis_url=os.environ.get("REDIS_URL", DEFAULT_REDIS_URL),
        queue_enabled=_flag(queue_flag),
        job_timeout=float(os.environ.get("CSV_JOB_TIMEOUT", 180)),
        job_attempts=int(os.environ.get("CSV_JOB_ATTEMPTS", 3)),
        job_backoff=float(os.environ.get("CSV_JOB_BACKOFF", 5)),
        duplicate_policy=policy,
        signing_secret=os.environ.get("SIGNING_SECRET", "change-me"),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
