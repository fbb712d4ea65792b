import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

PLAN_STORE_CHOICES = ("auto", "memory", "sql")


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Database
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None
    DB_ECHO: bool = False

    # Plan storage backend: auto | memory | sql
    PLAN_STORE: str = "auto"

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Database URLs are never logged.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("planboard")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    problems = []
    store_mode = (cfg.PLAN_STORE or "auto").lower()
    if store_mode not in PLAN_STORE_CHOICES:
        problems.append(f"PLAN_STORE must be one of {', '.join(PLAN_STORE_CHOICES)}")
    if store_mode == "sql" and not (cfg.DATABASE_URL or cfg.TEST_DATABASE_URL):
        problems.append("PLAN_STORE=sql requires DATABASE_URL")
    if cfg.ENV.lower() == "production" and store_mode == "memory":
        problems.append("PLAN_STORE=memory is not durable in production")

    if problems:
        message = f"Invalid configuration: {'; '.join(problems)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
