"""
gdpr_traversal Configuration.

Pydantic Settings v2, loaded from .env and environment variables.
"""

from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ──────────────────────────────────────────────────────
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # ── Logging ──────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="console", alias="LOG_FORMAT")

    # ── Traversal ────────────────────────────────────────────────────────
    task_entity_type: str = Field(
        default="gdpr_task",
        alias="TASK_ENTITY_TYPE",
        description="Entity type of the system's own task records; never traversed",
    )
    warn_on_unconfigured: bool = Field(
        default=True,
        alias="WARN_ON_UNCONFIGURED",
        description="Log a warning when a reached entity type has no field policy",
    )
    traversal_timeout_seconds: Optional[float] = Field(
        default=None,
        alias="TRAVERSAL_TIMEOUT_SECONDS",
    )

    # ── Anonymization ────────────────────────────────────────────────────
    default_type_anonymizers: Dict[str, str] = Field(
        default={
            "string": "text_anonymizer",
            "datetime": "date_anonymizer",
        },
        alias="DEFAULT_TYPE_ANONYMIZERS",
    )

    # ── Database ─────────────────────────────────────────────────────────
    database_url: str = Field(
        default="sqlite:///gdpr_traversal.db",
        alias="DATABASE_URL",
    )
    db_echo: bool = Field(default=False, alias="DB_ECHO")


settings = Settings()
