"""Configuration settings for the SyncSearch backend.

Wraps environment variables and provides defaults.
"""

import logging
from typing import Optional

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic settings class.

    Attributes:
    ----------
        PROJECT_NAME (str): The name of the project.
        LOCAL_DEVELOPMENT (bool): Whether the application is running locally.
        ENVIRONMENT (str): The deployment environment (local, dev, test, prod).
        LOG_LEVEL (str): The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        POSTGRES_HOST (Optional[str]): The PostgreSQL server hostname. When unset the
            service runs on a local SQLite database.
        POSTGRES_PORT (int): The PostgreSQL server port.
        POSTGRES_DB (str): The PostgreSQL database name.
        POSTGRES_USER (Optional[str]): The PostgreSQL username.
        POSTGRES_PASSWORD (Optional[str]): The PostgreSQL password.
        DATABASE_URL (Optional[str]): The SQLAlchemy async database URL.
        OPENAI_API_KEY (Optional[str]): Fallback summarization key used when the stored
            system settings carry none.
        SUMMARY_MODEL (str): Model used to summarize fetched content.
        COMPLETION_MODEL (str): Model used to answer queries.
        GOOGLE_CLIENT_ID (Optional[str]): OAuth client id used to refresh Drive tokens.
        GOOGLE_CLIENT_SECRET (Optional[str]): OAuth client secret used to refresh Drive tokens.
        SYNC_BATCH_SIZE (int): Items processed concurrently per batch.
        MARKER_TOLERANCE_MS (int): Allowed drift between modification markers.
        MAX_FETCH_CHARS (int): Character cap applied to fetched text content.
        MAX_SUMMARY_INPUT_CHARS (int): Character cap applied before summarization.
        MAX_CONTEXT_CHARS (int): Character cap applied to query context.
        SUMMARIZER_MAX_ATTEMPTS (int): Attempts per summarization call.
        SUMMARIZER_BASE_DELAY (float): Initial backoff in seconds.
        SUMMARIZER_MAX_JITTER (float): Maximum random jitter added to each backoff.
        SCHEDULER_CHECK_INTERVAL (float): Seconds between auto-sync scheduler checks.
        SCHEDULER_ENABLED (bool): Whether the auto-sync scheduler starts with the app.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = "SyncSearch"
    LOCAL_DEVELOPMENT: bool = False
    ENVIRONMENT: str = "local"

    # Logging configuration
    LOG_LEVEL: str = "INFO"

    POSTGRES_HOST: Optional[str] = None
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "syncsearch"
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    DATABASE_URL: Optional[str] = Field(default=None, validate_default=True)

    OPENAI_API_KEY: Optional[str] = None
    SUMMARY_MODEL: str = "gpt-4o-mini"
    COMPLETION_MODEL: str = "gpt-4o-mini"

    GOOGLE_CLIENT_ID: Optional[str] = None
    GOOGLE_CLIENT_SECRET: Optional[str] = None

    # Sync configuration
    SYNC_BATCH_SIZE: int = 5
    MARKER_TOLERANCE_MS: int = 1000
    MAX_FETCH_CHARS: int = 200_000
    MAX_SUMMARY_INPUT_CHARS: int = 800_000
    MAX_CONTEXT_CHARS: int = 800_000

    # Summarization retry configuration
    SUMMARIZER_MAX_ATTEMPTS: int = 3
    SUMMARIZER_BASE_DELAY: float = 1.0
    SUMMARIZER_MAX_JITTER: float = 1.0

    SCHEDULER_CHECK_INTERVAL: float = 5.0
    SCHEDULER_ENABLED: bool = True

    @field_validator("LOG_LEVEL", mode="before")
    def validate_log_level(cls, v: str) -> str:
        """Validate the log level against the standard logging levels.

        Args:
        ----
            v (str): The log level value.

        Returns:
        -------
            str: The upper-cased log level.

        Raises:
        ------
            ValueError: If the level is not a known logging level.

        """
        level = str(v).upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Invalid LOG_LEVEL: {v}")
        return level

    @field_validator("DATABASE_URL", mode="before")
    def assemble_db_connection(cls, v: Optional[str], info: ValidationInfo) -> str:
        """Build the async database URL.

        An explicit DATABASE_URL wins. Otherwise a PostgreSQL URL is assembled when
        POSTGRES_HOST is set, and a local SQLite file is used as the last resort.

        Args:
        ----
            v (Optional[str]): The configured value, if any.
            info (ValidationInfo): The other settings values.

        Returns:
        -------
            str: The SQLAlchemy async URL.

        """
        if isinstance(v, str) and v:
            return v
        host = info.data.get("POSTGRES_HOST")
        if host:
            user = info.data.get("POSTGRES_USER") or "postgres"
            password = info.data.get("POSTGRES_PASSWORD") or ""
            port = info.data.get("POSTGRES_PORT")
            db = info.data.get("POSTGRES_DB")
            return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db}"
        return "sqlite+aiosqlite:///./syncsearch.db"

    @property
    def uses_sqlite(self) -> bool:
        """Whether the configured database is SQLite."""
        return str(self.DATABASE_URL).startswith("sqlite")


settings = Settings()
