"""Configuration management for the Library API.

Settings are read from the environment (and an optional ``.env`` file) using
pydantic-settings. Variable names are unprefixed so that an existing
deployment's ``DB_HOST`` / ``DB_USER`` / ``DB_PASSWORD`` / ``DB_NAME`` /
``PORT`` keep working unchanged.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class AppConfig(BaseSettings):
    """Runtime configuration for the API process."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Service Metadata ===

    app_name: str = Field(
        default="library-api",
        description="Service name reported by the root endpoint",
    )

    app_version: str = Field(
        default="1.0.0",
        description="Service version reported by the root endpoint",
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$",
    )

    # === Database Configuration ===

    db_host: str = Field(default="localhost", description="Database server host")

    db_port: int = Field(default=5432, description="Database server port", ge=1, le=65535)

    db_user: str = Field(default="postgres", description="Database user")

    db_password: str = Field(
        default="",
        description="Database password",
        repr=False,
    )

    db_name: str = Field(default="library_db", description="Database name")

    db_driver: str = Field(
        default="postgresql+psycopg",
        description="SQLAlchemy dialect and driver used to build the URL",
    )

    database_url: str | None = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides the DB_* settings when set",
        repr=False,
    )

    create_schema: bool = Field(
        default=True,
        description="Create missing tables when the application starts",
    )

    # === HTTP Configuration ===

    host: str = Field(default="0.0.0.0", description="Interface the server binds to")

    port: int = Field(default=3000, description="Listening port", ge=1, le=65535)

    cors_origins: list[str] = Field(
        default=["*"],
        description="Origins allowed by the CORS middleware",
    )

    # === Lending Rules ===

    fine_per_day: float = Field(
        default=1.0,
        description="Fine charged per day a loan is returned late",
        ge=0.0,
    )

    max_active_loans: int = Field(
        default=5,
        description="Maximum number of simultaneous active loans per user",
        ge=1,
    )

    # === Development Configuration ===

    debug: bool = Field(default=False, description="Enable debug logging")

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept lowercase level names from the environment."""
        return v.upper() if isinstance(v, str) else v

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level

    def get_database_url(self) -> str:
        """Get the SQLAlchemy database URL.

        ``DATABASE_URL`` wins when present; otherwise the URL is assembled from
        the individual ``DB_*`` settings.
        """
        if self.database_url:
            return self.database_url

        url = URL.create(
            self.db_driver,
            username=self.db_user,
            password=self.db_password or None,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        )
        # Credentials are escaped by URL.create
        return url.render_as_string(hide_password=False)


class _ConfigStore:
    """Internal storage for configuration singleton."""

    _instance: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create the process-wide configuration instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = AppConfig()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]
