"""Configuration settings for turso-pds."""

from dataclasses import dataclass

from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection configuration for a remote libSQL database.

    Passed explicitly to every component factory; nothing in the library
    reads global settings.
    """

    url: str
    auth_token: str | None = None
    # Per-call deadline in seconds; None leaves it to the transport
    timeout: float | None = None


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PDS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = "file:pds.db"
    database_auth_token: str | None = None
    database_timeout: float | None = None
    database_echo: bool = False  # Log every SQL statement at DEBUG

    log_level: str = "INFO"

    @property
    def database(self) -> DatabaseConfig:
        return DatabaseConfig(
            url=self.database_url,
            auth_token=self.database_auth_token,
            timeout=self.database_timeout,
        )


settings = Settings()
