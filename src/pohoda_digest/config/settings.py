"""Configuration settings for Pohoda Digest."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DigestSettings(BaseSettings):
    """Flat settings read from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Pohoda mServer
    pohoda_url: str = Field(default="http://localhost:10010", validation_alias="POHODA_URL")
    pohoda_username: str = Field(..., validation_alias="POHODA_USERNAME")
    pohoda_password: SecretStr = Field(..., validation_alias="POHODA_PASSWORD")
    pohoda_ico: str = Field(default="", validation_alias="POHODA_ICO")
    pohoda_timeout: float = Field(default=30.0, validation_alias="POHODA_TIMEOUT")
    pohoda_application: str = Field(
        default="pohoda-digest", validation_alias="POHODA_APPLICATION"
    )

    # SMTP delivery
    smtp_host: str = Field(default="localhost", validation_alias="SMTP_HOST")
    smtp_port: int = Field(default=25, validation_alias="SMTP_PORT")
    smtp_username: str | None = Field(default=None, validation_alias="SMTP_USERNAME")
    smtp_password: SecretStr | None = Field(default=None, validation_alias="SMTP_PASSWORD")
    smtp_starttls: bool = Field(default=False, validation_alias="SMTP_STARTTLS")
    smtp_timeout: float = Field(default=20.0, validation_alias="SMTP_TIMEOUT")
    digest_from_email: str | None = Field(default=None, validation_alias="DIGEST_FROM_EMAIL")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )


@lru_cache
def get_settings() -> DigestSettings:
    """Get cached settings instance."""
    return DigestSettings()


def load_settings(env_file: str | Path | None = None) -> DigestSettings:
    """Build a fresh settings instance, reading the given .env file if any."""
    if env_file is None:
        return DigestSettings()
    return DigestSettings(_env_file=env_file)  # type: ignore[call-arg]
