"""
Application configuration using Pydantic Settings.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthSettings(BaseSettings):
    """Authorization configuration."""

    model_config = SettingsConfigDict(env_prefix="AUTH_")

    principal_header: str = Field(
        default="user",
        description="Request header carrying the JSON principal from upstream auth",
    )
    admin_role: str = Field(
        default="Admin",
        description="Role granted unrestricted access",
    )
    policy_file: Path | None = Field(
        default=None,
        description="YAML or JSON policy file (built-in policies when unset)",
    )
    warn_unresolved_placeholders: bool = Field(
        default=True,
        description="Warn at load when a condition references an unknown principal field",
    )

    @field_validator("principal_header")
    @classmethod
    def validate_principal_header(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("principal_header must not be empty")
        return v.lower()


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="policyguard")
    environment: str = Field(default="development")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="json or text")

    # Nested settings
    auth: AuthSettings = Field(default_factory=AuthSettings)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = {"development", "staging", "production", "testing"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in {"json", "text"}:
            raise ValueError("log_format must be 'json' or 'text'")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
