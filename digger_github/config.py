"""
Configuration Management Module

Settings for the GitHub App integration, loaded from environment variables
with Pydantic Settings.

Design Decisions:
- The App private key is read from the process environment only
- Support both file path and direct content for the private key
- Settings are cached once per process; tests clear the cache explicitly
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Integration settings loaded from environment variables.

    Sensitive values (the App private key) are never logged.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # =========================================================================
    # GitHub App Configuration
    # =========================================================================
    github_app_private_key: Optional[str] = Field(
        default=None,
        description="GitHub App private key content (PEM)"
    )

    github_app_private_key_path: Optional[str] = Field(
        default=None,
        description="Path to GitHub App private key .pem file"
    )

    github_api_url: str = Field(
        default="https://api.github.com",
        description="Base URL of the GitHub REST API"
    )

    github_request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for GitHub API requests"
    )

    jwt_expiration_seconds: int = Field(
        default=540,
        ge=60,
        le=600,
        description="Lifetime of the App JWT (GitHub allows at most 10 minutes)"
    )

    # =========================================================================
    # Git Configuration
    # =========================================================================
    git_username: str = Field(
        default="x-access-token",
        min_length=1,
        description="Basic auth username paired with the installation token"
    )

    workspace_dir: Optional[str] = Field(
        default=None,
        description="Parent directory for clone workspaces (system temp if unset)"
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    log_json_format: bool = Field(
        default=True,
        description="Enable JSON logging format"
    )

    # =========================================================================
    # Validators
    # =========================================================================
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("github_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def get_private_key(self) -> str:
        """
        Get the GitHub App private key content.

        Supports two modes:
        1. Direct content via GITHUB_APP_PRIVATE_KEY env var
        2. File path via GITHUB_APP_PRIVATE_KEY_PATH env var

        Returns:
            Private key content as string

        Raises:
            ValueError: If neither option is configured or file doesn't exist
        """
        # Direct content takes precedence
        if self.github_app_private_key:
            # Handle newline escaping in env vars
            return self.github_app_private_key.replace("\\n", "\n")

        if self.github_app_private_key_path:
            key_path = Path(self.github_app_private_key_path)
            if not key_path.exists():
                raise ValueError(f"Private key file not found: {key_path}")
            return key_path.read_text()

        raise ValueError(
            "GitHub App private key not configured. "
            "Set either GITHUB_APP_PRIVATE_KEY or GITHUB_APP_PRIVATE_KEY_PATH"
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings.

    Returns:
        Settings instance
    """
    return Settings()
