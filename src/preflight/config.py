"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Runner settings, populated from ``PREFLIGHT_*`` env vars or a .env file.

    None of these are forwarded to the invoked tools; their environment is
    passed through untouched.
    """

    # Pipeline definition
    pipeline_file: Path | None = Field(
        default=None,
        description="YAML pipeline file to load instead of the built-in stage catalogue",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level for the CLI")
    echo_commands: bool = Field(
        default=True,
        description="Log each stage's command line before it is started",
    )

    # Child process handling
    terminate_grace_seconds: float = Field(
        default=5.0,
        ge=0.0,
        description="Seconds to wait after SIGTERM before a child is killed",
    )

    model_config = {
        "env_prefix": "PREFLIGHT_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton — import `settings` wherever needed.
settings = Settings()
