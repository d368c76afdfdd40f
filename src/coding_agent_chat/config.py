"""Configuration with pydantic-settings.

Values come from the process environment or a local `.env` file.

Requires: ANTHROPIC_API_KEY (chat only; the server starts without it)
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Agent capability ===
    anthropic_api_key: str | None = Field(
        default=None,
        description="Anthropic API key for the coding agent",
    )
    anthropic_base_url: str = "https://api.anthropic.com"
    agent_model: str = "claude-sonnet-4-20250514"
    agent_max_tokens: int = Field(default=8192, ge=1)
    agent_max_retries: int = Field(default=2, ge=0)
    agent_timeout_sec: float = Field(
        default=180.0,
        gt=0,
        description="Hard limit for one agent call, including the full stream",
    )

    # === Storage ===
    projects_root: Path = Path("./projects")
    static_dir: Path = Path("./static")
    remove_project_dirs_on_delete: bool = False

    # === Process lifecycle ===
    base_port: int = Field(default=3001, ge=1, le=65535)
    startup_grace_sec: float = Field(default=2.0, ge=0)
    stop_timeout_sec: float = Field(default=5.0, gt=0)
    restart_delay_sec: float = Field(default=1.0, ge=0)
    install_timeout_sec: float = Field(default=300.0, gt=0)
    kill_process_group: bool = Field(
        default=True,
        description="Signal the whole process group on stop (POSIX only)",
    )

    # Executables used by runners
    node_command: str = "node"
    npm_command: str = "npm"
    deno_command: str = "deno"
    python_command: str = "python"
    pip_command: str = "pip"

    # === HTTP ===
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = ["*"]

    # === Logging ===
    service_name: str = Field(
        default="coding-agent-chat",
        description="Service name for structured logging",
    )
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
