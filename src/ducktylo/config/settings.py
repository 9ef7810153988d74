"""Ducktylo configuration settings."""

from __future__ import annotations

import json
import os
import tomllib
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ducktylo.exceptions import ConfigurationError, check_config_keys

DEFAULT_LLM_MODEL = "gpt-4o-mini"


class DucktyloSettings(BaseSettings):
    """Ducktylo configuration settings.

    Settings are loaded with the following precedence (highest to lowest):
    1. CLI arguments (when provided via command flags)
    2. Config file values (YAML, TOML, or JSON)
    3. Environment variables (prefixed with DUCKTYLO_)
    4. .env file (in current directory or specified path)
    5. Default values (defined in field declarations below)

    A few variables keep the names the web front-end already uses
    (NEXT_PUBLIC_SUPABASE_URL, OPENAI_API_KEY, ...) as accepted aliases.
    """

    model_config = SettingsConfigDict(
        env_prefix="DUCKTYLO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Backend collaborator settings
    backend: str = Field(
        default="supabase",
        description="Auth/database/storage backend (supabase, sqlite)",
        pattern="^(?i)(supabase|sqlite)$",
    )
    supabase_url: str | None = Field(
        default=None,
        description="Base URL of the hosted Supabase project",
        validation_alias=AliasChoices(
            "supabase_url", "DUCKTYLO_SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"
        ),
    )
    supabase_anon_key: str | None = Field(
        default=None,
        description="Public (anon) API key of the Supabase project",
        validation_alias=AliasChoices(
            "supabase_anon_key",
            "DUCKTYLO_SUPABASE_ANON_KEY",
            "NEXT_PUBLIC_SUPABASE_ANON_KEY",
        ),
    )
    storage_bucket: str = Field(
        default="script_files",
        description="Object storage bucket holding uploaded script files",
        min_length=1,
    )
    backend_timeout: float = Field(
        default=30.0,
        description="HTTP timeout in seconds for backend calls",
        ge=0.1,
    )

    # Local backend settings
    database_path: Path = Field(
        default_factory=lambda: Path.cwd() / "ducktylo.db",
        description="Path to the SQLite database file (sqlite backend)",
    )
    storage_path: Path = Field(
        default_factory=lambda: Path.cwd() / "storage",
        description="Root directory for stored objects (sqlite backend)",
    )

    # LLM settings
    llm_api_key: str | None = Field(
        default=None,
        description="API key for the chat-completion provider",
        validation_alias=AliasChoices(
            "llm_api_key", "DUCKTYLO_LLM_API_KEY", "OPENAI_API_KEY"
        ),
    )
    llm_endpoint: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI-compatible API base URL",
    )
    llm_model: str = Field(
        default=DEFAULT_LLM_MODEL,
        description=(
            "Model used for auto-ingest. "
            "'default', 'auto', 'none' or an empty string select the default."
        ),
        validation_alias=AliasChoices(
            "llm_model", "DUCKTYLO_LLM_MODEL", "OPENAI_AUTO_INGEST_MODEL"
        ),
    )
    llm_timeout: float = Field(
        default=120.0,
        description="HTTP timeout in seconds for completion requests",
        ge=1.0,
    )
    llm_temperature: float = Field(
        default=0.2,
        description="Sampling temperature for completions",
        ge=0.0,
        le=2.0,
    )
    ingest_max_chars: int = Field(
        default=40_000,
        description="Maximum script characters sent to the model",
        ge=1000,
    )

    # API settings
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Origins allowed by the CORS middleware",
    )

    # Debug settings
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # Logging settings
    log_level: str = Field(
        default="WARNING",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        pattern="^(?i)(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    log_format: str = Field(
        default="console",
        description="Log output format (console, json, structured)",
        pattern="^(?i)(console|json|structured)$",
    )
    log_file: Path | None = Field(
        default=None,
        description="Optional log file path",
    )

    @field_validator("database_path", "storage_path", "log_file", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path | None:
        """Expand environment variables and ~ in path fields."""
        if v is None:
            return None
        if isinstance(v, str):
            return Path(os.path.expandvars(v)).expanduser().resolve()
        if isinstance(v, Path):
            return v.resolve()
        raise ValueError(
            f"Path fields must be str or Path, got {type(v).__name__}: {v!r}"
        )

    @field_validator("backend", mode="before")
    @classmethod
    def normalize_backend(cls, v: Any) -> str:
        """Normalize backend name to lowercase."""
        if isinstance(v, str):
            return v.strip().lower()
        raise ValueError(f"backend must be a string, got {type(v).__name__}")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        """Normalize log level to uppercase for case-insensitive handling."""
        if isinstance(v, str):
            return v.upper()
        raise ValueError(f"log_level must be a string, got {type(v).__name__}")

    @field_validator("log_format", mode="before")
    @classmethod
    def normalize_log_format(cls, v: Any) -> str:
        """Normalize log format to lowercase for case-insensitive handling."""
        if isinstance(v, str):
            return v.lower()
        raise ValueError(f"log_format must be a string, got {type(v).__name__}")

    @field_validator("llm_model", mode="before")
    @classmethod
    def normalize_llm_model(cls, v: Any) -> Any:
        """Map sentinel model names to the default model.

        The model name is not checked against the provider's model list.
        """
        if v is None:
            return DEFAULT_LLM_MODEL
        if isinstance(v, str):
            normalized = v.strip()
            if normalized.lower() in {"", "default", "auto", "none"}:
                return DEFAULT_LLM_MODEL
            return normalized
        return v

    @field_validator("llm_api_key", "supabase_url", "supabase_anon_key", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        """Treat blank credentials as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("supabase_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        """Drop a trailing slash so paths can be appended."""
        return v.rstrip("/") if v else v

    def require_backend_credentials(self) -> None:
        """Fail when the hosted backend is selected but not configured.

        Raises:
            ConfigurationError: If the Supabase URL or key is missing
        """
        if self.backend != "supabase":
            return
        missing = [
            name
            for name, value in (
                ("supabase_url", self.supabase_url),
                ("supabase_anon_key", self.supabase_anon_key),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                message="Supabase configuration is incomplete",
                hint=(
                    "Set DUCKTYLO_SUPABASE_URL and DUCKTYLO_SUPABASE_ANON_KEY, "
                    "or use DUCKTYLO_BACKEND=sqlite for local development"
                ),
                details={"missing": missing},
            )

    def masked_dump(self) -> dict[str, Any]:
        """Dump settings with secrets masked, for display."""
        data = self.model_dump(mode="json")
        for key in ("llm_api_key", "supabase_anon_key"):
            if data.get(key):
                data[key] = "****"
        return data

    @classmethod
    def from_env(cls) -> DucktyloSettings:
        """Create settings from environment variables."""
        return cls()

    @classmethod
    def from_file(cls, config_path: Path | str) -> DucktyloSettings:
        """Load settings from a configuration file.

        Args:
            config_path: Path to configuration file (YAML, TOML, or JSON).

        Returns:
            Settings loaded from the file.

        Raises:
            ConfigurationError: If file format is not supported.
            FileNotFoundError: If config file doesn't exist.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        suffix = config_path.suffix.lower()

        if suffix in {".yml", ".yaml"}:
            with config_path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        elif suffix == ".toml":
            with config_path.open("rb") as f:
                data = tomllib.load(f)
        elif suffix == ".json":
            with config_path.open(encoding="utf-8") as f:
                data = json.load(f)
        else:
            raise ConfigurationError(
                message=f"Unsupported configuration file format: {suffix}",
                hint="Use one of the supported formats: .yml, .yaml, .toml, or .json",
                details={
                    "file": str(config_path),
                    "detected_format": suffix,
                    "supported_formats": [".yml", ".yaml", ".toml", ".json"],
                },
            )

        check_config_keys(data)

        return cls(**data)

    @classmethod
    def from_multiple_sources(
        cls,
        config_files: list[Path | str] | None = None,
        env_file: Path | str | None = None,
        cli_args: dict[str, Any] | None = None,
    ) -> DucktyloSettings:
        """Load settings with proper precedence from multiple sources.

        Args:
            config_files: List of config files to load (later files override earlier).
            env_file: Path to .env file (default: .env in current directory).
            cli_args: Dictionary of CLI arguments.

        Returns:
            Merged settings from all sources.
        """
        data: dict[str, Any] = {}

        for config_file in config_files or []:
            try:
                file_settings = cls.from_file(config_file)
            except FileNotFoundError:
                from ducktylo.config.logging import get_logger as _get_logger

                _get_logger("ducktylo.config.settings").warning(
                    "Configuration file not found, using defaults",
                    config_file=str(config_file),
                )
                continue
            data.update(file_settings.model_dump(exclude_unset=True))

        if env_file:
            settings = cls(_env_file=env_file, **data)  # type: ignore[call-arg]
        else:
            settings = cls(**data)

        if cli_args:
            cli_data = {k: v for k, v in cli_args.items() if v is not None}
            if cli_data:
                updated_data = settings.model_dump()
                updated_data.update(cli_data)
                settings = cls(**updated_data)

        return settings


# Global settings instance
_settings: DucktyloSettings | None = None


def _get_config_paths() -> list[Path | str]:
    """Get existing config files in priority order (later files win)."""
    potential_paths = [
        Path("/etc/ducktylo/config.yaml"),
        Path.home() / ".config" / "ducktylo" / "config.yaml",
        Path.home() / ".config" / "ducktylo" / "config.toml",
        Path.cwd() / "ducktylo.yaml",
        Path.cwd() / "ducktylo.toml",
        Path.cwd() / "ducktylo.json",
    ]

    existing_paths: list[Path | str] = []
    for path in potential_paths:
        try:
            if path.is_file():
                existing_paths.append(path)
        except OSError:
            continue
    return existing_paths


def get_settings() -> DucktyloSettings:
    """Get the global settings instance.

    Returns:
        Global DucktyloSettings instance.
    """
    global _settings
    if _settings is None:
        config_paths = _get_config_paths()
        if config_paths:
            _settings = DucktyloSettings.from_multiple_sources(
                config_files=config_paths
            )
        else:
            _settings = DucktyloSettings.from_env()
    return _settings


def set_settings(settings: DucktyloSettings) -> None:
    """Set the global settings instance.

    Args:
        settings: Settings instance to use globally.
    """
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Reset the global settings instance.

    Forces recreation of settings on next call to get_settings(),
    useful for tests that modify environment variables.
    """
    global _settings
    _settings = None


def get_settings_for_cli(
    config_file: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> DucktyloSettings:
    """Get settings for CLI commands with consistent precedence.

    Args:
        config_file: Optional specific config file to load.
        cli_overrides: Dictionary of CLI argument overrides. Only non-None
            values are applied.

    Returns:
        DucktyloSettings instance with all sources merged.
    """
    if config_file is None and not cli_overrides:
        return get_settings()
    config_files: list[Path | str] = (
        [config_file] if config_file else _get_config_paths()
    )
    return DucktyloSettings.from_multiple_sources(
        config_files=config_files, cli_args=cli_overrides
    )
