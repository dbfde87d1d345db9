"""
Centralized configuration for capibara.

Uses Pydantic BaseSettings for environment variable integration
and validation.

Configuration sources (in order of precedence):
1. Explicit constructor arguments
2. Environment variables (CAPIBARA_*)
3. .env file
4. Default values

Example:
    from capibara.config import get_config

    config = get_config()
    print(config.registry_path)  # From CAPIBARA_REGISTRY_PATH or default

    # Override at runtime
    config = get_config(environment="production")
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from capibara.types import Environment


class CapibaraConfig(BaseSettings):
    """
    Central configuration for capibara.

    All settings can be overridden via environment variables
    prefixed with CAPIBARA_.

    Example:
        export CAPIBARA_REGISTRY_PATH=./capabilities.yaml
        export CAPIBARA_ENVIRONMENT=production
    """

    model_config = SettingsConfigDict(
        env_prefix="CAPIBARA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    service_name: str = Field(
        default="capibara",
        description="Service name for telemetry attribution",
    )

    # Registry
    registry_path: str = Field(
        default="capabilities.yaml",
        description="YAML registry document loaded at process startup",
    )

    # Deployment tier
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment tier (development, staging, production)",
    )
    expose_introspection: Optional[bool] = Field(
        default=None,
        description=(
            "Explicitly allow or withhold the graph export; "
            "unset means allowed everywhere except production"
        ),
    )

    # Logging
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="info",
        description="Logging level for capibara",
    )

    @field_validator("registry_path")
    @classmethod
    def expand_path(cls, v: str) -> str:
        """Expand ~ and environment variables in paths."""
        return os.path.expanduser(os.path.expandvars(v))

    @property
    def introspection_enabled(self) -> bool:
        """Whether the introspection export may be served."""
        if self.expose_introspection is not None:
            return self.expose_introspection
        return self.environment != Environment.PRODUCTION

    def get_registry_path(self) -> Path:
        """Get the registry document path."""
        return Path(self.registry_path)


# Global singleton
_config: Optional[CapibaraConfig] = None


def get_config(**overrides) -> CapibaraConfig:
    """
    Get the global configuration instance.

    Creates a singleton on first call. Subsequent calls return
    the same instance unless overrides are provided.

    Args:
        **overrides: Override any config values

    Returns:
        CapibaraConfig instance
    """
    global _config

    if overrides or _config is None:
        _config = CapibaraConfig(**overrides)

    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None


def get_log_level() -> str:
    """Get the configured log level."""
    return get_config().log_level
