# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for repo-edu.
Settings are loaded from environment variables with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from repo_edu.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> settings.store.history_limit
    100
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DocumentStoreSettings(BaseSettings):
    """Profile document store configuration.

    Attributes:
        history_limit: Maximum number of undo entries kept per session.
        validation_debounce_ms: Quiet period before validation is dispatched.
    """

    model_config = SettingsConfigDict(
        env_prefix="REPO_EDU_STORE_",
        extra="ignore",
    )

    history_limit: int = Field(default=100, ge=1)
    validation_debounce_ms: int = Field(default=200, ge=0)

    @property
    def validation_debounce_seconds(self) -> float:
        """Debounce delay in seconds, as asyncio expects it."""
        return self.validation_debounce_ms / 1000


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        store: Document store settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="REPO_EDU_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Subsettings - loaded with their own env prefixes
    store: DocumentStoreSettings = Field(default_factory=DocumentStoreSettings)

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
