# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for repo-edu.

This package provides centralized configuration management:
- Settings: Pydantic-based settings loaded from environment variables
- YAML loader: Utilities for loading YAML configuration files

Example:
    >>> from repo_edu.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from repo_edu.core.config.settings import (
    DocumentStoreSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from repo_edu.core.config.yaml_loader import (
    YAMLLoadError,
    deep_merge,
    load_section,
    load_yaml,
)

__all__ = [
    # Settings
    "DocumentStoreSettings",
    "Settings",
    "clear_settings_cache",
    "get_settings",
    # YAML
    "YAMLLoadError",
    "deep_merge",
    "load_section",
    "load_yaml",
]
