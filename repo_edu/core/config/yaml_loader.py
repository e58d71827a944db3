# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""YAML helpers for the app-level settings file.

Git connections and their identity modes live in a YAML file next to the
profiles. A fresh installation has no such file yet, so callers can opt
into treating it as empty. deep_merge applies partial operation and
export updates on top of the current values.

Example:
    >>> from pathlib import Path
    >>> from repo_edu.core.config.yaml_loader import load_section
    >>> connections = load_section(Path("app-settings.yaml"), "git_connections")
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml


class YAMLLoadError(Exception):
    """Raised when a settings file cannot be read or has the wrong shape."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load YAML file '{path}': {reason}")


def load_yaml(path: Path, *, missing_ok: bool = False) -> dict[str, Any]:
    """Parse a YAML file whose root is a mapping.

    Args:
        path: File to read.
        missing_ok: Return an empty mapping instead of raising when the
            file does not exist.

    Returns:
        The parsed mapping; empty for an empty file.

    Raises:
        YAMLLoadError: If the file is missing (and ``missing_ok`` is false),
            unreadable, malformed, or its root is not a mapping.
    """
    if not path.exists():
        if missing_ok:
            return {}
        raise YAMLLoadError(path, "File does not exist")
    if not path.is_file():
        raise YAMLLoadError(path, "Path is not a file")

    try:
        with path.open(encoding="utf-8") as handle:
            parsed = yaml.safe_load(handle)
    except OSError as e:
        raise YAMLLoadError(path, f"Cannot read file: {e}") from e
    except yaml.YAMLError as e:
        raise YAMLLoadError(path, f"Invalid YAML syntax: {e}") from e

    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise YAMLLoadError(path, f"YAML root must be a mapping, got {type(parsed).__name__}")
    return parsed


def load_section(path: Path, key: str, *, missing_ok: bool = False) -> dict[str, Any]:
    """Return one top-level mapping of a settings file.

    An absent or null section is empty.

    Raises:
        YAMLLoadError: If the file cannot be loaded or the section is not
            a mapping.
    """
    section = load_yaml(path, missing_ok=missing_ok).get(key)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise YAMLLoadError(path, f"'{key}' must be a mapping")
    return section


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``.

    Mappings present on both sides merge key by key. Any other override
    value, lists included, replaces the base value whole.

    Example:
        >>> base = {"target_org": "", "clone": {"target_dir": "", "directory_layout": "flat"}}
        >>> deep_merge(base, {"clone": {"target_dir": "/tmp"}})
        {'target_org': '', 'clone': {'target_dir': '/tmp', 'directory_layout': 'flat'}}
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged
