"""
Helper utilities shared by the config layer and the builtin pickers.

Provides:
- Non-destructive deep merge of option mappings
- First-available executable lookup for command fallbacks
- Relative path display for file results
"""

import os
import shutil
from pathlib import Path
from typing import Any, Dict, Iterable, Optional


def deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary with defaults
        override: Dictionary with overrides

    Returns:
        New merged dictionary (override takes precedence). Nested dicts are
        merged key by key; neither input is modified.
    """
    result = {
        key: deep_merge(value, {}) if isinstance(value, dict) else value
        for key, value in base.items()
    }

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        elif isinstance(value, dict):
            result[key] = deep_merge(value, {})
        else:
            result[key] = value

    return result


def merge_layers(*layers: Optional[Dict]) -> Dict:
    """Fold deep_merge left to right; later layers win. None layers are skipped."""
    result: Dict[str, Any] = {}
    for layer in layers:
        if layer:
            result = deep_merge(result, layer)
    return result


def first_executable(candidates: Iterable[str]) -> Optional[str]:
    """
    Find the first program on PATH.

    Example:
        first_executable(["rg", "fd", "fdfind", "find"])  # → "rg"
    """
    for name in candidates:
        if shutil.which(name):
            return name
    return None


def display_path(path: str, cwd: Optional[str]) -> str:
    """Path relative to cwd when it lies beneath it, otherwise as given."""
    if not cwd or not os.path.isabs(path):
        return path
    try:
        return Path(path).relative_to(cwd).as_posix()
    except ValueError:
        return path
