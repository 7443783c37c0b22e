"""
Configuration - Picker defaults, theme presets and per-picker settings.

A Config is created once at startup (usually from a TOML file) and passed
explicitly to the Registry and Dispatcher. Option resolution for a picker
call, in increasing precedence:

  global defaults → spec defaults → theme preset → [pickers.<name>] → call site

Example config.toml:
    [defaults]
    mode = "fuzzy"

    [cache_picker]
    num_pickers = 5

    [pickers.find_files]
    theme = "dropdown"
    hidden = true

    [pickers.find_files.mappings.i]
    "<C-x>" = "cancel"

    [themes.compact]
    layout_strategy = "vertical"
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional

import toml
from loguru import logger

from livepick.errors import OptionError
from livepick.utils.helpers import deep_merge

VALID_MODES = ("fuzzy", "regex", "exact", "typo")

DEFAULT_SETTINGS = {
    "defaults": {
        "mode": "fuzzy",
        "fuzzy_threshold": 50,
        "cache_picker": True,
        "sorting_strategy": "descending",
        "layout_strategy": "horizontal",
        "layout_config": {
            "width": 0.8,
            "height": 0.9,
            "prompt_position": "bottom",
        },
    },
    "cache_picker": {
        "num_pickers": 10,
    },
    "pickers": {},
    "themes": {},
}

# Top-level sections that must be TOML tables
TABLE_SECTIONS = ("defaults", "cache_picker", "pickers", "themes")

BUILTIN_THEMES = {
    "dropdown": {
        "theme": "dropdown",
        "results_title": False,
        "sorting_strategy": "ascending",
        "layout_strategy": "center",
        "layout_config": {
            "width": 80,
            "height": 25,
            "preview_cutoff": 1,
        },
        "border": True,
    },
    "cursor": {
        "theme": "cursor",
        "sorting_strategy": "ascending",
        "results_title": False,
        "layout_strategy": "cursor",
        "layout_config": {
            "width": 80,
            "height": 9,
        },
        "border": True,
    },
    "ivy": {
        "theme": "ivy",
        "sorting_strategy": "ascending",
        "layout_strategy": "bottom_pane",
        "layout_config": {
            "height": 25,
        },
        "border": True,
    },
}


def default_config_path() -> Path:
    """Config file location; LIVEPICK_CONFIG overrides ~/.config/livepick/config.toml."""
    override = os.environ.get("LIVEPICK_CONFIG")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "livepick" / "config.toml"


@dataclass(frozen=True)
class PickerOptions:
    """
    Resolved options for one picker call.

    The universal options are typed fields; picker-specific options
    (hidden, search_dirs, use_regex, ...) live in ``extra``.
    """
    cwd: Optional[str] = None
    default_text: str = ""
    attach_mappings: Optional[Callable] = None
    cache_picker: bool = True
    max_results: Optional[int] = None
    mode: str = "fuzzy"
    fuzzy_threshold: int = 50
    timeout: Optional[float] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        if key in self.__dataclass_fields__ and key != "extra":
            return getattr(self, key)
        return self.extra.get(key, default)

    @classmethod
    def from_mapping(cls, picker: str, merged: Mapping[str, Any]) -> "PickerOptions":
        """
        Validate a merged option mapping.

        Raises:
            OptionError: an option has the wrong type or an invalid value
        """
        opts = dict(merged)
        extra = {
            key: value for key, value in opts.items()
            if key not in cls.__dataclass_fields__ or key == "extra"
        }

        cwd = opts.get("cwd")
        if cwd is not None:
            if not isinstance(cwd, (str, os.PathLike)):
                raise OptionError(picker, "cwd", f"must be a path, got {type(cwd).__name__}")
            cwd = str(Path(cwd).expanduser())
            if not os.path.isdir(cwd):
                raise OptionError(picker, "cwd", f"is not a directory: {cwd}")

        default_text = opts.get("default_text", "")
        if default_text is None:
            default_text = ""
        if not isinstance(default_text, str):
            raise OptionError(picker, "default_text", "must be a string")

        attach_mappings = opts.get("attach_mappings")
        if attach_mappings is not None and not callable(attach_mappings):
            raise OptionError(picker, "attach_mappings", "must be callable")

        cache_picker = opts.get("cache_picker", True)
        if not isinstance(cache_picker, bool):
            raise OptionError(picker, "cache_picker", "must be true or false")

        max_results = opts.get("max_results")
        if max_results is not None:
            if isinstance(max_results, bool) or not isinstance(max_results, int) or max_results < 1:
                raise OptionError(picker, "max_results", "must be a positive integer")

        mode = opts.get("mode", "fuzzy")
        mode = getattr(mode, "value", mode)
        if mode not in VALID_MODES:
            raise OptionError(picker, "mode", f"must be one of {', '.join(VALID_MODES)}")

        threshold = opts.get("fuzzy_threshold", 50)
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) \
                or not 0 <= threshold <= 100:
            raise OptionError(picker, "fuzzy_threshold", "must be a number from 0 to 100")

        timeout = opts.get("timeout")
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
                raise OptionError(picker, "timeout", "must be a positive number of seconds")

        return cls(
            cwd=cwd,
            default_text=default_text,
            attach_mappings=attach_mappings,
            cache_picker=cache_picker,
            max_results=max_results,
            mode=mode,
            fuzzy_threshold=int(threshold),
            timeout=timeout,
            extra=MappingProxyType(extra),
        )


@dataclass
class Config:
    """Explicit configuration context handed to the Registry and Dispatcher."""
    defaults: Dict[str, Any] = field(default_factory=lambda: deep_merge(DEFAULT_SETTINGS["defaults"], {}))
    pickers: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    themes: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    num_pickers: int = DEFAULT_SETTINGS["cache_picker"]["num_pickers"]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """
        Build a Config from a settings mapping merged over DEFAULT_SETTINGS.

        Top-level sections that are not tables are logged and replaced by
        their defaults, so ``cache_picker = false`` at top level cannot
        take the whole file down.
        """
        data = dict(data or {})
        for section in TABLE_SECTIONS:
            if section in data and not isinstance(data[section], dict):
                logger.warning(
                    f"Ignoring config section '{section}': expected a table, "
                    f"got {type(data[section]).__name__}"
                )
                del data[section]
        settings = deep_merge(DEFAULT_SETTINGS, data)

        num_pickers = settings["cache_picker"].get("num_pickers", 10)
        if isinstance(num_pickers, bool) or not isinstance(num_pickers, int) or num_pickers < 0:
            logger.warning(f"Ignoring invalid cache_picker.num_pickers: {num_pickers!r}")
            num_pickers = DEFAULT_SETTINGS["cache_picker"]["num_pickers"]

        pickers = {}
        for name, conf in settings["pickers"].items():
            if not isinstance(conf, dict):
                logger.warning(f"Skipping malformed picker config '{name}': expected a table")
                continue
            pickers[name] = conf

        themes = {}
        for name, preset in settings["themes"].items():
            if not isinstance(preset, dict):
                logger.warning(f"Skipping malformed theme '{name}': expected a table")
                continue
            themes[name] = preset

        return cls(
            defaults=settings["defaults"],
            pickers=pickers,
            themes=themes,
            num_pickers=num_pickers,
        )

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        """
        Load configuration from a TOML file.

        A missing or unreadable file falls back to the built-in defaults.
        """
        settings_path = Path(path) if path is not None else default_config_path()

        if not settings_path.exists():
            logger.debug(f"Config file not found at {settings_path}, using defaults")
            return cls.from_dict({})

        try:
            loaded = toml.load(settings_path)
        except (toml.TomlDecodeError, OSError):
            logger.exception(f"Could not load config from {settings_path}, using defaults")
            return cls.from_dict({})

        logger.debug(f"Loaded config from {settings_path}")
        return cls.from_dict(loaded)

    def theme(self, name: str) -> Dict[str, Any]:
        """Theme preset by name; user themes shadow the built-in ones."""
        if name in self.themes:
            return deep_merge(self.themes[name], {})
        if name in BUILTIN_THEMES:
            return deep_merge(BUILTIN_THEMES[name], {})
        raise KeyError(name)

    def picker_config(self, name: str) -> Dict[str, Any]:
        return deep_merge(self.pickers.get(name, {}), {})
