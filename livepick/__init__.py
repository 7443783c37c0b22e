# livepick package
"""
Live search task registry.

Named pickers (file search, grep, git history, ...) run as cancelable
background tasks that stream results into a ranked, queryable view:

  - Registry: picker table and resume cache
  - Dispatcher: option merging (defaults, themes, user config, call site)
  - Tasks: producer runs feeding a ResultStream
  - Search: result streams and the fuzzy/regex/exact/typo matcher
"""

__version__ = "0.1.0"

from typing import Optional

from .config import Config, PickerOptions
from .dispatcher import Dispatcher, PickerTable
from .errors import (
    CacheMiss,
    DuplicateName,
    LivePickError,
    OptionError,
    PickerTimeout,
    ProducerFailure,
    UnknownPicker,
)
from .pickers import register_builtins
from .registry import Registry
from .search import MatchMode, Query, ResultItem, ResultStream
from .tasks import ProducerKind, TaskInstance, TaskSpec, TaskStatus


def create_dispatcher(config: Optional[Config] = None, builtins: bool = True) -> Dispatcher:
    """
    Build a Registry and Dispatcher around one Config.

    Example:
        dispatcher = create_dispatcher(Config.load())
        instance = dispatcher.dispatch("find_files", cwd="~/src")
    """
    config = config or Config()
    registry = Registry(config)
    if builtins:
        register_builtins(registry)
    return Dispatcher(registry, config)


__all__ = [
    "CacheMiss",
    "Config",
    "Dispatcher",
    "DuplicateName",
    "LivePickError",
    "MatchMode",
    "OptionError",
    "PickerOptions",
    "PickerTable",
    "PickerTimeout",
    "ProducerFailure",
    "ProducerKind",
    "Query",
    "Registry",
    "ResultItem",
    "ResultStream",
    "TaskInstance",
    "TaskSpec",
    "TaskStatus",
    "UnknownPicker",
    "create_dispatcher",
    "register_builtins",
]
