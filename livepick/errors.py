"""
Errors - Exception hierarchy for the picker registry.

Every error carries the picker name so messages shown to the user always
say which picker went wrong. Producer failures are never raised across the
producer thread; they are stored on the instance and raised only from
wait() / raise_for_status().
"""

from typing import Optional


class LivePickError(Exception):
    """Base class for all livepick errors."""

    def __init__(self, message: str, picker: Optional[str] = None):
        super().__init__(message)
        self.picker = picker


class UnknownPicker(LivePickError, LookupError):
    """No picker is registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"Unknown picker: {name!r}", picker=name)


class DuplicateName(LivePickError):
    """A picker with the same name is already registered."""

    def __init__(self, name: str):
        super().__init__(f"Picker already registered: {name!r}", picker=name)


class PickerTimeout(LivePickError, TimeoutError):
    """A synchronous wait ran past its timeout."""

    def __init__(self, name: str, timeout: float):
        super().__init__(
            f"Picker {name!r} did not finish within {timeout:g}s", picker=name
        )
        self.timeout = timeout


class ProducerFailure(LivePickError):
    """The producer behind a picker failed (exit code, exception, spawn error)."""

    def __init__(self, name: str, reason: str):
        super().__init__(f"Picker {name!r} failed: {reason}", picker=name)
        self.reason = reason


class CacheMiss(LivePickError, IndexError):
    """Resume index is outside the resume cache."""

    def __init__(self, index: int, size: int):
        super().__init__(
            f"No cached picker at index {index} (cache holds {size})"
        )
        self.index = index
        self.size = size


class OptionError(LivePickError, TypeError):
    """An option has the wrong type or value. Raised before any task starts."""

    def __init__(self, name: str, option: str, problem: str):
        super().__init__(f"Picker {name!r}: option {option!r} {problem}", picker=name)
        self.option = option
