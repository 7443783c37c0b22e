"""
Task specs - Immutable descriptors of registered pickers.

A TaskSpec says where a picker's results come from:

  process → an external command; each stdout line becomes an item
  closure → a callable returning an iterable of items or strings
  static  → a fixed list of items or strings

Specs are registered once at startup and never mutated.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from livepick.search.stream import ResultItem

DEFAULT_CANCEL_GRACE = 0.5  # seconds between terminate() and kill()


class ProducerKind(str, Enum):
    PROCESS = "process"
    CLOSURE = "closure"
    STATIC = "static"


EntryMaker = Callable[[str, Mapping[str, Any]], Optional[ResultItem]]


def default_entry_maker(line: str, options: Mapping[str, Any]) -> Optional[ResultItem]:
    """Turn a raw producer line into an item; blank lines are skipped."""
    if not line:
        return None
    return ResultItem(text=line, value=line)


def to_item(raw: Union[ResultItem, str, Any]) -> ResultItem:
    """Coerce whatever a closure or static source yields into a ResultItem."""
    if isinstance(raw, ResultItem):
        return raw
    if isinstance(raw, str):
        return ResultItem(text=raw, value=raw)
    return ResultItem(text=str(raw), value=raw)


@dataclass(frozen=True)
class TaskSpec:
    """
    Immutable picker descriptor.

    Attributes:
        name: Unique registry key
        kind: Producer kind (process, closure, static)
        source: For process, a callable(options, query) returning argv (or
            None to produce nothing); for closure, a callable(options, query)
            returning an iterable; for static, a sequence of items
        defaults: Default options for this picker
        cancel_grace: Seconds to wait after an interrupt before reclaiming
        entry_maker: Converts a raw stdout line into a ResultItem (process only)
        ok_exit_codes: Exit codes treated as success (process only)
        dynamic: Re-run the producer whenever the query text changes
        required_options: Options that must be set (checked at dispatch time)
        description: One-line help text, shown by the builtin picker
    """
    name: str
    kind: ProducerKind
    source: Union[Callable[..., Any], Sequence[Any]]
    defaults: Mapping[str, Any] = field(default_factory=dict)
    cancel_grace: float = DEFAULT_CANCEL_GRACE
    entry_maker: EntryMaker = default_entry_maker
    ok_exit_codes: tuple = (0,)
    dynamic: bool = False
    required_options: tuple = ()
    description: str = ""

    def __post_init__(self):
        if not self.name:
            raise ValueError("TaskSpec needs a non-empty name")
        object.__setattr__(self, "kind", ProducerKind(self.kind))
        object.__setattr__(self, "defaults", MappingProxyType(dict(self.defaults)))
        if self.kind == ProducerKind.STATIC:
            object.__setattr__(self, "source", tuple(self.source))
        elif not callable(self.source):
            raise TypeError(f"{self.kind.value} picker {self.name!r} needs a callable source")

    def renamed(self, name: str) -> "TaskSpec":
        """Same spec under another name (aliases such as fd → find_files)."""
        return TaskSpec(
            name=name,
            kind=self.kind,
            source=self.source,
            defaults=dict(self.defaults),
            cancel_grace=self.cancel_grace,
            entry_maker=self.entry_maker,
            ok_exit_codes=self.ok_exit_codes,
            dynamic=self.dynamic,
            required_options=self.required_options,
            description=self.description,
        )
