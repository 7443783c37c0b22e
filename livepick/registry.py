"""
Registry - Named picker specs and the resume cache.

Specs are registered once at startup into a flat name → spec table.
Every invoke() starts a fresh TaskInstance; instances that opt in are kept
in a bounded, most-recent-first resume cache so their results, query and
selection can be restored later.

The cache is only touched from the consumer thread.
"""

from collections import deque
from typing import Optional

from loguru import logger

from livepick.config import Config, PickerOptions
from livepick.errors import CacheMiss, DuplicateName, UnknownPicker
from livepick.tasks.spec import TaskSpec
from livepick.tasks.task import TaskInstance, start_task


class Registry:
    """Picker table plus resume cache."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self._specs: dict[str, TaskSpec] = {}
        self._cache: deque[TaskInstance] = deque()

    def __contains__(self, name: str) -> bool:
        return name in self._specs

    def register(self, spec: TaskSpec) -> TaskSpec:
        """
        Add a spec to the table.

        Raises:
            DuplicateName: a spec with this name already exists
        """
        if spec.name in self._specs:
            raise DuplicateName(spec.name)
        self._specs[spec.name] = spec
        logger.debug(f"Registered picker '{spec.name}' ({spec.kind.value})")
        return spec

    def get(self, name: str) -> TaskSpec:
        try:
            return self._specs[name]
        except KeyError:
            raise UnknownPicker(name) from None

    def names(self) -> list[str]:
        return sorted(self._specs)

    def specs(self) -> list[TaskSpec]:
        return [self._specs[name] for name in self.names()]

    def invoke(self, name: str, options: Optional[PickerOptions] = None) -> TaskInstance:
        """
        Start a new run of a picker. Returns without waiting for results.

        Concurrent invocations of the same name are independent.
        """
        spec = self.get(name)
        options = options or PickerOptions()
        instance = start_task(spec, options)
        if options.cache_picker:
            self._remember(instance)
        return instance

    # Resume cache

    @property
    def capacity(self) -> int:
        return self.config.num_pickers

    def _remember(self, instance: TaskInstance) -> None:
        if self.capacity <= 0:
            return
        self._cache.appendleft(instance)
        while len(self._cache) > self.capacity:
            evicted = self._cache.pop()
            logger.debug(f"Evicting cached picker '{evicted.name}'")
            evicted.cancel()

    def resume(self, index: int = 0) -> TaskInstance:
        """
        Return a cached instance with its stream, query and selection intact.

        Args:
            index: 0 is the most recent picker

        Raises:
            CacheMiss: index is outside the cache
        """
        if not 0 <= index < len(self._cache):
            raise CacheMiss(index, len(self._cache))
        instance = self._cache[index]
        logger.debug(f"Resuming picker '{instance.name}' from cache slot {index}")
        return instance

    def list_cached(self) -> list[TaskInstance]:
        return list(self._cache)

    def evict(self, index: int) -> TaskInstance:
        """Drop one cached instance and cancel it."""
        if not 0 <= index < len(self._cache):
            raise CacheMiss(index, len(self._cache))
        instance = self._cache[index]
        del self._cache[index]
        instance.cancel()
        return instance

    def clear_cache(self) -> None:
        while self._cache:
            self._cache.pop().cancel()
