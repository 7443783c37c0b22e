"""
Dispatcher - Resolves options for a picker call and starts it.

Layers are merged key by key (nested tables included), later layers
winning:

  global defaults → spec defaults → theme preset → [pickers.<name>] → call site

Bad option types fail here, before any task starts.
"""

from typing import Any, Callable, Mapping, Optional

from loguru import logger

from livepick.config import Config, PickerOptions
from livepick.errors import OptionError
from livepick.registry import Registry
from livepick.tasks.task import TaskInstance, check_action
from livepick.utils.helpers import merge_layers


class Dispatcher:
    """Merges configuration into caller options and starts pickers via the Registry."""

    def __init__(self, registry: Registry, config: Optional[Config] = None):
        self.registry = registry
        self.config = config or registry.config

    def resolve(self, name: str, caller_options: Optional[Mapping[str, Any]] = None) -> PickerOptions:
        """
        Build the final options for a picker call.

        Raises:
            UnknownPicker: name is not registered
            OptionError: an option is malformed
        """
        spec = self.registry.get(name)
        caller = dict(caller_options or {})
        picker_conf = self.config.picker_config(name)

        theme = self._theme_layer(name, caller.get("theme") or picker_conf.get("theme"))

        config_mappings = picker_conf.pop("mappings", None)
        config_hook = picker_conf.pop("attach_mappings", None)
        caller_hook = caller.pop("attach_mappings", None)

        merged = merge_layers(
            self.config.defaults,
            dict(spec.defaults),
            theme,
            picker_conf,
            caller,
        )

        for option in spec.required_options:
            if merged.get(option) in (None, "", [], {}):
                raise OptionError(name, option, "is required")

        hook = self._combine_hooks(name, config_mappings, config_hook, caller_hook)
        if hook is not None:
            merged["attach_mappings"] = hook

        return PickerOptions.from_mapping(name, merged)

    def dispatch(self, name: str, options: Optional[Mapping[str, Any]] = None,
                 **kwargs) -> TaskInstance:
        """Start a picker and return its instance immediately."""
        caller = dict(options or {})
        caller.update(kwargs)
        resolved = self.resolve(name, caller)
        logger.debug(f"Dispatching picker '{name}'")
        return self.registry.invoke(name, resolved)

    def run(self, name: str, options: Optional[Mapping[str, Any]] = None,
            timeout: Optional[float] = None, cancel_on_timeout: bool = True) -> TaskInstance:
        """
        Start a picker and wait for its complete result set.

        For pickers whose consumer needs every result before showing
        anything. The timeout falls back to the resolved ``timeout`` option.

        Raises:
            PickerTimeout: results were not complete in time
            ProducerFailure: the producer failed
        """
        instance = self.dispatch(name, options)
        return instance.wait(
            timeout if timeout is not None else instance.options.timeout,
            cancel_on_timeout=cancel_on_timeout,
        )

    def resume(self, index: int = 0) -> TaskInstance:
        return self.registry.resume(index)

    def _theme_layer(self, name: str, theme_name: Any) -> dict:
        if not theme_name:
            return {}
        if not isinstance(theme_name, str):
            raise OptionError(name, "theme", "must be a theme name")
        try:
            return self.config.theme(theme_name)
        except KeyError:
            raise OptionError(name, "theme", f"names an unknown theme: {theme_name!r}") from None

    def _combine_hooks(self, name: str, mappings: Any, config_hook: Any,
                       caller_hook: Any) -> Optional[Callable]:
        """
        Fold configured mappings and attach_mappings hooks into one hook.

        Configured hooks run first; when the caller supplies a hook too it
        runs last and its return value decides whether default mappings stay.
        """
        hooks = []
        if mappings is not None:
            hooks.append(_mappings_hook(name, mappings))
        if config_hook is not None:
            if not callable(config_hook):
                raise OptionError(name, "attach_mappings", "must be callable")
            hooks.append(config_hook)
        if caller_hook is not None:
            if not callable(caller_hook):
                raise OptionError(name, "attach_mappings", "must be callable")
            hooks.append(caller_hook)

        if not hooks:
            return None
        if len(hooks) == 1:
            return hooks[0]

        def attach_mappings(instance, map_key):
            result = True
            for hook in hooks:
                result = hook(instance, map_key)
            return result

        return attach_mappings


def _mappings_hook(name: str, mappings: Any) -> Callable:
    """Turn a {mode: {key: action}} table into an attach_mappings hook."""
    if not isinstance(mappings, dict):
        raise OptionError(name, "mappings", "must be a table of modes")
    for mode, table in mappings.items():
        if not isinstance(table, dict):
            raise OptionError(name, "mappings", f"mode {mode!r} must map keys to actions")
        for key, action in table.items():
            check_action(name, key, action)

    def attach_mappings(instance, map_key):
        for mode, table in mappings.items():
            for key, action in table.items():
                map_key(mode, key, action)
        return True

    return attach_mappings


class PickerTable:
    """
    Attribute-style access to every registered picker.

    Example:
        pickers = PickerTable(dispatcher)
        instance = pickers.find_files(cwd="~/src", hidden=True)
    """

    def __init__(self, dispatcher: Dispatcher):
        self._dispatcher = dispatcher

    def __getattr__(self, name: str) -> Callable[..., TaskInstance]:
        if name.startswith("_"):
            raise AttributeError(name)
        self._dispatcher.registry.get(name)

        def invoke(options: Optional[Mapping[str, Any]] = None, **kwargs) -> TaskInstance:
            return self._dispatcher.dispatch(name, options, **kwargs)

        invoke.__name__ = name
        invoke.__doc__ = self._dispatcher.registry.get(name).description
        return invoke

    def __contains__(self, name: str) -> bool:
        return name in self._dispatcher.registry

    def __dir__(self):
        return self._dispatcher.registry.names()

    def resume(self, cache_index: int = 0) -> TaskInstance:
        return self._dispatcher.resume(cache_index)
