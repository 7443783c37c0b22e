"""
Internal Pickers - Lists about livepick itself.

  builtin → every registered picker with its description
  pickers → the resume cache, most recent first

Both read the registry, so their specs are built per registry.
"""

from functools import partial

from livepick.search.stream import ResultItem
from livepick.tasks.spec import ProducerKind, TaskSpec


def list_builtin(registry, options, query: str = "") -> list[ResultItem]:
    results = []
    for spec in registry.specs():
        text = f"{spec.name}: {spec.description}" if spec.description else spec.name
        results.append(ResultItem(text=text, value=spec.name))
    return results


def list_cached(registry, options, query: str = "") -> list[ResultItem]:
    results = []
    for index, instance in enumerate(registry.list_cached()):
        prompt = f" [{instance.query.text}]" if instance.query.text else ""
        results.append(ResultItem(
            text=f"{index}: {instance.name}{prompt} ({instance.status.value}, {len(instance.stream)} results)",
            value=index,
        ))
    return results


def build_specs(registry) -> list[TaskSpec]:
    return [
        TaskSpec(
            name="builtin",
            kind=ProducerKind.CLOSURE,
            source=partial(list_builtin, registry),
            description="Lists all registered pickers",
        ),
        TaskSpec(
            name="pickers",
            kind=ProducerKind.CLOSURE,
            source=partial(list_cached, registry),
            # Listing the cache must not push entries out of it
            defaults={"cache_picker": False},
            description="Lists cached pickers that can be resumed",
        ),
    ]
