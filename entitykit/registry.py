"""
entitykit registry - Entity configurations.

One :class:`EntityConfiguration` per type identifier describes how the
entity factory builds a fixture: which class to instantiate, which
repository persists it, its constructor arguments and its property values.
Configurations are loaded once (from settings, YAML files or plain
mappings) and are read-only afterwards.
"""

from __future__ import annotations

import functools
import importlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple, Union

import yaml

from .faults import MissingConfigurationError, TypeResolutionError
from .values import ValueSpec, parse_value_spec

logger = logging.getLogger("entitykit.registry")

TypeId = Union[str, type]


@functools.lru_cache(maxsize=None)
def import_class(path: str) -> type:
    """Import ``"package.module.Class"`` or ``"package.module:Class"``."""
    if ":" in path:
        module_name, _, attr_path = path.partition(":")
    else:
        module_name, _, attr_path = path.rpartition(".")
    if not module_name or not attr_path:
        raise TypeResolutionError(path, "expected 'module.Class' or 'module:Class'")

    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise TypeResolutionError(path, str(exc)) from exc

    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError:
            raise TypeResolutionError(path, f"'{part}' not found") from None

    if not isinstance(obj, type):
        raise TypeResolutionError(path, "not a class")
    return obj


def type_key(type_id: TypeId) -> str:
    """Canonical string key of a type identifier."""
    if isinstance(type_id, type):
        return f"{type_id.__module__}.{type_id.__qualname__}"
    return str(type_id)


@dataclass(frozen=True)
class EntityConfiguration:
    """Declarative recipe for one entity type."""

    type_id: str
    target: Union[str, type]
    repository: Optional[Any] = None
    constructor_arguments: Union[Tuple[ValueSpec, ...], Mapping[str, ValueSpec]] = ()
    properties: Mapping[str, ValueSpec] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, type_id: TypeId, raw: Mapping[str, Any]) -> "EntityConfiguration":
        """
        Parse one configuration entry.

        Accepted keys: ``class``, ``repository``, ``constructorArguments``
        (or ``constructor_arguments``) and ``properties``.
        """
        key = type_key(type_id)
        raw = raw or {}
        target = raw.get("class") or type_id

        args_raw = raw.get("constructorArguments", raw.get("constructor_arguments")) or ()
        if isinstance(args_raw, Mapping):
            arguments: Any = {
                name: parse_value_spec(value, f"{key}({name})", fresh_copy=True)
                for name, value in args_raw.items()
            }
        else:
            arguments = tuple(
                parse_value_spec(value, f"{key}(#{index})", fresh_copy=True)
                for index, value in enumerate(args_raw)
            )

        properties = {
            name: parse_value_spec(value, f"{key}::{name}", fresh_copy=True)
            for name, value in (raw.get("properties") or {}).items()
        }

        return cls(
            type_id=key,
            target=target,
            repository=raw.get("repository"),
            constructor_arguments=arguments,
            properties=properties,
        )

    def resolve_class(self) -> type:
        if isinstance(self.target, type):
            return self.target
        return import_class(self.target)


class EntityConfigurationRegistry:
    """
    Read-only lookup of :class:`EntityConfiguration` by type identifier.

    Type identifiers are strings (short aliases such as ``"Order"`` or
    import paths) or classes.  A class is looked up by its qualified name,
    then its short name, then by any entry whose ``class`` is that class.

    Usage::

        registry = EntityConfigurationRegistry({
            "Order": {
                "class": Order,
                "repository": "orders",
                "properties": {"customer": {"__type": "Entity", "fqcn": "Customer"}},
            },
        })
        registry.get("Order").repository  # "orders"
    """

    def __init__(self, configurations: Optional[Mapping[TypeId, Any]] = None):
        self._entries: Dict[str, EntityConfiguration] = {}
        for type_id, raw in (configurations or {}).items():
            self.register(type_id, raw)

    @classmethod
    def from_config(cls, config: Any) -> "EntityConfigurationRegistry":
        """Build from an :class:`~entitykit.config.EntityKitConfig`."""
        return cls(config.entities)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "EntityConfigurationRegistry":
        """Build from a YAML file holding an ``entities:`` mapping (or just the mapping)."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(data.get("entities", data))

    def register(self, type_id: TypeId, raw: Union[Mapping[str, Any], EntityConfiguration]) -> EntityConfiguration:
        entry = raw if isinstance(raw, EntityConfiguration) else EntityConfiguration.from_mapping(type_id, raw)
        self._entries[type_key(type_id)] = entry
        logger.debug("Registered entity configuration for %s", entry.type_id)
        return entry

    def find(self, type_id: TypeId) -> Optional[EntityConfiguration]:
        entry = self._entries.get(type_key(type_id))
        if entry is not None or not isinstance(type_id, type):
            return entry
        entry = self._entries.get(type_id.__name__)
        if entry is not None:
            return entry
        for candidate in self._entries.values():
            if candidate.target is type_id:
                return candidate
        return None

    def get(self, type_id: TypeId) -> EntityConfiguration:
        """
        Return the configuration for *type_id*.

        Raises:
            MissingConfigurationError: nothing is configured for *type_id*.
        """
        entry = self.find(type_id)
        if entry is None:
            raise MissingConfigurationError(type_key(type_id))
        return entry

    def __contains__(self, type_id: TypeId) -> bool:
        return self.find(type_id) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


__all__ = [
    "EntityConfiguration",
    "EntityConfigurationRegistry",
    "import_class",
    "type_key",
]
