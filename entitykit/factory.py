"""
entitykit factory - Declarative entity construction.

:class:`EntityFactory` turns an :class:`~entitykit.registry.EntityConfiguration`
into a live fixture:

1. instantiate the configured class (constructor arguments resolved first)
2. merge configured properties with per-call overrides (override wins)
3. resolve every value spec and assign it raw onto the fixture
4. optionally add the fixture to its repository, flush it and track it as a
   *managed entity* for later refresh/flush

It also builds form-submission payloads (field values plus trusted-fields
and CSRF tokens) for controller tests.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional, Tuple

from .config import EntityKitConfig
from .faults import (
    MissingConfigurationError,
    NotFoundError,
    PropertyAssignmentError,
    UnmanagedEntityError,
)
from .naming import AccessorKind, resolve_method_name
from .persistence import (
    InMemoryPersistenceLayer,
    InMemoryRepositoryRegistry,
    PersistenceLayer,
    RepositoryRegistry,
)
from .reflection import ObjectAccessor
from .registry import EntityConfiguration, EntityConfigurationRegistry, TypeId
from .security import SignedTokenService, TokenService
from .values import (
    EntityRef,
    GeneratedHash,
    Literal,
    Timestamp,
    ValueSpec,
    generate_hash,
    parse_instant,
    parse_value_spec,
)

logger = logging.getLogger("entitykit.factory")


def flatten_form(arguments: Optional[Mapping[str, Any]], prefix: str = "") -> List[Tuple[str, str]]:
    """
    Flatten nested arguments into bracketed form fields::

        flatten_form({"order": {"number": 7, "customer": {"__identity": "ab"}}})
        # [("order[number]", "7"), ("order[customer][__identity]", "ab")]

    Empty containers produce no field.
    """
    pairs: List[Tuple[str, str]] = []
    for key, value in (arguments or {}).items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if isinstance(value, Mapping):
            pairs.extend(flatten_form(value, name))
        elif isinstance(value, (list, tuple)):
            pairs.extend(flatten_form({str(i): item for i, item in enumerate(value)}, name))
        elif value is None:
            pairs.append((name, ""))
        elif isinstance(value, bool):
            pairs.append((name, "1" if value else "0"))
        else:
            pairs.append((name, str(value)))
    return pairs


class EntityFactory:
    """
    Builds (and optionally persists) fixtures from entity configurations.

    One factory instance belongs to one test run; its managed entities are
    discarded with :meth:`reset` at teardown.

    Usage::

        factory = EntityFactory.from_config(load_config())
        order = factory.create("Order", persist=True, overrides={"number": 7})
        factory.identity_argument(order)   # {"__identity": "..."}
        factory.refresh(order)
    """

    def __init__(
        self,
        registry: EntityConfigurationRegistry,
        persistence: PersistenceLayer,
        repositories: RepositoryRegistry,
        tokens: TokenService,
        accessor: Optional[ObjectAccessor] = None,
        config: Optional[EntityKitConfig] = None,
    ):
        self.registry = registry
        self.persistence = persistence
        self.repositories = repositories
        self.tokens = tokens
        self.accessor = accessor or ObjectAccessor()
        self.config = config or EntityKitConfig()
        self._managed: Dict[Hashable, Any] = {}

    @classmethod
    def from_config(
        cls,
        config: Optional[EntityKitConfig] = None,
        registry: Optional[EntityConfigurationRegistry] = None,
    ) -> "EntityFactory":
        """Factory wired to the in-memory collaborators."""
        config = config or EntityKitConfig()
        accessor = ObjectAccessor()
        persistence = InMemoryPersistenceLayer(accessor)
        return cls(
            registry or EntityConfigurationRegistry.from_config(config),
            persistence,
            InMemoryRepositoryRegistry(persistence),
            SignedTokenService(config.secret_key),
            accessor=accessor,
            config=config,
        )

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def create(
        self,
        type_id: TypeId,
        persist: bool = False,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """
        Build a fixture of *type_id*.

        Args:
            type_id: Configured type identifier (alias, import path or class).
            persist: Add the fixture to its repository, flush it and track it.
                Nested ``Entity`` values are persisted too.
            overrides: Property values taking precedence over the configured
                ones. Plain values are used as-is; ``__type`` mappings and
                value specs are resolved like configured values.

        Raises:
            MissingConfigurationError: no configuration, or no repository
                while ``persist`` is requested.
            PropertyAssignmentError: a value cannot be assigned.
        """
        configuration = self.registry.get(type_id)
        if persist and configuration.repository is None:
            raise MissingConfigurationError(configuration.type_id, "has no repository defined")

        entity = self._instantiate(configuration, persist)

        for name, raw in self._merged_properties(configuration, overrides).items():
            spec = parse_value_spec(raw, f"{configuration.type_id}::{name}")
            self._assign(entity, configuration, name, self._resolve(spec, persist))

        if persist:
            self.repositories.resolve(configuration.repository).add(entity)
            self.persistence.flush(entity)
            identifier = self.persistence.get_identifier(entity)
            self._managed[identifier] = entity
            logger.debug("Persisted %s as %s", configuration.type_id, identifier)
        else:
            logger.debug("Created %s", configuration.type_id)

        return entity

    def _instantiate(self, configuration: EntityConfiguration, persist: bool) -> Any:
        target = configuration.resolve_class()
        arguments = configuration.constructor_arguments
        if isinstance(arguments, Mapping):
            return target(**{name: self._resolve(spec, persist) for name, spec in arguments.items()})
        if arguments:
            return target(*[self._resolve(spec, persist) for spec in arguments])
        return target()

    def _resolve(self, spec: ValueSpec, persist: bool) -> Any:
        match spec:
            case Literal():
                return spec.produce()
            case EntityRef(type_id=type_id, properties=properties):
                return self.create(type_id, persist, properties)
            case GeneratedHash(algorithm=algorithm):
                return generate_hash(algorithm or self.config.hash_algorithm)
            case Timestamp(instant=instant):
                return parse_instant(instant)
        raise TypeError(f"Not a value spec: {spec!r}")

    def _assign(self, entity: Any, configuration: EntityConfiguration, name: str, value: Any) -> None:
        type_name = type(entity).__name__
        try:
            self.accessor.set_field(entity, name, value)
            return
        except NotFoundError:
            pass
        except (AttributeError, TypeError, ValueError) as exc:
            raise PropertyAssignmentError(type_name, name, value, str(exc)) from exc

        # no field by that name; fall back to a setter method
        setter = resolve_method_name(name, AccessorKind.SET, self.config.naming_style)
        if not self.accessor.has_method(entity, setter):
            raise PropertyAssignmentError(type_name, name, value, "no such field or setter")
        try:
            self.accessor.invoke(entity, setter, [value])
        except (AttributeError, TypeError, ValueError) as exc:
            raise PropertyAssignmentError(type_name, name, value, str(exc)) from exc

    @staticmethod
    def _merged_properties(
        configuration: EntityConfiguration, overrides: Optional[Mapping[str, Any]]
    ) -> Dict[str, Any]:
        properties: Dict[str, Any] = dict(configuration.properties)
        properties.update(overrides or {})
        return properties

    # ------------------------------------------------------------------
    # Managed entities
    # ------------------------------------------------------------------

    @property
    def managed_entities(self) -> Mapping[Hashable, Any]:
        """Read-only view of persisted fixtures by identifier."""
        return MappingProxyType(self._managed)

    def is_managed(self, entity: Any) -> bool:
        return any(managed is entity for managed in self._managed.values())

    def refresh(self, entity: Any) -> None:
        """Reload *entity* from the persistence layer."""
        if not self.is_managed(entity):
            raise UnmanagedEntityError(entity, "to be refreshed is not handled by the entity factory")
        self.persistence.refresh(entity)

    def refresh_all(self) -> None:
        for entity in list(self._managed.values()):
            self.persistence.refresh(entity)

    def flush(self, entity: Any) -> None:
        """Commit pending state of *entity*."""
        if not self.is_managed(entity):
            raise UnmanagedEntityError(entity, "to be flushed is not handled by the entity factory")
        self.persistence.flush(entity)

    def reset(self) -> None:
        """Forget every managed entity (test teardown)."""
        self._managed.clear()

    def identity_argument(self, entity: Any) -> Dict[str, Any]:
        """Identity reference of a persisted *entity*: ``{"__identity": id}``."""
        identifier = self.persistence.get_identifier(entity)
        if identifier is None or self.persistence.is_new_object(entity):
            raise UnmanagedEntityError(entity, "has no persisted identifier")
        return {self.config.identity_key: identifier}

    # ------------------------------------------------------------------
    # Form submission payloads
    # ------------------------------------------------------------------

    def build_submission_payload(
        self,
        argument_name: str,
        type_id: TypeId,
        overrides: Optional[Mapping[str, Any]] = None,
        extra_trusted_fields: Iterable[str] = (),
    ) -> Dict[str, Any]:
        """
        Form arguments for submitting a new entity of *type_id*.

        Literal property values become ``argument_name[property]`` fields;
        ``__type`` tagged values (entities, hashes, timestamps) are left out.
        A managed entity passed as override is submitted by identity.
        """
        configuration = self.registry.get(type_id)
        fields: Dict[str, Any] = {}
        paths: List[str] = list(extra_trusted_fields)

        for name, raw in self._merged_properties(configuration, overrides).items():
            self._add_field(fields, paths, argument_name, name, raw, configuration.type_id)

        return self._payload(argument_name, fields, paths)

    def build_submission_payload_for_existing(
        self,
        argument_name: str,
        entity: Any,
        overrides: Optional[Mapping[str, Any]] = None,
        extra_trusted_fields: Iterable[str] = (),
    ) -> Dict[str, Any]:
        """Form arguments for updating a persisted *entity*, seeded with its identity."""
        fields: Dict[str, Any] = dict(self.identity_argument(entity))
        paths: List[str] = list(extra_trusted_fields)
        paths.append(f"{argument_name}[{self.config.identity_key}]")

        for name, raw in (overrides or {}).items():
            self._add_field(fields, paths, argument_name, name, raw, type(entity).__name__)

        return self._payload(argument_name, fields, paths)

    def _add_field(
        self,
        fields: Dict[str, Any],
        paths: List[str],
        argument_name: str,
        name: str,
        raw: Any,
        type_name: str,
    ) -> None:
        if self.is_managed(raw):
            value = self.identity_argument(raw)
        else:
            spec = parse_value_spec(raw, f"{type_name}::{name}")
            match spec:
                case Literal():
                    value = spec.produce()
                case EntityRef() | GeneratedHash() | Timestamp():
                    logger.debug("Skipping relational field %s[%s]", argument_name, name)
                    return

        fields[name] = value
        # trusted paths are exactly the fields the browser will submit
        paths.extend(path for path, _ in flatten_form({name: value}, argument_name))

    def _payload(self, argument_name: str, fields: Dict[str, Any], paths: List[str]) -> Dict[str, Any]:
        return {
            argument_name: fields,
            self.config.trusted_fields_argument: self.tokens.generate_trusted_fields_token(paths),
            self.config.csrf_argument: self.tokens.get_csrf_token(),
        }


__all__ = ["EntityFactory", "flatten_form"]
