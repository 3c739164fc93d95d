"""
entitykit persistence - Persistence collaborators.

The harness never talks to an ORM directly.  It depends on three narrow
interfaces:

- :class:`PersistenceLayer`   unit-of-work style add/flush/refresh + state queries
- :class:`Repository`         add/find_all/count_all for one entity type
- :class:`RepositoryRegistry` resolves a repository reference

In-memory implementations are provided so fixtures can be persisted,
refreshed and counted without a database.  Adapters for a real ORM only
need to satisfy the protocols.
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Dict, Hashable, List, Optional, Protocol, runtime_checkable

from .faults import UnknownRecordError
from .reflection import ObjectAccessor

logger = logging.getLogger("entitykit.persistence")


# ============================================================================
# Protocols
# ============================================================================

@runtime_checkable
class PersistenceLayer(Protocol):
    def add(self, record: Any) -> None: ...

    def flush(self, record: Any = None) -> None: ...

    def refresh(self, record: Any) -> None: ...

    def is_new_object(self, record: Any) -> bool: ...

    def get_identifier(self, record: Any) -> Optional[Hashable]: ...

    def persist_all(self) -> None: ...

    def is_dirty(self, record: Any, property_name: str) -> bool: ...

    def get_clean_state(self, record: Any, property_name: str) -> Any: ...


@runtime_checkable
class Repository(Protocol):
    def add(self, record: Any) -> None: ...

    def find_all(self) -> List[Any]: ...

    def count_all(self) -> int: ...


@runtime_checkable
class RepositoryRegistry(Protocol):
    def resolve(self, reference: Any) -> Repository: ...


# ============================================================================
# In-memory implementations
# ============================================================================

class InMemoryPersistenceLayer:
    """
    Unit of work backed by per-record snapshots.

    ``add`` assigns a UUID identifier and marks the record as pending.
    ``flush`` stores a snapshot of the record's instance state; from then
    on the record is no longer new.  ``refresh`` restores the snapshot,
    discarding unflushed changes.

    Usage::

        layer = InMemoryPersistenceLayer()
        layer.add(order)
        layer.is_new_object(order)   # True
        layer.flush(order)
        order.number = 7
        layer.is_dirty(order, "number")  # True
        layer.refresh(order)             # number restored
    """

    def __init__(self, accessor: Optional[ObjectAccessor] = None):
        self.accessor = accessor or ObjectAccessor()
        self._identifiers: Dict[int, str] = {}
        self._records: Dict[str, Any] = {}
        self._snapshots: Dict[str, Dict[str, Any]] = {}

    # -- unit of work ----------------------------------------------------

    def add(self, record: Any) -> None:
        if id(record) in self._identifiers:
            return
        identifier = str(uuid.uuid4())
        self._identifiers[id(record)] = identifier
        self._records[identifier] = record
        logger.debug("Added %s as %s", type(record).__name__, identifier)

    def flush(self, record: Any = None) -> None:
        """Commit *record* (or every known record when ``None``)."""
        if record is None:
            self.persist_all()
            return
        identifier = self._require(record, "flush")
        self._snapshots[identifier] = self._capture(record)
        logger.debug("Flushed %s %s", type(record).__name__, identifier)

    def persist_all(self) -> None:
        for identifier, record in self._records.items():
            self._snapshots[identifier] = self._capture(record)

    def refresh(self, record: Any) -> None:
        identifier = self._require(record, "refresh")
        if identifier not in self._snapshots:
            raise UnknownRecordError(record, "refresh unflushed")
        self.accessor.restore(record, self._capture_copy(self._snapshots[identifier]))
        logger.debug("Refreshed %s %s", type(record).__name__, identifier)

    # -- queries ---------------------------------------------------------

    def is_new_object(self, record: Any) -> bool:
        identifier = self._identifiers.get(id(record))
        return identifier is None or identifier not in self._snapshots

    def get_identifier(self, record: Any) -> Optional[str]:
        return self._identifiers.get(id(record))

    def is_dirty(self, record: Any, property_name: str) -> bool:
        clean = self.get_clean_state(record, property_name)
        return clean != self.accessor.get_field(record, property_name)

    def get_clean_state(self, record: Any, property_name: str) -> Any:
        identifier = self._require(record, "inspect")
        snapshot = self._snapshots.get(identifier)
        if snapshot is None:
            raise UnknownRecordError(record, "inspect unflushed")
        attr = self.accessor.find_field(record, property_name)
        if attr is None or attr not in snapshot:
            return None
        return snapshot[attr]

    def records(self, cls: Optional[type] = None) -> List[Any]:
        """Flushed records, optionally filtered by class."""
        return [
            record
            for identifier, record in self._records.items()
            if identifier in self._snapshots and (cls is None or isinstance(record, cls))
        ]

    # -- helpers ---------------------------------------------------------

    def _require(self, record: Any, operation: str) -> str:
        identifier = self._identifiers.get(id(record))
        if identifier is None:
            raise UnknownRecordError(record, operation)
        return identifier

    def _capture(self, record: Any) -> Dict[str, Any]:
        return self._capture_copy(self.accessor.snapshot(record))

    @staticmethod
    def _capture_copy(state: Dict[str, Any]) -> Dict[str, Any]:
        # containers are copied so in-place mutation shows up as dirty;
        # referenced entities stay shared
        return {
            attr: copy.copy(value) if isinstance(value, (list, dict, set)) else value
            for attr, value in state.items()
        }


class InMemoryRepository:
    """Repository over an :class:`InMemoryPersistenceLayer`; sees flushed records only."""

    def __init__(self, persistence: InMemoryPersistenceLayer, name: str = ""):
        self.persistence = persistence
        self.name = name
        self._members: List[Any] = []

    def add(self, record: Any) -> None:
        if not any(member is record for member in self._members):
            self._members.append(record)
        self.persistence.add(record)

    def find_all(self) -> List[Any]:
        return [m for m in self._members if not self.persistence.is_new_object(m)]

    def count_all(self) -> int:
        return len(self.find_all())

    def __repr__(self) -> str:
        return f"<InMemoryRepository {self.name!r} count={self.count_all()}>"


class InMemoryRepositoryRegistry:
    """
    Resolves repository references, creating in-memory repositories on demand.

    Usage::

        registry = InMemoryRepositoryRegistry(layer)
        registry.register("orders", OrderRepository())   # custom
        registry.resolve("customers")                    # auto-created
    """

    def __init__(self, persistence: InMemoryPersistenceLayer):
        self.persistence = persistence
        self._repositories: Dict[Any, Any] = {}

    def register(self, reference: Any, repository: Any) -> None:
        self._repositories[reference] = repository

    def resolve(self, reference: Any) -> Any:
        if reference not in self._repositories:
            self._repositories[reference] = InMemoryRepository(self.persistence, str(reference))
            logger.debug("Created in-memory repository %r", reference)
        return self._repositories[reference]


__all__ = [
    "PersistenceLayer",
    "Repository",
    "RepositoryRegistry",
    "InMemoryPersistenceLayer",
    "InMemoryRepository",
    "InMemoryRepositoryRegistry",
]
