"""
entitykit - Fixtures and contract checks for entity and controller tests.

Build fixtures from declarative configuration, verify accessor contracts,
assert persistence state and drive controller actions through a simulated
browser.

Usage:
    from entitykit import EntityFactory, load_config

    factory = EntityFactory.from_config(load_config())
    order = factory.create("Order", persist=True)
"""

__version__ = "0.4.0"

from .config import ConfigError, ConfigLoader, EntityKitConfig, load_config
from .factory import EntityFactory
from .faults import (
    Fault,
    FaultDomain,
    InvalidKindError,
    InvalidTokenError,
    MissingConfigurationError,
    NotFoundError,
    PropertyAssignmentError,
    Severity,
    TypeResolutionError,
    UnknownRecordError,
    UnknownValueSpecKind,
    UnmanagedEntityError,
    UnsupportedMethodError,
)
from .naming import AccessorKind, NamingStyle, plural, resolve_method_name, singular
from .persistence import (
    InMemoryPersistenceLayer,
    InMemoryRepository,
    InMemoryRepositoryRegistry,
    PersistenceLayer,
    Repository,
    RepositoryRegistry,
)
from .reflection import ObjectAccessor
from .registry import EntityConfiguration, EntityConfigurationRegistry
from .security import SignedTokenService, TokenService
from .values import EntityRef, GeneratedHash, Literal, Timestamp, ValueSpec, parse_value_spec

__all__ = [
    # Config
    "ConfigError",
    "ConfigLoader",
    "EntityKitConfig",
    "load_config",
    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "MissingConfigurationError",
    "UnknownValueSpecKind",
    "NotFoundError",
    "InvalidKindError",
    "PropertyAssignmentError",
    "TypeResolutionError",
    "UnmanagedEntityError",
    "UnknownRecordError",
    "InvalidTokenError",
    "UnsupportedMethodError",
    # Naming & reflection
    "AccessorKind",
    "NamingStyle",
    "singular",
    "plural",
    "resolve_method_name",
    "ObjectAccessor",
    # Values & configuration
    "Literal",
    "EntityRef",
    "GeneratedHash",
    "Timestamp",
    "ValueSpec",
    "parse_value_spec",
    "EntityConfiguration",
    "EntityConfigurationRegistry",
    # Collaborators
    "PersistenceLayer",
    "Repository",
    "RepositoryRegistry",
    "InMemoryPersistenceLayer",
    "InMemoryRepository",
    "InMemoryRepositoryRegistry",
    "TokenService",
    "SignedTokenService",
    # Factory
    "EntityFactory",
]
