"""
entitykit testing - Pytest fixtures.

Import ``entitykit_fixtures`` in your ``conftest.py`` to register all
fixtures at once, or import individual fixtures.

Usage in conftest.py::

    from entitykit.testing.fixtures import entitykit_fixtures
    entitykit_fixtures()

    from entitykit.testing.fixtures import (  # noqa: F401
        entity_factory,
        persistence_tester,
    )

Or rely on the ``pytest11`` plugin entry point (automatic via pip install).

Override ``entitykit_config`` in a conftest to supply project settings;
every other fixture builds on it.
"""

from __future__ import annotations

import pytest

from ..config import EntityKitConfig, load_config
from ..factory import EntityFactory
from ..persistence import InMemoryPersistenceLayer, InMemoryRepositoryRegistry
from ..registry import EntityConfigurationRegistry
from ..security import SignedTokenService
from .persistence import PersistenceTester
from .properties import PropertyChecker


def entitykit_fixtures():
    """
    Register entitykit pytest fixtures.

    This is a no-op; the fixtures are registered by importing this module
    into a ``conftest.py``.  The function exists as a documentation anchor.
    """


# -----------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------

@pytest.fixture
def entitykit_config() -> EntityKitConfig:
    """Settings loaded from ``entitykit.yaml`` and ``ENTITYKIT_*`` variables."""
    return load_config()


@pytest.fixture
def entity_registry(entitykit_config):
    return EntityConfigurationRegistry.from_config(entitykit_config)


@pytest.fixture
def persistence_layer():
    """A fresh :class:`InMemoryPersistenceLayer`."""
    return InMemoryPersistenceLayer()


@pytest.fixture
def repository_registry(persistence_layer):
    return InMemoryRepositoryRegistry(persistence_layer)


@pytest.fixture
def token_service(entitykit_config):
    return SignedTokenService(entitykit_config.secret_key)


@pytest.fixture
def entity_factory(entitykit_config, entity_registry, persistence_layer, repository_registry, token_service):
    """
    An :class:`EntityFactory` wired to the fixtures above.

    Managed entities are discarded after the test.
    """
    factory = EntityFactory(
        entity_registry,
        persistence_layer,
        repository_registry,
        token_service,
        accessor=persistence_layer.accessor,
        config=entitykit_config,
    )
    yield factory
    factory.reset()


@pytest.fixture
def property_checker(entitykit_config):
    return PropertyChecker(entitykit_config.naming_style)


@pytest.fixture
def persistence_tester(entity_factory):
    return PersistenceTester(entity_factory)


__all__ = [
    "entitykit_fixtures",
    "entitykit_config",
    "entity_registry",
    "persistence_layer",
    "repository_registry",
    "token_service",
    "entity_factory",
    "property_checker",
    "persistence_tester",
]
