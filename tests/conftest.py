"""
Shared test fixtures for the entitykit test suite.
"""

import pytest

from entitykit.config import EntityKitConfig

# Register entitykit testing fixtures
from entitykit.testing.fixtures import entitykit_fixtures
entitykit_fixtures()

# Import fixtures so pytest can discover them
from entitykit.testing.fixtures import (  # noqa: F401
    entity_registry,
    persistence_layer,
    repository_registry,
    token_service,
    entity_factory,
    property_checker,
    persistence_tester,
)

from sample_entities import Account, Customer, Invoice, Money, Order, Product, Tag


# ============================================================================
# Entity configurations
# ============================================================================

SAMPLE_ENTITIES = {
    "Order": {
        "class": Order,
        "repository": "orders",
        "properties": {
            "number": 42,
            "customer": {"__type": "Entity", "fqcn": "Customer"},
            "token": {"__type": "sha1"},
            "created": {"__type": "DateTime", "time": "2024-05-01T12:00:00"},
            "tags": [],
        },
    },
    "Customer": {
        "class": Customer,
        "repository": "customers",
        "properties": {
            "name": "Jane",
            "email": "jane@example.com",
        },
    },
    "Tag": {
        "class": Tag,
        "repository": "tags",
        "constructorArguments": ["sale"],
    },
    "Invoice": {
        "class": Invoice,
        "repository": "invoices",
        "constructorArguments": {
            "number": "INV-1",
            "customer": {"__type": "Entity", "fqcn": "Customer"},
        },
        "properties": {
            "reference": {"__type": "hash", "algorithm": "sha256"},
            "issued": {"__type": "DateTime"},
        },
    },
    "Account": {
        "class": Account,
        "repository": "accounts",
        "properties": {"balance": 100},
    },
    "Money": {
        "class": Money,
        "properties": {"amount": 5},
    },
    "Product": {
        "class": Product,
        "repository": "products",
        "properties": {"name": "Widget", "price": 9.5},
    },
}


@pytest.fixture
def entitykit_config():
    """Settings with the sample entity configurations."""
    return EntityKitConfig(entities=SAMPLE_ENTITIES, secret_key="test-secret")
