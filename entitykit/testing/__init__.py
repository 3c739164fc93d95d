"""
entitykit testing - Assertion helpers and test case bases.

Usage:
    from entitykit.testing import EntityTestCase

    class TestOrder(EntityTestCase):
        entities = {"Order": {"class": Order, "repository": "orders"}}

        def test_tags(self):
            self.properties.check_collection_property(Order(), "tags", Tag)

Components:
    - PropertyChecker:    getter/setter/adder/remover contract checks
    - PersistenceTester:  persisted/unpersisted/count/clean-property assertions
    - ResponseProxy:      fluent response assertions
    - AsgiBrowser:        in-process ASGI browser
    - HttpxBrowser:       browser over an httpx client
    - RouteUriBuilder:    controller action URIs
    - EntityTestCase:     unittest base with factory and checkers
    - ControllerTestCase: adds simulated controller requests

Pytest fixtures live in ``entitykit.testing.fixtures`` (requires pytest).
"""

from .browser import (
    AsgiBrowser,
    Browser,
    BrowserResponse,
    HttpxBrowser,
    RouteUriBuilder,
    UriBuilder,
    flatten_form,
)
from .cases import ControllerTestCase, EntityTestCase
from .persistence import PersistenceTester
from .properties import PropertyChecker
from .response import ResponseProxy

__all__ = [
    # Checkers
    "PropertyChecker",
    "PersistenceTester",
    "ResponseProxy",
    # Browser
    "Browser",
    "UriBuilder",
    "BrowserResponse",
    "AsgiBrowser",
    "HttpxBrowser",
    "RouteUriBuilder",
    "flatten_form",
    # Test cases
    "EntityTestCase",
    "ControllerTestCase",
]
