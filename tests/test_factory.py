"""
Tests for entitykit.factory: declarative entity construction and payloads.
"""

from datetime import datetime, timezone

import pytest

from entitykit.config import EntityKitConfig
from entitykit.factory import EntityFactory, flatten_form
from entitykit.faults import (
    MissingConfigurationError,
    PropertyAssignmentError,
    UnknownValueSpecKind,
    UnmanagedEntityError,
)
from entitykit.persistence import InMemoryPersistenceLayer
from entitykit.registry import EntityConfigurationRegistry
from entitykit.values import EntityRef

from sample_entities import Customer, Invoice, Money, Order, Product, Tag


# ============================================================================
# create()
# ============================================================================

class TestCreate:

    def test_configured_properties(self, entity_factory):
        order = entity_factory.create("Order")
        assert isinstance(order, Order)
        assert order.getNumber() == 42
        assert order.getCreated() == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        assert order.getTags() == []

    def test_nested_entity_is_fresh_each_call(self, entity_factory):
        first = entity_factory.create("Order")
        second = entity_factory.create("Order")
        assert isinstance(first.getCustomer(), Customer)
        assert first.getCustomer().getName() == "Jane"
        assert first.getCustomer() is not second.getCustomer()

    def test_configured_containers_not_shared(self, entity_factory):
        first = entity_factory.create("Order")
        second = entity_factory.create("Order")
        first.addTag(Tag("x"))
        assert second.getTags() == []

    def test_generated_hash(self, entity_factory):
        first = entity_factory.create("Order")
        second = entity_factory.create("Order")
        assert len(first.getToken()) == 40
        assert first.getToken() != second.getToken()

    def test_hash_algorithm_from_config(self):
        config = EntityKitConfig(
            entities={"Order": {"class": Order, "properties": {"token": {"__type": "hash"}}}},
            hash_algorithm="md5",
        )
        order = EntityFactory.from_config(config).create("Order")
        assert len(order.getToken()) == 32

    def test_overrides_win(self, entity_factory):
        order = entity_factory.create("Order", overrides={"number": 7, "paid": True})
        assert order.getNumber() == 7
        assert order.getPaid() is True

    def test_override_values_used_as_is(self, entity_factory):
        tags = [Tag("a")]
        order = entity_factory.create("Order", overrides={"tags": tags})
        assert order.getTags() is tags

    def test_tagged_override(self, entity_factory):
        order = entity_factory.create("Order", overrides={"customer": {"__type": "Entity", "fqcn": "Customer", "properties": {"name": "Bo"}}})
        assert order.getCustomer().getName() == "Bo"

    def test_value_spec_override(self, entity_factory):
        order = entity_factory.create("Order", overrides={"customer": EntityRef("Customer", {"email": "x@y.z"})})
        assert order.getCustomer().getEmail() == "x@y.z"

    def test_positional_constructor_arguments(self, entity_factory):
        tag = entity_factory.create("Tag")
        assert tag.name == "sale"

    def test_keyword_constructor_arguments(self, entity_factory):
        invoice = entity_factory.create("Invoice")
        assert isinstance(invoice, Invoice)
        assert invoice.number == "INV-1"
        assert isinstance(invoice.customer, Customer)
        assert len(invoice.reference) == 64
        assert invoice.issued.tzinfo is not None

    def test_read_only_property(self, entity_factory):
        assert entity_factory.create("Account").balance == 100

    def test_frozen_dataclass(self, entity_factory):
        money = entity_factory.create("Money", overrides={"currency": "USD"})
        assert money == Money(5, "USD")

    def test_lookup_by_class(self, entity_factory):
        assert isinstance(entity_factory.create(Product), Product)

    def test_missing_configuration(self, entity_factory):
        with pytest.raises(MissingConfigurationError):
            entity_factory.create("Shipment")

    def test_unknown_property(self, entity_factory):
        with pytest.raises(PropertyAssignmentError) as exc_info:
            entity_factory.create("Order", overrides={"discount": 5})
        assert exc_info.value.code == "PROPERTY_ASSIGNMENT_FAILED"
        assert "Order.discount" in exc_info.value.message

    def test_unknown_tag_in_override(self, entity_factory):
        with pytest.raises(UnknownValueSpecKind):
            entity_factory.create("Order", overrides={"number": {"__type": "Sequence"}})

    def test_setter_fallback(self):
        class Ticket:
            def __init__(self):
                self.store = {}

            def setSeat(self, seat):
                self.store["seat"] = seat
                return self

        factory = EntityFactory.from_config(EntityKitConfig(entities={"Ticket": {"class": Ticket}}))
        ticket = factory.create("Ticket", overrides={"seat": "12A"})
        assert ticket.store == {"seat": "12A"}


# ============================================================================
# Persistence
# ============================================================================

class TestPersist:

    def test_persist(self, entity_factory, persistence_layer):
        order = entity_factory.create("Order", persist=True)
        assert not persistence_layer.is_new_object(order)
        assert entity_factory.is_managed(order)

    def test_persist_propagates_to_nested(self, entity_factory, persistence_layer):
        order = entity_factory.create("Order", persist=True)
        assert not persistence_layer.is_new_object(order.getCustomer())
        assert len(entity_factory.managed_entities) == 2

    def test_persist_constructor_entities(self, entity_factory, persistence_layer):
        invoice = entity_factory.create("Invoice", persist=True)
        assert not persistence_layer.is_new_object(invoice.customer)

    def test_not_persisted_by_default(self, entity_factory, persistence_layer):
        order = entity_factory.create("Order")
        assert persistence_layer.is_new_object(order)
        assert not entity_factory.is_managed(order)
        assert len(entity_factory.managed_entities) == 0

    def test_added_to_repository(self, entity_factory, repository_registry):
        order = entity_factory.create("Order", persist=True)
        assert repository_registry.resolve("orders").find_all() == [order]

    def test_persist_without_repository(self, entity_factory):
        with pytest.raises(MissingConfigurationError) as exc_info:
            entity_factory.create("Money", persist=True)
        assert "repository" in exc_info.value.message

    def test_managed_entities_read_only(self, entity_factory):
        entity_factory.create("Customer", persist=True)
        with pytest.raises(TypeError):
            entity_factory.managed_entities["x"] = object()

    def test_refresh(self, entity_factory):
        order = entity_factory.create("Order", persist=True)
        order.setNumber(1000)
        entity_factory.refresh(order)
        assert order.getNumber() == 42

    def test_refresh_all(self, entity_factory):
        order = entity_factory.create("Order", persist=True)
        order.setNumber(1)
        order.getCustomer().setName("Changed")
        entity_factory.refresh_all()
        assert order.getNumber() == 42
        assert order.getCustomer().getName() == "Jane"

    def test_refresh_unmanaged(self, entity_factory):
        with pytest.raises(UnmanagedEntityError) as exc_info:
            entity_factory.refresh(entity_factory.create("Order"))
        assert exc_info.value.code == "ENTITY_UNMANAGED"

    def test_flush(self, entity_factory, persistence_layer):
        order = entity_factory.create("Order", persist=True)
        order.setNumber(5)
        entity_factory.flush(order)
        entity_factory.refresh(order)
        assert order.getNumber() == 5

    def test_flush_unmanaged(self, entity_factory):
        with pytest.raises(UnmanagedEntityError):
            entity_factory.flush(Order())

    def test_reset(self, entity_factory):
        order = entity_factory.create("Order", persist=True)
        entity_factory.reset()
        assert not entity_factory.is_managed(order)

    def test_identity_argument(self, entity_factory, persistence_layer):
        order = entity_factory.create("Order", persist=True)
        assert entity_factory.identity_argument(order) == {
            "__identity": persistence_layer.get_identifier(order),
        }

    def test_identity_argument_unpersisted(self, entity_factory):
        with pytest.raises(UnmanagedEntityError):
            entity_factory.identity_argument(entity_factory.create("Order"))

    def test_from_config_wires_in_memory_collaborators(self, entitykit_config):
        factory = EntityFactory.from_config(entitykit_config)
        assert isinstance(factory.persistence, InMemoryPersistenceLayer)
        assert isinstance(factory.registry, EntityConfigurationRegistry)
        assert factory.persistence.accessor is factory.accessor


# ============================================================================
# Submission payloads
# ============================================================================

class TestSubmissionPayload:

    def test_new_entity_payload(self, entity_factory, token_service):
        payload = entity_factory.build_submission_payload("order", "Order")
        assert payload["order"] == {"number": 42, "tags": []}
        assert token_service.read_trusted_fields_token(payload["__trustedProperties"]) == ["order[number]"]
        assert payload["__csrfToken"] == token_service.get_csrf_token()

    def test_container_fields_trust_nested_paths(self, entity_factory, token_service):
        payload = entity_factory.build_submission_payload("order", "Order", overrides={"tags": ["a", "b"]})
        assert token_service.read_trusted_fields_token(payload["__trustedProperties"]) == [
            "order[number]",
            "order[tags][0]",
            "order[tags][1]",
        ]

    def test_trusted_paths_match_submitted_fields(self, entity_factory, token_service):
        customer = entity_factory.create("Customer", persist=True)
        payload = entity_factory.build_submission_payload(
            "order", "Order", overrides={"tags": ["a", "b"], "customer": customer},
        )
        submitted = {path for path, _ in flatten_form({"order": payload["order"]})}
        assert set(token_service.read_trusted_fields_token(payload["__trustedProperties"])) == submitted

    def test_relational_fields_excluded(self, entity_factory):
        payload = entity_factory.build_submission_payload("order", "Order")
        for name in ("customer", "token", "created"):
            assert name not in payload["order"]

    def test_overrides_and_extra_fields(self, entity_factory, token_service):
        payload = entity_factory.build_submission_payload(
            "customer", "Customer",
            overrides={"name": "Ada"},
            extra_trusted_fields=["redirect"],
        )
        assert payload["customer"] == {"name": "Ada", "email": "jane@example.com"}
        assert token_service.read_trusted_fields_token(payload["__trustedProperties"]) == [
            "redirect",
            "customer[name]",
            "customer[email]",
        ]

    def test_persisted_entity_override_becomes_identity(self, entity_factory, token_service):
        customer = entity_factory.create("Customer", persist=True)
        payload = entity_factory.build_submission_payload("order", "Order", overrides={"customer": customer})
        assert payload["order"]["customer"] == entity_factory.identity_argument(customer)
        assert "order[customer][__identity]" in token_service.read_trusted_fields_token(
            payload["__trustedProperties"]
        )

    def test_existing_entity_payload(self, entity_factory, token_service):
        order = entity_factory.create("Order", persist=True)
        payload = entity_factory.build_submission_payload_for_existing(
            "order", order, overrides={"number": 8}, extra_trusted_fields=["redirect"],
        )
        assert payload["order"] == {**entity_factory.identity_argument(order), "number": 8}
        assert token_service.read_trusted_fields_token(payload["__trustedProperties"]) == [
            "redirect",
            "order[__identity]",
            "order[number]",
        ]

    def test_existing_entity_must_be_persisted(self, entity_factory):
        with pytest.raises(UnmanagedEntityError):
            entity_factory.build_submission_payload_for_existing("order", Order())

    def test_argument_names_from_config(self, entitykit_config):
        config = EntityKitConfig(
            entities=entitykit_config.entities,
            trusted_fields_argument="__trusted",
            csrf_argument="__csrf",
        )
        payload = EntityFactory.from_config(config).build_submission_payload("customer", "Customer")
        assert set(payload) == {"customer", "__trusted", "__csrf"}
