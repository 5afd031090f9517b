"""Unit tests for dumping and restoring object graph state."""

from __future__ import annotations

import json

import pytest

from keel.adapters.id_generators import SimpleIdGenerator
from keel.domain.entity import EntityState
from keel.domain.errors import StateTransferError
from keel.domain.messages import Message
from keel.domain.properties import prop
from keel.domain.services import ObjectServices, set_default_services
from keel.domain.transfer import dump_state, restore_state
from keel.domain.validatable import ValidatableObject
from tests.fixtures.models import Address, Customer, Note, Phone, Tag, TagList

# pylint: disable=magic-value-comparison,too-few-public-methods


class Envelope(ValidatableObject):
    address = prop(Address)
    payload = prop()


def _over_the_wire(state: dict) -> dict:
    return json.loads(json.dumps(state))


def _customer_with_history() -> Customer:
    customer = Customer.from_source({"name": "Ada", "age": 36})
    customer.phones.load(
        [Phone.from_source({"number": "1"}), Phone.from_source({"number": "2"})]
    )
    customer.phones.remove(customer.phones[1])
    customer.name = ""
    return customer


class TestRoundTrip:
    """Tests for restoring a snapshot into a fresh graph."""

    @staticmethod
    def test_values_flags_and_messages_survive() -> None:
        """A restored aggregate matches the original's observable state."""
        source = _customer_with_history()
        target = restore_state(Customer(), _over_the_wire(dump_state(source)))

        assert isinstance(target, Customer)
        assert (target.name, target.age) == ("", 36)
        assert target.phone_count == source.phone_count
        assert target.state is EntityState.MODIFIED
        assert not target.is_new
        assert target.modified_properties == source.modified_properties
        assert target.messages == [
            Message("name", "Name is required.", "Customer.name:Required")
        ]
        assert not target.is_paused

    @staticmethod
    def test_entity_list_members_and_deletions() -> None:
        """Active members and pending deletions are rebuilt in place."""
        target = restore_state(Customer(), dump_state(_customer_with_history()))
        assert [p.number for p in target.phones] == ["1"]
        assert [p.number for p in target.phones.deleted_items] == ["2"]
        assert target.phones[0].parent is target
        assert target.phones[0].is_child
        assert target.phones.deleted_items[0].is_deleted

    @staticmethod
    def test_restored_messages_are_replaced_by_rule_runs() -> None:
        """Rules running after a restore retract the messages they produced."""
        target = restore_state(Customer(), dump_state(_customer_with_history()))
        target.name = "Bob"
        assert target.messages == []
        assert target.is_valid

    @staticmethod
    def test_plain_lists_and_value_objects() -> None:
        """Non-entity lists and child objects are restored as well."""
        note = Note()
        note.load_values({"text": "hello"})
        tag = Tag()
        tag.load_values({"label": "urgent"})
        note.tags.append(tag)
        target = restore_state(Note(), dump_state(note))
        assert target.text == "hello"
        assert [t.label for t in target.tags] == ["urgent"]

    @staticmethod
    def test_missing_child_is_constructed_from_declared_type() -> None:
        """A child absent in the fresh object is built from the property type."""
        source = Envelope()
        address = Address()
        address.load_values({"street": "Main St"})
        source.address = address
        target = restore_state(Envelope(), dump_state(source))
        assert isinstance(target.address, Address)
        assert target.address.street == "Main St"
        assert target.address.parent is target


class TestExplicitServices:
    """Tests for restoring graphs that carry their own services."""

    @staticmethod
    def test_restore_without_default_services() -> None:
        """Children rebuilt during a restore use the target's services."""
        set_default_services(None)
        services = ObjectServices(id_generator=SimpleIdGenerator())
        source = Customer.from_source({"name": "Ada"}, services=services)
        source.phones.load(
            [
                Phone.from_source({"number": "1"}, services=services),
                Phone.from_source({"number": "2"}, services=services),
            ]
        )
        source.phones.remove(source.phones[1])

        target = restore_state(
            Customer(services=services), _over_the_wire(dump_state(source))
        )
        assert [p.number for p in target.phones] == ["1"]
        assert [p.number for p in target.phones.deleted_items] == ["2"]
        assert target.address.services is services
        assert all(p.services is services for p in target.phones)


class TestErrors:
    """Tests for snapshots that cannot be restored."""

    @staticmethod
    def test_type_mismatch() -> None:
        """A snapshot of one type cannot be restored into another."""
        with pytest.raises(StateTransferError, match="Cannot restore Note"):
            restore_state(Note(), dump_state(Customer.create({"name": "Ada"})))

    @staticmethod
    def test_child_without_node_type() -> None:
        """Child state for an untyped property cannot be rebuilt."""
        state = {"properties": {"payload": {"node": {"properties": {}}}}}
        with pytest.raises(StateTransferError, match="payload"):
            restore_state(Envelope(), state)

    @staticmethod
    def test_deleted_items_in_plain_list() -> None:
        """Only entity lists accept pending deletions."""
        with pytest.raises(StateTransferError):
            restore_state(TagList(), {"items": [], "deleted_items": [{}]})

    @staticmethod
    def test_dump_rejects_non_nodes() -> None:
        """Only objects and lists can be dumped."""
        with pytest.raises(TypeError):
            dump_state("not a node")  # type: ignore[arg-type]
