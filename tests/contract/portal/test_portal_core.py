"""Contract tests for EntityPortal implementations.

Each test saves an aggregate through ``Entity.save()`` and checks the state
transitions every portal must allow: a completed call leaves the aggregate
clean (or destroyed), whatever the backend does with the data.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from keel.domain.entity import EntityState
from tests.fixtures.models import Customer, Phone

if TYPE_CHECKING:
    from keel.interfaces.portal import EntityPortal

# pylint: disable=unused-argument


async def test_insert_new_aggregate(with_portal: EntityPortal) -> None:
    """A new root with new children is inserted and becomes clean."""
    customer = Customer.create({"name": "Ada"})
    phone = customer.phones.add(Phone.create({"number": "555"}))
    await customer.save()
    assert customer.state is EntityState.CLEAN
    assert phone.state is EntityState.CLEAN


async def test_update_existing_aggregate(with_portal: EntityPortal) -> None:
    """A loaded root with changes is updated and becomes clean."""
    customer = Customer.from_source({"name": "Ada"})
    customer.phones.load([Phone.from_source({"number": "1"})])
    customer.phones[0].number = "2"
    await customer.save()
    assert customer.state is EntityState.CLEAN
    assert not customer.phones.is_modified


async def test_pending_child_deletions_are_released(with_portal: EntityPortal) -> None:
    """Removed children are gone from the aggregate after a save."""
    customer = Customer.from_source({"name": "Ada"})
    customer.phones.load([Phone.from_source({"number": "1"})])
    customer.phones[0].delete()
    await customer.save()
    assert customer.phones.deleted_items == []
    assert not customer.is_modified


async def test_delete_root(with_portal: EntityPortal) -> None:
    """Deleting a persisted root destroys it."""
    customer = Customer.from_source({"name": "Ada"})
    customer.delete()
    await customer.save()
    assert customer.state is EntityState.DESTROYED


async def test_direct_calls_accept_entities(entity_portal: EntityPortal) -> None:
    """The three operations are awaitable and accept any entity."""
    customer = Customer.from_source({"name": "Ada"})
    await entity_portal.insert(customer)
    await entity_portal.update(customer)
    await entity_portal.delete(customer)
