"""Unit tests for the recording MemoryEntityPortal."""

import pytest

from keel.adapters.portal import MemoryEntityPortal, PortalRecord
from keel.domain.entity import Operation
from tests.fixtures.models import Customer, Phone

# pylint: disable=magic-value-comparison


class TestMemoryEntityPortal:
    """Tests for what the portal records."""

    @staticmethod
    async def test_records_root_operations() -> None:
        """Each call is recorded with its entity."""
        portal = MemoryEntityPortal()
        customer = Customer.from_source({"name": "Ada"})
        await portal.update(customer)
        await portal.delete(customer)
        assert portal.records == [
            PortalRecord(Operation.UPDATE, "Customer", customer),
            PortalRecord(Operation.DELETE, "Customer", customer),
        ]

    @staticmethod
    async def test_insert_visits_children() -> None:
        """Inserting a root also inserts its new children, in list order."""
        portal = MemoryEntityPortal()
        customer = Customer.create({"name": "Ada"})
        customer.phones.extend([Phone.create({"number": "1"}), Phone.create({"number": "2"})])
        await portal.insert(customer)
        assert portal.operations() == [
            (Operation.INSERT, "Customer"),
            (Operation.INSERT, "Phone"),
            (Operation.INSERT, "Phone"),
        ]

    @staticmethod
    async def test_clean_children_are_skipped() -> None:
        """Unchanged persisted children produce no calls."""
        portal = MemoryEntityPortal()
        customer = Customer.from_source({"name": "Ada"})
        customer.phones.load([Phone.from_source({"number": "1"})])
        customer.age = 3
        await portal.update(customer)
        assert portal.operations() == [(Operation.UPDATE, "Customer")]

    @staticmethod
    async def test_fail_next_raises_once() -> None:
        """fail_next() makes exactly one call raise, recording nothing."""
        portal = MemoryEntityPortal()
        customer = Customer.from_source({"name": "Ada"})
        portal.fail_next(TimeoutError("slow"))
        with pytest.raises(TimeoutError):
            await portal.update(customer)
        assert portal.records == []
        await portal.update(customer)
        assert len(portal.records) == 1
