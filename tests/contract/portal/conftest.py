"""Fixtures for EntityPortal contract tests."""

from collections.abc import Iterable

import pytest

from keel.adapters.portal import MemoryEntityPortal
from keel.domain.services import ObjectServices, set_default_services
from keel.interfaces.portal import EntityPortal

# pylint: disable=redefined-outer-name


@pytest.fixture(params=["memory"])
def entity_portal(request: pytest.FixtureRequest) -> Iterable[EntityPortal]:
    """Return a fresh EntityPortal for the requested backend."""
    match request.param:
        case "memory":
            yield MemoryEntityPortal()
        case _:
            raise ValueError(f"unknown portal type: {request.param}")


@pytest.fixture
def with_portal(default_services: ObjectServices, entity_portal: EntityPortal) -> EntityPortal:
    """Install default services that save through ``entity_portal``."""
    set_default_services(default_services.with_portal(entity_portal))
    return entity_portal
