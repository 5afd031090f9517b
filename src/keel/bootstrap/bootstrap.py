"""Build the ObjectServices container and install it as the default."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from keel import config
from keel.adapters.id_generators import SimpleIdGenerator, ULIDGenerator, UUIDv4Generator
from keel.domain.errors import UnknownIdGeneratorError
from keel.domain.rules.constraints import ConstraintTranslator
from keel.domain.services import ObjectServices, set_default_services

if TYPE_CHECKING:
    from keel.interfaces.id_generator import IdGenerator
    from keel.interfaces.portal import EntityPortal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppContainer:
    """A class to hold application wiring constants."""

    services: ObjectServices
    id_generator_name: str


def build_id_generator(name: str) -> IdGenerator:
    """Build the execution-id generator registered under ``name``."""
    match name:
        case "simple":
            return SimpleIdGenerator()
        case "ulid":
            return ULIDGenerator()
        case "uuid4":
            return UUIDv4Generator()
        case _:
            raise UnknownIdGeneratorError(name, config.ID_GENERATORS)


def build_services(
    id_generator: IdGenerator,
    portal: EntityPortal | None = None,
    constraints: ConstraintTranslator | None = None,
) -> ObjectServices:
    """Build an ObjectServices container with injected dependencies."""
    return ObjectServices(
        id_generator=id_generator,
        constraints=constraints or ConstraintTranslator(),
        portal=portal,
    )


def bootstrap(
    portal: EntityPortal | None = None, id_generator_name: str | None = None
) -> AppContainer:
    """Compose the default services from configuration and install them.

    Args:
        portal: Persistence boundary for ``Entity.save()``; none by default.
        id_generator_name: Overrides ``KEEL_ID_GENERATOR``.
    """
    name = id_generator_name or config.get_id_generator_name()
    services = build_services(build_id_generator(name), portal=portal)
    set_default_services(services)
    logger.debug(
        "Installed default services (id generator=%s, portal=%s)",
        name,
        type(portal).__name__ if portal is not None else None,
    )
    return AppContainer(services=services, id_generator_name=name)
