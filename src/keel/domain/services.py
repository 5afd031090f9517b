"""Services injected into object graphs.

Each object receives an :class:`ObjectServices` explicitly (``services=``)
or inherits its parent's. A root created without one uses the default
installed by ``keel.bootstrap.bootstrap()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from keel.domain.errors import ServicesNotConfiguredError
from keel.domain.rules.constraints import ConstraintTranslator

if TYPE_CHECKING:
    from keel.interfaces.id_generator import IdGenerator
    from keel.interfaces.portal import EntityPortal


@dataclass(frozen=True)
class ObjectServices:
    """Collaborators shared by every node of an object graph.

    Attributes:
        id_generator: Source of execution ids for asynchronous work.
        constraints: Translates declarative constraints into rules.
        portal: Persistence boundary used by ``Entity.save()``.
    """

    id_generator: IdGenerator
    constraints: ConstraintTranslator = field(default_factory=ConstraintTranslator)
    portal: EntityPortal | None = None

    def with_portal(self, portal: EntityPortal | None) -> ObjectServices:
        """Return a copy using ``portal``."""
        return replace(self, portal=portal)


_default_services: ObjectServices | None = None


def set_default_services(services: ObjectServices | None) -> None:
    """Install (or with None, remove) the process-wide default services."""
    global _default_services  # pylint: disable=global-statement
    _default_services = services


def get_default_services() -> ObjectServices:
    """Return the installed default services.

    Raises:
        ServicesNotConfiguredError: If none were installed.
    """
    if _default_services is None:
        raise ServicesNotConfiguredError
    return _default_services
