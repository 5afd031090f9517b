"""KEEL

A runtime object model for validated, change-tracked domain aggregates.
Properties trigger synchronous and asynchronous rules; validity, busy and
persistence state are aggregated across each object graph.
"""

from keel.domain.collections import EntityList, ValidatableList
from keel.domain.entity import Entity, EntityState
from keel.domain.messages import Message
from keel.domain.properties import prop
from keel.domain.rules.base import CancellationToken, RunRulesFlag
from keel.domain.validatable import ValidatableObject

__all__ = [
    "CancellationToken",
    "Entity",
    "EntityList",
    "EntityState",
    "Message",
    "RunRulesFlag",
    "ValidatableList",
    "ValidatableObject",
    "__version__",
    "prop",
]
__version__ = "0.1.0"
