"""Domain-layer error definitions.

Validation outcomes are never raised; they are stored as messages on
properties. The errors below signal programming or lifecycle mistakes and
fail fast.
"""

from enum import Enum

# ============================================================================
#                           General errors
# ============================================================================


class KeelError(Exception):
    """Base class for keel errors."""


class OperationCancelledError(KeelError):
    """Raised by a rule (or rule run) that observed a cancellation request."""

    def __init__(self, message: str = "Operation was cancelled.") -> None:
        super().__init__(message)


# ============================================================================
#                           Property errors
# ============================================================================


class PropertyError(KeelError):
    """Base class for property-related errors."""


class PropertyNotFoundError(PropertyError, KeyError):
    """Raised when a property name is not declared on an object."""

    def __init__(self, owner_type: str, property_name: str) -> None:
        super().__init__(f"{owner_type} has no property named '{property_name}'.")
        self.owner_type = owner_type
        self.property_name = property_name

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class PropertyReadOnlyError(PropertyError):
    """Raised when the public set path is used on a read-only property."""

    def __init__(self, property_name: str) -> None:
        super().__init__(f"Property '{property_name}' is read-only.")
        self.property_name = property_name


class ChildObjectBusyError(PropertyError):
    """Raised when a busy child object is attached to or detached from a graph."""

    def __init__(self, description: str) -> None:
        super().__init__(
            f"Cannot {description} while the child object is busy; "
            "await wait_for_tasks() first."
        )
        self.description = description


# ============================================================================
#                           Rule errors
# ============================================================================


class RuleError(KeelError):
    """Base class for rule-related errors."""


class RuleNotAddedError(RuleError):
    """Raised when running a rule that was never registered with the manager."""

    def __init__(self, rule_name: str) -> None:
        super().__init__(
            f"Rule {rule_name} needs to be added to the RuleManager before it is run."
        )
        self.rule_name = rule_name


class InvalidTriggerError(RuleError):
    """Raised when a rule is constructed without trigger properties."""

    def __init__(self, rule_name: str) -> None:
        super().__init__(f"Rule {rule_name} must declare at least one trigger property.")
        self.rule_name = rule_name


class NoEventLoopError(RuleError):
    """Raised when an asynchronous rule or loader starts outside a running event loop."""

    def __init__(self, what: str) -> None:
        super().__init__(
            f"{what} is asynchronous and requires a running asyncio event loop."
        )
        self.what = what


# ============================================================================
#                           Entity errors
# ============================================================================


class EntityError(KeelError):
    """Base class for entity lifecycle errors."""


class SaveFailureReason(Enum):
    """Why an entity could not be saved."""

    IS_CHILD = "is a child object; save the aggregate root instead"
    IS_INVALID = "is invalid"
    NOT_MODIFIED = "has no changes to save"
    IS_BUSY = "is busy; await wait_for_tasks() first"
    NO_PORTAL = "has no persistence portal configured"


class SaveOperationError(EntityError):
    """Raised when save() is called on an entity that may not be saved."""

    def __init__(self, entity_type: str, reason: SaveFailureReason) -> None:
        super().__init__(f"{entity_type} cannot be saved: it {reason.value}.")
        self.entity_type = entity_type
        self.reason = reason


class AggregateBoundaryError(EntityError):
    """Raised when a list receives an item owned by a different aggregate.

    Also raised when the item is the list's owner or one of its ancestors,
    which would make the graph contain itself.
    """

    def __init__(self, item_type: str, list_type: str, *, owns_list: bool = False) -> None:
        if owns_list:
            detail = "item owns the list. An object cannot be its own child."
        else:
            detail = (
                "item belongs to a different aggregate. Remove it from the "
                "original aggregate first."
            )
        super().__init__(f"Cannot add {item_type} to {list_type}: {detail}")
        self.item_type = item_type
        self.list_type = list_type
        self.owns_list = owns_list


class DuplicateItemError(EntityError):
    """Raised when an item is added while it is an active member of a list."""

    def __init__(self, item_type: str, list_type: str) -> None:
        super().__init__(f"{item_type} is already an active member of a {list_type}.")
        self.item_type = item_type
        self.list_type = list_type


class EntityDestroyedError(EntityError):
    """Raised when a deleted-and-persisted entity is mutated."""

    def __init__(self, entity_type: str) -> None:
        super().__init__(
            f"{entity_type} has been deleted from its source and can no longer change."
        )
        self.entity_type = entity_type


# ============================================================================
#                           Transfer errors
# ============================================================================


class StateTransferError(KeelError):
    """Raised when transferred state does not fit the node it is restored into."""

    def __init__(self, node_type: str, reason: str) -> None:
        super().__init__(f"Cannot restore {node_type}: {reason}")
        self.node_type = node_type
        self.reason = reason


# ============================================================================
#                           Configuration errors
# ============================================================================


class ConfigurationError(KeelError):
    """Base class for configuration and wiring errors."""


class ServicesNotConfiguredError(ConfigurationError):
    """Raised when an object is created before default services are installed."""

    def __init__(self) -> None:
        super().__init__(
            "No default ObjectServices installed. Call keel.bootstrap.bootstrap() "
            "or pass services= explicitly."
        )


class UnknownIdGeneratorError(ConfigurationError):
    """Raised when KEEL_ID_GENERATOR names an unsupported generator."""

    def __init__(self, name: str, supported: tuple[str, ...]) -> None:
        super().__init__(
            f"Unknown id generator '{name}'. Supported: {', '.join(supported)}."
        )
        self.name = name
        self.supported = supported
