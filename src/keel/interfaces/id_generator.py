"""Interface for execution-id generators."""

import abc

# pylint: disable=too-few-public-methods


class IdGenerator(abc.ABC):
    """Contract for an ID generator.

    Every asynchronous rule execution and lazy load is tagged with an id from
    the generator injected into the object graph; busy state is tracked per
    id, so ids must be unique within a process.
    """

    @abc.abstractmethod
    def new_id(self) -> str:
        """Generate a new unique identifier."""
