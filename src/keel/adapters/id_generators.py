"""Execution-id generators for keel."""

import threading
import uuid

from ulid import monotonic

from keel.interfaces.id_generator import IdGenerator

# pylint: disable=too-few-public-methods


class ULIDGenerator(IdGenerator):
    """Thread-safe monotonic ULID generator.

    ULIDs are unique, lexicographically sortable identifiers made of a
    timestamp and a random component. Uses the `ulid-py` library.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def new_id(self) -> str:
        """Generate a new ULID (serialized across threads)."""
        with self._lock:
            return str(monotonic.new())


class UUIDv4Generator(IdGenerator):
    """Random UUIDv4 generator; ids carry no ordering."""

    def new_id(self) -> str:
        """Generate a new UUID."""
        return str(uuid.uuid4())


class SimpleIdGenerator(IdGenerator):
    """Counter producing zero-padded, monotonically increasing ids.

    The default generator for object graphs: cheap, ordered and readable in
    logs. Safe to share between threads.
    """

    def __init__(self, length: int = 12) -> None:
        self._counter = 0
        self._length = length
        self._lock = threading.Lock()

    def new_id(self) -> str:
        """Generate the next id in sequence."""
        with self._lock:
            self._counter += 1
            return f"{self._counter:0{self._length}d}"
