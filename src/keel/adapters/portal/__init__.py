"""Contains concrete implementations of the EntityPortal interface."""

from .memory import MemoryEntityPortal, PortalRecord

__all__ = [
    "MemoryEntityPortal",
    "PortalRecord",
]
