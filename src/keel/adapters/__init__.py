"""Adapters (infrastructure) for keel.

Concrete implementations of the ports in `keel.interfaces`: id generators
and persistence portals.

Dependency rule: may import `keel.domain` and `keel.interfaces`; the domain
must not import this package.
"""
