"""Interfaces (ports) for keel.

Framework-free contracts the object model depends on: the execution-id
generator and the persistence portal used by ``Entity.save()``.

Dependency rule: only imports `keel.domain` for type checking. It may be
imported by `keel.domain`, `keel.adapters` and `keel.bootstrap`.
"""
