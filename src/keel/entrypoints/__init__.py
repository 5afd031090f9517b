"""Entrypoints (inbound adapters) for keel.

Expose the object model to the outside world: currently the `keel` developer
CLI, which inspects and validates user-defined object classes.

Dependency rule: may import `keel.bootstrap` and `keel.domain`; avoid
importing `keel.adapters` directly.
"""
