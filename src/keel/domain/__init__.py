"""Domain layer for keel.

The object model itself: properties, rules, validatable objects, entities
and their lists, plus the error taxonomy. Deliberately technology-agnostic.

Dependency rule: do not import from `keel.adapters`, `keel.bootstrap` or
`keel.entrypoints`.
"""
