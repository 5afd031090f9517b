"""Bootstrap (composition root) for keel.

Chooses concrete adapters (execution-id generator, persistence portal),
composes them into the ObjectServices container shared by object graphs,
and installs it as the process default.

Import rules:
- Entry points import *this* package to obtain services.
- This package may import: `keel.adapters`, `keel.interfaces`,
  `keel.domain`, and `keel.config`.
- Inner layers must not import `keel.bootstrap`.
"""

from .bootstrap import AppContainer, bootstrap, build_id_generator, build_services

__all__ = ["AppContainer", "bootstrap", "build_id_generator", "build_services"]
