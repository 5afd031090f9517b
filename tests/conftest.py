"""Global pytest fixtures for keel."""

pytest_plugins = [
    "tests.fixtures.services",
]
