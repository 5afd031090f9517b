"""The `keel` command-line interface."""
