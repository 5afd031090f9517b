"""KEEL test suite.

Folder taxonomy
- unit/         : Isolated, fast checks of a single module/class/function.
- contract/     : Shared behavior/invariants enforced across multiple implementations.
- e2e/          : The `keel` CLI driven through click's CliRunner.
- fixtures/     : Shared domain models and service fixtures (no tests here).

General guidance
- Keep unit fast and deterministic; prefer the in-memory portal over mocks.
- Async tests run under pytest-asyncio's auto mode; no marker needed.
- Contract parametrizes implementations to ensure consistent behavior.
- Property-based tests live with the layer they exercise and use @pytest.mark.property.
- Markers: unit, contract, e2e, property
"""
