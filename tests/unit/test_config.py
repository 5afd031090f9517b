"""Unit tests for keel.config."""

from pathlib import Path

import pytest

from keel import config
from keel.domain.errors import UnknownIdGeneratorError

# pylint: disable=magic-value-comparison


class TestIdGeneratorName:
    """Tests for get_id_generator_name()."""

    @staticmethod
    def test_default_when_unset(monkeypatch: pytest.MonkeyPatch) -> None:
        """An unset variable selects the simple generator."""
        monkeypatch.delenv(config.ID_GENERATOR_ENV, raising=False)
        assert config.get_id_generator_name() == "simple"

    @staticmethod
    def test_blank_counts_as_unset(monkeypatch: pytest.MonkeyPatch) -> None:
        """An empty value falls back to the default."""
        monkeypatch.setenv(config.ID_GENERATOR_ENV, "")
        assert config.get_id_generator_name() == config.DEFAULT_ID_GENERATOR

    @staticmethod
    def test_value_is_normalized(monkeypatch: pytest.MonkeyPatch) -> None:
        """Surrounding whitespace and case are ignored."""
        monkeypatch.setenv(config.ID_GENERATOR_ENV, "  ULID ")
        assert config.get_id_generator_name() == "ulid"

    @staticmethod
    def test_unknown_name_raises(monkeypatch: pytest.MonkeyPatch) -> None:
        """Unsupported names raise UnknownIdGeneratorError."""
        monkeypatch.setenv(config.ID_GENERATOR_ENV, "snowflake")
        with pytest.raises(UnknownIdGeneratorError, match="snowflake"):
            config.get_id_generator_name()


class TestDefaultLogPath:
    """Tests for default_log_path()."""

    @staticmethod
    def test_latest_log_in_user_log_dir(
        monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """The flight recorder writes latest.log in the user log directory."""
        monkeypatch.setattr(config, "user_log_dir", lambda *a, **kw: str(tmp_path))
        assert config.default_log_path() == tmp_path / "latest.log"
