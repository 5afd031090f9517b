"""Unit tests for OSC-8 hyperlink rendering."""

import io

from keel.entrypoints.cli.helpers import hyperlinks

URL = "https://docs.python.org/3/library/logging.html"


class TTY(io.StringIO):
    def isatty(self) -> bool:
        return True


def test_plain_stream_gets_bare_url(monkeypatch):
    """Non-TTY output never carries escape sequences."""
    monkeypatch.setattr(hyperlinks.sys, "stdout", io.StringIO())
    assert hyperlinks.hyperlink(URL, "logging") == URL


def test_known_terminal_gets_osc8(monkeypatch):
    """A TTY on a known terminal receives an OSC-8 link with the label."""
    monkeypatch.setattr(hyperlinks.sys, "stdout", TTY())
    monkeypatch.setenv("TERM_PROGRAM", "WezTerm")
    assert hyperlinks.hyperlink(URL, "logging") == f"\x1b]8;;{URL}\x07logging\x1b]8;;\x07"


def test_unknown_terminal_gets_bare_url(monkeypatch):
    """A TTY on an unrecognised terminal falls back to the URL."""
    for var in ("TERM_PROGRAM", "WT_SESSION", "VTE_VERSION"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("TERM", "dumb")
    assert not hyperlinks.supports_osc8(TTY())
