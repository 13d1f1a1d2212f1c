"""Tests for the console logger."""

import pytest

from markdown_docgen.log import ConsoleLogger, get_logger


def test_tags(capsys: pytest.CaptureFixture) -> None:
    log = ConsoleLogger()
    log.info("starting")
    log.warning("careful")
    log.error("broken")
    log.success("done")

    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 4
    for tag, message, line in zip(["[INFO]", "[WARNING]", "[ERROR]", "[OK]"],
                                  ["starting", "careful", "broken", "done"], lines):
        assert tag in line
        assert line.endswith(message)


def test_debug_only_when_enabled(capsys: pytest.CaptureFixture) -> None:
    ConsoleLogger().debug("hidden")
    ConsoleLogger(debug=True).debug("shown")

    out = capsys.readouterr().out
    assert "hidden" not in out
    assert "[DEBUG]" in out and "shown" in out


def test_default_logger_is_shared() -> None:
    assert get_logger() is get_logger()
