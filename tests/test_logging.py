"""Tests for logging configuration."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from assetpress.logging import configure_logging


def _cleanup(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_configure_logging_defaults_to_console(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    logger = configure_logging()

    try:
        assert logger.name == "assetpress"
        assert logger.level == logging.INFO
        assert not any(hasattr(h, "baseFilename") for h in logger.handlers)
        assert len(logger.handlers) == 1
        assert list(tmp_path.iterdir()) == []
    finally:
        _cleanup(logger)


@pytest.mark.parametrize(
    "provided,expected",
    [
        (Path("custom.log"), "custom.log"),
        (Path("logs"), "logs/assetpress.log"),
    ],
)
def test_configure_logging_with_override(tmp_path, monkeypatch, provided, expected):
    monkeypatch.chdir(tmp_path)
    logger = configure_logging(log_path=provided, level="debug", mirror_to_console=False)

    try:
        handler = next(h for h in logger.handlers if hasattr(h, "baseFilename"))
        log_path = Path(handler.baseFilename)
        assert log_path == tmp_path / expected
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        logger.debug("test message")
        handler.flush()
        assert "test message" in log_path.read_text(encoding="utf-8")
    finally:
        _cleanup(logger)


def test_configure_logging_replaces_previous_handlers(tmp_path):
    first = configure_logging(log_path=tmp_path / "one.log")
    second = configure_logging(level="warn")

    try:
        assert first is second
        assert len(second.handlers) == 1
        assert second.level == logging.WARNING
    finally:
        _cleanup(second)


def test_configure_logging_rejects_unknown_level():
    with pytest.raises(ValueError):
        configure_logging(level="loud")
