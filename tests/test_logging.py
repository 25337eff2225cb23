"""Tests for promptforge.logging."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from promptforge.logging import configure_logging, get_logger, resolve_level


@pytest.fixture(autouse=True)
def _restore_package_logger():
    yield
    logger = configure_logging()
    logger.setLevel(logging.INFO)


def test_get_logger_namespaces_names() -> None:
    assert get_logger().name == "promptforge"
    assert get_logger("stores.library").name == "promptforge.stores.library"
    assert get_logger("promptforge.cli").name == "promptforge.cli"


def test_resolve_level() -> None:
    assert resolve_level() == logging.INFO
    assert resolve_level(verbose=True, level="error") == logging.DEBUG
    assert resolve_level(level=" warning ") == logging.WARNING
    assert resolve_level(level=logging.ERROR) == logging.ERROR
    with pytest.raises(ValueError):
        resolve_level(level="chatty")


def test_reconfiguring_replaces_only_own_handlers() -> None:
    logger = logging.getLogger("promptforge")
    foreign = logging.NullHandler()
    logger.addHandler(foreign)
    try:
        configure_logging()
        configure_logging(verbose=True)

        own = [h for h in logger.handlers if (h.get_name() or "").startswith("promptforge.")]
        assert len(own) == 1
        assert foreign in logger.handlers
        assert logger.level == logging.DEBUG
    finally:
        logger.removeHandler(foreign)


def test_file_sink_receives_records(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "promptforge.log"
    configure_logging(level="debug", log_file=log_file)

    get_logger("tests").debug("hello from the test")
    for handler in logging.getLogger("promptforge").handlers:
        handler.flush()

    content = log_file.read_text(encoding="utf-8")
    assert "DEBUG promptforge.tests: hello from the test" in content
