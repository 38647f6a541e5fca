"""Shared fixtures for unit tests."""

import logging
from pathlib import Path

import pytest

from tests.utils.files import populate_directory


@pytest.fixture(autouse=True)
def enable_log_propagation():
    """Ensure logs propagate to root so caplog can catch them."""
    logger = logging.getLogger("static_server")
    old_propagate = logger.propagate
    old_level = logger.level
    old_handlers = list(logger.handlers)
    logger.propagate = True
    yield
    for handler in logger.handlers:
        if handler not in old_handlers:
            handler.close()
    logger.handlers[:] = old_handlers
    logger.setLevel(old_level)
    logger.propagate = old_propagate


@pytest.fixture(name="served_directory")
def served_directory_fixture(tmp_path: Path) -> Path:
    """Provide a root directory holding index.html and sub/file.txt."""
    root = tmp_path / "root"
    root.mkdir()
    return populate_directory(root)
