"""Pytest configuration and fixtures for wildmake tests."""
from pathlib import Path

import pytest

from wildmake.ui.console import Console, set_console


@pytest.fixture(autouse=True)
def _fresh_console():
    """Every test starts from a non-debug process-wide console."""
    set_console(Console())
    yield


@pytest.fixture
def write(tmp_path: Path):
    """write("a/b.txt", "text") creates a file under tmp_path and returns its path."""

    def _write(rel: str, content: str = "") -> Path:
        p = tmp_path / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")
        return p

    return _write
