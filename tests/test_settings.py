from __future__ import annotations

import os

from wildmake import settings


def test_default_cores_leaves_one_cpu_free(monkeypatch) -> None:
    monkeypatch.delenv("WILDMAKE_CORES", raising=False)
    monkeypatch.setattr(os, "cpu_count", lambda: 8)

    assert settings.default_cores() == 7


def test_default_cores_is_at_least_one(monkeypatch) -> None:
    monkeypatch.delenv("WILDMAKE_CORES", raising=False)
    monkeypatch.setattr(os, "cpu_count", lambda: 1)

    assert settings.default_cores() == 1


def test_cores_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("WILDMAKE_CORES", "3")

    assert settings.default_cores() == 3
