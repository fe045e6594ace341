from __future__ import annotations
import os

DEFAULT_RULEFILE = "wildmake_rules.py"
DEFAULT_METADATA_DIR = ".wildmake/metadata"


def metadata_dir() -> str:
    return os.environ.get("WILDMAKE_METADATA_DIR", DEFAULT_METADATA_DIR)


def default_cores() -> int:
    """WILDMAKE_CORES if set, otherwise all but one CPU."""
    env = os.environ.get("WILDMAKE_CORES")
    if env:
        return max(1, int(env))
    c = os.cpu_count() or 2
    return max(1, c - 1)
