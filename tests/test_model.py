from __future__ import annotations

import copy
import pickle

import pytest

from wildmake.errors import WildcardMismatch
from wildmake.model import Wildcards


def test_wildcards_are_immutable() -> None:
    w = Wildcards({"x": "v"})

    with pytest.raises(AttributeError):
        w.x = "other"


def test_wildcards_survive_copy_and_pickle() -> None:
    w = Wildcards({"sample": "s1", "lane": "2"})

    for clone in (copy.copy(w), copy.deepcopy(w), pickle.loads(pickle.dumps(w))):
        assert clone == w
        assert clone.sample == "s1"
        assert hash(clone) == hash(w)


def test_unknown_wildcard_is_a_mismatch() -> None:
    w = Wildcards({"x": "v"})

    assert w.get("y") is None
    with pytest.raises(WildcardMismatch):
        w.y
