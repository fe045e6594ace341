from __future__ import annotations

import pytest

from wildmake.dag import build_dag, topo_levels
from wildmake.errors import CyclicDependency
from wildmake.model import Job, Rule, Wildcards


def _job(name: str, *deps: Job) -> Job:
    return Job(rule=Rule(name=name, outputs=(f"{name}.out",)), wildcards=Wildcards(), dependencies=list(deps))


def test_dependencies_outside_the_set_count_as_satisfied() -> None:
    done = _job("done")
    todo = _job("todo", done)

    adj, indeg = build_dag([todo])

    assert indeg == {todo: 0}
    assert adj == {todo: set()}


def test_levels_are_sorted_and_respect_edges() -> None:
    a = _job("a")
    b = _job("b")
    c = _job("c", a, b)
    d = _job("d", c)

    levels = topo_levels(*build_dag([d, c, b, a]))

    assert [[j.name for j in level] for level in levels] == [["a", "b"], ["c"], ["d"]]


def test_cycle_is_reported() -> None:
    a = _job("a")
    b = _job("b", a)
    a.dependencies.append(b)

    with pytest.raises(CyclicDependency) as exc:
        topo_levels(*build_dag([a, b]))

    assert exc.value.details["stuck"] == ["a", "b"]
