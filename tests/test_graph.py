from __future__ import annotations

from pathlib import Path

import pytest

from wildmake import expand, rule
from wildmake.errors import CyclicDependency, InputFunctionError, NoRuleFound, WildcardMismatch
from wildmake.graph import build_graph
from wildmake.registry import Registry


def _chain() -> Registry:
    return Registry([
        rule("to_b", output="{n}.b", input="{n}.a", shell="cp {input} {output}"),
        rule("to_c", output="{n}.c", input="{n}.b", shell="cp {input} {output}"),
    ])


def test_existing_source_without_rule_gives_zero_jobs(tmp_path: Path, write) -> None:
    write("in.txt", "x")

    dag = build_graph(Registry(), ["in.txt"], workdir=tmp_path)

    assert len(dag) == 0
    assert dag.targets == []


def test_chain_resolves_recursively_in_dependency_order(tmp_path: Path, write) -> None:
    write("s.a", "x")

    dag = build_graph(_chain(), ["s.c"], workdir=tmp_path)

    assert [j.name for j in dag.jobs] == ["to_b[n=s]", "to_c[n=s]"]
    to_b, to_c = dag.jobs
    assert to_c.inputs == ("s.b",)
    assert to_c.outputs == ("s.c",)
    assert dag.dependencies(to_c) == [to_b]
    assert dag.dependents(to_b) == [to_c]
    assert dag.dependencies(to_b) == []
    assert dag.targets == [to_c]


def test_missing_input_without_rule_fails_naming_consumer(tmp_path: Path) -> None:
    with pytest.raises(NoRuleFound) as exc:
        build_graph(_chain(), ["s.c"], workdir=tmp_path)

    assert exc.value.target == "s.a"
    assert exc.value.rule == "to_b"
    assert exc.value.details["required_by"] == "to_b[n=s]"


def test_unknown_top_level_target_fails(tmp_path: Path) -> None:
    with pytest.raises(NoRuleFound) as exc:
        build_graph(_chain(), ["nothing.here"], workdir=tmp_path)

    assert exc.value.target == "nothing.here"
    assert exc.value.rule is None


def test_mutual_rules_form_a_cycle(tmp_path: Path) -> None:
    registry = Registry([
        rule("A", output="{n}.a", input="{n}.b", shell="cp {input} {output}"),
        rule("B", output="{n}.b", input="{n}.a", shell="cp {input} {output}"),
    ])

    with pytest.raises(CyclicDependency) as exc:
        build_graph(registry, ["x.a"], workdir=tmp_path)

    assert exc.value.details["cycle"] == ["x.a", "x.b", "x.a"]
    assert exc.value.rule == "B"


def test_input_function_receives_binding(tmp_path: Path, write) -> None:
    write("raw/s1_L1.fq")
    write("raw/s1_L2.fq")
    seen = []

    def lanes(wildcards):
        seen.append(dict(wildcards))
        return [f"raw/{wildcards.sample}_L{i}.fq" for i in (1, 2)]

    registry = Registry([rule("merge", output="merged/{sample}.fq", input=lanes, shell="cat {input} > {output}")])

    dag = build_graph(registry, ["merged/s1.fq"], workdir=tmp_path)

    assert seen == [{"sample": "s1"}]
    assert dag.jobs[0].inputs == ("raw/s1_L1.fq", "raw/s1_L2.fq")


def test_input_function_may_return_single_string(tmp_path: Path, write) -> None:
    write("ref.fa")
    registry = Registry([rule("index", output="{g}.idx", input=lambda w: "ref.fa", shell="touch {output}")])

    dag = build_graph(registry, ["hg.idx"], workdir=tmp_path)

    assert dag.jobs[0].inputs == ("ref.fa",)


def test_literal_and_computed_inputs_keep_declaration_order(tmp_path: Path, write) -> None:
    for name in ("a.cfg", "a.dat", "common.txt"):
        write(name)
    registry = Registry([
        rule(
            "mix",
            output="{x}.out",
            input=["{x}.cfg", lambda w: [f"{w.x}.dat"], "common.txt"],
            shell="cat {input} > {output}",
        )
    ])

    dag = build_graph(registry, ["a.out"], workdir=tmp_path)

    assert dag.jobs[0].inputs == ("a.cfg", "a.dat", "common.txt")


def test_input_function_with_undefined_wildcard_is_a_mismatch(tmp_path: Path) -> None:
    registry = Registry([rule("bad", output="{x}.out", input=lambda w: w.lane + ".in")])

    with pytest.raises(WildcardMismatch) as exc:
        build_graph(registry, ["a.out"], workdir=tmp_path)

    assert exc.value.rule == "bad"
    assert exc.value.target == "a.out"


def test_raising_input_function_is_wrapped(tmp_path: Path) -> None:
    def broken(wildcards):
        raise RuntimeError("lookup table missing")

    registry = Registry([rule("bad", output="{x}.out", input=broken)])

    with pytest.raises(InputFunctionError) as exc:
        build_graph(registry, ["a.out"], workdir=tmp_path)

    assert "lookup table missing" in exc.value.message
    assert exc.value.rule == "bad"


def test_multi_output_rule_is_one_job(tmp_path: Path, write) -> None:
    write("m.src")
    registry = Registry([
        rule("gen", output=["{x}.h", "{x}.cpp"], input="{x}.src", shell="gen {input}"),
        rule("lib", output="{x}.lib", input=["{x}.h", "{x}.cpp"], shell="ar {output} {input}"),
    ])

    dag = build_graph(registry, ["m.lib"], workdir=tmp_path)

    assert [j.name for j in dag.jobs] == ["gen[x=m]", "lib[x=m]"]
    assert len(dag.jobs[1].dependencies) == 1


def test_rule_name_is_a_valid_target(tmp_path: Path, write) -> None:
    write("a.a")
    write("b.a")
    registry = Registry([
        rule("all", input=expand("{n}.b", n=["a", "b"])),
        rule("to_b", output="{n}.b", input="{n}.a", shell="cp {input} {output}"),
    ])

    dag = build_graph(registry, ["all"], workdir=tmp_path)

    assert [j.name for j in dag.jobs] == ["to_b[n=a]", "to_b[n=b]", "all"]
    assert dag.jobs[-1].outputs == ()


def test_existing_output_with_missing_inputs_is_a_source(tmp_path: Path, write) -> None:
    write("a.out", "prebuilt")
    registry = Registry([rule("make", output="{x}.out", input="{x}.in", shell="cp {input} {output}")])

    dag = build_graph(registry, ["a.out"], workdir=tmp_path)

    assert len(dag) == 0


def test_existing_output_with_present_inputs_still_gets_a_job(tmp_path: Path, write) -> None:
    write("a.in")
    write("a.out")
    registry = Registry([rule("make", output="{x}.out", input="{x}.in", shell="cp {input} {output}")])

    dag = build_graph(registry, ["a.out"], workdir=tmp_path)

    assert [j.name for j in dag.jobs] == ["make[x=a]"]


def test_levels_group_independent_jobs(tmp_path: Path, write) -> None:
    write("r.a")
    registry = Registry([
        rule("left", output="{n}.l", input="{n}.a", shell="cp {input} {output}"),
        rule("right", output="{n}.r", input="{n}.a", shell="cp {input} {output}"),
        rule("join", output="{n}.j", input=["{n}.l", "{n}.r"], shell="cat {input} > {output}"),
    ])

    dag = build_graph(registry, ["r.j"], workdir=tmp_path)

    levels = [[j.name for j in level] for level in dag.levels()]
    assert levels == [["left[n=r]", "right[n=r]"], ["join[n=r]"]]
