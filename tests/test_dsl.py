from __future__ import annotations

from pathlib import Path

import pytest

from wildmake.dsl import RuleBuilder, inputs_of, rule, sh, wf
from wildmake.errors import RuleFileError
from wildmake.loader import load_rules
from wildmake.model import (
    CallableAction,
    CombinedInputs,
    ComputedInputs,
    LiteralInputs,
    NoAction,
    ShellAction,
)


def _lanes(wildcards):
    return [f"{wildcards.sample}_1.fq", f"{wildcards.sample}_2.fq"]


def test_inputs_of_builds_tagged_variants() -> None:
    assert inputs_of(None) == LiteralInputs()
    assert inputs_of("a.txt") == LiteralInputs(("a.txt",))
    assert inputs_of(_lanes) == ComputedInputs(_lanes)
    assert inputs_of(["a", "b"]) == LiteralInputs(("a", "b"))
    assert inputs_of(["a", _lanes, "b"]) == CombinedInputs(
        (LiteralInputs(("a",)), ComputedInputs(_lanes), LiteralInputs(("b",)))
    )


def test_inputs_of_rejects_other_types() -> None:
    with pytest.raises(TypeError):
        inputs_of(["a", 3])


def test_rule_picks_action_variant() -> None:
    assert rule("s", output="x", shell="touch {output}").action == sh("touch {output}")
    assert isinstance(rule("r", output="x", run=print).action, CallableAction)
    assert isinstance(rule("n", input=["x"]).action, NoAction)


def test_rule_rejects_shell_and_run_together() -> None:
    with pytest.raises(ValueError):
        rule("both", output="x", shell="true", run=print)


def test_rule_needs_something_to_do() -> None:
    with pytest.raises(ValueError):
        rule("empty")


def test_shell_fingerprint_tracks_template_text() -> None:
    assert ShellAction("cp a b").fingerprint() == ShellAction("cp a b").fingerprint()
    assert ShellAction("cp a b").fingerprint() != ShellAction("cp a c").fingerprint()


def test_builder_matches_functional_form() -> None:
    built = (
        RuleBuilder("merge")
        .output("merged/{sample}.fq")
        .input("ref.fa", _lanes)
        .shell("cat {input} > {output}")
        .message("merging lanes")
        .build()
    )

    assert built == rule(
        "merge",
        output="merged/{sample}.fq",
        input=["ref.fa", _lanes],
        shell="cat {input} > {output}",
        message="merging lanes",
    )


def test_wf_registers_in_order() -> None:
    registry = wf(rule("all", input=["a.out"]), rule("make", output="{x}.out", shell="touch {output}"))

    assert registry.default_target() == "all"
    assert "make" in registry


def test_load_rules_from_rules_function(tmp_path: Path, write) -> None:
    path = write(
        "rules.py",
        "from wildmake import rule\n"
        "\n"
        "def rules(registry):\n"
        "    registry.register(rule('copy', output='{x}.out', input='{x}.in', shell='cp {input} {output}'))\n",
    )

    registry = load_rules(path)

    assert [r.name for r in registry] == ["copy"]


def test_load_rules_from_rules_list(tmp_path: Path, write) -> None:
    path = write(
        "rules.py",
        "from wildmake import rule, expand\n"
        "RULES = [\n"
        "    rule('all', input=expand('{x}.out', x=['a', 'b'])),\n"
        "    rule('copy', output='{x}.out', input='{x}.in', shell='cp {input} {output}'),\n"
        "]\n",
    )

    registry = load_rules(path)

    assert registry.default_target() == "all"
    assert len(registry) == 2


def test_load_rules_rejects_file_without_rules(tmp_path: Path, write) -> None:
    path = write("rules.py", "X = 1\n")

    with pytest.raises(RuleFileError):
        load_rules(path)


def test_load_rules_wraps_errors_raised_by_the_file(tmp_path: Path, write) -> None:
    path = write("rules.py", "raise RuntimeError('bad config')\n")

    with pytest.raises(RuleFileError) as exc:
        load_rules(path)

    assert "bad config" in exc.value.message


def test_load_rules_missing_file(tmp_path: Path) -> None:
    with pytest.raises(RuleFileError):
        load_rules(tmp_path / "nope.py")


def test_load_rules_wraps_errors_raised_while_registering(tmp_path: Path, write) -> None:
    path = write(
        "rules.py",
        "def rules(registry):\n"
        "    raise KeyError('sample sheet missing')\n",
    )

    with pytest.raises(RuleFileError) as exc:
        load_rules(path)

    assert "sample sheet missing" in exc.value.message
