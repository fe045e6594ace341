# dsl.py
from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence, Union

from .model import (
    Action,
    CallableAction,
    CombinedInputs,
    ComputedInputs,
    InputSpec,
    LiteralInputs,
    NoAction,
    Rule,
    ShellAction,
)
from .pattern import expand
from .registry import Registry

InputArg = Union[str, Callable[..., Any], InputSpec, Sequence[Union[str, Callable[..., Any]]], None]


# ---------------------------------------------------------------------
# Action helper
# ---------------------------------------------------------------------

def sh(cmd: str) -> ShellAction:
    """Create a shell action."""
    return ShellAction(template=cmd)


# ---------------------------------------------------------------------
# Input normalization
# ---------------------------------------------------------------------

def inputs_of(value: InputArg) -> InputSpec:
    """
    Turn what a user writes into a tagged InputSpec:

      "data/{sample}.csv"          -> LiteralInputs
      lambda w: [...]              -> ComputedInputs
      ["a.txt", lambda w: ...]     -> CombinedInputs (order preserved)
    """
    if value is None:
        return LiteralInputs()
    if isinstance(value, (LiteralInputs, ComputedInputs, CombinedInputs)):
        return value
    if isinstance(value, str):
        return LiteralInputs((value,))
    if callable(value):
        return ComputedInputs(value)

    parts: List[Union[LiteralInputs, ComputedInputs]] = []
    literals: List[str] = []
    for item in value:
        if isinstance(item, str):
            literals.append(item)
        elif callable(item):
            if literals:
                parts.append(LiteralInputs(tuple(literals)))
                literals = []
            parts.append(ComputedInputs(item))
        else:
            raise TypeError(f"inputs must be strings or callables, got {type(item).__name__}")
    if literals:
        parts.append(LiteralInputs(tuple(literals)))

    if not parts:
        return LiteralInputs()
    if len(parts) == 1:
        return parts[0]
    return CombinedInputs(tuple(parts))


def _action_of(shell: Optional[str], run: Optional[Callable[..., Any]], name: str) -> Action:
    if shell is not None and run is not None:
        raise ValueError(f"rule({name!r}) takes either shell= or run=, not both")
    if shell is not None:
        return sh(shell)
    if run is not None:
        return CallableAction(run)
    return NoAction()


# ---------------------------------------------------------------------
# Functional rule helper
# ---------------------------------------------------------------------

def rule(
    name: str,
    *,
    output: Union[str, Sequence[str], None] = None,
    input: InputArg = None,
    shell: Optional[str] = None,
    run: Optional[Callable[..., Any]] = None,
    message: Optional[str] = None,
) -> Rule:
    outputs = [output] if isinstance(output, str) else list(output or [])
    if not outputs and shell is None and run is None and input is None:
        raise ValueError(f"rule({name!r}) must declare outputs, inputs or an action")

    return Rule(
        name=name,
        outputs=tuple(outputs),
        inputs=inputs_of(input),
        action=_action_of(shell, run, name),
        message=message,
    )


# ---------------------------------------------------------------------
# Builder API
# ---------------------------------------------------------------------

class RuleBuilder:
    def __init__(self, name: str):
        self.name = name
        self._outputs: list[str] = []
        self._inputs: list[Any] = []
        self._shell: Optional[str] = None
        self._run: Optional[Callable[..., Any]] = None
        self._message: Optional[str] = None

    def output(self, *patterns: str):
        self._outputs.extend(patterns)
        return self

    def input(self, *items: Any):
        self._inputs.extend(items)
        return self

    def shell(self, cmd: str):
        self._shell = cmd
        return self

    def run(self, fn: Callable[..., Any]):
        self._run = fn
        return self

    def message(self, text: str):
        self._message = text
        return self

    def build(self) -> Rule:
        return rule(
            self.name,
            output=self._outputs,
            input=self._inputs or None,
            shell=self._shell,
            run=self._run,
            message=self._message,
        )


# ---------------------------------------------------------------------
# Workflow helper (single-file story)
# ---------------------------------------------------------------------

def wf(*rules: Rule) -> Registry:
    """
    Registry from rules; the first rule is the default target.

    Rule files can write:
        from wildmake import wf, rule, expand

        RULES = wf(
            rule("all", input=expand("out/{s}.txt", s=["a", "b"])),
            rule("copy", output="out/{s}.txt", input="in/{s}.txt", shell="cp {input} {output}"),
        )
    """
    return Registry(list(rules))


__all__ = ["sh", "rule", "RuleBuilder", "wf", "expand", "inputs_of"]
