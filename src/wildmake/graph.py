# graph.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from .dag import build_dag, topo_levels
from .errors import (
    CyclicDependency,
    InputFunctionError,
    NoRuleFound,
    WildcardMismatch,
    WildmakeError,
)
from .model import (
    CombinedInputs,
    ComputedInputs,
    Files,
    InputSpec,
    Job,
    LiteralInputs,
    Rule,
    Wildcards,
)
from .pattern import format_pattern
from .registry import Registry
from .ui.console import Console, get_console


class DAG:
    """Jobs in topological order plus their dependency edges."""

    def __init__(self, targets: List[Job], jobs: List[Job]):
        self.targets = targets
        self.jobs = jobs
        self._dependents: Dict[Job, List[Job]] = {j: [] for j in jobs}
        for j in jobs:
            for dep in j.dependencies:
                self._dependents[dep].append(j)

    def dependencies(self, job: Job) -> List[Job]:
        return list(job.dependencies)

    def dependents(self, job: Job) -> List[Job]:
        return list(self._dependents.get(job, []))

    def levels(self) -> List[List[Job]]:
        adj, indeg = build_dag(self.jobs)
        return topo_levels(adj, indeg)

    def __iter__(self) -> Iterator[Job]:
        return iter(self.jobs)

    def __len__(self) -> int:
        return len(self.jobs)

    def __contains__(self, job: object) -> bool:
        return job in self._dependents


def _flatten(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, os.PathLike):
        yield os.fspath(value)
    elif isinstance(value, Iterable) and not isinstance(value, (bytes, dict)):
        for item in value:
            yield from _flatten(item)
    else:
        raise TypeError(
            f"input functions must return a string or a sequence of strings, got {type(value).__name__}"
        )


class GraphBuilder:
    """
    Resolves targets into jobs, recursively.

    A target is produced by the unique rule whose output matches it. Inputs
    are resolved the same way; an input no rule produces must exist as a
    source file. Targets currently being resolved are kept on a stack so a
    target that (transitively) needs itself fails instead of looping.
    """

    def __init__(
        self,
        registry: Registry,
        *,
        workdir: str | Path = ".",
        console: Optional[Console] = None,
    ):
        self.registry = registry
        self.workdir = Path(workdir)
        self.console = console or get_console()
        self._jobs: Dict[Tuple[str, Tuple[Tuple[str, str], ...]], Job] = {}
        self._resolved: Dict[str, Optional[Job]] = {}
        self._stack: List[str] = []
        self._in_progress: Set[Tuple[str, Tuple[Tuple[str, str], ...]]] = set()

    def _exists(self, path: str) -> bool:
        return (self.workdir / path).exists()

    def _find_rule(self, target: str) -> Optional[Tuple[Rule, Wildcards]]:
        found = self.registry.find(target)
        if found is not None:
            r, wildcards, _idx = found
            return r, wildcards
        # plain rule names (e.g. "all") are valid targets for rules without wildcards
        if target in self.registry:
            r = self.registry.get(target)
            if not r.wildcard_names:
                return r, Wildcards()
        return None

    # ------------------------------------------------------------------
    # Input resolution
    # ------------------------------------------------------------------

    def _expand_spec(self, spec: InputSpec, wildcards: Wildcards, rule: Rule, target: str) -> Iterator[str]:
        if isinstance(spec, LiteralInputs):
            for template in spec.templates:
                yield format_pattern(template, wildcards)
        elif isinstance(spec, ComputedInputs):
            try:
                value = spec.function(wildcards)
                resolved = list(_flatten(value))
            except WildmakeError:
                raise
            except Exception as e:
                raise InputFunctionError(
                    message=f"input function failed: {e}",
                    target=target,
                    rule=rule.name,
                    details={"function": getattr(spec.function, "__qualname__", repr(spec.function))},
                ) from e
            yield from resolved
        elif isinstance(spec, CombinedInputs):
            for part in spec.parts:
                yield from self._expand_spec(part, wildcards, rule, target)
        else:
            raise TypeError(f"Unknown input spec for rule '{rule.name}': {spec!r}")

    def resolve_inputs(self, rule: Rule, wildcards: Wildcards, target: str) -> Files:
        try:
            return Files(self._expand_spec(rule.inputs, wildcards, rule, target))
        except WildcardMismatch as e:
            if e.target is None:
                e.target = target
            if e.rule is None:
                e.rule = rule.name
            raise

    # ------------------------------------------------------------------
    # Target resolution
    # ------------------------------------------------------------------

    def resolve(self, target: str, *, required_by: Optional[Job] = None) -> Optional[Job]:
        """
        Resolve target into the job producing it, or None for a plain source file.
        """
        if target in self._stack:
            cycle = self._stack[self._stack.index(target):] + [target]
            raise CyclicDependency(
                message=" -> ".join(cycle),
                target=target,
                rule=required_by.rule.name if required_by else None,
                details={"cycle": cycle},
            )
        if target in self._resolved:
            return self._resolved[target]

        found = self._find_rule(target)
        if found is None:
            if self._exists(target):
                self._resolved[target] = None
                return None
            if required_by is None:
                raise NoRuleFound(
                    message="no rule produces this target and it is not present as a source file",
                    target=target,
                )
            raise NoRuleFound(
                message="no rule produces this input and it is not present as a source file",
                target=target,
                rule=required_by.rule.name,
                details={"required_by": required_by.name},
            )

        rule, wildcards = found
        self._stack.append(target)
        try:
            job = self._instantiate(rule, wildcards, target)
        except NoRuleFound as e:
            if not self._exists(target):
                raise
            # producible in principle, but its own inputs are gone: keep the file as a source
            self.console.print_debug(f"treating existing '{target}' as a source file ({e.message})")
            job = None
        finally:
            self._stack.pop()

        self._resolved[target] = job
        return job

    def _instantiate(self, rule: Rule, wildcards: Wildcards, target: str) -> Job:
        key = (rule.name, wildcards.key)
        existing = self._jobs.get(key)
        if existing is not None:
            return existing
        if key in self._in_progress:
            cycle = list(self._stack)
            raise CyclicDependency(
                message=" -> ".join(cycle),
                target=target,
                rule=rule.name,
                details={"cycle": cycle},
            )

        outputs = Files(format_pattern(out, wildcards) for out in rule.outputs)
        inputs = self.resolve_inputs(rule, wildcards, target)
        job = Job(rule=rule, wildcards=wildcards, inputs=inputs, outputs=outputs)

        self._in_progress.add(key)
        try:
            deps: List[Job] = []
            for path in inputs:
                dep = self.resolve(path, required_by=job)
                if dep is not None and dep not in deps:
                    deps.append(dep)
        finally:
            self._in_progress.discard(key)

        job.dependencies = deps
        self._jobs[key] = job
        return job


def _postorder(roots: List[Job]) -> List[Job]:
    order: List[Job] = []
    seen: Set[Job] = set()

    def visit(job: Job) -> None:
        if job in seen:
            return
        seen.add(job)
        for dep in job.dependencies:
            visit(dep)
        order.append(job)

    for root in roots:
        visit(root)
    return order


def build_graph(
    registry: Registry,
    targets: Iterable[str],
    *,
    workdir: str | Path = ".",
    console: Optional[Console] = None,
) -> DAG:
    """
    Resolve every requested target into one DAG.

    Any error aborts here, before a single action has run.
    """
    builder = GraphBuilder(registry, workdir=workdir, console=console)
    roots: List[Job] = []
    for target in targets:
        job = builder.resolve(target)
        if job is not None and job not in roots:
            roots.append(job)
    return DAG(roots, _postorder(roots))
