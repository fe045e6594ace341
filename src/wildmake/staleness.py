# staleness.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List

from .graph import DAG
from .metadata import MetadataStore
from .model import Job, NoAction


class StalenessOracle:
    """
    Decides whether a job has to (re-)run.

    A job is stale when an output is missing, when an output is older than
    one of its inputs, or when the rule definition or the input set differs
    from what was recorded the last time the job succeeded.
    """

    def __init__(self, store: MetadataStore, *, workdir: str | Path = "."):
        self.store = store
        self.workdir = Path(workdir)

    def _path(self, p: str) -> Path:
        return self.workdir / p

    def reasons(self, job: Job) -> List[str]:
        """Human readable reasons why job is stale; empty when it is up to date."""
        if not job.outputs:
            if isinstance(job.rule.action, NoAction):
                return []
            return ["rule has no output files"]

        missing = [o for o in job.outputs if not self._path(o).exists()]
        if missing:
            return [f"missing output: {o}" for o in missing]

        reasons: List[str] = []

        out_mtimes = {o: self._path(o).stat().st_mtime for o in job.outputs}
        oldest = min(out_mtimes, key=out_mtimes.get)
        for inp in job.inputs:
            p = self._path(inp)
            if p.exists() and p.stat().st_mtime > out_mtimes[oldest]:
                reasons.append(f"updated input: {inp} is newer than {oldest}")

        fingerprint = job.rule.fingerprint()
        inputs = list(job.inputs)
        changed_rule = changed_inputs = False
        for output in job.outputs:
            rec = self.store.load(output)
            if rec is None:
                # produced outside wildmake: judged by existence and mtimes only
                continue
            if rec.get("fingerprint") != fingerprint:
                changed_rule = True
            if rec.get("inputs") != inputs:
                changed_inputs = True
        if changed_rule:
            reasons.append("rule definition changed")
        if changed_inputs:
            reasons.append("input set changed")

        return reasons

    def is_stale(self, job: Job) -> bool:
        return bool(self.reasons(job))

    def plan(
        self,
        dag: DAG,
        *,
        forceall: bool = False,
        forced: Iterable[Job] = (),
    ) -> Dict[Job, List[str]]:
        """
        Every job that must run, in topological order, with its reasons.

        A job downstream of a job that will run must run too.
        """
        forced_set = set(forced)
        needrun: Dict[Job, List[str]] = {}
        for job in dag.jobs:
            if forceall or job in forced_set:
                reasons = ["forced"]
            else:
                reasons = self.reasons(job)
            reasons += [f"upstream job will run: {d.name}" for d in job.dependencies if d in needrun]
            if reasons:
                needrun[job] = reasons
        return needrun
