# runner.py
from __future__ import annotations

import shutil
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .actions import run_action
from .dag import build_dag
from .errors import ActionFailure
from .graph import DAG, build_graph
from .metadata import MetadataStore
from .model import ExecutionReport, Job, JobStatus
from .registry import Registry
from .settings import default_cores, metadata_dir
from .staleness import StalenessOracle
from .ui.console import Console, get_console


# ----------------------------------------------------------------------
# Execution primitives
# ----------------------------------------------------------------------

def _remove_outputs(job: Job, workdir: Path) -> None:
    for out in job.outputs:
        p = workdir / out
        if p.is_dir():
            shutil.rmtree(p, ignore_errors=True)
        elif p.exists():
            p.unlink(missing_ok=True)


def _run_job(job: Job, workdir: Path, keep_incomplete: bool) -> Job:
    """
    Runs in a worker thread. Returns the job on success, raises ActionFailure otherwise.
    Touches nothing shared except the job's own output files.
    """
    try:
        for out in job.outputs:
            (workdir / out).parent.mkdir(parents=True, exist_ok=True)
        run_action(job, workdir)
        missing = [o for o in job.outputs if not (workdir / o).exists()]
        if missing:
            raise ActionFailure(
                message="action finished but did not create all outputs",
                target=missing[0],
                rule=job.rule.name,
                details={"missing": missing},
            )
    except OSError as e:
        if not keep_incomplete:
            _remove_outputs(job, workdir)
        raise ActionFailure(
            message=f"{type(e).__name__}: {e}",
            target=job.outputs[0] if job.outputs else job.name,
            rule=job.rule.name,
        ) from e
    except ActionFailure:
        if not keep_incomplete:
            _remove_outputs(job, workdir)
        raise
    return job


def _has_failed_ancestor(job: Job, report: ExecutionReport) -> bool:
    stack = list(job.dependencies)
    seen = set()
    while stack:
        dep = stack.pop()
        if dep in seen:
            continue
        seen.add(dep)
        if report.statuses.get(dep.name) == JobStatus.FAILED:
            return True
        stack.extend(dep.dependencies)
    return False


def execute(
    dag: DAG,
    plan: Dict[Job, List[str]],
    *,
    store: MetadataStore,
    report: ExecutionReport,
    cores: int,
    keep_going: bool = True,
    keep_incomplete: bool = False,
    workdir: str | Path = ".",
    console: Optional[Console] = None,
) -> ExecutionReport:
    """
    Scheduler:

    - Only planned jobs run; everything else counts as already satisfied.
    - A job is submitted once all of its planned dependencies succeeded.
    - At most `cores` jobs run at once.
    - A failure blocks its dependents; independent jobs keep running unless
      keep_going is False, in which case nothing new is submitted.

    The ready list, in-degree map and report are only touched here, on the
    calling thread; workers hand results back through futures.
    """
    console = console or get_console()
    workdir_p = Path(workdir)

    jobs = [j for j in dag.jobs if j in plan]
    adj, indeg = build_dag(jobs)
    ready: List[Job] = [j for j in jobs if indeg[j] == 0]
    in_flight: Dict[Future, Job] = {}
    stop = False

    with ThreadPoolExecutor(max_workers=cores) as pool:
        while ready or in_flight:
            # schedule ready jobs up to the concurrency budget
            while ready and not stop and len(in_flight) < cores:
                job = ready.pop(0)
                console.print_job_start(job)
                fut = pool.submit(_run_job, job, workdir_p, keep_incomplete)
                in_flight[fut] = job

            if not in_flight:
                # stopped after a failure with nothing left running
                break

            # wait for one completion, then loop to schedule newly-ready jobs
            fut = next(as_completed(list(in_flight.keys())))
            job = in_flight.pop(fut)

            try:
                fut.result()
            except ActionFailure as e:
                report.mark(job, JobStatus.FAILED, reasons=plan[job], error=str(e))
                console.print_failure(job.name, str(e), exit_code=e.exit_code, hint=e.details.get("hint"))
                if not keep_going:
                    stop = True
                continue
            except Exception as e:
                if not keep_incomplete:
                    _remove_outputs(job, workdir_p)
                error = f"{type(e).__name__}: {e}"
                report.mark(job, JobStatus.FAILED, reasons=plan[job], error=error)
                console.print_failure(job.name, error)
                if not keep_going:
                    stop = True
                continue

            store.record(job)
            report.mark(job, JobStatus.SUCCEEDED, reasons=plan[job])
            console.print_success(job.name)

            # unlock dependents
            for nxt in adj[job]:
                indeg[nxt] -= 1
                if indeg[nxt] == 0:
                    ready.append(nxt)

    for job in jobs:
        if job.name in report.statuses:
            continue
        reason = "upstream job failed" if _has_failed_ancestor(job, report) else "build stopped after failure"
        report.mark(job, JobStatus.SKIPPED, reasons=plan[job], error=reason)
        console.print_job_skipped(job.name, reason)

    return report


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def build(
    registry: Registry,
    targets: Optional[Iterable[str]] = None,
    *,
    cores: Optional[int] = None,
    dry_run: bool = False,
    keep_going: bool = True,
    keep_incomplete: bool = False,
    forceall: bool = False,
    forcerun: Iterable[str] = (),
    workdir: str | Path = ".",
    metadata_root: str | Path | None = None,
    console: Optional[Console] = None,
) -> ExecutionReport:
    """
    Resolve targets, decide what is stale and run it.

    Graph-building errors (AmbiguousRule, NoRuleFound, CyclicDependency,
    WildcardMismatch, InputFunctionError) propagate before any action runs.
    Action failures are recorded in the returned report.
    """
    console = console or get_console()
    workdir_p = Path(workdir)
    targets = list(targets or [registry.default_target()])
    if cores is None:
        cores = default_cores()
    if cores < 1:
        raise ValueError(f"cores must be >= 1, got {cores}")

    store = MetadataStore(metadata_root if metadata_root is not None else workdir_p / metadata_dir())
    dag = build_graph(registry, targets, workdir=workdir_p, console=console)
    console.print_build_started(targets, len(dag))

    forced_names = set(forcerun)
    forced = [j for j in dag.jobs if j.rule.name in forced_names or j.name in forced_names]
    oracle = StalenessOracle(store, workdir=workdir_p)
    plan = oracle.plan(dag, forceall=forceall, forced=forced)

    report = ExecutionReport(targets=targets)
    for job in dag.jobs:
        if job not in plan:
            report.mark(job, JobStatus.UP_TO_DATE)

    if not plan:
        console.print_nothing_to_do()
        return report

    console.print_plan(plan, dry_run=dry_run)

    if dry_run:
        for job, reasons in plan.items():
            report.mark(job, JobStatus.PLANNED, reasons=reasons)
        return report

    return execute(
        dag,
        plan,
        store=store,
        report=report,
        cores=cores,
        keep_going=keep_going,
        keep_incomplete=keep_incomplete,
        workdir=workdir_p,
        console=console,
    )
