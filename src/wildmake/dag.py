# dag.py
from __future__ import annotations

from collections import deque
from typing import Dict, Iterable, List, Set, Tuple

from .errors import CyclicDependency
from .model import Job


def build_dag(jobs: Iterable[Job]) -> Tuple[Dict[Job, Set[Job]], Dict[Job, int]]:
    """
    Build adjacency + in-degree maps over a set of jobs.

    Only edges between jobs of the given set are kept: a dependency outside
    the set counts as already satisfied (e.g. an up-to-date job).
    """
    jobs = list(jobs)
    job_set = set(jobs)
    adj: Dict[Job, Set[Job]] = {j: set() for j in jobs}   # dep -> dependents
    indeg: Dict[Job, int] = {j: 0 for j in jobs}

    for job in jobs:
        for dep in job.dependencies:
            if dep not in job_set:
                continue
            if job not in adj[dep]:
                adj[dep].add(job)
                indeg[job] += 1

    return adj, indeg


def topo_levels(adj: Dict[Job, Set[Job]], indeg: Dict[Job, int]) -> List[List[Job]]:
    """
    Convert the DAG into topological "levels" (stages).
    Each stage can run in parallel.
    """
    indeg = dict(indeg)  # copy (we mutate it)
    q = deque(sorted((j for j, d in indeg.items() if d == 0), key=lambda j: j.name))

    levels: List[List[Job]] = []
    processed = 0

    while q:
        level_size = len(q)
        level: List[Job] = []

        for _ in range(level_size):
            node = q.popleft()
            level.append(node)
            processed += 1

            for child in sorted(adj.get(node, set()), key=lambda j: j.name):
                indeg[child] -= 1
                if indeg[child] == 0:
                    q.append(child)

        levels.append(level)

    if processed != len(indeg):
        remaining = sorted(j.name for j, d in indeg.items() if d > 0)
        raise CyclicDependency(
            message="job graph has a cycle",
            details={"stuck": remaining},
        )

    return levels
