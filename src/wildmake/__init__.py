from .dsl import rule, sh, wf, RuleBuilder
from .errors import (
    ActionFailure,
    AmbiguousRule,
    CyclicDependency,
    DuplicateRule,
    InputFunctionError,
    NoRuleFound,
    RuleFileError,
    WildcardMismatch,
    WildmakeError,
)
from .graph import DAG, GraphBuilder, build_graph
from .model import ExecutionReport, Job, JobStatus, Rule, Wildcards
from .pattern import expand, match
from .registry import Registry
from .runner import build

__all__ = [
    "rule", "sh", "wf", "RuleBuilder", "expand", "match",
    "Registry", "Rule", "Job", "Wildcards", "JobStatus", "ExecutionReport",
    "DAG", "GraphBuilder", "build_graph", "build",
    "WildmakeError", "AmbiguousRule", "NoRuleFound", "CyclicDependency",
    "WildcardMismatch", "DuplicateRule", "InputFunctionError", "RuleFileError", "ActionFailure",
]
