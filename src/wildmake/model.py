# model.py
from __future__ import annotations

import hashlib
import inspect
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import WildcardMismatch


def _sha256_str(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def _json_dumps_stable(obj) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


# ---------------------------------------------------------------------
# Wildcard bindings and file lists
# ---------------------------------------------------------------------

class Wildcards(Mapping[str, str]):
    """
    Immutable wildcard binding produced by matching one concrete target.

    Supports both ``w["sample"]`` and ``w.sample``; asking for a name the
    binding does not define raises WildcardMismatch.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping[str, str]] = None):
        object.__setattr__(self, "_values", dict(values or {}))

    def __getitem__(self, name: str) -> str:
        try:
            return self._values[name]
        except KeyError:
            raise WildcardMismatch(
                message=f"wildcard '{name}' is not defined",
                details={"available": sorted(self._values)},
            ) from None

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def __getattr__(self, name: str) -> str:
        if name.startswith("__"):
            raise AttributeError(name)
        return self[name]

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Wildcards are immutable")

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __hash__(self) -> int:
        return hash(self.key)

    def __reduce__(self):
        return (Wildcards, (self._values,))

    def __repr__(self) -> str:
        return f"Wildcards({self._values!r})"

    @property
    def key(self) -> Tuple[Tuple[str, str], ...]:
        return tuple(sorted(self._values.items()))


class Files(tuple):
    """Ordered file list; renders space-separated inside shell templates."""

    def __str__(self) -> str:
        return " ".join(self)


# ---------------------------------------------------------------------
# Input specification (tagged variant)
# ---------------------------------------------------------------------

InputFunction = Callable[[Wildcards], Union[str, Sequence[Any]]]


@dataclass(frozen=True)
class LiteralInputs:
    """Input paths given as strings, possibly with {name} placeholders."""
    templates: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ComputedInputs:
    """Input paths computed by a pure function of the wildcard binding."""
    function: InputFunction


@dataclass(frozen=True)
class CombinedInputs:
    """Several input specs resolved in declaration order."""
    parts: Tuple[Union[LiteralInputs, ComputedInputs], ...] = ()


InputSpec = Union[LiteralInputs, ComputedInputs, CombinedInputs]


def literal_templates(spec: InputSpec) -> List[str]:
    """Literal templates of an input spec (computed parts are opaque)."""
    if isinstance(spec, LiteralInputs):
        return list(spec.templates)
    if isinstance(spec, CombinedInputs):
        out: List[str] = []
        for part in spec.parts:
            out.extend(literal_templates(part))
        return out
    return []


# ---------------------------------------------------------------------
# Actions (tagged variant)
# ---------------------------------------------------------------------

def _callable_source(fn: Callable[..., Any]) -> str:
    try:
        return inspect.getsource(fn)
    except (OSError, TypeError):
        # lambdas from exec(), builtins, C extensions
        code = getattr(fn, "__code__", None)
        if code is None:
            return getattr(fn, "__qualname__", repr(fn))
        return code.co_code.hex() + repr(code.co_consts)


@dataclass(frozen=True)
class ShellAction:
    """Shell command template, rendered with {input}, {output}, {wildcards.x}."""
    template: str

    def fingerprint(self) -> str:
        return _sha256_str(_json_dumps_stable({"shell": self.template}))


@dataclass(frozen=True)
class CallableAction:
    """Python callable invoked as fn(input=..., output=..., wildcards=...)."""
    function: Callable[..., Any]

    def fingerprint(self) -> str:
        return _sha256_str(_json_dumps_stable({"run": _callable_source(self.function)}))


@dataclass(frozen=True)
class NoAction:
    """Aggregate rules (e.g. ``all``) that only gather inputs."""

    def fingerprint(self) -> str:
        return _sha256_str(_json_dumps_stable({"noop": True}))


Action = Union[ShellAction, CallableAction, NoAction]


# ---------------------------------------------------------------------
# Rules and jobs
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class Rule:
    """
    A named template describing how to produce output file(s) from input file(s).

    outputs may contain {name} wildcards; every output must declare the same
    wildcard names so that matching any one of them yields a full binding.
    """
    name: str
    outputs: Tuple[str, ...] = ()
    inputs: InputSpec = field(default_factory=LiteralInputs)
    action: Action = field(default_factory=NoAction)
    message: Optional[str] = None

    @property
    def wildcard_names(self) -> Tuple[str, ...]:
        from .pattern import wildcard_names

        if not self.outputs:
            return ()
        return wildcard_names(self.outputs[0])

    def fingerprint(self) -> str:
        """Hash of the rule's action definition, persisted after each successful job."""
        return self.action.fingerprint()


@dataclass(eq=False)
class Job:
    """
    One concrete, fully-bound instantiation of a rule.

    Identity is (rule name, wildcard binding): two jobs with the same identity
    are the same job regardless of which output led to them.
    """
    rule: Rule
    wildcards: Wildcards
    inputs: Files = field(default_factory=Files)
    outputs: Files = field(default_factory=Files)
    dependencies: List["Job"] = field(default_factory=list)

    @property
    def key(self) -> Tuple[str, Tuple[Tuple[str, str], ...]]:
        return (self.rule.name, self.wildcards.key)

    @property
    def name(self) -> str:
        if not self.wildcards:
            return self.rule.name
        bound = ",".join(f"{k}={v}" for k, v in self.wildcards.items())
        return f"{self.rule.name}[{bound}]"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Job):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f"Job({self.name})"


# ---------------------------------------------------------------------
# Execution report
# ---------------------------------------------------------------------

class JobStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"
    UP_TO_DATE = "up-to-date"
    PLANNED = "planned"


@dataclass
class ExecutionReport:
    """Outcome of one build: status, reasons and failure message per job name."""
    targets: List[str] = field(default_factory=list)
    statuses: Dict[str, JobStatus] = field(default_factory=dict)
    reasons: Dict[str, List[str]] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)

    def mark(
        self,
        job: Job,
        status: JobStatus,
        *,
        reasons: Optional[List[str]] = None,
        error: Optional[str] = None,
    ) -> None:
        self.statuses[job.name] = status
        if reasons is not None:
            self.reasons[job.name] = list(reasons)
        if error is not None:
            self.errors[job.name] = error

    def with_status(self, status: JobStatus) -> List[str]:
        return [name for name, s in self.statuses.items() if s == status]

    @property
    def executed(self) -> List[str]:
        return self.with_status(JobStatus.SUCCEEDED)

    @property
    def failed(self) -> List[str]:
        return self.with_status(JobStatus.FAILED)

    @property
    def skipped(self) -> List[str]:
        return self.with_status(JobStatus.SKIPPED)

    @property
    def up_to_date(self) -> List[str]:
        return self.with_status(JobStatus.UP_TO_DATE)

    @property
    def planned(self) -> List[str]:
        return self.with_status(JobStatus.PLANNED)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.skipped
