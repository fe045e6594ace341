# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(eq=False)
class WildmakeError(Exception):
    """
    Structured build error with enough context for:
      - clean CLI output
      - pointing at the target and rule that triggered it
      - debugging without full tracebacks
    """
    message: str
    target: Optional[str] = None
    rule: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    kind = "WildmakeError"

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}"]
        if self.target is not None:
            lines.append(f"target={self.target}")
        if self.rule is not None:
            lines.append(f"rule={self.rule}")
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


# ----------------------------------------------------------------------
# Graph-building errors (abort the whole build before anything runs)
# ----------------------------------------------------------------------

class AmbiguousRule(WildmakeError):
    """More than one rule can produce the requested target."""
    kind = "AmbiguousRule"


class NoRuleFound(WildmakeError):
    """No rule produces the target and it is not present as a source file."""
    kind = "NoRuleFound"


class CyclicDependency(WildmakeError):
    kind = "CyclicDependency"


class WildcardMismatch(WildmakeError):
    """A pattern or input function references a wildcard the binding does not define."""
    kind = "WildcardMismatch"


class DuplicateRule(WildmakeError):
    kind = "DuplicateRule"


class InputFunctionError(WildmakeError):
    kind = "InputFunctionError"


class RuleFileError(WildmakeError):
    kind = "RuleFileError"


# ----------------------------------------------------------------------
# Execution-time errors (contained to the failing job's subtree)
# ----------------------------------------------------------------------

class ActionFailure(WildmakeError):
    """A job's action exited non-zero, raised, or left outputs missing."""
    kind = "ActionFailure"

    @property
    def exit_code(self) -> Optional[int]:
        return self.details.get("exit_code")
