# registry.py
from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Tuple

from .errors import AmbiguousRule, DuplicateRule, NoRuleFound, WildcardMismatch
from .model import Rule, Wildcards, literal_templates
from .pattern import match, structure, wildcard_names

Match = Tuple[Rule, Wildcards, int]


class Registry:
    """
    Holds every declared rule of one workflow.

    Constructed explicitly and passed to the graph builder; there is no
    module-level registry.
    """

    def __init__(self, rules: Optional[List[Rule]] = None):
        self._rules: Dict[str, Rule] = {}
        self._structures: Dict[Tuple[Optional[str], ...], str] = {}
        for r in rules or []:
            self.register(r)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, rule: Rule) -> Rule:
        if rule.name in self._rules:
            raise DuplicateRule(
                message=f"a rule named '{rule.name}' is already registered",
                rule=rule.name,
            )

        names = set(wildcard_names(rule.outputs[0])) if rule.outputs else set()
        for out in rule.outputs[1:]:
            if set(wildcard_names(out)) != names:
                raise WildcardMismatch(
                    message="all outputs of a rule must use the same wildcards",
                    rule=rule.name,
                    details={"outputs": list(rule.outputs)},
                )

        for template in literal_templates(rule.inputs):
            undefined = sorted(set(wildcard_names(template)) - names)
            if undefined:
                raise WildcardMismatch(
                    message=f"input '{template}' uses wildcards not defined by the outputs: {undefined}",
                    rule=rule.name,
                    details={"outputs": list(rule.outputs)},
                )

        shapes = [structure(out) for out in rule.outputs]
        for out, shape in zip(rule.outputs, shapes):
            owner = self._structures.get(shape)
            if owner is not None:
                raise DuplicateRule(
                    message=f"output pattern '{out}' collides with an output of rule '{owner}'",
                    rule=rule.name,
                    details={"other_rule": owner},
                )

        self._rules[rule.name] = rule
        for shape in shapes:
            self._structures[shape] = rule.name
        return rule

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def candidates(self, target: str) -> List[Match]:
        """Every (rule, binding, output index) whose output pattern matches target."""
        found: List[Match] = []
        for r in self._rules.values():
            for idx, out in enumerate(r.outputs):
                wildcards = match(out, target)
                if wildcards is not None:
                    found.append((r, wildcards, idx))
                    break
        return found

    def find(self, target: str) -> Optional[Match]:
        found = self.candidates(target)
        if len(found) > 1:
            raise AmbiguousRule(
                message=f"{len(found)} rules can produce this target",
                target=target,
                rule=found[0][0].name,
                details={"candidates": [r.name for r, _w, _i in found]},
            )
        return found[0] if found else None

    def lookup(self, target: str) -> Match:
        """The unique rule + binding that produces target."""
        found = self.find(target)
        if found is None:
            raise NoRuleFound(message="no rule produces this target", target=target)
        return found

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------

    def get(self, name: str) -> Rule:
        return self._rules[name]

    def default_target(self) -> str:
        """Name of the first registered rule (conventionally ``all``)."""
        if not self._rules:
            raise NoRuleFound(message="no rules are registered")
        return next(iter(self._rules))

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)
