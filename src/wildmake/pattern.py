# pattern.py
from __future__ import annotations

import itertools
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import WildcardMismatch
from .model import Wildcards

# ---------------------------------------------------------------------
# Pattern syntax
# ---------------------------------------------------------------------
#   "results/{sample}.txt"          one wildcard, matches any non-empty text
#   "{sample,[A-Z]+}_{lane}.fq"     wildcard constrained by a regex
#   "{x}/{x}.log"                   repeated wildcard, must bind the same value
#   "literal{{braces}}"             {{ and }} are literal braces
#
# Matching is greedy-left: earlier wildcards take the longest substring that
# still lets the rest of the pattern match, so every target has at most one
# binding per pattern.
# ---------------------------------------------------------------------

_WILDCARD = re.compile(
    r"\{\s*(?P<name>[A-Za-z_]\w*)\s*(?:,\s*(?P<constraint>(?:[^{}]|\{\d+(?:,\d*)?\})+?))?\s*\}"
)


@dataclass(frozen=True)
class _Literal:
    text: str


@dataclass(frozen=True)
class _Placeholder:
    name: str
    constraint: Optional[str] = None


_Token = Union[_Literal, _Placeholder]


@lru_cache(maxsize=1024)
def _tokenize(pattern: str) -> Tuple[_Token, ...]:
    tokens: List[_Token] = []
    literal: List[str] = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "{":
            if pattern.startswith("{{", i):
                literal.append("{")
                i += 2
                continue
            m = _WILDCARD.match(pattern, i)
            if m is None:
                raise ValueError(f"Malformed wildcard in pattern {pattern!r} at offset {i}")
            if literal:
                tokens.append(_Literal("".join(literal)))
                literal = []
            tokens.append(_Placeholder(m.group("name"), m.group("constraint")))
            i = m.end()
            continue
        if ch == "}":
            if pattern.startswith("}}", i):
                literal.append("}")
                i += 2
                continue
            raise ValueError(f"Unbalanced '}}' in pattern {pattern!r} at offset {i}")
        literal.append(ch)
        i += 1
    if literal:
        tokens.append(_Literal("".join(literal)))
    return tuple(tokens)


def wildcard_names(pattern: str) -> Tuple[str, ...]:
    """Distinct wildcard names in order of first appearance."""
    seen: List[str] = []
    for tok in _tokenize(pattern):
        if isinstance(tok, _Placeholder) and tok.name not in seen:
            seen.append(tok.name)
    return tuple(seen)


def structure(pattern: str) -> Tuple[Optional[str], ...]:
    """
    Literal skeleton of a pattern: literal text kept, every wildcard erased to None.

    "{sample}.txt" and "{name,\\w+}.txt" share the same structure.
    """
    return tuple(tok.text if isinstance(tok, _Literal) else None for tok in _tokenize(pattern))


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> "re.Pattern[str]":
    parts: List[str] = []
    seen = set()
    for tok in _tokenize(pattern):
        if isinstance(tok, _Literal):
            parts.append(re.escape(tok.text))
        elif tok.name in seen:
            parts.append(f"(?P={tok.name})")
        else:
            seen.add(tok.name)
            parts.append(f"(?P<{tok.name}>{tok.constraint or '.+'})")
    return re.compile("".join(parts), re.DOTALL)


def match(pattern: str, target: str) -> Optional[Wildcards]:
    """Bind the pattern's wildcards against target, or None when it does not match."""
    m = compile_pattern(pattern).fullmatch(target)
    if m is None:
        return None
    values = m.groupdict()
    if any(v == "" for v in values.values()):
        # a custom constraint that admits the empty string
        return None
    return Wildcards(values)


def format_pattern(pattern: str, wildcards: Mapping[str, str]) -> str:
    """Render a pattern with concrete wildcard values."""
    out: List[str] = []
    for tok in _tokenize(pattern):
        if isinstance(tok, _Literal):
            out.append(tok.text)
            continue
        if tok.name not in wildcards:
            raise WildcardMismatch(
                message=f"wildcard '{tok.name}' is not defined",
                details={"pattern": pattern, "available": sorted(wildcards)},
            )
        out.append(str(wildcards[tok.name]))
    return "".join(out)


def _as_values(value: Any) -> List[Any]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        return [value]
    return list(value)


def expand(patterns: Union[str, Sequence[str]], **values: Any) -> List[str]:
    """
    Render each pattern for every combination of the given values.

    expand("{sample}.{ext}", sample=["a", "b"], ext="txt") -> ["a.txt", "b.txt"]
    """
    if isinstance(patterns, str):
        patterns = [patterns]
    keys = list(values)
    pools = [_as_values(values[k]) for k in keys]
    out: List[str] = []
    for pattern in patterns:
        for combo in itertools.product(*pools):
            out.append(format_pattern(pattern, dict(zip(keys, combo))))
    return out
