# loader.py
from __future__ import annotations

import runpy
from pathlib import Path
from typing import List

from .errors import RuleFileError, WildmakeError
from .model import Rule
from .registry import Registry


def load_rules(path: str | Path) -> Registry:
    """
    Load rules from a python file path.

    The file must define either:
      - rules(registry) -> None   (registers into the given registry)
      - RULES = [Rule, ...]

    Returns:
      Registry
    """
    rf_path = Path(path).expanduser().resolve()
    if not rf_path.exists():
        raise RuleFileError(message=f"rule file not found: {rf_path}")
    if rf_path.suffix != ".py":
        raise RuleFileError(message=f"rule file must be a .py file, got: {rf_path.name}")

    module_name = f"wildmake_rules_{rf_path.stem}"
    try:
        globals_dict = runpy.run_path(str(rf_path), run_name=module_name)
    except WildmakeError:
        raise
    except Exception as e:
        raise RuleFileError(
            message=f"error while executing rule file: {type(e).__name__}: {e}",
            details={"path": str(rf_path)},
        ) from e

    registry = Registry()
    if "rules" in globals_dict and callable(globals_dict["rules"]):
        try:
            globals_dict["rules"](registry)
        except WildmakeError:
            raise
        except Exception as e:
            raise RuleFileError(
                message=f"error while registering rules: {type(e).__name__}: {e}",
                details={"path": str(rf_path)},
            ) from e
        return registry

    declared = globals_dict.get("RULES")
    if isinstance(declared, Registry):
        return declared
    if not isinstance(declared, list) or not all(isinstance(r, Rule) for r in declared):
        raise RuleFileError(
            message="Rule file must define rules(registry) or RULES = [Rule, ...].",
            details={"path": str(rf_path)},
        )

    rules: List[Rule] = declared
    for r in rules:
        registry.register(r)
    return registry
