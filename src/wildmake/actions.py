# actions.py
from __future__ import annotations

import os
import subprocess
from pathlib import Path

from .errors import ActionFailure, WildcardMismatch
from .model import CallableAction, Files, Job, NoAction, ShellAction

TOOL_HINTS = {
    127: "Command not found. Install the tool or fix PATH.",
    126: "Command found but not executable. Check file permissions.",
}

OUTPUT_TAIL = 4000


def _target(job: Job) -> str:
    return job.outputs[0] if job.outputs else job.name


def render_shell(template: str, job: Job) -> str:
    """Fill {input}, {output}, {wildcards.name} and {rule} into a shell template."""
    try:
        return template.format(
            input=job.inputs,
            output=job.outputs,
            wildcards=job.wildcards,
            rule=job.rule.name,
        )
    except WildcardMismatch as e:
        raise ActionFailure(
            message=f"shell template {e.message}",
            target=_target(job),
            rule=job.rule.name,
            details=dict(e.details),
        ) from e
    except (KeyError, IndexError, AttributeError, ValueError) as e:
        raise ActionFailure(
            message=f"cannot render shell template: {e!r}",
            target=_target(job),
            rule=job.rule.name,
            details={"template": template},
        ) from e


def _run_shell(job: Job, action: ShellAction, workdir: Path) -> None:
    cmd = render_shell(action.template, job)
    proc = subprocess.run(
        cmd,
        shell=True,
        cwd=str(workdir),
        env=os.environ.copy(),
        text=True,
        errors="replace",
        capture_output=True,   # so you can show output on failure
    )
    if proc.returncode != 0:
        details = {
            "exit_code": proc.returncode,
            "cmd": cmd,
            "stderr": proc.stderr[-OUTPUT_TAIL:],
        }
        hint = TOOL_HINTS.get(proc.returncode)
        if hint:
            details["hint"] = hint
        raise ActionFailure(
            message=f"shell command exited with {proc.returncode}",
            target=_target(job),
            rule=job.rule.name,
            details=details,
        )


def _run_callable(job: Job, action: CallableAction, workdir: Path) -> None:
    def here(files: Files) -> Files:
        return Files(str(workdir / f) for f in files)

    try:
        action.function(input=here(job.inputs), output=here(job.outputs), wildcards=job.wildcards)
    except KeyboardInterrupt:
        raise
    except BaseException as e:
        raise ActionFailure(
            message=f"{type(e).__name__}: {e}",
            target=_target(job),
            rule=job.rule.name,
        ) from e


def run_action(job: Job, workdir: str | Path = ".") -> None:
    """Execute the job's action; every failure surfaces as ActionFailure."""
    action = job.rule.action
    wd = Path(workdir)
    if isinstance(action, ShellAction):
        _run_shell(job, action, wd)
    elif isinstance(action, CallableAction):
        _run_callable(job, action, wd)
    elif isinstance(action, NoAction):
        return
    else:
        raise TypeError(f"Unknown action for rule '{job.rule.name}': {action!r}")
