"""Console output formatting utilities for wildmake."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Dict, List, Optional

if TYPE_CHECKING:
    from ..model import ExecutionReport, Job


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_build_started(self, targets: List[str], job_count: int) -> None:
        """Print build start information."""
        print("\nBUILD STARTED")
        print(f"Targets: {' '.join(targets)}")
        print(f"Jobs: {job_count}")
        print()

    def print_plan(self, plan: Dict["Job", List[str]], *, dry_run: bool = False) -> None:
        """Print the jobs that will run and why."""
        self.print_header("DRY RUN" if dry_run else "PLAN")
        for job, reasons in plan.items():
            self.print_plan_job(job.name, reasons)

    def print_plan_job(self, name: str, reasons: List[str]) -> None:
        """Print one planned job with its reasons."""
        print(f"  {name}")
        for reason in reasons:
            print(f"    reason: {reason}")

    def print_nothing_to_do(self) -> None:
        print("Nothing to be done (all requested files are present and up to date).")

    def print_job_start(self, job: "Job") -> None:
        """Print job start message."""
        print(f"\nJOB STARTED: {job.name}")
        if job.rule.message:
            print(job.rule.message)
        if job.inputs:
            print(f"input: {', '.join(job.inputs)}")
        if job.outputs:
            print(f"output: {', '.join(job.outputs)}")

    def print_success(self, name: str) -> None:
        """Print success message."""
        print(f"JOB FINISHED: {name}")

    def print_failure(
        self,
        name: str,
        reason: str,
        exit_code: Optional[int] = None,
        hint: Optional[str] = None,
    ) -> None:
        """
        Print failure message.

        Args:
            name: Job name
            reason: Failure reason/error message
            exit_code: Optional exit code
            hint: Optional hint for user
        """
        print(f"JOB FAILED: {name}")
        if exit_code is not None:
            print(f"Exit code: {exit_code}")
        if hint:
            print(f"Hint: {hint}")
        if self.debug:
            print(f"Error details: {reason}")
        else:
            # Show first line of error for non-debug mode
            error_line = reason.split("\n")[0] if reason else "Unknown error"
            print(f"Error: {error_line}")

    def print_job_skipped(self, name: str, reason: str) -> None:
        """Print job skipped message."""
        print(f"JOB SKIPPED: {name} ({reason})")

    def print_stages(self, levels: List[List["Job"]]) -> None:
        """Print DAG stages; jobs inside a stage may run in parallel."""
        for idx, level in enumerate(levels):
            print(f"=== Stage {idx + 1}: {[j.name for j in level]} ===")

    def print_results(self, report: "ExecutionReport") -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for name, status in report.statuses.items():
            print(f"  {name}: {status.value.upper()}")
        if report.failed:
            print(f"\n{len(report.failed)} job(s) failed, {len(report.skipped)} skipped")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
