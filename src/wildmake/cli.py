# cli.py
from __future__ import annotations

import sys
from pathlib import Path

import click

from wildmake.errors import WildmakeError
from wildmake.graph import build_graph
from wildmake.loader import load_rules
from wildmake.registry import Registry
from wildmake.runner import build
from wildmake.settings import DEFAULT_RULEFILE
from wildmake.ui.console import Console, get_console, set_console


def discover_rulefile(rulefile_arg: str | None, directory: Path) -> Path:
    """
    Resolve the rule file from the --rulefile argument or the default name.

    Raises:
        SystemExit: If no rule file can be found
    """
    console = get_console()

    if rulefile_arg:
        path = Path(rulefile_arg)
        if not path.is_absolute():
            path = directory / path
        if not path.exists() and path.suffix != ".py":
            path = Path(str(path) + ".py")
    else:
        path = directory / DEFAULT_RULEFILE

    if not path.exists():
        console.print_error(
            "Rule file not found",
            f"Could not find rule file: {path}",
            suggestion=f"Create {DEFAULT_RULEFILE} or specify one explicitly:\n  wildmake run --rulefile my_rules.py",
        )
        sys.exit(1)
    return path


def _load(ctx, rulefile: str | None, directory: str) -> Registry:
    console = get_console()
    path = discover_rulefile(rulefile, Path(directory))
    try:
        return load_rules(path)
    except WildmakeError as e:
        console.print_error("Failed to load rules", f"Could not load rules from {path}", details=str(e).splitlines())
        if ctx.obj.get("debug", False):
            import traceback
            traceback.print_exc()
        sys.exit(1)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """wildmake: rule-based, wildcard-driven build engine."""
    # Initialize console with debug flag
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.argument("targets", nargs=-1)
@click.option("--rulefile", "-s", default=None, help=f"Rule file path (defaults to {DEFAULT_RULEFILE})")
@click.option("--directory", "-d", default=".", show_default=True, help="Working directory for targets and actions")
@click.option("--cores", "-j", default=None, type=click.IntRange(min=1), help="Maximum number of parallel jobs")
@click.option("--dry-run", "-n", is_flag=True, default=False, help="Only print planned jobs and reasons")
@click.option("--keep-going/--no-keep-going", default=True, show_default=True, help="Keep running independent jobs after a failure")
@click.option("--keep-incomplete", is_flag=True, default=False, help="Do not delete outputs of failed jobs")
@click.option("--forceall", "-F", is_flag=True, default=False, help="Run every job regardless of staleness")
@click.option("--forcerun", "-R", multiple=True, help="Force the given rule (or job) to run")
@click.pass_context
def run(ctx, targets, rulefile, directory, cores, dry_run, keep_going, keep_incomplete, forceall, forcerun):
    """Build TARGETS (defaults to the first rule)."""
    console = get_console()
    registry = _load(ctx, rulefile, directory)

    try:
        report = build(
            registry,
            list(targets) or None,
            cores=cores,
            dry_run=dry_run,
            keep_going=keep_going,
            keep_incomplete=keep_incomplete,
            forceall=forceall,
            forcerun=forcerun,
            workdir=directory,
            console=console,
        )
        console.print_results(report)
        if report.failed or report.skipped:
            sys.exit(1)

    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except WildmakeError as e:
        console.print_error("Build failed", e.message, details=str(e).splitlines()[1:])
        if ctx.obj.get("debug", False):
            import traceback
            traceback.print_exc()
        sys.exit(1)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


@cli.command()
@click.argument("targets", nargs=-1)
@click.option("--rulefile", "-s", default=None, help=f"Rule file path (defaults to {DEFAULT_RULEFILE})")
@click.option("--directory", "-d", default=".", show_default=True)
@click.pass_context
def dag(ctx, targets, rulefile, directory):
    """Print the job graph of TARGETS as parallel stages."""
    console = get_console()
    registry = _load(ctx, rulefile, directory)
    try:
        graph = build_graph(registry, list(targets) or [registry.default_target()], workdir=directory, console=console)
    except WildmakeError as e:
        console.print_error("Graph building failed", e.message, details=str(e).splitlines()[1:])
        sys.exit(1)
    console.print_stages(graph.levels())


@cli.command(name="list")
@click.option("--rulefile", "-s", default=None, help=f"Rule file path (defaults to {DEFAULT_RULEFILE})")
@click.option("--directory", "-d", default=".", show_default=True)
@click.pass_context
def list_rules(ctx, rulefile, directory):
    """List declared rules and their output patterns."""
    console = get_console()
    registry = _load(ctx, rulefile, directory)
    for r in registry:
        outputs = ", ".join(r.outputs) if r.outputs else "(no outputs)"
        console.print_info(f"{r.name}: {outputs}")


if __name__ == "__main__":
    cli()
