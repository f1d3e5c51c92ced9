"""
appdeploy — CLI entrypoint.

Usage:
    appdeploy detect
    appdeploy install [--app-id Notepad++.Notepad++]
    appdeploy check [--json]
    appdeploy bootstrap

stdout carries the running log and ends with exactly one line
``<OK|FAIL|NOTE> <timestamp> : <summary>``; the process exit code is
the run's ``ExitCode``. Diagnostic logging goes to stderr.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Callable

import click

from appdeploy import __version__
from appdeploy.core.config.loader import ConfigError, load_config
from appdeploy.core.models.config import DeployConfig
from appdeploy.core.models.status import ExecutionSummary, ExitCode, ReportClass
from appdeploy.core.observability.logging_config import setup_logging
from appdeploy.core.services.app_install import (
    Components,
    build_components,
    run_bootstrap,
    run_check,
    run_detection,
    run_install,
)

logger = logging.getLogger(__name__)

Workflow = Callable[[DeployConfig, Components, Callable[[str], None] | None], ExecutionSummary]


@click.group()
@click.version_option(version=__version__, prog_name="appdeploy")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Print only the final report line.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to deploy.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Detect and install a Windows application through winget."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("APPDEPLOY_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("APPDEPLOY_LOG_FILE"),
        log_file_level=os.environ.get("APPDEPLOY_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


def _execute(ctx: click.Context, workflow: Workflow, *, as_json: bool = False) -> None:
    """Run one workflow and finish the process with its report line."""
    quiet = ctx.obj.get("quiet", False)
    progress = None if quiet else click.echo

    try:
        config = load_config(ctx.obj.get("config_path"))
    except ConfigError as exc:
        summary = ExecutionSummary().fail(ExitCode.FAILURE, f"configuration error: {exc}")
    else:
        try:
            summary = workflow(config, build_components(config), progress)
        except Exception as exc:
            logger.exception("Unhandled error")
            summary = ExecutionSummary(notes=[f"unexpected error: {type(exc).__name__}: {exc}"])
            summary.override(ReportClass.FAIL, ExitCode.FAILURE)

    if as_json:
        click.echo(json.dumps(summary.to_dict(), indent=2))
    click.echo(summary.final_line())
    sys.exit(int(summary.exit_code))


@cli.command()
@click.pass_context
def detect(ctx: click.Context) -> None:
    """Report whether the application is installed."""
    _execute(ctx, run_detection)


@cli.command()
@click.option("--app-id", default=None, help="winget package id (default: from config).")
@click.pass_context
def install(ctx: click.Context, app_id: str | None) -> None:
    """Install the application, repairing winget first if needed."""
    _execute(ctx, lambda config, comps, progress: run_install(config, comps, app_id, progress))


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Also print the summary as JSON.")
@click.pass_context
def check(ctx: click.Context, as_json: bool) -> None:
    """Report architecture, prerequisites, connectivity and winget location."""
    _execute(ctx, run_check, as_json=as_json)


@cli.command()
@click.pass_context
def bootstrap(ctx: click.Context) -> None:
    """Install winget and its dependencies if it cannot be found."""
    _execute(ctx, run_bootstrap)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
