"""
dxenv — CLI entrypoint.

Usage:
    dxenv --help
    dxenv install --dry-run
    dxenv backup ~/.zshrc
    python -m dxenv.main health
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from dxenv import __version__
from dxenv.core.config.loader import DxenvPaths, load_configuration, log_file_for, resolve_paths
from dxenv.core.errors import DxenvError
from dxenv.core.observability.logging_config import setup_logging

LOG_LEVEL_ENV_VAR = "DXENV_LOG_LEVEL"


def _configured_logging(paths: DxenvPaths) -> tuple[str | None, Path]:
    """File log level and log file from the configuration, if one is readable."""
    try:
        config = load_configuration(paths.config_file)
    except DxenvError:
        return None, paths.log_file
    return config.log_level.value.upper(), log_file_for(config)


@click.group()
@click.version_option(version=__version__, prog_name="dxenv")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--root",
    type=click.Path(file_okay=False),
    default=None,
    help="dxenv state directory (default: $DXENV_HOME or ~/.dxenv).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, debug: bool, root: str | None) -> None:
    """dxenv — development environment installer for macOS."""
    ctx.ensure_object(dict)
    paths = resolve_paths(root)
    ctx.obj["paths"] = paths
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    else:
        level = os.environ.get(LOG_LEVEL_ENV_VAR, "WARNING")

    configured_level, log_file = _configured_logging(paths)
    file_level = "DEBUG" if debug else configured_level or "INFO"

    setup_logging(
        level=level,
        log_file=log_file,
        log_file_level=file_level,
        quiet_third_party=not debug,
    )


# ── Register sub-commands from dxenv/ui/cli/ ──────────────────────
from dxenv.ui.cli.backup import backup, backups, restore  # noqa: E402
from dxenv.ui.cli.config import config  # noqa: E402
from dxenv.ui.cli.install import install  # noqa: E402
from dxenv.ui.cli.testing import health, run_tests  # noqa: E402

cli.add_command(install)
cli.add_command(backup)
cli.add_command(restore)
cli.add_command(backups)
cli.add_command(run_tests)
cli.add_command(health)
cli.add_command(config)


if __name__ == "__main__":
    cli()
