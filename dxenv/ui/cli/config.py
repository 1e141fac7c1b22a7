"""
CLI command for configuration management.

Shows the persisted configuration and keeps the config directory under
git through ``dxenv.core.services.dotfiles``.
"""

from __future__ import annotations

import json

import click

from dxenv.core.errors import DxenvError
from dxenv.ui.cli.common import fail, get_services, rule


@click.command()
@click.option("--show", is_flag=True, help="Show the current configuration.")
@click.option("--init-git", is_flag=True, help="Initialize a git repository in the config directory.")
@click.option("--commit", "commit_message", default=None, help="Commit the config directory with this message.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON (with --show).")
@click.pass_context
def config(
    ctx: click.Context,
    show: bool,
    init_git: bool,
    commit_message: str | None,
    as_json: bool,
) -> None:
    """Manage configuration.

    With no options, shows the current configuration.
    """
    services = get_services(ctx)
    if not (show or init_git or commit_message):
        show = True

    if show:
        try:
            cfg = services.backups.load_configuration()
        except DxenvError as e:
            fail(f"Failed to load configuration: {e}")

        if as_json:
            click.echo(json.dumps(cfg.model_dump(mode="json"), indent=2))
        else:
            click.secho("📋 Current Configuration:", fg="cyan", bold=True)
            rule()
            click.echo(f"Backup Enabled: {str(cfg.backup_enabled).lower()}")
            click.echo(f"Log Level: {cfg.log_level.value}")
            click.echo(f"Log Path: {cfg.log_path}")
            click.echo(f"Backup Path: {cfg.backup_path}")
            click.echo(f"Test Mode: {str(cfg.test_mode).lower()}")
            click.echo(f"Command Timeout: {cfg.command_timeout}s")
            click.echo(f"Download Timeout: {cfg.download_timeout}s")
            click.echo(f"Packages: {len(cfg.packages)}")

    if init_git:
        try:
            services.dotfiles.init_git_repository()
        except DxenvError as e:
            fail(str(e))
        click.secho("✅ Git repository initialized", fg="green")

    if commit_message:
        try:
            services.dotfiles.commit_configuration(commit_message)
        except DxenvError as e:
            fail(str(e))
        click.secho(f"✅ Configuration committed: {commit_message}", fg="green")
