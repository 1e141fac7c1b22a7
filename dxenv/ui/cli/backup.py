"""
CLI commands for Backup & Restore.

Thin wrappers over ``dxenv.core.services.backup`` and, for chezmoi
snapshots, ``dxenv.core.services.dotfiles``.
"""

from __future__ import annotations

import json

import click

from dxenv.core.config.loader import DEFAULT_BACKUP_FILES
from dxenv.core.errors import DxenvError
from dxenv.core.models.backup import BackupInfo
from dxenv.ui.cli.common import fail, get_services


def _print_backup(info: BackupInfo) -> None:
    click.echo(f"   ID: {info.id}")
    click.echo(f"   Description: {info.description}")
    click.echo(f"   Files: {', '.join(info.files) if info.files else '(none)'}")
    click.echo(f"   Timestamp: {info.timestamp.isoformat()}")


@click.command()
@click.argument("files", nargs=-1)
@click.option("--description", "-d", default="Manual backup", help="Backup description.")
@click.option("--chezmoi", "use_chezmoi", is_flag=True, help="Snapshot chezmoi's target state instead of files.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def backup(
    ctx: click.Context,
    files: tuple[str, ...],
    description: str,
    use_chezmoi: bool,
    as_json: bool,
) -> None:
    """Create a backup of configuration files.

    FILES default to ~/.zshrc, ~/.bash_profile and ~/.gitconfig.

    Examples:

        dxenv backup

        dxenv backup -d "before zsh rework" ~/.zshrc ~/.zprofile

        dxenv backup --chezmoi
    """
    services = get_services(ctx)
    try:
        if use_chezmoi:
            info = services.dotfiles.backup_with_chezmoi(description)
        else:
            info = services.backups.create_backup(description, files or DEFAULT_BACKUP_FILES)
    except DxenvError as e:
        fail(f"Backup failed: {e}")

    if as_json:
        click.echo(json.dumps(info.model_dump(mode="json"), indent=2))
        return

    click.secho("✅ Backup created successfully", fg="green", bold=True)
    _print_backup(info)


@click.command()
@click.argument("backup_id")
@click.option(
    "--target", "-t",
    type=click.Path(file_okay=False),
    default=None,
    help="Restore every file into this directory instead of its original location.",
)
@click.option("--chezmoi", "use_chezmoi", is_flag=True, help="Extract a chezmoi snapshot over the home directory.")
@click.pass_context
def restore(ctx: click.Context, backup_id: str, target: str | None, use_chezmoi: bool) -> None:
    """Restore files from a backup after verifying its checksum."""
    services = get_services(ctx)
    try:
        if use_chezmoi:
            services.dotfiles.restore_with_chezmoi(backup_id)
            restored = []
        else:
            restored = services.backups.restore_backup(backup_id, target_root=target)
    except DxenvError as e:
        fail(f"Restore failed: {e}")

    click.secho("✅ Backup restored successfully", fg="green", bold=True)
    for path in restored:
        click.echo(f"   → {path}")


# ── Backup management ───────────────────────────────────────────────


@click.group()
def backups() -> None:
    """List, verify and delete backups."""


@backups.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_backups_cmd(ctx: click.Context, as_json: bool) -> None:
    """List backups, newest first."""
    services = get_services(ctx)
    items = services.backups.list_backups()

    if as_json:
        click.echo(json.dumps([b.model_dump(mode="json") for b in items], indent=2))
        return

    if not items:
        click.secho(f"No backups found in {services.backups.backups_dir}", fg="yellow")
        return

    click.secho(f"📦 Backups ({len(items)}):", fg="cyan", bold=True)
    for info in items:
        stamp = info.timestamp.strftime("%Y-%m-%d %H:%M:%S")
        click.echo(f"   {info.id}  {stamp}  {info.description}  ({len(info.files)} files)")


@backups.command("verify")
@click.argument("backup_id")
@click.pass_context
def verify_backup_cmd(ctx: click.Context, backup_id: str) -> None:
    """Check a backup's checksum without restoring it."""
    services = get_services(ctx)
    try:
        valid = services.backups.verify_backup(backup_id)
    except DxenvError as e:
        fail(str(e))

    if not valid:
        fail(f"Backup is corrupted: {backup_id}")
    click.secho(f"✅ Backup verified: {backup_id}", fg="green")


@backups.command("delete")
@click.argument("backup_id")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def delete_backup_cmd(ctx: click.Context, backup_id: str, yes: bool) -> None:
    """Delete a backup and all of its files."""
    services = get_services(ctx)
    if not yes:
        click.confirm(f"Delete backup {backup_id}?", abort=True)
    try:
        services.backups.delete_backup(backup_id)
    except DxenvError as e:
        fail(str(e))
    click.secho(f"🗑️  Backup deleted: {backup_id}", fg="green")
