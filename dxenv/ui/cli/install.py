"""
CLI command for package installation.

Thin wrapper over ``dxenv.core.services.installer``.
"""

from __future__ import annotations

import json
import logging
import sys

import click

from dxenv.core.config.loader import DEFAULT_BACKUP_FILES, default_configuration
from dxenv.core.data import load_default_catalog
from dxenv.core.errors import DxenvError, InstallPlanError
from dxenv.core.models.config import LogLevel
from dxenv.core.models.package import InstallationStatus, summarize_results
from dxenv.core.observability.health import run_health_checks
from dxenv.core.observability.logging_config import setup_logging
from dxenv.ui.cli.common import fail, get_services, print_health_report, rule

logger = logging.getLogger(__name__)

_RESULT_LINES = {
    InstallationStatus.INSTALLED: ("✅ {name} installed successfully", "green"),
    InstallationStatus.SKIPPED: ("⏭️  {name} already installed", "white"),
    InstallationStatus.FAILED: ("❌ {name} installation failed: {message}", "red"),
}


@click.command()
@click.option("--test-mode", is_flag=True, help="Skip the post-install health checks.")
@click.option("--skip-backup", is_flag=True, help="Skip the pre-installation backup.")
@click.option(
    "--log-level",
    type=click.Choice([level.value for level in LogLevel]),
    default=None,
    help="Log level for this run (default: from configuration).",
)
@click.option("--dry-run", is_flag=True, help="Print the install order without running anything.")
@click.option(
    "--package", "-p", "package_ids",
    multiple=True,
    help="Install only this package (repeatable). Default: the whole catalog.",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    test_mode: bool,
    skip_backup: bool,
    log_level: str | None,
    dry_run: bool,
    package_ids: tuple[str, ...],
    as_json: bool,
) -> None:
    """Install development environment packages.

    Examples:

        dxenv install

        dxenv install -p git -p nvim --dry-run
    """
    services = get_services(ctx)
    installer = services.installer

    if log_level:
        setup_logging(level=log_level.upper(), log_file=services.log_file)

    # ── Select packages ─────────────────────────────────────────
    if package_ids:
        packages = []
        for package_id in package_ids:
            package = installer.find_package(package_id)
            if package is None:
                fail(f"Unknown package: {package_id}")
            packages.append(package)
    else:
        packages = installer.packages

    if dry_run:
        try:
            order = installer.plan(packages)
        except InstallPlanError as e:
            fail(str(e))
        if as_json:
            click.echo(json.dumps({"plan": order}, indent=2))
            return
        click.secho("📋 Install plan (dependencies first):", fg="cyan", bold=True)
        for i, package_id in enumerate(order, 1):
            click.echo(f"   {i}. {package_id}")
        return

    # ── Configuration ───────────────────────────────────────────
    try:
        config, created = services.backups.load_or_create_configuration(
            lambda: default_configuration(
                services.paths,
                load_default_catalog(),
                log_level=log_level or LogLevel.INFO,
            )
        )
    except DxenvError as e:
        fail(str(e))
    if created and not as_json:
        click.echo(f"📝 Created default configuration: {services.backups.config_file}")
    test_mode = test_mode or config.test_mode

    # ── Pre-installation backup ─────────────────────────────────
    if not skip_backup and config.backup_enabled:
        try:
            info = services.backups.create_backup("Pre-installation backup", DEFAULT_BACKUP_FILES)
            if not as_json:
                click.echo(f"💾 Backup created: {info.id}")
        except DxenvError as e:
            logger.warning("Failed to create backup: %s", e)
            if not as_json:
                click.secho(f"⚠️  Backup failed: {e}", fg="yellow")

    # ── Install ─────────────────────────────────────────────────
    def on_progress(name: str, fraction: float) -> None:
        if not as_json:
            click.echo(f"[{int(fraction * 100):3d}%] {name}")

    results = installer.install_packages(packages, progress=on_progress)
    summary = summarize_results(results)

    if as_json:
        click.echo(json.dumps({
            "results": [r.model_dump(mode="json") for r in results],
            "summary": summary,
        }, indent=2))
    else:
        click.echo()
        names = {p.id: p.name for p in installer.packages}
        for result in results:
            template, color = _RESULT_LINES.get(result.status, ("{name}: {message}", "white"))
            name = names.get(result.package_id, result.package_id)
            click.secho(template.format(name=name, message=result.message), fg=color)

        click.secho("\n📊 Installation Summary:", fg="cyan", bold=True)
        rule()
        click.echo(f"✅ Installed: {summary['installed']}")
        click.echo(f"⏭️  Skipped: {summary['skipped']}")
        click.echo(f"❌ Failed: {summary['failed']}")

        failed = [r for r in results if r.failed]
        if failed:
            click.echo("\nFailed installations:")
            for result in failed:
                click.echo(f"  - {result.package_id}: {result.message}")

        if not test_mode:
            click.echo("\nRunning health checks...")
            report = run_health_checks(
                services.runner, services.security, services.backups, home=services.home,
            )
            print_health_report(report)

    if summary["failed"]:
        sys.exit(1)
