"""
Shared helpers for the CLI command modules.
"""

from __future__ import annotations

import sys
from typing import NoReturn

import click

from dxenv.core.context import Services, build_services
from dxenv.core.errors import DxenvError
from dxenv.core.observability.health import HealthReport, HealthStatus

_HEALTH_ICONS = {
    HealthStatus.HEALTHY: "✅",
    HealthStatus.WARNING: "⚠️ ",
    HealthStatus.ERROR: "❌",
    HealthStatus.UNKNOWN: "❔",
}

_HEALTH_COLORS = {
    HealthStatus.HEALTHY: "green",
    HealthStatus.WARNING: "yellow",
    HealthStatus.ERROR: "red",
    HealthStatus.UNKNOWN: "white",
}


def fail(message: str) -> NoReturn:
    click.secho(f"❌ {message}", fg="red")
    sys.exit(1)


def get_services(ctx: click.Context) -> Services:
    """Build (once per invocation) the services for the selected root.

    ``ctx.obj`` may carry a pre-built ``runner`` or ``home`` override;
    the test suite injects a MockCommandRunner that way.
    """
    obj = ctx.find_root().obj
    services = obj.get("services")
    if services is None:
        try:
            services = build_services(obj["paths"], runner=obj.get("runner"), home=obj.get("home"))
        except DxenvError as e:
            fail(str(e))
        obj["services"] = services
    return services


def rule() -> None:
    click.echo("=" * 50)


def print_health_report(report: HealthReport) -> None:
    click.secho("\n🏥 Health Check Results:", fg="cyan", bold=True)
    rule()
    for check in report.checks:
        icon = _HEALTH_ICONS[check.status]
        click.secho(f"{icon} {check.component}: {check.message}", fg=_HEALTH_COLORS[check.status])
        for key, value in check.details.items():
            click.echo(f"    {key}: {value}")

    click.echo()
    click.secho(
        f"Overall: {report.status.value}",
        fg=_HEALTH_COLORS[report.status],
        bold=True,
    )
