"""
CLI commands for the built-in self-test and health checks.

Thin wrappers over ``dxenv.core.services.self_test`` and
``dxenv.core.observability.health``.
"""

from __future__ import annotations

import json
import sys

import click

from dxenv.core.observability.health import HealthStatus, run_health_checks
from dxenv.core.services.self_test import TestResult, run_integration_checks, run_unit_checks
from dxenv.ui.cli.common import get_services, print_health_report, rule


def _print_results(results: list[TestResult], title: str) -> None:
    click.secho(f"\n📊 {title} Results:", fg="cyan", bold=True)
    rule()
    for result in results:
        icon = "✅" if result.success else "❌"
        color = "green" if result.success else "red"
        click.secho(f"{icon} {result.name}: {result.passed}/{result.total} passed", fg=color)
        for failure in result.failures:
            click.echo(f"    ✗ {failure}")

    passed = sum(r.passed for r in results)
    total = sum(r.total for r in results)
    click.echo(f"\nTotal: {passed}/{total} tests passed")


@click.command("test")
@click.option("--unit", is_flag=True, help="Run the unit self-checks.")
@click.option("--integration", is_flag=True, help="Run the integration self-checks.")
@click.option("--health/--no-health", default=True, help="Run health checks (default: on).")
@click.option("--no-network", is_flag=True, help="Skip the network connectivity check.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def run_tests(
    ctx: click.Context,
    unit: bool,
    integration: bool,
    health: bool,
    no_network: bool,
    as_json: bool,
) -> None:
    """Run self-tests and health checks."""
    output: dict = {}
    failed = False

    if unit:
        if not as_json:
            click.echo("🧪 Running unit tests...")
        results = run_unit_checks()
        failed |= not all(r.success for r in results)
        output["unit"] = [r.to_dict() for r in results]
        if not as_json:
            _print_results(results, "Unit Tests")

    if integration:
        if not as_json:
            click.echo("🔗 Running integration tests...")
        results = run_integration_checks(ctx.find_root().obj.get("runner"))
        failed |= not all(r.success for r in results)
        output["integration"] = [r.to_dict() for r in results]
        if not as_json:
            _print_results(results, "Integration Tests")

    if health:
        services = get_services(ctx)
        if not as_json:
            click.echo("🏥 Running health checks...")
        report = run_health_checks(
            services.runner, services.security, services.backups,
            home=services.home, network=not no_network,
        )
        output["health"] = report.to_dict()
        if not as_json:
            print_health_report(report)

    if as_json:
        click.echo(json.dumps(output, indent=2))

    if failed:
        sys.exit(1)


@click.command()
@click.option("--no-network", is_flag=True, help="Skip the network connectivity check.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def health(ctx: click.Context, no_network: bool, as_json: bool) -> None:
    """Run health checks. Exits non-zero if any check is an error."""
    services = get_services(ctx)
    report = run_health_checks(
        services.runner, services.security, services.backups,
        home=services.home, network=not no_network,
    )

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        click.echo("🏥 Running health checks...")
        print_health_report(report)

    if report.status == HealthStatus.ERROR:
        sys.exit(1)
