"""
Health checker — point-in-time diagnostics for a dxenv host.

Each check returns one HealthCheck and never raises; failures become
``error`` checks. ``run_health_checks`` runs them all and aggregates a
HealthReport whose status is the worst component status. Used by the
CLI ``health`` and ``test`` commands.
"""

from __future__ import annotations

import logging
import platform
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

import psutil

from dxenv.adapters.base import CommandRunner
from dxenv.core.errors import DxenvError, SecurityError
from dxenv.core.services.backup import BackupManager
from dxenv.core.services.security import SecurityGate

logger = logging.getLogger(__name__)

GIB = 1024 ** 3

MIN_MEMORY_BYTES = 4 * GIB
MIN_FREE_DISK_BYTES = 10 * GIB
DISK_WARNING_PERCENT = 80.0
DISK_ERROR_PERCENT = 90.0

NETWORK_CHECK_URL = "https://www.apple.com"
WRITE_TEST_FILE = ".dxenv-test"

# (component, executable)
TOOL_CHECKS = (
    ("Git", "git"),
    ("Homebrew", "brew"),
    ("Zsh", "zsh"),
    ("Chezmoi", "chezmoi"),
)


class HealthStatus(StrEnum):
    HEALTHY = "healthy"
    WARNING = "warning"
    ERROR = "error"
    UNKNOWN = "unknown"


_SEVERITY = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.UNKNOWN: 1,
    HealthStatus.WARNING: 2,
    HealthStatus.ERROR: 3,
}


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class HealthCheck:
    """Health of a single component."""

    component: str
    status: HealthStatus = HealthStatus.UNKNOWN
    message: str = ""
    details: dict[str, str] = field(default_factory=dict)
    timestamp: str = field(default_factory=_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "component": self.component,
            "status": self.status.value,
            "message": self.message,
            "timestamp": self.timestamp,
            "details": self.details,
        }


@dataclass
class HealthReport:
    """Aggregate of every check that ran."""

    status: HealthStatus = HealthStatus.HEALTHY
    timestamp: str = field(default_factory=_now_iso)
    checks: list[HealthCheck] = field(default_factory=list)

    def add(self, check: HealthCheck) -> None:
        self.checks.append(check)
        self._recalculate()

    def _recalculate(self) -> None:
        """Overall status is the most severe component status."""
        if not self.checks:
            self.status = HealthStatus.HEALTHY
            return
        self.status = max((c.status for c in self.checks), key=_SEVERITY.__getitem__)

    def count(self, status: HealthStatus) -> int:
        return sum(1 for c in self.checks if c.status == status)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "timestamp": self.timestamp,
            "summary": {s.value: self.count(s) for s in HealthStatus},
            "checks": [c.to_dict() for c in self.checks],
        }


# ── Checks ───────────────────────────────────────────────────────────


def _gib(n_bytes: int) -> str:
    return f"{n_bytes / GIB:.1f} GB"


def check_system_requirements(disk_path: Path | None = None) -> HealthCheck:
    """Memory and free disk against the minimums."""
    component = "System Requirements"
    try:
        memory = psutil.virtual_memory().total
        free = shutil.disk_usage(disk_path or Path.home()).free
    except OSError as e:
        return HealthCheck(component, HealthStatus.ERROR, f"Cannot read system resources: {e}", {"Error": str(e)})

    status = HealthStatus.HEALTHY
    message = "System requirements met"
    if memory < MIN_MEMORY_BYTES:
        status = HealthStatus.WARNING
        message = "Low memory detected"
    if free < MIN_FREE_DISK_BYTES:
        status = HealthStatus.WARNING
        message = "Low disk space detected"

    details = {
        "OS": f"{platform.system()} {platform.release()}",
        "Memory": _gib(memory),
        "Disk Space": _gib(free),
    }
    return HealthCheck(component, status, message, details)


def check_network(security: SecurityGate, url: str = NETWORK_CHECK_URL, timeout: float = 10) -> HealthCheck:
    component = "Network Connectivity"
    try:
        security.validate_certificate(url, timeout=timeout)
    except SecurityError as e:
        return HealthCheck(component, HealthStatus.ERROR, f"Network connectivity failed: {e}", {"Error": str(e)})
    return HealthCheck(component, HealthStatus.HEALTHY, "Network connectivity verified", {"URL": url})


def check_disk_space(path: Path | None = None) -> HealthCheck:
    """Used percentage of the volume holding ``path``."""
    component = "Disk Space"
    try:
        usage = shutil.disk_usage(path or Path.home())
    except OSError as e:
        return HealthCheck(component, HealthStatus.ERROR, f"Cannot read disk usage: {e}", {"Error": str(e)})

    used_percent = (usage.total - usage.free) / usage.total * 100 if usage.total else 0.0

    if used_percent > DISK_ERROR_PERCENT:
        status, message = HealthStatus.ERROR, "Disk space critically low"
    elif used_percent > DISK_WARNING_PERCENT:
        status, message = HealthStatus.WARNING, "Disk space running low"
    else:
        status, message = HealthStatus.HEALTHY, "Sufficient disk space available"

    details = {
        "Available": _gib(usage.free),
        "Total": _gib(usage.total),
        "Used %": f"{used_percent:.1f}%",
    }
    return HealthCheck(component, status, message, details)


def check_write_permission(home: Path) -> HealthCheck:
    component = "File Permissions"
    marker = home / WRITE_TEST_FILE
    try:
        marker.write_text("test", encoding="utf-8")
        marker.unlink()
    except OSError as e:
        return HealthCheck(component, HealthStatus.ERROR, f"File permission error: {e}", {"Error": str(e)})
    return HealthCheck(component, HealthStatus.HEALTHY, "File permissions verified", {"Home Directory": str(home)})


def check_tool(runner: CommandRunner, component: str, executable: str, timeout: float = 30) -> HealthCheck:
    """Run ``<executable> --version`` and report what answered."""
    result = runner.run(f"{executable} --version", timeout=timeout)
    if result.ok:
        version = result.stdout.strip().splitlines()[0] if result.stdout.strip() else ""
        return HealthCheck(
            component, HealthStatus.HEALTHY, f"{component} is installed and accessible", {"Version": version},
        )
    return HealthCheck(
        component,
        HealthStatus.ERROR,
        f"{component} is not installed or not accessible",
        {"Exit Code": str(result.exit_code), "Error": result.stderr.strip()},
    )


def check_configuration(backups: BackupManager) -> HealthCheck:
    component = "Configuration"
    try:
        config = backups.load_configuration()
    except DxenvError as e:
        return HealthCheck(
            component, HealthStatus.ERROR, f"Configuration integrity check failed: {e}", {"Error": str(e)},
        )
    return HealthCheck(
        component,
        HealthStatus.HEALTHY,
        "Configuration loaded successfully",
        {
            "Backup Enabled": str(config.backup_enabled).lower(),
            "Log Level": config.log_level.value,
            "Packages Count": str(len(config.packages)),
        },
    )


def check_backups(backups: BackupManager) -> HealthCheck:
    """Verify the seal of every backup unit without restoring any."""
    component = "Backup Integrity"
    units = backups.list_backups()
    if not units:
        return HealthCheck(component, HealthStatus.WARNING, "No backups found", {"Backup Count": "0"})

    corrupted: list[str] = []
    for info in units:
        try:
            if not backups.verify_backup(info.id):
                corrupted.append(info.id)
        except DxenvError as e:
            logger.debug("Backup %s unreadable: %s", info.id, e)
            corrupted.append(info.id)

    if corrupted:
        return HealthCheck(
            component,
            HealthStatus.ERROR,
            f"{len(corrupted)} corrupted backup(s) found",
            {"Total Backups": str(len(units)), "Corrupted": ", ".join(corrupted)},
        )
    return HealthCheck(
        component, HealthStatus.HEALTHY, "All backups verified successfully", {"Total Backups": str(len(units))},
    )


# ── Aggregate ────────────────────────────────────────────────────────


def run_health_checks(
    runner: CommandRunner,
    security: SecurityGate,
    backups: BackupManager,
    *,
    home: Path | None = None,
    network: bool = True,
    tools: Iterable[tuple[str, str]] = TOOL_CHECKS,
) -> HealthReport:
    """Run every check and return the aggregate report."""
    home = home or Path.home()
    report = HealthReport()

    report.add(check_system_requirements(home))
    if network:
        report.add(check_network(security))
    report.add(check_disk_space(home))
    report.add(check_write_permission(home))

    for component, executable in tools:
        report.add(check_tool(runner, component, executable))

    report.add(check_configuration(backups))
    report.add(check_backups(backups))

    logger.info(
        "Health checks complete: %s (%d checks)", report.status.value, len(report.checks),
    )
    return report
