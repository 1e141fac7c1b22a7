"""
Package and InstallationResult models — the install contract.

A Package describes one installable tool and how to detect it.
An InstallationResult records what happened when the installer
processed it. Both are frozen: the catalog is static, and a result
is never mutated once produced.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


def _now() -> datetime:
    return datetime.now(UTC)


class PackageCategory(StrEnum):
    """What kind of tool a package is."""

    SHELL = "shell"
    PACKAGE_MANAGER = "package-manager"
    VERSION_CONTROL = "version-control"
    EDITOR = "editor"
    DEVELOPMENT = "development"
    CONTAINERIZATION = "containerization"

    @property
    def display_name(self) -> str:
        return self.value.replace("-", " ").title()


class InstallationStatus(StrEnum):
    """Lifecycle states of one package within an install run."""

    NOT_INSTALLED = "not-installed"
    INSTALLING = "installing"
    INSTALLED = "installed"
    FAILED = "failed"
    SKIPPED = "skipped"


class Package(BaseModel):
    """Static descriptor for an installable tool.

    Dependencies are referenced by id and resolved against the active
    catalog at install time, never held as object references.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    category: PackageCategory
    install_command: str
    check_command: str
    download_url: str | None = None
    checksum: str | None = None        # expected SHA-256 hex of download_url
    dependencies: tuple[str, ...] = ()
    post_install_commands: tuple[str, ...] = ()


class InstallationResult(BaseModel):
    """Outcome of one install attempt for one package."""

    model_config = ConfigDict(frozen=True)

    package_id: str
    status: InstallationStatus
    message: str = ""
    timestamp: datetime = Field(default_factory=_now)
    duration: float | None = None      # seconds
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Installed or already present."""
        return self.status in (InstallationStatus.INSTALLED, InstallationStatus.SKIPPED)

    @property
    def failed(self) -> bool:
        return self.status == InstallationStatus.FAILED

    @classmethod
    def installed(cls, package_id: str, message: str, **kwargs) -> InstallationResult:
        return cls(package_id=package_id, status=InstallationStatus.INSTALLED, message=message, **kwargs)

    @classmethod
    def skipped(cls, package_id: str, message: str, **kwargs) -> InstallationResult:
        return cls(package_id=package_id, status=InstallationStatus.SKIPPED, message=message, **kwargs)

    @classmethod
    def failure(
        cls,
        package_id: str,
        message: str,
        error: str | None = None,
        **kwargs,
    ) -> InstallationResult:
        """Create a failed result. ``error`` defaults to the message."""
        return cls(
            package_id=package_id,
            status=InstallationStatus.FAILED,
            message=message,
            error=error if error is not None else message,
            **kwargs,
        )


def summarize_results(results: list[InstallationResult]) -> dict[str, int]:
    """Count results per terminal status."""
    counts = {
        InstallationStatus.INSTALLED.value: 0,
        InstallationStatus.SKIPPED.value: 0,
        InstallationStatus.FAILED.value: 0,
    }
    for result in results:
        if result.status.value in counts:
            counts[result.status.value] += 1
    return counts
