"""
Error taxonomy — every failure kind that crosses a component boundary.

Two families mirror the two core subsystems:

    SecurityError       — URL, download, checksum and command validation
    ConfigurationError  — backup units, configuration file, chezmoi and git

Each subclass carries its own payload as attributes so callers can
branch on the type and still print a readable message via ``str(e)``.
Low-level errors (OSError, JSON, subprocess) are wrapped with
``raise ... from e`` so the original cause stays attached.

Installation outcomes are NOT exceptions — see ``InstallationStatus``.
"""

from __future__ import annotations


class DxenvError(Exception):
    """Base class for all dxenv errors."""


# ── Security ─────────────────────────────────────────────────────────


class SecurityError(DxenvError):
    """Raised by the security gate."""


class InvalidURLError(SecurityError):
    """URL is unparseable or does not use https."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Invalid URL: {url}")


class InvalidResponseError(SecurityError):
    """The server answered with something that is not an HTTP response."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Invalid HTTP response from {url}")


class HttpError(SecurityError):
    """Download returned a status other than 200."""

    def __init__(self, status: int, url: str = ""):
        self.status = status
        self.url = url
        super().__init__(f"HTTP error: {status}")


class FileReadError(SecurityError):
    """A file could not be read for checksumming."""

    def __init__(self, path: str, cause: Exception | None = None):
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to read file: {path}{detail}")


class ConnectivityError(SecurityError):
    """The remote host could not be reached."""

    reason = "Connection failed"

    def __init__(self, url: str, cause: Exception | str):
        self.url = url
        self.cause = cause
        super().__init__(f"{self.reason} for {url}: {cause}")


class CertificateValidationError(ConnectivityError):
    """TLS handshake or certificate verification failed."""

    reason = "Certificate validation failed"


class ChecksumMismatchError(SecurityError):
    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Checksum mismatch. Expected: {expected}, Got: {actual}")


class DangerousCommandError(SecurityError):
    def __init__(self, command: str):
        self.command = command
        super().__init__(f"Dangerous command detected: {command}")


# ── Configuration / backups ──────────────────────────────────────────


class ConfigurationError(DxenvError):
    """Raised by the backup manager, config persistence and tool integrations."""


class BackupFailed(ConfigurationError):
    """Copying or checksumming one of the input files failed."""

    def __init__(self, path: str, cause: Exception | str):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to backup file {path}: {cause}")


class BackupNotFound(ConfigurationError):
    def __init__(self, backup_id: str):
        self.backup_id = backup_id
        super().__init__(f"Backup not found: {backup_id}")


class InvalidBackupInfo(ConfigurationError):
    """The unit's backup-info.json is missing or unparsable."""

    def __init__(self, backup_id: str, cause: Exception | str | None = None):
        self.backup_id = backup_id
        self.cause = cause
        detail = f" ({cause})" if cause else ""
        super().__init__(f"Invalid backup info for: {backup_id}{detail}")


class BackupCorrupted(ConfigurationError):
    """Recomputed aggregate checksum differs from the stored one."""

    def __init__(self, backup_id: str):
        self.backup_id = backup_id
        super().__init__(f"Backup is corrupted: {backup_id}")


class ConfigNotFound(ConfigurationError):
    """No configuration file yet — callers treat this as first run."""

    def __init__(self, path: str = ""):
        self.path = path
        where = f": {path}" if path else ""
        super().__init__(f"Configuration file not found{where}")


class ToolCommandFailed(ConfigurationError):
    """Base for external tool shell-outs that exited non-zero."""

    summary = "External tool failed"

    def __init__(self, detail: str = ""):
        self.detail = detail.strip()
        message = self.summary
        if self.detail:
            message = f"{message}: {self.detail}"
        super().__init__(message)


class ChezmoiInstallationFailed(ToolCommandFailed):
    summary = "Failed to install chezmoi"


class ChezmoiBackupFailed(ToolCommandFailed):
    summary = "Failed to create chezmoi backup"


class ChezmoiRestoreFailed(ToolCommandFailed):
    summary = "Failed to restore chezmoi backup"


class GitInitFailed(ToolCommandFailed):
    summary = "Failed to initialize git repository"


class GitCommitFailed(ToolCommandFailed):
    summary = "Failed to commit configuration"


# ── Install planning ─────────────────────────────────────────────────


class InstallPlanError(DxenvError):
    """Raised when a dry-run install plan cannot be built."""


class DependencyNotFoundError(InstallPlanError):
    def __init__(self, package_id: str, required_by: str = ""):
        self.package_id = package_id
        self.required_by = required_by
        suffix = f" (required by {required_by})" if required_by else ""
        super().__init__(f"Dependency not found: {package_id}{suffix}")


class DependencyCycleError(InstallPlanError):
    def __init__(self, chain: list[str]):
        self.chain = list(chain)
        super().__init__(f"Dependency cycle detected: {' -> '.join(self.chain)}")
