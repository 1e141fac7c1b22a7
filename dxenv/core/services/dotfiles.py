"""
Dotfiles service — chezmoi snapshots and git history for the config dir.

Thin orchestration over the chezmoi and git adapters. Each operation is
a single synchronous shell-out; a non-zero exit raises the dedicated
ConfigurationError subclass carrying the tool's stderr. Nothing retries.
"""

from __future__ import annotations

import logging
from pathlib import Path

from dxenv.adapters.base import CommandRunner
from dxenv.adapters.dotfiles.chezmoi import DEFAULT_BIN_DIR, ChezmoiAdapter
from dxenv.adapters.vcs.git import GitAdapter
from dxenv.core.errors import (
    BackupCorrupted,
    ChezmoiBackupFailed,
    ChezmoiInstallationFailed,
    ChezmoiRestoreFailed,
    GitCommitFailed,
    GitInitFailed,
)
from dxenv.core.models.backup import BackupInfo
from dxenv.core.services.backup import BackupManager

CHEZMOI_ARCHIVE = "chezmoi-archive.tar.gz"


class DotfilesService:
    """Chezmoi and git integration.

    Args:
        runner: Executes chezmoi, tar and git.
        backups: Stores and verifies chezmoi archive units.
        config_dir: Directory placed under git.
        home: Where chezmoi archives are extracted on restore.
        bin_dir: Install target for the chezmoi binary.
        timeout: Seconds per shell-out.
    """

    def __init__(
        self,
        runner: CommandRunner,
        backups: BackupManager,
        config_dir: Path,
        *,
        home: Path | None = None,
        bin_dir: str = DEFAULT_BIN_DIR,
        timeout: float | None = 600,
        logger: logging.Logger | None = None,
    ):
        self._backups = backups
        self._home = home or Path.home()
        self._log = logger or logging.getLogger(__name__)
        self.chezmoi = ChezmoiAdapter(runner, bin_dir=bin_dir, timeout=timeout)
        self.git = GitAdapter(runner, config_dir)

    # ── Chezmoi ────────────────────────────────────────────────────

    def setup_chezmoi(self) -> bool:
        """Make sure chezmoi is installed.

        Returns:
            True if chezmoi was installed now, False if already present.

        Raises:
            ChezmoiInstallationFailed: The install script exited non-zero.
        """
        if self.chezmoi.is_available():
            self._log.info("Chezmoi is already installed")
            return False

        self._log.info("Installing chezmoi...")
        result = self.chezmoi.install()
        if not result.ok:
            raise ChezmoiInstallationFailed(result.error_text)

        self._log.info("Chezmoi installed successfully")
        return True

    def backup_with_chezmoi(self, description: str = "Chezmoi backup") -> BackupInfo:
        """Archive chezmoi's target state into a new sealed backup unit.

        Raises:
            ChezmoiBackupFailed: ``chezmoi archive`` exited non-zero.
            BackupFailed: The archive could not be sealed.
        """

        def build(unit: Path) -> list[str]:
            result = self.chezmoi.archive(unit / CHEZMOI_ARCHIVE)
            if not result.ok:
                self._log.error("chezmoi archive failed: %s", result.error_text)
                raise ChezmoiBackupFailed(result.error_text)
            return [CHEZMOI_ARCHIVE]

        info = self._backups.add_unit(description, build)
        self._log.info("Chezmoi backup created: %s", info.id)
        return info

    def restore_with_chezmoi(self, backup_id: str) -> None:
        """Verify a chezmoi unit, then extract its archive over the home dir.

        Raises:
            BackupNotFound, InvalidBackupInfo: The unit cannot be read.
            BackupCorrupted: The seal does not match.
            ChezmoiRestoreFailed: Not a chezmoi unit, or extraction failed.
        """
        info = self._backups.get_backup(backup_id)
        if CHEZMOI_ARCHIVE not in info.files:
            raise ChezmoiRestoreFailed(f"backup {backup_id} holds no {CHEZMOI_ARCHIVE}")
        if not self._backups.verify_backup(backup_id):
            raise BackupCorrupted(backup_id)

        archive = self._backups.backups_dir / backup_id / CHEZMOI_ARCHIVE
        result = self.chezmoi.extract_archive(archive, self._home)
        if not result.ok:
            raise ChezmoiRestoreFailed(result.error_text)

        self._log.info("Chezmoi backup restored: %s", backup_id)

    # ── Git ────────────────────────────────────────────────────────

    def init_git_repository(self) -> None:
        """Raises GitInitFailed if ``git init`` exits non-zero."""
        self.git.repo_dir.mkdir(parents=True, exist_ok=True)
        result = self.git.init()
        if not result.ok:
            raise GitInitFailed(result.error_text)
        self._log.info("Git repository initialized in %s", self.git.repo_dir)

    def commit_configuration(self, message: str) -> None:
        """Stage everything in the config dir and commit it.

        Raises:
            GitCommitFailed: ``git add`` or ``git commit`` exited non-zero.
        """
        result = self.git.add_all()
        if not result.ok:
            raise GitCommitFailed(result.error_text)

        result = self.git.commit(message)
        if not result.ok:
            raise GitCommitFailed(result.error_text)
        self._log.info("Configuration committed: %s", message)
