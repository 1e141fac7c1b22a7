"""
Backup & restore manager — checksum-sealed snapshots of config files.

A backup unit is one directory under the backups root::

    backups/<uuid>/
        .zshrc                 copied by basename (metadata preserved)
        .gitconfig
        backup-info.json       BackupInfo sidecar

The sidecar's aggregate checksum is SHA-256 over the concatenation of
the per-file SHA-256 hex digests, in the order the files were copied.
Restore recomputes it from the unit's files and refuses to touch the
filesystem when it no longer matches.

Also owns the configuration file, since both live under the dxenv root
and share the same atomic JSON persistence.
"""

from __future__ import annotations

import logging
import os
import shutil
import uuid
from collections.abc import Callable, Iterable
from pathlib import Path

from dxenv.core.config.loader import DxenvPaths, load_configuration, save_configuration
from dxenv.core.errors import (
    BackupCorrupted,
    BackupFailed,
    BackupNotFound,
    ConfigNotFound,
    ConfigurationError,
    FileReadError,
    InvalidBackupInfo,
)
from dxenv.core.models.backup import BackupInfo
from dxenv.core.models.config import Configuration
from dxenv.core.persistence.json_file import read_model, write_model
from dxenv.core.services.security import SecurityGate, sha256_hex

BACKUP_INFO_FILE = "backup-info.json"


# ═══════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════


def aggregate_checksum(file_checksums: Iterable[str]) -> str:
    """Seal a unit: SHA-256 of the concatenated per-file hex digests.

    An empty unit seals to the SHA-256 of the empty string.
    """
    return sha256_hex("".join(file_checksums).encode("utf-8"))


def _is_plain_name(name: str) -> bool:
    return bool(name) and name not in (".", "..") and "/" not in name and "\\" not in name


# ═══════════════════════════════════════════════════════════════════
#  Manager
# ═══════════════════════════════════════════════════════════════════


class BackupManager:
    """Creates, verifies, restores, lists and deletes backup units.

    Args:
        backups_dir: Root directory holding one subdirectory per unit.
        config_file: Path of the persisted Configuration.
        security: Checksum and path validation (default: a new gate).
        home: Fallback restore root for units without recorded sources
            (default: the user's home directory).
        logger: Logger to report through (default: this module's logger).
    """

    def __init__(
        self,
        backups_dir: Path,
        config_file: Path,
        security: SecurityGate | None = None,
        *,
        home: Path | None = None,
        logger: logging.Logger | None = None,
    ):
        self._backups_dir = Path(backups_dir)
        self._config_file = Path(config_file)
        self._log = logger or logging.getLogger(__name__)
        self._security = security or SecurityGate(logger=self._log)
        self._home = home or Path.home()

    @classmethod
    def from_paths(cls, paths: DxenvPaths, security: SecurityGate | None = None, **kwargs) -> BackupManager:
        return cls(paths.backups_dir, paths.config_file, security, **kwargs)

    @property
    def backups_dir(self) -> Path:
        return self._backups_dir

    @property
    def config_file(self) -> Path:
        return self._config_file

    # ── Create ─────────────────────────────────────────────────────

    def create_backup(self, description: str, files: Iterable[str | Path]) -> BackupInfo:
        """Snapshot ``files`` into a new unit.

        Paths are tilde-expanded. Missing files are skipped with a
        warning, so a unit may legitimately hold no files at all.

        Raises:
            BackupFailed: A file could not be checksummed or copied, two
                inputs share a basename, an input is named
                ``backup-info.json``, or the sidecar could not be written.
                The partial unit is left in place.
        """
        backup_id = str(uuid.uuid4())
        unit = self._backups_dir / backup_id
        try:
            unit.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupFailed(str(unit), e) from e

        self._log.info("Creating backup %s: %s", backup_id, description)

        names: list[str] = []
        checksums: list[str] = []
        sources: dict[str, str] = {}

        for raw in files:
            source = Path(raw).expanduser()
            if not source.exists():
                self._log.warning("File not found for backup: %s", source)
                continue

            name = source.name
            if name == BACKUP_INFO_FILE:
                self._log.error("Refusing to back up a file named %s: %s", BACKUP_INFO_FILE, source)
                raise BackupFailed(str(source), f"{BACKUP_INFO_FILE} is reserved for backup metadata")
            if name in sources:
                self._log.error("Duplicate file name %s in backup %s", name, backup_id)
                raise BackupFailed(str(source), f"another file named {name} is already in this backup")

            try:
                checksum = self._security.compute_file_checksum(source)
                shutil.copy2(source, unit / name)
            except (FileReadError, OSError) as e:
                self._log.error("Failed to backup file %s: %s", source, e)
                raise BackupFailed(str(source), e) from e

            names.append(name)
            checksums.append(checksum)
            sources[name] = os.path.abspath(source)
            self._log.debug("Backed up %s (%s)", source, checksum)

        return self._seal(backup_id, unit, description, names, checksums, sources)

    def add_unit(self, description: str, build: Callable[[Path], Iterable[str]]) -> BackupInfo:
        """Create a unit whose files are produced by ``build(unit_dir)``.

        ``build`` writes files into the unit directory and returns their
        basenames; they are then checksummed and sealed like any other
        unit. Used for tool-generated archives.

        Raises:
            BackupFailed: A produced file is missing, unreadable, or not
                a plain name other than ``backup-info.json``.
        """
        backup_id = str(uuid.uuid4())
        unit = self._backups_dir / backup_id
        try:
            unit.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupFailed(str(unit), e) from e

        names = list(build(unit))
        for name in names:
            if not _is_plain_name(name) or name == BACKUP_INFO_FILE:
                raise BackupFailed(str(unit / name), "not a plain file name inside the backup unit")
        checksums: list[str] = []
        for name in names:
            try:
                checksums.append(self._security.compute_file_checksum(unit / name))
            except FileReadError as e:
                raise BackupFailed(str(unit / name), e) from e

        return self._seal(backup_id, unit, description, names, checksums, {})

    def _seal(
        self,
        backup_id: str,
        unit: Path,
        description: str,
        names: list[str],
        checksums: list[str],
        sources: dict[str, str],
    ) -> BackupInfo:
        info = BackupInfo(
            id=backup_id,
            description=description,
            files=names,
            checksum=aggregate_checksum(checksums),
            sources=sources,
        )
        info_path = unit / BACKUP_INFO_FILE
        try:
            write_model(info, info_path)
        except OSError as e:
            raise BackupFailed(str(info_path), e) from e

        self._log.info("Backup created: %s (%d files)", backup_id, len(names))
        return info

    # ── Verify / restore ───────────────────────────────────────────

    def get_backup(self, backup_id: str) -> BackupInfo:
        """Load a unit's sidecar.

        Raises:
            BackupNotFound: No such unit, or the id is not a plain name.
            InvalidBackupInfo: The sidecar is missing or unparsable.
        """
        return self._read_info(backup_id, self._unit_dir(backup_id))

    def verify_backup(self, backup_id: str) -> bool:
        """Recompute the aggregate checksum and compare it with the sidecar.

        A missing or unreadable file counts as corruption.

        Raises:
            BackupNotFound: No such unit.
            InvalidBackupInfo: The sidecar is missing or unparsable.
        """
        unit = self._unit_dir(backup_id)
        info = self._read_info(backup_id, unit)
        return self._matches_seal(info, unit)

    def restore_backup(self, backup_id: str, target_root: str | Path | None = None) -> list[Path]:
        """Verify a unit, then copy its files back into place.

        Each file goes to its recorded original path, or to
        ``<home>/<basename>`` when none was recorded. ``target_root``
        sends every file to ``<target_root>/<basename>`` instead.
        Existing files are overwritten.

        Returns:
            The restored paths, in unit order.

        Raises:
            BackupNotFound: No such unit.
            InvalidBackupInfo: The sidecar is missing or unparsable, or a
                recorded original path is unsafe; nothing was written.
            BackupCorrupted: The seal does not match; nothing was written.
            ConfigurationError: A file could not be copied into place.
        """
        unit = self._unit_dir(backup_id)
        info = self._read_info(backup_id, unit)

        if not self._matches_seal(info, unit):
            self._log.error("Backup checksum verification failed: %s", backup_id)
            raise BackupCorrupted(backup_id)

        if target_root is not None:
            root = Path(target_root).expanduser()
            destinations = [root / name for name in info.files]
        else:
            destinations = [self._original_path(info, name) for name in info.files]

        restored: list[Path] = []
        for name, destination in zip(info.files, destinations):
            try:
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(unit / name, destination)
            except OSError as e:
                self._log.error("Failed to restore %s to %s: %s", name, destination, e)
                raise ConfigurationError(f"Failed to restore {name} to {destination}: {e}") from e

            self._log.debug("Restored %s -> %s", name, destination)
            restored.append(destination)

        self._log.info("Backup restored: %s (%d files)", backup_id, len(restored))
        return restored

    def _original_path(self, info: BackupInfo, name: str) -> Path:
        """Recorded restore location, checked before anything is written.

        A recorded source must be an absolute path ending in the same
        basename and must pass ``validate_file_path``.
        """
        source = info.source_for(name)
        if not source:
            return self._home / name

        path = Path(source)
        if not path.is_absolute() or path.name != name or not self._security.validate_file_path(source):
            self._log.error("Unsafe restore path for %s in backup %s: %s", name, info.id, source)
            raise InvalidBackupInfo(info.id, f"unsafe restore path for {name}: {source}")
        return path

    # ── List / delete ──────────────────────────────────────────────

    def list_backups(self) -> list[BackupInfo]:
        """All readable units, newest first. Unreadable units are skipped."""
        if not self._backups_dir.is_dir():
            return []

        backups: list[BackupInfo] = []
        for unit in self._backups_dir.iterdir():
            info_path = unit / BACKUP_INFO_FILE
            if not info_path.is_file():
                continue
            try:
                backups.append(read_model(BackupInfo, info_path))
            except (OSError, ValueError) as e:
                self._log.debug("Skipping unreadable backup %s: %s", unit.name, e)

        backups.sort(key=lambda b: b.timestamp, reverse=True)
        return backups

    def delete_backup(self, backup_id: str) -> None:
        """Remove a unit and everything in it.

        Raises:
            BackupNotFound: No such unit.
            ConfigurationError: The directory could not be removed.
        """
        unit = self._unit_dir(backup_id)
        try:
            shutil.rmtree(unit)
        except OSError as e:
            raise ConfigurationError(f"Failed to delete backup {backup_id}: {e}") from e
        self._log.info("Backup deleted: %s", backup_id)

    # ── Configuration ──────────────────────────────────────────────

    def save_configuration(self, config: Configuration) -> None:
        save_configuration(config, self._config_file)

    def load_configuration(self) -> Configuration:
        """Raises ConfigNotFound on first run, ConfigurationError if invalid."""
        return load_configuration(self._config_file)

    def load_or_create_configuration(
        self,
        default_factory: Callable[[], Configuration],
    ) -> tuple[Configuration, bool]:
        """Load the configuration, writing ``default_factory()`` on first run.

        Returns:
            ``(config, created)``.
        """
        try:
            return self.load_configuration(), False
        except ConfigNotFound:
            config = default_factory()
            self.save_configuration(config)
            self._log.info("Created default configuration at %s", self._config_file)
            return config, True

    # ── Internals ──────────────────────────────────────────────────

    def _unit_dir(self, backup_id: str) -> Path:
        if not _is_plain_name(backup_id) or not self._security.validate_file_path(backup_id):
            raise BackupNotFound(backup_id)

        unit = self._backups_dir / backup_id
        if not unit.is_dir():
            raise BackupNotFound(backup_id)
        return unit

    def _read_info(self, backup_id: str, unit: Path) -> BackupInfo:
        info_path = unit / BACKUP_INFO_FILE
        if not info_path.is_file():
            raise InvalidBackupInfo(backup_id, f"missing {BACKUP_INFO_FILE}")

        try:
            info = read_model(BackupInfo, info_path)
        except (OSError, ValueError) as e:
            raise InvalidBackupInfo(backup_id, e) from e

        bad = [name for name in info.files if not _is_plain_name(name) or name == BACKUP_INFO_FILE]
        if bad:
            raise InvalidBackupInfo(backup_id, f"invalid file names: {', '.join(bad)}")
        return info

    def _matches_seal(self, info: BackupInfo, unit: Path) -> bool:
        checksums: list[str] = []
        for name in info.files:
            path = unit / name
            if not path.is_file():
                self._log.warning("Backup %s is missing file %s", info.id, name)
                return False
            try:
                checksums.append(self._security.compute_file_checksum(path))
            except FileReadError as e:
                self._log.warning("Backup %s has unreadable file %s: %s", info.id, name, e)
                return False

        return aggregate_checksum(checksums) == info.checksum.strip().lower()
