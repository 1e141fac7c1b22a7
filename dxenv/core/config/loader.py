"""
Configuration loader — filesystem layout and the dxenv-config.json file.

All paths hang off one root (default ``~/.dxenv``):

    config/dxenv-config.json   Configuration
    backups/<uuid>/            one directory per backup unit
    logs/dxenv.log             rotating log file

The root is resolved in precedence order:
    --root CLI option  >  DXENV_HOME env var  >  ~/.dxenv
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dxenv.core.errors import ConfigNotFound, ConfigurationError
from dxenv.core.models.config import Configuration, LogLevel
from dxenv.core.observability.logging_config import LOG_FILE_NAME
from dxenv.core.persistence.json_file import read_model, write_model

logger = logging.getLogger(__name__)

DEFAULT_ROOT = "~/.dxenv"
ROOT_ENV_VAR = "DXENV_HOME"
CONFIG_FILE_NAME = "dxenv-config.json"

# Files snapshotted before an install and by a bare `dxenv backup`
DEFAULT_BACKUP_FILES = ("~/.zshrc", "~/.bash_profile", "~/.gitconfig")


@dataclass(frozen=True)
class DxenvPaths:
    """Resolved on-disk layout under one root directory."""

    root: Path

    @property
    def config_dir(self) -> Path:
        return self.root / "config"

    @property
    def config_file(self) -> Path:
        return self.config_dir / CONFIG_FILE_NAME

    @property
    def backups_dir(self) -> Path:
        return self.root / "backups"

    @property
    def logs_dir(self) -> Path:
        return self.root / "logs"

    @property
    def log_file(self) -> Path:
        return self.logs_dir / LOG_FILE_NAME

    def ensure(self) -> None:
        """Create the config, backups and logs directories."""
        for directory in (self.config_dir, self.backups_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)


def resolve_paths(root: str | Path | None = None) -> DxenvPaths:
    """Resolve the dxenv root from an explicit value, the env, or the default."""
    raw = root or os.environ.get(ROOT_ENV_VAR) or DEFAULT_ROOT
    return DxenvPaths(root=Path(raw).expanduser())


def default_configuration(
    paths: DxenvPaths,
    packages: list | None = None,
    log_level: LogLevel | str = LogLevel.INFO,
) -> Configuration:
    """First-run configuration rooted at ``paths``."""
    return Configuration(
        backup_enabled=True,
        backup_path=str(paths.backups_dir),
        log_level=LogLevel(log_level),
        log_path=str(paths.logs_dir),
        test_mode=False,
        packages=list(packages or []),
    )


def log_file_for(config: Configuration) -> Path:
    """Active log file under the configuration's ``log_path``."""
    return Path(config.log_path).expanduser() / LOG_FILE_NAME


def load_configuration(path: Path) -> Configuration:
    """Load and validate the configuration file.

    Raises:
        ConfigNotFound: If the file does not exist (first run).
        ConfigurationError: If the file cannot be read or is invalid.
    """
    if not path.is_file():
        raise ConfigNotFound(str(path))

    try:
        config = read_model(Configuration, path)
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e
    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e

    logger.info("Configuration loaded from: %s", path)
    return config


def save_configuration(config: Configuration, path: Path) -> None:
    """Persist the configuration (pretty-printed JSON, atomic write).

    Raises:
        ConfigurationError: If the file cannot be written.
    """
    try:
        write_model(config, path)
    except OSError as e:
        raise ConfigurationError(f"Cannot write {path}: {e}") from e
    logger.info("Configuration saved to: %s", path)
