"""
Service context — wires the core services for one dxenv root.

Every entry point (CLI commands, the self-test harness) builds its
services here, so the runner, security gate and timeouts are configured
in exactly one place:

    - CLI:    main.py → ctx.obj["services"] = build_services(paths)
    - Tests:  build_services(tmp_paths, runner=MockCommandRunner())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from dxenv.adapters.base import CommandRunner
from dxenv.adapters.shell.command import ShellCommandRunner
from dxenv.core.config.loader import DxenvPaths, default_configuration, load_configuration, log_file_for
from dxenv.core.data import load_default_catalog
from dxenv.core.errors import ConfigNotFound
from dxenv.core.models.config import Configuration
from dxenv.core.services.backup import BackupManager
from dxenv.core.services.dotfiles import DotfilesService
from dxenv.core.services.installer import PackageInstaller
from dxenv.core.services.security import SecurityGate

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a command needs, built for one root."""

    paths: DxenvPaths
    config: Configuration
    config_exists: bool
    runner: CommandRunner
    security: SecurityGate
    backups: BackupManager
    installer: PackageInstaller
    dotfiles: DotfilesService
    home: Path

    @property
    def log_file(self) -> Path:
        return log_file_for(self.config)


def build_services(
    paths: DxenvPaths,
    runner: CommandRunner | None = None,
    home: Path | None = None,
) -> Services:
    """Build the services for ``paths``.

    The configuration file is read if present; otherwise the defaults
    are used in memory and nothing is written. Backups live under the
    configuration's ``backup_path``.

    Raises:
        ConfigurationError: The configuration file exists but is invalid.
    """
    home = home or Path.home()
    security = SecurityGate()

    try:
        config = load_configuration(paths.config_file)
        config_exists = True
    except ConfigNotFound:
        config = default_configuration(paths, load_default_catalog())
        config_exists = False

    backups = BackupManager(Path(config.backup_path).expanduser(), paths.config_file, security, home=home)

    runner = runner or ShellCommandRunner(default_timeout=config.command_timeout)
    installer = PackageInstaller(
        runner,
        security,
        config.packages or load_default_catalog(),
        command_timeout=config.command_timeout,
        download_timeout=config.download_timeout,
    )
    dotfiles = DotfilesService(
        runner, backups, paths.config_dir, home=home, timeout=config.command_timeout,
    )

    logger.debug("Services ready for %s (runner=%s)", paths.root, runner.name)
    return Services(
        paths=paths,
        config=config,
        config_exists=config_exists,
        runner=runner,
        security=security,
        backups=backups,
        installer=installer,
        dotfiles=dotfiles,
        home=home,
    )
