"""
Chezmoi adapter — dotfile manager bindings.

Wraps the handful of chezmoi invocations dxenv needs: a presence
check, the upstream install script, and archive export.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path

from dxenv.adapters.base import CommandResult, CommandRunner

logger = logging.getLogger(__name__)

INSTALL_SCRIPT_URL = "get.chezmoi.io"
DEFAULT_BIN_DIR = "/usr/local/bin"


class ChezmoiAdapter:
    """Chezmoi CLI operations.

    Args:
        runner: Executes the chezmoi commands.
        bin_dir: Where the install script places the binary.
        timeout: Seconds per invocation.
    """

    def __init__(
        self,
        runner: CommandRunner,
        bin_dir: str = DEFAULT_BIN_DIR,
        timeout: float | None = 600,
    ):
        self._runner = runner
        self.bin_dir = bin_dir
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "chezmoi"

    def version(self) -> CommandResult:
        return self._runner.run("chezmoi --version", timeout=self._timeout)

    def is_available(self) -> bool:
        return self.version().ok

    def install(self) -> CommandResult:
        """Run the upstream install script into ``bin_dir``."""
        command = (
            f'sh -c "$(curl -fsLS {INSTALL_SCRIPT_URL})" -- -b {shlex.quote(self.bin_dir)}'
        )
        logger.info("Installing chezmoi into %s", self.bin_dir)
        return self._runner.run(command, timeout=self._timeout)

    def archive(self, output: Path) -> CommandResult:
        """Export the managed target state as a tar.gz archive."""
        return self._runner.run(
            ["chezmoi", "archive", "--format", "tar.gz", "--output", str(output)],
            timeout=self._timeout,
        )

    def extract_archive(self, archive: Path, destination: Path) -> CommandResult:
        """Unpack an archive produced by ``archive`` over ``destination``."""
        return self._runner.run(
            ["tar", "-xzf", str(archive), "-C", str(destination)],
            timeout=self._timeout,
        )
