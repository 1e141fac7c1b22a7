"""
Shell command runner — execute command lines and capture their output.

This is the real executor behind every install, check, and tool
shell-out. String commands run through ``bash -c`` (falling back to
``sh``); argv lists run directly.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from pathlib import Path

from dxenv.adapters.base import CommandResult, CommandRunner, command_text

logger = logging.getLogger(__name__)


class ShellCommandRunner(CommandRunner):
    """Run commands through the system shell.

    Args:
        default_timeout: Timeout applied when ``run`` is called without
            one. None disables the limit.
    """

    def __init__(self, default_timeout: float | None = None):
        self._default_timeout = default_timeout

    @property
    def name(self) -> str:
        return "shell"

    @property
    def shell(self) -> str:
        """Shell binary used for string commands."""
        return shutil.which("bash") or shutil.which("sh") or "/bin/sh"

    def is_available(self) -> bool:
        return shutil.which("bash") is not None or shutil.which("sh") is not None

    def run(
        self,
        command: str | list[str],
        *,
        cwd: str | Path | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        text = command_text(command)
        argv = [self.shell, "-c", command] if isinstance(command, str) else list(command)
        limit = timeout if timeout is not None else self._default_timeout

        logger.debug("Executing: %s (cwd=%s)", text, cwd)
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                cwd=str(cwd) if cwd else None,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=limit,
            )
        except subprocess.TimeoutExpired:
            logger.warning("Command timed out after %ss: %s", limit, text)
            return CommandResult(
                command=text,
                exit_code=-1,
                stderr=f"Command timed out after {limit}s",
                duration_ms=int((time.monotonic() - start) * 1000),
                timed_out=True,
            )
        except OSError as e:
            logger.warning("Command could not be started: %s (%s)", text, e)
            return CommandResult(
                command=text,
                exit_code=127,
                stderr=f"Command execution error: {e}",
                duration_ms=int((time.monotonic() - start) * 1000),
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.debug("Exit %d after %dms: %s", result.returncode, elapsed_ms, text)
        return CommandResult(
            command=text,
            exit_code=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            duration_ms=elapsed_ms,
        )
