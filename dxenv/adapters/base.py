"""
Runner base — the protocol contract between services and external commands.

Services never call ``subprocess`` directly; they go through a
CommandRunner. That keeps every shell-out in one place and lets tests
swap in the scripted MockCommandRunner.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import BaseModel


class CommandResult(BaseModel):
    """Captured outcome of one command.

    stdout and stderr are complete: the runner returns only after the
    child exited and both pipes were drained.
    """

    command: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        """Whether the command exited with status 0."""
        return self.exit_code == 0

    @property
    def error_text(self) -> str:
        """Best available description of a failure."""
        return self.stderr.strip() or f"Command exited with code {self.exit_code}"


class CommandRunner(ABC):
    """Abstract base class for command runners.

    Runners NEVER raise — spawn failures and timeouts are captured in
    the CommandResult with a non-zero exit code.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The runner identifier (e.g., 'shell', 'mock')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether this runner can execute commands on this host."""

    @abstractmethod
    def run(
        self,
        command: str | list[str],
        *,
        cwd: str | Path | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run a command to completion and capture its output.

        Args:
            command: A shell command line, or an argv list executed
                without a shell.
            cwd: Working directory (default: current directory).
            timeout: Seconds before the child is killed. None = no limit.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


def command_text(command: str | list[str]) -> str:
    """Render a command for logs and results."""
    if isinstance(command, str):
        return command
    return " ".join(command)
