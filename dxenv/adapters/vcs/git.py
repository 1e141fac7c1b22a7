"""
Git adapter — version control for the configuration directory.

Provides init / add / commit through a CommandRunner. Uses the git CLI,
never a library binding. Like every adapter, it returns CommandResults
and leaves the decision of what counts as fatal to the caller.
"""

from __future__ import annotations

import logging
from pathlib import Path

from dxenv.adapters.base import CommandResult, CommandRunner

logger = logging.getLogger(__name__)


class GitAdapter:
    """Git operations scoped to one working directory.

    Args:
        runner: Executes the git commands.
        repo_dir: Directory the repository lives in.
        timeout: Seconds per git invocation.
    """

    def __init__(self, runner: CommandRunner, repo_dir: Path, timeout: float = 30):
        self._runner = runner
        self.repo_dir = Path(repo_dir)
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "git"

    def is_available(self) -> bool:
        return self._git(["--version"]).ok

    def is_repository(self) -> bool:
        return (self.repo_dir / ".git").is_dir()

    def init(self) -> CommandResult:
        return self._git(["init"])

    def add_all(self) -> CommandResult:
        return self._git(["add", "."])

    def commit(self, message: str) -> CommandResult:
        return self._git(["commit", "-m", message])

    # ── Helpers ─────────────────────────────────────────────────

    def _git(self, args: list[str]) -> CommandResult:
        """Run a git command inside the repository directory."""
        result = self._runner.run(["git", *args], cwd=self.repo_dir, timeout=self._timeout)
        if not result.ok:
            logger.debug("git %s failed: %s", args[0], result.error_text)
        return result
