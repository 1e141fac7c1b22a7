"""
Mock runner — scripted test double for command execution.

Used by the test suite and the self-test harness to simulate installs
without touching the host. Responses are keyed by the exact command
text; unscripted commands return ``default_exit_code``.
"""

from __future__ import annotations

from pathlib import Path

from dxenv.adapters.base import CommandResult, CommandRunner, command_text


class MockCommandRunner(CommandRunner):
    """Scriptable runner that records every call.

    Example::

        runner = MockCommandRunner(default_exit_code=0)
        runner.set_sequence("git --version", [1, 0])   # missing, then present
        runner.set_response("brew install git", exit_code=0)
    """

    def __init__(
        self,
        runner_name: str = "mock",
        available: bool = True,
        default_exit_code: int = 0,
        default_stdout: str = "[mock] executed",
    ):
        self._name = runner_name
        self._available = available
        self._default_exit_code = default_exit_code
        self._default_stdout = default_stdout
        self._responses: dict[str, list[CommandResult]] = {}
        self._call_log: list[str] = []
        self._cwd_log: list[str | None] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[str]:
        """Every command text this mock has received, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def cwd_log(self) -> list[str | None]:
        """Working directory of each call, parallel to ``call_log``."""
        return self._cwd_log

    def calls_for(self, command: str) -> int:
        """How many times a given command was run."""
        return self._call_log.count(command)

    def is_available(self) -> bool:
        return self._available

    def set_response(
        self,
        command: str,
        exit_code: int = 0,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        """Always answer ``command`` with the given result."""
        self._responses[command] = [
            CommandResult(command=command, exit_code=exit_code, stdout=stdout, stderr=stderr)
        ]

    def set_failure(self, command: str, stderr: str = "Mock failure", exit_code: int = 1) -> None:
        self.set_response(command, exit_code=exit_code, stderr=stderr)

    def set_sequence(self, command: str, exit_codes: list[int], stderr: str = "") -> None:
        """Answer successive calls with successive exit codes.

        The last entry repeats once the sequence is exhausted.
        """
        self._responses[command] = [
            CommandResult(command=command, exit_code=code, stderr=stderr if code else "")
            for code in exit_codes
        ]

    def run(
        self,
        command: str | list[str],
        *,
        cwd: str | Path | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        text = command_text(command)
        self._call_log.append(text)
        self._cwd_log.append(str(cwd) if cwd else None)

        scripted = self._responses.get(text)
        if scripted:
            if len(scripted) > 1:
                return scripted.pop(0)
            return scripted[0]

        return CommandResult(
            command=text,
            exit_code=self._default_exit_code,
            stdout=self._default_stdout if self._default_exit_code == 0 else "",
            stderr="" if self._default_exit_code == 0 else "[mock] failed",
        )

    def reset(self) -> None:
        """Clear call log and scripted responses."""
        self._call_log.clear()
        self._cwd_log.clear()
        self._responses.clear()
