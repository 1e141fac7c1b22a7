"""Adapters — command runners and external tool bindings.

Public re-exports for convenient access.
"""

from dxenv.adapters.base import CommandResult, CommandRunner
from dxenv.adapters.mock import MockCommandRunner
from dxenv.adapters.shell.command import ShellCommandRunner

__all__ = [
    "CommandResult",
    "CommandRunner",
    "MockCommandRunner",
    "ShellCommandRunner",
]
