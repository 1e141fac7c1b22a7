"""
Configuration model — process-wide installer settings.

Persisted as ``config/dxenv-config.json`` under the dxenv root.
"""

from __future__ import annotations

import logging
from enum import StrEnum

from pydantic import BaseModel, Field

from dxenv.core.models.package import Package


class LogLevel(StrEnum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def logging_level(self) -> int:
        """The matching stdlib ``logging`` level constant."""
        return getattr(logging, self.value.upper())


class Configuration(BaseModel):
    """Installer settings plus a snapshot of the package catalog."""

    backup_enabled: bool = True
    backup_path: str = "~/.dxenv/backups"
    log_level: LogLevel = LogLevel.INFO
    log_path: str = "~/.dxenv/logs"
    test_mode: bool = False
    command_timeout: int = Field(default=600, gt=0)   # seconds per subprocess
    download_timeout: int = Field(default=60, gt=0)   # seconds per download
    packages: list[Package] = Field(default_factory=list)
