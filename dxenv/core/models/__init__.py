"""
Domain models — Pydantic types for dxenv.

All models are re-exported here for convenient access:

    from dxenv.core.models import Package, InstallationResult, BackupInfo, Configuration
"""

from dxenv.core.models.backup import BackupInfo
from dxenv.core.models.config import Configuration, LogLevel
from dxenv.core.models.package import (
    InstallationResult,
    InstallationStatus,
    Package,
    PackageCategory,
    summarize_results,
)

__all__ = [
    # backup.py
    "BackupInfo",
    # config.py
    "Configuration",
    "InstallationResult",
    "InstallationStatus",
    "LogLevel",
    # package.py
    "Package",
    "PackageCategory",
    "summarize_results",
]
