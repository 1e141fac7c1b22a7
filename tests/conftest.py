"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from dxenv.adapters.mock import MockCommandRunner
from dxenv.core.config.loader import DxenvPaths
from dxenv.core.models.package import Package, PackageCategory
from dxenv.core.services.backup import BackupManager
from dxenv.core.services.security import SecurityGate


def make_package(package_id: str, *dependencies: str, **overrides) -> Package:
    """Package whose commands are ``check-<id>`` and ``install-<id>``."""
    fields = {
        "id": package_id,
        "name": package_id.title(),
        "category": PackageCategory.DEVELOPMENT,
        "install_command": f"install-{package_id}",
        "check_command": f"check-{package_id}",
        "dependencies": dependencies,
    }
    fields.update(overrides)
    return Package(**fields)


def mark_missing(runner: MockCommandRunner, *package_ids: str) -> None:
    """Make ``check-<id>`` fail for each id, so the package gets installed."""
    for package_id in package_ids:
        runner.set_failure(f"check-{package_id}", stderr="not found")


@pytest.fixture
def security() -> SecurityGate:
    return SecurityGate()


@pytest.fixture
def runner() -> MockCommandRunner:
    """Runner where every unscripted command succeeds."""
    return MockCommandRunner()


@pytest.fixture
def dxenv_paths(tmp_path: Path) -> DxenvPaths:
    paths = DxenvPaths(root=tmp_path / "dxenv")
    paths.ensure()
    return paths


@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    """Stand-in home directory."""
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def backup_manager(dxenv_paths: DxenvPaths, security: SecurityGate, home_dir: Path) -> BackupManager:
    return BackupManager.from_paths(dxenv_paths, security, home=home_dir)
