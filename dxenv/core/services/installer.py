"""
Package installer — dependency-ordered, idempotent tool installation.

Each package runs through one state machine:

    validate id → presence check → dependencies → download (optional)
    → install command → post-install commands → installed

A package whose ``check_command`` already succeeds is ``skipped`` and its
dependencies are never touched. Dependencies install depth-first in
declared order, strictly before their dependent's install command.

One visited map (package id → result) is threaded through an install
run, so a package shared by several dependents is processed once and
a dependency cycle fails instead of recursing forever.

Installation outcomes are InstallationResult values; nothing in this
module raises on a failed install.
"""

from __future__ import annotations

import logging
import tempfile
import time
from collections.abc import Callable, Iterable
from pathlib import Path

from dxenv.adapters.base import CommandRunner
from dxenv.core.data import load_default_catalog
from dxenv.core.errors import (
    ChecksumMismatchError,
    DangerousCommandError,
    DependencyCycleError,
    DependencyNotFoundError,
    SecurityError,
)
from dxenv.core.models.package import InstallationResult, Package
from dxenv.core.services.security import SecurityGate, sha256_hex

ProgressCallback = Callable[[float], None]
BatchProgressCallback = Callable[[str, float], None]

# Marks a package whose install is in progress further up the stack
_IN_PROGRESS = None


class PackageInstaller:
    """Installs catalog packages through a CommandRunner.

    Args:
        runner: Executes check, install and post-install commands.
        security: Validates ids and commands, performs downloads.
        catalog: Packages that dependencies are resolved against
            (default: the built-in catalog).
        logger: Logger to report through (default: this module's logger).
        command_timeout: Seconds allowed for each command.
        download_timeout: Seconds allowed for each download.
        staging_dir: Where downloaded artifacts are staged
            (default: the system temp directory).
    """

    def __init__(
        self,
        runner: CommandRunner,
        security: SecurityGate,
        catalog: Iterable[Package] | None = None,
        *,
        logger: logging.Logger | None = None,
        command_timeout: float | None = 600,
        download_timeout: float | None = 60,
        staging_dir: Path | None = None,
    ):
        self._runner = runner
        self._security = security
        packages = load_default_catalog() if catalog is None else list(catalog)
        self._catalog: dict[str, Package] = {pkg.id: pkg for pkg in packages}
        self._log = logger or logging.getLogger(__name__)
        self._command_timeout = command_timeout
        self._download_timeout = download_timeout
        self._staging_dir = staging_dir or Path(tempfile.gettempdir())

    # ── Catalog ────────────────────────────────────────────────────

    @property
    def packages(self) -> list[Package]:
        """Catalog packages in declaration order."""
        return list(self._catalog.values())

    def find_package(self, package_id: str) -> Package | None:
        return self._catalog.get(package_id)

    def is_package_installed(self, package: Package) -> bool:
        """Whether the package's check command currently succeeds."""
        if not package.check_command.strip():
            return False
        result = self._runner.run(package.check_command, timeout=self._command_timeout)
        return result.ok

    # ── Install ────────────────────────────────────────────────────

    def install_package(
        self,
        package: Package,
        progress: ProgressCallback | None = None,
    ) -> InstallationResult:
        """Install one package and, first, its missing dependencies.

        ``progress`` receives 0.0, 0.5, 0.8 and 1.0 as the package moves
        through download, install and post-install. The same callback is
        handed to every dependency install.
        """
        return self._install(package, progress, visited={}, chain=[])

    def install_packages(
        self,
        packages: Iterable[Package],
        progress: BatchProgressCallback | None = None,
    ) -> list[InstallationResult]:
        """Install packages sequentially, in input order.

        A failure never aborts the batch. A package already handled as a
        dependency earlier in the batch reports its recorded result.

        ``progress`` receives ``(package.name, index / total)`` before each
        package and ``("Complete", 1.0)`` at the end.
        """
        packages = list(packages)
        total = len(packages)
        visited: dict[str, InstallationResult | None] = {}
        results: list[InstallationResult] = []

        for index, package in enumerate(packages):
            if progress:
                progress(package.name, index / total)
            results.append(self._install(package, None, visited=visited, chain=[]))

        if progress:
            progress("Complete", 1.0)
        return results

    def plan(self, packages: Iterable[Package]) -> list[str]:
        """Dependency-first install order, without running anything.

        Depth-first in declared order, each id listed once.

        Raises:
            DependencyNotFoundError: A dependency names no catalog package.
            DependencyCycleError: The dependencies form a cycle.
        """
        order: list[str] = []
        done: set[str] = set()

        def visit(pkg: Package, chain: list[str]) -> None:
            if pkg.id in done:
                return
            if pkg.id in chain:
                raise DependencyCycleError(chain[chain.index(pkg.id):] + [pkg.id])

            chain.append(pkg.id)
            for dep_id in pkg.dependencies:
                dep = self.find_package(dep_id)
                if dep is None:
                    raise DependencyNotFoundError(dep_id, required_by=pkg.id)
                visit(dep, chain)
            chain.pop()

            done.add(pkg.id)
            order.append(pkg.id)

        for package in packages:
            visit(package, [])
        return order

    # ── State machine ──────────────────────────────────────────────

    def _install(
        self,
        package: Package,
        progress: ProgressCallback | None,
        visited: dict[str, InstallationResult | None],
        chain: list[str],
    ) -> InstallationResult:
        if package.id in visited:
            recorded = visited[package.id]
            if recorded is _IN_PROGRESS:
                cycle = chain[chain.index(package.id):] + [package.id]
                message = str(DependencyCycleError(cycle))
                self._log.error(message)
                return InstallationResult.failure(package.id, message)
            return recorded

        visited[package.id] = _IN_PROGRESS
        chain.append(package.id)
        try:
            result = self._run_state_machine(package, progress, visited, chain)
        finally:
            chain.pop()
        visited[package.id] = result
        return result

    def _run_state_machine(
        self,
        package: Package,
        progress: ProgressCallback | None,
        visited: dict[str, InstallationResult | None],
        chain: list[str],
    ) -> InstallationResult:
        start = time.monotonic()

        def failed(message: str, error: str | None = None) -> InstallationResult:
            self._log.error("Failed to install %s: %s", package.name, message)
            return InstallationResult.failure(
                package.id, message, error=error, duration=time.monotonic() - start,
            )

        self._log.info("Installing package: %s", package.name)

        # 1. Validate
        if not self._security.validate_package_name(package.id):
            return failed(f"Invalid package name: {package.id}")

        # 2. Presence check
        if self.is_package_installed(package):
            self._log.info("Package already installed: %s", package.name)
            return InstallationResult.skipped(
                package.id, "Package already installed", duration=time.monotonic() - start,
            )

        # 3. Dependencies
        for dep_id in package.dependencies:
            dep = self.find_package(dep_id)
            if dep is None:
                return failed(f"Dependency not found: {dep_id}")

            dep_result = self._install(dep, progress, visited, chain)
            if dep_result.failed:
                return failed(
                    f"Dependency installation failed: {dep_id}",
                    error=dep_result.error or dep_result.message,
                )

        # 4. Download
        if progress:
            progress(0.0)
        if package.download_url:
            failure = self._fetch_artifact(package)
            if failure:
                return failed(*failure)
        if progress:
            progress(0.5)

        # 5. Install command
        if not self._security.validate_command(package.install_command):
            return failed(
                f"Invalid installation command: {package.install_command}",
                error=str(DangerousCommandError(package.install_command)),
            )

        self._log.debug("Executing install command for %s: %s", package.id, package.install_command)
        result = self._runner.run(package.install_command, timeout=self._command_timeout)
        if not result.ok:
            return failed(
                f"Installation command failed: {result.error_text}",
                error=result.stderr or result.error_text,
            )
        if progress:
            progress(0.8)

        # 6. Post-install (warnings only)
        for command in package.post_install_commands:
            self._run_post_install(package, command)
        if progress:
            progress(1.0)

        duration = time.monotonic() - start
        self._log.info("Successfully installed %s in %.2fs", package.name, duration)
        return InstallationResult.installed(
            package.id, f"Successfully installed {package.name}", duration=duration,
        )

    def _fetch_artifact(self, package: Package) -> tuple[str, str | None] | None:
        """Download, verify and stage a package artifact.

        Returns:
            ``(message, error)`` on failure, or None on success.
        """
        try:
            data = self._security.download_with_validation(
                package.download_url, timeout=self._download_timeout,
            )
        except SecurityError as e:
            return f"Download failed: {e}", str(e)

        if package.checksum and not self._security.verify_checksum(data, package.checksum):
            return "Checksum verification failed", str(ChecksumMismatchError(package.checksum, sha256_hex(data)))

        staged = self._staging_dir / f"{package.id}.download"
        try:
            staged.parent.mkdir(parents=True, exist_ok=True)
            staged.write_bytes(data)
        except OSError as e:
            return f"Download failed: cannot stage {staged}: {e}", str(e)

        self._log.debug("Staged %d bytes for %s at %s", len(data), package.id, staged)
        return None

    def _run_post_install(self, package: Package, command: str) -> None:
        if not self._security.validate_command(command):
            self._log.warning("Skipping invalid post-install command for %s: %s", package.id, command)
            return

        result = self._runner.run(command, timeout=self._command_timeout)
        if not result.ok:
            self._log.warning(
                "Post-install command failed for %s: %s (%s)", package.id, command, result.error_text,
            )
