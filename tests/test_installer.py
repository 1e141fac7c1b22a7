"""
Tests for the package installer — state machine, dependencies, batches.
"""

from pathlib import Path

import pytest

from conftest import make_package, mark_missing
from dxenv.adapters.mock import MockCommandRunner
from dxenv.core.errors import ConnectivityError, DependencyCycleError, DependencyNotFoundError
from dxenv.core.models.package import InstallationStatus
from dxenv.core.services.installer import PackageInstaller
from dxenv.core.services.security import SecurityGate, sha256_hex


def make_installer(runner, security, packages, tmp_path: Path | None = None) -> PackageInstaller:
    return PackageInstaller(runner, security, packages, staging_dir=tmp_path)


# ── Single package ───────────────────────────────────────────────────


class TestInstallPackage:
    def test_already_installed_is_skipped(self, runner: MockCommandRunner, security: SecurityGate):
        pkg = make_package("git")
        result = make_installer(runner, security, [pkg]).install_package(pkg)

        assert result.status == InstallationStatus.SKIPPED
        assert result.message == "Package already installed"
        assert runner.calls_for("install-git") == 0

    def test_skipped_package_does_not_touch_dependencies(self, runner, security):
        base = make_package("homebrew")
        git = make_package("git", "homebrew")
        mark_missing(runner, "homebrew")

        result = make_installer(runner, security, [base, git]).install_package(git)

        assert result.status == InstallationStatus.SKIPPED
        assert runner.call_log == ["check-git"]

    def test_successful_install(self, runner, security):
        pkg = make_package("nvim", name="Neovim")
        mark_missing(runner, "nvim")

        result = make_installer(runner, security, [pkg]).install_package(pkg)

        assert result.status == InstallationStatus.INSTALLED
        assert result.message == "Successfully installed Neovim"
        assert result.duration is not None and result.duration >= 0
        assert result.error is None

    def test_invalid_package_id_fails_without_running(self, runner, security):
        pkg = make_package("bad id!")
        result = make_installer(runner, security, [pkg]).install_package(pkg)

        assert result.failed
        assert runner.call_count == 0

    def test_install_command_failure_carries_stderr(self, runner, security):
        pkg = make_package("docker")
        mark_missing(runner, "docker")
        runner.set_failure("install-docker", stderr="cask not found")

        result = make_installer(runner, security, [pkg]).install_package(pkg)

        assert result.failed
        assert result.message == "Installation command failed: cask not found"
        assert result.error == "cask not found"

    def test_dangerous_install_command_rejected(self, runner, security):
        pkg = make_package("evil", install_command="sudo rm -rf /opt")
        mark_missing(runner, "evil")

        result = make_installer(runner, security, [pkg]).install_package(pkg)

        assert result.failed
        assert result.message.startswith("Invalid installation command:")
        assert result.error == "Dangerous command detected: sudo rm -rf /opt"
        assert runner.calls_for("sudo rm -rf /opt") == 0

    def test_post_install_failure_is_only_a_warning(self, runner, security):
        pkg = make_package("zsh", post_install_commands=("configure-zsh", "mkfs /dev/x"))
        mark_missing(runner, "zsh")
        runner.set_failure("configure-zsh")

        result = make_installer(runner, security, [pkg]).install_package(pkg)

        assert result.status == InstallationStatus.INSTALLED
        assert runner.calls_for("configure-zsh") == 1
        assert runner.calls_for("mkfs /dev/x") == 0

    def test_progress_sequence(self, runner, security):
        pkg = make_package("git")
        mark_missing(runner, "git")
        seen = []

        make_installer(runner, security, [pkg]).install_package(pkg, progress=seen.append)

        assert seen == [0.0, 0.5, 0.8, 1.0]

    def test_progress_not_reported_for_skipped(self, runner, security):
        pkg = make_package("git")
        seen = []
        make_installer(runner, security, [pkg]).install_package(pkg, progress=seen.append)
        assert seen == []

    def test_idempotent_rerun(self, runner, security):
        pkg = make_package("git")
        runner.set_sequence("check-git", [1, 0])
        installer = make_installer(runner, security, [pkg])

        first = installer.install_package(pkg)
        second = installer.install_package(pkg)

        assert first.status == InstallationStatus.INSTALLED
        assert second.status == InstallationStatus.SKIPPED
        assert runner.calls_for("install-git") == 1


# ── Dependencies ─────────────────────────────────────────────────────


class TestDependencies:
    def test_dependency_installs_first(self, runner, security):
        base = make_package("homebrew")
        git = make_package("git", "homebrew")
        mark_missing(runner, "homebrew", "git")

        result = make_installer(runner, security, [base, git]).install_package(git)

        assert result.status == InstallationStatus.INSTALLED
        assert runner.call_log == ["check-git", "check-homebrew", "install-homebrew", "install-git"]

    def test_present_dependency_not_installed(self, runner, security):
        base = make_package("homebrew")
        git = make_package("git", "homebrew")
        mark_missing(runner, "git")

        result = make_installer(runner, security, [base, git]).install_package(git)

        assert result.status == InstallationStatus.INSTALLED
        assert runner.calls_for("install-homebrew") == 0
        assert runner.calls_for("install-git") == 1

    def test_missing_dependency_fails(self, runner, security):
        git = make_package("git", "homebrew")
        mark_missing(runner, "git")

        result = make_installer(runner, security, [git]).install_package(git)

        assert result.failed
        assert result.message == "Dependency not found: homebrew"
        assert runner.calls_for("install-git") == 0

    def test_failed_dependency_fails_parent(self, runner, security):
        base = make_package("xcode")
        swift = make_package("swift", "xcode")
        mark_missing(runner, "xcode", "swift")
        runner.set_failure("install-xcode", stderr="license not accepted")

        result = make_installer(runner, security, [base, swift]).install_package(swift)

        assert result.failed
        assert result.message == "Dependency installation failed: xcode"
        assert result.error == "license not accepted"
        assert runner.calls_for("install-swift") == 0

    def test_dependencies_run_in_declared_order(self, runner, security):
        a, b = make_package("a"), make_package("b")
        app = make_package("app", "b", "a")
        mark_missing(runner, "a", "b", "app")

        make_installer(runner, security, [a, b, app]).install_package(app)

        installs = [c for c in runner.call_log if c.startswith("install-")]
        assert installs == ["install-b", "install-a", "install-app"]

    def test_diamond_installs_shared_dependency_once(self, runner, security):
        base = make_package("base")
        left = make_package("left", "base")
        right = make_package("right", "base")
        top = make_package("top", "left", "right")
        mark_missing(runner, "base", "left", "right", "top")

        result = make_installer(runner, security, [base, left, right, top]).install_package(top)

        assert result.status == InstallationStatus.INSTALLED
        assert runner.calls_for("install-base") == 1
        assert runner.calls_for("check-base") == 1

    def test_cycle_fails_instead_of_recursing(self, runner, security):
        a = make_package("a", "b")
        b = make_package("b", "a")
        mark_missing(runner, "a", "b")

        result = make_installer(runner, security, [a, b]).install_package(a)

        assert result.failed
        assert result.message == "Dependency installation failed: b"
        assert result.error == "Dependency cycle detected: a -> b -> a"
        assert runner.calls_for("install-a") == 0
        assert runner.calls_for("install-b") == 0

    def test_progress_passed_to_dependencies(self, runner, security):
        base = make_package("homebrew")
        git = make_package("git", "homebrew")
        mark_missing(runner, "homebrew", "git")
        seen = []

        make_installer(runner, security, [base, git]).install_package(git, progress=seen.append)

        assert seen == [0.0, 0.5, 0.8, 1.0, 0.0, 0.5, 0.8, 1.0]


# ── Downloads ────────────────────────────────────────────────────────


class FakeSecurity(SecurityGate):
    """Security gate whose downloads come from memory."""

    def __init__(self, payload: bytes = b"", error: Exception | None = None):
        super().__init__()
        self.payload = payload
        self.error = error
        self.downloads = []

    def download_with_validation(self, url, timeout=60):
        self.downloads.append(url)
        if self.error:
            raise self.error
        return self.payload


class TestDownloads:
    def test_checksum_verified_and_staged(self, runner, tmp_path: Path):
        security = FakeSecurity(b"artifact")
        pkg = make_package(
            "tool", download_url="https://example.com/tool.tgz", checksum=sha256_hex(b"artifact"),
        )
        mark_missing(runner, "tool")

        result = make_installer(runner, security, [pkg], tmp_path).install_package(pkg)

        assert result.status == InstallationStatus.INSTALLED
        assert (tmp_path / "tool.download").read_bytes() == b"artifact"

    def test_checksum_mismatch_fails_before_install(self, runner, tmp_path: Path):
        security = FakeSecurity(b"tampered")
        pkg = make_package(
            "tool", download_url="https://example.com/tool.tgz", checksum=sha256_hex(b"artifact"),
        )
        mark_missing(runner, "tool")

        result = make_installer(runner, security, [pkg], tmp_path).install_package(pkg)

        assert result.failed
        assert result.message == "Checksum verification failed"
        assert result.error.startswith(f"Checksum mismatch. Expected: {sha256_hex(b'artifact')}")
        assert runner.calls_for("install-tool") == 0

    def test_download_error_fails(self, runner, tmp_path: Path):
        security = FakeSecurity(error=ConnectivityError("https://example.com/tool.tgz", "refused"))
        pkg = make_package("tool", download_url="https://example.com/tool.tgz")
        mark_missing(runner, "tool")

        result = make_installer(runner, security, [pkg], tmp_path).install_package(pkg)

        assert result.failed
        assert result.message.startswith("Download failed: ")
        assert result.error == "Connection failed for https://example.com/tool.tgz: refused"

    def test_http_download_url_rejected(self, runner, security, tmp_path: Path):
        pkg = make_package("tool", download_url="http://example.com/tool.tgz")
        mark_missing(runner, "tool")

        result = make_installer(runner, security, [pkg], tmp_path).install_package(pkg)

        assert result.failed
        assert result.message == "Download failed: Invalid URL: http://example.com/tool.tgz"


# ── Batches ──────────────────────────────────────────────────────────


class TestInstallPackages:
    def test_dependent_pair_scenario(self, runner, security):
        a = make_package("a")
        b = make_package("b", "a")
        mark_missing(runner, "a", "b")

        results = make_installer(runner, security, [a, b]).install_packages([a, b])

        assert [(r.package_id, r.status) for r in results] == [
            ("a", InstallationStatus.INSTALLED),
            ("b", InstallationStatus.INSTALLED),
        ]
        assert runner.call_log.index("install-a") < runner.call_log.index("install-b")

    def test_dependency_installed_earlier_in_batch_not_rerun(self, runner, security):
        base = make_package("homebrew")
        git = make_package("git", "homebrew")
        mark_missing(runner, "homebrew", "git")

        results = make_installer(runner, security, [base, git]).install_packages([git, base])

        assert [r.status for r in results] == [InstallationStatus.INSTALLED, InstallationStatus.INSTALLED]
        assert runner.calls_for("install-homebrew") == 1

    def test_failure_does_not_abort_batch(self, runner, security):
        first, second = make_package("first"), make_package("second")
        mark_missing(runner, "first", "second")
        runner.set_failure("install-first")

        results = make_installer(runner, security, [first, second]).install_packages([first, second])

        assert results[0].failed
        assert results[1].status == InstallationStatus.INSTALLED

    def test_batch_progress(self, runner, security):
        a, b = make_package("a", name="Alpha"), make_package("b", name="Beta")
        events = []

        make_installer(runner, security, [a, b]).install_packages([a, b], progress=lambda n, f: events.append((n, f)))

        assert events == [("Alpha", 0.0), ("Beta", 0.5), ("Complete", 1.0)]

    def test_empty_batch(self, runner, security):
        events = []
        results = make_installer(runner, security, []).install_packages([], progress=lambda n, f: events.append((n, f)))
        assert results == []
        assert events == [("Complete", 1.0)]


# ── Planning ─────────────────────────────────────────────────────────


class TestPlan:
    def test_dependencies_first_deduplicated(self, runner, security):
        brew = make_package("homebrew")
        git = make_package("git", "homebrew")
        nvim = make_package("nvim", "homebrew")
        installer = make_installer(runner, security, [brew, git, nvim])

        assert installer.plan([git, nvim]) == ["homebrew", "git", "nvim"]
        assert runner.call_count == 0

    def test_unknown_dependency(self, runner, security):
        git = make_package("git", "homebrew")
        with pytest.raises(DependencyNotFoundError) as exc:
            make_installer(runner, security, [git]).plan([git])
        assert exc.value.package_id == "homebrew"
        assert exc.value.required_by == "git"

    def test_cycle(self, runner, security):
        a, b, c = make_package("a", "b"), make_package("b", "c"), make_package("c", "a")
        with pytest.raises(DependencyCycleError) as exc:
            make_installer(runner, security, [a, b, c]).plan([a])
        assert exc.value.chain == ["a", "b", "c", "a"]


class TestCatalogLookup:
    def test_default_catalog(self, runner, security):
        installer = PackageInstaller(runner, security)
        assert installer.find_package("git").dependencies == ("homebrew",)
        assert installer.find_package("nope") is None

    def test_is_package_installed(self, runner, security):
        pkg = make_package("git")
        installer = make_installer(runner, security, [pkg])
        assert installer.is_package_installed(pkg)
        mark_missing(runner, "git")
        assert not installer.is_package_installed(pkg)
