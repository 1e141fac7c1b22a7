"""
Tests for the security gate — validation, checksums, and downloads.
"""

import hashlib
import ssl
import urllib.error
import urllib.request
from pathlib import Path

import pytest

from dxenv.core.errors import (
    CertificateValidationError,
    ConnectivityError,
    FileReadError,
    HttpError,
    InvalidURLError,
    SecurityError,
)
from dxenv.core.services.security import SecurityGate, sha256_hex


class FakeResponse:
    def __init__(self, body: bytes = b"", status: int = 200):
        self._body = body
        self.status = status

    def read(self) -> bytes:
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def fake_urlopen(response=None, error=None, calls=None):
    def _urlopen(request, timeout=None, context=None):
        if calls is not None:
            calls.append(request)
        if error is not None:
            raise error
        return response

    return _urlopen


# ── Validation ───────────────────────────────────────────────────────


class TestValidateHttpsUrl:
    @pytest.mark.parametrize("url", [
        "https://example.com",
        "https://example.com/path/file.tar.gz?x=1",
        "HTTPS://EXAMPLE.COM",
    ])
    def test_https_accepted(self, security: SecurityGate, url):
        assert security.validate_https_url(url)

    @pytest.mark.parametrize("url", [
        "http://example.com",
        "example.com",
        "ftp://example.com/file",
        "",
    ])
    def test_non_https_rejected(self, security: SecurityGate, url):
        assert not security.validate_https_url(url)

    def test_unparseable_rejected(self, security: SecurityGate):
        assert not security.validate_https_url("https://[::1")


class TestValidatePackageName:
    @pytest.mark.parametrize("name", ["git", "valid-package_123", "A1"])
    def test_valid(self, security: SecurityGate, name):
        assert security.validate_package_name(name)

    @pytest.mark.parametrize("name", ["", "invalid package", "bang!", "dots.not.ok", "slash/name"])
    def test_invalid(self, security: SecurityGate, name):
        assert not security.validate_package_name(name)


class TestValidateCommand:
    def test_safe_command(self, security: SecurityGate):
        assert security.validate_command("brew install foo")

    @pytest.mark.parametrize("command", [
        "rm -rf /",
        "sudo rm -rf ~/x",
        "diskutil FORMAT disk2",
        "dd if=/dev/zero of=/dev/disk0",
        "mkfs.ext4 /dev/sda1",
        "echo hi && RM -RF /tmp",
    ])
    def test_denylisted(self, security: SecurityGate, command):
        assert not security.validate_command(command)

    @pytest.mark.parametrize("command", ["", "   "])
    def test_empty_rejected(self, security: SecurityGate, command):
        assert not security.validate_command(command)


class TestValidateFilePath:
    @pytest.mark.parametrize("path", [
        "3f2b6c1e-uuid",
        "/Users/me/.zshrc",
        "/tmp/backups/x",
        "/variable/data",
        "notes..txt",
    ])
    def test_allowed(self, security: SecurityGate, path):
        assert security.validate_file_path(path)

    @pytest.mark.parametrize("path", [
        "../escape",
        "a/../b",
        "~",
        "~/x",
        "/etc",
        "/etc/passwd",
        "/var/log/system.log",
        "/usr/bin/env",
    ])
    def test_rejected(self, security: SecurityGate, path):
        assert not security.validate_file_path(path)


# ── Checksums ────────────────────────────────────────────────────────


class TestChecksums:
    def test_verify_checksum_matches(self, security: SecurityGate):
        data = b"dxenv payload"
        assert security.verify_checksum(data, hashlib.sha256(data).hexdigest())

    def test_verify_checksum_ignores_case(self, security: SecurityGate):
        data = b"dxenv payload"
        assert security.verify_checksum(data, sha256_hex(data).upper())

    def test_single_mutated_byte_fails(self, security: SecurityGate):
        data = bytearray(b"dxenv payload")
        expected = sha256_hex(bytes(data))
        data[0] ^= 0x01
        assert not security.verify_checksum(bytes(data), expected)

    def test_compute_file_checksum(self, security: SecurityGate, tmp_path: Path):
        f = tmp_path / "file.bin"
        f.write_bytes(b"x" * 200_000)
        assert security.compute_file_checksum(f) == hashlib.sha256(b"x" * 200_000).hexdigest()

    def test_empty_file_checksum(self, security: SecurityGate, tmp_path: Path):
        f = tmp_path / "empty"
        f.write_bytes(b"")
        assert security.compute_file_checksum(f) == hashlib.sha256(b"").hexdigest()

    def test_missing_file_raises(self, security: SecurityGate, tmp_path: Path):
        with pytest.raises(FileReadError) as exc:
            security.compute_file_checksum(tmp_path / "nope")
        assert exc.value.path.endswith("nope")

    def test_verify_file_checksum(self, security: SecurityGate, tmp_path: Path):
        f = tmp_path / "f"
        f.write_bytes(b"abc")
        assert security.verify_file_checksum(f, sha256_hex(b"abc"))
        assert not security.verify_file_checksum(f, sha256_hex(b"abd"))


# ── Network ──────────────────────────────────────────────────────────


class TestDownload:
    def test_http_rejected_before_network(self, security: SecurityGate, monkeypatch):
        calls = []
        monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen(FakeResponse(b"x"), calls=calls))
        with pytest.raises(InvalidURLError):
            security.download_with_validation("http://example.com/file")
        assert calls == []

    def test_success_returns_body(self, security: SecurityGate, monkeypatch):
        monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen(FakeResponse(b"payload")))
        assert security.download_with_validation("https://example.com/file") == b"payload"

    def test_non_200_status(self, security: SecurityGate, monkeypatch):
        monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen(FakeResponse(b"", status=204)))
        with pytest.raises(HttpError) as exc:
            security.download_with_validation("https://example.com/file")
        assert exc.value.status == 204

    def test_http_error_status(self, security: SecurityGate, monkeypatch):
        error = urllib.error.HTTPError("https://example.com/file", 404, "Not Found", {}, None)
        monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen(error=error))
        with pytest.raises(HttpError) as exc:
            security.download_with_validation("https://example.com/file")
        assert exc.value.status == 404
        assert str(exc.value) == "HTTP error: 404"

    def test_certificate_failure(self, security: SecurityGate, monkeypatch):
        error = urllib.error.URLError(ssl.SSLCertVerificationError("certificate verify failed"))
        monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen(error=error))
        with pytest.raises(CertificateValidationError):
            security.download_with_validation("https://self-signed.example.com")

    def test_connectivity_failure(self, security: SecurityGate, monkeypatch):
        error = urllib.error.URLError(ConnectionRefusedError(61, "Connection refused"))
        monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen(error=error))
        with pytest.raises(ConnectivityError) as exc:
            security.download_with_validation("https://unreachable.example.com")
        assert not isinstance(exc.value, CertificateValidationError)

    def test_timeout_is_connectivity_failure(self, security: SecurityGate, monkeypatch):
        monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen(error=TimeoutError("timed out")))
        with pytest.raises(SecurityError):
            security.download_with_validation("https://slow.example.com", timeout=1)


class TestValidateCertificate:
    def test_any_http_response_passes(self, security: SecurityGate, monkeypatch):
        error = urllib.error.HTTPError("https://example.com", 403, "Forbidden", {}, None)
        monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen(error=error))
        assert security.validate_certificate("https://example.com")

    def test_uses_head_request(self, security: SecurityGate, monkeypatch):
        calls = []
        monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen(FakeResponse(), calls=calls))
        security.validate_certificate("https://example.com")
        assert calls[0].get_method() == "HEAD"

    def test_bad_certificate_raises(self, security: SecurityGate, monkeypatch):
        error = urllib.error.URLError(ssl.SSLError("bad handshake"))
        monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen(error=error))
        with pytest.raises(CertificateValidationError):
            security.validate_certificate("https://example.com")
