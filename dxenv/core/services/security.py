"""
Security gate — input validation, checksums, and HTTPS-only downloads.

Consumed by the installer (package ids, commands, downloads) and the
backup manager (file checksums, backup ids).

The command blocklist is a case-insensitive substring match. It is
trivially bypassable and is not a sandbox.
"""

from __future__ import annotations

import hashlib
import logging
import re
import ssl
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path

from dxenv import __version__
from dxenv.core.errors import (
    CertificateValidationError,
    ConnectivityError,
    FileReadError,
    HttpError,
    InvalidResponseError,
    InvalidURLError,
)

logger = logging.getLogger(__name__)

_PACKAGE_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")

DANGEROUS_COMMAND_PATTERNS = (
    "rm -rf /",
    "sudo rm",
    "format",
    "dd if=",
    "mkfs",
)

# Whole-segment matches anywhere in the path
DANGEROUS_PATH_SEGMENTS = frozenset({"..", "~"})

# Directory prefixes the path may not equal or lie under
PROTECTED_PATH_PREFIXES = ("/etc", "/var", "/usr")

_CHUNK_SIZE = 64 * 1024


def sha256_hex(data: bytes) -> str:
    """Lowercase hex SHA-256 of ``data``."""
    return hashlib.sha256(data).hexdigest()


class SecurityGate:
    """Validation and integrity checks shared by the core services.

    Args:
        logger: Logger to report through (default: this module's logger).
        ssl_context: TLS context for downloads (default: system trust store
            with certificate verification).
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        ssl_context: ssl.SSLContext | None = None,
    ):
        self._log = logger or logging.getLogger(__name__)
        self._ssl_context = ssl_context or ssl.create_default_context()

    # ── Input validation ───────────────────────────────────────────

    def validate_https_url(self, url: str) -> bool:
        """True iff ``url`` parses and its scheme is ``https`` (any case)."""
        try:
            parts = urllib.parse.urlsplit(url)
        except ValueError:
            self._log.error("Invalid URL format: %s", url)
            return False

        if parts.scheme.lower() != "https":
            self._log.error("URL must use HTTPS: %s", url)
            return False

        self._log.debug("HTTPS URL validation passed: %s", url)
        return True

    def validate_package_name(self, name: str) -> bool:
        """True iff ``name`` is non-empty and only ``[A-Za-z0-9_-]``."""
        if not _PACKAGE_NAME_RE.fullmatch(name or ""):
            self._log.warning("Invalid package name format: %r", name)
            return False
        return True

    def validate_command(self, command: str) -> bool:
        """Reject empty commands and known-destructive substrings.

        Best-effort only: a case-insensitive substring blocklist.
        """
        lowered = command.lower()
        for pattern in DANGEROUS_COMMAND_PATTERNS:
            if pattern in lowered:
                self._log.error("Dangerous command pattern detected: %r in %r", pattern, command)
                return False
        return bool(command.strip())

    def validate_file_path(self, path: str) -> bool:
        """Reject traversal segments and paths under system directories.

        ``..`` and ``~`` are rejected as whole path segments; ``/etc``,
        ``/var`` and ``/usr`` are rejected as the path itself or any
        path beneath them.
        """
        for segment in path.split("/"):
            if segment in DANGEROUS_PATH_SEGMENTS:
                self._log.warning("Potentially dangerous path component %r in %s", segment, path)
                return False

        normalized = "/" + path.lstrip("/") if path.startswith("/") else path
        for prefix in PROTECTED_PATH_PREFIXES:
            if normalized == prefix or normalized.startswith(prefix + "/"):
                self._log.warning("Path under protected directory %s: %s", prefix, path)
                return False

        return True

    # ── Checksums ──────────────────────────────────────────────────

    def compute_file_checksum(self, path: str | Path) -> str:
        """SHA-256 of a file's full contents, lowercase hex.

        Raises:
            FileReadError: If the file cannot be opened or read.
        """
        digest = hashlib.sha256()
        try:
            with open(path, "rb") as f:
                for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                    digest.update(chunk)
        except OSError as e:
            raise FileReadError(str(path), e) from e

        checksum = digest.hexdigest()
        self._log.debug("Calculated checksum for %s: %s", path, checksum)
        return checksum

    def verify_checksum(self, data: bytes, expected_hex: str) -> bool:
        """Compare SHA-256 of ``data`` with ``expected_hex``, ignoring case."""
        actual = sha256_hex(data)
        if actual == expected_hex.strip().lower():
            self._log.info("SHA256 checksum verification passed")
            return True
        self._log.error(
            "SHA256 checksum verification failed. Expected: %s, Got: %s", expected_hex, actual,
        )
        return False

    def verify_file_checksum(self, path: str | Path, expected_hex: str) -> bool:
        """Compare a file's SHA-256 with ``expected_hex``, ignoring case.

        Raises:
            FileReadError: If the file cannot be read.
        """
        actual = self.compute_file_checksum(path)
        valid = actual == expected_hex.strip().lower()
        if valid:
            self._log.info("File integrity verification passed for %s", path)
        else:
            self._log.error("File integrity verification failed for %s", path)
        return valid

    # ── Network ────────────────────────────────────────────────────

    def download_with_validation(self, url: str, timeout: float | None = 60) -> bytes:
        """Fetch ``url`` over HTTPS and return the full body.

        The scheme is checked before any network call is made.

        Raises:
            InvalidURLError: Not an https URL.
            HttpError: Any status other than 200.
            CertificateValidationError: TLS verification failed.
            ConnectivityError: Host unreachable, timeout, or connection reset.
        """
        if not self.validate_https_url(url):
            raise InvalidURLError(url)

        self._log.info("Downloading file from: %s", url)
        request = urllib.request.Request(url, headers={"User-Agent": f"dxenv/{__version__}"})

        with self._open(request, url, timeout) as response:
            status = getattr(response, "status", None)
            if status is None:
                raise InvalidResponseError(url)
            if status != 200:
                raise HttpError(status, url)
            try:
                data = response.read()
            except OSError as e:
                raise ConnectivityError(url, e) from e

        self._log.info("Successfully downloaded %d bytes from %s", len(data), url)
        return data

    def validate_certificate(self, url: str, timeout: float | None = 10) -> bool:
        """Check that ``url`` answers over a verified TLS connection.

        Any HTTP response (including error statuses) proves the
        certificate chain was accepted.

        Raises:
            InvalidURLError: Not an https URL.
            CertificateValidationError: TLS verification failed.
            ConnectivityError: Host unreachable.
        """
        if not self.validate_https_url(url):
            raise InvalidURLError(url)

        request = urllib.request.Request(
            url, method="HEAD", headers={"User-Agent": f"dxenv/{__version__}"},
        )
        try:
            with self._open(request, url, timeout):
                pass
        except HttpError:
            pass

        self._log.info("Certificate validation passed for %s", url)
        return True

    def _open(self, request: urllib.request.Request, url: str, timeout: float | None):
        """urlopen with every transport failure mapped to a SecurityError."""
        try:
            return urllib.request.urlopen(request, timeout=timeout, context=self._ssl_context)
        except urllib.error.HTTPError as e:
            e.close()
            raise HttpError(e.code, url) from e
        except urllib.error.URLError as e:
            if isinstance(e.reason, ssl.SSLError):
                self._log.error("Certificate validation failed for %s: %s", url, e.reason)
                raise CertificateValidationError(url, e.reason) from e
            raise ConnectivityError(url, e.reason) from e
        except ssl.SSLError as e:
            self._log.error("Certificate validation failed for %s: %s", url, e)
            raise CertificateValidationError(url, e) from e
        except OSError as e:
            raise ConnectivityError(url, e) from e
