"""Upstream source download.

This module handles:
- Streaming download of component source artifacts
- SHA-256 verification of downloaded files
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path

import httpx

from stackbuild.errors import StackbuildError

logger = logging.getLogger(__name__)

# Timeout for downloads (seconds)
DOWNLOAD_TIMEOUT = 3600

# Chunk size for downloads and hashing (bytes)
DOWNLOAD_CHUNK_SIZE = 64 * 1024  # 64 KB


class DownloadError(StackbuildError):
    """Raised when a source download fails."""

    def __init__(self, message: str, code: str = "download_error") -> None:
        """Initialize DownloadError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message, code=code)


class VerificationError(StackbuildError):
    """Raised when checksum verification fails."""

    def __init__(self, message: str, code: str = "verification_error") -> None:
        """Initialize VerificationError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message, code=code)


@dataclass
class DownloadResult:
    """Result of a source download."""

    path: Path
    checksum: str
    size_bytes: int


def compute_file_sha256(file_path: Path, chunk_size: int = DOWNLOAD_CHUNK_SIZE) -> str:
    """Compute SHA256 checksum of a file.

    Args:
        file_path: Path to the file.
        chunk_size: Size of chunks to read.

    Returns:
        SHA256 hex digest.
    """
    sha256 = hashlib.sha256()
    with file_path.open("rb") as f:
        while chunk := f.read(chunk_size):
            sha256.update(chunk)
    return sha256.hexdigest()


def verify_bytes(data: bytes, expected_checksum: str, label: str) -> None:
    """Verify the SHA-256 of in-memory data.

    Raises:
        VerificationError: If the digest does not match.
    """
    actual = hashlib.sha256(data).hexdigest()
    if actual != expected_checksum.lower():
        raise VerificationError(
            f"Checksum mismatch for {label}: "
            f"expected {expected_checksum}, got {actual}"
        )


def download_file(
    client: httpx.Client,
    url: str,
    dest_path: Path,
    expected_checksum: str | None = None,
    timeout: float = DOWNLOAD_TIMEOUT,
    chunk_size: int = DOWNLOAD_CHUNK_SIZE,
) -> DownloadResult:
    """Download a file with optional checksum verification.

    Args:
        client: HTTPX client instance.
        url: URL to download from.
        dest_path: Destination path for the downloaded file.
        expected_checksum: Expected SHA256 checksum (optional).
        timeout: Download timeout in seconds.
        chunk_size: Size of chunks to download.

    Returns:
        DownloadResult with path, checksum, and size.

    Raises:
        DownloadError: If download fails.
        VerificationError: If checksum verification fails.
    """
    logger.info("Downloading %s to %s", url, dest_path)
    # Written next to the destination and renamed once verified
    part_path = dest_path.with_name(dest_path.name + ".part")

    try:
        with client.stream("GET", url, timeout=timeout) as response:
            response.raise_for_status()

            total_bytes = 0
            sha256 = hashlib.sha256()

            dest_path.parent.mkdir(parents=True, exist_ok=True)

            with part_path.open("wb") as f:
                for chunk in response.iter_bytes(chunk_size):
                    f.write(chunk)
                    sha256.update(chunk)
                    total_bytes += len(chunk)

            computed_checksum = sha256.hexdigest()

            if expected_checksum and computed_checksum != expected_checksum.lower():
                # Remove the corrupted file
                part_path.unlink(missing_ok=True)
                raise VerificationError(
                    f"Checksum mismatch for {url}: "
                    f"expected {expected_checksum}, got {computed_checksum}"
                )

            part_path.replace(dest_path)
            logger.info(
                "Downloaded %s (%d bytes, checksum: %s)",
                dest_path.name,
                total_bytes,
                computed_checksum[:16] + "...",
            )

            return DownloadResult(
                path=dest_path,
                checksum=computed_checksum,
                size_bytes=total_bytes,
            )

    except httpx.HTTPStatusError as e:
        part_path.unlink(missing_ok=True)
        raise DownloadError(
            f"HTTP error downloading {url}: {e.response.status_code} {e.response.reason_phrase}",
            code="http_error",
        ) from e
    except httpx.TimeoutException as e:
        part_path.unlink(missing_ok=True)
        raise DownloadError(
            f"Timeout downloading {url}",
            code="timeout",
        ) from e
    except httpx.RequestError as e:
        part_path.unlink(missing_ok=True)
        raise DownloadError(
            f"Network error downloading {url}: {e}",
            code="network_error",
        ) from e


__all__ = [
    "DOWNLOAD_CHUNK_SIZE",
    "DOWNLOAD_TIMEOUT",
    "DownloadError",
    "DownloadResult",
    "VerificationError",
    "compute_file_sha256",
    "download_file",
    "verify_bytes",
]
