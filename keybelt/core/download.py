"""
Single-URL HTTP download with checksum verification.

This module performs exactly one GET per call:
- HTTPS with TLS verification and redirect-following
- Non-2xx responses are failures
- Streaming to disk with optional progress reporting
- SHA-256 verification of the written file
- Remote modification time applied to the file (Last-Modified)

Retrying across mirrors is the caller's job (see keybelt.bundle.fetcher);
there is no retry or backoff here.
"""

import logging
import os
import time
from dataclasses import dataclass
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Callable, Optional

import requests
from requests.exceptions import RequestException

from keybelt.core.exceptions import ChecksumError, DownloadError
from keybelt.core.verification import compute_file_hash, verify_file_hash

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: int
    percentage: float
    speed_bps: float  # bytes per second

    def __str__(self) -> str:
        return format_progress(self)


def download_file(
    url: str,
    destination: Path,
    expected_sha256: Optional[str] = None,
    timeout: float = 30,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    session: Optional[requests.Session] = None,
) -> Path:
    """
    Download URL to destination and verify its checksum.

    The destination is truncated before writing. On any failure the partial
    file is removed before the exception propagates.

    Args:
        url: URL to download from
        destination: Local path to write
        expected_sha256: Expected SHA-256 hex digest (skips verification if None)
        timeout: Connect/read timeout in seconds
        progress_callback: Optional callback for progress updates
        session: Optional requests session (a plain requests.get is used if None)

    Returns:
        Path to downloaded file

    Raises:
        DownloadError: If the request fails or returns a non-2xx status
        ChecksumError: If the written file does not match expected_sha256
        ValueError: If URL or destination is empty

    Example:
        >>> download_file(
        ...     "https://example.com/bundle.tar.gz",
        ...     Path("/tmp/bundle.tar.gz.incomplete"),
        ...     expected_sha256="dd3c...",
        ... )
    """
    if not url:
        raise ValueError("URL cannot be empty")

    if not destination:
        raise ValueError("Destination path cannot be empty")

    destination = Path(destination)
    logger.debug(f"Downloading from {url}")

    getter = session.get if session is not None else requests.get

    try:
        with getter(url, stream=True, timeout=timeout, allow_redirects=True) as response:
            response.raise_for_status()
            _stream_to_file(response, destination, progress_callback)
            last_modified = response.headers.get("last-modified")
    except RequestException as e:
        _discard(destination)
        raise DownloadError(f"Download failed for {url}: {e}") from e
    except OSError as e:
        _discard(destination)
        raise DownloadError(f"Could not write {destination}: {e}") from e

    if expected_sha256 and not verify_file_hash(destination, expected_sha256):
        actual_hash = _safe_hash(destination)
        _discard(destination)
        raise ChecksumError(
            f"Checksum mismatch for {url}: "
            f"expected {expected_sha256}, got {actual_hash}"
        )

    if last_modified:
        _apply_remote_time(destination, last_modified)

    logger.debug(f"Download complete: {destination}")
    return destination


def _stream_to_file(
    response: requests.Response,
    destination: Path,
    progress_callback: Optional[Callable[[DownloadProgress], None]],
) -> None:
    total_size = _content_length(response)

    downloaded = 0
    start_time = time.time()
    last_progress_time = start_time

    with open(destination, "wb") as f:
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            if not chunk:
                continue
            f.write(chunk)
            downloaded += len(chunk)

            # Report progress at most twice a second, plus the final chunk
            current_time = time.time()
            if progress_callback and (
                current_time - last_progress_time >= 0.5 or downloaded == total_size
            ):
                elapsed = current_time - start_time
                progress_callback(
                    DownloadProgress(
                        bytes_downloaded=downloaded,
                        total_bytes=total_size if total_size > 0 else downloaded,
                        percentage=(downloaded / total_size * 100)
                        if total_size > 0
                        else 0,
                        speed_bps=downloaded / elapsed if elapsed > 0 else 0,
                    )
                )
                last_progress_time = current_time


def _content_length(response: requests.Response) -> int:
    """Declared body size, 0 when absent or unparsable."""
    value = response.headers.get("content-length")
    if not value:
        return 0
    try:
        return max(int(value), 0)
    except ValueError:
        logger.debug(f"Ignoring Content-Length header {value!r}")
        return 0


def _apply_remote_time(destination: Path, last_modified: str) -> None:
    """Set file mtime from a Last-Modified header, ignoring unparsable values."""
    try:
        timestamp = parsedate_to_datetime(last_modified).timestamp()
    except (TypeError, ValueError) as e:
        logger.debug(f"Ignoring Last-Modified header {last_modified!r}: {e}")
        return
    os.utime(destination, (timestamp, timestamp))


def _safe_hash(path: Path) -> str:
    try:
        return compute_file_hash(path)
    except OSError:
        return "<unreadable>"


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to remove partial download {path}: {e}")


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Example:
        >>> progress = DownloadProgress(52428800, 104857600, 50.0, 1048576)
        >>> print(format_progress(progress))
        50.0/100.0 MB (50.0%) at 1.0 MB/s
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024
    speed_mbps = progress.speed_bps / 1024 / 1024

    if progress.percentage > 0:
        return (
            f"{mb_downloaded:.1f}/{mb_total:.1f} MB "
            f"({progress.percentage:.1f}%) "
            f"at {speed_mbps:.1f} MB/s"
        )
    return f"{mb_downloaded:.1f} MB at {speed_mbps:.1f} MB/s"
