"""
Mirror fallback for bundle downloads.

Mirrors are tried strictly in order. A transport failure, an HTTP error or a
checksum mismatch all count as a failed mirror: the partial file is removed
and the next mirror is tried. The first mirror that yields a verified file
wins and the rest are never contacted.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence

import requests

from keybelt.core.download import DownloadProgress, download_file
from keybelt.core.exceptions import AllMirrorsFailedError, DownloadError

logger = logging.getLogger(__name__)


def fetch(
    urls: Sequence[str],
    destination: Path,
    expected_sha256: str,
    timeout: float = 30,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    session: Optional[requests.Session] = None,
    bundle_name: str = "bundle",
) -> str:
    """
    Download from the first mirror that serves verified content.

    Args:
        urls: Mirror URLs in priority order
        destination: File to write
        expected_sha256: Digest every mirror must match
        timeout: Per-request timeout in seconds
        progress_callback: Optional download progress callback
        session: Optional requests session shared across mirrors
        bundle_name: Name used in the failure message

    Returns:
        The URL that produced the verified file

    Raises:
        AllMirrorsFailedError: If no mirror produced a verified file
    """
    errors: Dict[str, Exception] = {}

    for index, url in enumerate(urls, 1):
        logger.debug(f"Trying mirror {index}/{len(urls)}: {url}")
        try:
            download_file(
                url,
                destination,
                expected_sha256=expected_sha256,
                timeout=timeout,
                progress_callback=progress_callback,
                session=session,
            )
        except DownloadError as e:
            # ChecksumError is a DownloadError: a bad mirror is a failed mirror
            logger.warning(f"Mirror failed: {e}")
            errors[url] = e
            continue

        logger.debug(f"Verified download from {url}")
        return url

    raise AllMirrorsFailedError(urls, errors, bundle_name=bundle_name)
