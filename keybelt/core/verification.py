"""
SHA-256 verification for downloaded bundles.

Digests are computed in-process with hashlib when the interpreter provides
SHA-256, and otherwise by one of the external ``shasum`` / ``sha256sum``
tools. Absence of one backend falls back to the next; absence of all of them
is a requirement failure.

The same check doubles as the cache-hit test: a cached archive that still
verifies is reused without touching the network.
"""

import hashlib
import logging
import secrets
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from keybelt.core.exceptions import MissingToolsError

logger = logging.getLogger(__name__)

SHA256_HEX_LENGTH = 64
CHUNK_SIZE = 8192


@dataclass(frozen=True)
class DigestBackend:
    """
    A way to compute SHA-256 of a file.

    Attributes:
        name: Backend name ('hashlib', 'shasum', 'sha256sum')
        command: External command prefix, empty for the in-process backend
    """

    name: str
    command: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def external(self) -> bool:
        return bool(self.command)

    def is_available(self) -> bool:
        """Check whether this backend can run on this host."""
        if not self.external:
            return "sha256" in hashlib.algorithms_available
        return shutil.which(self.command[0]) is not None


HASHLIB_BACKEND = DigestBackend("hashlib")
SHASUM_BACKEND = DigestBackend("shasum", ("shasum", "-a", "256"))
SHA256SUM_BACKEND = DigestBackend("sha256sum", ("sha256sum",))

DIGEST_BACKENDS: List[DigestBackend] = [
    HASHLIB_BACKEND,
    SHASUM_BACKEND,
    SHA256SUM_BACKEND,
]


def select_digest_backend(
    backends: Optional[List[DigestBackend]] = None,
) -> DigestBackend:
    """
    Pick the first available digest backend.

    Args:
        backends: Candidates in preference order (defaults to DIGEST_BACKENDS)

    Returns:
        First backend whose is_available() is True

    Raises:
        MissingToolsError: If no backend is available
    """
    candidates = DIGEST_BACKENDS if backends is None else backends

    for backend in candidates:
        if backend.is_available():
            logger.debug(f"Using {backend.name} for SHA-256")
            return backend

    raise MissingToolsError(["shasum or sha256sum"])


def _hash_in_process(file_path: Path) -> str:
    hasher = hashlib.sha256()
    with open(file_path, "rb") as f:
        while chunk := f.read(CHUNK_SIZE):
            hasher.update(chunk)
    return hasher.hexdigest()


def _hash_with_command(file_path: Path, backend: DigestBackend) -> str:
    result = subprocess.run(
        [*backend.command, str(file_path)],
        capture_output=True,
        text=True,
        check=True,
    )
    fields = result.stdout.split()
    if not fields:
        raise ValueError(f"{backend.name} produced no output for {file_path}")
    return fields[0]


def compute_file_hash(file_path: Path, backend: Optional[DigestBackend] = None) -> str:
    """
    Compute SHA-256 of a file.

    Args:
        file_path: Path to file
        backend: Digest backend (auto-selected if None)

    Returns:
        Lowercase hex digest

    Raises:
        FileNotFoundError: If file doesn't exist
        MissingToolsError: If no digest backend is available

    Example:
        >>> compute_file_hash(Path('portable-ruby.tar.gz'))
        'dd3cffcc524de404e87bef92d89f3694a9ef13f2586a6dce4807456f1b30c7b0'
    """
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    if backend is None:
        backend = select_digest_backend()

    if backend.external:
        digest = _hash_with_command(file_path, backend)
    else:
        digest = _hash_in_process(file_path)

    return digest.lower()


def verify_file_hash(
    file_path: Path, expected_hash: str, backend: Optional[DigestBackend] = None
) -> bool:
    """
    Check that a file's SHA-256 matches the expected value.

    A missing file is not an error: it simply does not verify.

    Args:
        file_path: File to check
        expected_hash: Expected hex digest
        backend: Digest backend (auto-selected if None)

    Returns:
        True if the file exists and its digest matches, False otherwise
    """
    file_path = Path(file_path)
    if not file_path.is_file():
        return False

    expected_hash = expected_hash.strip().lower()

    try:
        actual_hash = compute_file_hash(file_path, backend)
    except (OSError, subprocess.CalledProcessError, ValueError) as e:
        logger.warning(f"Could not hash {file_path}: {e}")
        return False

    if not _constant_time_compare(actual_hash, expected_hash):
        logger.debug(
            f"Checksum mismatch for {file_path.name}: "
            f"expected {expected_hash}, got {actual_hash}"
        )
        return False

    return True


def is_valid_sha256(value: str) -> bool:
    """Check that a string looks like a hex SHA-256 digest."""
    value = value.strip().lower()
    return len(value) == SHA256_HEX_LENGTH and all(
        c in "0123456789abcdef" for c in value
    )


def _constant_time_compare(a: str, b: str) -> bool:
    return secrets.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


__all__ = [
    "DigestBackend",
    "DIGEST_BACKENDS",
    "HASHLIB_BACKEND",
    "SHASUM_BACKEND",
    "SHA256SUM_BACKEND",
    "select_digest_backend",
    "compute_file_hash",
    "verify_file_hash",
    "is_valid_sha256",
]
