"""
File system utilities for keybelt.

This module provides the filesystem side of an install:
- Scoped staging files that are removed on every exit path
- Atomic moves (same-volume rename, copy-then-rename across volumes)
- Safe recursive deletion guarded by a required prefix
- tar.gz extraction with leading path components stripped
- Atomic replacement of a symbolic link
"""

import errno
import logging
import os
import secrets
import shutil
import sys
import tarfile
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from typing import Iterator, List, Optional, Union

from keybelt.core.exceptions import (
    ArchiveExtractionError,
    FilesystemError,
    InsecureArchiveError,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is relative to (under) parent directory.

    Example:
        >>> is_relative_to(Path("/home/user/project/file.txt"), Path("/home/user"))
        True
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Create a directory and its parents if missing (mkdir -p).

    Raises:
        FilesystemError: If the directory cannot be created
    """
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Could not create directory {path}: {e}") from e
    return path


def _sibling_temp_name(path: Path, suffix: str = ".tmp") -> Path:
    return path.parent / f".{path.name}.{secrets.token_hex(4)}{suffix}"


# ============================================================================
# Safe File Operations
# ============================================================================


@contextmanager
def scoped_temp_file(path: Union[str, Path]) -> Iterator[Path]:
    """
    Reserve a staging file path and remove it when the scope exits.

    Cleanup runs on success, on exceptions and on KeyboardInterrupt/SystemExit.

    Example:
        >>> with scoped_temp_file(runtime_dir / "bundle.tar.gz.incomplete") as tmp:
        ...     fetch(urls, tmp, sha)
        ...     atomic_move(tmp, cache_path)
    """
    path = Path(path)
    try:
        yield path
    finally:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove temporary file {path}: {e}")


def atomic_move(source: Union[str, Path], destination: Union[str, Path]) -> Path:
    """
    Move a file so the destination is never observed partially written.

    Uses a single rename when source and destination share a volume. Across
    volumes the file is copied next to the destination first and then
    renamed into place.

    Raises:
        FilesystemError: If the move fails
    """
    source = Path(source)
    destination = Path(destination)

    try:
        os.replace(source, destination)
        return destination
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise FilesystemError(
                f"Could not move {source} to {destination}: {e}"
            ) from e

    logger.debug(f"{source} and {destination} are on different volumes, copying")
    staging = _sibling_temp_name(destination)
    try:
        shutil.copy2(source, staging)
        os.replace(staging, destination)
        source.unlink()
    except OSError as e:
        staging.unlink(missing_ok=True)
        raise FilesystemError(f"Could not move {source} to {destination}: {e}") from e

    return destination


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree(bundle_dir / "3.3.2", require_prefix=bundle_dir)
        >>> safe_rmtree('/usr/bin', require_prefix='/home')  # ValueError
    """
    path = Path(path).absolute()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if not is_relative_to(path.parent.resolve() / path.name, require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if path.is_symlink():
        # Never follow a link into someone else's tree
        path.unlink()
        return

    if not path.exists():
        return

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        shutil.rmtree(path)
    except OSError as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


def replace_symlink(link_path: Union[str, Path], target: Union[str, Path]) -> Path:
    """
    Point link_path at target, replacing any existing link atomically.

    A temporary link is created beside link_path and renamed over it, so
    there is no moment where link_path is missing.

    Raises:
        FilesystemError: If link_path is a real directory or the link fails
    """
    link_path = Path(link_path)
    target = Path(target)

    if link_path.is_dir() and not link_path.is_symlink():
        raise FilesystemError(
            f"Refusing to replace directory {link_path} with a symlink"
        )

    staging = _sibling_temp_name(link_path, suffix=".link")
    try:
        os.symlink(target, staging, target_is_directory=True)
        os.replace(staging, link_path)
    except OSError as e:
        try:
            staging.unlink(missing_ok=True)
        except OSError:
            logger.debug(f"Could not remove staging link {staging}")
        raise FilesystemError(f"Could not link {link_path} -> {target}: {e}") from e

    logger.debug(f"Linked {link_path} -> {target}")
    return link_path


# ============================================================================
# Archive Extraction
# ============================================================================


def _strip_path(name: str, strip_components: int) -> Optional[str]:
    """Drop leading components from an archive path; None if nothing is left."""
    parts = [p for p in PurePosixPath(name).parts if p not in ("", ".", "/")]
    remaining = parts[strip_components:]
    if not remaining:
        return None
    return "/".join(remaining)


def _validate_archive_path(name: str, destination: Path) -> None:
    """
    Validate that archive entry stays inside destination.

    Raises:
        InsecureArchiveError: If entry is absolute or escapes destination
    """
    if PurePosixPath(name).is_absolute() or ".." in PurePosixPath(name).parts:
        raise InsecureArchiveError(f"Archive contains unsafe path: {name}")

    target = (destination / name).resolve()
    if not is_relative_to(target, destination.resolve()):
        raise InsecureArchiveError(f"Archive entry escapes destination: {name}")


def _validate_link_target(member: tarfile.TarInfo, destination: Path) -> None:
    if PurePosixPath(member.linkname).is_absolute():
        raise InsecureArchiveError(
            f"Archive link {member.name} has absolute target {member.linkname}"
        )
    link_dir = (destination / member.name).parent
    target = (link_dir / member.linkname).resolve()
    if not is_relative_to(target, destination.resolve()):
        raise InsecureArchiveError(
            f"Archive link {member.name} points outside destination: {member.linkname}"
        )


def _stripped_members(
    tar: tarfile.TarFile, destination: Path, strip_components: int
) -> List[tarfile.TarInfo]:
    members = []

    for member in tar.getmembers():
        stripped = _strip_path(member.name, strip_components)
        if stripped is None:
            continue

        if member.islnk():
            link_target = _strip_path(member.linkname, strip_components)
            if link_target is None:
                raise InsecureArchiveError(
                    f"Archive hard link {member.name} targets stripped entry "
                    f"{member.linkname}"
                )
            member.linkname = link_target

        member.name = stripped
        _validate_archive_path(member.name, destination)

        if member.issym():
            _validate_link_target(member, destination)

        members.append(member)

    return members


def extract_archive(
    archive_path: Union[str, Path],
    destination: Union[str, Path],
    strip_components: int = 0,
) -> int:
    """
    Extract a tar archive (gzip, bzip2, xz or plain) into destination.

    Args:
        archive_path: Archive to extract
        destination: Existing directory to extract into
        strip_components: Number of leading path components removed from
            each entry; entries with no components left are skipped

    Returns:
        Number of entries extracted

    Raises:
        ArchiveExtractionError: If the archive is unreadable
        InsecureArchiveError: If an entry would land outside destination

    Example:
        >>> extract_archive("portable-ruby.tar.gz", install_dir, strip_components=2)
        412
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    if not archive_path.is_file():
        raise ArchiveExtractionError(f"Archive not found: {archive_path}")

    try:
        with tarfile.open(archive_path, "r:*") as tar:
            members = _stripped_members(tar, destination, strip_components)

            # Extract with filter for security (Python 3.12+)
            # For older Python, paths were validated above
            if sys.version_info >= (3, 12):
                tar.extractall(destination, members=members, filter="data")
            else:
                tar.extractall(destination, members=members)
    except InsecureArchiveError:
        raise
    except (tarfile.TarError, EOFError) as e:
        raise ArchiveExtractionError(f"Failed to extract {archive_path}: {e}") from e
    except OSError as e:
        raise ArchiveExtractionError(
            f"Failed to write {archive_path} contents to {destination}: {e}"
        ) from e

    logger.debug(f"Extracted {len(members)} entries to {destination}")
    return len(members)


__all__ = [
    "is_relative_to",
    "ensure_directory",
    "scoped_temp_file",
    "atomic_move",
    "safe_rmtree",
    "replace_symlink",
    "extract_archive",
]
