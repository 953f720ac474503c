"""
Pre-flight requirement checks.

Each requirement is a named capability satisfied by any one of its
alternatives: an importable module or a command on PATH. All missing
requirements are reported together before the installer touches the disk
or the network.
"""

import hashlib
import importlib.util
import logging
import shutil
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from keybelt.core.exceptions import MissingToolsError

logger = logging.getLogger(__name__)

MODULE = "module"
COMMAND = "command"


@dataclass(frozen=True)
class Alternative:
    """One way of satisfying a requirement."""

    kind: str  # 'module' or 'command'
    name: str

    def describe(self) -> str:
        return f"'{self.name}' {self.kind}"


@dataclass(frozen=True)
class Requirement:
    """
    A capability the installer needs.

    Attributes:
        name: Human readable capability name
        alternatives: Interchangeable ways of providing it, any one suffices
    """

    name: str
    alternatives: Tuple[Alternative, ...]

    def describe(self) -> str:
        """Format as "The 'x' command is required." style message."""
        options = " or ".join(alt.describe() for alt in self.alternatives)
        return f"The {options} is required."


def _module_available(name: str) -> bool:
    if name == "hashlib":
        return "sha256" in hashlib.algorithms_available
    try:
        return importlib.util.find_spec(name) is not None
    except (ImportError, ValueError):
        return False


def _command_available(name: str) -> bool:
    return shutil.which(name) is not None


def is_satisfied(
    requirement: Requirement,
    module_probe: Callable[[str], bool] = _module_available,
    command_probe: Callable[[str], bool] = _command_available,
) -> bool:
    """Check whether any alternative of a requirement is present."""
    for alt in requirement.alternatives:
        probe = module_probe if alt.kind == MODULE else command_probe
        if probe(alt.name):
            return True
    return False


DEFAULT_REQUIREMENTS: Tuple[Requirement, ...] = (
    Requirement("HTTP client", (Alternative(MODULE, "requests"),)),
    Requirement(
        "SHA-256 digest",
        (
            Alternative(MODULE, "hashlib"),
            Alternative(COMMAND, "shasum"),
            Alternative(COMMAND, "sha256sum"),
        ),
    ),
    Requirement("archive extraction", (Alternative(MODULE, "tarfile"),)),
    Requirement("gzip decompression", (Alternative(MODULE, "zlib"),)),
)


def find_missing(
    requirements: Optional[Sequence[Requirement]] = None,
    module_probe: Callable[[str], bool] = _module_available,
    command_probe: Callable[[str], bool] = _command_available,
) -> List[Requirement]:
    """Return every requirement with no available alternative."""
    if requirements is None:
        requirements = DEFAULT_REQUIREMENTS

    return [
        req
        for req in requirements
        if not is_satisfied(req, module_probe, command_probe)
    ]


def check_requirements(
    requirements: Optional[Sequence[Requirement]] = None,
    module_probe: Callable[[str], bool] = _module_available,
    command_probe: Callable[[str], bool] = _command_available,
) -> None:
    """
    Verify every requirement is met.

    Raises:
        MissingToolsError: Listing all missing requirements at once
    """
    missing = find_missing(requirements, module_probe, command_probe)

    for req in missing:
        logger.error(req.describe())

    if missing:
        raise MissingToolsError(req.name for req in missing)

    logger.debug("All requirements satisfied")
