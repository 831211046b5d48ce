"""Path and name helpers shared by the browser, orchestrator and CLI.

Key components:
  - agent_context_dir: resolve the config/log directory.
  - format_timestamp / compute_auto_target: generated session locations.
  - path_exists / ensure_directory / unique_name: filesystem checks used
    while materializing a workspace.
  - FilesystemError: raised for real filesystem failures.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_BASE_NAME = "agent-context"


class FilesystemError(OSError):
    """A filesystem operation failed for a reason other than "not found"."""

    def __init__(self, path: str | os.PathLike[str], message: str) -> None:
        super().__init__(message)
        self.path = str(path)
        self.message = message

    def __str__(self) -> str:
        return self.message


def agent_context_dir() -> Path:
    """Config directory: ``AGENT_CONTEXT_DIR`` or ``~/.agent-context``."""
    raw = os.environ.get("AGENT_CONTEXT_DIR", "")
    if raw:
        return Path(os.path.expanduser(raw))
    return Path.home() / ".agent-context"


def expand_tilde(path: str) -> str:
    """Expand a leading ``~`` to the home directory; other paths unchanged."""
    if path.startswith("~"):
        return os.path.expanduser(path)
    return path


def format_timestamp(now: datetime | None = None) -> str:
    """Local wall-clock time as ``YYYYMMDD-HHMM``."""
    now = now or datetime.now()
    return now.strftime("%Y%m%d-%H%M")


@dataclass(frozen=True)
class AutoTarget:
    """Generated workspace location for automatic mode."""

    base_directory: Path
    session_path: Path


def compute_auto_target(base_name: str = DEFAULT_BASE_NAME) -> AutoTarget:
    """Return ``~/<base_name>`` and ``~/<base_name>/session-<timestamp>``."""
    base_directory = Path.home() / base_name
    session_path = base_directory / f"session-{format_timestamp()}"
    return AutoTarget(base_directory=base_directory, session_path=session_path)


def path_exists(path: str | os.PathLike[str]) -> bool:
    """True if anything (file, dir, symlink, dangling symlink) lives at *path*.

    A terminal symlink is not followed. Only not-found lookups map to
    ``False``; permission and I/O errors raise FilesystemError.
    """
    try:
        os.lstat(path)
    except (FileNotFoundError, NotADirectoryError):
        return False
    except OSError as e:
        raise FilesystemError(path, f"Cannot inspect {path}: {e.strerror or e}") from e
    return True


def ensure_directory(path: str | os.PathLike[str]) -> Path:
    """Create *path* and any missing parents. Safe to call repeatedly.

    Raises:
        FilesystemError: *path* exists as a non-directory, or creation failed.
    """
    p = Path(path)
    try:
        p.mkdir(parents=True, exist_ok=True)
    except FileExistsError as e:
        raise FilesystemError(path, f"Path exists and is not a directory: {p}") from e
    except OSError as e:
        raise FilesystemError(path, f"Cannot create {p}: {e.strerror or e}") from e
    logger.debug("Directory ready: %s", p)
    return p


def unique_name(target_directory: str | os.PathLike[str], desired_name: str) -> str:
    """Return a name not yet used directly under *target_directory*.

    Tries ``desired_name``, then ``desired_name-1``, ``desired_name-2``, ...
    Each candidate is checked against the filesystem, so a freed slot is
    reused.
    """
    target = Path(target_directory)
    candidate = desired_name
    counter = 1
    while path_exists(target / candidate):
        candidate = f"{desired_name}-{counter}"
        counter += 1
    return candidate
