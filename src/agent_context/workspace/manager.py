"""Workspace materialization — link selected projects into a target directory.

Each project becomes one entry in the target: a directory symlink, or a
directory junction on Windows. Names collide-proof via unique_name(), so a
second "api" project lands at "api-1". Projects are processed strictly in
order; a later name check sees links made earlier in the same batch.

Key class: WorkspaceManager.
"""

from __future__ import annotations

import logging
import os
import stat
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from ..utils import ensure_directory, unique_name

logger = logging.getLogger(__name__)

# Called with (index, total, project_path) before each project is linked
ProgressCallback = Callable[[int, int, str], None]


@dataclass(frozen=True)
class LinkResult:
    """Outcome of linking one project."""

    source: str
    destination: str | None
    ok: bool
    message: str

    @property
    def name(self) -> str:
        return os.path.basename(self.source.rstrip(os.sep)) or self.source


def _create_dir_link(source: str, destination: Path) -> None:
    """Create *destination* pointing at directory *source*."""
    if sys.platform == "win32":
        import _winapi

        _winapi.CreateJunction(source, str(destination))
    else:
        os.symlink(source, destination, target_is_directory=True)


class WorkspaceManager:
    """Manages one scoped workspace directory full of project links."""

    def __init__(self, target_dir: str | Path) -> None:
        self.target_dir = Path(target_dir)

    def init_workspace(self) -> Path:
        """Create the target directory (and parents). Safe to call repeatedly.

        Raises:
            FilesystemError: The directory cannot be created.
        """
        ensure_directory(self.target_dir)
        logger.debug("Workspace ready at %s", self.target_dir)
        return self.target_dir

    def link_project(self, project_path: str) -> LinkResult:
        """Link one project into the workspace. Never raises.

        Returns:
            A LinkResult with ok=False and the error text on failure.
        """
        source = project_path.rstrip(os.sep) or project_path
        try:
            final_name = unique_name(self.target_dir, os.path.basename(source) or source)
            dest = self.target_dir / final_name
            self._clear_stale_entry(dest)
            _create_dir_link(project_path, dest)
        except OSError as e:
            message = str(e) or type(e).__name__
            logger.warning("Failed to link %s: %s", project_path, message)
            return LinkResult(source=project_path, destination=None, ok=False, message=message)

        logger.info("Linked project: %s -> %s", dest, project_path)
        return LinkResult(source=project_path, destination=str(dest), ok=True, message="ok")

    def _clear_stale_entry(self, dest: Path) -> None:
        """Remove a leftover file/symlink at *dest*; refuse to touch a directory.

        An entry that cannot be inspected is treated as absent; creating the
        link afterwards fails loudly if something is really there.
        """
        try:
            st = os.lstat(dest)
        except OSError:
            return
        if stat.S_ISLNK(st.st_mode) or stat.S_ISREG(st.st_mode):
            dest.unlink()
            logger.info("Removed stale entry: %s", dest)
        elif stat.S_ISDIR(st.st_mode):
            raise IsADirectoryError(f"Destination exists and is a directory: {dest}")

    def link_projects(
        self,
        project_paths: Sequence[str],
        on_progress: ProgressCallback | None = None,
    ) -> list[LinkResult]:
        """Create the workspace and link every project, in order.

        Individual failures are recorded, not raised; the batch always
        runs to the end.

        Raises:
            FilesystemError: The target directory cannot be created.
        """
        self.init_workspace()

        results: list[LinkResult] = []
        total = len(project_paths)
        for idx, project_path in enumerate(project_paths):
            if on_progress is not None:
                on_progress(idx, total, project_path)
            results.append(self.link_project(project_path))

        ok = sum(1 for r in results if r.ok)
        logger.info(
            "Linked %d/%d projects into %s", ok, total, self.target_dir
        )
        return results

