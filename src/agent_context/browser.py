"""Directory browser model — navigation, filtering, scrolling and selection.

One directory level is shown at a time. The state is a plain dataclass and
every transition returns a new state; only ``apply_key`` touches the
filesystem, through the ``lister`` it is given, when the current directory
changes.

Two modes:
  - "target": Enter/Space confirm the current directory itself.
  - "projects": Space toggles the highlighted folder, Enter confirms the
    selection (or the highlighted folder when nothing is selected).

Key components:
  - list_subdirectories: sorted, visible subdirectory names.
  - BrowserState / BrowserResult: model and terminal result.
  - open_browser / apply_key: build a state and feed it key tokens.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from pathlib import Path

from .utils import expand_tilde

logger = logging.getLogger(__name__)

TARGET_MODE = "target"
PROJECTS_MODE = "projects"

# Lines kept free for header, path, filter, selection and help box
RESERVED_LINES = {TARGET_MODE: 10, PROJECTS_MODE: 12}
MIN_VISIBLE = 5

# Key tokens produced by the terminal driver
KEY_UP = "up"
KEY_DOWN = "down"
KEY_LEFT = "left"
KEY_RIGHT = "right"
KEY_ENTER = "enter"
KEY_SPACE = "space"
KEY_BACKSPACE = "backspace"
KEY_ESCAPE = "escape"

_FILTER_CHAR_RE = re.compile(r"^[a-zA-Z0-9\-_.]$")

Lister = Callable[[Path, str], list[str]]


def list_subdirectories(path: Path, hidden_prefix: str = ".") -> list[str]:
    """Return the visible subdirectory names of *path*, sorted.

    Symlinks are not followed, so linked folders (e.g. an earlier
    workspace) are not listed. Any listing error yields an empty list so
    the browser stays usable.
    """
    try:
        with os.scandir(path) as it:
            names = [
                entry.name
                for entry in it
                if not entry.name.startswith(hidden_prefix) and _is_dir(entry)
            ]
    except OSError as e:
        logger.debug("Cannot list %s: %s", path, e)
        return []
    return sorted(names)


def _is_dir(entry: os.DirEntry) -> bool:
    try:
        return entry.is_dir(follow_symlinks=False)
    except OSError:
        return False


def max_visible_for(rows: int, mode: str) -> int:
    """Number of list rows that fit a terminal *rows* lines tall."""
    return max(MIN_VISIBLE, rows - RESERVED_LINES[mode] - 1)


def is_filter_char(token: str) -> bool:
    return bool(_FILTER_CHAR_RE.match(token))


@dataclass
class BrowserState:
    """Everything needed to render and drive one browsing session."""

    mode: str  # "target" | "projects"
    current_dir: Path
    entries: list[str]
    max_visible: int
    hidden_prefix: str = "."
    filter_text: str = ""
    cursor: int = 0
    scroll: int = 0
    # Insertion-ordered set of absolute paths (projects mode)
    selected: dict[str, None] = field(default_factory=dict)

    @property
    def filtered(self) -> list[str]:
        needle = self.filter_text.lower()
        if not needle:
            return list(self.entries)
        return [name for name in self.entries if needle in name.lower()]

    @property
    def highlighted(self) -> str | None:
        filtered = self.filtered
        if 0 <= self.cursor < len(filtered):
            return filtered[self.cursor]
        return None

    def highlighted_path(self) -> Path | None:
        name = self.highlighted
        return self.current_dir / name if name is not None else None

    @property
    def visible(self) -> list[str]:
        return self.filtered[self.scroll : self.scroll + self.max_visible]

    @property
    def has_more_above(self) -> bool:
        return self.scroll > 0

    @property
    def has_more_below(self) -> bool:
        return self.scroll + self.max_visible < len(self.filtered)

    @property
    def at_root(self) -> bool:
        return self.current_dir.parent == self.current_dir

    def is_selected(self, name: str) -> bool:
        return str(self.current_dir / name) in self.selected

    @property
    def selected_paths(self) -> list[str]:
        return list(self.selected)


@dataclass(frozen=True)
class BrowserResult:
    """Terminal outcome of a browsing session."""

    kind: str  # "target" | "projects" | "cancel"
    target: str | None = None
    projects: tuple[str, ...] = ()

    @property
    def cancelled(self) -> bool:
        return self.kind == "cancel"


CANCELLED = BrowserResult(kind="cancel")


def _scrolled(cursor: int, scroll: int, max_visible: int) -> int:
    """Smallest scroll change that keeps *cursor* inside the viewport."""
    if cursor < scroll:
        return cursor
    if cursor >= scroll + max_visible:
        return cursor - max_visible + 1
    return scroll


def open_browser(
    start: str | Path,
    mode: str,
    rows: int,
    hidden_prefix: str = ".",
    lister: Lister = list_subdirectories,
) -> BrowserState:
    """Create a browser at *start*: ``~`` expanded, made absolute, symlinks kept."""
    if mode not in RESERVED_LINES:
        raise ValueError(f"Unknown browser mode: {mode}")
    current = Path(os.path.abspath(expand_tilde(str(start))))
    return BrowserState(
        mode=mode,
        current_dir=current,
        entries=lister(current, hidden_prefix),
        max_visible=max_visible_for(rows, mode),
        hidden_prefix=hidden_prefix,
    )


def with_listing(state: BrowserState, directory: Path, entries: list[str]) -> BrowserState:
    """Switch to *directory*; filter, cursor and scroll reset."""
    return replace(
        state,
        current_dir=directory,
        entries=list(entries),
        filter_text="",
        cursor=0,
        scroll=0,
    )


def move_cursor(state: BrowserState, delta: int) -> BrowserState:
    """Move the cursor by *delta*, clamped to the filtered list (no wrap)."""
    last = max(0, len(state.filtered) - 1)
    cursor = min(last, max(0, state.cursor + delta))
    return replace(
        state, cursor=cursor, scroll=_scrolled(cursor, state.scroll, state.max_visible)
    )


def set_filter(state: BrowserState, text: str) -> BrowserState:
    """Replace the filter text; cursor and scroll reset when it changed."""
    if text == state.filter_text:
        return state
    return replace(state, filter_text=text, cursor=0, scroll=0)


def push_filter_char(state: BrowserState, char: str) -> BrowserState:
    return set_filter(state, state.filter_text + char)


def pop_filter_char(state: BrowserState) -> BrowserState:
    return set_filter(state, state.filter_text[:-1])


def resize(state: BrowserState, rows: int) -> BrowserState:
    """Recompute the viewport for a terminal *rows* lines tall."""
    max_visible = max_visible_for(rows, state.mode)
    # A taller viewport must not leave empty rows below the last entry
    scroll = min(state.scroll, max(0, len(state.filtered) - max_visible))
    return replace(
        state,
        max_visible=max_visible,
        scroll=_scrolled(state.cursor, scroll, max_visible),
    )


def descend_target(state: BrowserState) -> Path | None:
    """Directory entered by "descend", or None when nothing is highlighted."""
    return state.highlighted_path()


def ascend_target(state: BrowserState) -> Path | None:
    """Parent directory, or None at the filesystem root."""
    if state.at_root:
        return None
    return state.current_dir.parent


def toggle_selection(state: BrowserState) -> BrowserState:
    """Add or remove the highlighted folder from the selection."""
    path = state.highlighted_path()
    if path is None:
        return state
    key = str(path)
    selected = dict(state.selected)
    if key in selected:
        del selected[key]
    else:
        selected[key] = None
    return replace(state, selected=selected)


def confirm(state: BrowserState) -> BrowserResult:
    """Result of pressing Enter in the current state."""
    if state.mode == TARGET_MODE:
        return BrowserResult(kind=TARGET_MODE, target=str(state.current_dir))
    if not state.selected:
        path = state.highlighted_path()
        if path is not None:
            return BrowserResult(kind=PROJECTS_MODE, projects=(str(path),))
    return BrowserResult(kind=PROJECTS_MODE, projects=tuple(state.selected))


def _change_dir(state: BrowserState, directory: Path | None, lister: Lister) -> BrowserState:
    if directory is None:
        return state
    return with_listing(state, directory, lister(directory, state.hidden_prefix))


def apply_key(
    state: BrowserState, key: str, lister: Lister = list_subdirectories
) -> tuple[BrowserState, BrowserResult | None]:
    """Feed one key token to the browser.

    Returns:
        (next_state, result) where result is set once the session ends.
    """
    if key == KEY_BACKSPACE:
        return pop_filter_char(state), None

    if is_filter_char(key):
        return push_filter_char(state, key), None

    if key == KEY_UP:
        return move_cursor(state, -1), None
    if key == KEY_DOWN:
        return move_cursor(state, 1), None
    if key == KEY_LEFT:
        return _change_dir(state, ascend_target(state), lister), None
    if key == KEY_RIGHT:
        return _change_dir(state, descend_target(state), lister), None

    if key == KEY_SPACE:
        if state.mode == TARGET_MODE:
            return state, confirm(state)
        return toggle_selection(state), None

    if key == KEY_ENTER:
        return state, confirm(state)

    if key == KEY_ESCAPE:
        return state, CANCELLED

    return state, None
