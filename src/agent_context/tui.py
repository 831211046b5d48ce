"""Curses front end — renders each step and drives the session state machine.

The driver is the only place that touches the terminal or runs filesystem
commands. One loop iteration: draw the current state, then either execute
the pending command (its result becomes the next event) or read one key and
turn it into an event. The loop ends when a transition returns Exit.

Key components:
  - key_token: map a curses key code to a browser/mode-select key token.
  - Driver: the event loop, parameterised on screen, lister and sleep.
  - run_tui: curses.wrapper entry point used by main.py.
"""

from __future__ import annotations

import curses
import logging
import os
import time
from collections.abc import Callable
from pathlib import Path

from . import browser as br
from .app import (
    STEP_CREATING,
    STEP_DONE,
    STEP_MODE_SELECT,
    STEP_SELECT_PROJECTS,
    STEP_SELECT_TARGET,
    AutoTargetFailed,
    AutoTargetReady,
    Cancelled,
    Command,
    CreateLinks,
    Event,
    Exit,
    ExitTimerElapsed,
    LinkProgress,
    LinksCreated,
    LinksFailed,
    ModeKey,
    PrepareAutoTarget,
    PrepareTarget,
    ProjectsChosen,
    SessionState,
    StartExitTimer,
    TargetChosen,
    TargetFailed,
    TargetReady,
    Transition,
    advance,
)
from .utils import FilesystemError, ensure_directory
from .workspace.manager import WorkspaceManager

logger = logging.getLogger(__name__)

KEY_RESIZE_TOKEN = "resize"

_ESCAPE = 27
_SPECIAL_KEYS = {
    curses.KEY_UP: br.KEY_UP,
    curses.KEY_DOWN: br.KEY_DOWN,
    curses.KEY_LEFT: br.KEY_LEFT,
    curses.KEY_RIGHT: br.KEY_RIGHT,
    curses.KEY_ENTER: br.KEY_ENTER,
    curses.KEY_BACKSPACE: br.KEY_BACKSPACE,
    curses.KEY_DC: br.KEY_BACKSPACE,
    curses.KEY_RESIZE: KEY_RESIZE_TOKEN,
    10: br.KEY_ENTER,
    13: br.KEY_ENTER,
    32: br.KEY_SPACE,
    127: br.KEY_BACKSPACE,
    8: br.KEY_BACKSPACE,
    _ESCAPE: br.KEY_ESCAPE,
}


def key_token(code: int) -> str | None:
    """Translate a ``getch()`` code into a key token (None = ignore)."""
    if code in _SPECIAL_KEYS:
        return _SPECIAL_KEYS[code]
    if 33 <= code <= 126:
        return chr(code)
    return None


def safe_addstr(stdscr, y: int, x: int, text: str, attr: int = 0) -> None:
    """addstr that clips to the window and ignores writes off-screen."""
    height, width = stdscr.getmaxyx()
    if y < 0 or y >= height or x >= width:
        return
    clipped = text[: max(0, width - x - 1)]
    if not clipped:
        return
    try:
        stdscr.addstr(y, x, clipped, attr)
    except curses.error:
        return


def _basename(path: str) -> str:
    return os.path.basename(path.rstrip(os.sep)) or path


class Driver:
    """Runs one session on *stdscr* until a transition returns Exit."""

    def __init__(
        self,
        stdscr,
        start_dir: Path,
        hidden_prefix: str = ".",
        lister: br.Lister = br.list_subdirectories,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.stdscr = stdscr
        self.start_dir = start_dir
        self.hidden_prefix = hidden_prefix
        self.lister = lister
        self.sleep = sleep
        self.browser: br.BrowserState | None = None

    # --------------------
    # Loop
    # --------------------
    def run(self, transition: Transition) -> tuple[SessionState, Exit]:
        while True:
            state = transition.state
            if isinstance(transition.outcome, Exit):
                return state, transition.outcome
            self.draw(state)
            if transition.command is not None:
                event = self.execute(state, transition.command)
            else:
                event = self.next_event(state)
                if event is None:
                    transition = Transition(state)
                    continue
            transition = advance(state, event)

    def rows(self) -> int:
        return self.stdscr.getmaxyx()[0]

    def _browser_for(self, state: SessionState) -> br.BrowserState:
        mode = br.TARGET_MODE if state.step == STEP_SELECT_TARGET else br.PROJECTS_MODE
        if self.browser is None or self.browser.mode != mode:
            self.browser = br.open_browser(
                self.start_dir, mode, self.rows(), self.hidden_prefix, self.lister
            )
        return self.browser

    def next_event(self, state: SessionState) -> Event | None:
        """Block for one key and translate it for the current step."""
        token = key_token(self.stdscr.getch())
        if token is None:
            return None

        if state.step in (STEP_SELECT_TARGET, STEP_SELECT_PROJECTS):
            current = self._browser_for(state)
            if token == KEY_RESIZE_TOKEN:
                self.browser = br.resize(current, self.rows())
                return None
            self.browser, result = br.apply_key(current, token, self.lister)
            if result is None:
                return None
            self.browser = None
            if result.cancelled:
                return Cancelled()
            if result.kind == br.TARGET_MODE:
                return TargetChosen(result.target or str(current.current_dir))
            return ProjectsChosen(result.projects)

        if state.step == STEP_MODE_SELECT and token != KEY_RESIZE_TOKEN:
            return ModeKey(token)
        return None

    # --------------------
    # Commands
    # --------------------
    def execute(self, state: SessionState, command: Command) -> Event:
        """Run *command* to completion and return its result as an event."""
        logger.debug("Executing %s", command)
        if isinstance(command, PrepareAutoTarget):
            try:
                ensure_directory(command.path)
            except FilesystemError as e:
                return AutoTargetFailed(command.path, e.message)
            return AutoTargetReady(command.path)

        if isinstance(command, PrepareTarget):
            try:
                ensure_directory(command.path)
            except FilesystemError as e:
                return TargetFailed(command.path, e.message)
            return TargetReady(command.path)

        if isinstance(command, CreateLinks):
            return self._create_links(state, command)

        if isinstance(command, StartExitTimer):
            self.sleep(command.delay)
            return ExitTimerElapsed()

        raise TypeError(f"Unknown command: {command!r}")

    def _create_links(self, state: SessionState, command: CreateLinks) -> Event:
        manager = WorkspaceManager(command.target)

        def on_progress(idx: int, _total: int, project: str) -> None:
            self.draw(advance(state, LinkProgress(idx, project)).state)

        try:
            results = manager.link_projects(command.projects, on_progress)
        except FilesystemError as e:
            return LinksFailed(e.message)
        return LinksCreated(tuple(results))

    # --------------------
    # Rendering
    # --------------------
    def draw(self, state: SessionState) -> None:
        self.stdscr.erase()
        if state.step == STEP_MODE_SELECT:
            self._draw_mode_select(state)
        elif state.step in (STEP_SELECT_TARGET, STEP_SELECT_PROJECTS):
            self._draw_browser(state, self._browser_for(state))
        elif state.step == STEP_CREATING:
            self._draw_creating(state)
        elif state.step == STEP_DONE:
            self._draw_done(state)
        else:
            safe_addstr(self.stdscr, 1, 2, "Loading...")
        self.stdscr.refresh()

    def _draw_mode_select(self, state: SessionState) -> None:
        s = self.stdscr
        safe_addstr(s, 1, 2, "Agent Context - Quick Workspace Setup", curses.A_BOLD)
        safe_addstr(s, 3, 2, "How would you like to create your workspace?")
        rows = (
            ("Auto", "Create temporary workspace", f"Quick setup in {state.auto_target}"),
            ("Manual", "Choose target directory", "Select where to create symlinks"),
        )
        y = 5
        for idx, (label, summary, detail) in enumerate(rows):
            marker = "→" if idx == state.mode_cursor else " "
            attr = curses.A_REVERSE if idx == state.mode_cursor else 0
            safe_addstr(s, y, 2, f"{marker} {label} - {summary}", attr)
            safe_addstr(s, y + 1, 6, detail, curses.A_DIM)
            y += 3
        safe_addstr(s, y + 1, 2, "↑↓ Navigate • Enter Select • Esc Exit", curses.A_DIM)

    def _draw_browser(self, state: SessionState, b: br.BrowserState) -> None:
        s = self.stdscr
        y = 0
        if state.step == STEP_SELECT_TARGET and state.fallback_message:
            safe_addstr(s, y, 2, state.fallback_message, curses.A_BOLD)
            y += 2
        title = (
            "Select Target Directory for Symlinks"
            if b.mode == br.TARGET_MODE
            else "Select Project Directories to Symlink"
        )
        safe_addstr(s, y, 2, title, curses.A_BOLD)
        safe_addstr(s, y + 1, 2, f"📁 {b.current_dir}")
        filtered = b.filtered
        if b.filter_text:
            filter_line = (
                f"🔍 Filter: {b.filter_text} ({len(filtered)} of {len(b.entries)} shown)"
            )
        else:
            filter_line = "🔍 Filter: (type to filter)"
        safe_addstr(s, y + 2, 2, filter_line)
        y += 3

        if b.mode == br.PROJECTS_MODE:
            if b.selected:
                names = ", ".join(_basename(p) for p in b.selected_paths)
                safe_addstr(s, y, 2, f"Selected ({len(b.selected)}): {names}", curses.A_DIM)
            else:
                safe_addstr(s, y, 2, "No directories selected yet", curses.A_DIM)
            y += 1

        y += 1
        if not b.at_root:
            safe_addstr(s, y, 2, "← .. (parent)", curses.A_DIM)
            y += 1

        if not b.entries:
            safe_addstr(s, y, 2, "No subdirectories", curses.A_DIM)
        elif not filtered:
            safe_addstr(s, y, 2, f'No directories match filter "{b.filter_text}"', curses.A_DIM)
        else:
            if b.has_more_above:
                safe_addstr(s, y, 2, "↑ more...", curses.A_DIM)
                y += 1
            for offset, name in enumerate(b.visible):
                idx = b.scroll + offset
                check = "✓" if b.is_selected(name) else " "
                if idx == b.cursor:
                    safe_addstr(s, y, 2, f"{check} → {name}", curses.A_REVERSE)
                else:
                    safe_addstr(s, y, 2, f"{check}   {name}")
                y += 1
            if b.has_more_below:
                safe_addstr(s, y, 2, "↓ more...", curses.A_DIM)

        bottom = self.rows() - 3
        safe_addstr(s, bottom, 2, "Navigation: ↑↓ Select • ← Parent • → Enter", curses.A_DIM)
        safe_addstr(s, bottom + 1, 2, "Filter: Type to filter • Backspace Remove chars", curses.A_DIM)
        if b.mode == br.TARGET_MODE:
            actions = "Actions: Space/Enter Confirm • Esc Exit"
        else:
            actions = "Actions: Space Toggle • Enter Done • Esc Exit"
        safe_addstr(s, bottom + 2, 2, actions, curses.A_DIM)

    def _draw_creating(self, state: SessionState) -> None:
        s = self.stdscr
        safe_addstr(s, 1, 2, "Creating Symlinks", curses.A_BOLD)
        safe_addstr(s, 3, 2, f"Creating symlinks in {state.target or ''}")
        y = 5
        if state.progress_index < len(state.projects):
            current = _basename(state.projects[state.progress_index])
            safe_addstr(s, y, 2, f"Processing: {current}")
            y += 2
        for project in state.projects[: state.progress_index]:
            safe_addstr(s, y, 2, f"✅ {_basename(project)}")
            y += 1

    def _draw_done(self, state: SessionState) -> None:
        s = self.stdscr
        y = 1
        for line in report_lines(state):
            safe_addstr(s, y, 2, line)
            y += 1


def report_lines(state: SessionState) -> list[str]:
    """Plain-text summary of a finished session."""
    lines = ["Completed", ""]
    if state.succeeded:
        lines.append("Created symlinks:")
        lines.extend(f"✅ {r.name}" for r in state.succeeded)
        lines.append("")
    if state.failed:
        lines.append("Failed:")
        lines.extend(f"❌ {r.name}: {r.message}" for r in state.failed)
        lines.append("")
    lines.append("📁 Workspace ready at:")
    lines.append(state.target or "")
    lines.append("")
    lines.append(f"Next: cd {state.target or ''}")
    return lines


def run_tui(
    transition: Transition, start_dir: Path, hidden_prefix: str = "."
) -> tuple[SessionState, Exit]:
    """Run the session inside curses and return the final state and outcome."""
    # Esc must not wait a full second for an escape sequence
    os.environ.setdefault("ESCDELAY", "25")

    def _main(stdscr) -> tuple[SessionState, Exit]:
        try:
            curses.curs_set(0)
        except curses.error:
            pass
        stdscr.keypad(True)
        driver = Driver(stdscr, start_dir=start_dir, hidden_prefix=hidden_prefix)
        return driver.run(transition)

    return curses.wrapper(_main)

