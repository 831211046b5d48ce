"""Session state machine — mode choice, target choice, project choice, linking.

Steps:
  starting → (mode-select) → select-target → select-projects → creating → done

Every transition is a pure function of (state, event). It returns the next
state, at most one command for the driver to execute (filesystem work or a
timer), and an outcome: CONTINUE, or Exit(code) which the driver returns to
the CLI. The driver turns each command's result back into an event.

Key components:
  - SessionState: the single state record.
  - start_session(): initial transition from the CLI flags.
  - advance(): apply one event.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from .browser import KEY_DOWN, KEY_ENTER, KEY_ESCAPE, KEY_UP
from .workspace.manager import LinkResult

logger = logging.getLogger(__name__)

STEP_STARTING = "starting"
STEP_MODE_SELECT = "mode-select"
STEP_SELECT_TARGET = "select-target"
STEP_SELECT_PROJECTS = "select-projects"
STEP_CREATING = "creating"
STEP_DONE = "done"

MODE_AUTO = "auto"
MODE_MANUAL = "manual"

# Mode-select rows
MODE_OPTIONS = (MODE_AUTO, MODE_MANUAL)

NO_PROJECTS_MESSAGE = "No projects selected. Exiting."


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Continue:
    """Keep running."""


@dataclass(frozen=True)
class Exit:
    """Stop the program with *code*, optionally printing *message*."""

    code: int = 0
    message: str | None = None

    @property
    def is_error(self) -> bool:
        return self.code != 0


CONTINUE = Continue()


# ---------------------------------------------------------------------------
# Commands (executed by the driver)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PrepareAutoTarget:
    path: str


@dataclass(frozen=True)
class PrepareTarget:
    path: str


@dataclass(frozen=True)
class CreateLinks:
    target: str
    projects: tuple[str, ...]


@dataclass(frozen=True)
class StartExitTimer:
    delay: float


Command = PrepareAutoTarget | PrepareTarget | CreateLinks | StartExitTimer


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AutoTargetReady:
    path: str


@dataclass(frozen=True)
class AutoTargetFailed:
    path: str
    reason: str


@dataclass(frozen=True)
class ModeKey:
    """A key token pressed on the mode-select screen."""

    key: str


@dataclass(frozen=True)
class TargetChosen:
    path: str


@dataclass(frozen=True)
class TargetReady:
    path: str


@dataclass(frozen=True)
class TargetFailed:
    path: str
    reason: str


@dataclass(frozen=True)
class ProjectsChosen:
    projects: tuple[str, ...]


@dataclass(frozen=True)
class LinkProgress:
    index: int
    project: str


@dataclass(frozen=True)
class LinksCreated:
    results: tuple[LinkResult, ...]


@dataclass(frozen=True)
class LinksFailed:
    reason: str


@dataclass(frozen=True)
class ExitTimerElapsed:
    pass


@dataclass(frozen=True)
class Cancelled:
    pass


Event = (
    AutoTargetReady
    | AutoTargetFailed
    | ModeKey
    | TargetChosen
    | TargetReady
    | TargetFailed
    | ProjectsChosen
    | LinkProgress
    | LinksCreated
    | LinksFailed
    | ExitTimerElapsed
    | Cancelled
)


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SessionState:
    """Process-lifetime session context plus what the screens need."""

    step: str
    auto_target: str
    exit_delay: float = 3.0
    mode: str | None = None  # None until chosen, then "auto" | "manual"
    target: str | None = None
    projects: tuple[str, ...] = ()
    progress_index: int = 0
    results: tuple[LinkResult, ...] = ()
    fallback_message: str | None = None
    mode_cursor: int = 0  # index into MODE_OPTIONS

    @property
    def succeeded(self) -> list[LinkResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> list[LinkResult]:
        return [r for r in self.results if not r.ok]


@dataclass(frozen=True)
class Transition:
    state: SessionState
    command: Command | None = None
    outcome: Continue | Exit = CONTINUE


def start_session(
    auto_target: str,
    force_manual: bool = False,
    allow_choice: bool = False,
    exit_delay: float = 3.0,
) -> Transition:
    """Initial transition for the given CLI flags.

    ``force_manual`` wins over ``allow_choice``. Without either, the auto
    target is created straight away.
    """
    if force_manual:
        state = SessionState(
            step=STEP_SELECT_TARGET,
            auto_target=auto_target,
            exit_delay=exit_delay,
            mode=MODE_MANUAL,
        )
        return Transition(state)
    if allow_choice:
        return Transition(
            SessionState(step=STEP_MODE_SELECT, auto_target=auto_target, exit_delay=exit_delay)
        )
    state = SessionState(step=STEP_STARTING, auto_target=auto_target, exit_delay=exit_delay)
    return Transition(state, command=PrepareAutoTarget(auto_target))


def advance(state: SessionState, event: Event) -> Transition:
    """Apply one event to *state*."""
    if isinstance(event, Cancelled):
        logger.info("Cancelled during %s", state.step)
        return Transition(state, outcome=Exit(0))

    if isinstance(event, AutoTargetReady):
        logger.info("Auto workspace at %s", event.path)
        return Transition(
            replace(state, step=STEP_SELECT_PROJECTS, mode=MODE_AUTO, target=event.path)
        )

    if isinstance(event, AutoTargetFailed):
        logger.warning("Auto workspace unavailable (%s), using manual mode", event.reason)
        message = (
            f"No write permissions for {event.path}. Falling back to manual mode. "
            f"(Reason: {event.reason or 'unknown'})"
        )
        return Transition(
            replace(
                state,
                step=STEP_SELECT_TARGET,
                mode=MODE_MANUAL,
                fallback_message=message,
            )
        )

    if isinstance(event, ModeKey):
        return _mode_select_key(state, event.key)

    if isinstance(event, TargetChosen):
        return Transition(state, command=PrepareTarget(event.path))

    if isinstance(event, TargetReady):
        logger.info("Target directory %s", event.path)
        return Transition(replace(state, step=STEP_SELECT_PROJECTS, target=event.path))

    if isinstance(event, TargetFailed):
        logger.error("Cannot use target %s: %s", event.path, event.reason)
        return Transition(
            state, outcome=Exit(1, f"Failed to ensure target: {event.reason}")
        )

    if isinstance(event, ProjectsChosen):
        if not event.projects:
            return Transition(state, outcome=Exit(0, NO_PROJECTS_MESSAGE))
        if state.target is None:
            raise ValueError("Projects chosen before a target was set")
        logger.info("Selected %d projects", len(event.projects))
        return Transition(
            replace(state, step=STEP_CREATING, projects=event.projects, progress_index=0),
            command=CreateLinks(target=state.target, projects=event.projects),
        )

    if isinstance(event, LinkProgress):
        return Transition(replace(state, progress_index=event.index))

    if isinstance(event, LinksCreated):
        return Transition(
            replace(state, step=STEP_DONE, results=event.results),
            command=StartExitTimer(state.exit_delay),
        )

    if isinstance(event, LinksFailed):
        logger.error("Cannot create target directory: %s", event.reason)
        return Transition(
            state, outcome=Exit(1, f"Failed to create target directory: {event.reason}")
        )

    if isinstance(event, ExitTimerElapsed):
        return Transition(state, outcome=Exit(0))

    raise TypeError(f"Unknown event: {event!r}")


def _mode_select_key(state: SessionState, key: str) -> Transition:
    """Up/down flip between Auto and Manual; Enter confirms; Esc/q quit."""
    if state.step != STEP_MODE_SELECT:
        return Transition(state)
    if key in (KEY_UP, KEY_DOWN):
        return Transition(replace(state, mode_cursor=1 - state.mode_cursor))
    if key == KEY_ENTER:
        if MODE_OPTIONS[state.mode_cursor] == MODE_AUTO:
            return Transition(
                replace(state, step=STEP_STARTING),
                command=PrepareAutoTarget(state.auto_target),
            )
        return Transition(replace(state, step=STEP_SELECT_TARGET, mode=MODE_MANUAL))
    if key in (KEY_ESCAPE, "q"):
        return Transition(state, outcome=Exit(0))
    return Transition(state)
