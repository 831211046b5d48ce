"""Application entry point — CLI flags, logging, and the final report.

Handles three execution modes:
  1. ``agent-context`` — auto mode: create ~/agent-context/session-<timestamp>
     and go straight to project selection (falls back to manual mode when the
     directory cannot be created).
  2. ``agent-context --choose`` — show the Auto/Manual selection screen first.
  3. ``agent-context --manual`` — pick the target directory yourself.

The curses UI owns the terminal while it runs, so log records go to a file
in the config directory and the summary is printed to stdout afterwards.
"""

import logging
import sys

USAGE = """\
agent-context

Interactive CLI to create a scoped workspace (symlinks) for your editor.

Usage:
  agent-context                 # auto mode by default (falls back to manual if no write perms)
  agent-context --choose        # show mode selection UI (auto or manual)
  agent-context --manual        # force manual mode
  agent-context --help          # show this help
"""

_KNOWN_FLAGS = {"--choose", "--manual", "--help", "-h"}


def _setup_logging(cfg) -> None:
    """Send log records to the config-dir log file, else stderr (WARNING)."""
    fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    try:
        cfg.config_dir.mkdir(parents=True, exist_ok=True)
        logging.basicConfig(filename=cfg.log_file, format=fmt, level=logging.WARNING)
        logging.getLogger("agent_context").setLevel(cfg.log_level)
    except OSError:
        logging.basicConfig(format=fmt, level=logging.WARNING)
        logging.getLogger("agent_context").setLevel(logging.WARNING)


def print_report(state, auto_mode: bool) -> None:
    """Print the finished-session summary; auto mode adds a bare path line."""
    from .tui import report_lines

    print("\n".join(report_lines(state)))
    if auto_mode and state.target:
        print("\nWorkspace created successfully!")
        print("\nPath to use:")
        print(state.target)
        print("\n(Copy the path above)")


def run(argv: list[str]) -> int:
    """Run the tool for *argv* (without the program name); return exit code."""
    unknown = [a for a in argv if a not in _KNOWN_FLAGS]
    if unknown:
        sys.stderr.write(f"Unknown argument: {unknown[0]}\n\n{USAGE}")
        return 2

    if "--help" in argv or "-h" in argv:
        print(USAGE)
        return 0

    from .settings import load_settings

    try:
        cfg = load_settings()
    except ValueError as e:
        print(f"Error: {e}\n")
        print("Check your settings.toml / AGENT_CONTEXT_* configuration.")
        return 1

    _setup_logging(cfg)
    logger = logging.getLogger(__name__)

    from .app import MODE_AUTO, STEP_DONE, start_session
    from .tui import run_tui
    from .utils import compute_auto_target

    auto_target = compute_auto_target(cfg.base_name)
    transition = start_session(
        str(auto_target.session_path),
        force_manual="--manual" in argv,
        allow_choice="--choose" in argv,
        exit_delay=cfg.exit_delay,
    )
    logger.info("Starting in step %s", transition.state.step)

    try:
        state, outcome = run_tui(
            transition, cfg.resolved_start_dir(), hidden_prefix=cfg.hidden_prefix
        )
    except KeyboardInterrupt:
        return 0

    if outcome.message:
        stream = sys.stderr if outcome.is_error else sys.stdout
        print(outcome.message, file=stream)

    if state.step == STEP_DONE:
        print_report(state, auto_mode=state.mode == MODE_AUTO)
        logger.info(
            "Done: %d linked, %d failed, target %s",
            len(state.succeeded),
            len(state.failed),
            state.target,
        )

    return outcome.code


def main() -> None:
    """Main entry point."""
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
