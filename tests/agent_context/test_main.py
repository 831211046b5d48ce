"""Tests for main.py — flag handling, settings errors, and the printed report."""

from pathlib import Path

import pytest

from agent_context import main as main_mod
from agent_context.app import (
    MODE_AUTO,
    MODE_MANUAL,
    NO_PROJECTS_MESSAGE,
    STEP_DONE,
    STEP_MODE_SELECT,
    STEP_SELECT_TARGET,
    STEP_STARTING,
    Exit,
    SessionState,
)
from agent_context.workspace.manager import LinkResult


@pytest.fixture
def isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Fresh config dir and cwd so no real settings leak in."""
    config = tmp_path / "config"
    monkeypatch.setenv("AGENT_CONTEXT_DIR", str(config))
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    return config


@pytest.fixture
def fake_tui(monkeypatch: pytest.MonkeyPatch):
    """Replace run_tui; records the initial transition, returns a canned result."""
    calls: list = []
    box: dict = {}

    def run_tui(transition, start_dir, hidden_prefix="."):
        calls.append((transition, start_dir, hidden_prefix))
        return box["result"]

    monkeypatch.setattr("agent_context.tui.run_tui", run_tui)
    return calls, box


def _done(mode: str) -> SessionState:
    return SessionState(
        step=STEP_DONE,
        auto_target="/home/u/agent-context/session-20250101-0900",
        mode=mode,
        target="/tmp/ws",
        results=(LinkResult("/work/alpha", "/tmp/ws/alpha", True, "ok"),),
    )


class TestFlags:
    def test_help(self, capsys: pytest.CaptureFixture[str]):
        assert main_mod.run(["--help"]) == 0
        assert "agent-context --manual" in capsys.readouterr().out

    def test_short_help(self, capsys: pytest.CaptureFixture[str]):
        assert main_mod.run(["-h"]) == 0
        assert "Usage:" in capsys.readouterr().out

    def test_unknown_argument(self, capsys: pytest.CaptureFixture[str]):
        assert main_mod.run(["--bogus"]) == 2
        err = capsys.readouterr().err
        assert "Unknown argument: --bogus" in err
        assert "Usage:" in err

    def test_default_is_auto(self, isolated: Path, fake_tui):
        calls, box = fake_tui
        box["result"] = (_done(MODE_AUTO), Exit(0))
        main_mod.run([])
        transition = calls[0][0]
        assert transition.state.step == STEP_STARTING
        assert Path(transition.state.auto_target).parent == Path.home() / "agent-context"

    def test_manual_flag(self, isolated: Path, fake_tui):
        calls, box = fake_tui
        box["result"] = (_done(MODE_MANUAL), Exit(0))
        main_mod.run(["--manual"])
        assert calls[0][0].state.step == STEP_SELECT_TARGET

    def test_choose_flag(self, isolated: Path, fake_tui):
        calls, box = fake_tui
        box["result"] = (_done(MODE_AUTO), Exit(0))
        main_mod.run(["--choose"])
        assert calls[0][0].state.step == STEP_MODE_SELECT


class TestSettingsIntegration:
    def test_bad_settings_exit_one(
        self, isolated: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ):
        monkeypatch.setenv("AGENT_CONTEXT_EXIT_DELAY", "later")
        assert main_mod.run([]) == 1
        assert "exit_delay must be a number" in capsys.readouterr().out

    def test_settings_reach_the_driver(
        self, isolated: Path, monkeypatch: pytest.MonkeyPatch, fake_tui, tmp_path: Path
    ):
        start = tmp_path / "code"
        start.mkdir()
        monkeypatch.setenv("AGENT_CONTEXT_BASE_NAME", "scopes")
        monkeypatch.setenv("AGENT_CONTEXT_START_DIR", str(start))
        monkeypatch.setenv("AGENT_CONTEXT_HIDDEN_PREFIX", "_")
        monkeypatch.setenv("AGENT_CONTEXT_EXIT_DELAY", "0")
        calls, box = fake_tui
        box["result"] = (_done(MODE_AUTO), Exit(0))

        main_mod.run([])

        transition, start_dir, hidden_prefix = calls[0]
        assert Path(transition.state.auto_target).parent.name == "scopes"
        assert transition.state.exit_delay == 0.0
        assert start_dir == start
        assert hidden_prefix == "_"

    def test_config_dir_created_for_logs(self, isolated: Path, fake_tui):
        _, box = fake_tui
        box["result"] = (_done(MODE_AUTO), Exit(0))
        main_mod.run([])
        assert isolated.is_dir()


class TestReport:
    def test_auto_mode_prints_bare_path(self, isolated: Path, fake_tui, capsys):
        _, box = fake_tui
        box["result"] = (_done(MODE_AUTO), Exit(0))

        assert main_mod.run([]) == 0

        out = capsys.readouterr().out
        assert "✅ alpha" in out
        assert "Workspace created successfully!" in out
        assert "Path to use:" in out
        assert "\n/tmp/ws\n" in out
        assert "Next: cd /tmp/ws" in out

    def test_manual_mode_has_no_bare_path_block(self, isolated: Path, fake_tui, capsys):
        _, box = fake_tui
        box["result"] = (_done(MODE_MANUAL), Exit(0))

        assert main_mod.run(["--manual"]) == 0

        out = capsys.readouterr().out
        assert "Next: cd /tmp/ws" in out
        assert "Path to use:" not in out

    def test_no_projects_message_on_stdout(self, isolated: Path, fake_tui, capsys):
        _, box = fake_tui
        state = SessionState(step="select-projects", auto_target="/a", target="/a")
        box["result"] = (state, Exit(0, NO_PROJECTS_MESSAGE))

        assert main_mod.run([]) == 0

        captured = capsys.readouterr()
        assert NO_PROJECTS_MESSAGE in captured.out
        assert "Completed" not in captured.out

    def test_fatal_error_on_stderr(self, isolated: Path, fake_tui, capsys):
        _, box = fake_tui
        state = SessionState(step=STEP_SELECT_TARGET, auto_target="/a", mode=MODE_MANUAL)
        box["result"] = (state, Exit(1, "Failed to ensure target: Permission denied"))

        assert main_mod.run(["--manual"]) == 1

        captured = capsys.readouterr()
        assert "Failed to ensure target" in captured.err
        assert "Failed to ensure target" not in captured.out

    def test_keyboard_interrupt(self, isolated: Path, monkeypatch: pytest.MonkeyPatch):
        def interrupted(*_args, **_kwargs):
            raise KeyboardInterrupt

        monkeypatch.setattr("agent_context.tui.run_tui", interrupted)
        assert main_mod.run([]) == 0
