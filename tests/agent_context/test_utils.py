"""Tests for agent_context.utils: timestamps, auto target, existence, naming."""

import os
import re
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from agent_context.utils import (
    FilesystemError,
    agent_context_dir,
    compute_auto_target,
    ensure_directory,
    expand_tilde,
    format_timestamp,
    path_exists,
    unique_name,
)

_TIMESTAMP_RE = re.compile(r"^\d{8}-\d{4}$")


class TestFormatTimestamp:
    def test_format(self):
        assert _TIMESTAMP_RE.match(format_timestamp())

    def test_parses_back_to_same_minute(self):
        before = datetime.now().replace(second=0, microsecond=0)
        stamp = format_timestamp()
        parsed = datetime.strptime(stamp, "%Y%m%d-%H%M")
        after = datetime.now()
        assert before <= parsed <= after
        assert after - parsed < timedelta(minutes=2)

    def test_zero_padding(self):
        assert format_timestamp(datetime(2024, 1, 2, 3, 4)) == "20240102-0304"


class TestComputeAutoTarget:
    def test_default_base_name(self):
        target = compute_auto_target()
        assert target.base_directory == Path.home() / "agent-context"
        assert target.session_path.parent == target.base_directory
        assert re.match(r"^session-\d{8}-\d{4}$", target.session_path.name)

    def test_custom_base_name(self):
        target = compute_auto_target("my-scope")
        assert target.base_directory == Path.home() / "my-scope"
        assert target.session_path.name.startswith("session-")


class TestAgentContextDir:
    def test_env_var(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("AGENT_CONTEXT_DIR", "/custom/config")
        assert agent_context_dir() == Path("/custom/config")

    def test_default_without_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("AGENT_CONTEXT_DIR", raising=False)
        assert agent_context_dir() == Path.home() / ".agent-context"


class TestExpandTilde:
    def test_expands_home(self):
        assert expand_tilde("~/code") == os.path.join(str(Path.home()), "code")

    def test_leaves_absolute_paths(self):
        assert expand_tilde("/srv/code") == "/srv/code"


class TestEnsureDirectoryAndPathExists:
    def test_creates_nested_directories(self, tmp_path: Path):
        nested = tmp_path / "a" / "b" / "c"
        assert not path_exists(nested)
        ensure_directory(nested)
        assert path_exists(nested)
        assert nested.is_dir()

    def test_idempotent(self, tmp_path: Path):
        target = tmp_path / "ws"
        ensure_directory(target)
        ensure_directory(target)
        assert target.is_dir()

    def test_existing_file_raises(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        with pytest.raises(FilesystemError, match="not a directory"):
            ensure_directory(blocker)

    def test_file_in_ancestry_raises(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        with pytest.raises(FilesystemError):
            ensure_directory(blocker / "child")

    def test_error_is_oserror(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        with pytest.raises(OSError):
            ensure_directory(blocker)

    def test_dangling_symlink_exists(self, tmp_path: Path):
        link = tmp_path / "dangling"
        link.symlink_to(tmp_path / "missing")
        assert path_exists(link)

    def test_path_under_file_is_missing(self, tmp_path: Path):
        f = tmp_path / "file"
        f.write_text("x")
        assert not path_exists(f / "child")

    def test_permission_error_raises(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        # chmod cannot deny lookups to root, so the failure is injected
        def denied(path, *args, **kwargs):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr(os, "lstat", denied)
        with pytest.raises(FilesystemError, match="Permission denied") as excinfo:
            path_exists(tmp_path / "locked")
        assert excinfo.value.path == str(tmp_path / "locked")
        assert isinstance(excinfo.value.__cause__, PermissionError)


class TestUniqueName:
    def test_free_name_unchanged(self, tmp_path: Path):
        assert unique_name(tmp_path, "demo") == "demo"

    def test_appends_numeric_suffix(self, tmp_path: Path):
        (tmp_path / "demo").mkdir()
        first = unique_name(tmp_path, "demo")
        assert first == "demo-1"
        (tmp_path / first).mkdir()
        assert unique_name(tmp_path, "demo") == "demo-2"

    def test_reuses_freed_slot(self, tmp_path: Path):
        (tmp_path / "demo").mkdir()
        (tmp_path / "demo-1").mkdir()
        (tmp_path / "demo-2").mkdir()
        (tmp_path / "demo-1").rmdir()
        assert unique_name(tmp_path, "demo") == "demo-1"

    def test_files_and_links_count_as_taken(self, tmp_path: Path):
        (tmp_path / "demo").write_text("x")
        (tmp_path / "demo-1").symlink_to(tmp_path / "nowhere")
        assert unique_name(tmp_path, "demo") == "demo-2"
