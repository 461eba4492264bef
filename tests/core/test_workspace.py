from __future__ import annotations

import pytest

from quizlyst.core import workspace


def test_ensure_workspace_creates_directories(tmp_path, monkeypatch):
    root = tmp_path / "data"
    monkeypatch.setenv(workspace.WORKSPACE_ENV, str(root))

    layout = workspace.ensure_workspace()

    assert layout.home == root
    assert layout.path_for("config") == root / "config"
    assert layout.path_for("logs").is_dir()
    assert layout.path_for("config").is_dir()


def test_ensure_workspace_respects_custom_path(tmp_path):
    custom = tmp_path / "custom-root"

    layout = workspace.ensure_workspace(env={}, path=custom)

    assert layout.home == custom
    assert custom.is_dir()


def test_ensure_workspace_without_create(tmp_path):
    root = tmp_path / "deferred"

    layout = workspace.ensure_workspace(
        env={workspace.WORKSPACE_ENV: str(root)}, create=False
    )

    assert layout.home == root
    assert not root.exists()


def test_ensure_workspace_is_idempotent(tmp_path):
    root = tmp_path / "again"

    first = workspace.ensure_workspace(path=root)
    second = workspace.ensure_workspace(path=root)

    assert first.home == second.home


def test_workspace_pointing_at_file_is_rejected(tmp_path):
    target = tmp_path / "not-a-dir"
    target.write_text("x", encoding="utf-8")

    with pytest.raises(workspace.WorkspaceError):
        workspace.ensure_workspace(path=target)


def test_unknown_directory_key(tmp_path):
    layout = workspace.ensure_workspace(path=tmp_path / "ws")

    with pytest.raises(KeyError):
        layout.path_for("cache")
