"""
Tests for temp workspace lifecycle
"""
import os
import time

import pytest

from vidreach.utils.temp_files import create_workspace, remove_workspace, sweep_stale_workspaces


def _age(path, seconds):
    past = time.time() - seconds
    os.utime(path, (past, past))


@pytest.mark.unit
def test_workspaces_are_unique_per_attempt(tmp_path):
    first = create_workspace(tmp_path, "req1")
    second = create_workspace(tmp_path, "req1")
    assert first != second
    assert first.name.startswith("compose-req1-")


@pytest.mark.unit
def test_remove_workspace(tmp_path):
    workspace = create_workspace(tmp_path, "req1")
    (workspace / "base-video.mp4").write_bytes(b"x")
    assert remove_workspace(workspace) is True
    assert not workspace.exists()
    # Already gone is fine
    assert remove_workspace(workspace) is True


@pytest.mark.unit
def test_sweep_removes_only_stale_workspaces(tmp_path):
    stale = create_workspace(tmp_path, "old")
    fresh = create_workspace(tmp_path, "new")
    unrelated = tmp_path / "keep-me"
    unrelated.mkdir()
    _age(stale, 7200)
    _age(unrelated, 7200)

    removed = sweep_stale_workspaces(tmp_path, max_age_seconds=3600)

    assert removed == [stale]
    assert not stale.exists()
    assert fresh.exists()
    assert unrelated.exists()


@pytest.mark.unit
def test_sweep_dry_run_keeps_files(tmp_path):
    stale = create_workspace(tmp_path, "old")
    _age(stale, 7200)

    assert sweep_stale_workspaces(tmp_path, 3600, dry_run=True) == [stale]
    assert stale.exists()


@pytest.mark.unit
def test_sweep_missing_root(tmp_path):
    assert sweep_stale_workspaces(tmp_path / "nope") == []
