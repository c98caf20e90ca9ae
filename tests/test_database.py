from __future__ import annotations


import pytest

from claudepack.config import clear_settings_cache, get_settings
from claudepack.database import (
    Candidate,
    candidate_locations,
    is_database_root,
    locate_database,
    resolve_database,
)
from claudepack.errors import DatabaseNotFoundError
from tests.helpers import make_database


def test_candidate_locations_priority_order(isolated_env):
    home = isolated_env.home
    cwd = isolated_env.work
    candidates = candidate_locations(home=home, cwd=cwd, platform="darwin", tmpdir=isolated_env.scratch)
    paths = [candidate.path for candidate in candidates]
    assert paths[:4] == [
        home / ".claude",
        home / ".claude-db",
        home / "Library" / "Application Support" / "Claude" / "claude",
        cwd / ".claude",
    ]
    assert paths[-3:] == [isolated_env.scratch / ".claude", cwd, isolated_env.base / "no-fallback"]


def test_candidate_locations_uses_xdg_config_on_linux(isolated_env):
    candidates = candidate_locations(home=isolated_env.home, platform="linux")
    assert candidates[2].path == isolated_env.home / ".config" / "Claude" / "claude"


def test_is_database_root_requires_known_subtree(tmp_path):
    assert not is_database_root(tmp_path / "missing")
    assert not is_database_root(tmp_path)
    (tmp_path / "statsig").mkdir()
    assert is_database_root(tmp_path)


def test_locate_database_finds_home_claude(isolated_env):
    assert locate_database() == isolated_env.database_root


def test_explicit_directory_wins_without_subtrees(isolated_env, tmp_path):
    explicit = tmp_path / "custom-db"
    explicit.mkdir()
    assert locate_database(explicit) == explicit.resolve()


def test_missing_explicit_falls_back_to_probing(isolated_env, tmp_path):
    assert locate_database(tmp_path / "nope") == isolated_env.database_root


def test_environment_override_beats_probing(isolated_env, tmp_path, monkeypatch):
    override = make_database(tmp_path / "env-db")
    monkeypatch.setenv("CLAUDEPACK_CLAUDE_DB", str(override))
    clear_settings_cache()
    assert locate_database(settings=get_settings()) == override.resolve()


def test_earlier_candidate_wins(tmp_path):
    first = make_database(tmp_path / "first")
    second = make_database(tmp_path / "second")
    candidates = [Candidate(tmp_path / "absent", "absent"), Candidate(first, "first"), Candidate(second, "second")]
    assert locate_database(candidates=candidates, settings=get_settings()) == first.resolve()


def test_resolve_database_reports_every_checked_location(isolated_env, tmp_path):
    candidates = [Candidate(tmp_path / "a", "a"), Candidate(tmp_path / "b", "b")]
    with pytest.raises(DatabaseNotFoundError) as excinfo:
        resolve_database(tmp_path / "explicit", candidates=candidates)
    assert excinfo.value.checked == [tmp_path / "explicit", tmp_path / "a", tmp_path / "b"]
