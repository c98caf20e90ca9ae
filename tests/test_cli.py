"""End-to-end tests for the ``pack`` and ``unpack`` commands."""

from __future__ import annotations

import re
from pathlib import Path

from typer.testing import CliRunner

from claudepack.addressing import project_key
from claudepack.cli import app
from tests.helpers import make_database, make_project, write_conversation

runner = CliRunner()

# ANSI escape code pattern for stripping colors from CLI output
_ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from text for reliable assertion matching."""
    return _ANSI_ESCAPE_RE.sub("", text)


def _project_files(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in root.rglob("*")
        if path.is_file()
    }


def _pack(isolated_env, project: Path, *extra: str):
    output = isolated_env.base / "out" / project.name
    result = runner.invoke(
        app,
        ["pack", str(project), "--output", str(output), "--claude-db", str(isolated_env.database_root), *extra],
    )
    return result, output.with_name(f"{project.name}.claudepack.tar.gz")


# ============================================================================
# pack
# ============================================================================


def test_pack_then_unpack_round_trip(isolated_env):
    project = make_project(isolated_env.base / "app")
    write_conversation(isolated_env.database_root, project, "c1", [{"cwd": str(project)}])
    result, archive = _pack(isolated_env, project)
    assert result.exit_code == 0, result.output
    assert archive.exists()
    assert "Package created" in strip_ansi(result.output)

    target_db = make_database(isolated_env.base / "target-db")
    destination = isolated_env.base / "restored"
    result = runner.invoke(
        app,
        ["unpack", str(archive), "--destination", str(destination), "--claude-db", str(target_db)],
    )
    assert result.exit_code == 0, result.output
    assert "claude --continue" in strip_ansi(result.output)

    expected = {
        name: content
        for name, content in _project_files(project).items()
        if not name.startswith(("node_modules/", ".git/")) and not name.endswith(".claudepack.tar.gz")
    }
    restored = _project_files(destination)
    assert {name: restored[name] for name in expected} == expected
    assert (target_db / "projects" / project_key(destination) / "c1.jsonl").is_file()


def test_pack_validate_only_writes_nothing(isolated_env):
    project = make_project(isolated_env.base / "app")
    result, archive = _pack(isolated_env, project, "--validate-only")
    assert result.exit_code == 0, result.output
    assert "Validation completed" in strip_ansi(result.output)
    assert not archive.exists()


def test_pack_strict_fails_on_empty_bundle(isolated_env):
    project = make_project(isolated_env.base / "app")
    result, archive = _pack(isolated_env, project, "--strict")
    assert result.exit_code == 1
    assert not archive.exists()

    result, archive = _pack(isolated_env, project, "--strict", "--ignore-warnings")
    assert result.exit_code == 0, result.output
    assert archive.exists()


def test_pack_missing_project_fails(isolated_env):
    result = runner.invoke(app, ["pack", str(isolated_env.base / "missing")])
    assert result.exit_code == 1
    assert "Validation failed" in strip_ansi(result.output)


def test_pack_reports_checked_locations_when_database_missing(isolated_env):
    project = make_project(isolated_env.base / "app")
    for subtree in ("projects", "todos", "statsig"):
        (isolated_env.database_root / subtree).rmdir()
    result = runner.invoke(app, ["pack", str(project)])
    assert result.exit_code == 1
    output = strip_ansi(result.output)
    assert "Could not find the Claude database" in output
    assert "--claude-db" in output


def test_pack_defaults_to_current_directory(isolated_env, monkeypatch):
    project = make_project(isolated_env.base / "app")
    monkeypatch.chdir(project)
    result = runner.invoke(app, ["pack", "--claude-db", str(isolated_env.database_root)])
    assert result.exit_code == 0, result.output
    assert (project / "app.claudepack.tar.gz").exists()


# ============================================================================
# unpack
# ============================================================================


def test_unpack_declined_prompt_leaves_destination_untouched(isolated_env):
    project = make_project(isolated_env.base / "app")
    _, archive = _pack(isolated_env, project)
    destination = isolated_env.base / "busy"
    destination.mkdir()
    (destination / "keep.txt").write_text("mine", encoding="utf-8")

    result = runner.invoke(
        app,
        ["unpack", str(archive), "-d", str(destination), "--claude-db", str(isolated_env.database_root)],
        input="n\n",
    )

    assert result.exit_code == 0, result.output
    assert "Operation cancelled" in strip_ansi(result.output)
    assert [path.name for path in destination.iterdir()] == ["keep.txt"]


def test_unpack_merge_skips_prompt(isolated_env):
    project = make_project(isolated_env.base / "app")
    _, archive = _pack(isolated_env, project)
    destination = isolated_env.base / "busy"
    destination.mkdir()
    (destination / "keep.txt").write_text("mine", encoding="utf-8")

    result = runner.invoke(
        app,
        ["unpack", str(archive), "-d", str(destination), "--merge", "--claude-db", str(isolated_env.database_root)],
    )

    assert result.exit_code == 0, result.output
    assert (destination / "keep.txt").read_text(encoding="utf-8") == "mine"
    assert (destination / "src" / "main.py").exists()


def test_unpack_dry_run_shows_manifest(isolated_env):
    project = make_project(isolated_env.base / "app")
    _, archive = _pack(isolated_env, project)
    destination = isolated_env.base / "never"

    result = runner.invoke(app, ["unpack", str(archive), "-d", str(destination), "--dry-run"])

    assert result.exit_code == 0, result.output
    output = strip_ansi(result.output)
    assert "Dry run" in output
    assert "claudepack_version" in output
    assert not destination.exists()


def test_unpack_validate_only(isolated_env):
    project = make_project(isolated_env.base / "app")
    _, archive = _pack(isolated_env, project)
    destination = isolated_env.base / "never"

    result = runner.invoke(app, ["unpack", str(archive), "-d", str(destination), "--validate-only"])

    assert result.exit_code == 0, result.output
    assert "Validation completed" in strip_ansi(result.output)
    assert not destination.exists()


def test_unpack_rejects_wrong_extension(isolated_env):
    bogus = isolated_env.base / "bundle.zip"
    bogus.write_bytes(b"PK")
    result = runner.invoke(app, ["unpack", str(bogus)])
    assert result.exit_code == 1
    assert "extension" in strip_ansi(result.output)


def test_unpack_without_database_extracts_only(isolated_env):
    project = make_project(isolated_env.base / "app")
    _, archive = _pack(isolated_env, project)
    isolated_env.database_root.rename(isolated_env.base / "parked-db")
    destination = isolated_env.base / "restored"

    result = runner.invoke(app, ["unpack", str(archive), "-d", str(destination)])

    assert result.exit_code == 0, result.output
    output = strip_ansi(result.output)
    assert "manually" in output
    assert (destination / ".claudepack" / "install.sh").is_file()


def test_pack_debug_lists_records(isolated_env):
    project = make_project(isolated_env.base / "app")
    write_conversation(isolated_env.database_root, project, "c1", [{"version": "0.2.5"}])
    result, _ = _pack(isolated_env, project, "--debug")
    assert result.exit_code == 0, result.output
    output = strip_ansi(result.output)
    assert "c1.jsonl" in output
    assert "Package manifest" in output
