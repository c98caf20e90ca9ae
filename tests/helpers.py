"""Builders for fake Claude databases and projects used across the suite."""

import json
from pathlib import Path

from claudepack.addressing import project_key


def make_database(root: Path) -> Path:
    """Create an empty Claude database layout under *root*."""
    for name in ("projects", "todos", "statsig"):
        (root / name).mkdir(parents=True, exist_ok=True)
    return root


def write_conversation(database_root: Path, project_path: Path, uuid: str, records: list[dict]) -> Path:
    project_dir = database_root / "projects" / project_key(project_path)
    project_dir.mkdir(parents=True, exist_ok=True)
    path = project_dir / f"{uuid}.jsonl"
    path.write_text("".join(json.dumps(record) + "\n" for record in records), encoding="utf-8")
    return path


def write_task(database_root: Path, uuid: str, payload: object) -> Path:
    todos_dir = database_root / "todos"
    todos_dir.mkdir(parents=True, exist_ok=True)
    path = todos_dir / f"{uuid}.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def make_project(root: Path) -> Path:
    """A small project tree with a few files the default excludes must drop."""
    (root / "src").mkdir(parents=True)
    (root / "src" / "main.py").write_text("print('hello')\n", encoding="utf-8")
    (root / "README.md").write_text("# demo\n", encoding="utf-8")
    (root / ".env").write_text("TOKEN=dev\n", encoding="utf-8")
    (root / "node_modules" / "left-pad").mkdir(parents=True)
    (root / "node_modules" / "left-pad" / "index.js").write_text("module.exports = 1;\n", encoding="utf-8")
    (root / ".git").mkdir()
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")
    (root / "old.claudepack.tar.gz").write_bytes(b"stale")
    return root
