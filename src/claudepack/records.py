"""Find the conversation, task and feature-flag records belonging to a project."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Collection, Iterable, Iterator

import structlog

from .addressing import project_key
from .constants import (
    CONVERSATION_SUFFIX,
    PROJECTS_DIR,
    STATSIG_DIR,
    TASK_SUFFIX,
    TODOS_DIR,
)

logger = structlog.get_logger("records")


@dataclass(slots=True, frozen=True)
class ConversationRecord:
    uuid: str
    path: Path


@dataclass(slots=True, frozen=True)
class TaskRecord:
    uuid: str
    path: Path
    # Found by text search rather than by a conversation UUID.
    orphaned: bool = False


@dataclass(slots=True, frozen=True)
class FeatureFlagRecord:
    name: str
    path: Path


@dataclass(slots=True, frozen=True)
class ProjectRecords:
    """Everything located for one project under one database root."""

    key: str
    project_path: Path
    conversations: list[ConversationRecord] = field(default_factory=list)
    tasks: list[TaskRecord] = field(default_factory=list)
    flags: list[FeatureFlagRecord] = field(default_factory=list)

    @property
    def conversation_uuids(self) -> list[str]:
        return [record.uuid for record in self.conversations]

    @property
    def orphaned_tasks(self) -> list[TaskRecord]:
        return [record for record in self.tasks if record.orphaned]

    def counts(self) -> dict[str, int]:
        return {
            "conversations": len(self.conversations),
            "todos": len(self.tasks),
            "statsig": len(self.flags),
        }


def _sorted_entries(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(directory.iterdir(), key=lambda entry: entry.name)


def find_conversations(database_root: Path, key: str) -> list[ConversationRecord]:
    """List ``*.jsonl`` transcripts directly under ``projects/<key>/``."""
    project_dir = database_root / PROJECTS_DIR / key
    return [
        ConversationRecord(uuid=entry.name[: -len(CONVERSATION_SUFFIX)], path=entry)
        for entry in _sorted_entries(project_dir)
        if entry.name.endswith(CONVERSATION_SUFFIX) and not entry.is_dir()
    ]


def find_tasks(database_root: Path, conversation_uuids: Iterable[str]) -> list[TaskRecord]:
    """Return ``todos/<uuid>.json`` for every conversation UUID that has one."""
    todos_dir = database_root / TODOS_DIR
    if not todos_dir.is_dir():
        return []
    tasks: list[TaskRecord] = []
    for uuid in conversation_uuids:
        candidate = todos_dir / f"{uuid}{TASK_SUFFIX}"
        if candidate.is_file():
            tasks.append(TaskRecord(uuid=uuid, path=candidate))
    return tasks


def iter_orphan_candidates(database_root: Path, known_uuids: Collection[str]) -> Iterator[TaskRecord]:
    """Lazily yield task files whose UUID is not already accounted for."""
    for entry in _sorted_entries(database_root / TODOS_DIR):
        if not entry.name.endswith(TASK_SUFFIX) or entry.is_dir():
            continue
        uuid = entry.name[: -len(TASK_SUFFIX)]
        if uuid in known_uuids:
            continue
        yield TaskRecord(uuid=uuid, path=entry, orphaned=True)


def _references_path(record: TaskRecord, needle: str) -> bool:
    try:
        content = record.path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.debug("orphan_scan_skipped", path=str(record.path), error=str(exc))
        return False
    return needle in content


def find_orphaned_tasks(
    database_root: Path,
    known_uuids: Collection[str],
    project_path: str | Path,
) -> list[TaskRecord]:
    """Best-effort scan for unlinked task files that mention *project_path*.

    The match is an exact, case-sensitive substring test on the absolute
    path. Files that cannot be read are skipped.
    """
    needle = str(project_path)
    return [
        record
        for record in iter_orphan_candidates(database_root, known_uuids)
        if _references_path(record, needle)
    ]


def find_flag_cache(database_root: Path) -> list[FeatureFlagRecord]:
    """List every non-directory entry directly under ``statsig/``."""
    return [
        FeatureFlagRecord(name=entry.name, path=entry)
        for entry in _sorted_entries(database_root / STATSIG_DIR)
        if not entry.is_dir()
    ]


def locate_project_records(database_root: Path, project_path: Path) -> ProjectRecords:
    """Run every locator for *project_path* using a single key."""
    key = project_key(project_path)
    conversations = find_conversations(database_root, key)
    conversation_uuids = [record.uuid for record in conversations]
    tasks = find_tasks(database_root, conversation_uuids)
    known = {*conversation_uuids, *(record.uuid for record in tasks)}
    orphaned = find_orphaned_tasks(database_root, known, project_path)
    flags = find_flag_cache(database_root)
    logger.debug(
        "records_located",
        key=key,
        conversations=len(conversations),
        tasks=len(tasks),
        orphaned_tasks=len(orphaned),
        flags=len(flags),
    )
    return ProjectRecords(
        key=key,
        project_path=project_path,
        conversations=conversations,
        tasks=[*tasks, *orphaned],
        flags=flags,
    )


__all__ = [
    "ConversationRecord",
    "FeatureFlagRecord",
    "ProjectRecords",
    "TaskRecord",
    "find_conversations",
    "find_flag_cache",
    "find_orphaned_tasks",
    "find_tasks",
    "iter_orphan_candidates",
    "locate_project_records",
]
