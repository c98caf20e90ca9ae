"""Bundle manifest: version detection, membership checksum and OS compatibility."""

from __future__ import annotations

import hashlib
import json
import os
import sys
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence

from .constants import (
    CLAUDEPACK_VERSION,
    CLI_VERSION_PREFIX,
    STRUCTURE_VERSION,
    UNKNOWN,
    VERSION_SCAN_LINES,
)
from .errors import InvalidPackageError
from .records import ConversationRecord, FeatureFlagRecord, TaskRecord

_SYSTEMS: dict[str, str] = {
    "darwin": "macos",
    "linux": "linux",
    "win32": "windows",
}

# Declared when the packing host cannot be identified.
PERMISSIVE_SYSTEMS: tuple[str, ...] = ("macos", "linux")


@dataclass(slots=True, frozen=True)
class Manifest:
    claudepack_version: str
    created_at: str
    claude_version: str
    cli_version: str
    project_path: str
    project_name: str
    files_count: int
    conversations_count: int
    todo_files_count: int
    statsig_files_count: int
    checksum: str
    compatible_with: list[str] = field(default_factory=list)
    structure_version: str = STRUCTURE_VERSION

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Manifest:
        def _text(key: str, default: str = UNKNOWN) -> str:
            value = data.get(key)
            return str(value) if value not in (None, "") else default

        def _count(key: str) -> int:
            try:
                return int(data.get(key) or 0)
            except (TypeError, ValueError):
                return 0

        compatible = data.get("compatible_with") or []
        if not isinstance(compatible, list):
            compatible = [compatible]
        return cls(
            claudepack_version=_text("claudepack_version"),
            created_at=_text("created_at"),
            claude_version=_text("claude_version"),
            cli_version=_text("cli_version"),
            project_path=_text("project_path"),
            project_name=_text("project_name"),
            files_count=_count("files_count"),
            conversations_count=_count("conversations_count"),
            todo_files_count=_count("todo_files_count"),
            statsig_files_count=_count("statsig_files_count"),
            checksum=_text("checksum", default=""),
            compatible_with=[str(item) for item in compatible],
            structure_version=_text("structure_version", default=STRUCTURE_VERSION),
        )


def _scan_records(conversations: Sequence[ConversationRecord]) -> Iterator[dict[str, Any]]:
    """Yield the JSON objects among the first non-blank lines of the first transcript."""
    if not conversations:
        return
    try:
        content = conversations[0].path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return
    lines = [line for line in content.split("\n") if line.strip()]
    for line in lines[:VERSION_SCAN_LINES]:
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(record, dict):
            yield record


def detect_claude_version(conversations: Sequence[ConversationRecord]) -> Optional[str]:
    """Return ``message.model`` or ``version`` from the first record carrying either."""
    for record in _scan_records(conversations):
        message = record.get("message")
        if isinstance(message, dict) and message.get("model"):
            return str(message["model"])
        if record.get("version"):
            return str(record["version"])
    return None


def detect_cli_version(conversations: Sequence[ConversationRecord]) -> Optional[str]:
    """Return the first top-level ``version`` that looks like a CLI release (``0.x``)."""
    for record in _scan_records(conversations):
        version = record.get("version")
        if isinstance(version, str) and version.startswith(CLI_VERSION_PREFIX):
            return version
    return None


def compute_checksum(
    project_path: str | Path,
    conversations: Sequence[ConversationRecord],
    tasks: Sequence[TaskRecord],
    flags: Sequence[FeatureFlagRecord],
) -> str:
    """Digest bundle membership in enumeration order; file contents are not hashed."""
    digest = hashlib.sha256()
    digest.update(Path(project_path).name.encode("utf-8"))
    for conversation in conversations:
        digest.update(conversation.uuid.encode("utf-8"))
    for task in tasks:
        digest.update(task.uuid.encode("utf-8"))
    for flag in flags:
        digest.update(flag.name.encode("utf-8"))
    return digest.hexdigest()


def count_project_files(project_path: str | Path) -> int:
    """Count plain files below *project_path*; unreadable subtrees count as zero."""
    count = 0
    for root, _, files in os.walk(project_path, onerror=lambda _exc: None):
        for name in files:
            if os.path.isfile(os.path.join(root, name)):
                count += 1
    return count


def current_system(platform: Optional[str] = None) -> Optional[str]:
    return _SYSTEMS.get(platform or sys.platform)


def detect_compatible_systems(platform: Optional[str] = None) -> list[str]:
    system = current_system(platform)
    if system is None:
        return list(PERMISSIVE_SYSTEMS)
    return [system]


def build_manifest(
    project_path: str | Path,
    project_name: str,
    conversations: Sequence[ConversationRecord],
    tasks: Sequence[TaskRecord],
    flags: Sequence[FeatureFlagRecord],
    *,
    created_at: Optional[datetime] = None,
    platform: Optional[str] = None,
) -> Manifest:
    """Snapshot the metadata of a bundle about to be archived."""
    created = created_at or datetime.now(timezone.utc)
    return Manifest(
        claudepack_version=CLAUDEPACK_VERSION,
        created_at=created.isoformat(),
        claude_version=detect_claude_version(conversations) or UNKNOWN,
        cli_version=detect_cli_version(conversations) or UNKNOWN,
        project_path=str(project_path),
        project_name=project_name,
        files_count=count_project_files(project_path),
        conversations_count=len(conversations),
        todo_files_count=len(tasks),
        statsig_files_count=len(flags),
        checksum="sha256:" + compute_checksum(project_path, conversations, tasks, flags),
        compatible_with=detect_compatible_systems(platform),
        structure_version=STRUCTURE_VERSION,
    )


def write_manifest(manifest: Manifest, path: Path) -> None:
    """Serialize JSON with stable formatting."""
    path.write_text(json.dumps(manifest.to_dict(), indent=2) + "\n", encoding="utf-8")


def read_manifest(path: Path) -> Manifest:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise InvalidPackageError(f"Failed to read {path.name}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise InvalidPackageError(f"{path.name} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidPackageError(f"{path.name} must contain a JSON object.")
    return Manifest.from_dict(data)


__all__ = [
    "Manifest",
    "PERMISSIVE_SYSTEMS",
    "build_manifest",
    "compute_checksum",
    "count_project_files",
    "current_system",
    "detect_claude_version",
    "detect_cli_version",
    "detect_compatible_systems",
    "read_manifest",
    "write_manifest",
]
