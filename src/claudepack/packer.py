"""Stage a project plus its database records and archive them as a bundle."""

from __future__ import annotations

import os
import shutil
import tarfile
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

import structlog
from pathspec import GitIgnoreSpec, PathSpec

from .config import Settings, get_settings
from .constants import (
    CONVERSATIONS_DIR,
    DEFAULT_EXCLUDES,
    ENTRY_SCRIPT_NAME,
    INSTALL_SCRIPT_NAME,
    MANIFEST_FILENAME,
    PACKAGE_SUFFIX,
    RESERVED_DIR_NAME,
    STATSIG_DIR,
    TODOS_DIR,
)
from .errors import ArchiveError
from .manifest import Manifest, build_manifest, write_manifest
from .records import ProjectRecords, locate_project_records
from .scripts import create_entry_script, create_install_script

logger = structlog.get_logger("packer")

EXECUTABLE_MODE = 0o755


@dataclass(slots=True, frozen=True)
class PackResult:
    output_path: Path
    manifest: Manifest
    records: ProjectRecords
    size_bytes: int


def build_exclude_spec(patterns: Iterable[str]) -> PathSpec:
    """Compile gitignore-style patterns matched against project-relative paths."""
    return GitIgnoreSpec.from_lines([pattern for pattern in patterns if pattern.strip()])


def is_excluded(spec: PathSpec, relative: str, *, is_dir: bool) -> bool:
    if spec.match_file(relative):
        return True
    return is_dir and spec.match_file(f"{relative}/")


def _ignore_excluded(source: Path, spec: PathSpec) -> Callable[[str, list[str]], set[str]]:
    def _ignore(directory: str, names: list[str]) -> set[str]:
        relative_dir = Path(directory).relative_to(source)
        ignored: set[str] = set()
        for name in names:
            relative = (relative_dir / name).as_posix()
            if is_excluded(spec, relative, is_dir=os.path.isdir(os.path.join(directory, name))):
                logger.debug("excluded", path=relative)
                ignored.add(name)
        return ignored

    return _ignore


def copy_project_tree(source: Path, destination: Path, spec: PathSpec) -> None:
    """Copy *source* into *destination*, pruning excluded paths before descent."""
    shutil.copytree(
        source,
        destination,
        symlinks=True,
        ignore=_ignore_excluded(source, spec),
        dirs_exist_ok=True,
    )


def stage_records(records: ProjectRecords, reserved_dir: Path) -> None:
    """Copy located records into the reserved subtree, one directory per category."""
    conversations_dir = reserved_dir / CONVERSATIONS_DIR
    todos_dir = reserved_dir / TODOS_DIR
    statsig_dir = reserved_dir / STATSIG_DIR
    for directory in (conversations_dir, todos_dir, statsig_dir):
        directory.mkdir(parents=True, exist_ok=True)
    for conversation in records.conversations:
        shutil.copy2(conversation.path, conversations_dir / f"{conversation.uuid}.jsonl")
    for task in records.tasks:
        shutil.copy2(task.path, todos_dir / f"{task.uuid}.json")
    for flag in records.flags:
        shutil.copy2(flag.path, statsig_dir / flag.name)


def _write_executable(path: Path, content: str) -> None:
    path.write_text(content, encoding="utf-8")
    path.chmod(EXECUTABLE_MODE)


def resolve_output_path(project_name: str, output: Optional[str | Path] = None, *, cwd: Optional[Path] = None) -> Path:
    """Default to ``<project>.claudepack.tar.gz`` and always carry the suffix."""
    name = str(output) if output else f"{project_name}{PACKAGE_SUFFIX}"
    if not name.endswith(PACKAGE_SUFFIX):
        name += PACKAGE_SUFFIX
    path = Path(name).expanduser()
    if not path.is_absolute():
        path = (cwd or Path.cwd()) / path
    return path.resolve()


def write_archive(staging_dir: Path, output_path: Path, *, compresslevel: int = 9) -> Path:
    """Compress the staging tree into *output_path*; partial output is removed on failure."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with tarfile.open(output_path, mode="w:gz", compresslevel=compresslevel) as archive:
            for entry in sorted(staging_dir.iterdir(), key=lambda path: path.name):
                archive.add(entry, arcname=entry.name)
    except (OSError, tarfile.TarError) as exc:
        output_path.unlink(missing_ok=True)
        raise ArchiveError(f"Failed to create archive {output_path}: {exc}") from exc
    return output_path


def pack_project(
    project_path: Path,
    *,
    database_root: Path,
    output: Optional[str | Path] = None,
    exclude: Sequence[str] = (),
    records: Optional[ProjectRecords] = None,
    settings: Optional[Settings] = None,
) -> PackResult:
    """Bundle *project_path* and its records into a ``.claudepack.tar.gz``.

    The staging directory never outlives this call, whether archiving
    succeeds or not.
    """
    settings = settings or get_settings()
    project_path = project_path.resolve()
    project_name = project_path.name
    if records is None:
        records = locate_project_records(database_root, project_path)

    output_path = resolve_output_path(project_name, output)
    spec = build_exclude_spec([*DEFAULT_EXCLUDES, *settings.pack.extra_excludes, *exclude])

    staging_parent = settings.pack.staging_dir
    if staging_parent:
        Path(staging_parent).mkdir(parents=True, exist_ok=True)
    staging_dir = Path(tempfile.mkdtemp(prefix="claudepack-", dir=staging_parent))
    log = logger.bind(project=str(project_path), staging=str(staging_dir))
    try:
        log.debug("staging_project_tree")
        copy_project_tree(project_path, staging_dir, spec)

        reserved_dir = staging_dir / RESERVED_DIR_NAME
        reserved_dir.mkdir(parents=True, exist_ok=True)
        stage_records(records, reserved_dir)

        manifest = build_manifest(
            project_path,
            project_name,
            records.conversations,
            records.tasks,
            records.flags,
        )
        write_manifest(manifest, reserved_dir / MANIFEST_FILENAME)
        _write_executable(reserved_dir / INSTALL_SCRIPT_NAME, create_install_script(project_name, str(project_path)))
        _write_executable(staging_dir / ENTRY_SCRIPT_NAME, create_entry_script())

        log.debug("writing_archive", output=str(output_path))
        write_archive(staging_dir, output_path, compresslevel=settings.pack.compression_level)
    finally:
        shutil.rmtree(staging_dir, ignore_errors=True)

    size_bytes = output_path.stat().st_size
    log.info("bundle_created", output=str(output_path), size_bytes=size_bytes, **records.counts())
    return PackResult(output_path=output_path, manifest=manifest, records=records, size_bytes=size_bytes)


__all__ = [
    "EXECUTABLE_MODE",
    "PackResult",
    "build_exclude_spec",
    "copy_project_tree",
    "is_excluded",
    "pack_project",
    "resolve_output_path",
    "stage_records",
    "write_archive",
]
