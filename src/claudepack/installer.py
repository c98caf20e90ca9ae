"""Restore a bundle and register its records with the local Claude database."""

from __future__ import annotations

import shutil
import sys
import tarfile
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import structlog

from .addressing import project_key
from .constants import (
    CONVERSATION_SUFFIX,
    CONVERSATIONS_DIR,
    MANIFEST_FILENAME,
    PLACEHOLDER_FILENAME,
    PROJECTS_DIR,
    STATSIG_DIR,
    TODOS_DIR,
    UNKNOWN,
)
from .errors import ArchiveError, IncompatiblePackageError
from .manifest import Manifest, current_system, read_manifest
from .validation import validate_package, verify_bundle_structure

logger = structlog.get_logger("installer")

# Blocking yes/no question; the CLI wires this to a terminal prompt.
Confirm = Callable[[str], bool]

CONFIRM_QUESTION = "Do you want to continue anyway?"

PLACEHOLDER_TEMPLATE = """# Project imported with claudepack

This project was imported from {source} using claudepack on {date}.

To continue the conversation with this project, run:
```
cd {destination}
claude --continue
```
"""


@dataclass(slots=True)
class InstallResult:
    project_key: str
    target_dir: Path
    conversations_installed: int = 0
    conversations_rewritten: int = 0
    tasks_copied: int = 0
    tasks_skipped: int = 0
    flags_copied: int = 0
    flags_skipped: int = 0
    placeholder_written: bool = False
    local_database_found: bool = False


@dataclass(slots=True)
class UnpackResult:
    destination: Path
    manifest: Manifest
    install: Optional[InstallResult] = None
    warnings: list[str] = field(default_factory=list)


def needs_confirmation(destination: Path, *, force: bool, merge: bool, overwrite: bool) -> bool:
    """A non-empty destination needs a yes unless one of the override flags is set."""
    if force or merge or overwrite:
        return False
    return destination.is_dir() and any(destination.iterdir())


def confirm_destination(
    destination: Path,
    *,
    force: bool,
    merge: bool,
    overwrite: bool,
    confirm: Confirm,
) -> bool:
    if not needs_confirmation(destination, force=force, merge=merge, overwrite=overwrite):
        return True
    return bool(confirm(CONFIRM_QUESTION))


def extract_package(package_path: Path, destination: Path) -> None:
    destination.mkdir(parents=True, exist_ok=True)
    try:
        with tarfile.open(package_path, mode="r:gz") as archive:
            archive.extractall(destination, filter="tar")
    except (OSError, tarfile.TarError) as exc:
        raise ArchiveError(f"Failed to extract {package_path.name}: {exc}") from exc


def check_compatibility(manifest: Manifest, *, force: bool = False, platform: Optional[str] = None) -> str:
    """Return the current system label, raising when the bundle excludes it."""
    system = current_system(platform) or (platform or sys.platform)
    if system not in manifest.compatible_with and not force:
        raise IncompatiblePackageError(system, manifest.compatible_with)
    return system


def rewrite_project_paths(data: bytes, original: str, destination: str) -> bytes:
    """Replace every literal occurrence of *original* with *destination*.

    This is a blind text substitution over the raw transcript: an unrelated
    string that happens to contain the original path is rewritten as well.
    """
    if not original or original == UNKNOWN or original == destination:
        return data
    return data.replace(original.encode("utf-8"), destination.encode("utf-8"))


def _merge_directory(source: Path, target: Path, *, overwrite: bool) -> tuple[int, int]:
    """Copy the files of *source* into *target*; keep existing files unless *overwrite*."""
    copied = skipped = 0
    if not source.is_dir():
        return copied, skipped
    target.mkdir(parents=True, exist_ok=True)
    for entry in sorted(source.iterdir(), key=lambda path: path.name):
        if entry.is_dir():
            continue
        destination = target / entry.name
        if destination.exists() and not overwrite:
            skipped += 1
            continue
        shutil.copy2(entry, destination)
        copied += 1
    return copied, skipped


def install_records(
    bundle_dir: Path,
    manifest: Manifest,
    destination: Path,
    database_root: Path,
    *,
    overwrite: bool = False,
) -> InstallResult:
    """Re-key the bundled records to *destination* and write them into the database."""
    key = project_key(destination)
    target_dir = database_root / PROJECTS_DIR / key
    # Always registered, even without conversations.
    target_dir.mkdir(parents=True, exist_ok=True)
    result = InstallResult(project_key=key, target_dir=target_dir)
    log = logger.bind(destination=str(destination), key=key)

    conversations_dir = bundle_dir / CONVERSATIONS_DIR
    if not conversations_dir.is_dir() or not any(conversations_dir.iterdir()):
        placeholder = PLACEHOLDER_TEMPLATE.format(
            source=manifest.project_path if manifest.project_path != UNKNOWN else "an external project",
            date=datetime.now(timezone.utc).date().isoformat(),
            destination=destination,
        )
        (target_dir / PLACEHOLDER_FILENAME).write_text(placeholder, encoding="utf-8")
        result.placeholder_written = True
        log.debug("placeholder_written")
    else:
        for conversation in sorted(conversations_dir.glob(f"*{CONVERSATION_SUFFIX}")):
            original = conversation.read_bytes()
            rewritten = rewrite_project_paths(original, manifest.project_path, str(destination))
            (target_dir / conversation.name).write_bytes(rewritten)
            result.conversations_installed += 1
            if rewritten != original:
                result.conversations_rewritten += 1

    result.tasks_copied, result.tasks_skipped = _merge_directory(
        bundle_dir / TODOS_DIR, database_root / TODOS_DIR, overwrite=overwrite
    )
    result.flags_copied, result.flags_skipped = _merge_directory(
        bundle_dir / STATSIG_DIR, database_root / STATSIG_DIR, overwrite=overwrite
    )
    result.local_database_found = (destination / ".claude").is_dir()
    log.info(
        "records_installed",
        conversations=result.conversations_installed,
        tasks=result.tasks_copied,
        flags=result.flags_copied,
    )
    return result


def inspect_package(package_path: Path) -> Manifest:
    """Read a bundle's manifest without touching any destination (dry run)."""
    validate_package(package_path)
    with tempfile.TemporaryDirectory(prefix="claudepack-dryrun-") as temp_dir:
        root = Path(temp_dir)
        extract_package(package_path, root)
        reserved = verify_bundle_structure(root)
        return read_manifest(reserved / MANIFEST_FILENAME)


def unpack_package(
    package_path: Path,
    destination: Path,
    *,
    database_root: Optional[Path],
    force: bool = False,
    overwrite: bool = False,
    platform: Optional[str] = None,
) -> UnpackResult:
    """Extract *package_path* into *destination* and install its records.

    Without a database root the project is extracted only; the caller is
    expected to point the user at the bundled install script.
    """
    package_path = validate_package(package_path.resolve())
    destination = destination.resolve()
    extract_package(package_path, destination)
    reserved = verify_bundle_structure(destination)
    manifest = read_manifest(reserved / MANIFEST_FILENAME)
    check_compatibility(manifest, force=force, platform=platform)

    result = UnpackResult(destination=destination, manifest=manifest)
    if database_root is None:
        result.warnings.append("Claude database not found; records were extracted but not installed.")
        return result
    result.install = install_records(reserved, manifest, destination, database_root, overwrite=overwrite)
    return result


__all__ = [
    "CONFIRM_QUESTION",
    "Confirm",
    "InstallResult",
    "UnpackResult",
    "check_compatibility",
    "confirm_destination",
    "extract_package",
    "inspect_package",
    "install_records",
    "needs_confirmation",
    "rewrite_project_paths",
    "unpack_package",
]
