"""Pre-flight checks run before packing and before unpacking."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Sequence

from .constants import (
    CONVERSATION_SUFFIX,
    INSTALL_SCRIPT_NAME,
    MANIFEST_FILENAME,
    PACKAGE_SUFFIX,
    RESERVED_DIR_NAME,
    TASK_SUFFIX,
)
from .errors import InvalidPackageError, ProjectValidationError
from .manifest import detect_claude_version
from .records import ConversationRecord, TaskRecord

EMPTY_BUNDLE_WARNING = "No conversations associated with this project were found."


def validate_project_path(project_path: Path) -> Path:
    if not project_path.exists():
        raise ProjectValidationError(f"The directory {project_path} does not exist.")
    if not project_path.is_dir():
        raise ProjectValidationError(f"The path {project_path} is not a directory.")
    if not os.access(project_path, os.R_OK):
        raise ProjectValidationError(f"Insufficient permissions to read the project directory {project_path}.")
    return project_path


def _check_readable(path: Path, kind: str) -> None:
    if not os.access(path, os.R_OK):
        raise ProjectValidationError(f"Cannot read {kind} file {path.name}.")


def validate_project(
    project_path: Path,
    conversations: Sequence[ConversationRecord],
    tasks: Sequence[TaskRecord],
    *,
    strict: bool = False,
) -> list[str]:
    """Raise on unusable records and return the warnings that remain.

    In strict mode an assistant version must be detectable from the
    transcripts whenever there are any.
    """
    validate_project_path(project_path)
    warnings: list[str] = []
    if not conversations:
        warnings.append(EMPTY_BUNDLE_WARNING)

    for conversation in conversations:
        _check_readable(conversation.path, "conversation")
        if not conversation.path.name.endswith(CONVERSATION_SUFFIX):
            raise ProjectValidationError(f"The file {conversation.path.name} is not in JSONL format.")

    for task in tasks:
        _check_readable(task.path, "task")
        if not task.path.name.endswith(TASK_SUFFIX):
            raise ProjectValidationError(f"The file {task.path.name} is not in JSON format.")

    if strict and conversations and detect_claude_version(conversations) is None:
        raise ProjectValidationError("Could not detect the Claude version from the conversation files.")

    return warnings


def validate_package(package_path: Path) -> Path:
    """Check name, presence and readability of an archive before extraction."""
    if not package_path.exists():
        raise InvalidPackageError(f"The file {package_path} does not exist.")
    if not package_path.name.endswith(PACKAGE_SUFFIX):
        raise InvalidPackageError(f"The file {package_path} does not have the {PACKAGE_SUFFIX} extension.")
    if not package_path.is_file() or not os.access(package_path, os.R_OK):
        raise InvalidPackageError(f"Cannot read the file {package_path}.")
    return package_path


def verify_bundle_structure(bundle_root: Path) -> Path:
    """Return the reserved directory after checking each required piece in turn."""
    reserved = bundle_root / RESERVED_DIR_NAME
    if not reserved.is_dir():
        raise InvalidPackageError(f"Invalid package: no {RESERVED_DIR_NAME} directory found.")
    if not (reserved / MANIFEST_FILENAME).is_file():
        raise InvalidPackageError(
            f"Invalid package: missing manifest ({RESERVED_DIR_NAME}/{MANIFEST_FILENAME})."
        )
    if not (reserved / INSTALL_SCRIPT_NAME).is_file():
        raise InvalidPackageError(
            f"Invalid package: missing install script ({RESERVED_DIR_NAME}/{INSTALL_SCRIPT_NAME})."
        )
    return reserved


__all__ = [
    "EMPTY_BUNDLE_WARNING",
    "validate_package",
    "validate_project",
    "validate_project_path",
    "verify_bundle_structure",
]
