"""Exception hierarchy raised by claudepack operations."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class ClaudePackError(RuntimeError):
    """Base class for every failure the CLI reports and exits on."""


class ProjectValidationError(ClaudePackError):
    """The project directory or one of its records cannot be packed."""


class InvalidPackageError(ClaudePackError):
    """The archive or its extracted bundle is malformed."""


class ArchiveError(ClaudePackError):
    """The tar/gzip codec failed while writing or reading an archive."""


class DatabaseNotFoundError(ClaudePackError):
    """No assistant database root was found at any probed location."""

    def __init__(self, checked: Sequence[Path]) -> None:
        self.checked: list[Path] = list(checked)
        super().__init__(f"Could not find the Claude database (checked {len(self.checked)} locations).")


class IncompatiblePackageError(ClaudePackError):
    """The bundle does not declare the current operating system as compatible."""

    def __init__(self, current: str, compatible: Sequence[str]) -> None:
        self.current = current
        self.compatible: list[str] = list(compatible)
        super().__init__(
            f"This package is not compatible with your system ({current}). "
            f"Compatible systems: {', '.join(self.compatible) or 'none'}."
        )
