"""Bundle a project with its Claude conversation history and restore it elsewhere."""

from __future__ import annotations

from .constants import CLAUDEPACK_VERSION

__version__ = CLAUDEPACK_VERSION

__all__ = ["__version__"]
