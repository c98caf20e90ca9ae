"""Locate the Claude database root on the current host.

Resolution order: an explicit ``--claude-db`` path, then the
``CLAUDEPACK_CLAUDE_DB`` override, then a fixed list of conventional
locations. Nothing is cached; the CLI resolves once per invocation and hands
the resulting root to every operation.
"""

from __future__ import annotations

import os
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import structlog

from .config import Settings, get_settings
from .constants import DATABASE_SUBTREES
from .errors import DatabaseNotFoundError

logger = structlog.get_logger("database")

# Repository root when running from a source checkout (src/claudepack/ -> repo).
_DEVELOPMENT_ROOT = Path(__file__).resolve().parents[2]


@dataclass(slots=True, frozen=True)
class Candidate:
    path: Path
    label: str


def _application_support_dir(home: Path, platform: str) -> Path:
    if platform == "darwin":
        return home / "Library" / "Application Support" / "Claude" / "claude"
    if platform == "win32":
        appdata = os.environ.get("APPDATA")
        base = Path(appdata) if appdata else home / "AppData" / "Roaming"
        return base / "Claude" / "claude"
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else home / ".config"
    return base / "Claude" / "claude"


def candidate_locations(
    settings: Optional[Settings] = None,
    *,
    home: Optional[Path] = None,
    cwd: Optional[Path] = None,
    platform: Optional[str] = None,
    tmpdir: Optional[Path] = None,
) -> list[Candidate]:
    """Return the probe list in priority order."""
    settings = settings or get_settings()
    home = home if home is not None else Path.home()
    cwd = cwd if cwd is not None else Path.cwd()
    platform = platform or sys.platform
    tmpdir = tmpdir if tmpdir is not None else Path(tempfile.gettempdir())
    return [
        Candidate(home / ".claude", "standard location"),
        Candidate(home / ".claude-db", "legacy location"),
        Candidate(_application_support_dir(home, platform), "application support"),
        Candidate(cwd / ".claude", "current directory"),
        Candidate(_DEVELOPMENT_ROOT / ".claude", "development checkout"),
        Candidate(tmpdir / ".claude", "temporary directory"),
        Candidate(cwd, "working directory"),
        Candidate(Path(settings.database.fallback_path), "fallback"),
    ]


def is_database_root(path: Path) -> bool:
    """A database root is a directory holding at least one known subtree."""
    if not path.is_dir():
        return False
    return any((path / name).exists() for name in DATABASE_SUBTREES)


def _explicit_roots(explicit: Optional[str | Path], settings: Settings) -> list[Path]:
    roots: list[Path] = []
    if explicit:
        roots.append(Path(explicit).expanduser())
    if settings.database.override:
        roots.append(Path(settings.database.override).expanduser())
    return roots


def locate_database(
    explicit: Optional[str | Path] = None,
    *,
    settings: Optional[Settings] = None,
    candidates: Optional[Sequence[Candidate]] = None,
) -> Optional[Path]:
    """Return the first usable database root, or ``None``.

    Explicit paths only need to be existing directories; probed candidates
    must also contain ``projects``, ``todos`` or ``statsig``.
    """
    settings = settings or get_settings()
    for root in _explicit_roots(explicit, settings):
        if root.is_dir():
            logger.debug("database_explicit", path=str(root))
            return root.resolve()
        logger.debug("database_explicit_missing", path=str(root))
    probes = candidates if candidates is not None else candidate_locations(settings)
    for candidate in probes:
        if is_database_root(candidate.path):
            logger.debug("database_found", path=str(candidate.path), label=candidate.label)
            return candidate.path.resolve()
    return None


def resolve_database(
    explicit: Optional[str | Path] = None,
    *,
    settings: Optional[Settings] = None,
    candidates: Optional[Sequence[Candidate]] = None,
) -> Path:
    """Like :func:`locate_database` but raise with the full probe list on failure."""
    settings = settings or get_settings()
    probes = list(candidates) if candidates is not None else candidate_locations(settings)
    root = locate_database(explicit, settings=settings, candidates=probes)
    if root is None:
        checked = [*_explicit_roots(explicit, settings), *(candidate.path for candidate in probes)]
        raise DatabaseNotFoundError(checked)
    return root


__all__ = [
    "Candidate",
    "candidate_locations",
    "is_database_root",
    "locate_database",
    "resolve_database",
]
