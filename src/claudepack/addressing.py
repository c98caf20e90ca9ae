"""Map a project's absolute path to the key the Claude database indexes it by.

The database stores each project's transcripts under ``projects/<key>/`` where
the key is the absolute path with every separator replaced by ``-``. The
encoding is not reversible: ``/work/a-b`` and ``/work/a/b`` share the key
``-work-a-b``.
"""

from __future__ import annotations

import os
from pathlib import Path

from .constants import KEY_SEPARATOR

_SEPARATORS: frozenset[str] = frozenset(sep for sep in ("/", os.sep, os.altsep) if sep)


def project_key(path: str | Path) -> str:
    """Return the flat database key for *path* (expected to be absolute)."""
    text = os.fspath(path)
    return "".join(KEY_SEPARATOR if char in _SEPARATORS else char for char in text)


__all__ = ["project_key"]
