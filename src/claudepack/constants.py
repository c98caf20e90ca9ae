"""Names and format versions shared by the packer and the installer."""

from __future__ import annotations

from typing import Final

CLAUDEPACK_VERSION: Final[str] = "1.0.0"
STRUCTURE_VERSION: Final[str] = "1"
UNKNOWN: Final[str] = "unknown"

PACKAGE_SUFFIX: Final[str] = ".claudepack.tar.gz"

# Reserved subtree inside every bundle; never user content.
RESERVED_DIR_NAME: Final[str] = ".claudepack"
MANIFEST_FILENAME: Final[str] = "manifest.json"
INSTALL_SCRIPT_NAME: Final[str] = "install.sh"
ENTRY_SCRIPT_NAME: Final[str] = "claudepack-install.sh"
PLACEHOLDER_FILENAME: Final[str] = "README.md"

CONVERSATIONS_DIR: Final[str] = "conversations"
TODOS_DIR: Final[str] = "todos"
STATSIG_DIR: Final[str] = "statsig"
PROJECTS_DIR: Final[str] = "projects"

# At least one of these must exist for a directory to count as a database root.
DATABASE_SUBTREES: Final[tuple[str, ...]] = (PROJECTS_DIR, TODOS_DIR, STATSIG_DIR)

CONVERSATION_SUFFIX: Final[str] = ".jsonl"
TASK_SUFFIX: Final[str] = ".json"

KEY_SEPARATOR: Final[str] = "-"

VERSION_SCAN_LINES: Final[int] = 20
CLI_VERSION_PREFIX: Final[str] = "0."

DEFAULT_EXCLUDES: Final[tuple[str, ...]] = (
    "node_modules/**",
    ".git/**",
    f"*{PACKAGE_SUFFIX}",
    f"{RESERVED_DIR_NAME}/**",
    ENTRY_SCRIPT_NAME,
)

DEFAULT_FALLBACK_DB: Final[str] = "/Volumes/DevelopmentProjects/Claude/claude-relocate/claude-db"
