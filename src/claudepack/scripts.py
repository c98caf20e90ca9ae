"""Shell scripts shipped inside every bundle for installs without claudepack."""

from __future__ import annotations

import re
import shlex

from .constants import (
    CONVERSATIONS_DIR,
    ENTRY_SCRIPT_NAME,
    INSTALL_SCRIPT_NAME,
    PROJECTS_DIR,
    RESERVED_DIR_NAME,
    STATSIG_DIR,
    TODOS_DIR,
)

_PLACEHOLDER_RE = re.compile(r"__([A-Z]+(?:_[A-Z]+)*)__")

INSTALL_SCRIPT_TEMPLATE = """#!/bin/bash
# claudepack install script for __PROJECT_NAME__
# Registers this project and its conversation history with the local Claude database.
# Set CLAUDE_DB to target a database other than ~/.claude.
set -e

SCRIPT_DIR="$(cd "$(dirname "${BASH_SOURCE[0]}")" && pwd -P)"
PROJECT_DIR="$(dirname "$SCRIPT_DIR")"
CLAUDE_DB="${CLAUDE_DB:-$HOME/.claude}"
ORIGINAL_PATH=__ORIGINAL_PATH__

# sed treats the pattern as a regex and the replacement specially; escape both.
escape_pattern() { printf '%s' "$1" | sed -e 's/[]\\$*.^[|]/\\\\&/g'; }
escape_replacement() { printf '%s' "$1" | sed -e 's/[\\&|]/\\\\&/g'; }
SEARCH="$(escape_pattern "$ORIGINAL_PATH")"
REPLACE="$(escape_replacement "$PROJECT_DIR")"

PROJECT_KEY="$(printf '%s' "$PROJECT_DIR" | tr '/' '-')"
TARGET_DIR="$CLAUDE_DB/__PROJECTS_DIR__/$PROJECT_KEY"
mkdir -p "$TARGET_DIR" "$CLAUDE_DB/__TODOS_DIR__" "$CLAUDE_DB/__STATSIG_DIR__"

count=0
for conversation in "$SCRIPT_DIR/__CONVERSATIONS_DIR__"/*.jsonl; do
  [ -e "$conversation" ] || continue
  sed "s|$SEARCH|$REPLACE|g" "$conversation" > "$TARGET_DIR/$(basename "$conversation")"
  count=$((count + 1))
done

if [ "$count" -eq 0 ]; then
  printf '# Project imported with claudepack\\n\\nImported from %s.\\n' "$ORIGINAL_PATH" > "$TARGET_DIR/README.md"
fi

for subtree in __TODOS_DIR__ __STATSIG_DIR__; do
  if [ -d "$SCRIPT_DIR/$subtree" ]; then
    for record in "$SCRIPT_DIR/$subtree"/*; do
      [ -e "$record" ] || continue
      target="$CLAUDE_DB/$subtree/$(basename "$record")"
      [ -e "$target" ] || cp "$record" "$target"
    done
  fi
done

echo "Installed $count conversation(s) for $PROJECT_DIR into $TARGET_DIR"
echo "To continue the conversation run: cd \\"$PROJECT_DIR\\" && claude --continue"
"""

ENTRY_SCRIPT_TEMPLATE = """#!/bin/bash
# Entry point for claudepack bundles.
# To install manually run: ./__RESERVED_DIR__/__INSTALL_SCRIPT__

if [ -f "__RESERVED_DIR__/__INSTALL_SCRIPT__" ]; then
  echo "Running claudepack install script..."
  ./__RESERVED_DIR__/__INSTALL_SCRIPT__
else
  echo "ERROR: install script not found."
  exit 1
fi
"""


def _render(template: str, values: dict[str, str]) -> str:
    return _PLACEHOLDER_RE.sub(lambda match: values.get(match.group(1), match.group(0)), template)


def create_install_script(project_name: str, original_path: str) -> str:
    # Project names land in a comment; keep them on one line.
    safe_name = " ".join(project_name.split())
    return _render(
        INSTALL_SCRIPT_TEMPLATE,
        {
            "PROJECT_NAME": safe_name,
            "ORIGINAL_PATH": shlex.quote(original_path),
            "PROJECTS_DIR": PROJECTS_DIR,
            "TODOS_DIR": TODOS_DIR,
            "STATSIG_DIR": STATSIG_DIR,
            "CONVERSATIONS_DIR": CONVERSATIONS_DIR,
        },
    )


def create_entry_script() -> str:
    return _render(
        ENTRY_SCRIPT_TEMPLATE,
        {"RESERVED_DIR": RESERVED_DIR_NAME, "INSTALL_SCRIPT": INSTALL_SCRIPT_NAME},
    )


__all__ = ["ENTRY_SCRIPT_NAME", "INSTALL_SCRIPT_NAME", "create_entry_script", "create_install_script"]
