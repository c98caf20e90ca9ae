"""Rich renderables for manifests and located records."""

from __future__ import annotations

from typing import Any

from rich import box
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from .manifest import Manifest
from .records import ProjectRecords


def create_metadata_table(metadata: dict[str, Any], title: str = "Metadata") -> Table:
    """Create a two-column property table with type-aware value styling."""
    table = Table(
        title=f"[bold bright_cyan]{title}[/bold bright_cyan]",
        box=box.ROUNDED,
        border_style="bright_cyan",
        show_header=True,
        header_style="bold bright_white on bright_blue",
        padding=(0, 1),
    )

    table.add_column("Property", style="bold bright_yellow", width=22)
    table.add_column("Value", style="white", overflow="fold")

    for key, value in metadata.items():
        if isinstance(value, bool):
            display_value = "[bold bright_green]yes[/bold bright_green]" if value else "[dim]no[/dim]"
        elif isinstance(value, (int, float)):
            display_value = f"[bright_cyan]{value}[/bright_cyan]"
        elif isinstance(value, (list, tuple)):
            display_value = escape(", ".join(str(item) for item in value)) or "[dim italic]none[/dim italic]"
        elif value is None:
            display_value = "[dim italic]null[/dim italic]"
        else:
            display_value = escape(str(value))

        table.add_row(key, display_value)

    return table


def create_manifest_table(manifest: Manifest, title: str = "Package manifest") -> Table:
    return create_metadata_table(manifest.to_dict(), title=title)


def create_data_tree(data: dict[str, Any], root_label: str = "Data") -> Tree:
    """Create a rich tree view for nested data structures."""
    tree = Tree(f"[bold bright_white]{escape(root_label)}[/bold bright_white]")

    def add_items(parent: Tree, items: dict[str, Any] | list[Any]) -> None:
        if isinstance(items, dict):
            for key, value in items.items():
                if isinstance(value, dict):
                    branch = parent.add(f"[bold bright_cyan]{escape(str(key))}[/bold bright_cyan]")
                    add_items(branch, value)
                elif isinstance(value, list):
                    branch = parent.add(
                        f"[bold bright_magenta]{escape(str(key))}[/bold bright_magenta] [dim]({len(value)})[/dim]"
                    )
                    add_items(branch, value)
                else:
                    parent.add(f"[bright_yellow]{escape(str(key))}[/bright_yellow]: [white]{escape(str(value))}[/white]")
        else:
            for item in items:
                if isinstance(item, (dict, list)):
                    add_items(parent.add("[dim]-[/dim]"), item)
                else:
                    parent.add(f"[white]{escape(str(item))}[/white]")

    add_items(tree, data)
    return tree


def create_records_tree(records: ProjectRecords) -> Tree:
    """Group located records by category under the project key."""
    data: dict[str, Any] = {
        "conversations": [conversation.path.name for conversation in records.conversations],
        "todos": [
            f"{task.path.name} (orphaned)" if task.orphaned else task.path.name for task in records.tasks
        ],
        "statsig": [flag.name for flag in records.flags],
    }
    return create_data_tree(data, root_label=records.key)


def create_counts_table(records: ProjectRecords) -> Table:
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
    table.add_column("Records")
    table.add_column("Count", justify="right", style="bright_cyan")
    for name, count in records.counts().items():
        table.add_row(name, str(count))
    table.add_row("orphaned todos", str(len(records.orphaned_tasks)))
    return table


__all__ = [
    "create_counts_table",
    "create_data_tree",
    "create_manifest_table",
    "create_metadata_table",
    "create_records_tree",
]
