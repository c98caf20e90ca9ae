"""Command-line interface: ``claudepack pack`` and ``claudepack unpack``."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Annotated, Optional

import structlog
import typer
from rich.console import Console

from .config import Settings, get_settings
from .constants import ENTRY_SCRIPT_NAME, INSTALL_SCRIPT_NAME, RESERVED_DIR_NAME
from .database import locate_database, resolve_database
from .errors import ClaudePackError, DatabaseNotFoundError, IncompatiblePackageError
from .installer import UnpackResult, confirm_destination, inspect_package, needs_confirmation, unpack_package
from .packer import pack_project
from .records import locate_project_records
from .rich_logger import create_counts_table, create_manifest_table, create_records_tree
from .validation import EMPTY_BUNDLE_WARNING, validate_package, validate_project, validate_project_path

console = Console()

app = typer.Typer(
    help="Bundle a project with its Claude conversation history and restore it on another machine.",
    no_args_is_help=True,
)


def _configure_logging(settings: Settings, debug: bool = False) -> None:
    """Route structlog output to stderr at the configured level."""
    level_name = "DEBUG" if debug else settings.log_level.upper()
    level = getattr(logging, level_name, logging.WARNING)
    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
    ]
    if settings.log_json_enabled:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.processors.KeyValueRenderer(key_order=["event", "path"]))
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=False,
    )


def _resolve_path(raw: str | Path) -> Path:
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = Path.cwd() / path
    return path.resolve()


def _format_bytes(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


def _print_database_not_found(exc: DatabaseNotFoundError) -> None:
    console.print("[red]Could not find the Claude database.[/] Checked:")
    for path in exc.checked:
        console.print(f"  • {path}")
    console.print("Point claudepack at it with [cyan]--claude-db PATH[/] or CLAUDEPACK_CLAUDE_DB.")


def _confirm(question: str) -> bool:
    return typer.confirm(question, default=False)


@app.command("pack")
def pack(
    project_path: Annotated[
        Optional[Path],
        typer.Argument(help="Project directory to bundle (defaults to the current directory)."),
    ] = None,
    output: Annotated[
        Optional[str],
        typer.Option("--output", "-o", help="Archive path; the .claudepack.tar.gz suffix is appended if missing."),
    ] = None,
    exclude: Annotated[
        Optional[list[str]],
        typer.Option("--exclude", "-e", help="Gitignore-style pattern to leave out (repeatable)."),
    ] = None,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Treat warnings and an undetectable Claude version as errors."),
    ] = False,
    ignore_warnings: Annotated[
        bool,
        typer.Option("--ignore-warnings", help="Continue even when validation reports warnings."),
    ] = False,
    validate_only: Annotated[
        bool,
        typer.Option("--validate-only", help="Locate and validate records without writing an archive."),
    ] = False,
    claude_db: Annotated[
        Optional[str],
        typer.Option("--claude-db", help="Path to the Claude database root (e.g. ~/.claude)."),
    ] = None,
    debug: Annotated[bool, typer.Option("--debug", help="Show debug logs and located records.")] = False,
) -> None:
    """Bundle a project and its conversation records into one archive."""
    settings = get_settings()
    _configure_logging(settings, debug)
    project = _resolve_path(project_path or Path.cwd())
    try:
        validate_project_path(project)
        with console.status("Locating Claude database..."):
            database_root = resolve_database(claude_db, settings=settings)
        if debug:
            console.print(f"[dim]Claude database:[/] {database_root}")
        with console.status("Searching for project records..."):
            records = locate_project_records(database_root, project)
        warnings = validate_project(project, records.conversations, records.tasks, strict=strict)
    except DatabaseNotFoundError as exc:
        _print_database_not_found(exc)
        raise typer.Exit(code=1) from exc
    except (ClaudePackError, OSError) as exc:
        console.print(f"[red]Validation failed:[/] {exc}")
        raise typer.Exit(code=1) from exc

    for warning in warnings:
        console.print(f"[yellow]Warning:[/] {warning}")
    if debug:
        console.print(create_records_tree(records))

    if warnings and strict and not ignore_warnings:
        console.print("[red]Strict mode:[/] resolve the warnings above or pass --ignore-warnings.")
        raise typer.Exit(code=1)

    if validate_only:
        console.print("[green]Validation completed.[/] The project can be packed.")
        console.print(create_counts_table(records))
        if EMPTY_BUNDLE_WARNING in warnings and not ignore_warnings:
            console.print("The bundle would carry no conversations; pass --ignore-warnings to pack it anyway.")
        return

    try:
        with console.status(f"Packing {project.name}..."):
            result = pack_project(
                project,
                database_root=database_root,
                output=output,
                exclude=exclude or (),
                records=records,
                settings=settings,
            )
    except (ClaudePackError, OSError) as exc:
        console.print(f"[red]Packing failed:[/] {exc}")
        raise typer.Exit(code=1) from exc

    console.print(f"[green]Package created:[/] {result.output_path} ({_format_bytes(result.size_bytes)})")
    console.print(create_counts_table(result.records))
    if debug:
        console.print(create_manifest_table(result.manifest))
    console.print(f"To restore it elsewhere run: [cyan]claudepack unpack {result.output_path.name}[/]")


def _print_unpack_summary(result: UnpackResult) -> None:
    destination = result.destination
    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/] {warning}")
    if result.install is None:
        console.print(f"[green]Package extracted to[/] {destination}")
        console.print("To finish the installation manually run:")
        console.print(f"  [cyan]cd {destination}[/]")
        console.print(f"  [cyan]./{ENTRY_SCRIPT_NAME}[/]")
        return
    install = result.install
    console.print(f"[green]Package unpacked and installed in[/] {destination}")
    console.print(
        f"Conversations: {install.conversations_installed} "
        f"(paths rewritten in {install.conversations_rewritten}), "
        f"todos: {install.tasks_copied} copied / {install.tasks_skipped} kept, "
        f"statsig: {install.flags_copied} copied / {install.flags_skipped} kept"
    )
    if install.placeholder_written:
        console.print("[yellow]The package carried no conversations;[/] the project was registered with a README.")
    if install.local_database_found:
        console.print(f"[cyan]Note:[/] the project ships its own .claude directory at {destination / '.claude'}.")
    console.print("To continue the conversation run:")
    console.print(f"  [cyan]cd {destination}[/]")
    console.print("  [cyan]claude --continue[/]")


@app.command("unpack")
def unpack(
    package_file: Annotated[Path, typer.Argument(help="Path to a .claudepack.tar.gz archive.")],
    destination: Annotated[
        Optional[Path],
        typer.Option("--destination", "-d", help="Directory to unpack into (defaults to the current directory)."),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Skip the non-empty destination prompt and the compatibility check."),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show the bundled manifest without touching the destination."),
    ] = False,
    merge: Annotated[
        bool,
        typer.Option("--merge", help="Unpack into a non-empty destination without asking."),
    ] = False,
    overwrite: Annotated[
        bool,
        typer.Option("--overwrite", help="Replace existing todos and statsig records in the database."),
    ] = False,
    validate_only: Annotated[
        bool,
        typer.Option("--validate-only", help="Check the archive and destination, then stop."),
    ] = False,
    claude_db: Annotated[
        Optional[str],
        typer.Option("--claude-db", help="Path to the Claude database root (e.g. ~/.claude)."),
    ] = None,
    debug: Annotated[bool, typer.Option("--debug", help="Show debug logs and the bundled manifest.")] = False,
) -> None:
    """Restore an archive and register its records with the local Claude database."""
    settings = get_settings()
    _configure_logging(settings, debug)
    package = _resolve_path(package_file)
    target = _resolve_path(destination or Path.cwd())
    try:
        validate_package(package)
    except ClaudePackError as exc:
        console.print(f"[red]Validation failed:[/] {exc}")
        raise typer.Exit(code=1) from exc

    if needs_confirmation(target, force=force, merge=merge, overwrite=overwrite):
        console.print(f"[yellow]The directory {target} is not empty.[/]")
        console.print("Use --overwrite to replace existing records or --merge to combine with existing files.")
    if not confirm_destination(target, force=force, merge=merge, overwrite=overwrite, confirm=_confirm):
        console.print("Operation cancelled.")
        return

    if validate_only:
        console.print("[green]Validation completed.[/] The package can be unpacked.")
        return

    if dry_run:
        try:
            with console.status(f"Reading {package.name}..."):
                manifest = inspect_package(package)
        except ClaudePackError as exc:
            console.print(f"[red]Dry run failed:[/] {exc}")
            raise typer.Exit(code=1) from exc
        console.print(f"[yellow]Dry run:[/] nothing was written to {target}.")
        console.print(create_manifest_table(manifest))
        return

    database_root = locate_database(claude_db, settings=settings)
    if database_root is None:
        console.print("[yellow]Claude database not found;[/] the project will be extracted without installing records.")
    elif debug:
        console.print(f"[dim]Claude database:[/] {database_root}")

    try:
        with console.status(f"Unpacking {package.name}..."):
            result = unpack_package(
                package,
                target,
                database_root=database_root,
                force=force,
                overwrite=overwrite,
            )
    except IncompatiblePackageError as exc:
        console.print(f"[red]{exc}[/]")
        console.print("Use --force to install anyway.")
        raise typer.Exit(code=1) from exc
    except (ClaudePackError, OSError) as exc:
        console.print(f"[red]Unpacking failed:[/] {exc}")
        raise typer.Exit(code=1) from exc

    if debug:
        console.print(create_manifest_table(result.manifest))
    _print_unpack_summary(result)
    if result.install is None:
        console.print(f"[dim]Manual installer: {target / RESERVED_DIR_NAME / INSTALL_SCRIPT_NAME}[/]")


__all__ = ["app"]
