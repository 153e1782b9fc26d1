"""Command line interface for designdeck."""

from __future__ import annotations

import asyncio
import difflib
import shutil
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NoReturn, Optional

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from designdeck.catalog import CatalogBuilder, DesignRecord, classify_viewport, design_id
from designdeck.channel import (
    CanvasMessageHandler,
    ConsoleHostServices,
    DesignsListNotification,
    MessageChannel,
    Notification,
)
from designdeck.config import ConfigError, ConfigManager, DesignDeckConfig, resolve_with_precedence
from designdeck.config.resolver import assign_nested
from designdeck.logging_config import configure_logging
from designdeck.metadata import (
    DesignLifecycle,
    DesignMetadata,
    DesignNotFoundError,
    DesignStatus,
    MetadataError,
    MetadataPersistenceError,
    MetadataStore,
    create_default_metadata,
)
from designdeck.view import (
    CanvasClient,
    FileSessionCache,
    Filters,
    ViewStateMachine,
    matches_filters,
)
from designdeck.watch import DesignWatcher
from designdeck.workspace import PrimaryPointer, WorkspaceLayout

console = Console()

STATUS_CHOICES = [status.value for status in DesignStatus]
FILTER_CHOICES = ["active", "all", *STATUS_CHOICES]
VIEWPORT_CHOICES = ["all", "mobile", "tablet", "desktop"]

_STATUS_STYLES = {
    DesignStatus.DRAFT: "white",
    DesignStatus.REVIEW: "yellow",
    DesignStatus.APPROVED: "green",
    DesignStatus.ARCHIVED: "dim",
    DesignStatus.EXPORTED: "cyan",
}


@dataclass(slots=True)
class _Workspace:
    """Objects shared by every command operating on a workspace."""

    config: DesignDeckConfig
    layout: WorkspaceLayout
    store: MetadataStore
    lifecycle: DesignLifecycle
    builder: CatalogBuilder
    pointer: PrimaryPointer


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> NoReturn:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _error_code(exc: Exception) -> str:
    if isinstance(exc, DesignNotFoundError):
        return "not_found"
    if isinstance(exc, MetadataPersistenceError):
        return "persistence_error"
    if isinstance(exc, ConfigError):
        return "config_error"
    if isinstance(exc, ValueError):
        return "invalid_value"
    if isinstance(exc, OSError):
        return "io_error"
    return "internal_error"


def _fail(exc: Exception, *, json_output: bool) -> NoReturn:
    _handle_cli_error(
        str(exc),
        code=_error_code(exc),
        json_output=json_output,
        details={"exception": type(exc).__name__},
        original=exc,
    )


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return

    important_modes = {"summary", "warning", "error"}
    if summary_only and mode not in important_modes:
        return

    console.print(message)


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    """Return a consistent summary line for CLI commands.

    Args:
        command: Command name to include in the summary.
        root: Target root path relevant to the command.
        metrics: Ordered mapping of metric names to values.

    Returns:
        str: Rich-formatted summary string.
    """

    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {root}: {parts}.[/green]"


def _resolve_output_modes(
    ctx: click.Context,
    config: DesignDeckConfig,
    *,
    json_output: bool,
    quiet: bool,
    summary_mode: bool,
) -> tuple[bool, bool]:
    """Combine output flags with configured defaults.

    Returns:
        tuple[bool, bool]: Effective ``(quiet, summary_only)`` flags.

    Raises:
        click.ClickException: If the flags conflict.
    """
    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE

    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output:
        if explicit_quiet and quiet_enabled:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if explicit_summary and summary_only:
            raise click.ClickException("--json cannot be combined with --summary.")
        return False, False

    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )
    return quiet_enabled, summary_only


def _load_workspace(ctx: click.Context, *, json_output: bool = False) -> _Workspace:
    """Load configuration and open the workspace selected on the command line."""
    root = Path(ctx.ensure_object(dict).get("workspace") or ".")
    try:
        manager = ConfigManager()
        manager.ensure_exists()
        config = manager.load()
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)

    layout = WorkspaceLayout(root, config.workspace)
    try:
        layout.initialize()
        configure_logging(config.logging, layout.log_path)
    except OSError as exc:
        _fail(exc, json_output=json_output)

    store = MetadataStore(layout.metadata_path)
    builder = CatalogBuilder(
        layout,
        store,
        inline_styles=config.catalog.inline_stylesheets,
        css_compat=config.catalog.css_compat,
    )
    return _Workspace(
        config=config,
        layout=layout,
        store=store,
        lifecycle=DesignLifecycle(layout, store),
        builder=builder,
        pointer=PrimaryPointer(layout.canvas_state_path),
    )


def _resolve_design(workspace: _Workspace, name: str, *, json_output: bool) -> str:
    """Map a design id or file name to an existing file name."""
    file_name = workspace.builder.resolve(name)
    if file_name is None:
        _handle_cli_error(
            f"Design not found: {name}", code="not_found", json_output=json_output
        )
    return file_name


def _record_payload(record: DesignMetadata) -> dict[str, Any]:
    return record.model_dump(mode="json", by_alias=True, exclude_none=True)


def _catalog_payload(designs: list[DesignRecord], primary_id: Optional[str]) -> dict[str, Any]:
    return {
        "designs": [
            design.model_dump(mode="json", by_alias=True, exclude={"content"})
            for design in designs
        ],
        "primaryDesignId": primary_id,
    }


def _status_label(design: DesignRecord) -> str:
    style = _STATUS_STYLES.get(design.stored_status, "white")
    label = design.stored_status.value
    return f"[{style}]{label}[/{style}]"


def _render_catalog(designs: list[DesignRecord], primary_id: Optional[str]) -> Table:
    table = Table(title="Designs", show_lines=False)
    table.add_column("", width=1)
    table.add_column("Design", overflow="fold")
    table.add_column("Status")
    table.add_column("Viewport")
    table.add_column("Parent", overflow="fold")
    table.add_column("Tags", overflow="fold")
    table.add_column("Modified")
    for design in designs:
        table.add_row(
            "★" if design.id == primary_id else "",
            design.file_name,
            _status_label(design),
            design.viewport.value,
            design.parent_design or "-",
            ", ".join(design.tags) or "-",
            design.modified_at.strftime("%Y-%m-%d %H:%M"),
        )
    return table


def _emit_record_update(
    message: str,
    record: DesignMetadata,
    *,
    json_output: bool,
    quiet: bool,
    summary_only: bool,
) -> None:
    if json_output:
        console.print_json(data={"design": _record_payload(record)})
        return
    _emit_message(message, mode="summary", quiet=quiet, summary_only=summary_only)


def _output_options(func: Any) -> Any:
    func = click.option("--quiet", is_flag=True, help="Suppress non-error output.")(func)
    func = click.option(
        "--summary", "summary_mode", is_flag=True, help="Only emit summary lines."
    )(func)
    func = click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")(func)
    return func


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="designdeck")
@click.option(
    "-w",
    "--workspace",
    type=click.Path(file_okay=False, path_type=str),
    default=".",
    show_default=True,
    help="Workspace root holding the .designdeck directory.",
)
@click.pass_context
def cli(ctx: click.Context, workspace: str) -> None:
    """designdeck tracks AI-generated design mockups and keeps a canvas in sync.

    Args:
        ctx: Click context carrying the selected workspace to subcommands.
        workspace: Workspace root directory.
    """
    ctx.ensure_object(dict)["workspace"] = workspace


# ---------------------------------------------------------------------- #
# Browsing                                                               #
# ---------------------------------------------------------------------- #


@cli.command("list")
@click.option(
    "--status",
    "status_filter",
    type=click.Choice(FILTER_CHOICES),
    default=None,
    help="Status filter (defaults to configuration).",
)
@click.option("--viewport", type=click.Choice(VIEWPORT_CHOICES), default="all", show_default=True)
@click.option("--search", type=str, default="", help="Case-insensitive name filter.")
@click.option("--include-archived", is_flag=True, help="Include designs in the archive directory.")
@_output_options
@click.pass_context
def list_designs(
    ctx: click.Context,
    status_filter: str | None,
    viewport: str,
    search: str,
    include_archived: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """List designs newest first.

    Args:
        ctx: Click context for parameter source inspection.
        status_filter: Status bucket to show.
        viewport: Viewport class to show.
        search: Substring the design name must contain.
        include_archived: Whether archived documents are scanned.
        json_output: When True, emit JSON instead of a table.
        summary_mode: When True, restrict output to summary lines.
        quiet: When True, suppress non-error output entirely.
    """
    workspace = _load_workspace(ctx, json_output=json_output)
    config = workspace.config
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
    )

    status_value = status_filter or config.canvas.default_status_filter
    scan_archive = (
        include_archived
        or config.catalog.include_archived
        or status_value in {"all", "archived", "exported"}
    )
    filters = Filters(status=status_value, viewport=viewport, search=search)

    try:
        primary_id = workspace.pointer.load()
        catalog = workspace.builder.build(primary_id, include_archived=scan_archive)
    except (MetadataError, OSError) as exc:
        _fail(exc, json_output=json_output)

    if primary_id is not None and all(design.id != primary_id for design in catalog):
        primary_id = None
    designs = [design for design in catalog if matches_filters(design, filters)]

    if json_output:
        console.print_json(data=_catalog_payload(designs, primary_id))
        return

    if not designs:
        _emit_message(
            "[yellow]No designs match the current filters.[/yellow]",
            mode="warning",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    else:
        _emit_message(
            _render_catalog(designs, primary_id),
            mode="detail",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )

    counts = Counter(design.status.value for design in catalog)
    _emit_message(
        _format_summary_line(
            "List",
            workspace.layout.designs_dir,
            {"shown": len(designs), "total": len(catalog), **dict(sorted(counts.items()))},
        ),
        mode="summary",
        quiet=quiet_enabled,
        summary_only=summary_only,
    )


@cli.command()
@click.argument("name")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
@click.pass_context
def show(ctx: click.Context, name: str, json_output: bool) -> None:
    """Show metadata and lineage for design NAME.

    Args:
        ctx: Click context carrying the workspace.
        name: Design id or file name.
        json_output: When True, emit JSON instead of text.
    """
    workspace = _load_workspace(ctx, json_output=json_output)
    file_name = _resolve_design(workspace, name, json_output=json_output)
    store = workspace.store

    record = store.get(file_name) or create_default_metadata(file_name)
    location = workspace.lifecycle.locate(file_name)
    variations = sorted(
        other.file_name
        for other in store.load().designs.values()
        if other.parent_design == file_name
    )

    if json_output:
        console.print_json(
            data={
                "design": _record_payload(record),
                "id": design_id(file_name),
                "location": location,
                "viewport": classify_viewport(file_name).value,
                "variations": variations,
            }
        )
        return

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="bold")
    table.add_column("Value", overflow="fold")
    table.add_row("Name", file_name)
    table.add_row("Status", record.status.value)
    table.add_row("Location", location or "-")
    table.add_row("Viewport", classify_viewport(file_name).value)
    table.add_row("Parent", record.parent_design or "-")
    table.add_row("Variations", ", ".join(variations) or "-")
    table.add_row("Tags", ", ".join(record.tags) or "-")
    table.add_row("Notes", record.notes or "-")
    if record.exported_to:
        table.add_row("Exported to", record.exported_to)
    if record.version is not None:
        table.add_row("Version", str(record.version))
    table.add_row("Created", record.created_at.isoformat())
    table.add_row("Updated", record.updated_at.isoformat())
    console.print(table)


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
@click.pass_context
def tags(ctx: click.Context, json_output: bool) -> None:
    """List every tag in use with the number of designs carrying it.

    Args:
        ctx: Click context carrying the workspace.
        json_output: When True, emit JSON instead of a table.
    """
    workspace = _load_workspace(ctx, json_output=json_output)
    counts: Counter[str] = Counter()
    for record in workspace.store.load().designs.values():
        counts.update(record.tags)

    if json_output:
        console.print_json(data={"tags": dict(sorted(counts.items()))})
        return
    if not counts:
        console.print("[yellow]No tags in use.[/yellow]")
        return
    table = Table(title="Tags")
    table.add_column("Tag")
    table.add_column("Designs", justify="right")
    for tag in workspace.store.all_tags():
        table.add_row(tag, str(counts[tag]))
    console.print(table)


# ---------------------------------------------------------------------- #
# Metadata edits                                                         #
# ---------------------------------------------------------------------- #


@cli.command()
@click.argument("name")
@click.argument("status", type=click.Choice(STATUS_CHOICES))
@_output_options
@click.pass_context
def status(
    ctx: click.Context,
    name: str,
    status: str,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Set the lifecycle STATUS of design NAME.

    Moving into or out of ``archived`` relocates the file.

    Args:
        ctx: Click context for parameter source inspection.
        name: Design id or file name.
        status: New lifecycle status.
        json_output: When True, emit JSON output.
        summary_mode: When True, restrict output to summary lines.
        quiet: When True, suppress non-error output entirely.
    """
    workspace = _load_workspace(ctx, json_output=json_output)
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, workspace.config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
    )
    file_name = _resolve_design(workspace, name, json_output=json_output)
    try:
        record = workspace.lifecycle.set_status(file_name, status)
    except (MetadataError, OSError, ValueError) as exc:
        _fail(exc, json_output=json_output)
    _emit_record_update(
        f"[green]{file_name} is now {record.status.value}.[/green]",
        record,
        json_output=json_output,
        quiet=quiet_enabled,
        summary_only=summary_only,
    )


@cli.command()
@click.argument("name")
@click.argument("tag_names", metavar="TAG...", nargs=-1, required=True)
@_output_options
@click.pass_context
def tag(
    ctx: click.Context,
    name: str,
    tag_names: tuple[str, ...],
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Add one or more tags to design NAME."""
    workspace = _load_workspace(ctx, json_output=json_output)
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, workspace.config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
    )
    file_name = _resolve_design(workspace, name, json_output=json_output)
    try:
        record = workspace.store.get(file_name) or workspace.store.apply_default(file_name)
        for tag_name in tag_names:
            record = workspace.store.add_tag(file_name, tag_name)
    except (MetadataError, ValueError) as exc:
        _fail(exc, json_output=json_output)
    _emit_record_update(
        f"[green]Tags for {file_name}: {', '.join(record.tags)}.[/green]",
        record,
        json_output=json_output,
        quiet=quiet_enabled,
        summary_only=summary_only,
    )


@cli.command()
@click.argument("name")
@click.argument("tag_names", metavar="TAG...", nargs=-1, required=True)
@_output_options
@click.pass_context
def untag(
    ctx: click.Context,
    name: str,
    tag_names: tuple[str, ...],
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Remove tags from design NAME."""
    workspace = _load_workspace(ctx, json_output=json_output)
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, workspace.config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
    )
    file_name = _resolve_design(workspace, name, json_output=json_output)
    try:
        record = workspace.store.get(file_name) or workspace.store.apply_default(file_name)
        for tag_name in tag_names:
            record = workspace.store.remove_tag(file_name, tag_name) or record
    except MetadataError as exc:
        _fail(exc, json_output=json_output)
    remaining = ", ".join(record.tags) or "none"
    _emit_record_update(
        f"[green]Tags for {file_name}: {remaining}.[/green]",
        record,
        json_output=json_output,
        quiet=quiet_enabled,
        summary_only=summary_only,
    )


@cli.command()
@click.argument("name")
@click.argument("text", required=False)
@click.option("--clear", is_flag=True, help="Remove the notes.")
@_output_options
@click.pass_context
def note(
    ctx: click.Context,
    name: str,
    text: str | None,
    clear: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Set the notes (the generating prompt) for design NAME.

    Without TEXT an editor is opened on the current notes.
    """
    workspace = _load_workspace(ctx, json_output=json_output)
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, workspace.config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
    )
    file_name = _resolve_design(workspace, name, json_output=json_output)

    if clear:
        notes = ""
    elif text is not None:
        notes = text
    else:
        current = workspace.store.get(file_name)
        edited = click.edit(current.notes if current else "", extension=".md")
        if edited is None:
            _emit_message(
                "[yellow]Edit cancelled; no changes applied.[/yellow]",
                mode="warning",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
            return
        notes = edited.rstrip("\n")

    try:
        record = workspace.store.update_notes(file_name, notes)
    except MetadataError as exc:
        _fail(exc, json_output=json_output)
    _emit_record_update(
        f"[green]Updated notes for {file_name}.[/green]",
        record,
        json_output=json_output,
        quiet=quiet_enabled,
        summary_only=summary_only,
    )


@cli.command()
@click.argument("name")
@click.argument("parent_name", metavar="PARENT", required=False)
@click.option("--clear", is_flag=True, help="Remove the parent link.")
@_output_options
@click.pass_context
def parent(
    ctx: click.Context,
    name: str,
    parent_name: str | None,
    clear: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Record PARENT as the design NAME was iterated from."""
    workspace = _load_workspace(ctx, json_output=json_output)
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, workspace.config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
    )
    if not clear and parent_name is None:
        raise click.ClickException("Provide PARENT or --clear.")
    file_name = _resolve_design(workspace, name, json_output=json_output)
    parent_file = None
    if not clear and parent_name is not None:
        parent_file = _resolve_design(workspace, parent_name, json_output=json_output)

    try:
        record = workspace.store.set_parent(file_name, parent_file)
    except (MetadataError, ValueError) as exc:
        _fail(exc, json_output=json_output)
    message = (
        f"[green]{file_name} now iterates on {parent_file}.[/green]"
        if parent_file
        else f"[green]Cleared parent of {file_name}.[/green]"
    )
    _emit_record_update(
        message, record, json_output=json_output, quiet=quiet_enabled, summary_only=summary_only
    )


@cli.command()
@click.argument("name", required=False)
@click.option("--clear", is_flag=True, help="Clear the primary design.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
@click.pass_context
def primary(ctx: click.Context, name: str | None, clear: bool, json_output: bool) -> None:
    """Show or set the primary design.

    Args:
        ctx: Click context carrying the workspace.
        name: Design id or file name to mark as primary.
        clear: When True, clear the pointer.
        json_output: When True, emit JSON output.
    """
    workspace = _load_workspace(ctx, json_output=json_output)
    pointer = workspace.pointer
    try:
        if clear:
            pointer.save(None)
        elif name is not None:
            file_name = _resolve_design(workspace, name, json_output=json_output)
            pointer.save(design_id(file_name))
    except OSError as exc:
        _fail(exc, json_output=json_output)

    current = pointer.load()
    if current is not None and workspace.builder.resolve(current) is None:
        pointer.save(None)
        current = None

    if json_output:
        console.print_json(data={"primaryDesignId": current})
    elif current is None:
        console.print("[yellow]No primary design set.[/yellow]")
    else:
        console.print(f"[green]Primary design: {current}[/green]")


@cli.command()
@click.argument("name")
@click.argument("destination", type=click.Path(path_type=str))
@_output_options
@click.pass_context
def export(
    ctx: click.Context,
    name: str,
    destination: str,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Copy design NAME to DESTINATION and mark it exported."""
    workspace = _load_workspace(ctx, json_output=json_output)
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, workspace.config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
    )
    file_name = _resolve_design(workspace, name, json_output=json_output)
    location = workspace.lifecycle.locate(file_name)
    source = (
        workspace.layout.archive_path(file_name)
        if location == "archive"
        else workspace.layout.design_path(file_name)
    )

    target = Path(destination).expanduser().resolve()
    if target.is_dir():
        target = target / file_name
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
        record = workspace.store.mark_exported(file_name, str(target))
    except (MetadataError, OSError) as exc:
        _fail(exc, json_output=json_output)
    _emit_record_update(
        f"[green]Exported {file_name} to {target}.[/green]",
        record,
        json_output=json_output,
        quiet=quiet_enabled,
        summary_only=summary_only,
    )


# ---------------------------------------------------------------------- #
# Lifecycle                                                              #
# ---------------------------------------------------------------------- #


@cli.command()
@click.argument("name")
@_output_options
@click.pass_context
def archive(
    ctx: click.Context, name: str, json_output: bool, summary_mode: bool, quiet: bool
) -> None:
    """Move design NAME into the archive directory."""
    workspace = _load_workspace(ctx, json_output=json_output)
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, workspace.config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
    )
    file_name = _resolve_design(workspace, name, json_output=json_output)
    try:
        record = workspace.lifecycle.archive(file_name)
    except (MetadataError, OSError) as exc:
        _fail(exc, json_output=json_output)
    _emit_record_update(
        f"[green]Archived {file_name}.[/green]",
        record,
        json_output=json_output,
        quiet=quiet_enabled,
        summary_only=summary_only,
    )


@cli.command()
@click.argument("name")
@_output_options
@click.pass_context
def restore(
    ctx: click.Context, name: str, json_output: bool, summary_mode: bool, quiet: bool
) -> None:
    """Move design NAME back from the archive as a draft."""
    workspace = _load_workspace(ctx, json_output=json_output)
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, workspace.config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
    )
    file_name = _resolve_design(workspace, name, json_output=json_output)
    try:
        record = workspace.lifecycle.restore(file_name)
    except (MetadataError, OSError, ValueError) as exc:
        _fail(exc, json_output=json_output)
    _emit_record_update(
        f"[green]Restored {file_name} as {record.status.value}.[/green]",
        record,
        json_output=json_output,
        quiet=quiet_enabled,
        summary_only=summary_only,
    )


@cli.command()
@click.argument("name")
@click.option("-y", "--yes", is_flag=True, help="Skip the confirmation prompt.")
@click.option("--archived", is_flag=True, help="Delete the copy in the archive directory.")
@_output_options
@click.pass_context
def delete(
    ctx: click.Context,
    name: str,
    yes: bool,
    archived: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Permanently delete design NAME and its metadata."""
    workspace = _load_workspace(ctx, json_output=json_output)
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, workspace.config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
    )
    file_name = _resolve_design(workspace, name, json_output=json_output)
    from_archive = archived or workspace.lifecycle.locate(file_name) == "archive"

    if not yes and not click.confirm(f"Delete {file_name} permanently?", default=False):
        _emit_message(
            "[yellow]Deletion cancelled.[/yellow]",
            mode="warning",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
        return

    try:
        removed = workspace.lifecycle.delete(file_name, from_archive=from_archive)
    except (MetadataError, OSError) as exc:
        _fail(exc, json_output=json_output)

    if json_output:
        console.print_json(data={"deleted": file_name, "fileRemoved": removed})
        return
    _emit_message(
        f"[green]Deleted {file_name}.[/green]",
        mode="summary",
        quiet=quiet_enabled,
        summary_only=summary_only,
    )


@cli.command()
@click.option(
    "--days",
    type=click.IntRange(min=0),
    default=None,
    help="Age threshold in days (defaults to configuration).",
)
@_output_options
@click.pass_context
def prune(
    ctx: click.Context,
    days: int | None,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Archive designs older than the age threshold that are not approved."""
    workspace = _load_workspace(ctx, json_output=json_output)
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, workspace.config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
    )
    threshold = days if days is not None else workspace.config.maintenance.archive_after_days
    count = workspace.lifecycle.archive_older_than(threshold)

    if json_output:
        console.print_json(data={"archived": count, "days": threshold})
        return
    _emit_message(
        _format_summary_line(
            "Prune", workspace.layout.designs_dir, {"archived": count, "days": threshold}
        ),
        mode="summary",
        quiet=quiet_enabled,
        summary_only=summary_only,
    )


@cli.command("purge-archived")
@click.option("-y", "--yes", is_flag=True, help="Skip the confirmation prompt.")
@_output_options
@click.pass_context
def purge_archived(
    ctx: click.Context,
    yes: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Permanently delete every archived design."""
    workspace = _load_workspace(ctx, json_output=json_output)
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, workspace.config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
    )
    pending = workspace.store.list_by_status(DesignStatus.ARCHIVED)
    if not pending:
        if json_output:
            console.print_json(data={"deleted": 0})
            return
        _emit_message(
            "[yellow]No archived designs to delete.[/yellow]",
            mode="warning",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
        return

    if not yes and not click.confirm(
        f"Delete {len(pending)} archived design(s) permanently?", default=False
    ):
        _emit_message(
            "[yellow]Purge cancelled.[/yellow]",
            mode="warning",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
        return

    count = workspace.lifecycle.delete_all_archived()
    if json_output:
        console.print_json(data={"deleted": count})
        return
    _emit_message(
        _format_summary_line("Purge", workspace.layout.archive_dir, {"deleted": count}),
        mode="summary",
        quiet=quiet_enabled,
        summary_only=summary_only,
    )


# ---------------------------------------------------------------------- #
# Synchronization                                                        #
# ---------------------------------------------------------------------- #


@cli.command()
@_output_options
@click.pass_context
def sync(ctx: click.Context, json_output: bool, summary_mode: bool, quiet: bool) -> None:
    """Seed metadata for designs that do not have a record yet."""
    workspace = _load_workspace(ctx, json_output=json_output)
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, workspace.config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
    )
    names = [path.name for path in workspace.layout.list_design_files()]
    try:
        added = workspace.store.reconcile(names)
    except MetadataError as exc:
        _fail(exc, json_output=json_output)
    orphans = sorted(
        name
        for name in workspace.store.names()
        if workspace.lifecycle.locate(name) is None
    )

    if json_output:
        console.print_json(data={"added": added, "designs": len(names), "orphans": orphans})
        return
    for name in orphans:
        _emit_message(
            f"[yellow]Metadata without a file: {name}[/yellow]",
            mode="detail",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    _emit_message(
        _format_summary_line(
            "Sync",
            workspace.layout.designs_dir,
            {"designs": len(names), "added": added, "orphans": len(orphans)},
        ),
        mode="summary",
        quiet=quiet_enabled,
        summary_only=summary_only,
    )


async def _run_canvas_session(
    workspace: _Workspace,
    *,
    debounce: float,
    include_archived: bool,
    on_update: Any,
) -> None:
    """Run the host handler, the watcher and a headless canvas client."""
    config = workspace.config
    channel = MessageChannel()
    handler = CanvasMessageHandler(
        workspace.layout,
        workspace.store,
        workspace.lifecycle,
        workspace.builder,
        ConsoleHostServices(console),
        channel.host,
        primary_pointer=workspace.pointer,
        include_archived=include_archived,
    )
    machine = ViewStateMachine(
        session=FileSessionCache(workspace.layout.state_dir / "view_session.json"),
        compare_limit=config.canvas.compare_limit,
        default_filters=Filters(status=config.canvas.default_status_filter),
    )
    machine.restore()
    client = CanvasClient(channel.presentation, machine, on_update=on_update)
    watcher = DesignWatcher(
        workspace.layout,
        workspace.store,
        on_change=handler.on_filesystem_change,
        debounce_seconds=debounce,
    )

    handler.bind()
    server = asyncio.create_task(handler.serve())
    await asyncio.to_thread(watcher.start)
    client.ready()
    try:
        await client.run()
    finally:
        await asyncio.to_thread(watcher.stop)
        channel.presentation.close()
        await server


@cli.command()
@click.option("--debounce", type=float, help="Override debounce interval in seconds.")
@click.option("--once", is_flag=True, help="Reconcile, print the catalog once and exit.")
@click.option("--include-archived", is_flag=True, help="Include archived designs in the catalog.")
@_output_options
@click.pass_context
def watch(
    ctx: click.Context,
    debounce: float | None,
    once: bool,
    include_archived: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Watch the design directory and print the catalog whenever it changes.

    Args:
        ctx: Click context for parameter source inspection.
        debounce: Optional debounce override in seconds.
        once: When True, reconcile and print the catalog once.
        include_archived: When True, include archived designs.
        json_output: When True, emit JSON payloads instead of tables.
        summary_mode: When True, restrict output to summary lines.
        quiet: When True, suppress non-error output entirely.

    Raises:
        click.ClickException: If option combinations are invalid.
    """
    workspace = _load_workspace(ctx, json_output=json_output)
    config = workspace.config
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
    )
    if debounce is not None and debounce <= 0:
        raise click.ClickException("--debounce must be greater than zero.")
    effective_debounce = debounce if debounce is not None else config.watch.debounce_seconds
    scan_archive = include_archived or config.catalog.include_archived

    def _emit_catalog(designs: list[DesignRecord], primary_id: Optional[str]) -> None:
        if json_output:
            console.print_json(data=_catalog_payload(designs, primary_id))
            return
        if designs:
            _emit_message(
                _render_catalog(designs, primary_id),
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        _emit_message(
            _format_summary_line(
                "Watch", workspace.layout.designs_dir, {"designs": len(designs)}
            ),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )

    if once:
        watcher = DesignWatcher(workspace.layout, workspace.store)
        try:
            watcher.reconcile()
            primary_id = workspace.pointer.load()
            designs = workspace.builder.build(primary_id, include_archived=scan_archive)
        except (MetadataError, OSError) as exc:
            _fail(exc, json_output=json_output)
        if primary_id is not None and all(design.id != primary_id for design in designs):
            primary_id = None
        filters = Filters(status=config.canvas.default_status_filter)
        _emit_catalog([d for d in designs if matches_filters(d, filters)], primary_id)
        return

    def _on_update(machine: ViewStateMachine, message: Notification) -> None:
        if isinstance(message, DesignsListNotification):
            _emit_catalog(machine.filtered(), machine.primary_id)

    if not json_output:
        _emit_message(
            f"[cyan]Watching {workspace.layout.designs_dir}. Press Ctrl+C to stop.[/cyan]",
            mode="detail",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    try:
        asyncio.run(
            _run_canvas_session(
                workspace,
                debounce=effective_debounce,
                include_archived=scan_archive,
                on_update=_on_update,
            )
        )
    except KeyboardInterrupt:
        if not json_output:
            _emit_message(
                "[yellow]Watch stopped by user request.[/yellow]",
                mode="summary",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
    except RuntimeError as exc:
        _handle_cli_error(
            str(exc), code="watch_runtime_error", json_output=json_output, original=exc
        )


# ---------------------------------------------------------------------- #
# Configuration                                                          #
# ---------------------------------------------------------------------- #


@cli.group()
def config() -> None:
    """Manage designdeck configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Args:
        no_env: If True, ignore environment-derived overrides.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(loaded.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        key: Dotted path describing the configuration field to update.
        value: YAML-literal value to write into the configuration file.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    before = manager.read_text().splitlines()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException(
            "KEY must specify a dotted path such as 'watch.debounce_seconds'."
        )

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        file_data = manager.load_file_overrides()
        assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=DesignDeckConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()

    diff = list(
        difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )

    if diff:
        console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    else:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an interactive editor session.

    Raises:
        click.ClickException: If edited content is invalid or cannot be saved.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")

    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return

    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc

    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=DesignDeckConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
