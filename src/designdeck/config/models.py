"""Configuration models describing designdeck settings."""

from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DesignDeckBaseModel(BaseModel):
    """Shared configuration for designdeck Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class WorkspaceSettings(DesignDeckBaseModel):
    """Names of the on-disk artifacts inside a workspace.

    Attributes:
        state_dirname: Directory under the workspace root holding all state.
        designs_dirname: Watched directory containing live design documents.
        archive_dirname: Sibling directory receiving archived documents.
        metadata_filename: JSON file storing the metadata table.
        canvas_state_filename: JSON file storing the primary design pointer.
        log_filename: Rotating log file written inside the state directory.
        extensions: File extensions treated as design documents.
    """

    state_dirname: str = ".designdeck"
    designs_dirname: str = "design_iterations"
    archive_dirname: str = "design_archive"
    metadata_filename: str = "design_metadata.json"
    canvas_state_filename: str = "canvas_state.json"
    log_filename: str = "designdeck.log"
    extensions: List[str] = Field(default_factory=lambda: [".html"])

    @field_validator("extensions")
    @classmethod
    def _normalize_extensions(cls, value: List[str]) -> List[str]:
        normalized: list[str] = []
        for item in value:
            ext = item.strip().lower()
            if not ext:
                continue
            if not ext.startswith("."):
                ext = f".{ext}"
            if ext not in normalized:
                normalized.append(ext)
        return normalized


class WatchSettings(DesignDeckBaseModel):
    """Filesystem monitor options.

    Attributes:
        debounce_seconds: Quiet period before coalesced events are reported.
    """

    debounce_seconds: float = 0.3


class CatalogSettings(DesignDeckBaseModel):
    """Options applied while building the design catalog.

    Attributes:
        inline_stylesheets: Replace relative stylesheet links with inline styles.
        css_compat: Rewrite CSS features unsupported by the presentation surface.
        include_archived: Include archived documents in catalog pushes.
    """

    inline_stylesheets: bool = True
    css_compat: bool = True
    include_archived: bool = False


class CanvasSettings(DesignDeckBaseModel):
    """Presentation-side defaults.

    Attributes:
        compare_limit: Maximum number of designs shown side by side.
        hover_preview: Whether gallery cards mount a live preview on hover.
        hover_unmount_delay_seconds: Delay before a hover preview is unmounted.
        default_status_filter: Status filter applied when the canvas opens.
    """

    compare_limit: int = Field(default=3, ge=2, le=3)
    hover_preview: bool = True
    hover_unmount_delay_seconds: float = Field(default=0.3, ge=0)
    default_status_filter: Literal[
        "active", "all", "draft", "review", "approved", "archived", "exported"
    ] = "active"


class MaintenanceSettings(DesignDeckBaseModel):
    """Bulk maintenance defaults.

    Attributes:
        archive_after_days: Age in days after which unapproved drafts are archived.
    """

    archive_after_days: int = Field(default=30, ge=0)


class LoggingSettings(DesignDeckBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    max_size_mb: int = 10
    backup_count: int = 5


class CLIOptions(DesignDeckBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class DesignDeckConfig(DesignDeckBaseModel):
    """Top-level configuration struct for designdeck.

    Attributes:
        workspace: On-disk layout settings.
        watch: Filesystem monitor settings.
        catalog: Catalog builder settings.
        canvas: Presentation defaults.
        maintenance: Bulk maintenance settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    workspace: WorkspaceSettings = Field(default_factory=WorkspaceSettings)
    watch: WatchSettings = Field(default_factory=WatchSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    canvas: CanvasSettings = Field(default_factory=CanvasSettings)
    maintenance: MaintenanceSettings = Field(default_factory=MaintenanceSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "DesignDeckBaseModel",
    "WorkspaceSettings",
    "WatchSettings",
    "CatalogSettings",
    "CanvasSettings",
    "MaintenanceSettings",
    "LoggingSettings",
    "CLIOptions",
    "DesignDeckConfig",
]
