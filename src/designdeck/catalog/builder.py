"""Build the catalog pushed to the presentation process."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from designdeck.metadata import DesignMetadata, MetadataStore, create_default_metadata
from designdeck.workspace import (
    DesignUrlProvider,
    FileUrlProvider,
    WorkspaceLayout,
    validate_design_name,
)

from .models import DesignRecord, classify_viewport, design_id, display_status
from .styles import (
    DEFAULT_SUBSTITUTIONS,
    CssSubstitution,
    inline_stylesheets,
    transform_unsupported_css,
)

LOGGER = logging.getLogger(__name__)


class CatalogBuilder:
    """Join on-disk design documents with their metadata.

    Building never writes to the metadata store: documents without a record
    are shown with a default ``draft`` view and get their record from the
    watcher or the next reconciliation.
    """

    def __init__(
        self,
        layout: WorkspaceLayout,
        store: MetadataStore,
        *,
        url_provider: DesignUrlProvider | None = None,
        inline_styles: bool = True,
        css_compat: bool = True,
        substitutions: Iterable[CssSubstitution] = DEFAULT_SUBSTITUTIONS,
    ) -> None:
        """Initialize the builder.

        Args:
            layout: Workspace layout providing the document directories.
            store: Metadata store joined against each document.
            url_provider: Resolves the URL recorded on each entry.
            inline_styles: Whether relative stylesheets are inlined.
            css_compat: Whether unsupported CSS is rewritten.
            substitutions: Substitution table used when ``css_compat`` is set.
        """
        self._layout = layout
        self._store = store
        self._url_provider = url_provider or FileUrlProvider(layout)
        self._inline_styles = inline_styles
        self._css_compat = css_compat
        self._substitutions = tuple(substitutions)

    def build(
        self,
        primary_id: Optional[str] = None,
        include_archived: bool = False,
    ) -> list[DesignRecord]:
        """Return the catalog ordered newest first.

        Args:
            primary_id: Identifier flagged as primary when present in the catalog.
            include_archived: Whether documents in the archive directory are listed.

        Returns:
            list[DesignRecord]: Catalog entries sorted by modification time.
        """
        table = self._store.load()
        records: list[DesignRecord] = []
        sources: list[tuple[Path, str]] = [
            (path, "designs") for path in self._layout.list_design_files()
        ]
        if include_archived:
            sources.extend(
                (path, "archive")
                for path in self._layout.list_design_files(self._layout.archive_dir)
            )

        seen: set[str] = set()
        for path, location in sources:
            if path.name in seen:
                continue
            metadata = table.designs.get(path.name)
            record = self._build_record(path, location, metadata, primary_id)
            if record is None:
                continue
            seen.add(path.name)
            records.append(record)

        records.sort(key=lambda item: (-item.timestamp, item.id))
        LOGGER.debug("Built catalog with %d designs", len(records))
        return records

    def resolve(self, identifier: str) -> Optional[str]:
        """Map a catalog identifier (or file name) to an existing file name."""
        try:
            validate_design_name(identifier)
        except ValueError:
            return None
        candidates: list[str] = []
        if Path(identifier).suffix.lower() in self._layout.extensions:
            candidates.append(identifier)
        candidates.extend(f"{identifier}{ext}" for ext in self._layout.extensions)
        for directory in (self._layout.designs_dir, self._layout.archive_dir):
            for candidate in candidates:
                try:
                    if (directory / candidate).is_file():
                        return candidate
                except OSError:
                    continue
        return None

    def _build_record(
        self,
        path: Path,
        location: str,
        metadata: Optional[DesignMetadata],
        primary_id: Optional[str],
    ) -> Optional[DesignRecord]:
        try:
            stat = path.stat()
            body = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.warning("Skipping unreadable design %s: %s", path, exc)
            return None

        if self._inline_styles:
            body = inline_stylesheets(body, path.parent)
        if self._css_compat:
            body = transform_unsupported_css(body, self._substitutions)

        if metadata is None:
            metadata = create_default_metadata(path.name)

        identifier = design_id(path.name)
        if location == "designs":
            url = self._url_provider.get_design_url(path.name)
        else:
            url = path.as_uri()
        parent = design_id(metadata.parent_design) if metadata.parent_design else None

        return DesignRecord(
            id=identifier,
            file_name=path.name,
            file_path=url,
            content=body,
            size_bytes=stat.st_size,
            modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            timestamp=stat.st_mtime * 1000,
            viewport=classify_viewport(path.name),
            status=display_status(metadata.status),
            stored_status=metadata.status,
            parent_design=parent,
            tags=list(metadata.tags),
            notes=metadata.notes,
            version=metadata.version,
            is_primary=primary_id is not None and primary_id == identifier,
            location=location,
        )


__all__ = ["CatalogBuilder"]
