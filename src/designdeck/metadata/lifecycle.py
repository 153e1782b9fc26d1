"""Lifecycle operations that move design files and update their metadata."""

from __future__ import annotations

import logging
import shutil
from datetime import timedelta
from pathlib import Path
from typing import Literal, Optional

from designdeck.workspace import WorkspaceLayout

from .errors import DesignNotFoundError
from .models import DesignMetadata, DesignStatus, utcnow
from .store import MetadataStore

LOGGER = logging.getLogger(__name__)

Location = Literal["designs", "archive"]


def _relocate(source: Path, destination: Path) -> None:
    """Copy ``source`` over ``destination`` and only then delete ``source``."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, destination)
    source.unlink()


class DesignLifecycle:
    """Archive, restore and delete designs while keeping metadata in step."""

    def __init__(self, layout: WorkspaceLayout, store: MetadataStore) -> None:
        self._layout = layout
        self._store = store

    @property
    def store(self) -> MetadataStore:
        return self._store

    def locate(self, name: str) -> Optional[Location]:
        """Return where the file for ``name`` currently lives, if anywhere."""
        if self._layout.design_path(name).is_file():
            return "designs"
        if self._layout.archive_path(name).is_file():
            return "archive"
        return None

    def archive(self, name: str) -> DesignMetadata:
        """Move ``name`` into the archive directory and mark it archived.

        Raises:
            DesignNotFoundError: If the design file does not exist.
            OSError: If the file cannot be copied or removed.
            MetadataPersistenceError: If the status cannot be persisted.
        """
        source = self._layout.design_path(name)
        if not source.is_file():
            raise DesignNotFoundError(f"Design not found: {name}")
        try:
            _relocate(source, self._layout.archive_path(name))
        except OSError as exc:
            LOGGER.error("Failed to archive design %s: %s", name, exc)
            raise
        record = self._store.update_status(name, DesignStatus.ARCHIVED)
        LOGGER.info("Archived design: %s", name)
        return record

    def restore(self, name: str, status: DesignStatus = DesignStatus.DRAFT) -> DesignMetadata:
        """Move ``name`` back from the archive and reset its status.

        Raises:
            DesignNotFoundError: If no archived copy exists.
            ValueError: If ``status`` is ``archived``.
        """
        if status == DesignStatus.ARCHIVED:
            raise ValueError("A restored design cannot keep the archived status.")
        source = self._layout.archive_path(name)
        if not source.is_file():
            raise DesignNotFoundError(f"Archived design not found: {name}")
        try:
            _relocate(source, self._layout.design_path(name))
        except OSError as exc:
            LOGGER.error("Failed to restore design %s: %s", name, exc)
            raise
        record = self._store.update_status(name, status)
        LOGGER.info("Restored design from archive: %s", name)
        return record

    def set_status(self, name: str, status: DesignStatus | str) -> DesignMetadata:
        """Set the status of ``name``, moving its file when the archive boundary is crossed.

        Entering ``archived`` from the design directory archives the file;
        leaving ``archived`` while the file is in the archive restores it with
        the requested status. Any other change only updates metadata.
        """
        status = DesignStatus(status)
        location = self.locate(name)
        if status == DesignStatus.ARCHIVED and location == "designs":
            return self.archive(name)
        if status != DesignStatus.ARCHIVED and location == "archive":
            return self.restore(name, status)
        return self._store.update_status(name, status)

    def delete(self, name: str, from_archive: bool = False) -> bool:
        """Permanently delete a design file and its metadata.

        Returns:
            bool: Whether a file was removed. The metadata record is removed
            regardless, since an already-missing file has nothing left to track.
        """
        path = self._layout.archive_path(name) if from_archive else self._layout.design_path(name)
        removed = False
        try:
            path.unlink()
            removed = True
        except FileNotFoundError:
            LOGGER.info("Design file already absent: %s", path)
        self._store.delete(name)
        LOGGER.info("Deleted design: %s from %s", name, path.parent.name)
        return removed

    def archive_older_than(self, days: int) -> int:
        """Archive designs older than ``days`` that are neither approved nor archived.

        Returns:
            int: Number of designs archived.
        """
        cutoff = utcnow() - timedelta(days=days)
        archived = 0
        for name, record in sorted(self._store.load().designs.items()):
            if record.status in (DesignStatus.APPROVED, DesignStatus.ARCHIVED):
                continue
            if record.created_at >= cutoff:
                continue
            if not self._layout.design_path(name).is_file():
                continue
            try:
                self.archive(name)
            except Exception as exc:
                LOGGER.error("Failed to archive %s: %s", name, exc)
                continue
            archived += 1
        return archived

    def delete_all_archived(self) -> int:
        """Delete every archived design from the archive directory.

        Returns:
            int: Number of records removed.
        """
        deleted = 0
        for record in self._store.list_by_status(DesignStatus.ARCHIVED):
            try:
                self.delete(record.file_name, from_archive=True)
            except Exception as exc:
                LOGGER.error("Failed to delete archived design %s: %s", record.file_name, exc)
                continue
            deleted += 1
        return deleted


__all__ = ["DesignLifecycle", "Location"]
