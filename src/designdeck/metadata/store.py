"""Cached, file-backed metadata table."""

from __future__ import annotations

import json
import logging
import os
import re
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional

from pydantic import ValidationError

from .errors import MetadataPersistenceError
from .models import (
    SCHEMA_VERSION,
    DesignMetadata,
    DesignStatus,
    MetadataTable,
    create_default_metadata,
    utcnow,
)

LOGGER = logging.getLogger(__name__)

_VARIATION_PATTERN = re.compile(r"^(?P<base>.+)_(?P<index>\d+)(?P<ext>\.[^.]+)$")


def infer_parent(file_name: str, known: Iterable[str]) -> Optional[str]:
    """Infer the parent of a variation from the ``<base>_<n>.<ext>`` convention.

    ``login_3_1.html`` descends from ``login_3.html`` when that file is known.

    Args:
        file_name: Name of the (possible) variation.
        known: Names of documents that currently exist.

    Returns:
        Optional[str]: Parent file name, or ``None`` when no parent is present.
    """
    match = _VARIATION_PATTERN.match(file_name)
    if match is None:
        return None
    candidate = f"{match.group('base')}{match.group('ext')}"
    if candidate == file_name or candidate not in set(known):
        return None
    return candidate


class MetadataStore:
    """Single source of truth for design lifecycle metadata.

    The table is loaded lazily, cached in memory, and reloaded when the file
    on disk changes behind the store's back. Every mutation works on a copy of
    the cached table and only replaces the cache after the copy has been
    written atomically, so a failed write never corrupts what readers see.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the store.

        Args:
            path: Location of the JSON metadata file.
        """
        self._path = path
        self._lock = threading.RLock()
        self._cache: MetadataTable | None = None
        self._signature: tuple[int, int] | None = None

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------ #
    # Loading and persistence                                            #
    # ------------------------------------------------------------------ #

    def load(self) -> MetadataTable:
        """Return the cached table, reloading it if the file changed on disk.

        Returns:
            MetadataTable: Current table. Callers must treat it as read-only.
        """
        with self._lock:
            return self._load_locked()

    def clear_cache(self) -> None:
        """Drop the cached table so the next access reloads from disk."""
        with self._lock:
            self._cache = None
            self._signature = None

    def _load_locked(self) -> MetadataTable:
        signature = self._file_signature()
        if self._cache is not None and signature == self._signature:
            return self._cache

        self._cache = self._read_table()
        self._signature = signature
        return self._cache

    def _read_table(self) -> MetadataTable:
        if not self._path.exists():
            LOGGER.info("Metadata file not found at %s; starting with an empty table", self._path)
            return MetadataTable()

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            LOGGER.warning("Invalid metadata file %s (%s); using an empty table", self._path, exc)
            return MetadataTable()

        if (
            not isinstance(raw, dict)
            or not isinstance(raw.get("designs"), dict)
            or not isinstance(raw.get("version"), str)
        ):
            LOGGER.warning("Invalid metadata store format in %s; using an empty table", self._path)
            return MetadataTable()

        designs: dict[str, DesignMetadata] = {}
        for name, entry in raw["designs"].items():
            if isinstance(entry, dict):
                entry = {"fileName": name, **entry}
            try:
                designs[name] = DesignMetadata.model_validate(entry)
            except ValidationError as exc:
                LOGGER.warning("Dropping malformed metadata record for %s: %s", name, exc)

        last_updated = raw.get("lastUpdated")
        if last_updated is not None:
            try:
                return MetadataTable(
                    version=raw["version"], designs=designs, last_updated=last_updated
                )
            except ValidationError:
                LOGGER.warning("Ignoring invalid lastUpdated value in %s", self._path)
        return MetadataTable(version=raw["version"], designs=designs)

    def _file_signature(self) -> tuple[int, int] | None:
        try:
            stat = self._path.stat()
        except OSError:
            return None
        return stat.st_mtime_ns, stat.st_size

    def _persist(self, table: MetadataTable) -> None:
        table.last_updated = utcnow()
        table.version = table.version or SCHEMA_VERSION
        payload = table.model_dump(mode="json", by_alias=True, exclude_none=True)
        tmp_path = self._path.with_name(f".{self._path.name}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as exc:
            LOGGER.error("Failed to save metadata to %s: %s", self._path, exc)
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                pass
            raise MetadataPersistenceError(
                f"Failed to save metadata to {self._path}: {exc}"
            ) from exc

        self._cache = table
        self._signature = self._file_signature()
        LOGGER.debug("Metadata saved to %s (%d records)", self._path, len(table.designs))

    @contextmanager
    def _transaction(self) -> Iterator[MetadataTable]:
        """Yield a working copy of the table and persist it if it changed."""
        with self._lock:
            current = self._load_locked()
            working = current.model_copy(deep=True)
            yield working
            if working != current:
                self._persist(working)

    # ------------------------------------------------------------------ #
    # Record access                                                      #
    # ------------------------------------------------------------------ #

    def get(self, name: str) -> DesignMetadata | None:
        """Return a copy of the record for ``name`` or ``None``."""
        record = self.load().designs.get(name)
        return record.model_copy(deep=True) if record is not None else None

    def names(self) -> list[str]:
        return sorted(self.load().designs)

    def set(self, name: str, record: DesignMetadata) -> DesignMetadata:
        """Store ``record`` under ``name``, refreshing its ``updated_at``.

        Raises:
            MetadataPersistenceError: If the table cannot be written.
        """
        with self._transaction() as table:
            stored = record.model_copy(deep=True)
            stored.file_name = name
            previous = table.designs.get(name)
            if previous is not None and previous.updated_at > stored.updated_at:
                stored.updated_at = previous.updated_at
            stored.touch()
            table.designs[name] = stored
        return stored.model_copy(deep=True)

    def apply_default(self, name: str, known: Iterable[str] | None = None) -> DesignMetadata:
        """Create a ``draft`` record for ``name`` unless one already exists.

        Args:
            name: Design file name.
            known: Names of existing documents used to infer lineage.

        Returns:
            DesignMetadata: The existing or newly created record.
        """
        with self._transaction() as table:
            record = table.designs.get(name)
            if record is None:
                parent = infer_parent(name, known) if known is not None else None
                record = create_default_metadata(name, parent_design=parent)
                table.designs[name] = record
                LOGGER.info("Initialized metadata for %s", name)
        return record.model_copy(deep=True)

    def delete(self, name: str) -> bool:
        """Remove the record for ``name``; return whether one existed."""
        with self._transaction() as table:
            removed = table.designs.pop(name, None) is not None
        if removed:
            LOGGER.info("Removed metadata for %s", name)
        return removed

    def update_status(self, name: str, status: DesignStatus | str) -> DesignMetadata:
        """Set the status of ``name``, creating a default record if needed."""
        status = DesignStatus(status)
        with self._transaction() as table:
            record = self._ensure(table, name)
            record.status = status
            record.touch()
        LOGGER.info("Updated status for %s: %s", name, status.value)
        return record.model_copy(deep=True)

    def add_tag(self, name: str, tag: str) -> DesignMetadata:
        tag = tag.strip()
        if not tag:
            raise ValueError("Tag must not be empty.")
        with self._transaction() as table:
            record = self._ensure(table, name)
            if tag not in record.tags:
                record.tags.append(tag)
                record.touch()
                LOGGER.info("Added tag '%s' to %s", tag, name)
        return record.model_copy(deep=True)

    def remove_tag(self, name: str, tag: str) -> DesignMetadata | None:
        with self._transaction() as table:
            record = table.designs.get(name)
            if record is not None and tag in record.tags:
                record.tags = [existing for existing in record.tags if existing != tag]
                record.touch()
                LOGGER.info("Removed tag '%s' from %s", tag, name)
        return record.model_copy(deep=True) if record is not None else None

    def update_notes(self, name: str, notes: str) -> DesignMetadata:
        with self._transaction() as table:
            record = self._ensure(table, name)
            record.notes = notes
            record.touch()
        LOGGER.info("Updated notes for %s", name)
        return record.model_copy(deep=True)

    def set_parent(self, name: str, parent: str | None) -> DesignMetadata:
        if parent == name:
            raise ValueError("A design cannot be its own parent.")
        with self._transaction() as table:
            record = self._ensure(table, name)
            record.parent_design = parent
            record.touch()
        return record.model_copy(deep=True)

    def mark_exported(self, name: str, destination: str) -> DesignMetadata:
        """Record that ``name`` was exported to ``destination``."""
        with self._transaction() as table:
            record = self._ensure(table, name)
            record.status = DesignStatus.EXPORTED
            record.exported_to = destination
            record.touch()
        LOGGER.info("Marked %s as exported to %s", name, destination)
        return record.model_copy(deep=True)

    def bump_version(self, name: str) -> DesignMetadata:
        """Increment the iteration counter of ``name``."""
        with self._transaction() as table:
            record = self._ensure(table, name)
            record.version = (record.version or 0) + 1
            record.touch()
        return record.model_copy(deep=True)

    # ------------------------------------------------------------------ #
    # Queries                                                            #
    # ------------------------------------------------------------------ #

    def list_by_status(self, status: DesignStatus | str) -> list[DesignMetadata]:
        status = DesignStatus(status)
        return [
            record.model_copy(deep=True)
            for record in self.load().designs.values()
            if record.status == status
        ]

    def list_by_tag(self, tag: str) -> list[DesignMetadata]:
        return [
            record.model_copy(deep=True)
            for record in self.load().designs.values()
            if tag in record.tags
        ]

    def all_tags(self) -> list[str]:
        tags: set[str] = set()
        for record in self.load().designs.values():
            tags.update(record.tags)
        return sorted(tags)

    # ------------------------------------------------------------------ #
    # Reconciliation                                                     #
    # ------------------------------------------------------------------ #

    def reconcile(self, names: Iterable[str]) -> int:
        """Seed default records for documents that have none.

        Records whose documents are missing are kept; the document may only
        have moved to the archive directory.

        Returns:
            int: Number of records created.
        """
        present = sorted(set(names))
        added = 0
        with self._transaction() as table:
            for name in present:
                if name in table.designs:
                    continue
                table.designs[name] = create_default_metadata(
                    name, parent_design=infer_parent(name, present)
                )
                added += 1
        if added:
            LOGGER.info("Initialized metadata for %d existing designs", added)
        return added

    @staticmethod
    def _ensure(table: MetadataTable, name: str) -> DesignMetadata:
        record = table.designs.get(name)
        if record is None:
            record = create_default_metadata(name)
            table.designs[name] = record
        return record


__all__ = ["MetadataStore", "infer_parent"]
