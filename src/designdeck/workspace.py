"""Workspace layout and small host-side persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Protocol, runtime_checkable

from designdeck.config.models import WorkspaceSettings

LOGGER = logging.getLogger(__name__)


def validate_design_name(name: str) -> str:
    """Return ``name`` if it is a bare file name inside the design directory.

    Raises:
        ValueError: If the name is empty or points outside the directory.
    """
    if not name or name in {".", ".."}:
        raise ValueError("Design name must not be empty.")
    if "/" in name or "\\" in name or name != Path(name).name:
        raise ValueError(f"Design name must be a bare file name: {name!r}")
    return name


class WorkspaceLayout:
    """Resolve the on-disk locations used by a designdeck workspace."""

    def __init__(self, root: Path, settings: WorkspaceSettings | None = None) -> None:
        """Initialize the layout.

        Args:
            root: Workspace root containing the state directory.
            settings: Directory and file names; defaults apply when omitted.
        """
        self._root = root.expanduser().resolve()
        self._settings = settings or WorkspaceSettings()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def settings(self) -> WorkspaceSettings:
        return self._settings

    @property
    def extensions(self) -> tuple[str, ...]:
        return tuple(self._settings.extensions)

    @property
    def state_dir(self) -> Path:
        return self._root / self._settings.state_dirname

    @property
    def designs_dir(self) -> Path:
        return self.state_dir / self._settings.designs_dirname

    @property
    def archive_dir(self) -> Path:
        return self.state_dir / self._settings.archive_dirname

    @property
    def metadata_path(self) -> Path:
        return self.state_dir / self._settings.metadata_filename

    @property
    def canvas_state_path(self) -> Path:
        return self.state_dir / self._settings.canvas_state_filename

    @property
    def log_path(self) -> Path:
        return self.state_dir / self._settings.log_filename

    def initialize(self) -> Path:
        """Create the state, design and archive directories if missing.

        Returns:
            Path: The state directory.
        """
        self.designs_dir.mkdir(parents=True, exist_ok=True)
        self.archive_dir.mkdir(parents=True, exist_ok=True)
        return self.state_dir

    def design_path(self, name: str) -> Path:
        return self.designs_dir / validate_design_name(name)

    def archive_path(self, name: str) -> Path:
        return self.archive_dir / validate_design_name(name)

    def is_design_file(self, path: Path) -> bool:
        """Return whether ``path`` has one of the tracked extensions."""
        return path.suffix.lower() in self.extensions

    def list_design_files(self, directory: Path | None = None) -> list[Path]:
        """List tracked documents directly inside ``directory``.

        Hidden files and subdirectories are ignored. A missing directory yields
        an empty list.
        """
        directory = directory or self.designs_dir
        if not directory.is_dir():
            return []
        files: list[Path] = []
        for path in directory.iterdir():
            if path.name.startswith("."):
                continue
            if not self.is_design_file(path):
                continue
            try:
                if not path.is_file():
                    continue
            except OSError:
                continue
            files.append(path)
        return sorted(files)


@runtime_checkable
class DesignUrlProvider(Protocol):
    """Resolve a URL the presentation process can load a design from."""

    def get_design_url(self, file_name: str) -> str: ...


class FileUrlProvider:
    """Serve designs as ``file://`` URIs straight from the design directory."""

    def __init__(self, layout: WorkspaceLayout) -> None:
        self._layout = layout

    def get_design_url(self, file_name: str) -> str:
        return self._layout.design_path(file_name).as_uri()


class PrimaryPointer:
    """Persist the single primary-design pointer for a workspace.

    The stored value is only a hint; callers validate it against the live
    catalog before trusting it.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> str | None:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.warning("Ignoring unreadable canvas state at %s: %s", self._path, exc)
            return None
        value = data.get("primaryDesign") if isinstance(data, dict) else None
        return value if isinstance(value, str) and value else None

    def save(self, design_id: str | None) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(f".{self._path.name}.tmp")
        tmp_path.write_text(json.dumps({"primaryDesign": design_id}, indent=2), encoding="utf-8")
        os.replace(tmp_path, self._path)


__all__ = [
    "DesignUrlProvider",
    "FileUrlProvider",
    "PrimaryPointer",
    "WorkspaceLayout",
    "validate_design_name",
]
