"""Session persistence for presentation view state."""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol

LOGGER = logging.getLogger(__name__)


class SessionCache(Protocol):
    """Where the presentation side mirrors its view state between reloads."""

    def load(self) -> Optional[Mapping[str, Any]]: ...

    def save(self, state: Mapping[str, Any]) -> None: ...


class MemorySessionCache:
    """Keep the view state in memory for the lifetime of the process."""

    def __init__(self, initial: Optional[Mapping[str, Any]] = None) -> None:
        self._state: Optional[dict[str, Any]] = copy.deepcopy(dict(initial)) if initial else None

    def load(self) -> Optional[Mapping[str, Any]]:
        return copy.deepcopy(self._state) if self._state is not None else None

    def save(self, state: Mapping[str, Any]) -> None:
        self._state = copy.deepcopy(dict(state))


class FileSessionCache:
    """Mirror the view state to a JSON file so it survives restarts."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> Optional[Mapping[str, Any]]:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.warning("Ignoring unreadable view session at %s: %s", self._path, exc)
            return None
        return data if isinstance(data, dict) else None

    def save(self, state: Mapping[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(f".{self._path.name}.tmp")
        tmp_path.write_text(json.dumps(dict(state), indent=2), encoding="utf-8")
        os.replace(tmp_path, self._path)


__all__ = ["FileSessionCache", "MemorySessionCache", "SessionCache"]
