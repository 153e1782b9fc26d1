"""View-state machine for the presentation process.

The machine holds only ephemeral view state: which mode is shown, which
designs are being compared or inspected, the filters, and the primary
design mirrored from the host. Every catalog received from the host is run
through a guard that drops references to designs that no longer exist, so
no mode is ever left pointing at a missing document.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Iterable, List, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from designdeck.catalog import DesignRecord
from designdeck.metadata import DesignStatus

from .session import SessionCache

LOGGER = logging.getLogger(__name__)

StatusFilter = Literal["active", "all", "draft", "review", "approved", "archived", "exported"]
ViewportFilter = Literal["all", "mobile", "tablet", "desktop"]

MAX_COMPARE = 3


class ViewStateError(Exception):
    """Raised when a transition is requested that the machine cannot honor."""


class ViewMode(str, Enum):
    GALLERY = "gallery"
    COMPARE = "compare"
    STUDIO = "studio"


class Filters(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    status: StatusFilter = "active"
    viewport: ViewportFilter = "all"
    search: str = ""


class ViewState(BaseModel):
    model_config = ConfigDict(extra="forbid")

    mode: ViewMode = ViewMode.GALLERY
    primary_id: Optional[str] = None
    compare_set: List[str] = Field(default_factory=list)
    studio_id: Optional[str] = None
    filters: Filters = Field(default_factory=Filters)


def matches_filters(record: DesignRecord, filters: Filters) -> bool:
    """Return whether ``record`` passes ``filters``.

    ``active`` hides the archived bucket, ``exported`` matches the stored
    status, and every other status matches the display bucket.
    """
    status = filters.status
    if status == "active":
        if record.status == DesignStatus.ARCHIVED:
            return False
    elif status == "exported":
        if record.stored_status != DesignStatus.EXPORTED:
            return False
    elif status != "all" and record.status.value != status:
        return False

    if filters.viewport != "all" and record.viewport.value != filters.viewport:
        return False

    search = filters.search.strip().lower()
    if search and search not in record.id.lower():
        return False
    return True


class ViewStateMachine:
    """Gallery / Compare / Studio state over the latest host catalog."""

    def __init__(
        self,
        session: Optional[SessionCache] = None,
        compare_limit: int = MAX_COMPARE,
        default_filters: Optional[Filters] = None,
    ) -> None:
        """Initialize the machine.

        Args:
            session: Cache the state is mirrored to after every transition.
            compare_limit: Maximum number of designs compared side by side.
            default_filters: Filters used until the user changes them.

        Raises:
            ValueError: If ``compare_limit`` is outside ``2..3``.
        """
        if not 2 <= compare_limit <= MAX_COMPARE:
            raise ValueError(f"compare_limit must be between 2 and {MAX_COMPARE}")
        self._session = session
        self._compare_limit = compare_limit
        self._state = ViewState(filters=(default_filters or Filters()).model_copy())
        self._designs: list[DesignRecord] = []
        self._index: dict[str, DesignRecord] = {}
        self._catalog_loaded = False

    # ------------------------------------------------------------------ #
    # Read access                                                        #
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> ViewState:
        return self._state.model_copy(deep=True)

    @property
    def mode(self) -> ViewMode:
        return self._state.mode

    @property
    def compare_limit(self) -> int:
        return self._compare_limit

    @property
    def compare_set(self) -> tuple[str, ...]:
        return tuple(self._state.compare_set)

    @property
    def studio_id(self) -> Optional[str]:
        return self._state.studio_id

    @property
    def filters(self) -> Filters:
        return self._state.filters.model_copy()

    @property
    def designs(self) -> list[DesignRecord]:
        return list(self._designs)

    @property
    def catalog_loaded(self) -> bool:
        return self._catalog_loaded

    @property
    def primary_id(self) -> Optional[str]:
        """Primary design id, or ``None`` if it is not in the current catalog."""
        primary = self._state.primary_id
        if primary is None or primary not in self._index:
            return None
        return primary

    def get(self, design_id: str) -> Optional[DesignRecord]:
        return self._index.get(design_id)

    def studio_design(self) -> Optional[DesignRecord]:
        if self._state.studio_id is None:
            return None
        return self._index.get(self._state.studio_id)

    def compare_designs(self) -> list[DesignRecord]:
        return [self._index[i] for i in self._state.compare_set if i in self._index]

    def filtered(self) -> list[DesignRecord]:
        """Return the catalog entries that pass the current filters."""
        return [d for d in self._designs if matches_filters(d, self._state.filters)]

    def variations(self, design_id: str) -> list[DesignRecord]:
        """Return designs whose parent is ``design_id``."""
        return [d for d in self._designs if d.parent_design == design_id]

    def parent(self, design_id: str) -> Optional[DesignRecord]:
        record = self._index.get(design_id)
        if record is None or record.parent_design is None:
            return None
        return self._index.get(record.parent_design)

    # ------------------------------------------------------------------ #
    # Catalog                                                            #
    # ------------------------------------------------------------------ #

    def apply_catalog(
        self, designs: Sequence[DesignRecord], primary_id: Optional[str] = None
    ) -> None:
        """Replace the catalog with the host's latest push.

        Args:
            designs: Full catalog as pushed by the host.
            primary_id: Primary design id reported with the catalog.
        """
        self._designs = list(designs)
        self._index = {design.id: design for design in self._designs}
        self._catalog_loaded = True
        self._state.primary_id = primary_id
        self._enforce_guard()
        self._persist()

    def _enforce_guard(self) -> None:
        state = self._state
        if state.primary_id is not None and state.primary_id not in self._index:
            state.primary_id = None
        kept = [i for i in state.compare_set if i in self._index]
        if kept != state.compare_set:
            LOGGER.debug("Dropped %d design(s) from compare", len(state.compare_set) - len(kept))
            state.compare_set = kept
        if state.studio_id is not None and state.studio_id not in self._index:
            LOGGER.debug("Studio design %s disappeared", state.studio_id)
            state.studio_id = None
        self._fall_back_to_gallery()

    def _fall_back_to_gallery(self) -> None:
        state = self._state
        if state.mode == ViewMode.STUDIO and state.studio_id is None:
            state.mode = ViewMode.GALLERY
        if state.mode == ViewMode.COMPARE and not state.compare_set:
            state.mode = ViewMode.GALLERY

    # ------------------------------------------------------------------ #
    # Transitions                                                        #
    # ------------------------------------------------------------------ #

    def open_in_studio(self, design_id: str) -> None:
        """Focus ``design_id`` in Studio mode."""
        self._require(design_id)
        self._state.studio_id = design_id
        self._state.mode = ViewMode.STUDIO
        self._persist()

    def select(self, design_id: str) -> None:
        """Open a gallery card; equivalent to :meth:`open_in_studio`."""
        self.open_in_studio(design_id)

    def compare(self, design_ids: Iterable[str]) -> None:
        """Compare the given designs side by side.

        Raises:
            ViewStateError: Unless 2 to ``compare_limit`` known ids are given.
        """
        ids = list(dict.fromkeys(design_ids))
        if not 2 <= len(ids) <= self._compare_limit:
            raise ViewStateError(
                f"Compare needs between 2 and {self._compare_limit} designs, got {len(ids)}"
            )
        for design_id in ids:
            self._require(design_id)
        self._state.compare_set = ids
        self._state.mode = ViewMode.COMPARE
        self._persist()

    def add_to_compare(self, design_id: str) -> None:
        """Add ``design_id`` to the compare set, evicting the oldest member."""
        self._require(design_id)
        members = self._state.compare_set
        if design_id not in members:
            members.append(design_id)
            while len(members) > self._compare_limit:
                evicted = members.pop(0)
                LOGGER.debug("Evicted %s from compare", evicted)
        self._state.mode = ViewMode.COMPARE
        self._persist()

    def remove_from_compare(self, design_id: str) -> None:
        members = self._state.compare_set
        if design_id in members:
            members.remove(design_id)
        if not members and self._state.mode == ViewMode.COMPARE:
            self._state.mode = ViewMode.GALLERY
        self._persist()

    def clear_compare(self) -> None:
        self._state.compare_set = []
        if self._state.mode == ViewMode.COMPARE:
            self._state.mode = ViewMode.GALLERY
        self._persist()

    def back(self) -> None:
        """Return to the gallery."""
        self._state.mode = ViewMode.GALLERY
        self._persist()

    def set_mode(self, mode: ViewMode | str, design_id: Optional[str] = None) -> None:
        """Switch modes, falling back to Gallery when the target has nothing to show."""
        mode = ViewMode(mode)
        if mode == ViewMode.STUDIO:
            target = design_id or self._state.studio_id
            if target is not None and (not self._catalog_loaded or target in self._index):
                self._state.studio_id = target
            else:
                mode = ViewMode.GALLERY
        elif mode == ViewMode.COMPARE and not self._state.compare_set:
            mode = ViewMode.GALLERY
        self._state.mode = mode
        self._persist()

    def set_primary(self, design_id: Optional[str], *, strict: bool = True) -> None:
        """Mirror the primary design.

        Args:
            design_id: New primary id, or ``None`` to clear.
            strict: Raise for ids missing from the catalog instead of storing them.
        """
        if design_id is not None and strict:
            self._require(design_id)
        self._state.primary_id = design_id
        self._persist()

    def set_filters(
        self,
        *,
        status: Optional[str] = None,
        viewport: Optional[str] = None,
        search: Optional[str] = None,
    ) -> None:
        """Update the gallery filters.

        Raises:
            ViewStateError: If a filter value is not recognized.
        """
        updates: dict[str, Any] = {}
        if status is not None:
            updates["status"] = status
        if viewport is not None:
            updates["viewport"] = viewport
        if search is not None:
            updates["search"] = search
        try:
            self._state.filters = Filters.model_validate(
                {**self._state.filters.model_dump(), **updates}
            )
        except ValidationError as exc:
            raise ViewStateError(f"Invalid filter: {exc}") from exc
        self._persist()

    # ------------------------------------------------------------------ #
    # Session                                                            #
    # ------------------------------------------------------------------ #

    def restore(self) -> bool:
        """Reload view state from the session cache.

        Returns:
            bool: Whether a saved state was applied. Malformed state is ignored.
        """
        if self._session is None:
            return False
        try:
            saved = self._session.load()
        except Exception as exc:
            LOGGER.warning("Failed to read view session: %s", exc)
            return False
        if not saved:
            return False
        try:
            state = ViewState.model_validate(saved)
        except ValidationError as exc:
            LOGGER.warning("Ignoring malformed view session: %s", exc)
            return False
        state.compare_set = list(dict.fromkeys(state.compare_set))[-self._compare_limit :]
        self._state = state
        if self._catalog_loaded:
            self._enforce_guard()
        else:
            self._fall_back_to_gallery()
        return True

    def _persist(self) -> None:
        if self._session is None:
            return
        try:
            self._session.save(self._state.model_dump(mode="json"))
        except Exception as exc:
            LOGGER.warning("Failed to save view session: %s", exc)

    def _require(self, design_id: str) -> None:
        if self._catalog_loaded and design_id not in self._index:
            raise ViewStateError(f"Unknown design: {design_id}")


__all__ = [
    "Filters",
    "MAX_COMPARE",
    "StatusFilter",
    "ViewMode",
    "ViewState",
    "ViewStateError",
    "ViewStateMachine",
    "ViewportFilter",
    "matches_filters",
]
