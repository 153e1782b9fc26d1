"""Catalog entry models sent to the presentation process."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from designdeck.metadata import DesignStatus


class Viewport(str, Enum):
    """Device class a design targets."""

    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"


def classify_viewport(file_name: str) -> Viewport:
    """Infer the viewport from naming conventions such as ``login_mobile.html``."""
    lowered = file_name.lower()
    if "mobile" in lowered:
        return Viewport.MOBILE
    if "tablet" in lowered:
        return Viewport.TABLET
    return Viewport.DESKTOP


def display_status(status: DesignStatus) -> DesignStatus:
    """Map a stored status to its display bucket (``exported`` shows as ``archived``)."""
    if status == DesignStatus.EXPORTED:
        return DesignStatus.ARCHIVED
    return status


class DesignRecord(BaseModel):
    """A design document joined with its metadata.

    ``status`` is the display bucket; ``stored_status`` keeps the persisted
    value so nothing is lost when ``exported`` is shown as ``archived``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    file_name: str
    file_path: str
    content: str = ""
    size_bytes: int = 0
    modified_at: datetime
    timestamp: float
    viewport: Viewport = Viewport.DESKTOP
    status: DesignStatus = DesignStatus.DRAFT
    stored_status: DesignStatus = DesignStatus.DRAFT
    parent_design: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    notes: str = ""
    version: Optional[int] = None
    is_primary: bool = False
    location: Literal["designs", "archive"] = "designs"


def design_id(file_name: str) -> str:
    """Return the catalog identifier (file stem) for ``file_name``."""
    stem, dot, _ = file_name.rpartition(".")
    return stem if dot else file_name


__all__ = ["DesignRecord", "Viewport", "classify_viewport", "design_id", "display_status"]
