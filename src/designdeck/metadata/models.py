"""Metadata models persisted in ``design_metadata.json``."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = "1.0.0"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DesignStatus(str, Enum):
    """Lifecycle states a design can be in."""

    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    ARCHIVED = "archived"
    EXPORTED = "exported"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("*", mode="after")
    @classmethod
    def _ensure_utc(cls, value):
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class DesignMetadata(_CamelModel):
    """Lifecycle metadata for a single design document."""

    file_name: str
    status: DesignStatus = DesignStatus.DRAFT
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    parent_design: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    notes: str = ""
    exported_to: Optional[str] = None
    version: Optional[int] = None

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, value: List[str]) -> List[str]:
        seen: list[str] = []
        for tag in value:
            tag = tag.strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen

    def touch(self) -> None:
        """Refresh ``updated_at`` without ever moving it backwards."""
        now = utcnow()
        self.updated_at = now if now > self.updated_at else self.updated_at


class MetadataTable(_CamelModel):
    """The persisted aggregate of all design metadata records."""

    version: str = SCHEMA_VERSION
    last_updated: datetime = Field(default_factory=utcnow)
    designs: Dict[str, DesignMetadata] = Field(default_factory=dict)


def create_default_metadata(file_name: str, parent_design: str | None = None) -> DesignMetadata:
    """Return a fresh ``draft`` record for ``file_name``."""
    now = utcnow()
    return DesignMetadata(
        file_name=file_name,
        status=DesignStatus.DRAFT,
        created_at=now,
        updated_at=now,
        parent_design=parent_design,
    )


__all__ = [
    "SCHEMA_VERSION",
    "DesignMetadata",
    "DesignStatus",
    "MetadataTable",
    "create_default_metadata",
    "utcnow",
]
