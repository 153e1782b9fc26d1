"""Design lifecycle metadata: persisted store and file-moving operations."""

from .errors import DesignNotFoundError, MetadataError, MetadataPersistenceError
from .lifecycle import DesignLifecycle
from .models import (
    SCHEMA_VERSION,
    DesignMetadata,
    DesignStatus,
    MetadataTable,
    create_default_metadata,
)
from .store import MetadataStore, infer_parent

__all__ = [
    "SCHEMA_VERSION",
    "DesignLifecycle",
    "DesignMetadata",
    "DesignNotFoundError",
    "DesignStatus",
    "MetadataError",
    "MetadataPersistenceError",
    "MetadataStore",
    "MetadataTable",
    "create_default_metadata",
    "infer_parent",
]
