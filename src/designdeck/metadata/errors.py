"""Metadata management errors."""


class MetadataError(Exception):
    """Base exception for metadata store operations."""


class MetadataPersistenceError(MetadataError):
    """Raised when the metadata table cannot be written to disk."""


class DesignNotFoundError(MetadataError):
    """Raised when a lifecycle operation targets a missing design file."""
