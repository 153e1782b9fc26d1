"""Filesystem monitoring for design documents."""

from .service import ChangeCallback, ChangeCoalescer, ChangeEvent, ChangeKind, DesignWatcher

__all__ = ["ChangeCallback", "ChangeCoalescer", "ChangeEvent", "ChangeKind", "DesignWatcher"]
