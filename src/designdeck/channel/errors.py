"""Synchronization channel errors."""


class ChannelError(Exception):
    """Raised when a channel message cannot be decoded or validated."""
