"""Presentation-side view state, rendering bounds and channel client."""

from .client import CanvasClient
from .renderer import BoundedRenderer, RenderPlan
from .session import FileSessionCache, MemorySessionCache, SessionCache
from .state import (
    MAX_COMPARE,
    Filters,
    ViewMode,
    ViewState,
    ViewStateError,
    ViewStateMachine,
    matches_filters,
)

__all__ = [
    "BoundedRenderer",
    "CanvasClient",
    "FileSessionCache",
    "Filters",
    "MAX_COMPARE",
    "MemorySessionCache",
    "RenderPlan",
    "SessionCache",
    "ViewMode",
    "ViewState",
    "ViewStateError",
    "ViewStateMachine",
    "matches_filters",
]
