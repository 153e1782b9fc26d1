"""Decide which designs get a live rendering surface.

Live previews are expensive, so the number mounted at once is capped. The
gallery shows inert cards and at most one hovered preview; Compare mounts
the compare set; Studio mounts only the focused design.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

from designdeck.config.models import CanvasSettings

from .state import MAX_COMPARE, ViewMode, ViewStateMachine


@dataclass(frozen=True, slots=True)
class RenderPlan:
    """Surfaces to mount for the current view.

    Attributes:
        mode: Mode the plan was computed for.
        live: Design ids that receive a live rendering surface.
        cards: Design ids shown as inert cards.
    """

    mode: ViewMode
    live: tuple[str, ...]
    cards: tuple[str, ...]


class BoundedRenderer:
    """Compute render plans that never exceed ``max_live`` live surfaces."""

    def __init__(
        self,
        max_live: int = MAX_COMPARE,
        *,
        hover_preview: bool = True,
        hover_unmount_delay: float = 0.3,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_live < 1:
            raise ValueError("max_live must be at least 1")
        self._max_live = max_live
        self._hover_preview = hover_preview
        self._hover_unmount_delay = max(0.0, hover_unmount_delay)
        self._clock = clock
        self._hovered: Optional[str] = None
        self._left_at: Optional[float] = None

    @classmethod
    def from_settings(cls, settings: CanvasSettings) -> BoundedRenderer:
        return cls(
            settings.compare_limit,
            hover_preview=settings.hover_preview,
            hover_unmount_delay=settings.hover_unmount_delay_seconds,
        )

    @property
    def max_live(self) -> int:
        return self._max_live

    def hover_enter(self, design_id: str) -> None:
        self._hovered = design_id
        self._left_at = None

    def hover_leave(self, design_id: str) -> None:
        if self._hovered == design_id and self._left_at is None:
            self._left_at = self._clock()

    def hovered(self) -> Optional[str]:
        """Return the card whose hover preview is still mounted, if any."""
        if not self._hover_preview or self._hovered is None:
            return None
        if self._left_at is not None and self._clock() - self._left_at >= self._hover_unmount_delay:
            self._hovered = None
            self._left_at = None
        return self._hovered

    def plan(self, machine: ViewStateMachine) -> RenderPlan:
        """Return the render plan for the machine's current mode."""
        mode = machine.mode
        if mode == ViewMode.COMPARE:
            live = tuple(design.id for design in machine.compare_designs())
            cards: tuple[str, ...] = ()
        elif mode == ViewMode.STUDIO:
            focus = machine.studio_design()
            live = (focus.id,) if focus is not None else ()
            cards = tuple(v.id for v in machine.variations(focus.id)) if focus is not None else ()
        else:
            visible = [design.id for design in machine.filtered()]
            hovered = self.hovered()
            live = (hovered,) if hovered is not None and hovered in visible else ()
            cards = tuple(design_id for design_id in visible if design_id not in live)
        return RenderPlan(mode=mode, live=live[: self._max_live], cards=cards)


__all__ = ["BoundedRenderer", "RenderPlan"]
