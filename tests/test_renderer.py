"""Bounded renderer tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from designdeck.catalog import DesignRecord
from designdeck.config.models import CanvasSettings
from designdeck.metadata import DesignStatus
from designdeck.view import BoundedRenderer, ViewMode, ViewStateMachine


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def _record(design_id: str, parent: str | None = None, archived: bool = False) -> DesignRecord:
    status = DesignStatus.ARCHIVED if archived else DesignStatus.DRAFT
    return DesignRecord(
        id=design_id,
        file_name=f"{design_id}.html",
        file_path=f"file:///tmp/{design_id}.html",
        modified_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        timestamp=0.0,
        status=status,
        stored_status=status,
        parent_design=parent,
    )


def _machine() -> ViewStateMachine:
    machine = ViewStateMachine()
    machine.apply_catalog(
        [
            _record("home"),
            _record("home_1", parent="home"),
            _record("home_2", parent="home"),
            _record("login"),
            _record("old", archived=True),
        ]
    )
    return machine


def test_gallery_mounts_nothing_live_without_hover() -> None:
    plan = BoundedRenderer().plan(_machine())

    assert plan.mode == ViewMode.GALLERY
    assert plan.live == ()
    assert plan.cards == ("home", "home_1", "home_2", "login")


def test_hover_preview_mounts_one_and_unmounts_after_delay() -> None:
    clock = FakeClock()
    renderer = BoundedRenderer(hover_unmount_delay=0.3, clock=clock)
    machine = _machine()

    renderer.hover_enter("login")
    assert renderer.plan(machine).live == ("login",)
    assert "login" not in renderer.plan(machine).cards

    renderer.hover_leave("login")
    clock.now += 0.1
    assert renderer.plan(machine).live == ("login",)

    clock.now += 0.3
    assert renderer.plan(machine).live == ()
    assert renderer.hovered() is None


def test_hover_on_filtered_out_design_is_not_mounted() -> None:
    renderer = BoundedRenderer()
    renderer.hover_enter("old")

    assert renderer.plan(_machine()).live == ()


def test_hover_preview_can_be_disabled() -> None:
    renderer = BoundedRenderer(hover_preview=False)
    renderer.hover_enter("login")

    assert renderer.plan(_machine()).live == ()


def test_compare_mounts_compare_set() -> None:
    machine = _machine()
    machine.compare(["home", "home_1", "login"])

    plan = BoundedRenderer().plan(machine)

    assert plan.live == ("home", "home_1", "login")
    assert plan.cards == ()


def test_live_surfaces_are_capped() -> None:
    machine = _machine()
    machine.compare(["home", "home_1", "login"])

    assert BoundedRenderer(max_live=2).plan(machine).live == ("home", "home_1")


def test_studio_mounts_focus_and_lists_variations() -> None:
    machine = _machine()
    machine.open_in_studio("home")

    plan = BoundedRenderer().plan(machine)

    assert plan.live == ("home",)
    assert plan.cards == ("home_1", "home_2")


def test_from_settings_and_validation() -> None:
    renderer = BoundedRenderer.from_settings(CanvasSettings(compare_limit=2))

    assert renderer.max_live == 2
    with pytest.raises(ValueError):
        BoundedRenderer(max_live=0)
