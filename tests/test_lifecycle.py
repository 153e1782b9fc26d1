"""Lifecycle operation tests."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from designdeck.metadata import (
    DesignLifecycle,
    DesignMetadata,
    DesignNotFoundError,
    DesignStatus,
    MetadataStore,
)
from designdeck.workspace import WorkspaceLayout


def _setup(tmp_path: Path) -> tuple[WorkspaceLayout, MetadataStore, DesignLifecycle]:
    layout = WorkspaceLayout(tmp_path)
    layout.initialize()
    store = MetadataStore(layout.metadata_path)
    return layout, store, DesignLifecycle(layout, store)


def _write(layout: WorkspaceLayout, name: str, body: str = "<html></html>") -> Path:
    path = layout.design_path(name)
    path.write_text(body, encoding="utf-8")
    return path


def _seed_created(store: MetadataStore, name: str, *, days_ago: int) -> None:
    stamp = datetime.now(timezone.utc) - timedelta(days=days_ago)
    table = {"version": "1.0.0", "designs": {}}
    if store.path.exists():
        table = json.loads(store.path.read_text(encoding="utf-8"))
    record = DesignMetadata(file_name=name, created_at=stamp, updated_at=stamp)
    table["designs"][name] = record.model_dump(mode="json", by_alias=True, exclude_none=True)
    store.path.write_text(json.dumps(table), encoding="utf-8")
    store.clear_cache()


def test_archive_moves_file_and_sets_status(tmp_path: Path) -> None:
    layout, store, lifecycle = _setup(tmp_path)
    _write(layout, "hero.html", "<p>hero</p>")

    record = lifecycle.archive("hero.html")

    assert record.status == DesignStatus.ARCHIVED
    assert not layout.design_path("hero.html").exists()
    assert layout.archive_path("hero.html").read_text(encoding="utf-8") == "<p>hero</p>"
    assert lifecycle.locate("hero.html") == "archive"


def test_archive_missing_file_raises(tmp_path: Path) -> None:
    _, _, lifecycle = _setup(tmp_path)

    with pytest.raises(DesignNotFoundError):
        lifecycle.archive("ghost.html")


def test_archive_overwrites_existing_archive_copy(tmp_path: Path) -> None:
    layout, _, lifecycle = _setup(tmp_path)
    layout.archive_path("hero.html").write_text("old", encoding="utf-8")
    _write(layout, "hero.html", "new")

    lifecycle.archive("hero.html")

    assert layout.archive_path("hero.html").read_text(encoding="utf-8") == "new"


def test_restore_resets_status_to_draft(tmp_path: Path) -> None:
    layout, store, lifecycle = _setup(tmp_path)
    _write(layout, "hero.html")
    store.update_status("hero.html", DesignStatus.REVIEW)
    lifecycle.archive("hero.html")

    record = lifecycle.restore("hero.html")

    assert record.status == DesignStatus.DRAFT
    assert layout.design_path("hero.html").exists()
    assert not layout.archive_path("hero.html").exists()


def test_restore_rejects_archived_status(tmp_path: Path) -> None:
    layout, _, lifecycle = _setup(tmp_path)
    _write(layout, "hero.html")
    lifecycle.archive("hero.html")

    with pytest.raises(ValueError):
        lifecycle.restore("hero.html", DesignStatus.ARCHIVED)
    assert layout.archive_path("hero.html").exists()


def test_set_status_routes_across_archive_boundary(tmp_path: Path) -> None:
    layout, _, lifecycle = _setup(tmp_path)
    _write(layout, "hero.html")

    lifecycle.set_status("hero.html", "review")
    assert lifecycle.locate("hero.html") == "designs"

    lifecycle.set_status("hero.html", "archived")
    assert lifecycle.locate("hero.html") == "archive"

    record = lifecycle.set_status("hero.html", "approved")
    assert record.status == DesignStatus.APPROVED
    assert lifecycle.locate("hero.html") == "designs"


def test_delete_removes_file_and_record(tmp_path: Path) -> None:
    layout, store, lifecycle = _setup(tmp_path)
    _write(layout, "hero.html")
    store.apply_default("hero.html")

    assert lifecycle.delete("hero.html") is True
    assert not layout.design_path("hero.html").exists()
    assert store.get("hero.html") is None


def test_delete_tolerates_missing_file(tmp_path: Path) -> None:
    _, store, lifecycle = _setup(tmp_path)
    store.apply_default("ghost.html")

    assert lifecycle.delete("ghost.html") is False
    assert store.get("ghost.html") is None


def test_archive_older_than_skips_recent_and_approved(tmp_path: Path) -> None:
    layout, store, lifecycle = _setup(tmp_path)
    for name in ("old.html", "approved.html", "fresh.html", "missing.html"):
        if name != "missing.html":
            _write(layout, name)
    _seed_created(store, "old.html", days_ago=40)
    _seed_created(store, "approved.html", days_ago=40)
    _seed_created(store, "missing.html", days_ago=40)
    _seed_created(store, "fresh.html", days_ago=1)
    store.update_status("approved.html", DesignStatus.APPROVED)

    archived = lifecycle.archive_older_than(30)

    assert archived == 1
    assert lifecycle.locate("old.html") == "archive"
    assert lifecycle.locate("approved.html") == "designs"
    assert lifecycle.locate("fresh.html") == "designs"


def test_delete_all_archived(tmp_path: Path) -> None:
    layout, store, lifecycle = _setup(tmp_path)
    _write(layout, "a.html")
    _write(layout, "b.html")
    lifecycle.archive("a.html")
    lifecycle.archive("b.html")

    assert lifecycle.delete_all_archived() == 2
    assert store.list_by_status(DesignStatus.ARCHIVED) == []
    assert list(layout.archive_dir.iterdir()) == []


def test_design_names_must_be_bare(tmp_path: Path) -> None:
    _, _, lifecycle = _setup(tmp_path)

    with pytest.raises(ValueError):
        lifecycle.archive("../escape.html")
