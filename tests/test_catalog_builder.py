"""Catalog builder tests."""

from __future__ import annotations

import os
from pathlib import Path

from designdeck.catalog import CatalogBuilder, Viewport, classify_viewport, design_id
from designdeck.metadata import DesignLifecycle, DesignStatus, MetadataStore
from designdeck.workspace import WorkspaceLayout


def _setup(tmp_path: Path) -> tuple[WorkspaceLayout, MetadataStore, CatalogBuilder]:
    layout = WorkspaceLayout(tmp_path)
    layout.initialize()
    store = MetadataStore(layout.metadata_path)
    return layout, store, CatalogBuilder(layout, store)


def _write(directory: Path, name: str, body: str = "<p/>", mtime: float | None = None) -> Path:
    path = directory / name
    path.write_text(body, encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def test_catalog_is_ordered_newest_first(tmp_path: Path) -> None:
    layout, _, builder = _setup(tmp_path)
    _write(layout.designs_dir, "old.html", mtime=1_000_000)
    _write(layout.designs_dir, "new.html", mtime=3_000_000)
    _write(layout.designs_dir, "mid.html", mtime=2_000_000)

    designs = builder.build()

    assert [d.id for d in designs] == ["new", "mid", "old"]
    assert designs[0].timestamp == 3_000_000 * 1000


def test_build_does_not_write_metadata(tmp_path: Path) -> None:
    layout, store, builder = _setup(tmp_path)
    _write(layout.designs_dir, "fresh.html")

    designs = builder.build()

    assert designs[0].status == DesignStatus.DRAFT
    assert not store.path.exists()


def test_metadata_is_joined(tmp_path: Path) -> None:
    layout, store, builder = _setup(tmp_path)
    _write(layout.designs_dir, "login.html")
    _write(layout.designs_dir, "login_1.html")
    store.reconcile(["login.html", "login_1.html"])
    store.update_status("login.html", DesignStatus.REVIEW)
    store.add_tag("login.html", "auth")
    store.update_notes("login.html", "Split layout")

    by_id = {d.id: d for d in builder.build(primary_id="login")}

    login = by_id["login"]
    assert login.status == DesignStatus.REVIEW
    assert login.tags == ["auth"]
    assert login.notes == "Split layout"
    assert login.is_primary is True
    assert by_id["login_1"].parent_design == "login"
    assert by_id["login_1"].is_primary is False


def test_exported_is_shown_as_archived(tmp_path: Path) -> None:
    layout, store, builder = _setup(tmp_path)
    _write(layout.designs_dir, "card.html")
    store.mark_exported("card.html", "/tmp/card.html")

    (record,) = builder.build()

    assert record.status == DesignStatus.ARCHIVED
    assert record.stored_status == DesignStatus.EXPORTED


def test_viewport_is_classified_from_name(tmp_path: Path) -> None:
    layout, _, builder = _setup(tmp_path)
    _write(layout.designs_dir, "home_mobile.html")
    _write(layout.designs_dir, "home_Tablet.html")
    _write(layout.designs_dir, "home.html")

    viewports = {d.file_name: d.viewport for d in builder.build()}

    assert viewports == {
        "home_mobile.html": Viewport.MOBILE,
        "home_Tablet.html": Viewport.TABLET,
        "home.html": Viewport.DESKTOP,
    }
    assert classify_viewport("dashboard.htm") == Viewport.DESKTOP


def test_archive_is_listed_only_on_request(tmp_path: Path) -> None:
    layout, store, builder = _setup(tmp_path)
    _write(layout.designs_dir, "keep.html")
    _write(layout.designs_dir, "old.html")
    DesignLifecycle(layout, store).archive("old.html")

    assert [d.id for d in builder.build()] == ["keep"]
    archived = {d.id: d for d in builder.build(include_archived=True)}
    assert archived["old"].location == "archive"
    assert archived["old"].status == DesignStatus.ARCHIVED


def test_content_is_made_self_contained(tmp_path: Path) -> None:
    layout, _, builder = _setup(tmp_path)
    _write(layout.designs_dir, "theme.css", "h1 { color: oklch(1.0000 0 0); }")
    _write(layout.designs_dir, "page.html", '<link rel="stylesheet" href="theme.css"><h1/>')

    (record,) = builder.build()

    assert "<style>" in record.content
    assert "rgb(255, 255, 255)" in record.content
    assert record.file_path.startswith("file://")


def test_serialized_record_uses_camel_case(tmp_path: Path) -> None:
    layout, _, builder = _setup(tmp_path)
    _write(layout.designs_dir, "page.html")

    payload = builder.build()[0].model_dump(mode="json", by_alias=True)

    assert {"fileName", "filePath", "isPrimary", "parentDesign", "storedStatus"} <= set(payload)


def test_resolve_maps_ids_and_rejects_traversal(tmp_path: Path) -> None:
    layout, store, builder = _setup(tmp_path)
    _write(layout.designs_dir, "home.html")
    _write(layout.designs_dir, "old.html")
    DesignLifecycle(layout, store).archive("old.html")

    assert builder.resolve("home") == "home.html"
    assert builder.resolve("home.html") == "home.html"
    assert builder.resolve("old") == "old.html"
    assert builder.resolve("ghost") is None
    assert builder.resolve("../home") is None


def test_design_id_strips_extension() -> None:
    assert design_id("login_2.html") == "login_2"
    assert design_id("README") == "README"
