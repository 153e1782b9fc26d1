"""Metadata store tests."""

from __future__ import annotations

import json
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from designdeck.metadata import (
    DesignMetadata,
    DesignStatus,
    MetadataPersistenceError,
    MetadataStore,
    infer_parent,
)


def _store(tmp_path: Path) -> MetadataStore:
    return MetadataStore(tmp_path / "design_metadata.json")


def _old_record(name: str, *, days: int = 3) -> DesignMetadata:
    stamp = datetime.now(timezone.utc) - timedelta(days=days)
    return DesignMetadata(file_name=name, created_at=stamp, updated_at=stamp)


def test_missing_file_loads_empty_table(tmp_path: Path) -> None:
    store = _store(tmp_path)

    table = store.load()

    assert table.designs == {}
    assert table.version == "1.0.0"
    assert not store.path.exists()


def test_malformed_json_loads_empty_table(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.path.write_text("{not json", encoding="utf-8")

    assert store.load().designs == {}


def test_wrong_shape_loads_empty_table(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.path.write_text(json.dumps({"designs": []}), encoding="utf-8")

    assert store.load().designs == {}


def test_malformed_record_is_dropped_and_others_kept(tmp_path: Path) -> None:
    store = _store(tmp_path)
    payload = {
        "version": "1.0.0",
        "lastUpdated": "2024-01-01T00:00:00Z",
        "designs": {
            "good.html": {
                "fileName": "good.html",
                "status": "review",
                "createdAt": "2024-01-01T00:00:00Z",
                "updatedAt": "2024-01-02T00:00:00Z",
                "tags": ["a"],
            },
            "bad.html": {"fileName": "bad.html", "status": "nonsense"},
        },
    }
    store.path.write_text(json.dumps(payload), encoding="utf-8")

    table = store.load()

    assert list(table.designs) == ["good.html"]
    assert table.designs["good.html"].status == DesignStatus.REVIEW
    assert table.designs["good.html"].tags == ["a"]


def test_persisted_file_uses_camel_case_keys(tmp_path: Path) -> None:
    store = _store(tmp_path)

    store.apply_default("login.html")

    data = json.loads(store.path.read_text(encoding="utf-8"))
    assert data["version"] == "1.0.0"
    assert "lastUpdated" in data
    record = data["designs"]["login.html"]
    assert record["fileName"] == "login.html"
    assert record["status"] == "draft"
    assert "createdAt" in record and "updatedAt" in record
    assert "parentDesign" not in record


def test_apply_default_is_idempotent(tmp_path: Path) -> None:
    store = _store(tmp_path)

    first = store.apply_default("login.html")
    store.update_status("login.html", DesignStatus.REVIEW)
    second = store.apply_default("login.html")

    assert first.status == DesignStatus.DRAFT
    assert second.status == DesignStatus.REVIEW
    assert store.names() == ["login.html"]


def test_apply_default_infers_parent_from_known_files(tmp_path: Path) -> None:
    store = _store(tmp_path)

    record = store.apply_default("login_2.html", known=["login.html", "login_2.html"])

    assert record.parent_design == "login.html"


def test_infer_parent_requires_known_base() -> None:
    assert infer_parent("login_3_1.html", ["login_3.html"]) == "login_3.html"
    assert infer_parent("login_2.html", ["other.html"]) is None
    assert infer_parent("login.html", ["login.html"]) is None


def test_mutations_refresh_updated_at(tmp_path: Path) -> None:
    store = _store(tmp_path)
    old = _old_record("hero.html")
    payload = {
        "version": "1.0.0",
        "designs": {"hero.html": old.model_dump(mode="json", by_alias=True)},
    }
    store.path.write_text(json.dumps(payload), encoding="utf-8")

    updated = store.update_status("hero.html", "approved")

    assert updated.status == DesignStatus.APPROVED
    assert updated.updated_at > old.updated_at
    assert updated.created_at == old.created_at


def test_updated_at_never_moves_backwards(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.apply_default("hero.html")
    current = store.get("hero.html")
    assert current is not None

    stale = current.model_copy(update={"updated_at": current.updated_at - timedelta(days=1)})
    stored = store.set("hero.html", stale)

    assert stored.updated_at >= current.updated_at


def test_tags_are_deduplicated_and_removable(tmp_path: Path) -> None:
    store = _store(tmp_path)

    store.add_tag("card.html", "dark")
    store.add_tag("card.html", "dark")
    store.add_tag("card.html", " mobile ")
    record = store.remove_tag("card.html", "dark")

    assert record is not None
    assert record.tags == ["mobile"]
    assert store.all_tags() == ["mobile"]
    assert [r.file_name for r in store.list_by_tag("mobile")] == ["card.html"]


def test_empty_tag_is_rejected(tmp_path: Path) -> None:
    store = _store(tmp_path)

    with pytest.raises(ValueError):
        store.add_tag("card.html", "   ")


def test_notes_parent_export_and_version(tmp_path: Path) -> None:
    store = _store(tmp_path)

    store.update_notes("card.html", "A compact pricing card")
    store.set_parent("card_1.html", "card.html")
    store.mark_exported("card.html", "/tmp/out/card.html")
    store.bump_version("card.html")
    record = store.bump_version("card.html")

    assert record.notes == "A compact pricing card"
    assert record.status == DesignStatus.EXPORTED
    assert record.exported_to == "/tmp/out/card.html"
    assert record.version == 2
    child = store.get("card_1.html")
    assert child is not None and child.parent_design == "card.html"


def test_design_cannot_be_its_own_parent(tmp_path: Path) -> None:
    store = _store(tmp_path)

    with pytest.raises(ValueError):
        store.set_parent("card.html", "card.html")


def test_list_by_status(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.apply_default("a.html")
    store.apply_default("b.html")
    store.update_status("b.html", DesignStatus.REVIEW)

    assert [r.file_name for r in store.list_by_status("review")] == ["b.html"]
    assert [r.file_name for r in store.list_by_status(DesignStatus.DRAFT)] == ["a.html"]


def test_reconcile_seeds_missing_and_keeps_orphans(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.apply_default("gone.html")

    added = store.reconcile(["home.html", "home_1.html"])

    assert added == 2
    assert store.names() == ["gone.html", "home.html", "home_1.html"]
    child = store.get("home_1.html")
    assert child is not None and child.parent_design == "home.html"
    assert store.reconcile(["home.html"]) == 0


def test_delete_removes_record(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.apply_default("a.html")

    assert store.delete("a.html") is True
    assert store.delete("a.html") is False
    assert store.get("a.html") is None


def test_external_edit_is_picked_up(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.apply_default("a.html")
    assert store.get("a.html") is not None

    data = json.loads(store.path.read_text(encoding="utf-8"))
    data["designs"]["a.html"]["status"] = "approved"
    data["designs"]["a.html"]["notes"] = "edited by hand"
    store.path.write_text(json.dumps(data, indent=4), encoding="utf-8")
    stat = store.path.stat()
    os.utime(store.path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))

    record = store.get("a.html")
    assert record is not None
    assert record.status == DesignStatus.APPROVED
    assert record.notes == "edited by hand"


def test_returned_records_are_copies(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.apply_default("a.html")

    record = store.get("a.html")
    assert record is not None
    record.tags.append("mutated")

    fresh = store.get("a.html")
    assert fresh is not None and fresh.tags == []


def test_persistence_failure_leaves_cache_readable(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = MetadataStore(blocker / "design_metadata.json")

    with pytest.raises(MetadataPersistenceError):
        store.update_status("a.html", DesignStatus.REVIEW)

    assert store.get("a.html") is None
    assert store.load().designs == {}
