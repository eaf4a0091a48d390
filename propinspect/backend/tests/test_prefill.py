# backend/tests/test_prefill.py
from __future__ import annotations

from datetime import datetime, timezone

from app.domain.inspection.documents import new_inspection_id, resolve_technician
from app.domain.inspection.prefill import generate_prefill
from app.domain.inspection.taxonomy import IssueCatalog

NOW = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


def test_prefill_builds_one_room_per_scored_type(small_taxonomy, small_catalog):
    doc = generate_prefill(
        taxonomy=small_taxonomy,
        catalog=small_catalog,
        technician="Ivan",
        now=NOW,
        id_factory=lambda: "INS-1",
    )

    assert doc["inspection_id"] == "INS-1"
    assert doc["schema_version"] == "1.0"
    assert [r["room_id"] for r in doc["rooms"]] == ["living_room", "kitchen"]
    assert doc["audit"]["status"] == "DRAFT"
    assert doc["audit"]["submitted_at"] is None
    assert doc["derived"]["overall_score"] is None
    assert doc["metadata"]["technician"] == {"id": "Ivan", "name": "Ivan"}
    assert doc["metadata"]["inspection_date"] == "2025-03-01"
    assert doc["metadata"]["property_type"] == "Apartment"


def test_prefill_skips_placeholders_without_renumbering(small_taxonomy, small_catalog):
    doc = generate_prefill(taxonomy=small_taxonomy, catalog=small_catalog, now=NOW, id_factory=lambda: "X")
    living = doc["rooms"][0]

    ids = [i["item_id"] for i in living["items"]]
    assert ids == ["living_room_flooring_0", "living_room_wall_finish_0"]
    for item in living["items"]:
        assert item["status"] is None
        assert item["remarks"] is None
        assert item["photos"] == []


def test_prefill_category_slug_keeps_catalog_index(small_taxonomy):
    from app.domain.inspection.taxonomy import build_issue_catalog

    cat = build_issue_catalog(
        [
            {"room_type": "Kitchen", "category": "Modular Kitchen", "description": "#N/A"},
            {"room_type": "Kitchen", "category": "Modular Kitchen", "description": "Hinge broken"},
        ]
    )
    doc = generate_prefill(taxonomy=small_taxonomy, catalog=cat, now=NOW, id_factory=lambda: "X")
    kitchen = doc["rooms"][1]
    assert [i["item_id"] for i in kitchen["items"]] == ["kitchen_modular_kitchen_1"]


def test_empty_catalog_gives_rooms_with_no_items(small_taxonomy):
    doc = generate_prefill(taxonomy=small_taxonomy, catalog=IssueCatalog(), now=NOW, id_factory=lambda: "X")
    assert len(doc["rooms"]) == 2
    assert all(r["items"] == [] for r in doc["rooms"])

    doc2 = generate_prefill(taxonomy=small_taxonomy, catalog=None, now=NOW, id_factory=lambda: "X")
    assert doc2["rooms"] == doc["rooms"]


def test_metadata_overrides_merge_but_none_does_not_wipe(small_taxonomy, small_catalog):
    doc = generate_prefill(
        taxonomy=small_taxonomy,
        catalog=small_catalog,
        technician="fallback",
        metadata={"client_name": "Kim", "property_type": None, "technician": {"id": "t9", "name": "Tess"}},
        now=NOW,
        id_factory=lambda: "X",
    )
    meta = doc["metadata"]
    assert meta["client_name"] == "Kim"
    assert meta["property_type"] == "Apartment"
    assert meta["technician"] == {"id": "t9", "name": "Tess"}


def test_technician_resolution():
    assert resolve_technician("Sam").as_dict() == {"id": "Sam", "name": "Sam"}
    assert resolve_technician({"id": "7"}).as_dict() == {"id": "7", "name": "7"}
    assert resolve_technician({"name": "Lee"}).as_dict() == {"id": "Lee", "name": "Lee"}
    assert resolve_technician(None).as_dict() == {"id": "", "name": ""}


def test_inspection_id_format():
    iid = new_inspection_id("INS-", now=NOW)
    prefix, ms, suffix = iid.split("-")
    assert prefix == "INS"
    assert ms == str(int(NOW.timestamp() * 1000))
    assert len(suffix) == 6
    assert suffix == suffix.upper()
    assert new_inspection_id("INS-", now=NOW) != iid
