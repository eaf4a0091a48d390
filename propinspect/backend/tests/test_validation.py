# backend/tests/test_validation.py
from __future__ import annotations

import pytest

from app.domain.inspection.documents import duplicate_ids
from app.domain.inspection.errors import DocumentStructureError
from app.domain.inspection.validation import validate_document


def _doc(**meta):
    base = {"client_name": "Kim", "client_email": "kim@example.com"}
    base.update(meta)
    return {
        "metadata": base,
        "rooms": [
            {
                "room_id": "kitchen",
                "room_label": "Kitchen",
                "items": [
                    {"item_id": "a", "label": "Sink", "status": "PASS"},
                    {"item_id": "b", "label": "Tap", "status": "MINOR"},
                ],
            }
        ],
    }


def test_complete_document_is_valid():
    r = validate_document(_doc())
    assert r.valid
    assert r.errors == []


def test_contact_can_be_phone_only():
    r = validate_document(_doc(client_email="", client_phone="555-0100"))
    assert r.valid


def test_metadata_errors_use_fixed_messages():
    r = validate_document(_doc(client_name="  ", client_email=None))
    assert not r.valid
    assert r.errors == ["Client name is required", "Either client email or phone is required"]


def test_no_rooms():
    doc = _doc()
    doc["rooms"] = []
    r = validate_document(doc)
    assert r.errors == ["At least one room must be inspected"]


def test_unset_and_unknown_status_reported_per_item():
    doc = _doc()
    doc["rooms"][0]["items"][0]["status"] = None
    doc["rooms"][0]["items"][1]["status"] = "BROKEN"
    doc["rooms"].append({"room_id": "x", "items": [{"item_id": "c"}]})

    r = validate_document(doc)
    assert r.errors == [
        "Invalid or missing status for Sink in Kitchen",
        "Invalid or missing status for Tap in Kitchen",
        "Invalid or missing status for Unknown Item in Unknown Room",
    ]


def test_dynamic_rooms_and_items_are_reported_not_rejected():
    baseline = _doc()
    doc = _doc()
    doc["rooms"][0]["items"].append({"item_id": "extra", "label": "Chimney", "status": "PASS"})
    doc["rooms"].append({"room_id": "study", "room_label": "Study", "items": [{"item_id": "s1", "label": "Desk", "status": "MAJOR"}]})

    r = validate_document(doc, baseline=baseline)
    assert r.valid
    assert r.dynamic_rooms == ["study"]
    assert r.dynamic_items == ["kitchen/extra"]
    assert r.as_dict()["dynamic_rooms"] == ["study"]


def test_dynamic_item_still_needs_a_status():
    doc = _doc()
    doc["rooms"][0]["items"].append({"item_id": "extra", "label": "Chimney"})
    r = validate_document(doc, baseline=_doc())
    assert r.errors == ["Invalid or missing status for Chimney in Kitchen"]


@pytest.mark.parametrize(
    "bad",
    [
        None,
        [],
        {"rooms": []},
        {"metadata": {}, "rooms": "nope"},
        {"metadata": {}, "rooms": ["room"]},
        {"metadata": {}, "rooms": [{"items": "x"}]},
        {"metadata": {}, "rooms": [{"items": [1]}]},
    ],
)
def test_structural_problems_raise(bad):
    with pytest.raises(DocumentStructureError):
        validate_document(bad)


def test_duplicate_ids_are_found():
    doc = _doc()
    doc["rooms"][0]["items"][1]["item_id"] = "a"
    doc["rooms"].append({"room_id": "kitchen", "items": []})
    errs = duplicate_ids(doc)
    assert errs == ["Duplicate item_id 'a' in room 'kitchen'", "Duplicate room_id 'kitchen'"]
