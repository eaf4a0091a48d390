# backend/tests/test_report_normalizer.py
from __future__ import annotations

from datetime import datetime, timezone

from app.domain.inspection.report_normalizer import (
    ReportContext,
    absolute_photo_url,
    normalize_issue_type,
    normalize_report,
    resolve_source_shape,
)

NOW = datetime(2025, 5, 6, 7, 8, 9, tzinfo=timezone.utc)
BASE = "https://files.example.com/"


def _nested_doc():
    return {
        "inspection_id": "42",
        "metadata": {"client_name": "Body Client", "inspection_date": "2025-05-01", "technician": {"id": "t", "name": "Tina"}},
        "rooms": [
            {
                "room_id": "kitchen",
                "room_label": "Kitchen",
                "length": "3.5",
                "width": 2,
                "items": [
                    {"item_id": "a", "label": "Sink leak", "category": "Plumbing", "status": "CRITICAL", "photos": ["uploads/a.jpg"]},
                    {"item_id": "b", "label": "Tiles", "category": "Flooring", "status": "PASS"},
                    {"item_id": "c", "label": "Paint", "category": "Wall Finish", "status": None},
                    {"item_id": "d", "label": "Scuff", "category": "Wall Finish", "status": "COSMETIC",
                     "photos": [{"server_url": "/p/d.png"}, "data:image/png;base64,AAA", "", None]},
                ],
            },
            {"room_id": "bath", "room_label": "Bathroom", "dimensions": [{"length": 2, "width": "x"}], "items": []},
        ],
        "derived": {"overall_score": 88, "severity_counts": {"critical": 1, "major": 0, "minor": 0, "cosmetic": 1}},
        "audit": {"submitted_at": "2025-05-02T10:00:00+00:00"},
    }


def test_nested_shape_filters_and_maps_findings():
    r = normalize_report(_nested_doc(), photo_base_url=BASE, now=NOW)

    assert [f.description for f in r.inspections] == ["Sink leak", "Scuff"]
    assert [f.issue_type for f in r.inspections] == ["Major", "Cosmetic"]
    assert r.inspections[0].images == ["https://files.example.com/uploads/a.jpg"]
    assert r.inspections[1].images == ["https://files.example.com/p/d.png", "data:image/png;base64,AAA"]
    assert r.inspections[0].room == "Kitchen"
    assert r.inspections[0].date == "2025-05-02T10:00:00+00:00"

    assert r.quality.major == 1
    assert r.quality.cosmetic == 1
    assert [room.name for room in r.rooms] == ["Kitchen", "Bathroom"]
    assert r.summary.total_area == 7.0
    assert r.summary.overall_score == 88
    assert r.summary.grade == "good"
    assert r.severity_counts["critical"] == 1


def test_header_fields_prefer_record_context():
    ctx = ReportContext(
        inspection_id="7",
        client_name="Record Client",
        property_address="1 Main St",
        inspector_name="Ivan",
        verifier_name="Asha",
        overall_score=93,
        severity_counts={"critical": 2},
    )
    r = normalize_report(_nested_doc(), ctx, photo_base_url=BASE, now=NOW)

    assert r.report_id == "00000007"
    assert r.client_name == "Record Client"
    assert r.property_address == "1 Main St"
    assert r.inspector_name == "Ivan"
    assert r.verifier_name == "Asha"
    assert r.inspection_date == "2025-05-01"
    assert r.summary.overall_score == 93
    assert r.severity_counts == {"critical": 2}


def test_header_defaults_from_body():
    r = normalize_report(_nested_doc(), photo_base_url=BASE, now=NOW)
    assert r.report_id == "00000042"
    assert r.client_name == "Body Client"
    assert r.inspector_name == "Tina"
    assert r.verifier_name == "Admin"
    assert r.property_address == "Property Address"


def test_garbled_stored_severity_counts_read_as_zero():
    doc = _nested_doc()
    doc["derived"]["severity_counts"] = {"critical": "lots", "major": None, "minor": "2", "cosmetic": float("nan")}

    r = normalize_report(doc, photo_base_url=BASE, now=NOW)

    assert r.severity_counts == {"critical": 0, "major": 0, "minor": 2, "cosmetic": 0}


def test_flat_shape_is_preferred_over_rooms():
    doc = _nested_doc()
    doc["metadata"]["extension_data"] = {
        "inspections": [
            {"room": "Hall", "category": "Electrical", "issueType": "minor", "description": "Loose socket",
             "images": ["http://cdn/x.jpg"], "date": "2025-04-30"},
            {"room": "Hall", "category": "Flooring", "issueType": "Satisfactory", "description": "fine"},
            {"room": "Hall", "category": "Doors", "issueType": "weird", "description": "Door creaks"},
        ],
        "rooms": [{"name": "Hall", "dimensions": [{"length": 1.111, "width": 3}]}],
    }

    assert resolve_source_shape(doc).kind == "flat"
    r = normalize_report(doc, photo_base_url=BASE, now=NOW)

    assert [f.issue_type for f in r.inspections] == ["Minor", "Cosmetic"]
    assert r.inspections[0].images == ["http://cdn/x.jpg"]
    assert r.inspections[0].date == "2025-04-30"
    assert r.inspections[1].date == NOW.isoformat()
    assert [room.name for room in r.rooms] == ["Hall"]
    assert r.summary.total_area == 3.33


def test_legacy_inspection_data_wrapper():
    doc = {"inspection_data": {"rooms": _nested_doc()["rooms"]}}
    assert resolve_source_shape(doc).kind == "nested"
    r = normalize_report(doc, photo_base_url=BASE, now=NOW)
    assert len(r.inspections) == 2
    assert r.inspection_date == "2025-05-06"


def test_unreadable_documents_fall_back_to_empty_report():
    for doc in (None, {}, {"rooms": "nope"}, {"metadata": "x", "inspections": []}):
        r = normalize_report(doc, photo_base_url=BASE, now=NOW)
        assert r.rooms == []
        assert r.inspections == []
        assert r.summary.total_area == 0.0
        assert r.summary.grade == "poor"


def test_report_serializes_with_camel_case_keys():
    out = normalize_report(_nested_doc(), photo_base_url=BASE, now=NOW).model_dump(by_alias=True, mode="json")
    assert "reportId" in out
    assert "inspectorName" in out
    assert out["summary"]["totalArea"] == 7.0
    assert out["inspections"][0]["issueType"] == "Major"


def test_photo_and_issue_type_helpers():
    assert absolute_photo_url("/a.jpg", "http://h:5001") == "http://h:5001/a.jpg"
    assert absolute_photo_url("a.jpg", "http://h:5001/") == "http://h:5001/a.jpg"
    assert absolute_photo_url("HTTPS://x/y", "http://h") == "HTTPS://x/y"
    assert absolute_photo_url({"local_ref": "l/1.jpg"}, "http://h") == "http://h/l/1.jpg"
    assert absolute_photo_url({}, "http://h") is None

    assert normalize_issue_type("CRITICAL") == "Major"
    assert normalize_issue_type("major") == "Major"
    assert normalize_issue_type("MINOR") == "Minor"
    assert normalize_issue_type(None) == "Cosmetic"
