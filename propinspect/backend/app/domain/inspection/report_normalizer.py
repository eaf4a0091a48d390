# backend/app/domain/inspection/report_normalizer.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ...schemas import (
    ReportDimension,
    ReportFinding,
    ReportModel,
    ReportQuality,
    ReportRoom,
    ReportSummary,
)
from .documents import iso, utcnow
from .scoring import ScoringRules, quality_grade

NO_FINDING = frozenset({"PASS", "SATISFACTORY"})

FLAT = "flat"
NESTED = "nested"
EMPTY = "empty"


@dataclass(frozen=True)
class SourceShape:
    """
    Which body layout a document uses, decided once:
      - flat:   a top-level (or metadata/extension_data) "inspections" list
      - nested: legacy rooms[*].items
      - empty:  neither yields data
    """

    kind: str
    rooms: list = field(default_factory=list)
    findings: list = field(default_factory=list)
    fallback_date: Optional[str] = None


@dataclass(frozen=True)
class ReportContext:
    """Fields sourced from the owning task/inspection records rather than the body."""

    inspection_id: Optional[str] = None
    client_name: Optional[str] = None
    property_address: Optional[str] = None
    inspector_name: Optional[str] = None
    verifier_name: Optional[str] = None
    overall_score: Optional[int] = None
    severity_counts: Optional[dict[str, int]] = None


def _dict(v: Any) -> dict:
    return v if isinstance(v, dict) else {}


def resolve_source_shape(document: Any) -> SourceShape:
    doc = _dict(document)
    meta = _dict(doc.get("metadata"))
    extension = _dict(meta.get("extension_data")) or meta

    flat = extension.get("inspections") or doc.get("inspections")
    if isinstance(flat, list) and flat:
        rooms = extension.get("rooms") or doc.get("rooms") or []
        return SourceShape(kind=FLAT, rooms=rooms if isinstance(rooms, list) else [], findings=flat)

    data = _dict(doc.get("inspection_data")) or doc
    rooms = data.get("rooms")
    if isinstance(rooms, list) and rooms:
        return SourceShape(kind=NESTED, rooms=rooms, fallback_date=_dict(data.get("audit")).get("submitted_at"))

    return SourceShape(kind=EMPTY)


def normalize_issue_type(raw: Any) -> str:
    t = str(raw or "").strip().upper()
    if t in ("MAJOR", "CRITICAL"):
        return "Major"
    if t == "MINOR":
        return "Minor"
    return "Cosmetic"


def absolute_photo_url(ref: Any, base_url: str) -> Optional[str]:
    """Inline data URIs and absolute URLs pass through; storage paths get the base prepended."""
    if isinstance(ref, dict):
        ref = ref.get("server_url") or ref.get("local_ref")
    if not isinstance(ref, str) or not ref.strip():
        return None

    ref = ref.strip()
    if ref.startswith("data:") or ref.lower().startswith(("http://", "https://")):
        return ref

    base = (base_url or "").rstrip("/")
    return f"{base}{ref}" if ref.startswith("/") else f"{base}/{ref}"


def _images(raw: Any, base_url: str) -> list[str]:
    out = []
    for ref in raw if isinstance(raw, list) else []:
        url = absolute_photo_url(ref, base_url)
        if url:
            out.append(url)
    return out


def _num(v: Any) -> float:
    try:
        x = float(v)
    except (TypeError, ValueError):
        return 0.0
    return x if math.isfinite(x) else 0.0


def _room(room: dict, *, name_keys: tuple[str, ...]) -> ReportRoom:
    name = next((str(room[k]) for k in name_keys if room.get(k)), "Room")

    dims = room.get("dimensions")
    if not isinstance(dims, list):
        dims = [{"length": room.get("length"), "width": room.get("width")}] if room.get("length") else []

    return ReportRoom(
        name=name,
        dimensions=[ReportDimension(length=d.get("length"), width=d.get("width")) for d in dims if isinstance(d, dict)],
        materials=_dict(room.get("materials")),
        brands=_dict(room.get("brands")),
    )


def total_area(rooms: list[ReportRoom]) -> float:
    area = sum(_num(d.length) * _num(d.width) for r in rooms for d in r.dimensions)
    return round(area, 2)


def _from_flat(shape: SourceShape, base_url: str, today: str) -> tuple[list[ReportRoom], list[ReportFinding]]:
    findings: list[ReportFinding] = []
    for item in shape.findings:
        if not isinstance(item, dict):
            continue
        raw_type = item.get("issueType") or item.get("status")
        if str(raw_type or "").strip().upper() in NO_FINDING:
            continue
        findings.append(
            ReportFinding(
                room=str(item.get("room") or item.get("room_name") or "General"),
                category=str(item.get("category") or "General"),
                issue_type=normalize_issue_type(raw_type),
                description=str(item.get("description") or item.get("label") or "No description"),
                images=_images(item.get("images") or item.get("photos"), base_url),
                date=str(item.get("date") or today),
            )
        )

    rooms = [_room(r, name_keys=("name", "room_label")) for r in shape.rooms if isinstance(r, dict)]
    return rooms, findings


def _from_nested(shape: SourceShape, base_url: str, today: str) -> tuple[list[ReportRoom], list[ReportFinding]]:
    rooms: list[ReportRoom] = []
    findings: list[ReportFinding] = []
    when = str(shape.fallback_date or today)

    for raw in shape.rooms:
        if not isinstance(raw, dict):
            continue
        room = _room(raw, name_keys=("room_label", "room_type", "name"))
        rooms.append(room)

        for item in raw.get("items") or []:
            if not isinstance(item, dict):
                continue
            raw_type = str(item.get("status") or item.get("issueType") or "").strip().upper()
            # unset status is "not inspected", not a finding
            if not raw_type or raw_type in NO_FINDING:
                continue
            findings.append(
                ReportFinding(
                    room=room.name,
                    category=str(item.get("category") or "General"),
                    issue_type=normalize_issue_type(raw_type),
                    description=str(item.get("label") or item.get("remarks") or item.get("description") or "No description"),
                    images=_images(item.get("photos") or item.get("images"), base_url),
                    date=when,
                )
            )

    return rooms, findings


def normalize_report(
    document: Any,
    context: Optional[ReportContext] = None,
    *,
    photo_base_url: str = "",
    rules: Optional[ScoringRules] = None,
    now: Optional[datetime] = None,
) -> ReportModel:
    """
    Reshape a (possibly legacy) document into the one report model the
    rendering service consumes. Never raises on odd shapes: anything it cannot
    read yields an empty rooms/inspections report.
    """
    ctx = context or ReportContext()
    doc = _dict(document)
    meta = _dict(doc.get("metadata"))
    derived = _dict(doc.get("derived"))
    today = iso(now or utcnow())

    shape = resolve_source_shape(doc)
    if shape.kind == FLAT:
        rooms, findings = _from_flat(shape, photo_base_url, today)
    elif shape.kind == NESTED:
        rooms, findings = _from_nested(shape, photo_base_url, today)
    else:
        rooms, findings = [], []

    quality = ReportQuality(
        major=sum(1 for f in findings if f.issue_type == "Major"),
        minor=sum(1 for f in findings if f.issue_type == "Minor"),
        cosmetic=sum(1 for f in findings if f.issue_type == "Cosmetic"),
    )

    overall = ctx.overall_score if ctx.overall_score is not None else derived.get("overall_score")
    severity_counts = ctx.severity_counts or _dict(derived.get("severity_counts")) or quality.model_dump()

    technician = _dict(meta.get("technician"))
    inspection_id = ctx.inspection_id or doc.get("inspection_id") or "0000"
    inspection_date = meta.get("inspection_date") or _dict(doc.get("audit")).get("submitted_at") or today[:10]

    return ReportModel(
        report_id=str(inspection_id).rjust(8, "0"),
        inspector_name=str(ctx.inspector_name or technician.get("name") or "Inspector"),
        verifier_name=str(ctx.verifier_name or "Admin"),
        inspection_date=str(inspection_date),
        client_name=str(ctx.client_name or meta.get("client_name") or "Client"),
        property_address=str(ctx.property_address or meta.get("property_address") or "Property Address"),
        rooms=rooms,
        inspections=findings,
        quality=quality,
        summary=ReportSummary(
            total_area=total_area(rooms),
            overall_score=overall,
            grade=quality_grade(overall, rules or ScoringRules()),
        ),
        severity_counts={str(k): int(_num(v)) for k, v in severity_counts.items()},
    )
