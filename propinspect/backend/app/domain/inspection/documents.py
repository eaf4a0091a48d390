# backend/app/domain/inspection/documents.py
from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from .errors import DocumentStructureError

SEVERITY_BUCKETS: tuple[str, ...] = ("critical", "major", "minor", "cosmetic")


@dataclass(frozen=True)
class Technician:
    id: str
    name: str

    def as_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


def resolve_technician(raw: Any) -> Technician:
    """
    The technician field arrives either as a bare name or as {id, name}.
    Resolve it once here; everything downstream sees a Technician.
    """
    if isinstance(raw, str):
        return Technician(id=raw, name=raw)
    if isinstance(raw, dict):
        tid = str(raw.get("id") or raw.get("name") or "")
        name = str(raw.get("name") or raw.get("id") or "")
        return Technician(id=tid, name=name)
    return Technician(id="", name="")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def new_inspection_id(prefix: str = "INS-", *, now: Optional[datetime] = None) -> str:
    # Time-derived for readability; the random suffix is what makes it unique.
    ms = int((now or utcnow()).timestamp() * 1000)
    return f"{prefix}{ms}-{uuid.uuid4().hex[:6].upper()}"


def empty_severity_counts() -> dict[str, int]:
    return {k: 0 for k in SEVERITY_BUCKETS}


def empty_derived() -> dict[str, Any]:
    return {
        "room_scores": {},
        "severity_counts": empty_severity_counts(),
        "overall_score": None,
        "total_issues": 0,
        "total_rooms_inspected": 0,
    }


def require_document_shape(doc: Any) -> None:
    """
    Raise DocumentStructureError unless `doc` is at least shaped like a document.
    Business rules (missing client name, unset statuses) are NOT checked here.
    """
    if not isinstance(doc, dict):
        raise DocumentStructureError("Inspection document must be an object")

    metadata = doc.get("metadata")
    if not isinstance(metadata, dict):
        raise DocumentStructureError("Inspection document metadata must be an object")

    rooms = doc.get("rooms")
    if not isinstance(rooms, list):
        raise DocumentStructureError("Inspection document must contain a rooms array")

    for idx, room in enumerate(rooms):
        if not isinstance(room, dict):
            raise DocumentStructureError(f"rooms[{idx}] must be an object")
        items = room.get("items", [])
        if not isinstance(items, list):
            raise DocumentStructureError(f"rooms[{idx}].items must be an array")
        for jdx, item in enumerate(items):
            if not isinstance(item, dict):
                raise DocumentStructureError(f"rooms[{idx}].items[{jdx}] must be an object")


def iter_items(doc: dict) -> Iterator[tuple[dict, dict]]:
    for room in doc.get("rooms") or []:
        for item in room.get("items") or []:
            yield room, item


def duplicate_ids(doc: dict) -> list[str]:
    """room_id must be unique per document, item_id unique per room."""
    errors: list[str] = []
    seen_rooms: set[str] = set()

    for room in doc.get("rooms") or []:
        rid = str(room.get("room_id") or "")
        if rid in seen_rooms:
            errors.append(f"Duplicate room_id {rid!r}")
        seen_rooms.add(rid)

        seen_items: set[str] = set()
        for item in room.get("items") or []:
            iid = str(item.get("item_id") or "")
            if iid in seen_items:
                errors.append(f"Duplicate item_id {iid!r} in room {rid!r}")
            seen_items.add(iid)

    return errors


def project_audit(
    doc: dict,
    *,
    status: str,
    now: datetime,
    submitted_at: Optional[datetime] = None,
) -> dict:
    """
    Mirror the record status into the document's audit block.
    Only the lifecycle state machine (and the calculator's submission stamp) call this.
    """
    audit = doc.get("audit")
    if not isinstance(audit, dict):
        audit = {}
        doc["audit"] = audit

    audit["status"] = status
    audit["last_modified_at"] = iso(now)
    audit.setdefault("created_at", iso(now))
    audit.setdefault("submitted_at", None)
    if submitted_at is not None:
        audit["submitted_at"] = iso(submitted_at)
    return audit


def clone(doc: dict) -> dict:
    return copy.deepcopy(doc)
