# backend/app/domain/inspection/validation.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .documents import require_document_shape
from .taxonomy import STATUS_VOCABULARY


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: list[str]
    # Structure present in the candidate but absent from the baseline prefill.
    dynamic_rooms: list[str] = field(default_factory=list)
    dynamic_items: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "dynamic_rooms": list(self.dynamic_rooms),
            "dynamic_items": list(self.dynamic_items),
        }


def _present(v: Any) -> bool:
    if v is None:
        return False
    if isinstance(v, str):
        return bool(v.strip())
    return True


def _baseline_index(baseline: Optional[dict]) -> dict[str, set[str]]:
    out: dict[str, set[str]] = {}
    if not isinstance(baseline, dict):
        return out
    for room in baseline.get("rooms") or []:
        if not isinstance(room, dict):
            continue
        out[str(room.get("room_id"))] = {
            str(i.get("item_id")) for i in (room.get("items") or []) if isinstance(i, dict)
        }
    return out


def validate_document(document: Any, baseline: Optional[dict] = None) -> ValidationResult:
    """
    Check a submitted document.

    Permissive about extra structure (rooms/items not in the baseline are
    accepted and reported as dynamic), strict about the one thing scoring
    depends on: every leaf item carries a status from the vocabulary.

    Raises DocumentStructureError only when the input is not a document at all.
    """
    require_document_shape(document)

    errors: list[str] = []
    meta = document["metadata"]

    if not _present(meta.get("client_name")):
        errors.append("Client name is required")
    if not _present(meta.get("client_email")) and not _present(meta.get("client_phone")):
        errors.append("Either client email or phone is required")

    rooms = document["rooms"]
    if not rooms:
        errors.append("At least one room must be inspected")

    known = _baseline_index(baseline)
    dynamic_rooms: list[str] = []
    dynamic_items: list[str] = []

    for room in rooms:
        room_id = str(room.get("room_id"))
        room_label = room.get("room_label") or "Unknown Room"
        baseline_items = known.get(room_id)

        if baseline is not None and baseline_items is None:
            dynamic_rooms.append(room_id)

        for item in room.get("items") or []:
            item_id = str(item.get("item_id"))
            if baseline_items is not None and item_id not in baseline_items:
                dynamic_items.append(f"{room_id}/{item_id}")

            # Same rule whether the room/item came from the prefill or was added later.
            if item.get("status") not in STATUS_VOCABULARY:
                label = item.get("label") or "Unknown Item"
                errors.append(f"Invalid or missing status for {label} in {room_label}")

    return ValidationResult(
        valid=not errors,
        errors=errors,
        dynamic_rooms=dynamic_rooms,
        dynamic_items=dynamic_items,
    )
