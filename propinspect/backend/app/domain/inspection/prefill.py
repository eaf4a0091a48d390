# backend/app/domain/inspection/prefill.py
from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Callable, Optional

from .documents import empty_derived, iso, new_inspection_id, resolve_technician, utcnow
from .taxonomy import IssueCatalog, Taxonomy, is_placeholder_description

DEFAULT_PROPERTY_TYPE = "Apartment"

_SLUG_WS = re.compile(r"\s+")


def _category_slug(category: str) -> str:
    return _SLUG_WS.sub("_", category.strip().lower())


def _build_room(room_type: str, label: str, scored: bool, catalog: IssueCatalog) -> dict[str, Any]:
    room_id = room_type.lower()

    items: list[dict[str, Any]] = []
    for category, issues in catalog.for_room(label).items():
        for idx, issue in enumerate(issues):
            if is_placeholder_description(issue.description):
                continue
            items.append(
                {
                    # index is the catalog position, so dropping placeholders never renumbers items
                    "item_id": f"{room_id}_{_category_slug(category)}_{idx}",
                    "label": issue.description.strip(),
                    "category": category,
                    "status": None,
                    "remarks": None,
                    "photos": [],
                }
            )

    return {
        "room_id": room_id,
        "room_type": room_type,
        "room_label": label,
        "scored": scored,
        "length": None,
        "width": None,
        "items": items,
    }


def generate_prefill(
    *,
    taxonomy: Taxonomy,
    catalog: Optional[IssueCatalog],
    technician: Any = None,
    metadata: Optional[dict[str, Any]] = None,
    schema_version: str = "1.0",
    id_prefix: str = "INS-",
    now: Optional[datetime] = None,
    id_factory: Optional[Callable[[], str]] = None,
) -> dict[str, Any]:
    """
    Build a brand-new DRAFT inspection document.

    One room per scored room type; within it one item per catalog description
    for every (room label, category) pair. Never fails: a missing or empty
    catalog yields rooms with zero items. Apart from inspection_id and the
    timestamps the output is a pure function of the taxonomy/catalog snapshot.
    """
    now = now or utcnow()
    catalog = catalog or IssueCatalog()
    overrides = dict(metadata or {})
    tech = resolve_technician(overrides.pop("technician", technician))

    rooms = [_build_room(rt.key, rt.label, rt.scored, catalog) for rt in taxonomy.scored_room_types()]

    meta: dict[str, Any] = {
        "property_id": "",
        "property_type": DEFAULT_PROPERTY_TYPE,
        "property_address": "",
        "client_name": None,
        "client_email": None,
        "client_phone": None,
        "inspection_date": now.date().isoformat(),
        "technician": tech.as_dict(),
        "notes": "",
    }
    # Overrides win, but an explicit None never wipes a default.
    meta.update({k: v for k, v in overrides.items() if v is not None})

    inspection_id = id_factory() if id_factory else new_inspection_id(id_prefix, now=now)

    return {
        "schema_version": schema_version,
        "inspection_id": inspection_id,
        "metadata": meta,
        "rooms": rooms,
        "derived": empty_derived(),
        "audit": {
            "status": "DRAFT",
            "created_at": iso(now),
            "last_modified_at": iso(now),
            "submitted_at": None,
        },
    }
