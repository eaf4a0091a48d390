# backend/app/domain/inspection/taxonomy.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

# Ordered best -> worst. Order is only used for severity bucketing.
STATUS_VOCABULARY: tuple[str, ...] = ("PASS", "COSMETIC", "MINOR", "MAJOR", "CRITICAL")
ISSUE_SEVERITIES: tuple[str, ...] = ("COSMETIC", "MINOR", "MAJOR", "CRITICAL")

# Spreadsheet exports leave these behind in the description column.
PLACEHOLDER_DESCRIPTIONS = frozenset({"#N/A", "#REF!", "#VALUE!", "#NAME?", "#DIV/0!", "#NULL!", "#NUM!"})


@dataclass(frozen=True)
class RoomTypeDef:
    key: str
    label: str
    scored: bool = True


@dataclass(frozen=True)
class ItemDefinition:
    item_id: str
    label: str
    category: str


@dataclass(frozen=True)
class IssueDefinition:
    description: str
    severity: str = "MINOR"


@dataclass(frozen=True)
class IssueCatalogEntry:
    room_type: str
    category: str
    description: str
    severity: str = "MINOR"


@dataclass(frozen=True)
class Taxonomy:
    room_types: tuple[RoomTypeDef, ...]
    item_definitions: Mapping[str, tuple[ItemDefinition, ...]] = field(default_factory=dict)

    def room_type(self, key: str) -> Optional[RoomTypeDef]:
        for rt in self.room_types:
            if rt.key == key:
                return rt
        return None

    def scored_room_types(self) -> list[RoomTypeDef]:
        return [rt for rt in self.room_types if rt.scored]

    def items_for(self, room_type: str) -> list[ItemDefinition]:
        return list(self.item_definitions.get(room_type, ()))


@dataclass(frozen=True)
class IssueCatalog:
    """room_type -> category -> issues, in catalog order."""

    by_room: Mapping[str, Mapping[str, tuple[IssueDefinition, ...]]] = field(default_factory=dict)

    def for_room(self, room_type: str) -> Mapping[str, tuple[IssueDefinition, ...]]:
        return self.by_room.get(room_type, {})

    def issues(self, room_type: str, category: str) -> list[IssueDefinition]:
        return list(self.for_room(room_type).get(category, ()))

    def is_empty(self) -> bool:
        return not any(self.by_room.values())


def is_placeholder_description(text: Optional[str]) -> bool:
    s = (text or "").strip()
    return not s or s.upper() in PLACEHOLDER_DESCRIPTIONS


def normalize_severity(raw: Any) -> str:
    """
    Catalog severities come from hand-maintained spreadsheets.
    Unknown -> MINOR; PASS/SATISFACTORY rows are kept as COSMETIC.
    """
    s = str(raw or "").strip().upper()
    if s in ISSUE_SEVERITIES:
        return s
    if s in ("PASS", "SATISFACTORY"):
        return "COSMETIC"
    return "MINOR"


def build_issue_catalog(entries: Iterable[Any]) -> IssueCatalog:
    """
    Group catalog rows by room type and category.

    Works with IssueCatalogEntry, PredefinedIssue rows, or dicts with
    room_type/category/description/severity keys. Duplicate descriptions
    within a (room_type, category) pair are kept once, first wins.
    """

    def get_field(it: Any, key: str, default=None):
        if isinstance(it, dict):
            return it.get(key, default)
        return getattr(it, key, default)

    grouped: dict[str, dict[str, list[IssueDefinition]]] = {}
    seen: set[tuple[str, str, str]] = set()

    for it in entries:
        room_type = str(get_field(it, "room_type", "") or "").strip()
        category = str(get_field(it, "category", "") or "").strip()
        description = str(get_field(it, "description", "") or "")
        if not room_type or not category:
            continue

        key = (room_type, category, description.strip())
        if key in seen:
            continue
        seen.add(key)

        grouped.setdefault(room_type, {}).setdefault(category, []).append(
            IssueDefinition(description=description, severity=normalize_severity(get_field(it, "severity")))
        )

    return IssueCatalog(
        by_room={rt: {cat: tuple(issues) for cat, issues in cats.items()} for rt, cats in grouped.items()}
    )


def _items(*rows: tuple[str, str, str]) -> tuple[ItemDefinition, ...]:
    return tuple(ItemDefinition(item_id=i, label=label, category=cat) for i, label, cat in rows)


_LIVING_ITEMS = _items(
    ("flooring_finish", "Flooring finish", "Flooring"),
    ("wall_paint", "Wall paint quality", "Wall Finish"),
    ("ceiling_condition", "Ceiling condition", "Wall Finish"),
    ("electrical_outlets", "Electrical outlets functioning", "Electrical Work"),
    ("lighting", "Lighting adequacy", "Electrical Work"),
    ("door_alignment", "Door alignment", "Doors"),
    ("window_condition", "Window condition", "Windows"),
)

_WET_ITEMS = _items(
    ("flooring_finish", "Flooring finish", "Flooring"),
    ("wall_tiles", "Wall tiles condition", "Wall Finish"),
    ("plumbing", "Plumbing functioning", "Plumbing"),
    ("electrical_outlets", "Electrical outlets safe", "Electrical Work"),
    ("ventilation", "Ventilation/Exhaust fan", "Electrical Work"),
)


def default_taxonomy() -> Taxonomy:
    # Labels double as the catalog's room_type key.
    return Taxonomy(
        room_types=(
            RoomTypeDef("LIVING_ROOM", "Living Room"),
            RoomTypeDef("BEDROOM", "Bedroom"),
            RoomTypeDef("MASTER_BEDROOM", "Master Bedroom"),
            RoomTypeDef("KITCHEN", "Kitchen"),
            RoomTypeDef("DINING", "Dining Room"),
            RoomTypeDef("BATHROOM", "Bathroom"),
            RoomTypeDef("BALCONY", "Balcony"),
            RoomTypeDef("ENTRANCE", "Entrance"),
            RoomTypeDef("CORRIDOR", "Corridor"),
            RoomTypeDef("PARKING", "Parking", scored=False),
            RoomTypeDef("TERRACE", "Terrace", scored=False),
        ),
        item_definitions={
            "LIVING_ROOM": _LIVING_ITEMS,
            "BEDROOM": _LIVING_ITEMS
            + _items(("wardrobe_condition", "Wardrobe/Cabinet condition", "Modular Furniture")),
            "MASTER_BEDROOM": _LIVING_ITEMS
            + _items(("wardrobe_condition", "Wardrobe/Cabinet condition", "Modular Furniture")),
            "KITCHEN": _WET_ITEMS
            + _items(
                ("countertop", "Countertop condition", "Modular Kitchen"),
                ("appliances", "Appliances condition", "Modular Kitchen"),
                ("gas_connection", "Gas connection available", "Plumbing"),
            ),
            "BATHROOM": _WET_ITEMS
            + _items(
                ("sanitary_ware", "Sanitary ware condition", "Sanitary ware"),
                ("cp_fittings", "CP fittings condition", "Sanitary ware"),
            ),
            "BALCONY": _items(
                ("flooring_finish", "Flooring finish", "Flooring"),
                ("railing", "Railing condition", "Handrails/MS grills"),
                ("waterproofing", "Waterproofing condition", "Wall Finish"),
            ),
        },
    )


def taxonomy_from_mapping(data: Mapping[str, Any]) -> Taxonomy:
    """
    Load the external ROOM_TAXONOMY artefact:
      {"room_types": {"LIVING_ROOM": {"label": "Living Room", "scored": true}, ...},
       "items": {"LIVING_ROOM": [{"item_id", "label", "category"}, ...]}}
    """
    raw_types = data.get("room_types") or {}
    room_types = []
    for key, entry in raw_types.items():
        entry = entry if isinstance(entry, dict) else {}
        room_types.append(
            RoomTypeDef(
                key=str(key),
                label=str(entry.get("label") or key.replace("_", " ").title()),
                scored=bool(entry.get("scored", True)),
            )
        )

    raw_items = data.get("items") or {}
    item_definitions = {
        str(rt): tuple(
            ItemDefinition(
                item_id=str(i.get("item_id") or ""),
                label=str(i.get("label") or ""),
                category=str(i.get("category") or "General"),
            )
            for i in (rows or [])
            if isinstance(i, dict) and i.get("item_id")
        )
        for rt, rows in raw_items.items()
    }

    return Taxonomy(room_types=tuple(room_types), item_definitions=item_definitions)


def starter_catalog_entries(taxonomy: Taxonomy) -> list[IssueCatalogEntry]:
    """Seed catalog derived from the item definitions (one MINOR issue per item)."""
    out: list[IssueCatalogEntry] = []
    for rt in taxonomy.room_types:
        for item in taxonomy.items_for(rt.key):
            out.append(IssueCatalogEntry(room_type=rt.label, category=item.category, description=item.label))
    return out
