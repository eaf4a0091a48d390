# backend/app/schemas.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


# -------------------- Tasks --------------------

class TaskCreate(BaseModel):
    property_id: Optional[str] = None
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    property_address: Optional[str] = None
    description: Optional[str] = None

    # None -> first available inspector (when auto-assign is enabled)
    assigned_to_id: Optional[str] = None

    # str | {"id", "name"}; defaults to the assignee
    technician: Optional[Any] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


# -------------------- Inspections --------------------

class InspectionOut(BaseModel):
    id: str
    task_id: str
    status: str
    assigned_to_id: str
    overall_score: Optional[int] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    report_path: Optional[str] = None
    updated_at: Optional[datetime] = None

    # from the document body
    client_name: Optional[str] = None
    property_address: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="before")
    @classmethod
    def _lift_document_fields(cls, data: Any) -> Any:
        """Accept an Inspection row directly: pull display fields out of inspection_json."""
        raw = getattr(data, "inspection_json", None)
        if raw is None:
            return data
        try:
            doc = json.loads(raw) if raw else {}
        except ValueError:
            doc = {}
        meta = doc.get("metadata") if isinstance(doc, dict) else None
        meta = meta if isinstance(meta, dict) else {}
        out = {k: getattr(data, k, None) for k in cls.model_fields if hasattr(data, k)}
        out["client_name"] = meta.get("client_name") or "Unknown Client"
        out["property_address"] = meta.get("property_address") or "Unknown Address"
        return out


class AuditEntryOut(BaseModel):
    id: int
    inspection_id: str
    task_id: Optional[str] = None
    action: str
    actor_id: Optional[str] = None
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# -------------------- Canonical report model --------------------
# The rendering service reads camelCase keys; dump with by_alias=True.

class _ReportBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReportDimension(_ReportBase):
    length: Any = None
    width: Any = None


class ReportRoom(_ReportBase):
    name: str
    dimensions: list[ReportDimension] = Field(default_factory=list)
    materials: dict[str, Any] = Field(default_factory=dict)
    brands: dict[str, Any] = Field(default_factory=dict)


class ReportFinding(_ReportBase):
    room: str
    category: str
    issue_type: str  # Major|Minor|Cosmetic
    description: str
    images: list[str] = Field(default_factory=list)
    date: str


class ReportQuality(_ReportBase):
    major: int = 0
    minor: int = 0
    cosmetic: int = 0


class ReportSummary(_ReportBase):
    total_area: float = 0.0
    overall_score: Optional[int] = None
    grade: str = "poor"


class ReportModel(_ReportBase):
    report_id: str
    inspector_name: str
    verifier_name: str
    inspection_date: str
    client_name: str
    property_address: str
    rooms: list[ReportRoom] = Field(default_factory=list)
    inspections: list[ReportFinding] = Field(default_factory=list)
    quality: ReportQuality = Field(default_factory=ReportQuality)
    summary: ReportSummary = Field(default_factory=ReportSummary)
    severity_counts: dict[str, int] = Field(default_factory=dict)
