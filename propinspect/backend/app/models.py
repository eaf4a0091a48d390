# backend/app/models.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _new_id() -> str:
    return uuid.uuid4().hex


# -----------------------------
# Identity
# -----------------------------
class AppUser(Base):
    __tablename__ = "app_users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="INSPECTOR")  # ADMIN|INSPECTOR
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)


# -----------------------------
# Tasks + inspections
# -----------------------------
class InspectionTask(Base):
    __tablename__ = "inspection_tasks"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)

    property_id: Mapped[Optional[str]] = mapped_column(String(80), nullable=True, index=True)
    client_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    client_email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    client_phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    property_address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    assigned_to_id: Mapped[str] = mapped_column(ForeignKey("app_users.id"), nullable=False, index=True)
    created_by_id: Mapped[str] = mapped_column(ForeignKey("app_users.id"), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")  # PENDING|IN_PROGRESS|COMPLETED

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)

    inspections: Mapped[List["Inspection"]] = relationship(back_populates="task", cascade="all, delete-orphan")


class Inspection(Base):
    __tablename__ = "inspections"

    # Same value as the document's inspection_id.
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    task_id: Mapped[str] = mapped_column(ForeignKey("inspection_tasks.id", ondelete="CASCADE"), nullable=False, index=True)

    assigned_to_id: Mapped[str] = mapped_column(ForeignKey("app_users.id"), nullable=False, index=True)
    created_by_id: Mapped[str] = mapped_column(ForeignKey("app_users.id"), nullable=False)

    status: Mapped[str] = mapped_column(String(24), nullable=False, default="DRAFT", index=True)

    inspection_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    prefill_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    overall_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    severity_counts_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    approved_by_id: Mapped[Optional[str]] = mapped_column(ForeignKey("app_users.id"), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    report_path: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)

    task: Mapped["InspectionTask"] = relationship(back_populates="inspections")
    assigned_to: Mapped["AppUser"] = relationship(foreign_keys=[assigned_to_id])


# -----------------------------
# Append-only audit ledger
# -----------------------------
class InspectionAuditEntry(Base):
    __tablename__ = "inspection_audit_entries"
    __table_args__ = (Index("ix_inspection_audit_inspection_created", "inspection_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # No FK: entries outlive a deleted inspection.
    inspection_id: Mapped[str] = mapped_column(String(64), nullable=False)
    task_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    action: Mapped[str] = mapped_column(String(40), nullable=False)
    actor_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    from_status: Mapped[Optional[str]] = mapped_column(String(24), nullable=True)
    to_status: Mapped[Optional[str]] = mapped_column(String(24), nullable=True)
    details_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)


# -----------------------------
# Reference data: predefined issue catalog
# -----------------------------
class PredefinedIssue(Base):
    __tablename__ = "predefined_issues"
    __table_args__ = (
        UniqueConstraint("room_type", "category", "description", name="uq_predefined_issue_room_category_desc"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    room_type: Mapped[str] = mapped_column(String(80), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(80), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default="MINOR")

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
