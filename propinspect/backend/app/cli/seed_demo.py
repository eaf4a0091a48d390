# backend/app/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from app.auth import ROLE_ADMIN, ROLE_INSPECTOR
from app.db import SessionLocal, init_db
from app.domain.inspection.taxonomy import starter_catalog_entries
from app.models import AppUser, PredefinedIssue
from app.services.reference_data import load_taxonomy


@dataclass(frozen=True)
class SeedResult:
    admin_id: str
    inspector_ids: tuple[str, ...]
    issues_created: int


def _get_or_create_user(db: Session, email: str, name: str, role: str) -> AppUser:
    row = db.query(AppUser).filter(AppUser.email == email).one_or_none()
    if row:
        return row
    row = AppUser(email=email, name=name, role=role)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _seed_catalog(db: Session) -> int:
    created = 0
    for entry in starter_catalog_entries(load_taxonomy()):
        exists = (
            db.query(PredefinedIssue.id)
            .filter(
                PredefinedIssue.room_type == entry.room_type,
                PredefinedIssue.category == entry.category,
                PredefinedIssue.description == entry.description,
            )
            .first()
        )
        if exists:
            continue
        db.add(
            PredefinedIssue(
                room_type=entry.room_type,
                category=entry.category,
                description=entry.description,
                severity=entry.severity,
            )
        )
        created += 1
    db.commit()
    return created


def seed_demo(
    *,
    admin_email: str = "admin@demo.local",
    admin_name: str = "Admin",
    inspectors: Sequence[tuple[str, str]] = (("inspector@demo.local", "Demo Inspector"),),
    with_catalog: bool = True,
    db: Optional[Session] = None,
) -> SeedResult:
    """Idempotent: re-running finds the existing users and catalog rows."""
    own_session = db is None
    if own_session:
        init_db()
        db = SessionLocal()
    try:
        admin = _get_or_create_user(db, admin_email, admin_name, ROLE_ADMIN)
        inspector_ids = tuple(_get_or_create_user(db, email, name, ROLE_INSPECTOR).id for email, name in inspectors)
        created = _seed_catalog(db) if with_catalog else 0
        return SeedResult(admin_id=admin.id, inspector_ids=inspector_ids, issues_created=created)
    finally:
        if own_session:
            db.close()
