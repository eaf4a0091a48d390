# backend/tests/test_seed_demo.py
from __future__ import annotations

from sqlalchemy.orm import Session

from app.cli.seed_demo import seed_demo
from app.models import AppUser, PredefinedIssue
from app.services.reference_data import load_issue_catalog


def test_seed_demo_is_idempotent(db_session: Session):
    first = seed_demo(inspectors=[("a@x", "A"), ("b@x", "B")], db=db_session)
    second = seed_demo(inspectors=[("a@x", "A"), ("b@x", "B")], db=db_session)

    assert first.admin_id == second.admin_id
    assert first.inspector_ids == second.inspector_ids
    assert first.issues_created > 0
    assert second.issues_created == 0

    assert db_session.query(AppUser).count() == 3
    assert db_session.query(PredefinedIssue).count() == first.issues_created


def test_seeded_catalog_feeds_prefill_lookup(db_session: Session):
    seed_demo(db=db_session)
    catalog = load_issue_catalog(db_session)

    assert catalog.issues("Kitchen", "Plumbing")
    assert catalog.for_room("Parking") == {}
