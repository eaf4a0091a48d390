# backend/tests/conftest.py
from __future__ import annotations

from dataclasses import dataclass

import pytest
from sqlalchemy.orm import Session, sessionmaker

from app.auth import ROLE_ADMIN, ROLE_INSPECTOR, Principal
from app.db import init_db, make_engine
from app.domain.inspection.taxonomy import IssueCatalog, RoomTypeDef, Taxonomy, build_issue_catalog
from app.models import AppUser


@pytest.fixture()
def db_session():
    engine = make_engine("sqlite://")
    init_db(bind=engine)
    db = sessionmaker(bind=engine, autoflush=False, future=True)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture()
def small_taxonomy() -> Taxonomy:
    return Taxonomy(
        room_types=(
            RoomTypeDef("LIVING_ROOM", "Living Room"),
            RoomTypeDef("KITCHEN", "Kitchen"),
            RoomTypeDef("PARKING", "Parking", scored=False),
        )
    )


@pytest.fixture()
def small_catalog() -> IssueCatalog:
    return build_issue_catalog(
        [
            {"room_type": "Living Room", "category": "Flooring", "description": "Tiles cracked", "severity": "MAJOR"},
            {"room_type": "Living Room", "category": "Flooring", "description": "#N/A"},
            {"room_type": "Living Room", "category": "Wall Finish", "description": "Paint peeling"},
            {"room_type": "Kitchen", "category": "Plumbing", "description": "Sink leak", "severity": "CRITICAL"},
            {"room_type": "Parking", "category": "Flooring", "description": "Oil stains"},
        ]
    )


@dataclass(frozen=True)
class People:
    admin: Principal
    inspector: Principal
    other_inspector: Principal


@pytest.fixture()
def people(db_session: Session) -> People:
    rows = [
        AppUser(id="u-admin", name="Asha Admin", email="admin@test.local", role=ROLE_ADMIN),
        AppUser(id="u-insp", name="Ivan Inspector", email="insp@test.local", role=ROLE_INSPECTOR),
        AppUser(id="u-insp2", name="Ola Other", email="other@test.local", role=ROLE_INSPECTOR),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return People(
        admin=Principal(id="u-admin", role=ROLE_ADMIN),
        inspector=Principal(id="u-insp", role=ROLE_INSPECTOR),
        other_inspector=Principal(id="u-insp2", role=ROLE_INSPECTOR),
    )
