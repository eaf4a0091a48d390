# backend/app/services/inspection_store.py
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..auth import ROLE_INSPECTOR
from ..domain.audit import audit_write
from ..domain.inspection.errors import PreconditionFailed, RecordNotFound
from ..models import AppUser, Inspection, InspectionAuditEntry, InspectionTask


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def loads_document(s: Optional[str]) -> dict:
    if not s:
        return {}
    try:
        x = json.loads(s)
        return x if isinstance(x, dict) else {}
    except ValueError:
        return {}


def dumps_document(doc: Optional[dict]) -> str:
    return json.dumps(doc or {}, ensure_ascii=False, default=str)


# -----------------------------------------------------------------------------
# Lookups
# -----------------------------------------------------------------------------


def find_user(db: Session, *, user_id: Optional[str]) -> Optional[AppUser]:
    if not user_id:
        return None
    return db.get(AppUser, str(user_id))


def first_inspector(db: Session) -> Optional[AppUser]:
    return db.scalar(
        select(AppUser).where(AppUser.role == ROLE_INSPECTOR).order_by(AppUser.created_at.asc(), AppUser.id.asc()).limit(1)
    )


def find_task(db: Session, *, task_id: str) -> Optional[InspectionTask]:
    return db.get(InspectionTask, str(task_id))


def must_get_task(db: Session, *, task_id: str) -> InspectionTask:
    row = find_task(db, task_id=task_id)
    if not row:
        raise RecordNotFound("task not found")
    return row


def find_inspection(db: Session, *, inspection_id: str) -> Optional[Inspection]:
    return db.get(Inspection, str(inspection_id))


def must_get_inspection(db: Session, *, inspection_id: str) -> Inspection:
    row = find_inspection(db, inspection_id=inspection_id)
    if not row:
        raise RecordNotFound("inspection not found")
    return row


def list_inspections(db: Session, *, assigned_to_id: Optional[str] = None, limit: int = 500) -> list[Inspection]:
    q = select(Inspection).order_by(Inspection.created_at.desc(), Inspection.id.desc()).limit(int(limit))
    if assigned_to_id is not None:
        q = q.where(Inspection.assigned_to_id == str(assigned_to_id))
    return list(db.scalars(q).all())


# -----------------------------------------------------------------------------
# Writes (never commit; the lifecycle owns the transaction)
# -----------------------------------------------------------------------------


def create_task_with_inspection(
    db: Session,
    *,
    task_fields: dict[str, Any],
    document: dict,
    assigned_to_id: str,
    created_by_id: str,
) -> tuple[InspectionTask, Inspection]:
    now = _utcnow()
    task = InspectionTask(
        assigned_to_id=assigned_to_id,
        created_by_id=created_by_id,
        status="PENDING",
        created_at=now,
        updated_at=now,
        **task_fields,
    )
    db.add(task)
    db.flush()

    body = dumps_document(document)
    insp = Inspection(
        id=str(document["inspection_id"]),
        task_id=task.id,
        assigned_to_id=assigned_to_id,
        created_by_id=created_by_id,
        status="DRAFT",
        inspection_json=body,
        prefill_json=body,
        created_at=now,
        updated_at=now,
    )
    db.add(insp)
    db.flush()
    return task, insp


def compare_and_set_status(db: Session, *, inspection: Inspection, expected: str, new_status: str) -> None:
    """
    UPDATE ... WHERE id = :id AND status = :expected.
    Zero rows means someone else moved the inspection first.
    """
    res = db.execute(
        update(Inspection)
        .where(Inspection.id == inspection.id, Inspection.status == expected)
        .values(status=new_status, updated_at=_utcnow())
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        db.refresh(inspection)
        raise PreconditionFailed(
            f"Inspection status changed concurrently (expected {expected})",
            current_status=inspection.status,
        )
    db.refresh(inspection)


def set_task_status(db: Session, *, task: InspectionTask, status: str) -> None:
    task.status = status
    task.updated_at = _utcnow()
    db.add(task)


def update_inspection(db: Session, *, inspection: Inspection, document: Optional[dict] = None, **fields: Any) -> Inspection:
    if document is not None:
        inspection.inspection_json = dumps_document(document)
    for k, v in fields.items():
        setattr(inspection, k, v)
    inspection.updated_at = _utcnow()
    db.add(inspection)
    db.flush()
    return inspection


def delete_inspection_and_task(db: Session, *, inspection: Inspection) -> None:
    task = inspection.task
    db.delete(inspection)
    if task is not None:
        db.delete(task)
    db.flush()


def append_audit_entry(
    db: Session,
    *,
    inspection: Inspection,
    action: str,
    actor_id: str,
    from_status: Optional[str] = None,
    to_status: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> InspectionAuditEntry:
    return audit_write(
        db,
        inspection_id=inspection.id,
        task_id=inspection.task_id,
        action=action,
        actor_id=actor_id,
        from_status=from_status,
        to_status=to_status,
        details=details,
    )
