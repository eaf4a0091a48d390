# backend/app/domain/audit.py
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import InspectionAuditEntry
from ..schemas import AuditEntryOut


def _dumps(v: Optional[dict[str, Any]]) -> Optional[str]:
    if not v:
        return None
    return json.dumps(v, sort_keys=True, default=str)


def _loads(s: Optional[str]) -> dict[str, Any]:
    if not s:
        return {}
    try:
        v = json.loads(s)
        return v if isinstance(v, dict) else {}
    except ValueError:
        return {}


def audit_write(
    db: Session,
    *,
    inspection_id: str,
    action: str,
    actor_id: Optional[str],
    task_id: Optional[str] = None,
    from_status: Optional[str] = None,
    to_status: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
    commit: bool = False,
) -> InspectionAuditEntry:
    """
    Append one entry to the inspection ledger.

    - Does NOT commit by default, so a transition and its entry land in one txn.
    - No update/delete counterpart: the ledger is append-only.
    """
    row = InspectionAuditEntry(
        inspection_id=str(inspection_id),
        task_id=task_id,
        action=action,
        actor_id=actor_id,
        from_status=from_status,
        to_status=to_status,
        details_json=_dumps(details),
        created_at=datetime.now(timezone.utc).replace(tzinfo=None),
    )
    db.add(row)
    if commit:
        db.commit()
        db.refresh(row)
    return row


def audit_entry_out(row: InspectionAuditEntry) -> AuditEntryOut:
    return AuditEntryOut(
        id=int(row.id),
        inspection_id=row.inspection_id,
        task_id=row.task_id,
        action=row.action,
        actor_id=row.actor_id,
        from_status=row.from_status,
        to_status=row.to_status,
        details=_loads(row.details_json),
        created_at=row.created_at,
    )


def list_audit_entries(db: Session, *, inspection_id: str, limit: int = 200) -> list[AuditEntryOut]:
    q = (
        select(InspectionAuditEntry)
        .where(InspectionAuditEntry.inspection_id == str(inspection_id))
        .order_by(InspectionAuditEntry.id.asc())
        .limit(int(limit))
    )
    return [audit_entry_out(r) for r in db.scalars(q).all()]
