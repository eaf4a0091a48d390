# backend/app/services/inspection_lifecycle.py
from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Optional, Protocol

from sqlalchemy.orm import Session

from ..auth import ROLE_ADMIN, ROLE_INSPECTOR, Principal, require_admin, require_owner, require_role
from ..config import settings
from ..domain.inspection.documents import (
    clone,
    duplicate_ids,
    empty_derived,
    project_audit,
    require_document_shape,
    utcnow,
)
from ..domain.inspection.errors import AuthorizationDenied, PreconditionFailed, ValidationFailed
from ..domain.inspection.prefill import generate_prefill
from ..domain.inspection.report_normalizer import ReportContext, normalize_report
from ..domain.inspection.scoring import ScoringRules, compute_derived
from ..domain.inspection.taxonomy import IssueCatalog, Taxonomy
from ..domain.inspection.validation import validate_document
from ..models import Inspection, InspectionTask
from ..schemas import ReportModel, TaskCreate
from . import inspection_store as store
from .reference_data import load_issue_catalog, load_scoring_rules, load_taxonomy

log = logging.getLogger("propinspect.lifecycle")

# -----------------------------------------------------------------------------
# Inspection lifecycle
# -----------------------------------------------------------------------------
# Task:       PENDING -> IN_PROGRESS -> COMPLETED
# Inspection: DRAFT -> IN_PROGRESS -> SUBMITTED -> FINAL -> REPORT_GENERATED | COMPLETED
#             REJECTED from anywhere; editing a REJECTED document reopens it.
#
# This module is the only writer of Inspection.status and of the document's
# audit block. Each operation is one transaction with exactly one ledger entry.
# -----------------------------------------------------------------------------

DRAFT = "DRAFT"
IN_PROGRESS = "IN_PROGRESS"
SUBMITTED = "SUBMITTED"
FINAL = "FINAL"
REPORT_GENERATED = "REPORT_GENERATED"
COMPLETED = "COMPLETED"
REJECTED = "REJECTED"

TASK_PENDING = "PENDING"
TASK_IN_PROGRESS = "IN_PROGRESS"
TASK_COMPLETED = "COMPLETED"

EDITABLE = (DRAFT, REJECTED, IN_PROGRESS, SUBMITTED)
REOPENS = (DRAFT, REJECTED)
IDS_FROZEN = (SUBMITTED, FINAL, REPORT_GENERATED, COMPLETED)
REPORTABLE = (SUBMITTED, FINAL, REPORT_GENERATED, COMPLETED)


class ReportRenderer(Protocol):
    def render(self, report: ReportModel) -> Any: ...


@dataclass(frozen=True)
class CreatedInspection:
    task: InspectionTask
    inspection: Inspection
    document: dict

    def as_dict(self) -> dict:
        return {
            "task_id": self.task.id,
            "inspection_id": self.inspection.id,
            "status": self.inspection.status,
            "assigned_to_id": self.inspection.assigned_to_id,
        }


@dataclass(frozen=True)
class ReportOutcome:
    inspection: Inspection
    report: ReportModel
    report_path: Optional[str] = None


def _naive(dt: datetime) -> datetime:
    return dt.replace(tzinfo=None) if dt.tzinfo is not None else dt


def _ctx(insp: Inspection, actor: Principal, action: str, **extra: Any) -> dict[str, Any]:
    return {"inspection_id": insp.id, "task_id": insp.task_id, "actor_id": actor.id, "action": action, **extra}


@contextmanager
def _transaction(db: Session) -> Iterator[None]:
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise


def _guard_status(insp: Inspection, actor: Principal, action: str, allowed: tuple[str, ...]) -> None:
    if insp.status in allowed:
        return
    log.warning(
        "transition refused: wrong status",
        extra=_ctx(insp, actor, action, from_status=insp.status),
    )
    raise PreconditionFailed(
        f"Cannot {action.lower().replace('_', ' ')} an inspection in status {insp.status}",
        current_status=insp.status,
    )


def _guard(check, insp: Inspection, actor: Principal, action: str, **kwargs: Any) -> None:
    try:
        check(actor, **kwargs)
    except AuthorizationDenied:
        log.warning("transition refused: not authorized", extra=_ctx(insp, actor, action))
        raise


def _move(
    db: Session,
    insp: Inspection,
    actor: Principal,
    *,
    action: str,
    expected: str,
    to_status: str,
    document: Optional[dict] = None,
    details: Optional[dict[str, Any]] = None,
    now: Optional[datetime] = None,
    **fields: Any,
) -> Inspection:
    """CAS from `expected`, persist the body/fields, append the ledger entry. Caller commits."""
    from_status = expected
    now = now or utcnow()

    store.compare_and_set_status(db, inspection=insp, expected=from_status, new_status=to_status)

    if document is None:
        document = store.loads_document(insp.inspection_json)
    project_audit(document, status=to_status, now=now)

    store.update_inspection(db, inspection=insp, document=document, **fields)
    store.append_audit_entry(
        db,
        inspection=insp,
        action=action,
        actor_id=actor.id,
        from_status=from_status,
        to_status=to_status,
        details=details,
    )
    log.info("inspection transition", extra=_ctx(insp, actor, action, from_status=from_status, to_status=to_status))
    return insp


def _merge_candidate(insp: Inspection, candidate: Any) -> dict:
    """
    Take an edited body from the client and make it safe to store:
      - shape-check it
      - keep inspection_id (always) and schema_version (once submitted) frozen
      - drop client-supplied derived/audit blocks in favour of the stored ones
    """
    require_document_shape(candidate)
    stored = store.loads_document(insp.inspection_json)
    doc = clone(candidate)

    errors: list[str] = []
    if doc.get("inspection_id") not in (None, stored.get("inspection_id")):
        errors.append("inspection_id cannot be changed")
    frozen = insp.status in IDS_FROZEN or insp.submitted_at is not None
    if frozen and doc.get("schema_version") not in (None, stored.get("schema_version")):
        errors.append("schema_version cannot be changed after submission")
    if errors:
        raise ValidationFailed(errors)

    doc["inspection_id"] = stored.get("inspection_id") or insp.id
    if doc.get("schema_version") is None:
        doc["schema_version"] = stored.get("schema_version") or settings.schema_version
    doc["derived"] = stored.get("derived") or empty_derived()
    doc["audit"] = dict(stored.get("audit") or {})

    dups = duplicate_ids(doc)
    if dups:
        raise ValidationFailed(dups)
    return doc


# -----------------------------------------------------------------------------
# Operations
# -----------------------------------------------------------------------------


def create_inspection_task(
    db: Session,
    *,
    actor: Principal,
    payload: TaskCreate,
    taxonomy: Optional[Taxonomy] = None,
    catalog: Optional[IssueCatalog] = None,
    now: Optional[datetime] = None,
    id_factory=None,
) -> CreatedInspection:
    require_admin(actor)

    creator = store.find_user(db, user_id=actor.id)
    if creator is None:
        raise PreconditionFailed("Unknown creator")

    if payload.assigned_to_id:
        assignee = store.find_user(db, user_id=payload.assigned_to_id)
        if assignee is None or assignee.role != ROLE_INSPECTOR:
            raise PreconditionFailed("Assigned user is not a known inspector")
    elif settings.auto_assign_inspector:
        assignee = store.first_inspector(db)
        if assignee is None:
            raise PreconditionFailed("No inspector available for auto-assignment")
    else:
        raise PreconditionFailed("assigned_to_id is required")

    now = now or utcnow()
    task_fields = {
        "property_id": payload.property_id,
        "client_name": payload.client_name,
        "client_email": payload.client_email,
        "client_phone": payload.client_phone,
        "property_address": payload.property_address,
        "description": payload.description,
    }
    overrides = {k: v for k, v in task_fields.items() if k != "description"}
    overrides.update(payload.metadata or {})

    document = generate_prefill(
        taxonomy=taxonomy or load_taxonomy(),
        catalog=catalog if catalog is not None else load_issue_catalog(db),
        technician=payload.technician or {"id": assignee.id, "name": assignee.name},
        metadata=overrides,
        schema_version=settings.schema_version,
        id_prefix=settings.inspection_id_prefix,
        now=now,
        id_factory=id_factory,
    )

    with _transaction(db):
        task, insp = store.create_task_with_inspection(
            db,
            task_fields=task_fields,
            document=document,
            assigned_to_id=assignee.id,
            created_by_id=creator.id,
        )
        store.append_audit_entry(
            db,
            inspection=insp,
            action="CREATED",
            actor_id=actor.id,
            to_status=DRAFT,
            details={"assigned_to_id": assignee.id, "rooms": len(document["rooms"])},
        )

    log.info("inspection created", extra=_ctx(insp, actor, "CREATED", to_status=DRAFT))
    return CreatedInspection(task=task, inspection=insp, document=document)


def edit_inspection(
    db: Session,
    *,
    actor: Principal,
    inspection_id: str,
    document: Any,
    rules: Optional[ScoringRules] = None,
    now: Optional[datetime] = None,
) -> Inspection:
    """
    Save an edited body. First edit of a DRAFT (or REJECTED) document moves it
    and its task to IN_PROGRESS. Edits after submission keep the status but
    recompute derived so the stored scores follow the items.
    """
    insp = store.must_get_inspection(db, inspection_id=inspection_id)
    _guard(require_owner, insp, actor, "MODIFIED", owner_id=insp.assigned_to_id)
    _guard_status(insp, actor, "MODIFIED", EDITABLE)

    doc = _merge_candidate(insp, document)
    from_status = insp.status
    to_status = IN_PROGRESS if from_status in REOPENS else from_status

    fields: dict[str, Any] = {}
    if from_status == SUBMITTED:
        derived = compute_derived(doc, rules or load_scoring_rules())
        fields["overall_score"] = derived["overall_score"]
        fields["severity_counts_json"] = json.dumps(derived["severity_counts"], sort_keys=True)

    with _transaction(db):
        _move(
            db,
            insp,
            actor,
            action="MODIFIED",
            expected=from_status,
            to_status=to_status,
            document=doc,
            details={"recomputed": from_status == SUBMITTED},
            now=now,
            **fields,
        )
        if to_status != from_status:
            store.set_task_status(db, task=insp.task, status=TASK_IN_PROGRESS)

    return insp


def submit_inspection(
    db: Session,
    *,
    actor: Principal,
    inspection_id: str,
    document: Any = None,
    rules: Optional[ScoringRules] = None,
    now: Optional[datetime] = None,
) -> Inspection:
    insp = store.must_get_inspection(db, inspection_id=inspection_id)
    _guard(require_owner, insp, actor, "SUBMITTED", owner_id=insp.assigned_to_id)
    _guard_status(insp, actor, "SUBMITTED", (IN_PROGRESS,))

    doc = _merge_candidate(insp, document) if document is not None else store.loads_document(insp.inspection_json)

    result = validate_document(doc, baseline=store.loads_document(insp.prefill_json) or None)
    dups = duplicate_ids(doc)
    if not result.valid or dups:
        log.warning("submission refused: validation failed", extra=_ctx(insp, actor, "SUBMITTED"))
        raise ValidationFailed(result.errors + dups)

    now = now or utcnow()
    derived = compute_derived(doc, rules or load_scoring_rules(), stamp_status=SUBMITTED, now=now)

    with _transaction(db):
        _move(
            db,
            insp,
            actor,
            action="SUBMITTED",
            expected=IN_PROGRESS,
            to_status=SUBMITTED,
            document=doc,
            details={
                "overall_score": derived["overall_score"],
                "dynamic_rooms": result.dynamic_rooms,
                "dynamic_items": result.dynamic_items,
            },
            now=now,
            overall_score=derived["overall_score"],
            severity_counts_json=json.dumps(derived["severity_counts"], sort_keys=True),
            submitted_at=_naive(now),
        )
        store.set_task_status(db, task=insp.task, status=TASK_COMPLETED)

    return insp


def mark_final(db: Session, *, actor: Principal, inspection_id: str, now: Optional[datetime] = None) -> Inspection:
    insp = store.must_get_inspection(db, inspection_id=inspection_id)
    _guard(require_owner, insp, actor, "MARKED_FINAL", owner_id=insp.assigned_to_id)
    _guard_status(insp, actor, "MARKED_FINAL", (SUBMITTED,))

    with _transaction(db):
        _move(db, insp, actor, action="MARKED_FINAL", expected=SUBMITTED, to_status=FINAL, now=now)
    return insp


def _require_report_actor(actor: Principal, *, owner_id: str) -> Principal:
    if actor.role == ROLE_ADMIN:
        return actor
    if not settings.inspector_can_generate_report:
        raise AuthorizationDenied("Only admins can generate reports")
    return require_owner(actor, owner_id=owner_id)


def _report_context(db: Session, insp: Inspection, actor: Principal) -> ReportContext:
    task = insp.task
    inspector = insp.assigned_to
    verifier = store.find_user(db, user_id=insp.approved_by_id) or (
        store.find_user(db, user_id=actor.id) if actor.is_admin else None
    )
    counts = store.loads_document(insp.severity_counts_json) or None
    return ReportContext(
        inspection_id=insp.id,
        client_name=getattr(task, "client_name", None),
        property_address=getattr(task, "property_address", None),
        inspector_name=getattr(inspector, "name", None),
        verifier_name=getattr(verifier, "name", None),
        overall_score=insp.overall_score,
        severity_counts=counts,
    )


def _report_file(inspection_id: str) -> Path:
    return Path(settings.report_output_dir) / f"{inspection_id}.pdf"


def _stage_rendered(target: Path, content: bytes) -> Path:
    """Write next to the target; the caller renames it into place after commit."""
    target.parent.mkdir(parents=True, exist_ok=True)
    staged = target.with_name(target.name + ".tmp")
    staged.write_bytes(content)
    return staged


def generate_report(
    db: Session,
    *,
    actor: Principal,
    inspection_id: str,
    renderer: Optional[ReportRenderer] = None,
    rules: Optional[ScoringRules] = None,
    now: Optional[datetime] = None,
) -> ReportOutcome:
    """
    Normalize the document into the report model and, when a renderer is
    given, render and store the artefact. A rendering failure raises before
    any state changes, and the artefact only lands at its final path once the
    transition has committed. COMPLETED stays COMPLETED; everything else
    becomes REPORT_GENERATED.
    """
    insp = store.must_get_inspection(db, inspection_id=inspection_id)
    _guard(_require_report_actor, insp, actor, "REPORT_GENERATED", owner_id=insp.assigned_to_id)
    _guard_status(insp, actor, "REPORT_GENERATED", REPORTABLE)
    from_status = insp.status

    now = now or utcnow()
    doc = store.loads_document(insp.inspection_json)
    report = normalize_report(
        doc,
        _report_context(db, insp, actor),
        photo_base_url=settings.photo_storage_base_url,
        rules=rules or load_scoring_rules(),
        now=now,
    )

    report_path = insp.report_path
    rendered = None
    target: Optional[Path] = None
    if renderer is not None:
        rendered = renderer.render(report)
        target = _report_file(insp.id)
        report_path = str(target)

    to_status = COMPLETED if from_status == COMPLETED else REPORT_GENERATED
    staged: Optional[Path] = None
    try:
        with _transaction(db):
            _move(
                db,
                insp,
                actor,
                action="REPORT_GENERATED",
                expected=from_status,
                to_status=to_status,
                document=doc,
                details={"report_id": report.report_id, "findings": len(report.inspections), "report_path": report_path},
                now=now,
                report_path=report_path,
            )
            if rendered is not None:
                staged = _stage_rendered(target, rendered.content)
    except Exception:
        if staged is not None:
            staged.unlink(missing_ok=True)
        raise

    if staged is not None:
        staged.replace(target)

    return ReportOutcome(inspection=insp, report=report, report_path=report_path)


def approve_inspection(db: Session, *, actor: Principal, inspection_id: str, now: Optional[datetime] = None) -> Inspection:
    insp = store.must_get_inspection(db, inspection_id=inspection_id)
    _guard(require_admin, insp, actor, "APPROVED")
    _guard_status(insp, actor, "APPROVED", (SUBMITTED,))

    now = now or utcnow()
    with _transaction(db):
        _move(
            db,
            insp,
            actor,
            action="APPROVED",
            expected=SUBMITTED,
            to_status=COMPLETED,
            now=now,
            approved_by_id=actor.id,
            approved_at=_naive(now),
        )
    return insp


def reject_inspection(
    db: Session,
    *,
    actor: Principal,
    inspection_id: str,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Inspection:
    insp = store.must_get_inspection(db, inspection_id=inspection_id)
    _guard(require_admin, insp, actor, "REJECTED")
    from_status = insp.status

    reason = (reason or "").strip() or None
    with _transaction(db):
        _move(
            db,
            insp,
            actor,
            action="REJECTED",
            expected=from_status,
            to_status=REJECTED,
            details={"rejection_reason": reason},
            now=now,
            rejection_reason=reason,
        )
    return insp


def delete_inspection(db: Session, *, actor: Principal, inspection_id: str) -> None:
    insp = store.must_get_inspection(db, inspection_id=inspection_id)
    _guard(require_admin, insp, actor, "DELETED")

    with _transaction(db):
        store.append_audit_entry(
            db,
            inspection=insp,
            action="DELETED",
            actor_id=actor.id,
            from_status=insp.status,
            details={"task_id": insp.task_id},
        )
        log.info("inspection deleted", extra=_ctx(insp, actor, "DELETED", from_status=insp.status))
        store.delete_inspection_and_task(db, inspection=insp)


# -----------------------------------------------------------------------------
# Reads
# -----------------------------------------------------------------------------


def get_inspection_for(db: Session, *, actor: Principal, inspection_id: str) -> Inspection:
    """Admins see every inspection; inspectors only their own."""
    require_role(actor, ROLE_ADMIN, ROLE_INSPECTOR)
    insp = store.must_get_inspection(db, inspection_id=inspection_id)
    if not actor.is_admin and str(insp.assigned_to_id) != str(actor.id):
        raise AuthorizationDenied("Not allowed to view this inspection")
    return insp


def list_inspections_for(db: Session, *, actor: Principal, limit: int = 500) -> list[Inspection]:
    require_role(actor, ROLE_ADMIN, ROLE_INSPECTOR)
    return store.list_inspections(db, assigned_to_id=None if actor.is_admin else actor.id, limit=limit)


def inspection_document(insp: Inspection) -> dict:
    return store.loads_document(insp.inspection_json)
