# backend/app/services/reference_data.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.inspection.scoring import (
    FLAT_DEDUCTION,
    WEIGHTED_AVERAGE,
    ScoringRules,
    flat_deduction_rules,
    scoring_rules_from_mapping,
    weighted_average_rules,
)
from ..domain.inspection.taxonomy import IssueCatalog, Taxonomy, build_issue_catalog, default_taxonomy, taxonomy_from_mapping
from ..models import PredefinedIssue

log = logging.getLogger("propinspect.reference_data")


def _read_json(path: str) -> dict:
    p = Path(path)
    data = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{p} must contain a JSON object")
    return data


def load_issue_catalog(db: Session) -> IssueCatalog:
    rows = db.scalars(
        select(PredefinedIssue).order_by(PredefinedIssue.room_type.asc(), PredefinedIssue.category.asc(), PredefinedIssue.id.asc())
    ).all()
    return build_issue_catalog(rows)


def load_taxonomy(path: Optional[str] = None) -> Taxonomy:
    path = path or settings.taxonomy_path
    if not path:
        return default_taxonomy()
    log.info("loading taxonomy", extra={"action": "load_taxonomy"})
    return taxonomy_from_mapping(_read_json(path))


def load_scoring_rules(path: Optional[str] = None, model: Optional[str] = None) -> ScoringRules:
    """
    A rules artefact wins when present (its own model key, or the explicit `model`).
    Otherwise the configured model with built-in tables.
    """
    path = path or settings.scoring_rules_path
    if path:
        data = _read_json(path)
        if model:
            data = {**data, "model": model}
        return scoring_rules_from_mapping(data)

    chosen = (model or settings.scoring_model or FLAT_DEDUCTION).strip().lower()
    if chosen == FLAT_DEDUCTION:
        return flat_deduction_rules()
    if chosen == WEIGHTED_AVERAGE:
        return weighted_average_rules()
    raise ValueError(f"Unknown scoring model: {chosen!r}")
