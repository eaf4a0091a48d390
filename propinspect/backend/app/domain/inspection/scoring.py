# backend/app/domain/inspection/scoring.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from .documents import empty_derived, project_audit, utcnow

WEIGHTED_AVERAGE = "weighted_average"
FLAT_DEDUCTION = "flat_deduction"

DEFAULT_SEVERITY_MAPPING: Mapping[str, str] = {
    "COSMETIC": "cosmetic",
    "MINOR": "minor",
    "MAJOR": "major",
    "CRITICAL": "critical",
}

DEFAULT_STATUS_WEIGHTS: Mapping[str, int] = {
    "PASS": 100,
    "COSMETIC": 90,
    "MINOR": 70,
    "MAJOR": 40,
    "CRITICAL": 10,
}

DEFAULT_DEDUCTIONS: Mapping[str, int] = {
    "CRITICAL": 10,
    "MAJOR": 5,
    "MINOR": 2,
    "COSMETIC": 1,
    "PASS": 0,
}

DEFAULT_THRESHOLDS: Mapping[str, int] = {"excellent": 90, "good": 75, "acceptable": 60}


@dataclass(frozen=True)
class ScoringRules:
    """
    Everything the calculator needs, passed in at call time.

    model:
      - weighted_average: room = mean of status weights over eligible items
      - flat_deduction:   room = 100 - sum(deductions), clamped at 0
    """

    model: str = FLAT_DEDUCTION
    status_weights: Mapping[str, int] = field(default_factory=lambda: dict(DEFAULT_STATUS_WEIGHTS))
    exclude_statuses: tuple[str, ...] = ("NA",)
    deductions: Mapping[str, int] = field(default_factory=lambda: dict(DEFAULT_DEDUCTIONS))
    severity_mapping: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_SEVERITY_MAPPING))
    exclude_zero_rooms: bool = True
    thresholds: Mapping[str, int] = field(default_factory=lambda: dict(DEFAULT_THRESHOLDS))


def weighted_average_rules(**overrides: Any) -> ScoringRules:
    return ScoringRules(model=WEIGHTED_AVERAGE, **overrides)


def flat_deduction_rules(**overrides: Any) -> ScoringRules:
    return ScoringRules(model=FLAT_DEDUCTION, **overrides)


def scoring_rules_from_mapping(data: Mapping[str, Any]) -> ScoringRules:
    """
    Accepts the SCORING_RULES artefact shape:
      {"status_weights": {...},
       "room_score_calculation": {"exclude_status": ["NA"]},
       "overall_score_calculation": {"exclude_zero_rooms": true},
       "severity_mapping": {...},
       "report_thresholds": {"excellent": {"min": 90}, ...}}
    or a flat deduction table {"deductions": {"CRITICAL": 10, ...}}.

    A deductions table without status weights selects the flat deduction model.
    """
    model = str(data.get("model") or "").strip().lower()
    if not model:
        model = FLAT_DEDUCTION if data.get("deductions") and not data.get("status_weights") else WEIGHTED_AVERAGE
    if model not in (WEIGHTED_AVERAGE, FLAT_DEDUCTION):
        raise ValueError(f"Unknown scoring model: {model!r}")

    kwargs: dict[str, Any] = {"model": model}

    if data.get("status_weights"):
        kwargs["status_weights"] = {str(k).upper(): v for k, v in data["status_weights"].items()}
    if data.get("deductions"):
        kwargs["deductions"] = {str(k).upper(): int(v) for k, v in data["deductions"].items()}
    if data.get("severity_mapping"):
        kwargs["severity_mapping"] = {str(k).upper(): v for k, v in data["severity_mapping"].items()}

    room_calc = data.get("room_score_calculation") or {}
    if "exclude_status" in room_calc:
        kwargs["exclude_statuses"] = tuple(str(s).upper() for s in room_calc.get("exclude_status") or ())

    overall_calc = data.get("overall_score_calculation") or {}
    if "exclude_zero_rooms" in overall_calc:
        kwargs["exclude_zero_rooms"] = bool(overall_calc["exclude_zero_rooms"])

    thresholds = data.get("report_thresholds") or {}
    if thresholds:
        kwargs["thresholds"] = {
            str(name): int(v.get("min", 0) if isinstance(v, dict) else v) for name, v in thresholds.items()
        }

    return ScoringRules(**kwargs)


def round_half_up(x: float) -> int:
    # Python's round() is banker's rounding: round(92.5) == 92. Scores use half-up.
    return int(math.floor(x + 0.5))


def _status(item: dict) -> Optional[str]:
    s = item.get("status")
    return s if isinstance(s, str) and s else None


def _tally(status: Optional[str], rules: ScoringRules, derived: dict) -> None:
    if not status or status == "PASS" or status in rules.exclude_statuses:
        return
    bucket = rules.severity_mapping.get(status)
    if bucket in derived["severity_counts"]:
        derived["severity_counts"][bucket] += 1
        derived["total_issues"] += 1


def _weighted_average(document: dict, rules: ScoringRules) -> dict:
    derived = empty_derived()

    for room in document.get("rooms") or []:
        if not room.get("scored"):
            continue

        total = 0.0
        count = 0
        for item in room.get("items") or []:
            status = _status(item)
            if not status or status in rules.exclude_statuses:
                continue
            weight = rules.status_weights.get(status)
            if weight is None:
                continue
            total += float(weight)
            count += 1
            _tally(status, rules, derived)

        derived["room_scores"][str(room.get("room_id"))] = round_half_up(total / count) if count else 0
        derived["total_rooms_inspected"] += 1

    scores = list(derived["room_scores"].values())
    if rules.exclude_zero_rooms:
        scores = [s for s in scores if s > 0]
    derived["overall_score"] = round_half_up(sum(scores) / len(scores)) if scores else None
    return derived


def _flat_deduction(document: dict, rules: ScoringRules) -> dict:
    derived = empty_derived()

    # Every room counts here, scored flag or not.
    for room in document.get("rooms") or []:
        deduction = 0
        for item in room.get("items") or []:
            status = _status(item)
            deduction += int(rules.deductions.get(status, 0) or 0) if status else 0
            _tally(status, rules, derived)

        derived["room_scores"][str(room.get("room_id"))] = max(0, min(100, 100 - deduction))
        derived["total_rooms_inspected"] += 1

    scores = list(derived["room_scores"].values())
    derived["overall_score"] = round_half_up(sum(scores) / len(scores)) if scores else 100
    return derived


def calculate_derived(document: dict, rules: ScoringRules) -> dict:
    """Pure scoring: never mutates, never raises for missing/zero data."""
    if rules.model == WEIGHTED_AVERAGE:
        return _weighted_average(document, rules)
    return _flat_deduction(document, rules)


def compute_derived(
    document: dict,
    rules: ScoringRules,
    *,
    stamp_status: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict:
    """
    Overwrite document["derived"] and return it.

    With stamp_status (the submission path) the audit block also gets the new
    status plus submitted_at/last_modified_at. Without it this is a preview.
    """
    derived = calculate_derived(document, rules)
    document["derived"] = derived

    if stamp_status:
        ts = now or utcnow()
        project_audit(document, status=stamp_status, now=ts, submitted_at=ts)

    return derived


def quality_grade(score: Optional[int], rules: ScoringRules) -> str:
    if score is None:
        return "poor"
    t = rules.thresholds
    if score >= t.get("excellent", 90):
        return "excellent"
    if score >= t.get("good", 75):
        return "good"
    if score >= t.get("acceptable", 60):
        return "acceptable"
    return "poor"
