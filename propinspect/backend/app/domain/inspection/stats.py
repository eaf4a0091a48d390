# backend/app/domain/inspection/stats.py
from __future__ import annotations

from collections import Counter
from typing import Any, Iterable, Optional

UNASSIGNED = "Unassigned"


def _get(row: Any, key: str) -> Any:
    if isinstance(row, dict):
        return row.get(key)
    return getattr(row, key, None)


def _inspector_name(row: Any) -> str:
    # Inspection rows carry the relationship; dict rows carry a flat name.
    user = _get(row, "assigned_to")
    name = _get(user, "name") if user is not None else None
    name = name or _get(row, "inspector_name")
    return str(name).strip() if name and str(name).strip() else UNASSIGNED


def inspection_stats(rows: Iterable[Any]) -> dict[str, Any]:
    """
    Admin dashboard rollup over an inspection list.

    Works with Inspection rows or plain dicts carrying
    status / inspector_name / overall_score. Rows without a score
    (never submitted) are left out of the average.
    """
    rows = list(rows or [])

    by_status: Counter[str] = Counter()
    by_inspector: Counter[str] = Counter()
    scores: list[int] = []

    for r in rows:
        status = str(_get(r, "status") or "").strip().upper()
        if status:
            by_status[status] += 1

        by_inspector[_inspector_name(r)] += 1

        score = _get(r, "overall_score")
        if isinstance(score, (int, float)) and not isinstance(score, bool):
            scores.append(int(score))

    average: Optional[float] = round(sum(scores) / len(scores), 2) if scores else None

    return {
        "total": len(rows),
        "by_status": [{"status": s, "count": c} for s, c in sorted(by_status.items())],
        "by_inspector": [{"name": n, "count": c} for n, c in by_inspector.most_common()],
        "average_score": average,
    }
