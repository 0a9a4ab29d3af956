from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List

PASS_SCORE = 90
WARNING_SCORE = 60
CHART_SIZE = 7


def _round_half_up(value: float) -> int:
    # Built-in round() goes to even on .5; dashboard numbers round .5 up
    return int(math.floor(value + 0.5))


def score_band(score: int) -> str:
    if score >= PASS_SCORE:
        return "success"
    if score >= WARNING_SCORE:
        return "warning"
    return "danger"


def _score(report: Any) -> int:
    if isinstance(report, dict):
        return int(report["overall_score"])
    return int(report.overall_score)


def _id(report: Any) -> str:
    return report["id"] if isinstance(report, dict) else report.id


def summarize_reports(reports: Iterable[Any]) -> Dict[str, Any]:
    """Dashboard numbers for a workspace.

    `reports` must be newest first, as `repository.list_reports` returns them.
    The chart holds the most recent reports in chronological order.
    """
    reports = list(reports)
    if not reports:
        return {"total_scans": 0, "average_score": 0, "pass_rate": 0, "chart": []}

    scores = [_score(r) for r in reports]
    passed = sum(1 for s in scores if s >= PASS_SCORE)
    chart: List[Dict[str, Any]] = [
        {"report_id": _id(r), "overall_score": _score(r), "band": score_band(_score(r))}
        for r in reversed(reports[:CHART_SIZE])
    ]
    return {
        "total_scans": len(reports),
        "average_score": _round_half_up(sum(scores) / len(scores)),
        "pass_rate": _round_half_up(passed / len(reports) * 100),
        "chart": chart,
    }
