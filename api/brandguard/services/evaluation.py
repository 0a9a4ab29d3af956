"""Regression cases for the AI compliance logic.

Each case is a piece of content with predicates on the score, the summary
and the checks a correct analysis must produce. The cases call the live
model, so they run from `scripts/run_ai_tests.py` rather than the unit suite.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Checks = List[Dict[str, Any]]


def _find(checks: Checks, needle: str, modality: Optional[str] = None) -> Optional[Dict[str, Any]]:
    for check in checks:
        if needle in str(check.get("name", "")) and (modality is None or check.get("modality") == modality):
            return check
    return None


def _status(checks: Checks, needle: str, modality: Optional[str] = None) -> Optional[str]:
    check = _find(checks, needle, modality)
    return check.get("status") if check else None


def _mentions(*words: str) -> Callable[[str], bool]:
    return lambda summary: any(w in summary.lower() for w in words)


@dataclass
class EvalCase:
    id: str
    title: str
    description: str
    type: str
    text: str
    score: Callable[[int], bool]
    score_text: str
    summary: Callable[[str], bool]
    checks: Callable[[Checks], bool]


@dataclass
class CaseOutcome:
    case_id: str
    score_ok: bool
    summary_ok: bool
    checks_ok: bool
    actual_score: Optional[int] = None
    actual_summary: str = ""
    error: Optional[str] = None
    notes: List[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.error is None and self.score_ok and self.summary_ok and self.checks_ok


TEST_CASES: List[EvalCase] = [
    EvalCase(
        id="text-pass-1",
        title="Perfectly Compliant Text Post",
        description="A post that meets all standard requirements.",
        type="text",
        text=("#ad So excited to share my new favorite sneakers! They are stylish, comfortable, "
              "and made with 100% organic materials. A must-have! #BrandPartner"),
        score=lambda s: s >= 90,
        score_text=">= 90",
        summary=_mentions("compliant"),
        checks=lambda c: _status(c, "FTC") == "pass" and _status(c, "Claim") == "pass",
    ),
    EvalCase(
        id="text-fail-1",
        title="Blatant FTC Violation",
        description="No FTC disclosure at all.",
        type="text",
        text=("Just got these amazing new sneakers. They are made with 100% organic materials "
              "and feel incredible. You have to try them!"),
        score=lambda s: s <= 50,
        score_text="<= 50",
        summary=_mentions("not compliant", "issue"),
        checks=lambda c: _status(c, "FTC") == "fail",
    ),
    EvalCase(
        id="text-fail-2",
        title="Missing Required Claim",
        description="Disclosed, but the required product claim is missing.",
        type="text",
        text="#sponsored My new shoes are great. Super comfy and they look cool too!",
        score=lambda s: s < 90,
        score_text="< 90",
        summary=_mentions("not compliant", "issue"),
        checks=lambda c: _status(c, "Claim") == "fail",
    ),
    EvalCase(
        id="text-warn-1",
        title="Buried FTC Disclosure",
        description="Disclosure hidden among unrelated hashtags should be a warning.",
        type="text",
        text="My new sneakers are made with 100% organic materials and I love them! #style #fashion #ootd #new #summer #ad",
        score=lambda s: 60 < s < 90,
        score_text="60-90",
        summary=_mentions("warning", "improvement"),
        checks=lambda c: _status(c, "FTC") == "warn",
    ),
    EvalCase(
        id="image-fail-1",
        title="Image Post with Non-Compliant Caption",
        description="Image pipeline with a caption that has a clear FTC violation.",
        type="image",
        text="Check out the new look! These shoes are made with 100% organic materials. So good!",
        score=lambda s: s <= 50,
        score_text="<= 50",
        summary=_mentions("not compliant", "issue"),
        checks=lambda c: _status(c, "FTC", modality="text") == "fail",
    ),
]


def get_case(case_id: str) -> EvalCase:
    for case in TEST_CASES:
        if case.id == case_id:
            return case
    raise KeyError(case_id)


def evaluate_case(case: EvalCase, report: Any) -> CaseOutcome:
    """Apply a case's predicates to an analysis (dict or `AnalysisResult`)."""
    if isinstance(report, dict):
        score, summary, checks = report["overall_score"], report["summary"], report["checks"]
    else:
        score, summary, checks = report.overall_score, report.summary, report.checks
    outcome = CaseOutcome(
        case_id=case.id,
        score_ok=bool(case.score(score)),
        summary_ok=bool(case.summary(summary)),
        checks_ok=bool(case.checks(checks)),
        actual_score=score,
        actual_summary=summary,
    )
    if not outcome.score_ok:
        outcome.notes.append(f"Score Check Failed: Got {score}, Expected {case.score_text}")
    if not outcome.summary_ok:
        outcome.notes.append(f'Summary Check Failed: Got "{summary}"')
    if not outcome.checks_ok:
        outcome.notes.append("Checks Validation Failed.")
    return outcome


async def run_cases(
    analyze: Callable[[str], Awaitable[Any]],
    case_type: str = "text",
) -> List[CaseOutcome]:
    """Run every case of `case_type` through `analyze` and evaluate it.

    A case whose analysis raises is recorded as failed with the error message.
    """
    outcomes = []
    for case in (c for c in TEST_CASES if c.type == case_type):
        try:
            report = await analyze(case.text)
        except Exception as e:
            logger.error(f"Case {case.id} raised {type(e).__name__}: {e}")
            outcomes.append(CaseOutcome(case.id, False, False, False, error=str(e) or type(e).__name__))
            continue
        outcomes.append(evaluate_case(case, report))
    return outcomes
