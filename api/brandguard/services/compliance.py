"""Compliance analysis on top of Gemini.

Each analysis builds a prompt, asks Gemini for JSON constrained by a
guardrails contract, parses the answer and validates it before it becomes a
report. A model answer that cannot be parsed at all becomes the fallback
report so the caller still gets something to show.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..core.config import settings
from ..models.exceptions import ContractViolationException, GeminiException, NothingToReviseException
from . import gemini
from .guardrails import (
    COMPLIANCE_REPORT,
    GREENLIGHT_BRIEF,
    MULTIMODAL_REPORT,
    to_response_schema,
    validate_contract,
)
from .prompts import (
    BRIEF_PROMPT,
    IMAGE_ANALYSIS_PROMPT,
    IMAGE_FIX_PROMPT,
    INSIGHT_PROMPT,
    MEDIA_ONLY_REVISION_MESSAGE,
    REVISION_PROMPT,
    STANDARD_CLAIM,
    TEXT_ANALYSIS_PROMPT,
    TRANSCRIBE_PROMPT,
    VIDEO_ANALYSIS_PROMPT,
    context_block,
    custom_rules_block,
)

logger = logging.getLogger(__name__)

PASS_THRESHOLD = 90
REVIEW_THRESHOLD = 60

FALLBACK_SUMMARY = (
    "Error: The AI returned an invalid response. This may be due to content safety "
    "filters or an internal error. Please check your content or try again."
)
FALLBACK_CHECK_NAME = "Response Error"


def fallback_report() -> Dict[str, Any]:
    return {
        "overall_score": 0,
        "summary": FALLBACK_SUMMARY,
        "checks": [
            {
                "name": FALLBACK_CHECK_NAME,
                "status": "fail",
                "details": "Could not parse the JSON response from the AI. The raw response was logged.",
            }
        ],
    }


def is_fallback(payload: Dict[str, Any]) -> bool:
    checks = payload.get("checks") or []
    return (
        payload.get("summary") == FALLBACK_SUMMARY
        and len(checks) == 1
        and checks[0].get("name") == FALLBACK_CHECK_NAME
    )


def parse_model_json(text: str) -> Any:
    """Parse a JSON answer that may be wrapped in markdown fences.

    Returns the fallback report when nothing parseable is found.
    """
    cleaned = (text or "").replace("```json", "").replace("```", "")
    starts = [i for i in (cleaned.find("{"), cleaned.find("[")) if i != -1]
    if not starts:
        logger.error("No JSON object in model response", extra={"raw_response": (text or "")[:2000]})
        return fallback_report()
    try:
        return json.loads(cleaned[min(starts):].strip())
    except json.JSONDecodeError:
        logger.error("Failed to parse JSON response from Gemini", extra={"raw_response": text[:2000]})
        return fallback_report()


def recommended_status(score: int) -> str:
    """Map a score onto the report status a reviewer would start from."""
    if score >= PASS_THRESHOLD:
        return "approved"
    if score >= REVIEW_THRESHOLD:
        return "pending"
    return "revision_requested"


@dataclass
class AnalysisResult:
    """A finished analysis, not yet bound to a workspace."""

    overall_score: int
    summary: str
    checks: List[Dict[str, Any]]
    source_content: str
    analysis_type: str
    custom_rules_applied: List[Dict[str, str]] = field(default_factory=list)
    campaign_name: Optional[str] = None
    influencer_handle: Optional[str] = None
    client_brand: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def recommended_status(self) -> str:
        return recommended_status(self.overall_score)

    @property
    def is_fallback(self) -> bool:
        return is_fallback({"summary": self.summary, "checks": self.checks})


def _rule_dicts(custom_rules: Optional[Iterable[Any]]) -> List[Dict[str, str]]:
    rules = []
    for rule in custom_rules or []:
        if isinstance(rule, dict):
            rules.append({"id": str(rule.get("id") or uuid.uuid4()), "text": rule["text"]})
        else:
            rules.append({"id": rule.id, "text": rule.text})
    return rules


def _context(context: Optional[Dict[str, Optional[str]]]) -> Dict[str, Optional[str]]:
    context = context or {}
    return {
        "campaign_name": context.get("campaign_name") or None,
        "influencer_handle": context.get("influencer_handle") or None,
        "client_brand": context.get("client_brand") or None,
    }


async def _structured_call(
    contract: str,
    parts: List[Dict[str, Any]],
    task: str,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    response = await gemini.generate_content(
        parts,
        response_schema=to_response_schema(contract),
        timeout=timeout,
        task=task,
    )
    payload = parse_model_json(gemini.extract_text(response))
    if not isinstance(payload, dict):
        logger.error(f"Model returned {type(payload).__name__} for {task}, expected an object")
        return fallback_report()
    if not is_fallback(payload):
        validate_contract(contract, payload)
    return payload


def _build_result(
    payload: Dict[str, Any],
    source_content: str,
    analysis_type: str,
    rules: List[Dict[str, str]],
    context: Dict[str, Optional[str]],
) -> AnalysisResult:
    result = AnalysisResult(
        overall_score=max(0, min(100, int(payload["overall_score"]))),
        summary=payload["summary"],
        checks=payload["checks"],
        source_content=source_content,
        analysis_type=analysis_type,
        custom_rules_applied=rules,
        **context,
    )
    logger.info(
        f"{analysis_type} analysis scored {result.overall_score}",
        extra={"report_id": result.id, "analysis_type": analysis_type, "score": result.overall_score},
    )
    return result


async def analyze_post_content(
    content: str,
    custom_rules: Optional[Iterable[Any]] = None,
    context: Optional[Dict[str, Optional[str]]] = None,
) -> AnalysisResult:
    rules = _rule_dicts(custom_rules)
    ctx = _context(context)
    prompt = TEXT_ANALYSIS_PROMPT.format(
        context=context_block(**ctx),
        content=content,
        claim=STANDARD_CLAIM,
        custom_rules=custom_rules_block(r["text"] for r in rules),
    )
    payload = await _structured_call(COMPLIANCE_REPORT, [gemini.text_part(prompt)], task="analyze_text")
    return _build_result(payload, content, "text", rules, ctx)


async def analyze_image_content(
    caption: str,
    image_bytes: bytes,
    mime_type: str,
    custom_rules: Optional[Iterable[Any]] = None,
    context: Optional[Dict[str, Optional[str]]] = None,
) -> AnalysisResult:
    rules = _rule_dicts(custom_rules)
    ctx = _context(context)
    prompt = IMAGE_ANALYSIS_PROMPT.format(
        context=context_block(**ctx),
        caption=caption,
        custom_rules=custom_rules_block(r["text"] for r in rules),
    )
    parts = [gemini.text_part(prompt), gemini.inline_part(image_bytes, mime_type)]
    payload = await _structured_call(
        MULTIMODAL_REPORT, parts, task="analyze_image", timeout=settings.gemini_timeout_media
    )
    return _build_result(payload, caption, "image", rules, ctx)


async def transcribe_video(video_bytes: bytes, mime_type: str) -> str:
    response = await gemini.generate_content(
        [gemini.text_part(TRANSCRIBE_PROMPT), gemini.inline_part(video_bytes, mime_type)],
        timeout=settings.gemini_timeout_media,
        task="transcribe",
    )
    return gemini.extract_text(response).strip()


async def analyze_video_content(
    transcript: str,
    video_bytes: bytes,
    mime_type: str,
    custom_rules: Optional[Iterable[Any]] = None,
    context: Optional[Dict[str, Optional[str]]] = None,
) -> AnalysisResult:
    rules = _rule_dicts(custom_rules)
    ctx = _context(context)
    prompt = VIDEO_ANALYSIS_PROMPT.format(
        context=context_block(**ctx),
        transcript=transcript,
        claim=STANDARD_CLAIM,
        custom_rules=custom_rules_block(r["text"] for r in rules),
    )
    parts = [gemini.text_part(prompt), gemini.inline_part(video_bytes, mime_type)]
    payload = await _structured_call(
        MULTIMODAL_REPORT, parts, task="analyze_video", timeout=settings.gemini_timeout_media
    )
    return _build_result(payload, transcript, "video", rules, ctx)


def _field(check: Any, name: str) -> Any:
    if isinstance(check, dict):
        return check.get(name)
    value = getattr(check, name, None)
    return getattr(value, "value", value)


async def generate_compliant_revision(original: str, analysis_type: str, checks: Iterable[Any]) -> str:
    """Rewrite the text part of the content so the text-based issues go away.

    Checks that passed, and checks on the visual or audio track, are ignored.
    When nothing is left to fix in text, no model call is made. Raises
    NothingToReviseException when every check passed.
    """
    open_checks = [c for c in checks if _field(c, "status") != "pass"]
    if not open_checks:
        raise NothingToReviseException()

    issues = []
    for check in open_checks:
        modality = _field(check, "modality")
        if modality in ("visual", "audio"):
            continue
        issues.append(f"- {_field(check, 'name')} ({modality or 'text'}): {_field(check, 'details')}")
    if not issues:
        return MEDIA_ONLY_REVISION_MESSAGE

    label = "Post Caption" if analysis_type == "text" else "Image Caption or Video Script"
    prompt = REVISION_PROMPT.format(content_label=label, original=original, issues="\n".join(issues))
    response = await gemini.generate_content([gemini.text_part(prompt)], task="revision")
    return gemini.extract_text(response).strip()


async def generate_strategic_insight(report: Any) -> Optional[str]:
    """One paragraph of strategy for a finished report.

    Runs after the analysis has been returned, so any failure is logged and
    swallowed into None rather than raised.
    """
    findings = "\n".join(
        f"- [{_field(c, 'status')}] {_field(c, 'name')}: {_field(c, 'details')}"
        for c in _field(report, "checks") or []
    )
    prompt = INSIGHT_PROMPT.format(
        analysis_type=_field(report, "analysis_type"),
        content=_field(report, "source_content"),
        score=_field(report, "overall_score"),
        summary=_field(report, "summary"),
        findings=findings or "- none",
    )
    try:
        response = await gemini.generate_content([gemini.text_part(prompt)], temperature=0.4, task="insight")
    except GeminiException as e:
        logger.warning(f"Strategic insight generation failed: {e.message}", extra={"report_id": _field(report, "id")})
        return None
    insight = gemini.extract_text(response).strip()
    return insight or None


async def generate_greenlight_brief(
    product: str,
    message: str,
    audience: str,
    custom_rules: Optional[Iterable[Any]] = None,
) -> Dict[str, Any]:
    rules = _rule_dicts(custom_rules)
    prompt = BRIEF_PROMPT.format(
        product=product,
        message=message,
        audience=audience,
        claim=STANDARD_CLAIM,
        custom_rules=custom_rules_block(r["text"] for r in rules),
    )
    response = await gemini.generate_content(
        [gemini.text_part(prompt)],
        response_schema=to_response_schema(GREENLIGHT_BRIEF),
        task="brief",
    )
    payload = parse_model_json(gemini.extract_text(response))
    # The report fallback is never a valid brief, so the contract rejects it
    validate_contract(GREENLIGHT_BRIEF, payload)
    return payload


async def fix_image(image_bytes: bytes, mime_type: str, instruction: str) -> Tuple[bytes, str]:
    """Apply a compliance fix to an image with the image model."""
    response = await gemini.generate_content(
        [gemini.text_part(IMAGE_FIX_PROMPT.format(instruction=instruction)), gemini.inline_part(image_bytes, mime_type)],
        model=settings.gemini_image_model,
        timeout=settings.gemini_timeout_media,
        response_modalities=["TEXT", "IMAGE"],
        task="image_fix",
    )
    images = gemini.extract_inline_images(response)
    if not images:
        raise ContractViolationException("image_fix", ["model returned no image"])
    return images[0]
