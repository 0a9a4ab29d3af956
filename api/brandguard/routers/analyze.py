from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, File, Form, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.security import Identity, current_identity
from ..models.schemas import (
    BriefRequest,
    ComplianceReport,
    GreenlightBrief,
    ImageFixResponse,
    RevisionSuggestion,
    TextAnalysisRequest,
    TranscriptResponse,
)
from ..services import compliance, repository
from ..services.compliance import AnalysisResult
from ..services.db import db_session, get_session
from ..services.storage_adapter import store_report_image, validate_image, validate_video
from .common import context_from_form, read_upload, report_view

logger = logging.getLogger(__name__)
router = APIRouter(tags=["analysis"])


async def enrich_with_insight(report_id: str, report: Dict[str, Any]) -> None:
    """Background task: attach a strategic insight to a stored report."""
    insight = await compliance.generate_strategic_insight(report)
    if not insight:
        return
    try:
        with db_session() as session:
            if not repository.set_strategic_insight(session, report_id, insight):
                logger.info("Report deleted before insight was ready", extra={"report_id": report_id})
    except SQLAlchemyError as e:
        logger.error(f"Failed to store strategic insight: {e}", extra={"report_id": report_id})


def _persist(
    session: Session,
    background_tasks: BackgroundTasks,
    workspace_id: str,
    result: AnalysisResult,
    identity: Identity,
    media_key: Optional[str] = None,
    media_mime_type: Optional[str] = None,
) -> ComplianceReport:
    row = repository.add_report(
        session,
        workspace_id,
        result,
        user_name=identity.user_name,
        media_key=media_key,
        media_mime_type=media_mime_type,
    )
    snapshot = repository.report_snapshot(row)
    # The insight task uses its own session and must see the report
    session.commit()
    if not result.is_fallback:
        background_tasks.add_task(enrich_with_insight, row.id, snapshot)
    return report_view(snapshot)


def _rules(session: Session, workspace_id: str):
    repository.get_workspace(session, workspace_id)
    return [{"id": r.id, "text": r.text} for r in repository.list_rules(session, workspace_id)]


@router.post("/workspaces/{workspace_id}/analyze/text", response_model=ComplianceReport)
async def analyze_text(
    workspace_id: str,
    background_tasks: BackgroundTasks,
    request: TextAnalysisRequest = Body(...),
    session: Session = Depends(get_session),
    identity: Identity = Depends(current_identity),
):
    """Score a caption for FTC disclosure, brand safety, claim accuracy and custom rules."""
    rules = _rules(session, workspace_id)
    context = request.model_dump(include={"campaign_name", "influencer_handle", "client_brand"})
    result = await compliance.analyze_post_content(request.content, rules, context)
    return _persist(session, background_tasks, workspace_id, result, identity)


@router.post("/workspaces/{workspace_id}/analyze/image", response_model=ComplianceReport)
async def analyze_image(
    workspace_id: str,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    caption: str = Form(""),
    campaign_name: Optional[str] = Form(None),
    influencer_handle: Optional[str] = Form(None),
    client_brand: Optional[str] = Form(None),
    session: Session = Depends(get_session),
    identity: Identity = Depends(current_identity),
):
    """Score an image and its caption; the image is kept for the report and certificate."""
    rules = _rules(session, workspace_id)
    data = await read_upload(file, settings.max_image_bytes)
    mime_type = validate_image(data, file.content_type)
    context = context_from_form(campaign_name, influencer_handle, client_brand)
    result = await compliance.analyze_image_content(caption.strip(), data, mime_type, rules, context)
    key, mime_type = store_report_image(workspace_id, result.id, data, mime_type)
    return _persist(session, background_tasks, workspace_id, result, identity, key, mime_type)


@router.post("/workspaces/{workspace_id}/analyze/video", response_model=ComplianceReport)
async def analyze_video(
    workspace_id: str,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    transcript: Optional[str] = Form(None),
    campaign_name: Optional[str] = Form(None),
    influencer_handle: Optional[str] = Form(None),
    client_brand: Optional[str] = Form(None),
    session: Session = Depends(get_session),
    identity: Identity = Depends(current_identity),
):
    """Score a video on its audio and visual track.

    Without a `transcript` field the video is transcribed first. Video bytes
    are not stored.
    """
    rules = _rules(session, workspace_id)
    data = await read_upload(file, settings.max_video_bytes)
    mime_type = validate_video(data, file.content_type)
    transcript = (transcript or "").strip()
    if not transcript:
        transcript = await compliance.transcribe_video(data, mime_type)
    context = context_from_form(campaign_name, influencer_handle, client_brand)
    result = await compliance.analyze_video_content(transcript, data, mime_type, rules, context)
    return _persist(session, background_tasks, workspace_id, result, identity, media_mime_type=mime_type)


@router.post("/analyze/transcribe", response_model=TranscriptResponse)
async def transcribe(file: UploadFile = File(...)):
    data = await read_upload(file, settings.max_video_bytes)
    mime_type = validate_video(data, file.content_type)
    return TranscriptResponse(transcript=await compliance.transcribe_video(data, mime_type))


@router.post("/workspaces/{workspace_id}/reports/{report_id}/revision", response_model=RevisionSuggestion)
async def suggest_revision(workspace_id: str, report_id: str, session: Session = Depends(get_session)):
    """Rewrite the report's text so its failing text-based checks pass; stored on the report."""
    row = repository.get_report(session, workspace_id, report_id)
    revised = await compliance.generate_compliant_revision(row.source_content, row.analysis_type, row.checks or [])
    repository.update_report(session, workspace_id, report_id, {"suggested_revision": revised})
    return RevisionSuggestion(report_id=report_id, revised_content=revised)


@router.post("/workspaces/{workspace_id}/briefs", response_model=GreenlightBrief)
async def greenlight_brief(
    workspace_id: str,
    request: BriefRequest = Body(...),
    session: Session = Depends(get_session),
):
    rules = _rules(session, workspace_id)
    return await compliance.generate_greenlight_brief(request.product, request.message, request.audience, rules)


@router.post("/images/fix", response_model=ImageFixResponse)
async def fix_image(file: UploadFile = File(...), instruction: str = Form(..., max_length=1000)):
    """Apply a compliance fix to an image with the image model, returning the edited image."""
    data = await read_upload(file, settings.max_image_bytes)
    mime_type = validate_image(data, file.content_type)
    edited, edited_mime = await compliance.fix_image(data, mime_type, instruction.strip())
    return ImageFixResponse(mime_type=edited_mime, data_base64=base64.b64encode(edited).decode("ascii"))
