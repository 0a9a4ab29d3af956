from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Body, Header, HTTPException, status

from ..core.rate_limiter import free_scan_quota
from ..models.schemas import ComplianceReport, PublicAuditRequest, PublicAuditResponse
from ..services import compliance

logger = logging.getLogger(__name__)
router = APIRouter(tags=["public"])

PUBLIC_WORKSPACE_ID = "public"


@router.post("/public/audit", response_model=PublicAuditResponse)
async def public_audit(
    request: PublicAuditRequest = Body(...),
    x_session_id: str = Header(..., alias="X-Session-ID", min_length=8, max_length=128),
):
    """Anonymous caption scan, limited per browser session.

    The report is returned but never stored and gets no insight enrichment.
    A scan only counts against the quota once the analysis succeeded.
    """
    session_id = x_session_id.strip()
    if not session_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="X-Session-ID header is required")
    free_scan_quota.check(session_id)

    result = await compliance.analyze_post_content(request.content)
    result.id = f"pub_{uuid.uuid4()}"
    remaining = free_scan_quota.consume(session_id)
    logger.info("Public audit completed", extra={"report_id": result.id, "scans_remaining": remaining})

    report = ComplianceReport(
        id=result.id,
        workspace_id=PUBLIC_WORKSPACE_ID,
        timestamp=result.timestamp,
        overall_score=result.overall_score,
        summary=result.summary,
        checks=result.checks,
        source_content=result.source_content,
        analysis_type=result.analysis_type,
        status=result.recommended_status,
    )
    return PublicAuditResponse(report=report, scans_remaining=remaining)
