from __future__ import annotations

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from ..core.structured_logging import LoggerFactory
from ..models.schemas import RevisionRequest, RevisionSubmitRequest
from ..services import repository
from ..services.db import get_session
from .common import own_snapshot_image, revision_view

router = APIRouter(tags=["revision requests"])
audit = LoggerFactory.get_logger(__name__)


@router.post(
    "/workspaces/{workspace_id}/reports/{report_id}/revision-request",
    response_model=RevisionRequest,
    status_code=status.HTTP_201_CREATED,
)
def create_revision_request(workspace_id: str, report_id: str, session: Session = Depends(get_session)):
    """Issue a link the creator can use to submit revised content for this report."""
    report = repository.get_report(session, workspace_id, report_id)
    row = repository.add_revision_request(session, workspace_id, report)
    own_snapshot_image(row)
    audit.audit_event("share", f"revision_request:{row.id}", "created", report_id=report_id)
    return revision_view(row)


@router.get("/public/revision-requests/{request_id}", response_model=RevisionRequest)
def public_revision_request(request_id: str, session: Session = Depends(get_session)):
    return revision_view(repository.get_revision_request(session, request_id))


@router.post("/public/revision-requests/{request_id}/submit", response_model=RevisionRequest)
def submit_revision(request_id: str, request: RevisionSubmitRequest = Body(...), session: Session = Depends(get_session)):
    """Accept the creator's revised content; a request can be submitted once."""
    return revision_view(repository.submit_revision(session, request_id, request.revised_content))
