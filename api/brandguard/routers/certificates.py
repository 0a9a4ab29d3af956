from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..core.structured_logging import LoggerFactory
from ..models.schemas import Certificate
from ..services import repository
from ..services.certificate_pdf import render_certificate_pdf
from ..services.db import get_session
from ..services.storage_adapter import delete_object, get_object
from .common import certificate_view, own_snapshot_image

logger = logging.getLogger(__name__)
audit = LoggerFactory.get_logger(__name__)
router = APIRouter(tags=["certificates"])


@router.post(
    "/workspaces/{workspace_id}/reports/{report_id}/certificate",
    response_model=Certificate,
    status_code=status.HTTP_201_CREATED,
)
def create_certificate(workspace_id: str, report_id: str, session: Session = Depends(get_session)):
    """Freeze the report into a shareable certificate."""
    report = repository.get_report(session, workspace_id, report_id)
    row = repository.add_certificate(session, workspace_id, report)
    own_snapshot_image(row)
    audit.audit_event("share", f"certificate:{row.id}", "created", report_id=report_id)
    return certificate_view(row)


@router.get("/workspaces/{workspace_id}/certificates", response_model=List[Certificate])
def list_certificates(workspace_id: str, session: Session = Depends(get_session)):
    repository.get_workspace(session, workspace_id)
    return [certificate_view(row) for row in repository.list_certificates(session, workspace_id)]


@router.delete("/workspaces/{workspace_id}/certificates/{certificate_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_certificate(workspace_id: str, certificate_id: str, session: Session = Depends(get_session)):
    row = repository.delete_certificate(session, workspace_id, certificate_id)
    if row.report.get("media_key"):
        delete_object(row.report["media_key"])
    audit.audit_event("revoke", f"certificate:{certificate_id}", "deleted")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/public/certificates/{certificate_id}", response_model=Certificate)
def public_certificate(certificate_id: str, session: Session = Depends(get_session)):
    return certificate_view(repository.get_certificate(session, certificate_id))


@router.get("/public/certificates/{certificate_id}/pdf")
def public_certificate_pdf(certificate_id: str, session: Session = Depends(get_session)):
    row = repository.get_certificate(session, certificate_id)
    media_key = row.report.get("media_key")
    image_bytes = get_object(media_key) if media_key else None
    if media_key and image_bytes is None:
        logger.warning("Certificate image missing from storage", extra={"key": media_key})
    pdf = render_certificate_pdf(row.report, row.id, issued_at=row.created_at, image_bytes=image_bytes)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="BrandGuard-Certificate-{row.id}.pdf"'},
    )
