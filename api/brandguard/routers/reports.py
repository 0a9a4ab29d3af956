from __future__ import annotations

from typing import List

from fastapi import APIRouter, Body, Depends, Response, status
from sqlalchemy.orm import Session

from ..models.schemas import AnalyticsSummary, ComplianceReport, ReportUpdate
from ..services import repository
from ..services.analytics import summarize_reports
from ..services.db import get_session
from ..services.storage_adapter import delete_object
from .common import report_view

router = APIRouter(tags=["reports"])


@router.get("/workspaces/{workspace_id}/reports", response_model=List[ComplianceReport])
def list_reports(workspace_id: str, session: Session = Depends(get_session)):
    """Report history, newest first."""
    repository.get_workspace(session, workspace_id)
    return [report_view(row) for row in repository.list_reports(session, workspace_id)]


@router.patch("/workspaces/{workspace_id}/reports/{report_id}", response_model=ComplianceReport)
def update_report(
    workspace_id: str,
    report_id: str,
    request: ReportUpdate = Body(...),
    session: Session = Depends(get_session),
):
    row = repository.update_report(session, workspace_id, report_id, request.model_dump(exclude_unset=True))
    return report_view(row)


@router.delete("/workspaces/{workspace_id}/reports/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_report(workspace_id: str, report_id: str, session: Session = Depends(get_session)):
    row = repository.delete_report(session, workspace_id, report_id)
    if row.media_key:
        delete_object(row.media_key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/workspaces/{workspace_id}/analytics", response_model=AnalyticsSummary)
def analytics(workspace_id: str, session: Session = Depends(get_session)):
    repository.get_workspace(session, workspace_id)
    return summarize_reports(repository.list_reports(session, workspace_id))
