from __future__ import annotations

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from ..models.schemas import Feedback, FeedbackCreate
from ..services import repository
from ..services.db import get_session

router = APIRouter(tags=["feedback"])


@router.post("/workspaces/{workspace_id}/feedback", response_model=Feedback, status_code=status.HTTP_201_CREATED)
def submit_feedback(workspace_id: str, request: FeedbackCreate = Body(...), session: Session = Depends(get_session)):
    repository.get_workspace(session, workspace_id)
    return repository.add_feedback(session, workspace_id, request.type.value, request.message)
