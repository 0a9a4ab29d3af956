from __future__ import annotations

from typing import List

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from ..core.structured_logging import LoggerFactory
from ..models.schemas import CustomRule, CustomRuleIn, RulesReplaceRequest, Workspace, WorkspaceCreate, WorkspaceUpdate
from ..services import repository
from ..services.db import get_session
from ..services.storage_adapter import delete_workspace_media

router = APIRouter(tags=["workspaces"])
audit = LoggerFactory.get_logger(__name__)


@router.get("/workspaces", response_model=List[Workspace])
def list_workspaces(session: Session = Depends(get_session)):
    """List workspaces; a first call on an empty store creates the default one."""
    return repository.ensure_default_workspace(session)


@router.post("/workspaces", response_model=Workspace, status_code=status.HTTP_201_CREATED)
def create_workspace(request: WorkspaceCreate = Body(...), session: Session = Depends(get_session)):
    return repository.add_workspace(session, request.name)


@router.patch("/workspaces/{workspace_id}", response_model=Workspace)
def rename_workspace(workspace_id: str, request: WorkspaceUpdate = Body(...), session: Session = Depends(get_session)):
    return repository.rename_workspace(session, workspace_id, request.name)


@router.delete("/workspaces/{workspace_id}", response_model=List[Workspace])
def delete_workspace(workspace_id: str, session: Session = Depends(get_session)):
    """Delete a workspace with all of its data. Returns the workspaces left."""
    remaining = repository.delete_workspace_and_data(session, workspace_id)
    delete_workspace_media(workspace_id)
    audit.audit_event("delete", f"workspace:{workspace_id}", "success")
    return remaining


@router.get("/workspaces/{workspace_id}/rules", response_model=List[CustomRule])
def list_rules(workspace_id: str, session: Session = Depends(get_session)):
    repository.get_workspace(session, workspace_id)
    return repository.list_rules(session, workspace_id)


@router.put("/workspaces/{workspace_id}/rules", response_model=List[CustomRule])
def replace_rules(workspace_id: str, request: RulesReplaceRequest = Body(...), session: Session = Depends(get_session)):
    return repository.replace_rules(session, workspace_id, [r.model_dump() for r in request.rules])


@router.post("/workspaces/{workspace_id}/rules", response_model=CustomRule, status_code=status.HTTP_201_CREATED)
def add_rule(workspace_id: str, request: CustomRuleIn = Body(...), session: Session = Depends(get_session)):
    return repository.add_rule(session, workspace_id, request.text)
