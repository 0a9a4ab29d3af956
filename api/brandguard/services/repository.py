"""Workspace-scoped data access.

All functions take an open session and leave committing to the caller
(`db_session` / `get_session`), so a multi-step operation such as deleting a
workspace runs in one transaction.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..models.exceptions import NotFoundException, RevisionStateException
from ..models.orm import (
    CertificateRow,
    CustomRuleRow,
    FeedbackRow,
    ReportRow,
    RevisionRequestRow,
    WorkspaceRow,
)
from .compliance import AnalysisResult

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE_NAME = "Personal Workspace"
REPORT_UPDATABLE_FIELDS = ("status", "strategic_insight", "suggested_revision")
FEEDBACK_TYPES = ("suggestion", "bug", "comment")


def _now() -> datetime:
    return datetime.now(timezone.utc)


# --- workspaces ---

def list_workspaces(session: Session) -> List[WorkspaceRow]:
    return list(session.scalars(select(WorkspaceRow).order_by(WorkspaceRow.created_at, WorkspaceRow.id)))


def get_workspace(session: Session, workspace_id: str) -> WorkspaceRow:
    row = session.get(WorkspaceRow, workspace_id)
    if row is None:
        raise NotFoundException("Workspace", workspace_id)
    return row


def add_workspace(session: Session, name: str, workspace_id: Optional[str] = None) -> WorkspaceRow:
    row = WorkspaceRow(id=workspace_id or str(uuid.uuid4()), name=name.strip(), created_at=_now())
    session.add(row)
    session.flush()
    logger.info("Workspace created", extra={"workspace_id": row.id})
    return row


def rename_workspace(session: Session, workspace_id: str, name: str) -> WorkspaceRow:
    row = get_workspace(session, workspace_id)
    row.name = name.strip()
    session.flush()
    return row


def ensure_default_workspace(session: Session) -> List[WorkspaceRow]:
    """Return all workspaces, creating the default one when there are none."""
    workspaces = list_workspaces(session)
    if not workspaces:
        workspaces = [add_workspace(session, DEFAULT_WORKSPACE_NAME)]
    return workspaces


def delete_workspace_and_data(session: Session, workspace_id: str) -> List[WorkspaceRow]:
    """Delete a workspace with everything scoped to it.

    Returns the remaining workspaces; deleting the last one leaves a fresh
    default workspace behind.
    """
    get_workspace(session, workspace_id)
    for model in (CustomRuleRow, ReportRow, CertificateRow, RevisionRequestRow, FeedbackRow):
        session.execute(delete(model).where(model.workspace_id == workspace_id))
    session.execute(delete(WorkspaceRow).where(WorkspaceRow.id == workspace_id))
    session.flush()
    logger.info("Workspace deleted", extra={"workspace_id": workspace_id})
    return ensure_default_workspace(session)


# --- custom rules ---

def list_rules(session: Session, workspace_id: str) -> List[CustomRuleRow]:
    stmt = (
        select(CustomRuleRow)
        .where(CustomRuleRow.workspace_id == workspace_id)
        .order_by(CustomRuleRow.created_at, CustomRuleRow.id)
    )
    return list(session.scalars(stmt))


def add_rule(session: Session, workspace_id: str, text: str) -> CustomRuleRow:
    get_workspace(session, workspace_id)
    row = CustomRuleRow(id=str(uuid.uuid4()), workspace_id=workspace_id, text=text.strip(), created_at=_now())
    session.add(row)
    session.flush()
    return row


def replace_rules(session: Session, workspace_id: str, rules: Iterable[Dict[str, Any]]) -> List[CustomRuleRow]:
    """Swap the workspace's rule set for `rules` (dicts with `text`, optional `id`)."""
    get_workspace(session, workspace_id)
    session.execute(delete(CustomRuleRow).where(CustomRuleRow.workspace_id == workspace_id))
    base = _now()
    rows = []
    seen = set()
    for offset, rule in enumerate(rules):
        rule_id = rule.get("id") or str(uuid.uuid4())
        if rule_id in seen:
            rule_id = str(uuid.uuid4())
        seen.add(rule_id)
        rows.append(CustomRuleRow(
            id=rule_id,
            workspace_id=workspace_id,
            text=rule["text"].strip(),
            # keeps the submitted order stable on reads
            created_at=base + timedelta(microseconds=offset),
        ))
    session.add_all(rows)
    session.flush()
    return list_rules(session, workspace_id)


# --- reports ---

def list_reports(session: Session, workspace_id: str) -> List[ReportRow]:
    stmt = (
        select(ReportRow)
        .where(ReportRow.workspace_id == workspace_id)
        .order_by(ReportRow.timestamp.desc(), ReportRow.id)
    )
    return list(session.scalars(stmt))


def get_report(session: Session, workspace_id: str, report_id: str) -> ReportRow:
    row = session.get(ReportRow, report_id)
    if row is None or row.workspace_id != workspace_id:
        raise NotFoundException("Report", report_id)
    return row


def add_report(
    session: Session,
    workspace_id: str,
    result: AnalysisResult,
    user_name: Optional[str] = None,
    media_key: Optional[str] = None,
    media_mime_type: Optional[str] = None,
) -> ReportRow:
    get_workspace(session, workspace_id)
    row = ReportRow(
        id=result.id,
        workspace_id=workspace_id,
        timestamp=result.timestamp,
        overall_score=result.overall_score,
        summary=result.summary,
        checks=result.checks,
        source_content=result.source_content,
        analysis_type=result.analysis_type,
        custom_rules_applied=result.custom_rules_applied,
        campaign_name=result.campaign_name,
        influencer_handle=result.influencer_handle,
        client_brand=result.client_brand,
        user_name=user_name,
        status=result.recommended_status,
        media_key=media_key,
        media_mime_type=media_mime_type,
    )
    session.add(row)
    session.flush()
    return row


def update_report(session: Session, workspace_id: str, report_id: str, updates: Dict[str, Any]) -> ReportRow:
    row = get_report(session, workspace_id, report_id)
    for key, value in updates.items():
        if key not in REPORT_UPDATABLE_FIELDS:
            raise ValueError(f"Report field {key!r} cannot be updated")
        setattr(row, key, getattr(value, "value", value))
    session.flush()
    return row


def set_strategic_insight(session: Session, report_id: str, insight: str) -> bool:
    """Attach an insight if the report still exists. Returns whether it did."""
    row = session.get(ReportRow, report_id)
    if row is None:
        return False
    row.strategic_insight = insight
    session.flush()
    return True


def delete_report(session: Session, workspace_id: str, report_id: str) -> ReportRow:
    row = get_report(session, workspace_id, report_id)
    session.delete(row)
    session.flush()
    return row


def report_snapshot(row: ReportRow) -> Dict[str, Any]:
    """JSON-safe copy of a report for certificates and revision requests."""
    return {
        "id": row.id,
        "workspace_id": row.workspace_id,
        "timestamp": row.timestamp.isoformat(),
        "overall_score": row.overall_score,
        "summary": row.summary,
        "checks": list(row.checks or []),
        "source_content": row.source_content,
        "analysis_type": row.analysis_type,
        "custom_rules_applied": list(row.custom_rules_applied or []),
        "campaign_name": row.campaign_name,
        "influencer_handle": row.influencer_handle,
        "client_brand": row.client_brand,
        "user_name": row.user_name,
        "status": row.status,
        "strategic_insight": row.strategic_insight,
        "suggested_revision": row.suggested_revision,
        "media_key": row.media_key,
        "media_mime_type": row.media_mime_type,
    }


# --- certificates ---

def list_certificates(session: Session, workspace_id: str) -> List[CertificateRow]:
    stmt = (
        select(CertificateRow)
        .where(CertificateRow.workspace_id == workspace_id)
        .order_by(CertificateRow.created_at.desc(), CertificateRow.id)
    )
    return list(session.scalars(stmt))


def get_certificate(session: Session, certificate_id: str) -> CertificateRow:
    row = session.get(CertificateRow, certificate_id)
    if row is None:
        raise NotFoundException("Certificate", certificate_id)
    return row


def add_certificate(session: Session, workspace_id: str, report: ReportRow) -> CertificateRow:
    row = CertificateRow(
        id=f"cert_{uuid.uuid4()}",
        workspace_id=workspace_id,
        created_at=_now(),
        report=report_snapshot(report),
    )
    session.add(row)
    session.flush()
    logger.info("Certificate issued", extra={"certificate_id": row.id, "report_id": report.id})
    return row


def delete_certificate(session: Session, workspace_id: str, certificate_id: str) -> CertificateRow:
    row = get_certificate(session, certificate_id)
    if row.workspace_id != workspace_id:
        raise NotFoundException("Certificate", certificate_id)
    session.delete(row)
    session.flush()
    return row


# --- revision requests ---

def get_revision_request(session: Session, request_id: str) -> RevisionRequestRow:
    row = session.get(RevisionRequestRow, request_id)
    if row is None:
        raise NotFoundException("Revision request", request_id)
    return row


def add_revision_request(session: Session, workspace_id: str, report: ReportRow) -> RevisionRequestRow:
    row = RevisionRequestRow(
        id=f"rev_{uuid.uuid4()}",
        workspace_id=workspace_id,
        created_at=_now(),
        status="pending",
        revised_content="",
        report=report_snapshot(report),
    )
    session.add(row)
    session.flush()
    return row


def submit_revision(session: Session, request_id: str, revised_content: str) -> RevisionRequestRow:
    row = get_revision_request(session, request_id)
    if row.status != "pending":
        raise RevisionStateException(request_id, row.status)
    row.revised_content = revised_content
    row.status = "submitted"
    row.submitted_at = _now()
    session.flush()
    logger.info("Revision submitted", extra={"revision_request_id": request_id})
    return row


# --- feedback ---

def add_feedback(session: Session, workspace_id: str, feedback_type: str, message: str) -> FeedbackRow:
    if feedback_type not in FEEDBACK_TYPES:
        raise ValueError(f"Unknown feedback type {feedback_type!r}")
    if not message or not message.strip():
        raise ValueError("Feedback message must not be blank")
    row = FeedbackRow(
        id=str(uuid.uuid4()),
        workspace_id=workspace_id,
        type=feedback_type,
        message=message.strip(),
        timestamp=_now(),
    )
    session.add(row)
    session.flush()
    return row


# --- legacy import ---

def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return _now()


def _pick(item: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in item and item[key] is not None:
            return item[key]
    return default


def _legacy_report(item: Dict[str, Any], workspace_id: str) -> Dict[str, Any]:
    return {
        "id": str(_pick(item, "id", default=uuid.uuid4())),
        "workspace_id": workspace_id,
        "timestamp": _parse_ts(_pick(item, "timestamp")),
        "overall_score": int(_pick(item, "overallScore", "overall_score", default=0)),
        "summary": _pick(item, "summary", default=""),
        "checks": list(_pick(item, "checks", default=[])),
        "source_content": _pick(item, "sourceContent", "source_content", default=""),
        "analysis_type": _pick(item, "analysisType", "analysis_type", default="text"),
        "custom_rules_applied": list(_pick(item, "customRulesApplied", "custom_rules_applied", default=[])),
        "campaign_name": _pick(item, "campaignName", "campaign_name"),
        "influencer_handle": _pick(item, "influencerHandle", "influencer_handle"),
        "client_brand": _pick(item, "clientBrand", "client_brand"),
        "user_name": _pick(item, "userName", "user_name"),
        "status": _pick(item, "status", default="pending"),
        "strategic_insight": _pick(item, "strategicInsight", "strategic_insight"),
        "suggested_revision": _pick(item, "suggestedRevision", "suggested_revision"),
    }


def import_legacy_export(session: Session, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Import a browser localStorage export.

    `payload` maps the old storage keys to their values, either already
    decoded or as the JSON strings the browser stored. Workspaces whose id
    already exists are skipped with all of their data, which makes a repeated
    import a no-op.
    """
    def _load(key: str) -> List[Dict[str, Any]]:
        value = payload.get(key)
        if value is None:
            return []
        if isinstance(value, str):
            value = json.loads(value)
        return list(value)

    counts: Dict[str, Any] = {"workspaces": 0, "rules": 0, "reports": 0, "certificates": 0, "skipped_workspaces": []}
    for ws in _load("brandGuardWorkspaces"):
        ws_id = str(ws["id"])
        if session.get(WorkspaceRow, ws_id) is not None:
            counts["skipped_workspaces"].append(ws_id)
            continue
        add_workspace(session, ws.get("name") or DEFAULT_WORKSPACE_NAME, workspace_id=ws_id)
        counts["workspaces"] += 1

        for rule in _load(f"brandGuardCustomRules_{ws_id}"):
            session.add(CustomRuleRow(
                id=str(rule.get("id") or uuid.uuid4()),
                workspace_id=ws_id,
                text=rule["text"],
                created_at=_now(),
            ))
            counts["rules"] += 1

        for item in _load(f"brandGuardReportHistory_{ws_id}"):
            session.add(ReportRow(**_legacy_report(item, ws_id)))
            counts["reports"] += 1

        for cert in _load(f"brandGuardCertificates_{ws_id}"):
            snapshot = _legacy_report(cert.get("report") or {}, ws_id)
            snapshot["timestamp"] = snapshot["timestamp"].isoformat()
            session.add(CertificateRow(
                id=str(cert["id"]),
                workspace_id=ws_id,
                created_at=_parse_ts(_pick(cert, "createdAt", "created_at")),
                report=snapshot,
            ))
            counts["certificates"] += 1
        session.flush()

    logger.info("Legacy export imported", extra={k: v for k, v in counts.items() if k != "skipped_workspaces"})
    return counts
