"""Row-to-response conversion shared by the routers."""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

from fastapi import UploadFile

from ..core.config import settings
from ..models.exceptions import MediaValidationException
from ..models.orm import CertificateRow, ReportRow, RevisionRequestRow
from ..models.schemas import Certificate, ComplianceReport, RevisionRequest, SourceMedia
from ..services.repository import report_snapshot
from ..services.storage_adapter import share_report_image, signed_public_url


def share_url(param: str, value: str) -> str:
    base = settings.public_app_url
    separator = "&" if "?" in base else "?"
    return f"{base}{separator}{param}={value}"


def report_view(source: Union[ReportRow, Dict[str, Any]]) -> ComplianceReport:
    data = report_snapshot(source) if isinstance(source, ReportRow) else dict(source)
    media_key = data.pop("media_key", None)
    media_mime = data.pop("media_mime_type", None)
    if media_mime:
        data["source_media"] = SourceMedia(
            mime_type=media_mime,
            url=signed_public_url(media_key) if media_key else None,
        )
    return ComplianceReport.model_validate(data)


def certificate_view(row: CertificateRow) -> Certificate:
    return Certificate(
        id=row.id,
        workspace_id=row.workspace_id,
        created_at=row.created_at,
        report=report_view(row.report),
        share_url=share_url("certId", row.id),
    )


def revision_view(row: RevisionRequestRow) -> RevisionRequest:
    return RevisionRequest(
        id=row.id,
        workspace_id=row.workspace_id,
        created_at=row.created_at,
        status=row.status,
        revised_content=row.revised_content or "",
        submitted_at=row.submitted_at,
        report=report_view(row.report),
        share_url=share_url("revId", row.id),
    )


async def read_upload(file: UploadFile, max_bytes: int) -> bytes:
    """Read an upload, refusing anything over `max_bytes` without buffering all of it."""
    data = await file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise MediaValidationException(
            f"File exceeds {max_bytes // (1024 * 1024)}MB limit",
            too_large=True,
            details={"max_bytes": max_bytes},
        )
    return data


def context_from_form(
    campaign_name: Optional[str],
    influencer_handle: Optional[str],
    client_brand: Optional[str],
) -> Dict[str, Optional[str]]:
    return {
        "campaign_name": (campaign_name or "").strip() or None,
        "influencer_handle": (influencer_handle or "").strip() or None,
        "client_brand": (client_brand or "").strip() or None,
    }


def own_snapshot_image(row: Union[CertificateRow, RevisionRequestRow]) -> None:
    """Point a shared snapshot at its own copy of the report image."""
    media_key = row.report.get("media_key")
    if media_key:
        row.report = {**row.report, "media_key": share_report_image(media_key, row.id)}
