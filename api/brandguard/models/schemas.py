"""Pydantic models for API request and response schemas.

This module defines the data models used by the BrandGuard API: compliance
reports and their checks, workspaces and custom rules, certificates,
revision requests, feedback and analytics.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ComplianceStatus(str, Enum):
    """Outcome of a single compliance check."""
    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"


class Modality(str, Enum):
    TEXT = "text"
    VISUAL = "visual"
    AUDIO = "audio"


class AnalysisType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"


class ReportStatus(str, Enum):
    """Review state of a report inside a workspace."""
    PENDING = "pending"
    APPROVED = "approved"
    REVISION_REQUESTED = "revision_requested"
    REJECTED = "rejected"


class RevisionStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"


class FeedbackType(str, Enum):
    SUGGESTION = "suggestion"
    BUG = "bug"
    COMMENT = "comment"


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("must not be blank")
    return v


class CheckItem(BaseModel):
    name: str
    status: ComplianceStatus
    details: str
    modality: Optional[Modality] = None


class CustomRuleIn(BaseModel):
    id: Optional[str] = None
    text: str = Field(..., max_length=500, description="Rule the AI must enforce as its own check")

    _text = field_validator("text")(_strip_required)


class CustomRule(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    text: str


class RulesReplaceRequest(BaseModel):
    rules: List[CustomRuleIn] = Field(default_factory=list, max_length=50)


class WorkspaceCreate(BaseModel):
    name: str = Field(..., max_length=120, examples=["Summer Sneaker Launch"])

    _name = field_validator("name")(_strip_required)


class WorkspaceUpdate(BaseModel):
    name: str = Field(..., max_length=120)

    _name = field_validator("name")(_strip_required)


class Workspace(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    created_at: datetime


class CampaignContext(BaseModel):
    """Optional metadata stamped on a report and shown on certificates."""
    campaign_name: Optional[str] = Field(None, max_length=200)
    influencer_handle: Optional[str] = Field(None, max_length=100)
    client_brand: Optional[str] = Field(None, max_length=100)


class TextAnalysisRequest(CampaignContext):
    content: str = Field(
        ...,
        max_length=10000,
        description="Post caption to analyze",
        examples=["#ad Loving my new sneakers, made with 100% organic materials!"],
    )

    _content = field_validator("content")(_strip_required)


class SourceMedia(BaseModel):
    mime_type: str
    url: Optional[str] = None


class ComplianceReport(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    workspace_id: str
    timestamp: datetime
    overall_score: int = Field(..., ge=0, le=100)
    summary: str
    checks: List[CheckItem]
    source_content: str
    analysis_type: AnalysisType
    custom_rules_applied: List[CustomRule] = Field(default_factory=list)
    campaign_name: Optional[str] = None
    influencer_handle: Optional[str] = None
    client_brand: Optional[str] = None
    user_name: Optional[str] = None
    status: ReportStatus = ReportStatus.PENDING
    strategic_insight: Optional[str] = None
    suggested_revision: Optional[str] = None
    source_media: Optional[SourceMedia] = None


class ReportUpdate(BaseModel):
    status: Optional[ReportStatus] = None
    strategic_insight: Optional[str] = Field(None, max_length=5000)
    suggested_revision: Optional[str] = Field(None, max_length=10000)


class RevisionSuggestion(BaseModel):
    report_id: str
    revised_content: str


class TranscriptResponse(BaseModel):
    transcript: str


class BriefRequest(BaseModel):
    product: str = Field(..., max_length=300)
    message: str = Field(..., max_length=1000)
    audience: str = Field(..., max_length=300)

    _fields = field_validator("product", "message", "audience")(_strip_required)


class GreenlightBrief(BaseModel):
    campaign_overview: str
    key_dos: List[str]
    key_donts: List[str]
    disclosure_guide: str
    compliant_example: str


class ImageFixResponse(BaseModel):
    mime_type: str
    data_base64: str


class Certificate(BaseModel):
    id: str
    workspace_id: str
    created_at: datetime
    report: ComplianceReport
    share_url: str


class RevisionRequest(BaseModel):
    id: str
    workspace_id: str
    created_at: datetime
    status: RevisionStatus
    revised_content: str = ""
    submitted_at: Optional[datetime] = None
    report: ComplianceReport
    share_url: str


class RevisionSubmitRequest(BaseModel):
    revised_content: str = Field(..., max_length=10000)

    _revised = field_validator("revised_content")(_strip_required)


class FeedbackCreate(BaseModel):
    type: FeedbackType = FeedbackType.SUGGESTION
    message: str = Field(..., max_length=5000)

    _message = field_validator("message")(_strip_required)


class Feedback(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    workspace_id: str
    type: FeedbackType
    message: str
    timestamp: datetime


class ChartPoint(BaseModel):
    report_id: str
    overall_score: int
    band: str


class AnalyticsSummary(BaseModel):
    total_scans: int
    average_score: int
    pass_rate: int
    chart: List[ChartPoint]


class PublicAuditRequest(BaseModel):
    content: str = Field(..., max_length=5000)

    _content = field_validator("content")(_strip_required)


class PublicAuditResponse(BaseModel):
    report: ComplianceReport
    scans_remaining: int


class LegacyImportResult(BaseModel):
    workspaces: int
    rules: int
    reports: int
    certificates: int
    skipped_workspaces: List[str] = Field(default_factory=list)
