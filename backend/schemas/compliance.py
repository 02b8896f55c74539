from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from schemas.verification import CoverageRequirement

ComplianceStatus = Literal["pending", "compliant", "non_compliant", "exception"]
ExceptionStatus = Literal["pending_approval", "active", "rejected", "resolved", "expired"]
ExpirationType = Literal["until_resolved", "fixed_duration", "specific_date", "permanent"]
ResolutionType = Literal["coc_updated", "extended", "closed", "converted_permanent"]


class ProjectInput(BaseModel):
    name: str
    end_date: Optional[date] = None
    jurisdiction: Optional[str] = None


class ProjectView(BaseModel):
    id: int
    name: str
    end_date: Optional[date] = None
    jurisdiction: Optional[str] = None


class RequirementSetInput(BaseModel):
    requirements: list[CoverageRequirement] = []


class SubcontractorInput(BaseModel):
    name: str
    abn: Optional[str] = None
    contact_email: Optional[str] = None
    broker_email: Optional[str] = None


class SubcontractorView(BaseModel):
    id: int
    name: str
    abn: Optional[str] = None


class AssignmentInput(BaseModel):
    subcontractor_id: int


class AssignmentView(BaseModel):
    id: int
    project_id: int
    subcontractor_id: int
    status: ComplianceStatus
    version: int
    last_verification_id: Optional[int] = None


class ExceptionCreateInput(BaseModel):
    assignment_id: int
    verification_id: Optional[int] = None
    issue_summary: str
    reason: str
    risk_level: Literal["low", "medium", "high"] = "medium"
    expiration_type: ExpirationType = "until_resolved"
    expires_at: Optional[datetime] = None
    duration_days: Optional[int] = Field(default=None, gt=0)
    supporting_document_url: Optional[str] = None
    password: Optional[str] = None  # re-authentication for permanent exceptions


class ExceptionResolveInput(BaseModel):
    resolution_type: ResolutionType = "closed"
    resolution_notes: Optional[str] = None


class ExceptionView(BaseModel):
    id: int
    assignment_id: int
    verification_id: Optional[int] = None
    issue_summary: str
    reason: str
    risk_level: str
    expiration_type: ExpirationType
    expires_at: Optional[datetime] = None
    status: ExceptionStatus
    created_by_user_id: Optional[int] = None
    approved_by_user_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    resolution_type: Optional[str] = None
    resolution_notes: Optional[str] = None


class SweepResult(BaseModel):
    expired: list[int] = []
    skipped: list[int] = []
