from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

CheckStatus = Literal["pass", "fail", "warning"]
Severity = Literal["critical", "major", "minor"]
VerdictStatus = Literal["pass", "fail", "review"]
RiskLevel = Literal["low", "medium", "high", "critical"]


class CoverageLine(BaseModel):
    type: str
    limit: Optional[float] = None
    limit_type: Optional[str] = None
    excess: Optional[float] = None
    principal_indemnity: Optional[bool] = None
    cross_liability: Optional[bool] = None
    waiver_of_subrogation: Optional[bool] = None
    jurisdiction: Optional[str] = None


class ExtractedPolicyData(BaseModel):
    """Extraction output. Treated as a read-only snapshot by the engine."""
    model_config = ConfigDict(frozen=True)

    insured_name: Optional[str] = None
    insured_identifier: Optional[str] = None
    insurer_name: Optional[str] = None
    policy_number: Optional[str] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    coverages: list[CoverageLine] = Field(default_factory=list)
    extraction_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    field_confidences: dict[str, float] = Field(default_factory=dict)


class CoverageRequirement(BaseModel):
    coverage_type: str
    minimum_limit: Optional[float] = None
    maximum_excess: Optional[float] = None
    principal_indemnity_required: bool = False
    cross_liability_required: bool = False
    waiver_required: bool = False
    jurisdiction_must_match: Optional[bool] = None


class ProjectFacts(BaseModel):
    end_date: Optional[date] = None
    jurisdiction: Optional[str] = None
    expected_identifier: Optional[str] = None


class PriorSubmission(BaseModel):
    document_hash: Optional[str] = None
    file_name: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    policy_number: Optional[str] = None
    period_end: Optional[date] = None


class DocumentMetadata(BaseModel):
    file_name: Optional[str] = None
    producer: Optional[str] = None
    creator: Optional[str] = None
    creation_date: Optional[datetime] = None
    modification_date: Optional[datetime] = None
    document_hash: Optional[str] = None
    previous_submissions: list[PriorSubmission] = Field(default_factory=list)


class CheckResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    check_id: str
    description: str
    status: CheckStatus
    detail: str


class Deficiency(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str
    severity: Severity
    description: str
    required_value: Optional[str] = None
    actual_value: Optional[str] = None
    check_id: str


class EvaluationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: VerdictStatus
    checks: tuple[CheckResult, ...] = ()
    deficiencies: tuple[Deficiency, ...] = ()


class FraudSignal(BaseModel):
    model_config = ConfigDict(frozen=True)

    risk_score: int = Field(ge=0, le=100)
    risk_level: RiskLevel
    is_blocked: bool
    evidence_checks: tuple[CheckResult, ...] = ()
    recommendation: str


class VerificationVerdict(BaseModel):
    """The unit of record for one document submission."""
    model_config = ConfigDict(frozen=True)

    status: VerdictStatus
    checks: tuple[CheckResult, ...] = ()
    deficiencies: tuple[Deficiency, ...] = ()
    confidence_score: float
    fraud_signal: FraudSignal
    decided_by: str


# ============== API payloads ==============

class DocumentSubmissionInput(BaseModel):
    certificate_text: str
    file_name: Optional[str] = None
    producer: Optional[str] = None
    creator: Optional[str] = None
    creation_date: Optional[datetime] = None
    modification_date: Optional[datetime] = None
    source: Literal["upload", "portal"] = "upload"
    expected_version: Optional[int] = None


class ExtractedSubmissionInput(BaseModel):
    policy: ExtractedPolicyData
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    source: Literal["upload", "portal", "reprocess"] = "upload"
    expected_version: Optional[int] = None


class ComplianceTransitionView(BaseModel):
    previous_status: str
    current_status: str
    version: int
    resolved_exception_ids: list[int] = []


class VerificationResponse(BaseModel):
    verification_id: int
    document_id: int
    assignment_id: int
    created_at: Optional[datetime] = None
    verdict: VerificationVerdict
    compliance: Optional[ComplianceTransitionView] = None
