from schemas.verification import (
    CoverageLine, ExtractedPolicyData, CoverageRequirement, ProjectFacts,
    PriorSubmission, DocumentMetadata, CheckResult, Deficiency, EvaluationResult,
    FraudSignal, VerificationVerdict, DocumentSubmissionInput, ExtractedSubmissionInput,
    ComplianceTransitionView, VerificationResponse
)
from schemas.compliance import (
    ProjectInput, ProjectView, RequirementSetInput, SubcontractorInput, SubcontractorView,
    AssignmentInput, AssignmentView, ExceptionCreateInput, ExceptionResolveInput,
    ExceptionView, SweepResult
)
from schemas.auth import SignupInput, LoginInput, AuthResponse, UserInfo
