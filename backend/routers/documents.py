from typing import Optional

from fastapi import APIRouter, Depends

from database import get_session
from errors import EngineError, raise_http_error
from schemas.verification import (
    ComplianceTransitionView, DocumentSubmissionInput, ExtractedSubmissionInput,
    VerificationResponse,
)
from services.auth import optional_user
from services.extraction import get_extractor
from services.verification import (
    VerificationOutcome, get_verification, reprocess_document, submit_certificate,
    verdict_from_record, verify_submission,
)

router = APIRouter(prefix="/api", tags=["documents"])


def _response(outcome: VerificationOutcome) -> VerificationResponse:
    verification = outcome.verification
    transition = outcome.transition
    return VerificationResponse(
        verification_id=verification.id,
        document_id=verification.document_id,
        assignment_id=verification.assignment_id,
        created_at=verification.created_at,
        verdict=outcome.verdict,
        compliance=ComplianceTransitionView(
            previous_status=transition.previous_status,
            current_status=transition.current_status,
            version=transition.version,
            resolved_exception_ids=transition.resolved_exception_ids,
        ),
    )


def _user_id(user) -> Optional[int]:
    return user.id if user else None


@router.post("/assignments/{assignment_id}/documents", response_model=VerificationResponse)
def upload_certificate(assignment_id: int, input: DocumentSubmissionInput,
                       db=Depends(get_session), extractor=Depends(get_extractor),
                       user=Depends(optional_user)):
    """Submit a Certificate of Currency for an assignment (upload or portal)"""
    try:
        outcome = submit_certificate(db, assignment_id, input, extractor, user_id=_user_id(user))
    except EngineError as e:
        raise_http_error(e)
    return _response(outcome)


@router.post("/assignments/{assignment_id}/verifications", response_model=VerificationResponse)
def verify_extracted(assignment_id: int, input: ExtractedSubmissionInput,
                     db=Depends(get_session), user=Depends(optional_user)):
    """Verify already-extracted certificate data"""
    try:
        outcome = verify_submission(db, assignment_id, input.policy, input.metadata,
                                    source=input.source, expected_version=input.expected_version,
                                    user_id=_user_id(user))
    except EngineError as e:
        raise_http_error(e)
    return _response(outcome)


@router.post("/documents/{document_id}/reprocess", response_model=VerificationResponse)
def reprocess(document_id: int, expected_version: Optional[int] = None,
              db=Depends(get_session), extractor=Depends(get_extractor),
              user=Depends(optional_user)):
    """Re-run extraction and verification for a stored document"""
    try:
        outcome = reprocess_document(db, document_id, extractor,
                                     expected_version=expected_version, user_id=_user_id(user))
    except EngineError as e:
        raise_http_error(e)
    return _response(outcome)


@router.get("/verifications/{verification_id}")
def read_verification(verification_id: int, db=Depends(get_session)):
    """A stored verdict with the extracted data it was produced from"""
    try:
        verification = get_verification(db, verification_id)
    except EngineError as e:
        raise_http_error(e)
    return {
        "verification_id": verification.id,
        "document_id": verification.document_id,
        "assignment_id": verification.assignment_id,
        "created_at": verification.created_at.isoformat() if verification.created_at else None,
        "verdict": verdict_from_record(verification).model_dump(mode="json"),
        "extracted_data": verification.extracted_data,
    }
