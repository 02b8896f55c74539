"""Verification orchestration shared by every ingestion path.

Direct uploads, portal uploads and reprocessing all funnel into
``verify_submission``: evaluate requirements and score fraud concurrently,
reconcile, then record the verdict, the compliance transition, exception
auto-resolution, outbox events and an audit entry in one transaction.
"""
import hashlib
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from errors import NotFoundError
from models import ComplianceException, CocDocument, ProjectSubcontractor, Verification, utcnow
from schemas.verification import (
    DocumentMetadata, DocumentSubmissionInput, ExtractedPolicyData, FraudSignal,
    PriorSubmission, VerificationVerdict,
)
from services import compliance
from services.db_ops import record_audit, run_in_transaction
from services.evaluator import evaluate_requirements
from services.fraud import score_fraud_risk
from services.insurers import InsurerRegistry
from services.notifications import exception_resolved_event, verdict_events
from services.reconciler import reconcile
from services.requirements import project_facts, to_requirement

logger = logging.getLogger(__name__)

@dataclass
class VerificationOutcome:
    verification: Verification
    verdict: VerificationVerdict
    transition: compliance.ComplianceTransition


def hash_document(text: str) -> str:
    """Create a hash of document text for duplicate detection"""
    return hashlib.sha256(text.encode('utf-8')).hexdigest()


def get_assignment(db, assignment_id: int) -> ProjectSubcontractor:
    assignment = db.get(ProjectSubcontractor, assignment_id)
    if assignment is None:
        raise NotFoundError(f"Assignment {assignment_id} not found")
    return assignment


def prior_submissions(db, assignment_id: int, exclude_document_id: Optional[int] = None) -> list:
    query = (
        db.query(Verification, CocDocument)
        .join(CocDocument, Verification.document_id == CocDocument.id)
        .filter(Verification.assignment_id == assignment_id)
    )
    if exclude_document_id is not None:
        query = query.filter(CocDocument.id != exclude_document_id)
    return [
        PriorSubmission(
            document_hash=doc.document_hash,
            file_name=doc.file_name,
            uploaded_at=doc.created_at,
            policy_number=v.policy_number,
            period_end=v.period_end,
        )
        for v, doc in query.order_by(Verification.id).all()
    ]


def produce_verdict(policy: ExtractedPolicyData, requirements, facts, metadata: DocumentMetadata,
                    as_of, insurer_registry: Optional[InsurerRegistry] = None) -> VerificationVerdict:
    """Pure verdict production. The reconciler is the join point.

    Evaluator and scorer share no state and run side by side on a pool that
    lives only for this call.
    """
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="verdict") as pool:
        evaluation = pool.submit(evaluate_requirements, policy, requirements, facts,
                                 insurer_registry, as_of)
        fraud = pool.submit(score_fraud_risk, policy, metadata)
        return reconcile(evaluation.result(), fraud.result(), policy.extraction_confidence)


def verify_submission(db, assignment_id: int, policy: ExtractedPolicyData,
                      metadata: Optional[DocumentMetadata] = None, source: str = "upload",
                      expected_version: Optional[int] = None, now: Optional[datetime] = None,
                      document: Optional[CocDocument] = None, document_text: Optional[str] = None,
                      user_id: Optional[int] = None,
                      insurer_registry: Optional[InsurerRegistry] = None) -> VerificationOutcome:
    now = now or utcnow()
    metadata = metadata or DocumentMetadata()
    assignment = get_assignment(db, assignment_id)
    compliance.check_version(assignment, expected_version)

    if metadata.document_hash is None and document_text:
        metadata = metadata.model_copy(update={"document_hash": hash_document(document_text)})
    if not metadata.previous_submissions:
        priors = prior_submissions(db, assignment.id,
                                   exclude_document_id=document.id if document else None)
        metadata = metadata.model_copy(update={"previous_submissions": priors})

    requirements = [to_requirement(row) for row in assignment.project.requirements]
    verdict = produce_verdict(policy, requirements, project_facts(assignment), metadata,
                              now.date(), insurer_registry)

    def work():
        doc = document
        if doc is None:
            doc = CocDocument(
                assignment_id=assignment.id,
                file_name=metadata.file_name,
                document_hash=metadata.document_hash,
                document_text=document_text,
                source=source,
                file_metadata=metadata.model_dump(mode="json", exclude={"previous_submissions"}),
                created_at=now,
            )
            db.add(doc)
        doc.processing_status = "processed"
        db.flush()

        verification = Verification(
            document_id=doc.id,
            assignment_id=assignment.id,
            status=verdict.status,
            decided_by=verdict.decided_by,
            confidence_score=verdict.confidence_score,
            extracted_data=policy.model_dump(mode="json"),
            policy_number=policy.policy_number,
            period_end=policy.period_end,
            checks=[c.model_dump() for c in verdict.checks],
            deficiencies=[d.model_dump() for d in verdict.deficiencies],
            fraud=verdict.fraud_signal.model_dump(mode="json"),
            created_at=now,
        )
        db.add(verification)
        db.flush()

        transition = compliance.apply_verdict(db, assignment, verdict, verification.id,
                                              expected_version=expected_version, now=now)
        verdict_events(db, assignment.id, verification.id, verdict, now)
        for exception_id in transition.resolved_exception_ids:
            exception_resolved_event(db, db.get(ComplianceException, exception_id), now)
        record_audit(db, "verification", verification.id, "verify", user_id=user_id, details={
            "assignment_id": assignment.id,
            "source": source,
            "status": verdict.status,
            "decided_by": verdict.decided_by,
            "fraud_risk_score": verdict.fraud_signal.risk_score,
            "compliance": [transition.previous_status, transition.current_status],
        })
        return verification, transition

    verification, transition = run_in_transaction(db, work)
    logger.info("Verification %s for assignment %s: %s (%s, fraud %s)",
                verification.id, assignment.id, verdict.status, verdict.decided_by,
                verdict.fraud_signal.risk_score)
    return VerificationOutcome(verification, verdict, transition)


def submit_certificate(db, assignment_id: int, submission: DocumentSubmissionInput,
                       extractor: Callable[[str], ExtractedPolicyData], now: Optional[datetime] = None,
                       user_id: Optional[int] = None) -> VerificationOutcome:
    """Upload and portal path: extract, then verify.

    Extraction failures propagate before anything is written.
    """
    get_assignment(db, assignment_id)
    policy = extractor(submission.certificate_text)
    metadata = DocumentMetadata(
        file_name=submission.file_name,
        producer=submission.producer,
        creator=submission.creator,
        creation_date=submission.creation_date,
        modification_date=submission.modification_date,
    )
    return verify_submission(db, assignment_id, policy, metadata, source=submission.source,
                             expected_version=submission.expected_version, now=now,
                             document_text=submission.certificate_text, user_id=user_id)


def reprocess_document(db, document_id: int, extractor: Callable[[str], ExtractedPolicyData],
                       expected_version: Optional[int] = None, now: Optional[datetime] = None,
                       user_id: Optional[int] = None) -> VerificationOutcome:
    """Re-extract and re-verify a stored document against current requirements"""
    document = db.get(CocDocument, document_id)
    if document is None:
        raise NotFoundError(f"Document {document_id} not found")
    if not document.document_text:
        raise NotFoundError(f"Document {document_id} has no stored text to reprocess")

    policy = extractor(document.document_text)
    stored = dict(document.file_metadata or {})
    stored.pop("previous_submissions", None)
    metadata = DocumentMetadata(**stored)
    return verify_submission(db, document.assignment_id, policy, metadata, source="reprocess",
                             expected_version=expected_version, now=now, document=document,
                             user_id=user_id)


def verdict_from_record(verification: Verification) -> VerificationVerdict:
    return VerificationVerdict(
        status=verification.status,
        checks=verification.checks or [],
        deficiencies=verification.deficiencies or [],
        confidence_score=verification.confidence_score or 0.0,
        fraud_signal=FraudSignal(**verification.fraud),
        decided_by=verification.decided_by,
    )


def get_verification(db, verification_id: int) -> Verification:
    verification = db.get(Verification, verification_id)
    if verification is None:
        raise NotFoundError(f"Verification {verification_id} not found")
    return verification
