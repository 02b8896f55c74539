"""Exception (waiver) lifecycle.

``pending_approval -> active | rejected`` and ``active -> resolved | expired``.
Every state change is a conditional update keyed on the expected prior
status, so a writer that loses a race finds zero rows and backs off instead
of overwriting the winner.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from config import AUTO_APPROVE_ROLES, EXCEPTION_CREATOR_ROLES
from errors import (
    ConflictError, InvalidTransitionError, NotFoundError, PermissionDeniedError,
    ReauthenticationRequired, RequirementValidationError,
)
from models import ComplianceException, ProjectSubcontractor, Verification, to_utc_naive, utcnow
from schemas.compliance import ExceptionCreateInput
from services import compliance
from services.db_ops import commit_or_rollback, record_audit, run_in_transaction
from services.notifications import exception_expired_event, exception_resolved_event

logger = logging.getLogger(__name__)

EXPIRING_TYPES = ("fixed_duration", "specific_date")


def get_exception(db, exception_id: int) -> ComplianceException:
    exc = db.get(ComplianceException, exception_id)
    if exc is None:
        raise NotFoundError(f"Exception {exception_id} not found")
    return exc


def resolve_expiry(request: ExceptionCreateInput, now: datetime) -> Optional[datetime]:
    expires_at = to_utc_naive(request.expires_at)
    kind = request.expiration_type

    if kind == "fixed_duration":
        if request.duration_days:
            return now + timedelta(days=request.duration_days)
        if expires_at is None:
            raise RequirementValidationError(
                "fixed_duration exceptions need duration_days or expires_at")
    elif kind == "specific_date":
        if expires_at is None:
            raise RequirementValidationError("specific_date exceptions need expires_at")
    elif expires_at is not None or request.duration_days:
        raise RequirementValidationError(f"{kind} exceptions do not take an expiry")
    else:
        return None

    if expires_at <= now:
        raise RequirementValidationError("Exception expiry must be in the future")
    return expires_at


def create_exception(db, request: ExceptionCreateInput, creator, reauthenticated: bool = False,
                     now: Optional[datetime] = None) -> ComplianceException:
    """Create a waiver for a non-compliant assignment.

    Creators holding an auto-approval role skip ``pending_approval`` and the
    assignment moves to ``exception`` in the same transaction. Permanent
    waivers need the caller to have re-checked the creator's password.
    """
    now = now or utcnow()
    if creator.role not in EXCEPTION_CREATOR_ROLES:
        raise PermissionDeniedError("You do not have permission to create exceptions")
    if not request.issue_summary.strip() or not request.reason.strip():
        raise RequirementValidationError("Issue summary and reason are required")
    if request.expiration_type == "permanent" and not reauthenticated:
        raise ReauthenticationRequired("Password confirmation required for permanent exceptions")
    expires_at = resolve_expiry(request, now)

    assignment = db.get(ProjectSubcontractor, request.assignment_id)
    if assignment is None:
        raise NotFoundError(f"Assignment {request.assignment_id} not found")
    if assignment.status == "compliant":
        raise InvalidTransitionError("Assignment is compliant; there is nothing to waive")
    if request.verification_id is not None:
        verification = db.get(Verification, request.verification_id)
        if verification is None or verification.assignment_id != assignment.id:
            raise NotFoundError(f"Verification {request.verification_id} not found for this assignment")

    auto_approve = creator.role in AUTO_APPROVE_ROLES

    def work():
        exc = ComplianceException(
            assignment_id=assignment.id,
            verification_id=request.verification_id,
            issue_summary=request.issue_summary.strip(),
            reason=request.reason.strip(),
            risk_level=request.risk_level,
            expiration_type=request.expiration_type,
            expires_at=expires_at,
            status="active" if auto_approve else "pending_approval",
            created_by_user_id=creator.id,
            approved_by_user_id=creator.id if auto_approve else None,
            approved_at=now if auto_approve else None,
            supporting_document_url=request.supporting_document_url,
            created_at=now,
            updated_at=now,
        )
        db.add(exc)
        db.flush()
        if auto_approve:
            compliance.set_exception_status(db, assignment)
        record_audit(db, "exception", exc.id, "create", user_id=creator.id, details={
            "assignment_id": assignment.id,
            "expiration_type": exc.expiration_type,
            "auto_approved": auto_approve,
            "permanent": exc.expiration_type == "permanent",
        })
        return exc

    exc = run_in_transaction(db, work)
    logger.info("Exception %s created for assignment %s (%s)", exc.id, assignment.id, exc.status)
    return exc


def require_approver(user):
    if user.role not in AUTO_APPROVE_ROLES:
        raise PermissionDeniedError("You do not have permission to approve exceptions")


def approve_exception(db, exception_id: int, approver, now: Optional[datetime] = None):
    now = now or utcnow()
    require_approver(approver)
    exc = get_exception(db, exception_id)

    def work():
        won = compliance.transition_exception(db, exc.id, "pending_approval", {
            "status": "active",
            "approved_by_user_id": approver.id,
            "approved_at": now,
            "updated_at": now,
        })
        if not won:
            raise InvalidTransitionError(f"Exception {exc.id} is not pending approval")

        assignment = exc.assignment
        if assignment.status == "compliant":
            # A compliant certificate arrived while the waiver waited for approval
            compliance.transition_exception(db, exc.id, "active", {
                "status": "resolved",
                "resolution_type": "coc_updated",
                "resolution_notes": "Superseded by a compliant certificate",
                "resolved_at": now,
                "updated_at": now,
            })
            exception_resolved_event(db, exc, now)
        else:
            compliance.set_exception_status(db, assignment)
        record_audit(db, "exception", exc.id, "approve", user_id=approver.id, details={
            "previous_status": "pending_approval",
            "new_status": exc.status,
        })
        return exc

    run_in_transaction(db, work)
    db.refresh(exc)
    logger.info("Exception %s approved by user %s (%s)", exc.id, approver.id, exc.status)
    return exc


def reject_exception(db, exception_id: int, approver, notes: Optional[str] = None,
                     now: Optional[datetime] = None):
    """Reject a pending waiver. The assignment status is left as it is."""
    now = now or utcnow()
    require_approver(approver)
    exc = get_exception(db, exception_id)

    def work():
        won = compliance.transition_exception(db, exc.id, "pending_approval", {
            "status": "rejected",
            "resolution_notes": notes,
            "resolved_at": now,
            "updated_at": now,
        })
        if not won:
            raise InvalidTransitionError(f"Exception {exc.id} is not pending approval")
        record_audit(db, "exception", exc.id, "reject", user_id=approver.id, details={
            "previous_status": "pending_approval",
            "new_status": "rejected",
        })
        return exc

    run_in_transaction(db, work)
    db.refresh(exc)
    logger.info("Exception %s rejected by user %s", exc.id, approver.id)
    return exc


def resolve_exception(db, exception_id: int, user, resolution_type: str = "closed",
                      notes: Optional[str] = None, now: Optional[datetime] = None):
    """Close an active waiver by hand."""
    now = now or utcnow()
    require_approver(user)
    exc = get_exception(db, exception_id)

    def work():
        won = compliance.transition_exception(db, exc.id, "active", {
            "status": "resolved",
            "resolution_type": resolution_type,
            "resolution_notes": notes,
            "resolved_at": now,
            "updated_at": now,
        })
        if not won:
            raise InvalidTransitionError(f"Exception {exc.id} is not active")
        compliance.revert_exception_status(db, exc.assignment, ending_exception_id=exc.id)
        exception_resolved_event(db, exc, now)
        record_audit(db, "exception", exc.id, "resolve", user_id=user.id, details={
            "resolution_type": resolution_type,
        })
        return exc

    run_in_transaction(db, work)
    db.refresh(exc)
    logger.info("Exception %s resolved (%s)", exc.id, resolution_type)
    return exc


def list_exceptions(db, assignment_id: int) -> list:
    if db.get(ProjectSubcontractor, assignment_id) is None:
        raise NotFoundError(f"Assignment {assignment_id} not found")
    return (
        db.query(ComplianceException)
        .filter(ComplianceException.assignment_id == assignment_id)
        .order_by(ComplianceException.id)
        .all()
    )


def expire_due_exceptions(db, now: Optional[datetime] = None) -> dict:
    """Expire active time-bound waivers whose expiry has passed.

    Each exception is its own transaction. An exception that another writer
    moved first (auto-resolution, manual close, a parallel sweep) is skipped,
    so running the sweep again changes nothing and emits nothing.
    """
    now = now or utcnow()
    due = (
        db.query(ComplianceException.id)
        .filter(
            ComplianceException.status == "active",
            ComplianceException.expiration_type.in_(EXPIRING_TYPES),
            ComplianceException.expires_at.isnot(None),
            ComplianceException.expires_at <= now,
        )
        .order_by(ComplianceException.id)
        .all()
    )

    expired, skipped = [], []
    for (exception_id,) in due:
        try:
            won = compliance.transition_exception(db, exception_id, "active", {
                "status": "expired",
                "resolved_at": now,
                "updated_at": now,
            })
            if not won:
                db.rollback()
                skipped.append(exception_id)
                continue
            exc = db.get(ComplianceException, exception_id)
            compliance.revert_exception_status(db, exc.assignment, ending_exception_id=exc.id)
            exception_expired_event(db, exc, now)
            record_audit(db, "exception", exc.id, "expire", details={
                "expires_at": exc.expires_at.isoformat(),
            })
            commit_or_rollback(db)
            expired.append(exception_id)
        except ConflictError:
            db.rollback()
            logger.warning("Exception %s lost a race during expiry; will retry next sweep",
                           exception_id)
            skipped.append(exception_id)

    if expired or skipped:
        logger.info("Expiry sweep: expired %s, skipped %s", expired, skipped)
    return {"expired": expired, "skipped": skipped}
