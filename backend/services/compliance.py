"""Compliance state machine for a subcontractor's assignment to a project.

States: ``pending -> compliant | non_compliant``; ``exception`` is a side
branch entered through an active waiver and left by the next verdict or by
the waiver ending. The most recently committed verdict is authoritative.

The assignment row carries a version counter, so two writers that read the
same version cannot both commit: the second flush raises ``ConflictError``.
Functions here only stage writes; the caller owns the transaction.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from errors import ConflictError
from models import ComplianceException, ProjectSubcontractor, utcnow
from services.db_ops import flush_or_conflict

logger = logging.getLogger(__name__)

VERDICT_TO_STATUS = {
    "pass": "compliant",
    "fail": "non_compliant",
    # review gates like a failure; the API surfaces it separately
    "review": "non_compliant",
}


@dataclass
class ComplianceTransition:
    previous_status: str
    current_status: str
    version: int
    resolved_exception_ids: list = field(default_factory=list)


def next_status(verdict_status: str) -> str:
    try:
        return VERDICT_TO_STATUS[verdict_status]
    except KeyError:
        raise ValueError(f"Unknown verdict status: {verdict_status}") from None


def check_version(assignment: ProjectSubcontractor, expected_version: Optional[int]):
    if expected_version is not None and assignment.version != expected_version:
        raise ConflictError(
            f"Assignment {assignment.id} is at version {assignment.version}, "
            f"expected {expected_version}; re-fetch and retry"
        )


def active_exceptions(db, assignment_id: int, exclude_id: Optional[int] = None) -> list:
    query = db.query(ComplianceException).filter(
        ComplianceException.assignment_id == assignment_id,
        ComplianceException.status == "active",
    )
    if exclude_id is not None:
        query = query.filter(ComplianceException.id != exclude_id)
    return query.order_by(ComplianceException.id).all()


def transition_exception(db, exception_id: int, from_status: str, values: dict) -> bool:
    """Conditional update keyed on the expected prior status.

    Returns False when another writer already moved the exception, in which
    case nothing is written.
    """
    updated = (
        db.query(ComplianceException)
        .filter(ComplianceException.id == exception_id,
                ComplianceException.status == from_status)
        .update(values, synchronize_session="fetch")
    )
    return updated == 1


def auto_resolve_exceptions(db, assignment_id: int, now: datetime) -> list:
    resolved = []
    for exc in active_exceptions(db, assignment_id):
        won = transition_exception(db, exc.id, "active", {
            "status": "resolved",
            "resolution_type": "coc_updated",
            "resolution_notes": "Superseded by a compliant certificate",
            "resolved_at": now,
            "updated_at": now,
        })
        if won:
            resolved.append(exc.id)
        else:
            logger.info("Exception %s already left active state, skipping auto-resolution", exc.id)
    return resolved


def apply_verdict(db, assignment: ProjectSubcontractor, verdict, verification_id: Optional[int],
                  expected_version: Optional[int] = None,
                  now: Optional[datetime] = None) -> ComplianceTransition:
    """Move the assignment to the status implied by ``verdict``.

    Always overwrites the previous status. A passing verdict also resolves
    every active exception with ``coc_updated``.
    """
    now = now or utcnow()
    check_version(assignment, expected_version)

    previous = assignment.status
    assignment.status = next_status(verdict.status)
    assignment.last_verification_id = verification_id
    flush_or_conflict(db)

    resolved_ids = []
    if verdict.status == "pass":
        resolved_ids = auto_resolve_exceptions(db, assignment.id, now)

    logger.info("Assignment %s: %s -> %s (verification %s, resolved exceptions %s)",
                assignment.id, previous, assignment.status, verification_id, resolved_ids)
    return ComplianceTransition(
        previous_status=previous,
        current_status=assignment.status,
        version=assignment.version,
        resolved_exception_ids=resolved_ids,
    )


def set_exception_status(db, assignment: ProjectSubcontractor,
                         expected_version: Optional[int] = None) -> ComplianceTransition:
    """An exception became active: the assignment is waived."""
    check_version(assignment, expected_version)
    previous = assignment.status
    assignment.status = "exception"
    flush_or_conflict(db)
    logger.info("Assignment %s: %s -> exception", assignment.id, previous)
    return ComplianceTransition(previous, assignment.status, assignment.version)


def revert_exception_status(db, assignment: ProjectSubcontractor,
                            ending_exception_id: int) -> ComplianceTransition:
    """An exception ended without a compliant certificate.

    The assignment drops back to ``non_compliant`` only while it is still in
    ``exception`` and no other waiver is active. A newer verdict wins.
    """
    previous = assignment.status
    if previous == "exception" and not active_exceptions(db, assignment.id,
                                                         exclude_id=ending_exception_id):
        assignment.status = "non_compliant"
        flush_or_conflict(db)
        logger.info("Assignment %s: exception -> non_compliant", assignment.id)
    return ComplianceTransition(previous, assignment.status, assignment.version)
