"""Notification events written to the outbox table.

The engine only records what happened. Rendering and delivery (email, portal
banners) are handled by whatever drains ``notification_events``.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from config import DEFICIENCY_DUE_DAYS
from models import NotificationEvent

logger = logging.getLogger(__name__)


def _event(db, event_type: str, assignment_id: int, payload: dict, *,
           verification_id: Optional[int] = None, exception_id: Optional[int] = None,
           priority: str = "normal", due_date: Optional[datetime] = None,
           now: Optional[datetime] = None) -> NotificationEvent:
    event = NotificationEvent(
        event_type=event_type,
        priority=priority,
        assignment_id=assignment_id,
        verification_id=verification_id,
        exception_id=exception_id,
        payload=payload,
        due_date=due_date,
    )
    if now is not None:
        event.created_at = now
    db.add(event)
    logger.info("Queued %s event for assignment %s", event_type, assignment_id)
    return event


def verdict_events(db, assignment_id: int, verification_id: int, verdict,
                   now: datetime) -> list:
    """Events for one verdict: exactly one per verdict status."""
    if verdict.status == "pass":
        return [_event(db, "compliance_confirmed", assignment_id, {
            "confidence_score": verdict.confidence_score,
        }, verification_id=verification_id, now=now)]

    if verdict.fraud_signal.is_blocked:
        # Goes to the risk team, never to the subcontractor as a deficiency notice
        return [_event(db, "fraud_alert", assignment_id, {
            "risk_score": verdict.fraud_signal.risk_score,
            "risk_level": verdict.fraud_signal.risk_level,
            "recommendation": verdict.fraud_signal.recommendation,
            "evidence": [c.model_dump() for c in verdict.fraud_signal.evidence_checks],
        }, verification_id=verification_id, priority="high", now=now)]

    if verdict.status == "fail":
        due = now + timedelta(days=DEFICIENCY_DUE_DAYS)
        return [_event(db, "deficiency_notice", assignment_id, {
            "deficiencies": [d.model_dump() for d in verdict.deficiencies],
            "due_date": due.isoformat(),
        }, verification_id=verification_id, due_date=due, now=now)]

    return [_event(db, "review_required", assignment_id, {
        "decided_by": verdict.decided_by,
        "warnings": [c.model_dump() for c in verdict.checks if c.status == "warning"],
    }, verification_id=verification_id, now=now)]


def exception_resolved_event(db, exception, now: datetime) -> NotificationEvent:
    return _event(db, "exception_resolved", exception.assignment_id, {
        "resolution_type": exception.resolution_type,
        "issue_summary": exception.issue_summary,
    }, exception_id=exception.id, now=now)


def exception_expired_event(db, exception, now: datetime) -> NotificationEvent:
    return _event(db, "exception_expired", exception.assignment_id, {
        "expired_at": exception.expires_at.isoformat() if exception.expires_at else None,
        "issue_summary": exception.issue_summary,
    }, exception_id=exception.id, priority="high", now=now)
