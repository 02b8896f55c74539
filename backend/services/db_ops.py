import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from errors import CollaboratorError, ConflictError, EngineError
from models import AuditLog

logger = logging.getLogger(__name__)


def record_audit(db, entity_type: str, entity_id: int, action: str,
                 user_id: Optional[int] = None, details: dict = None) -> AuditLog:
    """Add an audit entry to the current transaction"""
    entry = AuditLog(
        user_id=user_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        details=details,
    )
    db.add(entry)
    return entry


def flush_or_conflict(db):
    """Flush pending writes, turning a lost optimistic-lock race into ConflictError"""
    try:
        db.flush()
    except StaleDataError as e:
        logger.warning("Optimistic lock lost: %s", e)
        raise ConflictError("Assignment was modified concurrently; re-fetch and retry") from e


def commit_or_rollback(db):
    """Commit the unit of work. Any failure rolls back everything in it."""
    try:
        db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.warning("Optimistic lock lost on commit: %s", e)
        raise ConflictError("Assignment was modified concurrently; re-fetch and retry") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error committing transaction: %s", e)
        raise CollaboratorError("Persistence is unavailable") from e


def run_in_transaction(db, work):
    """Call ``work()`` and commit; roll back on any engine or database error."""
    try:
        result = work()
    except (EngineError, SQLAlchemyError):
        db.rollback()
        raise
    commit_or_rollback(db)
    return result
