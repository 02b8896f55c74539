from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from database import get_session
from errors import EngineError, raise_http_error
from schemas.compliance import ExceptionCreateInput, ExceptionResolveInput, ExceptionView, SweepResult
from services.auth import require_user, verify_user_password
from services.compliance_exceptions import (
    approve_exception, create_exception, expire_due_exceptions, list_exceptions,
    reject_exception, require_approver, resolve_exception,
)

router = APIRouter(prefix="/api", tags=["exceptions"])


class RejectInput(BaseModel):
    notes: Optional[str] = None


def _view(exc) -> ExceptionView:
    return ExceptionView(
        id=exc.id,
        assignment_id=exc.assignment_id,
        verification_id=exc.verification_id,
        issue_summary=exc.issue_summary,
        reason=exc.reason,
        risk_level=exc.risk_level,
        expiration_type=exc.expiration_type,
        expires_at=exc.expires_at,
        status=exc.status,
        created_by_user_id=exc.created_by_user_id,
        approved_by_user_id=exc.approved_by_user_id,
        approved_at=exc.approved_at,
        resolved_at=exc.resolved_at,
        resolution_type=exc.resolution_type,
        resolution_notes=exc.resolution_notes,
    )


@router.post("/exceptions", response_model=ExceptionView, status_code=201)
def create(input: ExceptionCreateInput, db=Depends(get_session), user=Depends(require_user)):
    """Create a compliance exception. Admins and risk managers auto-approve."""
    reauthenticated = False
    if input.expiration_type == "permanent" and input.password:
        if not verify_user_password(user, input.password):
            raise HTTPException(status_code=401, detail="Incorrect password")
        reauthenticated = True

    try:
        exc = create_exception(db, input, user, reauthenticated=reauthenticated)
    except EngineError as e:
        raise_http_error(e)
    return _view(exc)


@router.get("/assignments/{assignment_id}/exceptions", response_model=list[ExceptionView])
def list_for_assignment(assignment_id: int, db=Depends(get_session),
                        user=Depends(require_user)):
    try:
        return [_view(exc) for exc in list_exceptions(db, assignment_id)]
    except EngineError as e:
        raise_http_error(e)


@router.post("/exceptions/{exception_id}/approve", response_model=ExceptionView)
def approve(exception_id: int, db=Depends(get_session), user=Depends(require_user)):
    try:
        return _view(approve_exception(db, exception_id, user))
    except EngineError as e:
        raise_http_error(e)


@router.post("/exceptions/{exception_id}/reject", response_model=ExceptionView)
def reject(exception_id: int, input: Optional[RejectInput] = None,
           db=Depends(get_session), user=Depends(require_user)):
    try:
        notes = input.notes if input else None
        return _view(reject_exception(db, exception_id, user, notes=notes))
    except EngineError as e:
        raise_http_error(e)


@router.post("/exceptions/{exception_id}/resolve", response_model=ExceptionView)
def resolve(exception_id: int, input: ExceptionResolveInput, db=Depends(get_session),
            user=Depends(require_user)):
    """Close an active exception by hand"""
    try:
        exc = resolve_exception(db, exception_id, user, input.resolution_type,
                                input.resolution_notes)
    except EngineError as e:
        raise_http_error(e)
    return _view(exc)


@router.post("/exceptions/expire", response_model=SweepResult)
def expire(db=Depends(get_session), user=Depends(require_user)):
    """Run the expiry sweep now (normally triggered by a scheduler)"""
    try:
        require_approver(user)
    except EngineError as e:
        raise_http_error(e)
    return SweepResult(**expire_due_exceptions(db))
