import logging
import secrets
from datetime import timedelta
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError

from database import get_session
from models import User, AuthSession, utcnow

logger = logging.getLogger(__name__)

SESSION_DAYS = 30


def hash_password(password: str) -> str:
    """Hash a password using bcrypt"""
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash"""
    return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))


def verify_user_password(user: User, password: Optional[str]) -> bool:
    """Re-authentication check used before sensitive actions"""
    if not password or not user.password_hash:
        return False
    return verify_password(password, user.password_hash)


def generate_session_token() -> str:
    """Generate a secure random session token"""
    return secrets.token_urlsafe(32)


def create_user(db, email: str, password: str, name: str = None,
                role: str = "project_manager") -> Optional[User]:
    """Create a new user"""
    try:
        user = User(
            email=email.lower().strip(),
            name=name,
            password_hash=hash_password(password),
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    except SQLAlchemyError as e:
        logger.error("Error creating user: %s", e)
        db.rollback()
        return None


def get_user_by_email(db, email: str) -> Optional[User]:
    """Get a user by email"""
    return db.query(User).filter(User.email == email.lower().strip()).first()


def create_session(db, user_id: int) -> Optional[str]:
    """Create a new auth session and return the token"""
    try:
        token = generate_session_token()
        session = AuthSession(
            user_id=user_id,
            token=token,
            expires_at=utcnow() + timedelta(days=SESSION_DAYS)
        )
        db.add(session)
        db.commit()
        return token
    except SQLAlchemyError as e:
        logger.error("Error creating session: %s", e)
        db.rollback()
        return None


def get_user_from_token(db, token: str) -> Optional[User]:
    """Get user from session token"""
    if not token:
        return None
    session = db.query(AuthSession).filter(
        AuthSession.token == token,
        AuthSession.expires_at > utcnow()
    ).first()
    if session:
        return db.get(User, session.user_id)
    return None


def delete_session(db, token: str) -> bool:
    """Delete a session (logout)"""
    try:
        db.query(AuthSession).filter(AuthSession.token == token).delete()
        db.commit()
        return True
    except SQLAlchemyError as e:
        logger.error("Error deleting session: %s", e)
        db.rollback()
        return False


def get_current_user(request: Request, db) -> Optional[User]:
    """Extract current user from auth header or cookie"""
    # Try Authorization header first
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return get_user_from_token(db, auth_header[7:])

    # Try cookie
    token = request.cookies.get("auth_token")
    if token:
        return get_user_from_token(db, token)

    return None


def require_user(request: Request, db=Depends(get_session)) -> User:
    """FastAPI dependency: the authenticated user or 401"""
    user = get_current_user(request, db)
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def optional_user(request: Request, db=Depends(get_session)) -> Optional[User]:
    return get_current_user(request, db)
