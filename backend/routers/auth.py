from fastapi import APIRouter, Depends, HTTPException, Request, Response
from services.auth import (create_user, get_user_by_email, verify_password,
                           create_session, delete_session, get_current_user, SESSION_DAYS)
from schemas.auth import SignupInput, LoginInput, AuthResponse
from database import get_session

router = APIRouter(prefix="/api", tags=["auth"])


def _user_payload(user) -> dict:
    return {"email": user.email, "name": user.name, "role": user.role}


def _set_auth_cookie(response: Response, token: str):
    response.set_cookie(
        key="auth_token",
        value=token,
        httponly=True,
        max_age=SESSION_DAYS * 24 * 60 * 60,
        samesite="lax"
    )


@router.post("/auth/signup", response_model=AuthResponse)
def signup(input: SignupInput, response: Response, db=Depends(get_session)):
    """Create a new user account"""
    # Validate email format
    if not input.email or '@' not in input.email:
        raise HTTPException(status_code=400, detail="Invalid email address")

    # Validate password
    if not input.password or len(input.password) < 6:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters")

    # Check if user already exists
    if get_user_by_email(db, input.email):
        raise HTTPException(status_code=400, detail="Email already registered")

    user = create_user(db, input.email, input.password, input.name, input.role)
    if not user:
        raise HTTPException(status_code=500, detail="Failed to create account")

    token = create_session(db, user.id)
    if not token:
        raise HTTPException(status_code=500, detail="Failed to create session")

    _set_auth_cookie(response, token)
    return AuthResponse(
        success=True,
        message="Account created successfully",
        user=_user_payload(user),
        token=token
    )


@router.post("/auth/login", response_model=AuthResponse)
def login(input: LoginInput, response: Response, db=Depends(get_session)):
    """Log in to existing account"""
    user = get_user_by_email(db, input.email)
    if not user or not verify_password(input.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = create_session(db, user.id)
    if not token:
        raise HTTPException(status_code=500, detail="Failed to create session")

    _set_auth_cookie(response, token)
    return AuthResponse(
        success=True,
        message="Logged in successfully",
        user=_user_payload(user),
        token=token
    )


@router.post("/auth/logout")
def logout(request: Request, response: Response, db=Depends(get_session)):
    """Log out (delete session)"""
    token = request.cookies.get("auth_token")
    auth_header = request.headers.get("Authorization")
    if not token and auth_header and auth_header.startswith("Bearer "):
        token = auth_header[7:]
    if token:
        delete_session(db, token)

    response.delete_cookie("auth_token")
    return {"success": True, "message": "Logged out"}


@router.get("/auth/me")
def get_me(request: Request, db=Depends(get_session)):
    """Get current user info"""
    user = get_current_user(request, db)
    if not user:
        return {"authenticated": False, "user": None}

    return {
        "authenticated": True,
        "user": {
            **_user_payload(user),
            "created_at": user.created_at.isoformat() if user.created_at else None
        }
    }
