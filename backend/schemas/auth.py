from pydantic import BaseModel
from typing import Literal, Optional


class SignupInput(BaseModel):
    email: str
    password: str
    name: Optional[str] = None
    role: Literal["admin", "risk_manager", "project_manager", "read_only"] = "project_manager"


class LoginInput(BaseModel):
    email: str
    password: str


class AuthResponse(BaseModel):
    success: bool
    message: str
    user: Optional[dict] = None
    token: Optional[str] = None


class UserInfo(BaseModel):
    email: str
    role: str
    created_at: str
