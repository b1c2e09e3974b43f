"""Models for the demo sign-in flow and its pseudo-token."""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from app.models.logistics import UserRole


class AuthUser(BaseModel):
    """Signed-in user as seen by the dashboards."""

    id: str
    email: str
    role: UserRole
    name: str
    verified: bool = True
    permissions: List[str] = Field(default_factory=list)
    company_id: Optional[str] = None


class TokenPayload(BaseModel):
    """Claims carried inside the base64 JSON pseudo-token."""

    sub: str
    email: str
    role: UserRole
    name: str
    verified: bool = True
    permissions: List[str] = Field(default_factory=list)
    company_id: Optional[str] = None
    iat: int
    exp: int


class AuthState(BaseModel):
    user: Optional[AuthUser] = None
    token: Optional[str] = None
    loading: bool = False
    error: Optional[str] = None


class AuthRequest(BaseModel):
    type: Literal["AUTH_REQUEST"] = "AUTH_REQUEST"
    payload: None = None


class AuthSuccess(BaseModel):
    type: Literal["AUTH_SUCCESS"] = "AUTH_SUCCESS"
    payload: Dict[str, Any]


class AuthFailure(BaseModel):
    type: Literal["AUTH_FAILURE"] = "AUTH_FAILURE"
    payload: str


class SignOut(BaseModel):
    type: Literal["SIGN_OUT"] = "SIGN_OUT"
    payload: None = None


class ProfileUpdated(BaseModel):
    type: Literal["PROFILE_UPDATED"] = "PROFILE_UPDATED"
    payload: Dict[str, Any]


class SignInRequest(BaseModel):
    email: str
    password: str
    role: UserRole = UserRole.LOGISTICS


class SignUpRequest(BaseModel):
    email: str
    password: str
    role: UserRole = UserRole.CUSTOMER
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    company_id: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = None
    company_id: Optional[str] = None


class SignInResponse(BaseModel):
    user: AuthUser
    token: str


class DemoRole(BaseModel):
    id: UserRole
    title: str
    description: str
    email: str
    password: str
