"""Demo authentication: pseudo-token codec, role permissions, and session store."""
from __future__ import annotations

import asyncio
import base64
import binascii
import json
import re
import time
from threading import RLock
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ValidationError

from app.core.config import get_settings
from app.core.logging import logger
from app.models.auth import (
    AuthFailure,
    AuthRequest,
    AuthState,
    AuthSuccess,
    AuthUser,
    DemoRole,
    ProfileUpdated,
    SignInResponse,
    SignOut,
    TokenPayload,
)
from app.models.logistics import UserRole
from app.services.token_storage import LocalStorage


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
INVALID_CREDENTIALS = "Invalid credentials. Please try again."

ROLE_PERMISSIONS: Dict[UserRole, List[str]] = {
    UserRole.ADMIN: ["manage_users", "approve_shipments", "view_analytics", "manage_disputes"],
    UserRole.LOGISTICS: ["create_shipments", "manage_fleet", "view_analytics", "assign_operators"],
    UserRole.OPERATOR: ["view_jobs", "accept_shipments", "update_status", "view_earnings"],
    UserRole.CUSTOMER: ["view_shipments", "track_orders", "download_invoices", "provide_feedback"],
}

DEMO_ROLES: List[DemoRole] = [
    DemoRole(
        id=UserRole.ADMIN,
        title="Admin",
        description="System administration and oversight",
        email="admin@trackas.com",
        password="admin123",
    ),
    DemoRole(
        id=UserRole.LOGISTICS,
        title="Logistics Company",
        description="Manage shipments and fleet operations",
        email="logistics@trackas.com",
        password="logistics123",
    ),
    DemoRole(
        id=UserRole.OPERATOR,
        title="Operator/Driver",
        description="Accept jobs and manage deliveries",
        email="operator@trackas.com",
        password="operator123",
    ),
    DemoRole(
        id=UserRole.CUSTOMER,
        title="Customer",
        description="Track shipments and manage orders",
        email="customer@trackas.com",
        password="customer123",
    ),
]


class AuthError(ValueError):
    """Sign-in or sign-up rejected."""


class TokenError(ValueError):
    """Pseudo-token could not be decoded or has expired."""


def role_permissions(role: Union[UserRole, str]) -> List[str]:
    try:
        return list(ROLE_PERMISSIONS[UserRole(role)])
    except ValueError:
        return []


def _role_title(role: UserRole) -> str:
    for demo in DEMO_ROLES:
        if demo.id == role:
            return demo.title
    return "User"


def encode_token(payload: TokenPayload) -> str:
    raw = json.dumps(payload.model_dump(mode="json"), separators=(",", ":"), ensure_ascii=True)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_token(token: str, now: Optional[int] = None) -> TokenPayload:
    """Decode the base64 JSON claims. There is no signature to check."""
    text = (token or "").strip()
    if not text:
        raise TokenError("Token is empty")
    try:
        raw = base64.b64decode(text, validate=True)
        claims = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise TokenError(f"Token is not base64 JSON: {exc}") from exc
    if not isinstance(claims, dict):
        raise TokenError("Token claims must be an object")
    try:
        payload = TokenPayload.model_validate(claims)
    except ValidationError as exc:
        raise TokenError(f"Token claims are invalid: {exc.error_count()} error(s)") from exc

    current = int(time.time()) if now is None else int(now)
    if payload.exp <= current:
        raise TokenError("Token has expired")
    return payload


def issue_token(user: AuthUser, now: Optional[int] = None) -> str:
    issued_at = int(time.time()) if now is None else int(now)
    payload = TokenPayload(
        sub=user.id,
        email=user.email,
        role=user.role,
        name=user.name,
        verified=user.verified,
        permissions=list(user.permissions),
        company_id=user.company_id,
        iat=issued_at,
        exp=issued_at + get_settings().token_ttl_seconds,
    )
    return encode_token(payload)


def user_from_token(payload: TokenPayload) -> AuthUser:
    return AuthUser(
        id=payload.sub,
        email=payload.email,
        role=payload.role,
        name=payload.name,
        verified=payload.verified,
        permissions=list(payload.permissions),
        company_id=payload.company_id,
    )


AuthAction = Union[AuthRequest, AuthSuccess, AuthFailure, SignOut, ProfileUpdated]


def auth_reducer(state: AuthState, action: BaseModel) -> AuthState:
    action_type = getattr(action, "type", "")
    if action_type == "AUTH_REQUEST":
        return state.model_copy(update={"loading": True, "error": None})
    if action_type == "AUTH_SUCCESS":
        return AuthState(
            user=action.payload["user"],
            token=action.payload["token"],
            loading=False,
            error=None,
        )
    if action_type == "AUTH_FAILURE":
        return state.model_copy(update={"loading": False, "error": action.payload})
    if action_type == "SIGN_OUT":
        return AuthState()
    if action_type == "PROFILE_UPDATED" and state.user is not None:
        return state.model_copy(update={"user": state.user.model_copy(update=action.payload)})
    return state


class AuthStore:
    """Client-style session holder persisting its token to local storage."""

    def __init__(self, storage: Optional[LocalStorage] = None) -> None:
        self.settings = get_settings()
        self._storage = storage or LocalStorage()
        self._lock = RLock()
        self._state = AuthState()
        self._profiles: Dict[str, Dict[str, Any]] = {}

    @property
    def state(self) -> AuthState:
        with self._lock:
            return self._state

    def _dispatch(self, action: AuthAction) -> AuthState:
        with self._lock:
            self._state = auth_reducer(self._state, action)
            return self._state

    def current_user(self) -> Optional[AuthUser]:
        return self.state.user

    async def _simulate_latency(self) -> None:
        delay = max(0.0, float(self.settings.mock_latency_seconds))
        if delay:
            await asyncio.sleep(delay)

    def _build_user(self, email: str, role: UserRole) -> AuthUser:
        profile = self._profiles.get(email.lower())
        if profile:
            return AuthUser(
                id=profile["id"],
                email=email,
                role=profile["role"],
                name=profile["name"] or _role_title(profile["role"]),
                verified=True,
                permissions=role_permissions(profile["role"]),
                company_id=profile.get("company_id"),
            )
        return AuthUser(
            id=f"{role.value}-user-1",
            email=email,
            role=role,
            name=_role_title(role),
            verified=True,
            permissions=role_permissions(role),
        )

    async def sign_in(self, email: str, password: str, role: UserRole = UserRole.LOGISTICS) -> SignInResponse:
        self._dispatch(AuthRequest())
        try:
            await self._simulate_latency()
            cleaned_email = (email or "").strip()
            if not EMAIL_PATTERN.match(cleaned_email) or not (password or "").strip():
                raise AuthError(INVALID_CREDENTIALS)
            profile = self._profiles.get(cleaned_email.lower())
            if profile and profile["password"] != password:
                raise AuthError(INVALID_CREDENTIALS)

            user = self._build_user(cleaned_email, UserRole(role))
            token = issue_token(user)
            self._storage.set_item(self.settings.token_storage_key, token)
        except AuthError as exc:
            self._dispatch(AuthFailure(payload=str(exc)))
            logger.warning("Sign-in rejected", email=email)
            raise
        except Exception as exc:
            self._dispatch(AuthFailure(payload=INVALID_CREDENTIALS))
            logger.error("Sign-in failed", email=email, error=str(exc))
            raise AuthError(INVALID_CREDENTIALS) from exc

        self._dispatch(AuthSuccess(payload={"user": user, "token": token}))
        logger.info("User signed in", user_id=user.id, role=user.role.value)
        return SignInResponse(user=user, token=token)

    async def sign_up(
        self,
        email: str,
        password: str,
        role: UserRole = UserRole.CUSTOMER,
        name: str = "",
        company_id: Optional[str] = None,
    ) -> SignInResponse:
        cleaned_email = (email or "").strip()
        if not EMAIL_PATTERN.match(cleaned_email):
            raise AuthError("Please enter a valid email address")
        if len(password or "") < 6:
            raise AuthError("Password must be at least 6 characters")
        key = cleaned_email.lower()
        with self._lock:
            if key in self._profiles:
                raise AuthError("An account with this email already exists")
            self._profiles[key] = {
                "id": f"{UserRole(role).value}-user-{len(self._profiles) + 2}",
                "role": UserRole(role),
                "name": " ".join(name.split()),
                "password": password,
                "company_id": company_id,
            }
        logger.info("User profile registered", email=cleaned_email, role=UserRole(role).value)
        return await self.sign_in(cleaned_email, password, role=UserRole(role))

    def sign_out(self) -> AuthState:
        self._storage.remove_item(self.settings.token_storage_key)
        state = self._dispatch(SignOut())
        logger.info("User signed out")
        return state

    def restore_session(self) -> Optional[AuthUser]:
        """Rehydrate the session from the stored token, discarding it if unusable."""
        token = self._storage.get_item(self.settings.token_storage_key)
        if not token:
            return None
        try:
            payload = decode_token(token)
        except TokenError as exc:
            logger.info("Discarding stored token", reason=str(exc))
            self._storage.remove_item(self.settings.token_storage_key)
            self._dispatch(SignOut())
            return None
        user = user_from_token(payload)
        self._dispatch(AuthSuccess(payload={"user": user, "token": token}))
        return user

    def update_profile(self, updates: Dict[str, Any]) -> AuthUser:
        user = self.current_user()
        if user is None:
            raise AuthError("Not signed in")
        allowed = {key: value for key, value in updates.items() if key in {"name", "company_id"} and value is not None}
        if "name" in allowed:
            allowed["name"] = " ".join(str(allowed["name"]).split())
            if not allowed["name"]:
                raise ValueError("Name cannot be empty")
        state = self._dispatch(ProfileUpdated(payload=allowed))

        # The stored token carries the profile claims, so it is re-issued with them.
        token = issue_token(state.user)
        self._storage.set_item(self.settings.token_storage_key, token)
        profile = self._profiles.get(state.user.email.lower())
        if profile is not None:
            profile.update(allowed)
        state = self._dispatch(AuthSuccess(payload={"user": state.user, "token": token}))
        logger.info("Profile updated", user_id=state.user.id, fields=sorted(allowed))
        return state.user


auth_store = AuthStore()
