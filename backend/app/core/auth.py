"""Role-aware session dependency for API routes."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import get_settings
from app.core.logging import logger
from app.models.logistics import UserRole
from app.services.auth_store import TokenError, decode_token, role_permissions


security = HTTPBearer(auto_error=False)


@dataclass
class SessionContext:
    user_id: str
    role: str
    authenticated: bool
    actor: str
    permissions: List[str] = field(default_factory=list)


SUPPORTED_ROLES = {role.value for role in UserRole}


def _normalize_role(value: str | None) -> str:
    role = (value or "").strip().lower()
    if not role:
        return UserRole.ADMIN.value
    if role not in SUPPORTED_ROLES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported role '{value}'. Expected one of: {sorted(SUPPORTED_ROLES)}",
        )
    return role


def get_session_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    x_actor_role: str | None = Header(default=None, alias="X-Actor-Role"),
) -> SessionContext:
    """Resolve the caller from the pseudo-token, or from headers when auth is off."""
    settings = get_settings()

    if not settings.auth_enabled:
        role = _normalize_role(x_actor_role)
        return SessionContext(
            user_id=f"{role}-user-1",
            role=role,
            authenticated=False,
            actor="anonymous",
            permissions=role_permissions(role),
        )

    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Bearer token required",
        )

    try:
        payload = decode_token(credentials.credentials)
    except TokenError as exc:
        logger.warning("Rejected bearer token", reason=str(exc))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        )

    return SessionContext(
        user_id=payload.sub,
        role=payload.role.value,
        authenticated=True,
        actor=payload.email,
        permissions=list(payload.permissions),
    )


def require_roles(*allowed_roles: str):
    """Dependency factory that enforces role-based access control."""
    allowed = {role.strip().lower() for role in allowed_roles if role.strip()}
    if not allowed:
        raise ValueError("At least one role is required")

    def _guard(context: SessionContext = Depends(get_session_context)) -> SessionContext:
        if context.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{context.role}' not permitted for this operation",
            )
        return context

    return _guard


def require_permissions(*required: str):
    """Dependency factory that checks the permission set carried by the session."""
    needed = {item.strip() for item in required if item.strip()}
    if not needed:
        raise ValueError("At least one permission is required")

    def _guard(context: SessionContext = Depends(get_session_context)) -> SessionContext:
        missing = sorted(needed - set(context.permissions))
        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission(s): {', '.join(missing)}",
            )
        return context

    return _guard
