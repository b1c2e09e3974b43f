"""API routes for demo sign-in, session, and profile."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from app.core.auth import SessionContext, get_session_context
from app.core.logging import logger
from app.models.auth import (
    AuthState,
    AuthUser,
    DemoRole,
    ProfileUpdateRequest,
    SignInRequest,
    SignInResponse,
    SignUpRequest,
)
from app.services.auth_store import DEMO_ROLES, AuthError, auth_store

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/demo-roles", response_model=List[DemoRole])
def list_demo_roles():
    return DEMO_ROLES


@router.post("/sign-in", response_model=SignInResponse)
async def sign_in(request: SignInRequest):
    try:
        return await auth_store.sign_in(request.email, request.password, role=request.role)
    except AuthError as exc:
        raise HTTPException(status_code=401, detail=str(exc))


@router.post("/sign-up", response_model=SignInResponse)
async def sign_up(request: SignUpRequest):
    name = " ".join(part for part in (request.first_name, request.last_name) if part)
    try:
        return await auth_store.sign_up(
            request.email,
            request.password,
            role=request.role,
            name=name,
            company_id=request.company_id,
        )
    except AuthError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/sign-out", response_model=AuthState)
def sign_out():
    return auth_store.sign_out()


@router.get("/session", response_model=AuthState)
def get_session():
    auth_store.restore_session()
    return auth_store.state


@router.get("/me")
def whoami(context: SessionContext = Depends(get_session_context)):
    return {
        "user_id": context.user_id,
        "role": context.role,
        "authenticated": context.authenticated,
        "actor": context.actor,
        "permissions": context.permissions,
    }


@router.patch("/profile", response_model=AuthUser)
def update_profile(request: ProfileUpdateRequest):
    try:
        return auth_store.update_profile(request.model_dump(exclude_unset=True))
    except AuthError as exc:
        raise HTTPException(status_code=401, detail=str(exc))
    except Exception as exc:
        logger.error("Failed to update profile", error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))
