"""API route for the role sidebar."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.auth import SessionContext, get_session_context
from app.services.navigation import menu_for_role

router = APIRouter(prefix="/navigation", tags=["navigation"])


@router.get("/menu")
def get_menu(
    role: Optional[str] = Query(default=None),
    context: SessionContext = Depends(get_session_context),
):
    selected = role or context.role
    return {"role": selected, "items": menu_for_role(selected)}
