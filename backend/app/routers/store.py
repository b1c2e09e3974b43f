"""API routes for analytics, role dashboards, and store administration."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from app.core.auth import SessionContext, get_session_context, require_roles
from app.models.logistics import StoreSnapshot
from app.services.app_store import app_store
from app.services.database import database

router = APIRouter(tags=["store"])


@router.get("/analytics")
def get_analytics(context: SessionContext = Depends(require_roles("admin", "logistics"))):
    return database.analytics()


@router.get("/dashboards/logistics/{company_id}")
def logistics_dashboard(
    company_id: str,
    context: SessionContext = Depends(require_roles("logistics", "admin")),
):
    return database.logistics_data(company_id)


@router.get("/dashboards/operator/{operator_id}")
def operator_dashboard(
    operator_id: str,
    context: SessionContext = Depends(require_roles("operator", "admin")),
):
    try:
        return database.operator_data(operator_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Operator not found")


@router.get("/dashboards/customer/{customer_id}")
def customer_dashboard(
    customer_id: str,
    context: SessionContext = Depends(require_roles("customer", "admin")),
):
    return database.customer_data(customer_id)


@router.get("/store/state", response_model=StoreSnapshot)
def store_state(context: SessionContext = Depends(get_session_context)):
    return StoreSnapshot(
        state=app_store.get_state().model_dump(mode="json"),
        journal_entries=app_store.journal.count(),
    )


@router.post("/store/reset", response_model=StoreSnapshot)
def reset_store(context: SessionContext = Depends(require_roles("admin"))):
    state = app_store.reset()
    return StoreSnapshot(state=state.model_dump(mode="json"), journal_entries=app_store.journal.count())
