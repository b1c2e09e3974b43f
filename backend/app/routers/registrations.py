"""API routes for company, vehicle, and customer registration plus admin approvals."""
from __future__ import annotations

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.auth import SessionContext, get_session_context, require_roles
from app.core.logging import logger
from app.models.logistics import (
    Company,
    CompanyRegistrationRequest,
    CompanyStatusRequest,
    Customer,
    CustomerCreateRequest,
    Vehicle,
    VehicleRegistrationRequest,
    VehicleStatusRequest,
)
from app.services.database import database

router = APIRouter(prefix="/registrations", tags=["registrations"])


@router.get("/pending")
def pending_registrations(
    kind: Literal["companies", "operators", "vehicles"] = Query(default="companies"),
    status: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    context: SessionContext = Depends(require_roles("admin")),
):
    try:
        return database.pending_registrations(kind, status_filter=status, search=search)
    except Exception as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/companies", response_model=Company)
def register_company(
    request: CompanyRegistrationRequest,
    context: SessionContext = Depends(get_session_context),
):
    try:
        return database.create_company(request)
    except Exception as exc:
        logger.error("Failed to register company", error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/companies/{company_id}", response_model=Company)
def get_company(
    company_id: str,
    context: SessionContext = Depends(get_session_context),
):
    try:
        return database.get_company(company_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Company not found")


@router.post("/companies/{company_id}/status", response_model=Company)
def review_company(
    company_id: str,
    request: CompanyStatusRequest,
    context: SessionContext = Depends(require_roles("admin")),
):
    try:
        return database.update_company_status(
            company_id,
            request.status,
            rejection_reason=request.rejection_reason,
            actor=context.actor,
        )
    except KeyError:
        raise HTTPException(status_code=404, detail="Company not found")
    except Exception as exc:
        logger.error("Failed to review company", company_id=company_id, error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/vehicles", response_model=Vehicle)
def register_vehicle(
    request: VehicleRegistrationRequest,
    context: SessionContext = Depends(require_roles("logistics", "admin")),
):
    try:
        return database.create_vehicle(request)
    except Exception as exc:
        logger.error("Failed to register vehicle", error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/vehicles/{vehicle_id}", response_model=Vehicle)
def get_vehicle(
    vehicle_id: str,
    context: SessionContext = Depends(get_session_context),
):
    try:
        return database.get_vehicle(vehicle_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Vehicle not found")


@router.post("/vehicles/{vehicle_id}/status", response_model=Vehicle)
def review_vehicle(
    vehicle_id: str,
    request: VehicleStatusRequest,
    context: SessionContext = Depends(require_roles("admin", "logistics")),
):
    try:
        return database.update_vehicle_status(vehicle_id, request.status, actor=context.actor)
    except KeyError:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    except Exception as exc:
        logger.error("Failed to review vehicle", vehicle_id=vehicle_id, error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/customers", response_model=List[Customer])
def list_customers(context: SessionContext = Depends(require_roles("admin", "logistics"))):
    return database.list_customers()


@router.post("/customers", response_model=Customer)
def create_customer(
    request: CustomerCreateRequest,
    upsert: bool = Query(default=False),
    context: SessionContext = Depends(require_roles("admin", "logistics")),
):
    try:
        if upsert:
            return database.upsert_customer(request)
        return database.create_customer(request)
    except Exception as exc:
        logger.error("Failed to save customer", error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))
