"""API routes for shipment creation, tracking, and lifecycle."""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from app.core.auth import SessionContext, get_session_context, require_roles
from app.core.logging import logger
from app.models.logistics import (
    BusinessModel,
    ProofOfDeliveryRequest,
    ProofOfDeliveryResult,
    Shipment,
    ShipmentCreateRequest,
    ShipmentPatch,
    ShipmentStatus,
    ShipmentStatusRequest,
    ShipmentUpdateRequest,
)
from app.services.database import database
from app.services.delivery import upload_proof_of_delivery
from app.services.shipment_form import ShipmentForm, ShipmentFormFields, ShipmentFormResult

router = APIRouter(prefix="/shipments", tags=["shipments"])


class ShipmentFormSubmission(BaseModel):
    model: BusinessModel = BusinessModel.SUBSCRIPTION
    fields: ShipmentFormFields
    customer_id: Optional[str] = None
    company_id: Optional[str] = None


class SelectShipmentRequest(BaseModel):
    shipment_id: Optional[str] = None


@router.get("", response_model=List[Shipment])
def list_shipments(
    status: Optional[ShipmentStatus] = Query(default=None),
    search: Optional[str] = Query(default=None),
    context: SessionContext = Depends(get_session_context),
):
    return database.list_shipments(status=status, search=search)


@router.post("", response_model=Shipment)
def create_shipment(
    request: ShipmentCreateRequest,
    context: SessionContext = Depends(require_roles("logistics", "admin", "customer")),
):
    try:
        return database.create_shipment(request, actor=context.actor)
    except Exception as exc:
        logger.error("Failed to create shipment", error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/form", response_model=ShipmentFormResult)
def submit_shipment_form(
    submission: ShipmentFormSubmission,
    context: SessionContext = Depends(require_roles("logistics", "admin", "customer")),
):
    form = ShipmentForm(model=submission.model)
    form.update(**submission.fields.model_dump())
    result = form.submit(
        database.store,
        actor=context.actor,
        customer_id=submission.customer_id,
        company_id=submission.company_id,
    )
    if not result.ok:
        raise HTTPException(status_code=422, detail=result.errors)
    return result


@router.post("/select")
def select_shipment(
    request: SelectShipmentRequest,
    context: SessionContext = Depends(get_session_context),
):
    try:
        return {"selected_shipment": database.select_shipment(request.shipment_id)}
    except KeyError:
        raise HTTPException(status_code=404, detail="Shipment not found")


@router.get("/{shipment_id}", response_model=Shipment)
def get_shipment(
    shipment_id: str,
    context: SessionContext = Depends(get_session_context),
):
    try:
        return database.get_shipment(shipment_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Shipment not found")


@router.patch("/{shipment_id}", response_model=Shipment)
def update_shipment(
    shipment_id: str,
    patch: ShipmentPatch,
    context: SessionContext = Depends(require_roles("logistics", "admin")),
):
    try:
        return database.update_shipment(shipment_id, patch, actor=context.actor)
    except KeyError:
        raise HTTPException(status_code=404, detail="Shipment not found")
    except Exception as exc:
        logger.error("Failed to update shipment", shipment_id=shipment_id, error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/{shipment_id}/status", response_model=Shipment)
def transition_shipment_status(
    shipment_id: str,
    request: ShipmentStatusRequest,
    context: SessionContext = Depends(require_roles("logistics", "admin", "operator")),
):
    try:
        return database.update_shipment_status(
            shipment_id,
            request.status,
            message=request.message,
            actor=context.actor,
        )
    except KeyError:
        raise HTTPException(status_code=404, detail="Shipment not found")
    except Exception as exc:
        logger.error("Failed to transition shipment", shipment_id=shipment_id, error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/{shipment_id}/updates", response_model=Shipment)
def add_tracking_update(
    shipment_id: str,
    request: ShipmentUpdateRequest,
    context: SessionContext = Depends(require_roles("logistics", "admin", "operator")),
):
    try:
        return database.add_shipment_update(
            shipment_id,
            request.message,
            update_type=request.type,
            location=request.location,
        )
    except KeyError:
        raise HTTPException(status_code=404, detail="Shipment not found")
    except Exception as exc:
        logger.error("Failed to add shipment update", shipment_id=shipment_id, error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/{shipment_id}/assign/{operator_id}", response_model=Shipment)
def assign_operator(
    shipment_id: str,
    operator_id: str,
    context: SessionContext = Depends(require_roles("logistics", "admin")),
):
    try:
        return database.assign_operator(shipment_id, operator_id, actor=context.actor)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Not found: {exc.args[0]}")
    except Exception as exc:
        logger.error("Failed to assign operator", shipment_id=shipment_id, error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/{shipment_id}/proof-of-delivery", response_model=ProofOfDeliveryResult)
def upload_pod(
    shipment_id: str,
    request: ProofOfDeliveryRequest,
    context: SessionContext = Depends(require_roles("operator", "logistics", "admin")),
):
    try:
        return upload_proof_of_delivery(shipment_id, request, uploaded_by=context.actor)
    except KeyError:
        raise HTTPException(status_code=404, detail="Shipment not found")
    except Exception as exc:
        logger.error("Failed to upload proof of delivery", shipment_id=shipment_id, error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))
