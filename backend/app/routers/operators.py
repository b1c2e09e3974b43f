"""API routes for operators and AI operator matching."""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.auth import SessionContext, get_session_context, require_roles
from app.core.logging import logger
from app.models.intelligence import OperatorMatchRequest, OperatorMatchResult
from app.models.logistics import Operator, OperatorStatus, OperatorStatusRequest
from app.services.database import database
from app.services.routing import find_best_operator

router = APIRouter(prefix="/operators", tags=["operators"])


@router.get("", response_model=List[Operator])
def list_operators(
    status: Optional[OperatorStatus] = Query(default=None),
    context: SessionContext = Depends(get_session_context),
):
    return database.list_operators(status=status)


@router.post("/match", response_model=OperatorMatchResult)
def match_operator(
    request: OperatorMatchRequest,
    context: SessionContext = Depends(require_roles("logistics", "admin")),
):
    candidates = database.list_operators(status=OperatorStatus.AVAILABLE)
    return find_best_operator(candidates, pickup=request.pickup, special_handling=request.special_handling)


@router.post("/match/{shipment_id}", response_model=OperatorMatchResult)
def match_operator_for_shipment(
    shipment_id: str,
    request: OperatorMatchRequest,
    context: SessionContext = Depends(require_roles("logistics", "admin")),
):
    try:
        shipment = database.get_shipment(shipment_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Shipment not found")
    candidates = database.list_operators(status=OperatorStatus.AVAILABLE)
    return find_best_operator(
        candidates,
        pickup=request.pickup,
        special_handling=request.special_handling or shipment.special_handling,
    )


@router.get("/{operator_id}", response_model=Operator)
def get_operator(
    operator_id: str,
    context: SessionContext = Depends(get_session_context),
):
    try:
        return database.get_operator(operator_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Operator not found")


@router.post("/{operator_id}/status", response_model=Operator)
def update_operator_status(
    operator_id: str,
    request: OperatorStatusRequest,
    context: SessionContext = Depends(require_roles("operator", "logistics", "admin")),
):
    try:
        return database.update_operator_status(operator_id, request.status)
    except KeyError:
        raise HTTPException(status_code=404, detail="Operator not found")
    except Exception as exc:
        logger.error("Failed to update operator status", operator_id=operator_id, error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))
