"""API routes for route optimisation, ETA, forecasting, and VCODE assignment."""
from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.auth import SessionContext, get_session_context, require_roles
from app.core.logging import logger
from app.models.intelligence import (
    DemandForecast,
    EtaPrediction,
    EtaRequest,
    RouteOptimization,
    RouteRequest,
    VehicleAssignment,
)
from app.services.routing import auto_assign_vehicle, forecast_demand, optimize_routes, predict_eta

router = APIRouter(prefix="/routing", tags=["routing"])


@router.post("/optimize", response_model=RouteOptimization)
async def optimize(
    request: RouteRequest,
    context: SessionContext = Depends(get_session_context),
):
    try:
        return await optimize_routes(
            request.pickup,
            request.destination,
            vehicle_type=request.vehicle_type,
            urgency=request.urgency,
        )
    except Exception as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/eta", response_model=EtaPrediction)
async def eta(
    request: EtaRequest,
    context: SessionContext = Depends(get_session_context),
):
    try:
        return await predict_eta(request.current, request.destination, request.traffic, request.weather)
    except Exception as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/forecast", response_model=DemandForecast)
async def forecast(
    time_range: Literal["24h", "7d", "30d"] = Query(default="7d"),
    region: Optional[str] = Query(default=None),
    context: SessionContext = Depends(require_roles("admin", "logistics")),
):
    try:
        return await forecast_demand(time_range, region=region)
    except Exception as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/assign/{shipment_id}", response_model=VehicleAssignment)
async def assign_vehicle(
    shipment_id: str,
    context: SessionContext = Depends(require_roles("logistics", "admin")),
):
    try:
        return await auto_assign_vehicle(shipment_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Shipment not found")
    except Exception as exc:
        logger.error("Auto-assignment failed", shipment_id=shipment_id, error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))
