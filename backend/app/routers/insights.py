"""API routes for anomaly detection, performance scoring, and maintenance prediction."""
from __future__ import annotations

from typing import List, Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.auth import SessionContext, require_roles
from app.core.logging import logger
from app.models.intelligence import Anomaly, MaintenancePrediction, PerformanceAnalysis, PerformanceScore
from app.services.database import database
from app.services.insights import analyze_performance, detect_anomalies, predict_maintenance, score_operator

router = APIRouter(prefix="/insights", tags=["insights"])


@router.get("/anomalies", response_model=List[Anomaly])
async def anomalies(
    time_window: Literal["1h", "24h", "7d"] = Query(default="24h"),
    context: SessionContext = Depends(require_roles("admin", "logistics")),
):
    state = database.store.get_state()
    try:
        return await detect_anomalies(state.shipments, state.operators, time_window)
    except Exception as exc:
        logger.error("Anomaly detection request failed", error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/performance", response_model=PerformanceAnalysis)
async def performance(
    time_range: Literal["7d", "30d", "90d"] = Query(default="30d"),
    context: SessionContext = Depends(require_roles("admin", "logistics")),
):
    state = database.store.get_state()
    try:
        return await analyze_performance(state.operators, state.shipments, time_range)
    except Exception as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/performance/operators/{operator_id}", response_model=PerformanceScore)
def operator_score(
    operator_id: str,
    context: SessionContext = Depends(require_roles("admin", "logistics")),
):
    try:
        return score_operator(database.get_operator(operator_id))
    except KeyError:
        raise HTTPException(status_code=404, detail="Operator not found")


@router.get("/maintenance/{vehicle_id}", response_model=MaintenancePrediction)
def maintenance(
    vehicle_id: str,
    context: SessionContext = Depends(require_roles("admin", "logistics")),
):
    try:
        return predict_maintenance(database.get_vehicle(vehicle_id))
    except KeyError:
        raise HTTPException(status_code=404, detail="Vehicle not found")
