"""API routes for dispute management."""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.auth import SessionContext, get_session_context, require_roles
from app.core.logging import logger
from app.models.logistics import (
    Dispute,
    DisputeAssignRequest,
    DisputeCreateRequest,
    DisputePriority,
    DisputeResolveRequest,
    DisputeStatus,
)
from app.services.disputes import dispute_service

router = APIRouter(prefix="/disputes", tags=["disputes"])


@router.get("", response_model=List[Dispute])
def list_disputes(
    status: Optional[DisputeStatus] = Query(default=None),
    priority: Optional[DisputePriority] = Query(default=None),
    search: Optional[str] = Query(default=None),
    context: SessionContext = Depends(require_roles("admin", "logistics")),
):
    return dispute_service.list_disputes(status=status, priority=priority, search=search)


@router.get("/summary")
def dispute_summary(context: SessionContext = Depends(require_roles("admin", "logistics"))):
    return dispute_service.summary()


@router.post("", response_model=Dispute)
def open_dispute(
    request: DisputeCreateRequest,
    context: SessionContext = Depends(get_session_context),
):
    try:
        return dispute_service.open_dispute(request)
    except KeyError:
        raise HTTPException(status_code=404, detail="Shipment not found")
    except Exception as exc:
        logger.error("Failed to open dispute", shipment_id=request.shipment_id, error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/{dispute_id}", response_model=Dispute)
def get_dispute(
    dispute_id: str,
    context: SessionContext = Depends(require_roles("admin", "logistics")),
):
    try:
        return dispute_service.get_dispute(dispute_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Dispute not found")


@router.post("/{dispute_id}/investigate", response_model=Dispute)
def start_investigation(
    dispute_id: str,
    request: DisputeAssignRequest,
    context: SessionContext = Depends(require_roles("admin")),
):
    try:
        return dispute_service.start_investigation(dispute_id, assignee=request.assignee)
    except KeyError:
        raise HTTPException(status_code=404, detail="Dispute not found")
    except Exception as exc:
        logger.error("Failed to start investigation", dispute_id=dispute_id, error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/{dispute_id}/resolve", response_model=Dispute)
def resolve_dispute(
    dispute_id: str,
    request: DisputeResolveRequest,
    context: SessionContext = Depends(require_roles("admin")),
):
    try:
        return dispute_service.resolve(dispute_id, request.note)
    except KeyError:
        raise HTTPException(status_code=404, detail="Dispute not found")
    except Exception as exc:
        logger.error("Failed to resolve dispute", dispute_id=dispute_id, error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/{dispute_id}/close", response_model=Dispute)
def close_dispute(
    dispute_id: str,
    context: SessionContext = Depends(require_roles("admin")),
):
    try:
        return dispute_service.close(dispute_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Dispute not found")
    except Exception as exc:
        logger.error("Failed to close dispute", dispute_id=dispute_id, error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))
