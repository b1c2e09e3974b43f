"""API routes for invoice management."""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.auth import SessionContext, get_session_context, require_roles
from app.core.logging import logger
from app.models.logistics import Invoice, InvoiceStatus
from app.services.invoices import invoice_service

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("", response_model=List[Invoice])
def list_invoices(
    status: Optional[InvoiceStatus] = Query(default=None),
    search: Optional[str] = Query(default=None),
    context: SessionContext = Depends(get_session_context),
):
    invoice_service.sync_from_shipments()
    return invoice_service.list_invoices(status=status, search=search)


@router.get("/totals")
def invoice_totals(context: SessionContext = Depends(require_roles("admin", "logistics"))):
    invoice_service.sync_from_shipments()
    return invoice_service.totals()


@router.post("/{invoice_id}/pay", response_model=Invoice)
def mark_invoice_paid(
    invoice_id: str,
    context: SessionContext = Depends(require_roles("logistics", "admin")),
):
    try:
        return invoice_service.mark_paid(invoice_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Invoice not found")
    except Exception as exc:
        logger.error("Failed to mark invoice paid", invoice_id=invoice_id, error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))
