"""Invoices derived from delivered or priced shipments."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from app.core.logging import logger
from app.models.actions import AddInvoice, InvoiceStatusPayload, UpdateInvoiceStatus
from app.models.logistics import (
    Invoice,
    InvoiceBreakdown,
    InvoiceStatus,
    Shipment,
    ShipmentStatus,
)
from app.services.database import DatabaseService, database


PAYMENT_TERMS = timedelta(days=7)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def build_invoice(shipment: Shipment) -> Invoice:
    amount = float(shipment.price or 0)
    created = _as_utc(shipment.created_at)
    return Invoice(
        id=f"INV-{shipment.id}",
        shipment_id=shipment.id,
        customer_name=shipment.customer,
        amount=amount,
        status=InvoiceStatus.PENDING,
        due_date=created + PAYMENT_TERMS,
        created_at=created,
        route=f"{shipment.origin} -> {shipment.destination}",
        weight=shipment.weight,
        dimensions=shipment.dimensions,
        model=shipment.model,
        breakdown=InvoiceBreakdown(
            base_amount=round(amount * 0.8, 2),
            service_fee=round(amount * 0.1, 2),
            gst=round(amount * 0.1, 2),
            total=amount,
        ),
    )


class InvoiceService:
    def __init__(self, service: Optional[DatabaseService] = None) -> None:
        self.database = service or database

    @property
    def store(self):
        return self.database.store

    def sync_from_shipments(self, now: Optional[datetime] = None) -> List[Invoice]:
        """Create missing invoices and flag unpaid ones past their due date."""
        current = _as_utc(now or datetime.now(timezone.utc))
        created: List[Invoice] = []
        overdue = 0
        with self.store.transaction():
            state = self.store.get_state()
            known = {invoice.id for invoice in state.invoices}
            for shipment in state.shipments:
                if shipment.status != ShipmentStatus.DELIVERED and shipment.price is None:
                    continue
                invoice = build_invoice(shipment)
                if invoice.id in known:
                    continue
                self.store.dispatch(AddInvoice(payload=invoice))
                created.append(invoice)

            for invoice in self.store.get_state().invoices:
                if invoice.status == InvoiceStatus.PENDING and _as_utc(invoice.due_date) < current:
                    self.store.dispatch(
                        UpdateInvoiceStatus(payload=InvoiceStatusPayload(id=invoice.id, status=InvoiceStatus.OVERDUE))
                    )
                    overdue += 1

        if created or overdue:
            logger.info("Invoices synchronised", created=len(created), overdue=overdue)
        return created

    def list_invoices(self, status: Optional[InvoiceStatus] = None, search: Optional[str] = None) -> List[Invoice]:
        rows = self.store.get_state().invoices
        if status is not None:
            rows = [row for row in rows if row.status == status]
        term = (search or "").strip().lower()
        if term:
            rows = [
                row
                for row in rows
                if term in row.id.lower() or term in row.shipment_id.lower() or term in row.customer_name.lower()
            ]
        return rows

    def get_invoice(self, invoice_id: str) -> Invoice:
        for invoice in self.store.get_state().invoices:
            if invoice.id == invoice_id:
                return invoice
        raise KeyError(invoice_id)

    def mark_paid(self, invoice_id: str, now: Optional[datetime] = None) -> Invoice:
        with self.store.transaction():
            invoice = self.get_invoice(invoice_id)
            if invoice.status == InvoiceStatus.PAID:
                raise ValueError(f"Invoice {invoice_id} is already paid")
            self.store.dispatch(
                UpdateInvoiceStatus(
                    payload=InvoiceStatusPayload(
                        id=invoice_id,
                        status=InvoiceStatus.PAID,
                        paid_date=_as_utc(now or datetime.now(timezone.utc)),
                    )
                )
            )
        logger.info("Invoice paid", invoice_id=invoice_id, amount=invoice.amount)
        return self.get_invoice(invoice_id)

    def totals(self) -> Dict[str, float]:
        invoices = self.store.get_state().invoices
        paid = sum(row.amount for row in invoices if row.status == InvoiceStatus.PAID)
        outstanding = sum(row.amount for row in invoices if row.status != InvoiceStatus.PAID)
        return {
            "total_amount": round(paid + outstanding, 2),
            "paid_amount": round(paid, 2),
            "pending_amount": round(outstanding, 2),
            "overdue_count": sum(1 for row in invoices if row.status == InvoiceStatus.OVERDUE),
        }


invoice_service = InvoiceService()
