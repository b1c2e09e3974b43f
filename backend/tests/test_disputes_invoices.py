"""Unit tests for dispute handling and invoice generation."""
from __future__ import annotations

import os
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path

import pytest


TMP = Path(__file__).resolve().parent / ".tmp_disputes"
TMP.mkdir(parents=True, exist_ok=True)
os.environ["STATE_DB_PATH"] = str(TMP / "trackas_state.db")
os.environ["TOKEN_STORAGE_PATH"] = str(TMP / "local_storage.json")

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.models.logistics import (  # noqa: E402
    DisputeCreateRequest,
    DisputePriority,
    DisputeStatus,
    InvoiceStatus,
    ShipmentStatus,
)
from app.services.app_store import AppStore  # noqa: E402
from app.services.database import DatabaseService  # noqa: E402
from app.services.disputes import DisputeService  # noqa: E402
from app.services.invoices import InvoiceService  # noqa: E402
from app.services.state_journal import StateJournal  # noqa: E402


def _database(name: str) -> DatabaseService:
    journal = StateJournal(db_path=str(TMP / f"{name}-{uuid.uuid4().hex}.db"))
    return DatabaseService(AppStore(journal=journal, seed_fixtures=True))


def test_list_disputes_filters():
    disputes = DisputeService(_database("list"))

    assert len(disputes.list_disputes()) == 3
    assert [d.id for d in disputes.list_disputes(status=DisputeStatus.OPEN)] == ["DIS-001"]
    assert [d.id for d in disputes.list_disputes(priority=DisputePriority.CRITICAL)] == ["DIS-002"]
    assert [d.id for d in disputes.list_disputes(search="refunded")] == []
    assert [d.id for d in disputes.list_disputes(search="arjun")] == ["DIS-003"]


def test_dispute_lifecycle_with_resolution_notice():
    database = _database("lifecycle")
    disputes = DisputeService(database)

    opened = disputes.open_dispute(
        DisputeCreateRequest(
            shipment_id="TAS-2024-002",
            type="damaged_goods",
            priority="high",
            description="Outer carton   crushed on arrival",
        )
    )
    assert opened.id == "DIS-004"
    assert opened.customer_name == "Priya Sharma"
    assert opened.operator_name == "Ravi Kumar"
    assert opened.description == "Outer carton crushed on arrival"
    assert disputes.list_disputes()[0].id == "DIS-004"

    investigating = disputes.start_investigation(opened.id, assignee="Ops Desk")
    assert investigating.status == DisputeStatus.INVESTIGATING
    assert investigating.assigned_to == "Ops Desk"

    with pytest.raises(ValueError, match="resolution note"):
        disputes.resolve(opened.id, "   ")

    resolved = disputes.resolve(opened.id, "Replacement shipped at no cost")
    assert resolved.status == DisputeStatus.RESOLVED
    assert resolved.resolution == "Replacement shipped at no cost"
    assert resolved.resolved_at is not None
    assert database.list_notifications()[0].title == "Dispute Resolved"

    closed = disputes.close(opened.id)
    assert closed.status == DisputeStatus.CLOSED
    with pytest.raises(ValueError):
        disputes.start_investigation(opened.id)

    summary = disputes.summary()
    assert summary["total"] == 4
    assert summary["closed"] == 1
    assert summary["open"] == 1


def test_dispute_requires_existing_shipment_and_open_state():
    disputes = DisputeService(_database("missing"))
    with pytest.raises(KeyError):
        disputes.open_dispute(DisputeCreateRequest(shipment_id="TAS-404", description="Lost"))
    with pytest.raises(ValueError):
        disputes.close("DIS-001")
    with pytest.raises(KeyError):
        disputes.resolve("DIS-999", "note")


def test_invoices_generated_for_priced_or_delivered_shipments():
    database = _database("invoices")
    invoices = InvoiceService(database)
    now = datetime(2024, 1, 16, tzinfo=timezone.utc)

    created = invoices.sync_from_shipments(now=now)

    assert [inv.id for inv in created] == ["INV-TAS-2024-001"]
    invoice = created[0]
    assert invoice.amount == 2500
    assert invoice.status == InvoiceStatus.PENDING
    assert invoice.due_date == datetime(2024, 1, 22, 8, 0, tzinfo=timezone.utc)
    assert invoice.breakdown.model_dump() == {
        "base_amount": 2000.0,
        "service_fee": 250.0,
        "gst": 250.0,
        "total": 2500.0,
    }
    assert invoices.sync_from_shipments(now=now) == []
    assert len(invoices.list_invoices()) == 1


def test_subscription_shipment_invoiced_at_zero_once_delivered():
    database = _database("delivered")
    invoices = InvoiceService(database)
    database.update_shipment_status("TAS-2024-002", ShipmentStatus.IN_TRANSIT)
    database.update_shipment_status("TAS-2024-002", ShipmentStatus.DELIVERED)

    invoices.sync_from_shipments(now=datetime(2024, 1, 16, tzinfo=timezone.utc))

    zero = invoices.get_invoice("INV-TAS-2024-002")
    assert zero.amount == 0
    assert zero.breakdown.total == 0


def test_overdue_flag_and_payment_totals():
    database = _database("overdue")
    invoices = InvoiceService(database)
    invoices.sync_from_shipments(now=datetime(2024, 3, 1, tzinfo=timezone.utc))

    overdue = invoices.list_invoices(status=InvoiceStatus.OVERDUE)
    assert [inv.id for inv in overdue] == ["INV-TAS-2024-001"]
    assert invoices.totals() == {
        "total_amount": 2500.0,
        "paid_amount": 0,
        "pending_amount": 2500.0,
        "overdue_count": 1,
    }

    paid = invoices.mark_paid("INV-TAS-2024-001", now=datetime(2024, 3, 2, tzinfo=timezone.utc))
    assert paid.status == InvoiceStatus.PAID
    assert paid.paid_date == datetime(2024, 3, 2, tzinfo=timezone.utc)
    assert invoices.totals()["paid_amount"] == 2500.0

    with pytest.raises(ValueError, match="already paid"):
        invoices.mark_paid("INV-TAS-2024-001")
    with pytest.raises(KeyError):
        invoices.mark_paid("INV-404")
    assert [inv.id for inv in invoices.list_invoices(search="rajesh")] == ["INV-TAS-2024-001"]
