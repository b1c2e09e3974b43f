"""Dispute tracking for the admin team."""
from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional

from app.core.logging import logger
from app.models.actions import AddDispute, DisputeUpdatePayload, UpdateDispute
from app.models.logistics import (
    Dispute,
    DisputeCreateRequest,
    DisputePatch,
    DisputePriority,
    DisputeStatus,
    NotificationCreateRequest,
    Severity,
)
from app.services.database import DatabaseService, database


class DisputeService:
    ALLOWED_TRANSITIONS = {
        DisputeStatus.OPEN.value: {DisputeStatus.INVESTIGATING.value, DisputeStatus.RESOLVED.value},
        DisputeStatus.INVESTIGATING.value: {DisputeStatus.RESOLVED.value},
        DisputeStatus.RESOLVED.value: {DisputeStatus.CLOSED.value},
        DisputeStatus.CLOSED.value: set(),
    }

    def __init__(self, service: Optional[DatabaseService] = None) -> None:
        self.database = service or database

    @property
    def store(self):
        return self.database.store

    def list_disputes(
        self,
        status: Optional[DisputeStatus] = None,
        priority: Optional[DisputePriority] = None,
        search: Optional[str] = None,
    ) -> List[Dispute]:
        rows = self.store.get_state().disputes
        if status is not None:
            rows = [row for row in rows if row.status == status]
        if priority is not None:
            rows = [row for row in rows if row.priority == priority]
        term = (search or "").strip().lower()
        if term:
            rows = [
                row
                for row in rows
                if term in row.id.lower()
                or term in row.shipment_id.lower()
                or term in row.customer_name.lower()
                or term in row.operator_name.lower()
                or term in row.description.lower()
            ]
        return rows

    def get_dispute(self, dispute_id: str) -> Dispute:
        for dispute in self.store.get_state().disputes:
            if dispute.id == dispute_id:
                return dispute
        raise KeyError(dispute_id)

    def _transition(self, dispute: Dispute, requested: DisputeStatus) -> None:
        allowed = self.ALLOWED_TRANSITIONS.get(dispute.status.value, set())
        if requested.value not in allowed:
            raise ValueError(
                f"Invalid dispute status transition {dispute.status.value} -> {requested.value}. "
                f"Allowed: {sorted(allowed)}"
            )

    def _apply(self, dispute_id: str, patch: DisputePatch) -> Dispute:
        self.store.dispatch(UpdateDispute(payload=DisputeUpdatePayload(id=dispute_id, updates=patch)))
        return self.get_dispute(dispute_id)

    def open_dispute(self, request: DisputeCreateRequest) -> Dispute:
        shipment = self.database.get_shipment(request.shipment_id)
        description = " ".join(request.description.split())
        if not description:
            raise ValueError("Dispute description is required")

        existing = {row.id for row in self.store.get_state().disputes}
        dispute_id = self.database.unique_id("dispute", "DIS-{seq:03d}", existing)
        dispute = Dispute(
            id=dispute_id,
            shipment_id=shipment.id,
            customer_name=request.customer_name or shipment.customer,
            operator_name=request.operator_name or shipment.driver or "Unassigned",
            type=request.type,
            priority=request.priority,
            status=DisputeStatus.OPEN,
            description=description,
            customer_contact=request.customer_contact or shipment.customer_phone,
            operator_contact=request.operator_contact or shipment.driver_phone or "",
        )
        self.store.dispatch(AddDispute(payload=dispute))
        logger.info(
            "Dispute opened",
            dispute_id=dispute.id,
            shipment_id=shipment.id,
            priority=dispute.priority.value,
        )
        return dispute

    def start_investigation(self, dispute_id: str, assignee: str = "Admin Team") -> Dispute:
        owner = " ".join((assignee or "").split()) or "Admin Team"
        with self.store.transaction():
            self._transition(self.get_dispute(dispute_id), DisputeStatus.INVESTIGATING)
            return self._apply(dispute_id, DisputePatch(status=DisputeStatus.INVESTIGATING, assigned_to=owner))

    def resolve(self, dispute_id: str, note: str) -> Dispute:
        resolution = " ".join((note or "").split())
        with self.store.transaction():
            dispute = self.get_dispute(dispute_id)
            if not resolution:
                raise ValueError("A resolution note is required")
            self._transition(dispute, DisputeStatus.RESOLVED)
            resolved = self._apply(
                dispute_id,
                DisputePatch(
                    status=DisputeStatus.RESOLVED,
                    resolution=resolution,
                    resolved_at=datetime.now(timezone.utc),
                ),
            )
            self.database.create_notification(
                NotificationCreateRequest(
                    type=Severity.SUCCESS,
                    title="Dispute Resolved",
                    message=f"Dispute {dispute_id} has been resolved successfully",
                )
            )
        logger.info("Dispute resolved", dispute_id=dispute_id)
        return resolved

    def close(self, dispute_id: str) -> Dispute:
        with self.store.transaction():
            self._transition(self.get_dispute(dispute_id), DisputeStatus.CLOSED)
            return self._apply(dispute_id, DisputePatch(status=DisputeStatus.CLOSED))

    def summary(self) -> Dict[str, int]:
        disputes = self.store.get_state().disputes
        counts = Counter(row.status.value for row in disputes)
        payload = {status.value: counts.get(status.value, 0) for status in DisputeStatus}
        payload["total"] = len(disputes)
        return payload


dispute_service = DisputeService()
