"""CRUD facade over the application store.

Every mutation here is expressed as one or more dispatched store actions, so
the journal is the single record of change. Unlike the reducer, this layer
validates inputs and lifecycle transitions and raises `KeyError` /
`ValueError` for the routers to translate.
"""
from __future__ import annotations

import random
import re
import string
import time
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.core.logging import logger
from app.models.actions import (
    AddCompanyRegistration,
    AddCustomer,
    AddNotification,
    AddShipment,
    AddShipmentUpdate,
    AddVehicleRegistration,
    CompanyStatusPayload,
    MarkAllNotificationsRead,
    MarkNotificationRead,
    OperatorStatusPayload,
    SelectShipment,
    ShipmentTrackingPayload,
    ShipmentUpdatePayload,
    UpdateCompanyStatus,
    UpdateOperatorStatus,
    UpdateShipment,
    UpdateVehicleStatus,
    UpsertCustomer,
    VehicleStatusPayload,
)
from app.models.logistics import (
    BusinessModel,
    Company,
    CompanyRegistrationRequest,
    CompanyStatus,
    ContactPerson,
    Customer,
    CustomerCreateRequest,
    Notification,
    NotificationCreateRequest,
    Operator,
    OperatorStatus,
    Severity,
    Shipment,
    ShipmentCreateRequest,
    ShipmentPatch,
    ShipmentStatus,
    ShipmentUpdate,
    Vehicle,
    VehicleCapacity,
    VehicleDriver,
    VehicleRegistrationRequest,
    VehicleStatus,
)
from app.services.app_store import AppStore, app_store


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[+]?[\d\s\-()]+$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_vcode(rng: Optional[random.Random] = None, now_ms: Optional[int] = None) -> str:
    """`VC` + last six digits of the epoch millis + three base-36 characters."""
    rng = rng or random.Random()
    millis = int(time.time() * 1000) if now_ms is None else int(now_ms)
    alphabet = string.digits + string.ascii_uppercase
    suffix = "".join(rng.choice(alphabet) for _ in range(3))
    return f"VC{str(millis)[-6:].zfill(6)}{suffix}"


class DatabaseService:
    """Shipments, customers, registrations, operators, and notifications."""

    ALLOWED_SHIPMENT_TRANSITIONS = {
        ShipmentStatus.PENDING.value: {ShipmentStatus.ASSIGNED.value, ShipmentStatus.CANCELLED.value},
        ShipmentStatus.ASSIGNED.value: {ShipmentStatus.PICKED_UP.value, ShipmentStatus.CANCELLED.value},
        ShipmentStatus.PICKED_UP.value: {ShipmentStatus.IN_TRANSIT.value, ShipmentStatus.CANCELLED.value},
        ShipmentStatus.IN_TRANSIT.value: {ShipmentStatus.DELIVERED.value, ShipmentStatus.CANCELLED.value},
        ShipmentStatus.DELIVERED.value: set(),
        ShipmentStatus.CANCELLED.value: set(),
    }
    ALLOWED_COMPANY_TRANSITIONS = {
        CompanyStatus.PENDING.value: {
            CompanyStatus.UNDER_REVIEW.value,
            CompanyStatus.APPROVED.value,
            CompanyStatus.REJECTED.value,
        },
        CompanyStatus.UNDER_REVIEW.value: {CompanyStatus.APPROVED.value, CompanyStatus.REJECTED.value},
        CompanyStatus.REJECTED.value: {CompanyStatus.UNDER_REVIEW.value},
        CompanyStatus.APPROVED.value: set(),
    }
    ALLOWED_VEHICLE_TRANSITIONS = {
        VehicleStatus.PENDING.value: {VehicleStatus.VERIFIED.value, VehicleStatus.REJECTED.value},
        VehicleStatus.VERIFIED.value: {VehicleStatus.ACTIVE.value, VehicleStatus.INACTIVE.value},
        VehicleStatus.ACTIVE.value: {VehicleStatus.INACTIVE.value},
        VehicleStatus.INACTIVE.value: {VehicleStatus.ACTIVE.value},
        VehicleStatus.REJECTED.value: {VehicleStatus.PENDING.value},
    }
    STATUS_PROGRESS = {
        ShipmentStatus.ASSIGNED.value: 10,
        ShipmentStatus.PICKED_UP.value: 25,
        ShipmentStatus.IN_TRANSIT.value: 50,
        ShipmentStatus.DELIVERED.value: 100,
    }

    def __init__(self, store: Optional[AppStore] = None) -> None:
        self.store = store or app_store

    @staticmethod
    def _validate_transition(kind: str, table: Dict[str, set], current: str, requested: str) -> None:
        if current == requested:
            return
        allowed = table.get(current)
        if allowed is None:
            raise ValueError(f"Unknown current {kind} status '{current}'")
        if requested not in allowed:
            raise ValueError(
                f"Invalid {kind} status transition {current} -> {requested}. "
                f"Allowed: {sorted(allowed)}"
            )

    def unique_id(self, key: str, template: str, existing: set[str], start: int = 1) -> str:
        while True:
            candidate = template.format(seq=self.store.next_id(key, start=start))
            if candidate not in existing:
                return candidate

    # Shipments

    def list_shipments(
        self,
        status: Optional[ShipmentStatus] = None,
        search: Optional[str] = None,
    ) -> List[Shipment]:
        rows = self.store.get_state().shipments
        if status is not None:
            rows = [row for row in rows if row.status == status]
        term = (search or "").strip().lower()
        if term:
            rows = [
                row
                for row in rows
                if term in row.id.lower()
                or term in row.customer.lower()
                or term in row.origin.lower()
                or term in row.destination.lower()
            ]
        return rows

    def get_shipment(self, shipment_id: str) -> Shipment:
        for shipment in self.store.get_state().shipments:
            if shipment.id == shipment_id:
                return shipment
        raise KeyError(shipment_id)

    def create_shipment(self, request: ShipmentCreateRequest, actor: str = "system") -> Shipment:
        if not EMAIL_PATTERN.match(request.customer_email.strip()):
            raise ValueError("Please enter a valid email address")
        if request.model == BusinessModel.PAY_PER_SHIPMENT and request.price is None:
            raise ValueError("Price is required for pay-per-shipment")

        now = _utcnow()
        existing = {row.id for row in self.store.get_state().shipments}
        shipment_id = self.unique_id("shipment", f"TAS-{now.year}-{{seq:03d}}", existing)
        shipment = Shipment(
            id=shipment_id,
            customer=request.customer_name.strip(),
            customer_phone=request.customer_phone.strip(),
            customer_email=request.customer_email.strip(),
            origin=request.pickup_location.strip(),
            destination=request.destination.strip(),
            status=ShipmentStatus.PENDING,
            progress=0,
            estimated_delivery=request.expected_delivery,
            current_location=request.pickup_location.strip(),
            weight=request.weight,
            dimensions=request.dimensions,
            price=request.price if request.model == BusinessModel.PAY_PER_SHIPMENT else None,
            urgency=request.urgency,
            special_handling=request.special_handling or None,
            created_at=now,
            model=request.model,
            customer_id=request.customer_id,
            company_id=request.company_id,
            destination_lat=request.destination_lat,
            destination_lng=request.destination_lng,
            updates=[
                ShipmentUpdate(
                    time=now,
                    message="Shipment created and awaiting operator assignment",
                    type=Severity.INFO,
                )
            ],
        )
        self.store.dispatch(AddShipment(payload=shipment))
        self.create_notification(
            NotificationCreateRequest(
                type=Severity.SUCCESS,
                title="Shipment Created",
                message=f"New shipment {shipment.id} created successfully",
            )
        )
        logger.info("Shipment created", shipment_id=shipment.id, model=shipment.model.value, actor=actor)
        return shipment

    def update_shipment(self, shipment_id: str, patch: ShipmentPatch, actor: str = "system") -> Shipment:
        """Apply a partial update; a status change takes the same path as `update_shipment_status`."""
        with self.store.transaction():
            current = self.get_shipment(shipment_id)
            fields = patch.model_dump(exclude_unset=True)
            requested = fields.pop("status", None)
            if requested is not None:
                requested = ShipmentStatus(requested)
                self._validate_transition(
                    "shipment",
                    self.ALLOWED_SHIPMENT_TRANSITIONS,
                    current.status.value,
                    requested.value,
                )
            if fields:
                self.store.dispatch(
                    UpdateShipment(payload=ShipmentUpdatePayload(id=shipment_id, updates=ShipmentPatch(**fields)))
                )
            if requested is not None and requested != current.status:
                self.update_shipment_status(shipment_id, requested, actor=actor)
            return self.get_shipment(shipment_id)

    def update_shipment_status(
        self,
        shipment_id: str,
        status: ShipmentStatus,
        message: Optional[str] = None,
        actor: str = "system",
    ) -> Shipment:
        with self.store.transaction():
            current = self.get_shipment(shipment_id)
            requested = ShipmentStatus(status)
            self._validate_transition(
                "shipment",
                self.ALLOWED_SHIPMENT_TRANSITIONS,
                current.status.value,
                requested.value,
            )

            patch_fields: Dict[str, Any] = {"status": requested}
            target_progress = self.STATUS_PROGRESS.get(requested.value)
            if target_progress is not None:
                patch_fields["progress"] = max(current.progress, target_progress)
            if requested == ShipmentStatus.DELIVERED:
                patch_fields["progress"] = 100
                patch_fields["current_location"] = current.destination

            self.store.dispatch(
                UpdateShipment(payload=ShipmentUpdatePayload(id=shipment_id, updates=ShipmentPatch(**patch_fields)))
            )
            severity = {
                ShipmentStatus.DELIVERED: Severity.SUCCESS,
                ShipmentStatus.CANCELLED: Severity.WARNING,
            }.get(requested, Severity.INFO)
            label = requested.value.replace("_", " ")
            self.add_shipment_update(shipment_id, message or f"Shipment status changed to {label}", severity)

            if requested == ShipmentStatus.DELIVERED:
                self.create_notification(
                    NotificationCreateRequest(
                        type=Severity.SUCCESS,
                        title="Delivery Completed",
                        message=f"{shipment_id} delivered successfully",
                    )
                )
        logger.info(
            "Shipment status changed",
            shipment_id=shipment_id,
            previous=current.status.value,
            status=requested.value,
            actor=actor,
        )
        return self.get_shipment(shipment_id)

    def add_shipment_update(
        self,
        shipment_id: str,
        message: str,
        update_type: Severity = Severity.INFO,
        location: Optional[str] = None,
    ) -> Shipment:
        text = " ".join((message or "").split())
        if not text:
            raise ValueError("Update message is required")
        entry = ShipmentUpdate(time=_utcnow(), message=text, type=update_type, location=location)
        with self.store.transaction():
            self.get_shipment(shipment_id)
            self.store.dispatch(AddShipmentUpdate(payload=ShipmentTrackingPayload(id=shipment_id, update=entry)))
            if location:
                self.store.dispatch(
                    UpdateShipment(
                        payload=ShipmentUpdatePayload(id=shipment_id, updates=ShipmentPatch(current_location=location))
                    )
                )
            return self.get_shipment(shipment_id)

    def select_shipment(self, shipment_id: Optional[str]) -> Optional[str]:
        if shipment_id is not None:
            self.get_shipment(shipment_id)
        return self.store.dispatch(SelectShipment(payload=shipment_id)).selected_shipment

    def assign_operator(self, shipment_id: str, operator_id: str, actor: str = "system") -> Shipment:
        with self.store.transaction():
            shipment = self.get_shipment(shipment_id)
            operator = self.get_operator(operator_id)
            self._validate_transition(
                "shipment",
                self.ALLOWED_SHIPMENT_TRANSITIONS,
                shipment.status.value,
                ShipmentStatus.ASSIGNED.value,
            )
            if shipment.status == ShipmentStatus.ASSIGNED:
                raise ValueError(f"Shipment {shipment_id} is already assigned")
            self.store.dispatch(
                UpdateShipment(
                    payload=ShipmentUpdatePayload(
                        id=shipment_id,
                        updates=ShipmentPatch(
                            driver=operator.name,
                            driver_phone=operator.phone,
                            vehicle=operator.vehicle or None,
                            operator_id=operator.id,
                        ),
                    )
                )
            )
            self.update_shipment_status(
                shipment_id,
                ShipmentStatus.ASSIGNED,
                message=f"Assigned to operator {operator.name}",
                actor=actor,
            )
            self.update_operator_status(operator.id, OperatorStatus.BUSY)
            return self.get_shipment(shipment_id)

    # Customers

    def list_customers(self) -> List[Customer]:
        return list(self.store.get_state().customers)

    def create_customer(self, request: CustomerCreateRequest) -> Customer:
        email = request.email.strip()
        if not EMAIL_PATTERN.match(email):
            raise ValueError("Please enter a valid email address")
        with self.store.transaction():
            customers = self.store.get_state().customers
            if any(c.email.strip().lower() == email.lower() for c in customers):
                raise ValueError(f"Customer with email {email} already exists")
            customer = Customer(
                id=self.unique_id("customer", "CUST-{seq:03d}", {c.id for c in customers}),
                name=request.name.strip(),
                phone=request.phone.strip(),
                email=email,
                preferred_delivery_time=request.preferred_delivery_time,
            )
            self.store.dispatch(AddCustomer(payload=customer))
        return customer

    def upsert_customer(self, request: CustomerCreateRequest) -> Customer:
        email = request.email.strip()
        if not EMAIL_PATTERN.match(email):
            raise ValueError("Please enter a valid email address")
        with self.store.transaction():
            customers = self.store.get_state().customers
            existing = next((c for c in customers if c.email.strip().lower() == email.lower()), None)
            customer = Customer(
                id=existing.id if existing else self.unique_id("customer", "CUST-{seq:03d}", {c.id for c in customers}),
                name=request.name.strip(),
                phone=request.phone.strip(),
                email=email,
                total_shipments=existing.total_shipments if existing else 0,
                rating=existing.rating if existing else 0.0,
                preferred_delivery_time=request.preferred_delivery_time,
            )
            self.store.dispatch(UpsertCustomer(payload=customer))
        return customer

    # Companies and vehicles

    def get_company(self, company_id: str) -> Company:
        for company in self.store.get_state().companies:
            if company.id == company_id:
                return company
        raise KeyError(company_id)

    def create_company(self, request: CompanyRegistrationRequest) -> Company:
        email = request.primary_contact_email.strip()
        if not EMAIL_PATTERN.match(email):
            raise ValueError("Please enter a valid email address")
        if not PHONE_PATTERN.match(request.primary_contact_phone.strip()):
            raise ValueError("Please enter a valid phone number")
        companies = self.store.get_state().companies
        company = Company(
            id=self.unique_id("company", "COMP-{seq:04d}", {c.id for c in companies}),
            name=request.company_name.strip(),
            address=request.company_address.strip(),
            tin=request.tin.strip().upper(),
            business_registration_number=request.business_registration_number.strip().upper(),
            primary_contact=ContactPerson(
                name=request.primary_contact_name.strip(),
                email=email,
                phone=request.primary_contact_phone.strip(),
            ),
            fleet_size=request.fleet_size,
            status=CompanyStatus.PENDING,
        )
        self.store.dispatch(AddCompanyRegistration(payload=company))
        self.create_notification(
            NotificationCreateRequest(
                type=Severity.SUCCESS,
                title="Registration Submitted",
                message=(
                    f"Company registration for {company.name} submitted successfully. "
                    "You will receive updates within 24-48 hours."
                ),
            )
        )
        logger.info("Company registration submitted", company_id=company.id)
        return company

    def update_company_status(
        self,
        company_id: str,
        status: CompanyStatus,
        rejection_reason: Optional[str] = None,
        actor: str = "system",
    ) -> Company:
        requested = CompanyStatus(status)
        reason = " ".join((rejection_reason or "").split()) or None
        if requested == CompanyStatus.REJECTED and not reason:
            raise ValueError("A rejection reason is required")

        with self.store.transaction():
            company = self.get_company(company_id)
            self._validate_transition(
                "company",
                self.ALLOWED_COMPANY_TRANSITIONS,
                company.status.value,
                requested.value,
            )
            self.store.dispatch(
                UpdateCompanyStatus(
                    payload=CompanyStatusPayload(id=company_id, status=requested, rejection_reason=reason)
                )
            )
            title = {
                CompanyStatus.APPROVED: "Company Approved",
                CompanyStatus.REJECTED: "Company Rejected",
            }.get(requested, "Company Under Review")
            self.create_notification(
                NotificationCreateRequest(
                    type=Severity.SUCCESS if requested == CompanyStatus.APPROVED else Severity.INFO,
                    title=title,
                    message=f"{company.name} is now {requested.value.replace('_', ' ')}",
                )
            )
        logger.info("Company status changed", company_id=company_id, status=requested.value, actor=actor)
        return self.get_company(company_id)

    def get_vehicle(self, vehicle_id: str) -> Vehicle:
        for vehicle in self.store.get_state().vehicles:
            if vehicle.id == vehicle_id:
                return vehicle
        raise KeyError(vehicle_id)

    def create_vehicle(self, request: VehicleRegistrationRequest, rng: Optional[random.Random] = None) -> Vehicle:
        if not PHONE_PATTERN.match(request.driver_mobile.strip()):
            raise ValueError("Please enter a valid mobile number")
        registration = request.registration_number.strip().upper()
        with self.store.transaction():
            vehicle = self._register_vehicle(request, registration, rng)
        self.create_notification(
            NotificationCreateRequest(
                type=Severity.SUCCESS,
                title="Vehicle Registration Submitted",
                message=f"Vehicle {vehicle.registration_number} registered successfully. VCODE: {vehicle.vcode}",
            )
        )
        logger.info("Vehicle registered", vehicle_id=vehicle.id, vcode=vehicle.vcode)
        return vehicle

    def _register_vehicle(
        self,
        request: VehicleRegistrationRequest,
        registration: str,
        rng: Optional[random.Random],
    ) -> Vehicle:
        vehicles = self.store.get_state().vehicles
        if any(v.registration_number == registration for v in vehicles):
            raise ValueError(f"Vehicle {registration} is already registered")
        vehicle = Vehicle(
            id=self.unique_id("vehicle", "VEH-{seq:05d}", {v.id for v in vehicles}),
            company_id=request.company_id.strip(),
            vcode=generate_vcode(rng),
            type=request.vehicle_type,
            registration_number=registration,
            capacity=VehicleCapacity(weight=request.weight_capacity, volume=request.volume_capacity),
            driver=VehicleDriver(
                name=request.driver_name.strip(),
                mobile=request.driver_mobile.strip(),
                license_number=request.driver_license_number.strip().upper(),
            ),
            status=VehicleStatus.PENDING,
        )
        self.store.dispatch(AddVehicleRegistration(payload=vehicle))
        return vehicle

    def update_vehicle_status(self, vehicle_id: str, status: VehicleStatus, actor: str = "system") -> Vehicle:
        requested = VehicleStatus(status)
        with self.store.transaction():
            vehicle = self.get_vehicle(vehicle_id)
            self._validate_transition(
                "vehicle",
                self.ALLOWED_VEHICLE_TRANSITIONS,
                vehicle.status.value,
                requested.value,
            )
            self.store.dispatch(UpdateVehicleStatus(payload=VehicleStatusPayload(id=vehicle_id, status=requested)))
        logger.info("Vehicle status changed", vehicle_id=vehicle_id, status=requested.value, actor=actor)
        return self.get_vehicle(vehicle_id)

    def pending_registrations(
        self,
        kind: str,
        status_filter: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Rows for the admin approval dashboard tabs."""
        state = self.store.get_state()
        term = (search or "").strip().lower()
        wanted = (status_filter or "all").strip().lower()

        if kind == "companies":
            rows = [(c, c.name) for c in state.companies]
        elif kind == "operators":
            rows = [(o, o.name) for o in state.operators]
        elif kind == "vehicles":
            rows = [(v, v.registration_number) for v in state.vehicles]
        else:
            raise ValueError(f"Unknown registration kind '{kind}'")

        return [
            record.model_dump(mode="json")
            for record, label in rows
            if (wanted == "all" or record.status.value == wanted) and (not term or term in label.lower())
        ]

    # Operators

    def list_operators(self, status: Optional[OperatorStatus] = None) -> List[Operator]:
        rows = self.store.get_state().operators
        if status is not None:
            rows = [row for row in rows if row.status == status]
        return rows

    def get_operator(self, operator_id: str) -> Operator:
        for operator in self.store.get_state().operators:
            if operator.id == operator_id:
                return operator
        raise KeyError(operator_id)

    def update_operator_status(self, operator_id: str, status: OperatorStatus) -> Operator:
        with self.store.transaction():
            self.get_operator(operator_id)
            self.store.dispatch(
                UpdateOperatorStatus(payload=OperatorStatusPayload(id=operator_id, status=OperatorStatus(status)))
            )
            return self.get_operator(operator_id)

    # Notifications

    def list_notifications(self, unread_only: bool = False) -> List[Notification]:
        rows = self.store.get_state().notifications
        if unread_only:
            rows = [row for row in rows if not row.read]
        return rows

    def unread_count(self) -> int:
        return sum(1 for row in self.store.get_state().notifications if not row.read)

    def create_notification(self, request: NotificationCreateRequest) -> Notification:
        existing = {row.id for row in self.store.get_state().notifications}
        notification = Notification(
            id=self.unique_id("notification", "NOT-{seq:06d}", existing),
            type=request.type,
            title=request.title,
            message=request.message,
            timestamp=_utcnow(),
            read=False,
        )
        self.store.dispatch(AddNotification(payload=notification))
        return notification

    def mark_notification_as_read(self, notification_id: str) -> Notification:
        if not any(row.id == notification_id for row in self.store.get_state().notifications):
            raise KeyError(notification_id)
        state = self.store.dispatch(MarkNotificationRead(payload=notification_id))
        return next(row for row in state.notifications if row.id == notification_id)

    def mark_all_notifications_as_read(self) -> int:
        pending = self.unread_count()
        if pending:
            self.store.dispatch(MarkAllNotificationsRead())
        return pending

    # Scoped views

    def logistics_data(self, company_id: str) -> Dict[str, Any]:
        state = self.store.get_state()
        return {
            "company_id": company_id,
            "vehicles": [v for v in state.vehicles if v.company_id == company_id],
            "operators": [o for o in state.operators if o.company_id == company_id],
            "shipments": [s for s in state.shipments if s.company_id == company_id],
            "analytics": self.analytics(),
        }

    def operator_data(self, operator_id: str) -> Dict[str, Any]:
        operator = self.get_operator(operator_id)
        state = self.store.get_state()
        return {
            "operator": operator,
            "assigned_shipments": [s for s in state.shipments if s.operator_id == operator_id],
            "available_jobs": [s for s in state.shipments if s.status == ShipmentStatus.PENDING],
            "earnings": operator.earnings,
        }

    def customer_data(self, customer_id: str) -> Dict[str, Any]:
        state = self.store.get_state()
        return {
            "customer_id": customer_id,
            "my_shipments": [s for s in state.shipments if s.customer_id == customer_id],
            "unread_notifications": self.unread_count(),
        }

    def analytics(self) -> Dict[str, Any]:
        """Fixture KPIs plus counters computed from the live store."""
        state = self.store.get_state()
        by_status = Counter(s.status.value for s in state.shipments)
        delivered = by_status.get(ShipmentStatus.DELIVERED.value, 0)
        cancelled = by_status.get(ShipmentStatus.CANCELLED.value, 0)
        closed = delivered + cancelled
        payload = state.analytics.model_dump(mode="json")
        payload["live"] = {
            "shipments": len(state.shipments),
            "counts_by_status": dict(by_status),
            "active_shipments": len(state.shipments) - closed,
            "delivery_success_rate": round(delivered / closed * 100, 1) if closed else None,
            "available_operators": sum(1 for o in state.operators if o.status == OperatorStatus.AVAILABLE),
            "pending_companies": sum(1 for c in state.companies if c.status == CompanyStatus.PENDING),
            "pending_vehicles": sum(1 for v in state.vehicles if v.status == VehicleStatus.PENDING),
            "unread_notifications": self.unread_count(),
        }
        return payload


database = DatabaseService()
