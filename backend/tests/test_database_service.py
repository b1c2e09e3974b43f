"""Unit tests for the CRUD facade and the create-shipment form."""
from __future__ import annotations

import os
import random
import re
import sys
import threading
import uuid
from pathlib import Path

import pytest


TMP = Path(__file__).resolve().parent / ".tmp_database"
TMP.mkdir(parents=True, exist_ok=True)
os.environ["STATE_DB_PATH"] = str(TMP / "trackas_state.db")
os.environ["TOKEN_STORAGE_PATH"] = str(TMP / "local_storage.json")

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.models.logistics import (  # noqa: E402
    BusinessModel,
    CompanyRegistrationRequest,
    CompanyStatus,
    CustomerCreateRequest,
    OperatorStatus,
    ShipmentCreateRequest,
    ShipmentPatch,
    ShipmentStatus,
    Urgency,
    VehicleRegistrationRequest,
    VehicleStatus,
)
from app.services.app_store import AppStore  # noqa: E402
from app.services.database import DatabaseService, generate_vcode  # noqa: E402
from app.services.shipment_form import ShipmentForm, ShipmentFormFields  # noqa: E402
from app.services.state_journal import StateJournal  # noqa: E402


VCODE_PATTERN = re.compile(r"^VC\d{6}[0-9A-Z]{3}$")


def _service(name: str) -> DatabaseService:
    journal = StateJournal(db_path=str(TMP / f"{name}-{uuid.uuid4().hex}.db"))
    return DatabaseService(AppStore(journal=journal, seed_fixtures=True))


def _shipment_request(**overrides) -> ShipmentCreateRequest:
    payload = {
        "pickup_location": "Jaipur",
        "destination": "Ahmedabad",
        "weight": 42.5,
        "dimensions": "60x40x40 cm",
        "customer_name": "Kavya Rao",
        "customer_phone": "+91-9000000001",
        "customer_email": "kavya@example.com",
        "model": "pay-per-shipment",
        "price": 3200,
        "urgency": "urgent",
    }
    payload.update(overrides)
    return ShipmentCreateRequest.model_validate(payload)


def _company_request() -> CompanyRegistrationRequest:
    return CompanyRegistrationRequest(
        company_name="Desert Freight",
        company_address="MI Road, Jaipur",
        tin="tin-4455",
        business_registration_number="brn-001",
        primary_contact_name="Farhan",
        primary_contact_email="farhan@desertfreight.in",
        primary_contact_phone="+91 98290 00000",
        fleet_size=12,
    )


def _vehicle_request(registration: str = "rj-14-ab-9090") -> VehicleRegistrationRequest:
    return VehicleRegistrationRequest(
        company_id="COMP-0001",
        vehicle_type="truck",
        registration_number=registration,
        weight_capacity=30,
        volume_capacity=12,
        driver_name="Suresh",
        driver_mobile="+91 90000 11111",
        driver_license_number="rj1420190001",
    )


def test_create_shipment_sets_defaults_and_notifies():
    service = _service("create")
    shipment = service.create_shipment(_shipment_request(), actor="tester")

    assert re.match(r"^TAS-\d{4}-\d{3}$", shipment.id)
    assert shipment.status == ShipmentStatus.PENDING
    assert shipment.progress == 0
    assert shipment.price == 3200
    assert [u.message for u in shipment.updates] == ["Shipment created and awaiting operator assignment"]

    notification = service.list_notifications()[0]
    assert notification.title == "Shipment Created"
    assert shipment.id in notification.message
    assert service.get_shipment(shipment.id) == shipment


def test_subscription_shipment_drops_price_and_ids_are_unique():
    service = _service("subscription")
    first = service.create_shipment(_shipment_request(model="subscription", price=999))
    second = service.create_shipment(_shipment_request(model="subscription"))

    assert first.price is None
    assert first.id != second.id


def test_pay_per_shipment_requires_price():
    service = _service("price")
    with pytest.raises(ValueError, match="Price is required"):
        service.create_shipment(_shipment_request(price=None))


def test_status_lifecycle_tracks_progress_and_history():
    service = _service("lifecycle")
    shipment = service.create_shipment(_shipment_request())

    assigned = service.update_shipment_status(shipment.id, ShipmentStatus.ASSIGNED)
    assert assigned.progress == 10
    picked = service.update_shipment_status(shipment.id, ShipmentStatus.PICKED_UP)
    assert picked.progress == 25
    moving = service.update_shipment_status(shipment.id, ShipmentStatus.IN_TRANSIT, message="Left the depot")
    assert moving.progress == 50
    assert moving.updates[-1].message == "Left the depot"
    delivered = service.update_shipment_status(shipment.id, ShipmentStatus.DELIVERED)

    assert delivered.progress == 100
    assert delivered.current_location == "Ahmedabad"
    assert len(delivered.updates) == 5
    assert service.list_notifications()[0].title == "Delivery Completed"


def test_invalid_transitions_are_rejected():
    service = _service("invalid")
    shipment = service.create_shipment(_shipment_request())

    with pytest.raises(ValueError, match="pending -> delivered"):
        service.update_shipment_status(shipment.id, ShipmentStatus.DELIVERED)

    service.update_shipment_status(shipment.id, ShipmentStatus.CANCELLED)
    with pytest.raises(ValueError):
        service.update_shipment_status(shipment.id, ShipmentStatus.ASSIGNED)

    with pytest.raises(KeyError):
        service.update_shipment_status("TAS-0000-000", ShipmentStatus.ASSIGNED)


def test_in_transit_keeps_higher_progress():
    service = _service("progress")
    # Fixture TAS-2024-001 is already in transit at 65%.
    updated = service.add_shipment_update("TAS-2024-001", "Crossed Vadodara", location="Vadodara")
    assert updated.progress == 65
    assert updated.current_location == "Vadodara"
    assert updated.updates[-1].location == "Vadodara"


def test_assign_operator_moves_shipment_and_marks_operator_busy():
    service = _service("assign")
    service.update_operator_status("OP-002", OperatorStatus.AVAILABLE)
    shipment = service.create_shipment(_shipment_request())

    assigned = service.assign_operator(shipment.id, "OP-002")

    assert assigned.status == ShipmentStatus.ASSIGNED
    assert assigned.driver == "Ravi Kumar"
    assert assigned.operator_id == "OP-002"
    assert service.get_operator("OP-002").status == OperatorStatus.BUSY


def test_patch_with_status_follows_the_status_lifecycle():
    service = _service("patch-status")
    # Fixture TAS-2024-002 is picked up at 25% with three tracking updates.
    patched = service.update_shipment(
        "TAS-2024-002",
        ShipmentPatch(status=ShipmentStatus.IN_TRANSIT, current_location="Vellore"),
    )

    assert patched.status == ShipmentStatus.IN_TRANSIT
    assert patched.progress == 50
    assert patched.current_location == "Vellore"
    assert len(patched.updates) == 4
    assert patched.updates[-1].message == "Shipment status changed to in transit"


def test_patch_with_invalid_status_changes_nothing():
    service = _service("patch-invalid")
    shipment = service.create_shipment(_shipment_request())

    with pytest.raises(ValueError, match="pending -> delivered"):
        service.update_shipment(shipment.id, ShipmentPatch(status=ShipmentStatus.DELIVERED, driver="Someone"))

    unchanged = service.get_shipment(shipment.id)
    assert unchanged.status == ShipmentStatus.PENDING
    assert unchanged.driver is None
    assert unchanged.progress == 0


def test_concurrent_assignment_admits_one_operator():
    service = _service("assign-race")
    shipment = service.create_shipment(_shipment_request())
    barrier = threading.Barrier(2)
    outcomes = []

    def assign(operator_id):
        barrier.wait()
        try:
            service.assign_operator(shipment.id, operator_id)
            outcomes.append("ok")
        except ValueError:
            outcomes.append("rejected")

    threads = [threading.Thread(target=assign, args=(op,)) for op in ("OP-001", "OP-002")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["ok", "rejected"]
    final = service.get_shipment(shipment.id)
    assert final.status == ShipmentStatus.ASSIGNED
    assert sum(1 for u in final.updates if u.message.startswith("Assigned to operator")) == 1


def test_customers_create_and_upsert_by_email():
    service = _service("customers")
    created = service.create_customer(CustomerCreateRequest(name="Anil", email="anil@example.com", phone="+91-1"))
    assert created.id.startswith("CUST-")
    assert created.id != "CUST-001"

    with pytest.raises(ValueError, match="already exists"):
        service.create_customer(CustomerCreateRequest(name="Anil", email="ANIL@example.com"))

    upserted = service.upsert_customer(CustomerCreateRequest(name="Anil Mehta", email="anil@example.com"))
    assert upserted.id == created.id
    assert [c.name for c in service.list_customers() if c.id == created.id] == ["Anil Mehta"]


def test_company_registration_and_review():
    service = _service("company")
    company = service.create_company(_company_request())

    assert company.status == CompanyStatus.PENDING
    assert company.tin == "TIN-4455"
    assert not company.verification_status.documents_verified
    assert service.list_notifications()[0].title == "Registration Submitted"

    with pytest.raises(ValueError, match="rejection reason"):
        service.update_company_status(company.id, CompanyStatus.REJECTED, rejection_reason="  ")

    approved = service.update_company_status(company.id, CompanyStatus.APPROVED)
    assert approved.status == CompanyStatus.APPROVED
    assert approved.verification_status.tin_verified
    assert approved.verification_status.business_reg_verified
    assert approved.verification_status.documents_verified
    assert service.list_notifications()[0].title == "Company Approved"

    with pytest.raises(ValueError):
        service.update_company_status(company.id, CompanyStatus.PENDING)


def test_rejected_company_keeps_reason():
    service = _service("reject")
    company = service.create_company(_company_request())
    rejected = service.update_company_status(company.id, CompanyStatus.REJECTED, rejection_reason="TIN mismatch")
    assert rejected.rejection_reason == "TIN mismatch"
    assert not rejected.verification_status.tin_verified


def test_vehicle_registration_generates_vcode():
    service = _service("vehicle")
    vehicle = service.create_vehicle(_vehicle_request())

    assert VCODE_PATTERN.match(vehicle.vcode)
    assert vehicle.registration_number == "RJ-14-AB-9090"
    assert vehicle.driver.license_number == "RJ1420190001"
    assert vehicle.status == VehicleStatus.PENDING
    assert vehicle.availability.value == "available"

    with pytest.raises(ValueError, match="already registered"):
        service.create_vehicle(_vehicle_request("RJ-14-AB-9090"))

    verified = service.update_vehicle_status(vehicle.id, VehicleStatus.VERIFIED)
    assert verified.verification_status.registration_verified
    assert verified.verification_status.insurance_verified
    assert verified.verification_status.license_verified

    with pytest.raises(ValueError):
        service.update_vehicle_status(vehicle.id, VehicleStatus.PENDING)


def test_generate_vcode_is_deterministic_with_seed():
    code = generate_vcode(random.Random(7), now_ms=1_700_000_123_456)
    assert code.startswith("VC123456")
    assert VCODE_PATTERN.match(code)
    assert code == generate_vcode(random.Random(7), now_ms=1_700_000_123_456)


def test_pending_registrations_filters_by_status_and_search():
    service = _service("pending")
    company = service.create_company(_company_request())
    service.create_vehicle(_vehicle_request())

    assert [row["id"] for row in service.pending_registrations("companies", "pending")] == [company.id]
    assert service.pending_registrations("companies", "approved") == []
    assert len(service.pending_registrations("vehicles", "all", search="rj-14")) == 1
    assert [row["id"] for row in service.pending_registrations("operators", "all", search="ravi")] == ["OP-002"]
    with pytest.raises(ValueError):
        service.pending_registrations("drivers")


def test_notifications_read_tracking():
    service = _service("notifications")
    assert service.unread_count() == 2

    marked = service.mark_notification_as_read("NOT-001")
    assert marked.read
    assert service.unread_count() == 1
    assert service.mark_all_notifications_as_read() == 1
    assert service.unread_count() == 0
    with pytest.raises(KeyError):
        service.mark_notification_as_read("NOT-404")


def test_scoped_views_and_analytics():
    service = _service("views")
    service.create_shipment(_shipment_request(customer_id="CUST-001", company_id="COMP-0001"))

    operator_view = service.operator_data("OP-001")
    assert [s.id for s in operator_view["assigned_shipments"]] == ["TAS-2024-001"]
    assert len(operator_view["available_jobs"]) == 1

    customer_view = service.customer_data("CUST-001")
    assert len(customer_view["my_shipments"]) == 2

    logistics_view = service.logistics_data("COMP-0001")
    assert len(logistics_view["shipments"]) == 1

    analytics = service.analytics()
    assert analytics["total_shipments"] == 2847
    assert analytics["live"]["shipments"] == 3
    assert analytics["live"]["counts_by_status"]["pending"] == 1


def test_select_shipment_validates_id():
    service = _service("select")
    assert service.select_shipment("TAS-2024-002") == "TAS-2024-002"
    assert service.select_shipment(None) is None
    with pytest.raises(KeyError):
        service.select_shipment("TAS-404")


def _filled_form(model: BusinessModel = BusinessModel.PAY_PER_SHIPMENT) -> ShipmentForm:
    form = ShipmentForm(model=model)
    form.update(
        pickup_location="Lucknow",
        destination="Kanpur",
        weight="18",
        customer_name="Imran",
        customer_phone="+91-9000000002",
        customer_email="imran@example.com",
        price="1450",
        urgency=Urgency.EXPRESS,
    )
    return form


def test_form_submit_dispatches_one_add_shipment_and_clears():
    service = _service("form")
    seen = []
    service.store.subscribe(lambda action, state: seen.append(action.type))
    form = _filled_form()

    result = form.submit(service.store)

    assert result.ok
    assert seen.count("ADD_SHIPMENT") == 1
    assert seen.count("ADD_NOTIFICATION") == 1
    assert form.fields == ShipmentFormFields()
    assert result.shipment.urgency == Urgency.EXPRESS
    assert result.shipment.price == 1450


def test_form_validation_failure_dispatches_nothing():
    service = _service("form-invalid")
    seen = []
    service.store.subscribe(lambda action, state: seen.append(action.type))
    form = _filled_form()
    form.update(weight="0", price="", customer_email="not-an-email")

    result = form.submit(service.store)

    assert not result.ok
    assert set(result.errors) == {"weight", "price", "customer_email"}
    assert seen == []
    assert form.fields.pickup_location == "Lucknow"


def test_form_price_only_required_for_pay_per_shipment():
    form = _filled_form(model=BusinessModel.SUBSCRIPTION)
    form.update(price="")
    assert form.validate() == {}
    form.set_model(BusinessModel.PAY_PER_SHIPMENT)
    assert "price" in form.validate()
    with pytest.raises(ValueError):
        form.update(colour="red")
