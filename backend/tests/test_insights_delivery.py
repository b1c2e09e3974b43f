"""Unit tests for anomaly detection, performance scoring, maintenance prediction, and proof of delivery."""
from __future__ import annotations

import asyncio
import os
import random
import sys
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest


TMP = Path(__file__).resolve().parent / ".tmp_insights"
TMP.mkdir(parents=True, exist_ok=True)
os.environ["STATE_DB_PATH"] = str(TMP / "trackas_state.db")
os.environ["TOKEN_STORAGE_PATH"] = str(TMP / "local_storage.json")
os.environ["MOCK_LATENCY_SECONDS"] = "0"

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.models.logistics import (  # noqa: E402
    Operator,
    OperatorStatus,
    ProofOfDeliveryRequest,
    Shipment,
    ShipmentCreateRequest,
    ShipmentStatus,
    ShipmentUpdate,
    VehicleAvailability,
    VehicleRegistrationRequest,
)
from app.services.app_store import AppStore  # noqa: E402
from app.services.database import DatabaseService  # noqa: E402
from app.services.delivery import upload_proof_of_delivery  # noqa: E402
from app.services.insights import (  # noqa: E402
    analyze_performance,
    calculate_performance_score,
    detect_anomalies,
    find_anomalies,
    predict_maintenance,
)
from app.services.state_journal import StateJournal  # noqa: E402


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _service(name: str) -> DatabaseService:
    journal = StateJournal(db_path=str(TMP / f"{name}-{uuid.uuid4().hex}.db"))
    return DatabaseService(AppStore(journal=journal, seed_fixtures=True))


def _shipment(shipment_id: str, status: str = "in_transit", hours_ago: float = 1, **fields) -> Shipment:
    seen = NOW - timedelta(hours=hours_ago)
    return Shipment(
        id=shipment_id,
        customer="Test",
        origin="Delhi",
        destination="Jaipur",
        status=status,
        created_at=seen - timedelta(hours=1),
        updates=[ShipmentUpdate(time=seen, message="Moving")],
        **fields,
    )


def _operator(op_id: str, on_time_rate: float) -> Operator:
    return Operator(id=op_id, name=f"Driver {op_id}", rating=4.5, total_deliveries=40, on_time_rate=on_time_rate)


def test_late_operators_are_flagged_by_severity():
    shipments = [_shipment("TAS-1", operator_id="OP-LATE"), _shipment("TAS-2", operator_id="OP-OK")]
    operators = [_operator("OP-LATE", 72), _operator("OP-SLIPPING", 85), _operator("OP-OK", 97)]

    anomalies = find_anomalies(shipments, operators, now=NOW)

    assert [(a.type, a.severity) for a in anomalies] == [("delivery_delay", "high"), ("delivery_delay", "medium")]
    assert anomalies[0].affected_shipments == ["TAS-1"]
    assert anomalies[0].id == "ANOM-001"
    assert anomalies[1].affected_shipments == []


def test_stalled_shipment_and_price_outlier_are_detected():
    shipments = [
        _shipment("TAS-STALLED", hours_ago=9),
        _shipment("TAS-A", status="delivered", weight=10, price=1000),
        _shipment("TAS-B", status="delivered", weight=10, price=1100),
        _shipment("TAS-C", status="delivered", weight=10, price=4000),
    ]

    anomalies = find_anomalies(shipments, [], now=NOW)

    by_type = {a.type: a for a in anomalies}
    assert set(by_type) == {"route_deviation", "cost_spike"}
    assert by_type["route_deviation"].affected_shipments == ["TAS-STALLED"]
    assert "9h" in by_type["route_deviation"].description
    assert by_type["cost_spike"].affected_shipments == ["TAS-C"]
    assert by_type["cost_spike"].severity == "low"


def test_time_window_limits_finished_shipments():
    shipments = [
        _shipment("TAS-A", status="delivered", hours_ago=30, weight=10, price=1000),
        _shipment("TAS-B", status="delivered", hours_ago=30, weight=10, price=1000),
        _shipment("TAS-C", status="delivered", hours_ago=30, weight=10, price=5000),
    ]
    assert find_anomalies(shipments, [], time_window="24h", now=NOW) == []
    assert [a.type for a in find_anomalies(shipments, [], time_window="7d", now=NOW)] == ["cost_spike"]

    with pytest.raises(ValueError, match="Unsupported time window"):
        asyncio.run(detect_anomalies(shipments, [], time_window="2d"))


def test_operator_score_factors_and_recommendations():
    score = calculate_performance_score("operator", {"on_time_rate": 85, "rating": 3.5, "total_deliveries": 20})

    assert score.factors == {"on_time_rate": 85.0, "customer_rating": 70.0, "efficiency": 40.0, "reliability": 100.0}
    assert score.overall_score == 73.8
    assert score.grade == "B"
    assert score.recommendations == [
        "Improve time management and route planning",
        "Focus on customer service training",
        "Increase delivery frequency and optimize routes",
    ]


def test_vehicle_score_and_unknown_entity():
    score = calculate_performance_score(
        "vehicle",
        {"active_hours": 24, "fuel_efficiency": 20, "breakdowns": 0, "available_days": 30},
    )
    assert score.overall_score == 100.0
    assert score.grade == "A+"
    assert score.recommendations == ["Excellent performance - consider for leadership role"]

    with pytest.raises(ValueError, match="Unknown entity"):
        calculate_performance_score("warehouse", {})


def test_performance_analysis_counts_active_work():
    service = _service("analysis")
    state = service.store.get_state()

    analysis = asyncio.run(analyze_performance(state.operators, state.shipments, "30d", rng=random.Random(7)))

    assert {item.operator_id: item.active_shipments for item in analysis.operator_insights} == {"OP-001": 1, "OP-002": 1}
    assert 85 <= analysis.next_week_demand <= 115
    assert analysis.overall_efficiency > 90
    with pytest.raises(ValueError):
        asyncio.run(analyze_performance(state.operators, state.shipments, "1y"))


def _registered_vehicle(service: DatabaseService):
    return service.create_vehicle(
        VehicleRegistrationRequest(
            company_id="COMP-0001",
            vehicle_type="truck",
            registration_number="MH-12-ZZ-0001",
            weight_capacity=800,
            volume_capacity=12,
            driver_name="Sunil",
            driver_mobile="+91 90000 33333",
            driver_license_number="DL-MH-1",
        )
    )


def test_maintenance_prediction_is_seeded_and_bounded():
    vehicle = _registered_vehicle(_service("maintenance"))

    first = predict_maintenance(vehicle, rng=random.Random(3))
    again = predict_maintenance(vehicle, rng=random.Random(3))

    assert first == again
    assert 5 <= first.days_until_maintenance <= 34
    assert 2000 <= first.estimated_cost <= 6999
    assert 1 <= len(first.predicted_issues) <= 3

    in_shop = predict_maintenance(vehicle.model_copy(update={"availability": VehicleAvailability.MAINTENANCE}))
    assert in_shop.days_until_maintenance == 0
    assert in_shop.priority == "high"


def _pod_request(lat: float, lng: float, address: str = "") -> ProofOfDeliveryRequest:
    return ProofOfDeliveryRequest(
        signature_image_url="https://cdn.example.com/sig.png",
        recipient_name="Meena  Iyer",
        location_lat=lat,
        location_lng=lng,
        location_address=address,
    )


def _shipment_in_transit(service: DatabaseService) -> str:
    service.update_operator_status("OP-002", OperatorStatus.AVAILABLE)
    shipment = service.create_shipment(
        ShipmentCreateRequest(
            pickup_location="Pune",
            destination="Nashik",
            weight=12,
            customer_name="Meena",
            customer_phone="+91-9000000009",
            customer_email="meena@example.com",
            destination_lat=19.9975,
            destination_lng=73.7898,
        )
    )
    service.assign_operator(shipment.id, "OP-002")
    service.update_shipment_status(shipment.id, ShipmentStatus.PICKED_UP)
    service.update_shipment_status(shipment.id, ShipmentStatus.IN_TRANSIT)
    return shipment.id


def test_pod_at_destination_delivers_and_frees_operator():
    service = _service("pod-verified")
    shipment_id = _shipment_in_transit(service)

    result = upload_proof_of_delivery(shipment_id, _pod_request(19.9990, 73.7900, "Gangapur Road"), "operator@trackas.com", service)

    assert result.verified is True
    assert result.reason is None
    shipment = result.shipment
    assert shipment.status == ShipmentStatus.DELIVERED
    assert shipment.progress == 100
    assert shipment.proof_of_delivery.id == result.pod_id
    assert shipment.proof_of_delivery.recipient_name == "Meena Iyer"
    assert shipment.proof_of_delivery.uploaded_by == "operator@trackas.com"
    messages = [u.message for u in shipment.updates]
    assert "Proof of delivery uploaded (received by Meena Iyer)" in messages
    assert messages[-1] == "Delivered to Meena Iyer"
    assert service.get_operator("OP-002").status == OperatorStatus.AVAILABLE


def test_pod_far_from_destination_stays_in_transit_for_review():
    service = _service("pod-far")
    shipment_id = _shipment_in_transit(service)

    result = upload_proof_of_delivery(shipment_id, _pod_request(20.0500, 73.7900), service=service)

    assert result.verified is False
    assert result.reason.startswith("POD location is ")
    assert result.reason.endswith("km from destination (max allowed: 0.5km)")
    assert result.shipment.status == ShipmentStatus.IN_TRANSIT
    assert result.shipment.proof_of_delivery.verified is False
    assert service.list_notifications()[0].title == "Proof of Delivery Needs Review"


def test_pod_requires_shipment_in_transit():
    service = _service("pod-early")
    shipment = service.create_shipment(
        ShipmentCreateRequest(
            pickup_location="Pune",
            destination="Nashik",
            weight=12,
            customer_name="Meena",
            customer_phone="+91-9000000009",
            customer_email="meena@example.com",
        )
    )
    with pytest.raises(ValueError, match="must be in transit"):
        upload_proof_of_delivery(shipment.id, _pod_request(19.99, 73.78, "Nashik"), service=service)
    with pytest.raises(KeyError):
        upload_proof_of_delivery("TAS-0000-000", _pod_request(19.99, 73.78), service=service)


def test_pod_survives_journal_replay():
    db_path = str(TMP / f"pod-replay-{uuid.uuid4().hex}.db")
    service = DatabaseService(AppStore(journal=StateJournal(db_path=db_path), seed_fixtures=True))
    result = upload_proof_of_delivery(
        "TAS-2024-001",
        _pod_request(19.0760, 72.8777, "Bandra, Mumbai"),
        service=service,
    )

    restarted = DatabaseService(AppStore(journal=StateJournal(db_path=db_path), seed_fixtures=True))
    replayed = restarted.get_shipment("TAS-2024-001")

    assert replayed.status == ShipmentStatus.DELIVERED
    assert replayed.proof_of_delivery == result.shipment.proof_of_delivery
