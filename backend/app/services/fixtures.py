"""Static seed data loaded into the application store."""
from __future__ import annotations

from app.models.actions import AppState
from app.models.logistics import (
    Analytics,
    Customer,
    Dispute,
    Notification,
    Operator,
    OperatorPerformance,
    RouteSummary,
    Shipment,
)


def _shipments() -> list[Shipment]:
    return [
        Shipment.model_validate(
            {
                "id": "TAS-2024-001",
                "customer": "Rajesh Kumar",
                "customer_phone": "+91-9876543210",
                "customer_email": "rajesh.kumar@email.com",
                "origin": "Delhi",
                "destination": "Mumbai",
                "status": "in_transit",
                "progress": 65,
                "driver": "Amit Singh",
                "driver_phone": "+91-9876543210",
                "vehicle": "HR-26-AB-1234",
                "estimated_delivery": "2024-01-15 18:00",
                "current_location": "Near Kota, Rajasthan",
                "weight": 25,
                "dimensions": "50x40x30 cm",
                "price": 2500,
                "urgency": "standard",
                "special_handling": "Fragile items",
                "created_at": "2024-01-15T08:00:00+00:00",
                "model": "pay-per-shipment",
                "customer_id": "CUST-001",
                "operator_id": "OP-001",
                "updates": [
                    {"time": "2024-01-15T14:30:00+00:00", "message": "Vehicle departed from Delhi", "type": "info"},
                    {"time": "2024-01-15T16:45:00+00:00", "message": "Crossed Gurgaon checkpoint", "type": "info"},
                    {"time": "2024-01-15T18:20:00+00:00", "message": "Rest stop at Dharuhera", "type": "warning"},
                    {"time": "2024-01-15T19:30:00+00:00", "message": "Resumed journey", "type": "info"},
                    {"time": "2024-01-15T21:15:00+00:00", "message": "Approaching Kota", "type": "info"},
                ],
            }
        ),
        Shipment.model_validate(
            {
                "id": "TAS-2024-002",
                "customer": "Priya Sharma",
                "customer_phone": "+91-9876543211",
                "customer_email": "priya.sharma@email.com",
                "origin": "Bangalore",
                "destination": "Chennai",
                "status": "picked_up",
                "progress": 25,
                "driver": "Ravi Kumar",
                "driver_phone": "+91-9876543211",
                "vehicle": "KA-05-CD-5678",
                "estimated_delivery": "2024-01-15 16:00",
                "current_location": "Hosur, Tamil Nadu",
                "weight": 15,
                "dimensions": "40x30x20 cm",
                "urgency": "urgent",
                "created_at": "2024-01-15T10:00:00+00:00",
                "model": "subscription",
                "operator_id": "OP-002",
                "updates": [
                    {"time": "2024-01-15T12:00:00+00:00", "message": "Package picked up from Bangalore", "type": "success"},
                    {"time": "2024-01-15T13:30:00+00:00", "message": "Crossed city limits", "type": "info"},
                    {"time": "2024-01-15T14:45:00+00:00", "message": "Entered Tamil Nadu", "type": "info"},
                ],
            }
        ),
    ]


def _operators() -> list[Operator]:
    return [
        Operator(
            id="OP-001",
            name="Amit Singh",
            phone="+91-9876543210",
            email="amit.singh@email.com",
            rating=4.9,
            total_deliveries=67,
            on_time_rate=98,
            earnings=18450,
            vehicle="HR-26-AB-1234",
            current_location="Kota, Rajasthan",
            status="busy",
            specializations=["Fragile", "Express"],
            latitude=25.2138,
            longitude=75.8648,
        ),
        Operator(
            id="OP-002",
            name="Ravi Kumar",
            phone="+91-9876543211",
            email="ravi.kumar@email.com",
            rating=4.8,
            total_deliveries=54,
            on_time_rate=96,
            earnings=15230,
            vehicle="KA-05-CD-5678",
            current_location="Chennai, Tamil Nadu",
            status="busy",
            specializations=["Standard", "Urgent"],
            latitude=13.0827,
            longitude=80.2707,
        ),
    ]


def _disputes() -> list[Dispute]:
    return [
        Dispute.model_validate(
            {
                "id": "DIS-001",
                "shipment_id": "TAS-2024-001",
                "customer_name": "Rajesh Kumar",
                "operator_name": "Amit Singh",
                "type": "delivery_delay",
                "priority": "high",
                "status": "open",
                "description": (
                    "Package was supposed to be delivered by 6 PM but arrived at 9 PM "
                    "without prior notification."
                ),
                "customer_contact": "+91-9876543210",
                "operator_contact": "+91-9876543211",
                "created_at": "2024-01-15T10:30:00Z",
            }
        ),
        Dispute.model_validate(
            {
                "id": "DIS-002",
                "shipment_id": "TAS-2024-003",
                "customer_name": "Priya Sharma",
                "operator_name": "Ravi Kumar",
                "type": "damaged_goods",
                "priority": "critical",
                "status": "investigating",
                "description": (
                    "Fragile items were damaged during transit. Package was not handled "
                    "according to special instructions."
                ),
                "customer_contact": "+91-9876543212",
                "operator_contact": "+91-9876543213",
                "created_at": "2024-01-14T14:20:00Z",
                "assigned_to": "Admin Team",
            }
        ),
        Dispute.model_validate(
            {
                "id": "DIS-003",
                "shipment_id": "TAS-2024-005",
                "customer_name": "Arjun Patel",
                "operator_name": "Suresh Yadav",
                "type": "payment_issue",
                "priority": "medium",
                "status": "resolved",
                "description": "Customer was charged extra amount not mentioned in the original quote.",
                "customer_contact": "+91-9876543214",
                "operator_contact": "+91-9876543215",
                "created_at": "2024-01-13T09:15:00Z",
                "resolved_at": "2024-01-14T16:30:00Z",
                "resolution": "Refunded excess amount to customer. Updated pricing transparency in system.",
            }
        ),
    ]


def initial_state() -> AppState:
    """Fresh copy of the demo dataset."""
    return AppState(
        shipments=_shipments(),
        operators=_operators(),
        customers=[
            Customer(
                id="CUST-001",
                name="Rajesh Kumar",
                phone="+91-9876543210",
                email="rajesh.kumar@email.com",
                total_shipments=12,
                rating=4.7,
            )
        ],
        companies=[],
        vehicles=[],
        analytics=Analytics(
            total_shipments=2847,
            success_rate=98.4,
            active_operators=156,
            avg_delivery_time="2.4h",
            revenue="₹12.8L",
            route_efficiency=94.2,
            top_routes=[
                RouteSummary(route="Delhi → Mumbai", shipments=245, revenue="₹2.8L", efficiency="96%"),
                RouteSummary(route="Bangalore → Chennai", shipments=189, revenue="₹1.9L", efficiency="94%"),
            ],
            operator_performance=[
                OperatorPerformance(name="Amit Singh", rating=4.9, deliveries=67, on_time="98%", earnings="₹18,450"),
            ],
        ),
        notifications=[
            Notification(
                id="NOT-001",
                type="info",
                title="Shipment Update",
                message="TAS-2024-001 is approaching destination",
            ),
            Notification(
                id="NOT-002",
                type="success",
                title="Delivery Completed",
                message="TAS-2024-003 delivered successfully",
            ),
        ],
        disputes=_disputes(),
        invoices=[],
        selected_shipment=None,
    )
