"""Mock fleet intelligence: anomaly detection, performance scoring, and maintenance prediction."""
from __future__ import annotations

import random
import statistics
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from app.core.logging import logger
from app.models.intelligence import (
    Anomaly,
    MaintenancePrediction,
    OperatorInsight,
    PerformanceAnalysis,
    PerformanceScore,
)
from app.models.logistics import (
    Operator,
    OperatorStatus,
    Shipment,
    ShipmentStatus,
    Vehicle,
    VehicleAvailability,
)
from app.services.routing import _simulate_latency


ANOMALY_WINDOWS = {"1h": timedelta(hours=1), "24h": timedelta(hours=24), "7d": timedelta(days=7)}
ANALYSIS_RANGES = ("7d", "30d", "90d")
ACTIVE_STATUSES = {ShipmentStatus.ASSIGNED, ShipmentStatus.PICKED_UP, ShipmentStatus.IN_TRANSIT}

ON_TIME_THRESHOLD = 90.0
STALL_AFTER = timedelta(hours=6)
COST_SPIKE_RATIO = 1.5
MIN_PRICE_SAMPLES = 3

_MAINTENANCE_ISSUES = (
    "Brake pad replacement needed",
    "Engine oil change due",
    "Tire rotation recommended",
)


def _last_activity(shipment: Shipment) -> datetime:
    times = [shipment.created_at, *(update.time for update in shipment.updates)]
    return max(times)


def _grade(score: float) -> str:
    if score >= 90:
        return "A+"
    if score >= 80:
        return "A"
    if score >= 70:
        return "B"
    if score >= 60:
        return "C"
    return "D"


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def calculate_performance_score(entity: str, data: Dict[str, float]) -> PerformanceScore:
    """Average of four 0-100 factors, graded A+ through D.

    Operators are scored on punctuality, customer rating, delivery volume and
    cancellations; vehicles on utilisation, fuel efficiency, breakdowns and
    availability over a 30 day month.
    """
    if entity == "operator":
        factors = {
            "on_time_rate": _clamp(float(data.get("on_time_rate", 0))),
            "customer_rating": _clamp(float(data.get("rating", 0)) * 20),
            "efficiency": _clamp(float(data.get("total_deliveries", 0)) * 2),
            "reliability": _clamp(100 - float(data.get("cancellation_rate", 0)) * 10),
        }
    elif entity == "vehicle":
        factors = {
            "utilization": _clamp(float(data.get("active_hours", 0)) / 24 * 100),
            "fuel_efficiency": _clamp(float(data.get("fuel_efficiency", 0)) * 5),
            "maintenance": _clamp(100 - float(data.get("breakdowns", 0)) * 20),
            "availability": _clamp(float(data.get("available_days", 0)) / 30 * 100),
        }
    else:
        raise ValueError(f"Unknown entity '{entity}'. Expected 'operator' or 'vehicle'")

    overall = round(sum(factors.values()) / len(factors), 1)
    recommendations: List[str] = []
    if entity == "operator":
        if factors["on_time_rate"] < 90:
            recommendations.append("Improve time management and route planning")
        if factors["customer_rating"] < 80:
            recommendations.append("Focus on customer service training")
        if factors["efficiency"] < 70:
            recommendations.append("Increase delivery frequency and optimize routes")
    if overall < 70:
        recommendations.append("Consider performance improvement plan")
    elif overall > 90:
        recommendations.append("Excellent performance - consider for leadership role")

    return PerformanceScore(
        entity=entity,
        overall_score=overall,
        factors={name: round(value, 1) for name, value in factors.items()},
        grade=_grade(overall),
        recommendations=recommendations,
    )


def score_operator(operator: Operator) -> PerformanceScore:
    return calculate_performance_score(
        "operator",
        {
            "on_time_rate": operator.on_time_rate,
            "rating": operator.rating,
            "total_deliveries": operator.total_deliveries,
        },
    )


def find_anomalies(
    shipments: Iterable[Shipment],
    operators: Iterable[Operator],
    time_window: str = "24h",
    now: Optional[datetime] = None,
) -> List[Anomaly]:
    if time_window not in ANOMALY_WINDOWS:
        raise ValueError(f"Unsupported time window '{time_window}'. Expected one of: {sorted(ANOMALY_WINDOWS)}")
    now = now or datetime.now(timezone.utc)
    since = now - ANOMALY_WINDOWS[time_window]

    # Active shipments are always in scope; finished ones only when recent.
    scoped = [
        shipment
        for shipment in shipments
        if shipment.status in ACTIVE_STATUSES or _last_activity(shipment) >= since
    ]
    found: List[dict] = []

    for operator in operators:
        if operator.on_time_rate >= ON_TIME_THRESHOLD:
            continue
        affected = [
            shipment.id
            for shipment in scoped
            if shipment.operator_id == operator.id and shipment.status in ACTIVE_STATUSES
        ]
        found.append(
            {
                "type": "delivery_delay",
                "severity": "high" if operator.on_time_rate < 80 else "medium",
                "description": f"{operator.name} is delivering on time {operator.on_time_rate:g}% of the time",
                "affected_shipments": affected,
                "confidence": 85,
                "recommendation": "Review route planning and workload for this operator",
            }
        )

    for shipment in scoped:
        if shipment.status not in ACTIVE_STATUSES:
            continue
        idle = now - _last_activity(shipment)
        if idle <= STALL_AFTER:
            continue
        found.append(
            {
                "type": "route_deviation",
                "severity": "medium",
                "description": (
                    f"{shipment.id} has not reported progress for {int(idle.total_seconds() // 3600)}h "
                    f"(last seen at {shipment.current_location or shipment.origin})"
                ),
                "affected_shipments": [shipment.id],
                "confidence": 75,
                "recommendation": "Contact the driver and confirm the current route",
            }
        )

    priced = [(shipment, shipment.price / shipment.weight) for shipment in scoped if shipment.price and shipment.weight > 0]
    if len(priced) >= MIN_PRICE_SAMPLES:
        median = statistics.median(rate for _, rate in priced)
        for shipment, rate in priced:
            if rate > median * COST_SPIKE_RATIO:
                found.append(
                    {
                        "type": "cost_spike",
                        "severity": "low",
                        "description": f"{shipment.id} is priced at {rate:.0f}/kg against a median of {median:.0f}/kg",
                        "affected_shipments": [shipment.id],
                        "confidence": 70,
                        "recommendation": "Verify the quoted price against the pricing engine",
                    }
                )

    return [
        Anomaly(id=f"ANOM-{index:03d}", detected_at=now, **fields)
        for index, fields in enumerate(found, start=1)
    ]


async def detect_anomalies(
    shipments: Iterable[Shipment],
    operators: Iterable[Operator],
    time_window: str = "24h",
    now: Optional[datetime] = None,
) -> List[Anomaly]:
    if time_window not in ANOMALY_WINDOWS:
        raise ValueError(f"Unsupported time window '{time_window}'. Expected one of: {sorted(ANOMALY_WINDOWS)}")
    await _simulate_latency()
    try:
        anomalies = find_anomalies(shipments, operators, time_window, now=now)
    except Exception as exc:
        logger.error("Anomaly detection failed", error=str(exc))
        raise RuntimeError("Failed to detect anomalies") from exc
    logger.info("Anomaly scan complete", window=time_window, anomalies=len(anomalies))
    return anomalies


async def analyze_performance(
    operators: Iterable[Operator],
    shipments: Iterable[Shipment],
    time_range: str = "30d",
    rng: Optional[random.Random] = None,
) -> PerformanceAnalysis:
    if time_range not in ANALYSIS_RANGES:
        raise ValueError(f"Unsupported time range '{time_range}'. Expected one of: {list(ANALYSIS_RANGES)}")
    rng = rng or random.Random()
    await _simulate_latency()

    operators = list(operators)
    shipments = list(shipments)
    active: Dict[str, int] = {}
    for shipment in shipments:
        if shipment.operator_id and shipment.status in ACTIVE_STATUSES:
            active[shipment.operator_id] = active.get(shipment.operator_id, 0) + 1

    insights = [
        OperatorInsight(
            operator_id=operator.id,
            name=operator.name,
            score=score_operator(operator),
            active_shipments=active.get(operator.id, 0),
        )
        for operator in operators
    ]
    efficiency = round(statistics.mean(item.score.overall_score for item in insights), 1) if insights else 0.0

    bottlenecks = ["Peak hour congestion in metro areas"]
    pending = sum(1 for shipment in shipments if shipment.status == ShipmentStatus.PENDING)
    available = sum(1 for operator in operators if operator.status == OperatorStatus.AVAILABLE)
    if pending > available:
        bottlenecks.append(f"{pending} pending shipments for {available} available operators")
    bottlenecks.extend(f"Low performance from {item.name}" for item in insights if item.score.grade in {"C", "D"})

    return PerformanceAnalysis(
        time_range=time_range,
        operator_insights=insights,
        overall_efficiency=efficiency,
        bottlenecks=bottlenecks,
        opportunities=[
            "Implement predictive maintenance",
            "Expand fleet during peak seasons",
            "Introduce customer self-service options",
        ],
        next_week_demand=85 + rng.randint(0, 30),
        seasonal_trends="Increasing demand expected for festival season",
        risk_factors=["Fuel price volatility", "Weather disruptions", "Regulatory changes"],
    )


def predict_maintenance(vehicle: Vehicle, rng: Optional[random.Random] = None) -> MaintenancePrediction:
    rng = rng or random.Random()
    score = rng.randint(0, 100)
    days = rng.randint(5, 34)
    issues = list(_MAINTENANCE_ISSUES[: rng.randint(1, len(_MAINTENANCE_ISSUES))])
    if vehicle.availability == VehicleAvailability.MAINTENANCE:
        days = 0
        priority = "high"
    else:
        priority = "low" if score > 80 else "medium" if score > 60 else "high"
    return MaintenancePrediction(
        vehicle_id=vehicle.id,
        registration_number=vehicle.registration_number,
        maintenance_score=score,
        days_until_maintenance=days,
        priority=priority,
        predicted_issues=issues,
        estimated_cost=2000 + rng.randint(0, 4999),
        recommendations=[
            "Schedule maintenance during low-demand periods",
            "Use alternative vehicle for long-distance routes",
            "Monitor fuel efficiency closely",
        ],
    )
