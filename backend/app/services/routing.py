"""Mock route optimisation, ETA, demand forecast, and assignment scoring."""
from __future__ import annotations

import asyncio
import math
import random
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from app.core.config import get_settings
from app.core.logging import logger
from app.models.intelligence import (
    DemandForecast,
    EtaPrediction,
    ForecastPoint,
    GeoPoint,
    OperatorMatch,
    OperatorMatchResult,
    RouteOption,
    RouteOptimization,
    TrafficConditions,
    VehicleAssignment,
    WeatherConditions,
)
from app.models.logistics import (
    BusinessModel,
    NotificationCreateRequest,
    Operator,
    Severity,
    Shipment,
    ShipmentPatch,
    ShipmentStatus,
    Urgency,
    Vehicle,
    VehicleAvailability,
    VehicleStatus,
    VehicleType,
)
from app.services.database import DatabaseService, database


EARTH_RADIUS_KM = 6371.0
AVERAGE_SPEED_KMH = 40.0
# Used when either side of a distance lookup has no coordinates.
UNKNOWN_DISTANCE_KM = 25.0
# Load assumed for utilisation when the shipment has no weight recorded.
DEFAULT_LOAD_KG = 25.0

# (id, name, distance km, duration min, fuel, toll, traffic, weather, total, confidence,
#  (lat offset, lng offset), (first waypoint, second waypoint))
_ROUTE_TEMPLATES = (
    ("fastest", "AI Optimized - Fastest", 245, 180, 850, 120, 85, 90, 970, 92,
     (0.1, 0.1), ("Highway Junction", "City Bypass")),
    ("economical", "AI Optimized - Most Economical", 280, 220, 720, 60, 70, 88, 780, 88,
     (0.05, 0.15), ("State Highway", "Rural Route")),
    ("balanced", "AI Optimized - Balanced", 260, 195, 790, 90, 80, 92, 880, 95,
     (0.08, 0.12), ("Express Highway", "Ring Road")),
)


async def _simulate_latency() -> None:
    delay = max(0.0, float(get_settings().mock_latency_seconds))
    if delay:
        await asyncio.sleep(delay)


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def route_recommendation(route_id: str, urgency: Urgency) -> Optional[str]:
    if urgency == Urgency.EXPRESS and route_id == "fastest":
        return "Recommended for Express"
    if urgency == Urgency.STANDARD and route_id == "economical":
        return "Recommended for Standard"
    if route_id == "balanced":
        return "Best Overall Choice"
    return None


def _offset_point(point: GeoPoint, d_lat: float, d_lng: float, address: str) -> GeoPoint:
    lat = min(90.0, max(-90.0, point.lat + d_lat))
    lng = min(180.0, max(-180.0, point.lng + d_lng))
    return GeoPoint(lat=lat, lng=lng, address=address)


async def optimize_routes(
    pickup: GeoPoint,
    destination: GeoPoint,
    vehicle_type: VehicleType = VehicleType.TRUCK,
    urgency: Urgency = Urgency.STANDARD,
    now: Optional[datetime] = None,
) -> RouteOptimization:
    """Three canned options between the two points; fastest is pre-selected."""
    try:
        await _simulate_latency()
        started = now or datetime.now(timezone.utc)
        options: List[RouteOption] = []
        for (route_id, name, distance, duration, fuel, toll, traffic, weather, total, confidence,
             (d_lat, d_lng), (first_stop, second_stop)) in _ROUTE_TEMPLATES:
            options.append(
                RouteOption(
                    id=route_id,
                    name=name,
                    distance=distance,
                    duration=duration,
                    fuel_cost=fuel,
                    toll_cost=toll,
                    traffic_score=traffic,
                    weather_score=weather,
                    total_cost=total,
                    eta=started + timedelta(minutes=duration),
                    confidence=confidence,
                    waypoints=[
                        pickup,
                        _offset_point(pickup, d_lat, d_lng, first_stop),
                        _offset_point(destination, -d_lat, -d_lng, second_stop),
                        destination,
                    ],
                    recommendation=route_recommendation(route_id, Urgency(urgency)),
                )
            )
    except Exception as exc:
        logger.error("Route optimization failed", error=str(exc))
        raise RuntimeError("Failed to optimize route") from exc

    logger.info(
        "Routes optimized",
        pickup=pickup.address or f"{pickup.lat},{pickup.lng}",
        destination=destination.address or f"{destination.lat},{destination.lng}",
        urgency=Urgency(urgency).value,
    )
    return RouteOptimization(
        options=options,
        selected="fastest",
        vehicle_type=vehicle_type,
        urgency=urgency,
    )


async def predict_eta(
    current: GeoPoint,
    destination: GeoPoint,
    traffic: Optional[TrafficConditions] = None,
    weather: Optional[WeatherConditions] = None,
    rng: Optional[random.Random] = None,
) -> EtaPrediction:
    rng = rng or random.Random()
    traffic = traffic or TrafficConditions()
    weather = weather or WeatherConditions()
    try:
        await _simulate_latency()
        distance = haversine_km(current, destination)
        base_minutes = max(30.0, distance / AVERAGE_SPEED_KMH * 60) * (0.9 + rng.random() * 0.2)
        traffic_delay = 30 if traffic.heavy else 15 if traffic.moderate else 0
        weather_delay = 20 if weather.rain else 25 if weather.fog else 0
        total = base_minutes + traffic_delay + weather_delay
    except Exception as exc:
        logger.error("ETA prediction failed", error=str(exc))
        raise RuntimeError("Failed to calculate predictive ETA") from exc

    return EtaPrediction(
        estimated_minutes=round(total),
        confidence=round(85 + rng.random() * 15),
        distance_km=round(distance, 1),
        factors={
            "traffic": traffic_delay,
            "weather": weather_delay,
            "historical": round(base_minutes * 0.1),
        },
        arrival_time=datetime.now(timezone.utc) + timedelta(minutes=total),
    )


async def forecast_demand(
    time_range: str = "7d",
    region: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> DemandForecast:
    horizons = {"24h": 1, "7d": 7, "30d": 30}
    if time_range not in horizons:
        raise ValueError(f"Unsupported time range '{time_range}'. Expected one of: {sorted(horizons)}")
    rng = rng or random.Random()
    await _simulate_latency()

    factor_sets = (
        ["Historical trend", "Seasonal pattern", "Economic indicators"],
        ["Weekend effect", "Weather forecast", "Market trends"],
    )
    today = datetime.now(timezone.utc)
    predictions = [
        ForecastPoint(
            date=today + timedelta(days=day),
            expected_shipments=90 + rng.randint(0, 59),
            confidence=round(85 + rng.random() * 15, 1),
            factors=list(factor_sets[(day - 1) % 2]),
        )
        for day in range(1, horizons[time_range] + 1)
    ]
    return DemandForecast(
        time_range=time_range,
        region=region or "All Regions",
        predictions=predictions,
        growth=round(5 + rng.random() * 20, 1),
        seasonality="High demand expected during festival season",
        recommendations=[
            "Increase vehicle capacity by 20%",
            "Recruit additional operators",
            "Optimize pricing for peak hours",
        ],
    )


def _operator_point(operator: Operator) -> Optional[GeoPoint]:
    if operator.latitude is None or operator.longitude is None:
        return None
    return GeoPoint(lat=operator.latitude, lng=operator.longitude, address=operator.current_location)


def find_best_operator(
    operators: Iterable[Operator],
    pickup: Optional[GeoPoint] = None,
    special_handling: Optional[str] = None,
) -> OperatorMatchResult:
    """Score candidates on distance, rating, specialisation, punctuality and experience."""
    wanted = (special_handling or "").strip().lower()
    matches: List[OperatorMatch] = []
    for operator in operators:
        location = _operator_point(operator)
        distance = haversine_km(pickup, location) if pickup and location else UNKNOWN_DISTANCE_KM

        score = max(0.0, 100 - distance * 2)
        score += operator.rating * 20
        if wanted and wanted in {item.lower() for item in operator.specializations}:
            score += 50
        score += operator.on_time_rate
        score += min(operator.total_deliveries * 0.5, 50)

        matches.append(
            OperatorMatch(
                operator=operator,
                match_score=round(score),
                distance_km=round(distance, 1),
                estimated_arrival=round(distance / AVERAGE_SPEED_KMH * 60),
                reasons=[
                    "Close proximity" if distance < 10 else "Reasonable distance",
                    "High rating" if operator.rating > 4.5 else "Good rating",
                    "Excellent punctuality" if operator.on_time_rate > 95 else "Good punctuality",
                ],
            )
        )

    ranked = sorted(matches, key=lambda match: match.match_score, reverse=True)[:3]
    if not ranked:
        return OperatorMatchResult()
    top = ranked[0].match_score
    confidence = "high" if top > 200 else "medium" if top > 150 else "low"
    return OperatorMatchResult(best_match=ranked[0], alternatives=ranked[1:], confidence=confidence)


def score_vehicle(vehicle: Vehicle, load_kg: float, operator: Optional[Operator] = None) -> float:
    utilization = load_kg / vehicle.capacity.weight if vehicle.capacity.weight else 0.0
    score = 50.0 if utilization > 0.7 else 30.0 if utilization > 0.4 else 10.0
    if operator is not None:
        score += operator.rating * 10
        score += operator.on_time_rate * 0.5
    score += 20 if vehicle.type == VehicleType.TRUCK else 10
    return score


def _ensure_assignable(shipment: Shipment) -> None:
    if shipment.model != BusinessModel.SUBSCRIPTION:
        raise ValueError(
            f"Shipment {shipment.id} is {shipment.model.value}; VCODE auto-assignment covers subscription shipments only"
        )
    if shipment.status != ShipmentStatus.PENDING:
        raise ValueError(f"Shipment {shipment.id} is {shipment.status.value}; only pending shipments can be assigned")


async def auto_assign_vehicle(shipment_id: str, service: Optional[DatabaseService] = None) -> VehicleAssignment:
    """VCODE auto-assignment: pick the best verified, available vehicle and assign the shipment."""
    service = service or database
    _ensure_assignable(service.get_shipment(shipment_id))
    await _simulate_latency()

    with service.store.transaction():
        shipment = service.get_shipment(shipment_id)
        _ensure_assignable(shipment)

        state = service.store.get_state()
        candidates = [
            vehicle
            for vehicle in state.vehicles
            if vehicle.status == VehicleStatus.VERIFIED and vehicle.availability == VehicleAvailability.AVAILABLE
        ]
        if not candidates:
            logger.info("No vehicle eligible for auto-assignment", shipment_id=shipment_id)
            return VehicleAssignment(
                success=False,
                message="No available vehicles in fleet",
                details={"recommendation": "Please ensure vehicles are registered and available"},
            )

        load = shipment.weight or DEFAULT_LOAD_KG
        drivers = {operator.vehicle: operator for operator in state.operators if operator.vehicle}
        scored = [
            (score_vehicle(vehicle, load, drivers.get(vehicle.registration_number)), vehicle)
            for vehicle in candidates
        ]
        best_score, best = max(scored, key=lambda item: item[0])
        operator = drivers.get(best.registration_number)

        service.update_shipment(
            shipment_id,
            ShipmentPatch(
                vehicle=best.registration_number,
                driver=best.driver.name,
                driver_phone=best.driver.mobile,
                operator_id=operator.id if operator else None,
            ),
        )
        service.update_shipment_status(
            shipment_id,
            ShipmentStatus.ASSIGNED,
            message=f"Auto-assigned to vehicle {best.registration_number} (VCODE: {best.vcode})",
        )
        service.create_notification(
            NotificationCreateRequest(
                type=Severity.INFO,
                title="New Shipment Assigned",
                message=f"Shipment {shipment_id} assigned to your vehicle {best.registration_number}",
            )
        )
    logger.info("Vehicle auto-assigned", shipment_id=shipment_id, vcode=best.vcode, score=best_score)
    return VehicleAssignment(
        success=True,
        message=f"Shipment {shipment_id} assigned to {best.registration_number}",
        vehicle=best,
        operator=operator,
        confidence=min(best_score, 100.0),
        estimated_pickup_time=datetime.now(timezone.utc) + timedelta(minutes=30),
    )
