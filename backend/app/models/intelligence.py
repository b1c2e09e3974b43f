"""Request/response models for the mock pricing, routing, and matching services."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from app.models.logistics import Operator, Urgency, Vehicle, VehicleType


class GeoPoint(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    address: str = ""


class WeatherConditions(BaseModel):
    rain: bool = False
    fog: bool = False


class PriceFactors(BaseModel):
    weight: float
    urgency: float
    demand: float
    time: float
    weather: float


class PriceBreakdown(BaseModel):
    base: int
    weight_adjustment: int
    urgency_adjustment: int
    dynamic_adjustment: int


class PriceResult(BaseModel):
    base_price: int
    final_price: int
    factors: PriceFactors
    breakdown: PriceBreakdown


class PriceRequest(BaseModel):
    distance: float = Field(gt=0, description="km")
    weight: float = Field(ge=0, description="kg")
    urgency: Urgency = Urgency.STANDARD
    demand: int = Field(default=70, ge=0, le=100)
    hour: int = Field(default=12, ge=0, le=23)
    weather: WeatherConditions = Field(default_factory=WeatherConditions)


class QuoteRequest(BaseModel):
    distance: float = Field(gt=0, description="km")
    weight: float = Field(ge=0, description="kg")
    urgency: Urgency = Urgency.STANDARD


class MarketConditions(BaseModel):
    demand: int
    time_of_day: int
    weather: WeatherConditions
    fuel_price: float
    toll_rates: str = "Standard"


class PriceHistoryPoint(BaseModel):
    date: str
    price: float
    demand: int


class PriceQuote(BaseModel):
    pricing: PriceResult
    market: MarketConditions
    competitor_price: float
    history: List[PriceHistoryPoint] = Field(default_factory=list)


class RouteRequest(BaseModel):
    pickup: GeoPoint
    destination: GeoPoint
    vehicle_type: VehicleType = VehicleType.TRUCK
    urgency: Urgency = Urgency.STANDARD


class RouteOption(BaseModel):
    id: Literal["fastest", "economical", "balanced"]
    name: str
    distance: float
    duration: int
    fuel_cost: float
    toll_cost: float
    traffic_score: int
    weather_score: int
    total_cost: float
    eta: datetime
    confidence: int
    waypoints: List[GeoPoint]
    recommendation: Optional[str] = None


class RouteOptimization(BaseModel):
    options: List[RouteOption]
    selected: str
    vehicle_type: VehicleType
    urgency: Urgency


class TrafficConditions(BaseModel):
    heavy: bool = False
    moderate: bool = False


class EtaRequest(BaseModel):
    current: GeoPoint
    destination: GeoPoint
    traffic: TrafficConditions = Field(default_factory=TrafficConditions)
    weather: WeatherConditions = Field(default_factory=WeatherConditions)


class EtaPrediction(BaseModel):
    estimated_minutes: int
    confidence: int
    distance_km: float
    factors: Dict[str, int]
    arrival_time: datetime


class ForecastPoint(BaseModel):
    date: datetime
    expected_shipments: int
    confidence: float
    factors: List[str]


class DemandForecast(BaseModel):
    time_range: Literal["24h", "7d", "30d"]
    region: str
    predictions: List[ForecastPoint]
    growth: float
    seasonality: str
    recommendations: List[str]


class OperatorMatch(BaseModel):
    operator: Operator
    match_score: int
    distance_km: float
    estimated_arrival: int
    reasons: List[str]


class OperatorMatchResult(BaseModel):
    best_match: Optional[OperatorMatch] = None
    alternatives: List[OperatorMatch] = Field(default_factory=list)
    confidence: Literal["high", "medium", "low"] = "low"


class OperatorMatchRequest(BaseModel):
    pickup: Optional[GeoPoint] = None
    special_handling: Optional[str] = None


class VehicleAssignment(BaseModel):
    success: bool
    message: str
    vehicle: Optional[Vehicle] = None
    operator: Optional[Operator] = None
    assignment_method: str = "VCODE Auto-Assignment"
    confidence: Optional[float] = None
    estimated_pickup_time: Optional[datetime] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class Anomaly(BaseModel):
    id: str
    type: Literal["delivery_delay", "route_deviation", "cost_spike"]
    severity: Literal["high", "medium", "low"]
    description: str
    affected_shipments: List[str] = Field(default_factory=list)
    detected_at: datetime
    confidence: int = Field(ge=0, le=100)
    recommendation: str


class PerformanceScore(BaseModel):
    entity: Literal["operator", "vehicle"]
    overall_score: float
    factors: Dict[str, float]
    grade: Literal["A+", "A", "B", "C", "D"]
    recommendations: List[str] = Field(default_factory=list)


class OperatorInsight(BaseModel):
    operator_id: str
    name: str
    score: PerformanceScore
    active_shipments: int = 0


class PerformanceAnalysis(BaseModel):
    time_range: Literal["7d", "30d", "90d"]
    operator_insights: List[OperatorInsight]
    overall_efficiency: float
    bottlenecks: List[str]
    opportunities: List[str]
    next_week_demand: int
    seasonal_trends: str
    risk_factors: List[str]


class MaintenancePrediction(BaseModel):
    vehicle_id: str
    registration_number: str
    maintenance_score: int = Field(ge=0, le=100)
    days_until_maintenance: int = Field(ge=0)
    priority: Literal["high", "medium", "low"]
    predicted_issues: List[str]
    estimated_cost: int
    recommendations: List[str]
