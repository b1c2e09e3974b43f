"""Domain records for TrackAS shipments, fleet, registrations, and back-office."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, Enum):
    """Platform roles; each gets its own dashboard and menu."""

    ADMIN = "admin"
    LOGISTICS = "logistics"
    OPERATOR = "operator"
    CUSTOMER = "customer"


class ShipmentStatus(str, Enum):
    """Shipment lifecycle status."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Urgency(str, Enum):
    STANDARD = "standard"
    URGENT = "urgent"
    EXPRESS = "express"


class BusinessModel(str, Enum):
    """Commercial model selected on the shipment form."""

    SUBSCRIPTION = "subscription"
    PAY_PER_SHIPMENT = "pay-per-shipment"


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class OperatorStatus(str, Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


class CompanyStatus(str, Enum):
    """Registration review lifecycle for logistics companies."""

    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class VehicleType(str, Enum):
    TRUCK = "truck"
    VAN = "van"
    BIKE = "bike"
    CAR = "car"
    OTHER = "other"


class VehicleStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    ACTIVE = "active"
    INACTIVE = "inactive"
    REJECTED = "rejected"


class VehicleAvailability(str, Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    MAINTENANCE = "maintenance"


class DisputeType(str, Enum):
    DELIVERY_DELAY = "delivery_delay"
    DAMAGED_GOODS = "damaged_goods"
    WRONG_ADDRESS = "wrong_address"
    PAYMENT_ISSUE = "payment_issue"
    OTHER = "other"


class DisputePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DisputeStatus(str, Enum):
    OPEN = "open"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    CLOSED = "closed"


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class ShipmentUpdate(BaseModel):
    """One timestamped entry in a shipment's tracking history."""

    time: datetime = Field(default_factory=_utcnow)
    message: str
    type: Severity = Severity.INFO
    location: Optional[str] = None


class ProofOfDelivery(BaseModel):
    """Recipient evidence captured by the driver at the drop-off point."""

    id: str
    photo_urls: List[str] = Field(default_factory=list)
    signature_image_url: str
    recipient_name: str
    recipient_relationship: Optional[str] = None
    delivery_notes: Optional[str] = None
    location_lat: float = Field(ge=-90, le=90)
    location_lng: float = Field(ge=-180, le=180)
    location_address: str = ""
    uploaded_by: str
    uploaded_at: datetime
    verified: bool = False
    verification_note: Optional[str] = None


class Shipment(BaseModel):
    """Shipment record as rendered by tracking and dashboard screens."""

    id: str
    customer: str
    customer_phone: str = ""
    customer_email: str = ""
    origin: str
    destination: str
    status: ShipmentStatus = ShipmentStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    driver: Optional[str] = None
    driver_phone: Optional[str] = None
    vehicle: Optional[str] = None
    estimated_delivery: str = ""
    current_location: str = ""
    weight: float = Field(default=0.0, ge=0)
    dimensions: str = ""
    price: Optional[float] = Field(default=None, ge=0)
    urgency: Urgency = Urgency.STANDARD
    special_handling: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    model: BusinessModel = BusinessModel.SUBSCRIPTION
    updates: List[ShipmentUpdate] = Field(default_factory=list)
    customer_id: Optional[str] = None
    operator_id: Optional[str] = None
    company_id: Optional[str] = None
    destination_lat: Optional[float] = Field(default=None, ge=-90, le=90)
    destination_lng: Optional[float] = Field(default=None, ge=-180, le=180)
    proof_of_delivery: Optional[ProofOfDelivery] = None


class ShipmentPatch(BaseModel):
    """Partial shipment fields applied by UPDATE_SHIPMENT."""

    customer: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    origin: Optional[str] = None
    destination: Optional[str] = None
    status: Optional[ShipmentStatus] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    driver: Optional[str] = None
    driver_phone: Optional[str] = None
    vehicle: Optional[str] = None
    estimated_delivery: Optional[str] = None
    current_location: Optional[str] = None
    weight: Optional[float] = Field(default=None, ge=0)
    dimensions: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    urgency: Optional[Urgency] = None
    special_handling: Optional[str] = None
    operator_id: Optional[str] = None
    company_id: Optional[str] = None
    proof_of_delivery: Optional[ProofOfDelivery] = None


class Operator(BaseModel):
    """Driver/operator profile with performance counters."""

    id: str
    name: str
    phone: str = ""
    email: str = ""
    rating: float = Field(default=0.0, ge=0, le=5)
    total_deliveries: int = Field(default=0, ge=0)
    on_time_rate: float = Field(default=0.0, ge=0, le=100)
    earnings: float = 0.0
    vehicle: str = ""
    current_location: str = ""
    status: OperatorStatus = OperatorStatus.AVAILABLE
    specializations: List[str] = Field(default_factory=list)
    company_id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class Customer(BaseModel):
    id: str
    name: str
    phone: str = ""
    email: str = ""
    total_shipments: int = 0
    rating: float = 0.0
    preferred_delivery_time: Optional[str] = None


class ContactPerson(BaseModel):
    name: str
    email: str
    phone: str


class CompanyVerification(BaseModel):
    tin_verified: bool = False
    business_reg_verified: bool = False
    documents_verified: bool = False


class Company(BaseModel):
    """Logistics company registration awaiting or past admin review."""

    id: str
    name: str
    address: str = ""
    tin: str
    business_registration_number: str
    primary_contact: ContactPerson
    fleet_size: Optional[int] = Field(default=None, ge=0)
    registration_date: datetime = Field(default_factory=_utcnow)
    status: CompanyStatus = CompanyStatus.PENDING
    verification_status: CompanyVerification = Field(default_factory=CompanyVerification)
    approval_timeline: Optional[str] = "24-48 hours"
    rejection_reason: Optional[str] = None


class VehicleCapacity(BaseModel):
    weight: float = Field(ge=0, description="kg")
    volume: float = Field(ge=0, description="cubic meters")


class VehicleDriver(BaseModel):
    name: str
    mobile: str
    license_number: str


class VehicleVerification(BaseModel):
    registration_verified: bool = False
    insurance_verified: bool = False
    license_verified: bool = False


class Vehicle(BaseModel):
    """Fleet vehicle registration carrying its VCODE."""

    id: str
    company_id: str
    vcode: str
    type: VehicleType = VehicleType.TRUCK
    registration_number: str
    capacity: VehicleCapacity
    driver: VehicleDriver
    status: VehicleStatus = VehicleStatus.PENDING
    verification_status: VehicleVerification = Field(default_factory=VehicleVerification)
    registration_date: datetime = Field(default_factory=_utcnow)
    approval_date: Optional[datetime] = None
    current_location: Optional[str] = None
    availability: VehicleAvailability = VehicleAvailability.AVAILABLE


class Notification(BaseModel):
    id: str
    type: Severity = Severity.INFO
    title: str
    message: str
    timestamp: datetime = Field(default_factory=_utcnow)
    read: bool = False


class DailyTrend(BaseModel):
    date: str
    shipments: int
    revenue: float


class RouteSummary(BaseModel):
    route: str
    shipments: int
    revenue: str
    efficiency: str


class OperatorPerformance(BaseModel):
    name: str
    rating: float
    deliveries: int
    on_time: str
    earnings: str


class Analytics(BaseModel):
    """Dashboard KPIs."""

    total_shipments: int = 0
    success_rate: float = 0.0
    active_operators: int = 0
    avg_delivery_time: str = ""
    revenue: str = ""
    route_efficiency: float = 0.0
    daily_trends: List[DailyTrend] = Field(default_factory=list)
    top_routes: List[RouteSummary] = Field(default_factory=list)
    operator_performance: List[OperatorPerformance] = Field(default_factory=list)


class Dispute(BaseModel):
    """Customer/operator dispute tracked by the admin team."""

    id: str
    shipment_id: str
    customer_name: str
    operator_name: str
    type: DisputeType = DisputeType.OTHER
    priority: DisputePriority = DisputePriority.MEDIUM
    status: DisputeStatus = DisputeStatus.OPEN
    description: str
    customer_contact: str = ""
    operator_contact: str = ""
    created_at: datetime = Field(default_factory=_utcnow)
    resolved_at: Optional[datetime] = None
    resolution: Optional[str] = None
    assigned_to: Optional[str] = None


class DisputePatch(BaseModel):
    status: Optional[DisputeStatus] = None
    priority: Optional[DisputePriority] = None
    resolved_at: Optional[datetime] = None
    resolution: Optional[str] = None
    assigned_to: Optional[str] = None


class InvoiceBreakdown(BaseModel):
    base_amount: float
    service_fee: float
    gst: float
    total: float


class Invoice(BaseModel):
    """Invoice derived from a delivered or priced shipment."""

    id: str
    shipment_id: str
    customer_name: str
    amount: float = 0.0
    status: InvoiceStatus = InvoiceStatus.PENDING
    due_date: datetime
    paid_date: Optional[datetime] = None
    created_at: datetime = Field(default_factory=_utcnow)
    route: str = ""
    weight: float = 0.0
    dimensions: str = ""
    model: BusinessModel = BusinessModel.SUBSCRIPTION
    breakdown: InvoiceBreakdown


class ShipmentCreateRequest(BaseModel):
    """Payload behind the create-shipment form."""

    pickup_location: str = Field(min_length=1)
    destination: str = Field(min_length=1)
    weight: float = Field(gt=0)
    dimensions: str = ""
    special_handling: Optional[str] = None
    expected_delivery: str = ""
    customer_name: str = Field(min_length=1)
    customer_phone: str = Field(min_length=1)
    customer_email: str = Field(min_length=3)
    price: Optional[float] = Field(default=None, ge=0)
    urgency: Urgency = Urgency.STANDARD
    model: BusinessModel = BusinessModel.SUBSCRIPTION
    customer_id: Optional[str] = None
    company_id: Optional[str] = None
    destination_lat: Optional[float] = Field(default=None, ge=-90, le=90)
    destination_lng: Optional[float] = Field(default=None, ge=-180, le=180)


class ShipmentStatusRequest(BaseModel):
    status: ShipmentStatus
    message: Optional[str] = None


class ShipmentUpdateRequest(BaseModel):
    message: str = Field(min_length=1)
    type: Severity = Severity.INFO
    location: Optional[str] = None


class ProofOfDeliveryRequest(BaseModel):
    photo_urls: List[str] = Field(default_factory=list)
    signature_image_url: str = Field(min_length=1)
    recipient_name: str = Field(min_length=1)
    recipient_relationship: Optional[str] = None
    delivery_notes: Optional[str] = None
    location_lat: float = Field(ge=-90, le=90)
    location_lng: float = Field(ge=-180, le=180)
    location_address: str = ""


class ProofOfDeliveryResult(BaseModel):
    success: bool
    pod_id: str
    verified: bool
    reason: Optional[str] = None
    shipment: Shipment


class CustomerCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    phone: str = ""
    email: str = Field(min_length=3)
    preferred_delivery_time: Optional[str] = None


class CompanyRegistrationRequest(BaseModel):
    company_name: str = Field(min_length=1)
    company_address: str = ""
    tin: str = Field(min_length=1)
    business_registration_number: str = Field(min_length=1)
    primary_contact_name: str = Field(min_length=1)
    primary_contact_email: str = Field(min_length=3)
    primary_contact_phone: str = Field(min_length=1)
    fleet_size: Optional[int] = Field(default=None, ge=0)


class VehicleRegistrationRequest(BaseModel):
    company_id: str = Field(min_length=1)
    vehicle_type: VehicleType = VehicleType.TRUCK
    registration_number: str = Field(min_length=1)
    weight_capacity: float = Field(gt=0)
    volume_capacity: float = Field(gt=0)
    driver_name: str = Field(min_length=1)
    driver_mobile: str = Field(min_length=1)
    driver_license_number: str = Field(min_length=1)


class CompanyStatusRequest(BaseModel):
    status: CompanyStatus
    rejection_reason: Optional[str] = None


class VehicleStatusRequest(BaseModel):
    status: VehicleStatus


class OperatorStatusRequest(BaseModel):
    status: OperatorStatus


class NotificationCreateRequest(BaseModel):
    type: Severity = Severity.INFO
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)


class DisputeCreateRequest(BaseModel):
    shipment_id: str = Field(min_length=1)
    type: DisputeType = DisputeType.OTHER
    priority: DisputePriority = DisputePriority.MEDIUM
    description: str = Field(min_length=1)
    customer_name: Optional[str] = None
    operator_name: Optional[str] = None
    customer_contact: Optional[str] = None
    operator_contact: Optional[str] = None


class DisputeResolveRequest(BaseModel):
    note: str = ""


class DisputeAssignRequest(BaseModel):
    assignee: str = "Admin Team"


class StoreSnapshot(BaseModel):
    """Serializable dump of the application store."""

    state: Dict[str, Any]
    journal_entries: int
