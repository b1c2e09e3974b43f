"""Tagged actions and state shape for the application store."""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union, get_args

from pydantic import BaseModel, Field, SerializationInfo, TypeAdapter, field_serializer

from app.models.logistics import (
    Analytics,
    Company,
    CompanyStatus,
    Customer,
    Dispute,
    DisputePatch,
    Invoice,
    InvoiceStatus,
    Notification,
    Operator,
    OperatorStatus,
    Shipment,
    ShipmentPatch,
    ShipmentUpdate,
    Vehicle,
    VehicleStatus,
)


class AppState(BaseModel):
    """Everything the dashboards read from the shared store."""

    shipments: List[Shipment] = Field(default_factory=list)
    operators: List[Operator] = Field(default_factory=list)
    customers: List[Customer] = Field(default_factory=list)
    companies: List[Company] = Field(default_factory=list)
    vehicles: List[Vehicle] = Field(default_factory=list)
    analytics: Analytics = Field(default_factory=Analytics)
    notifications: List[Notification] = Field(default_factory=list)
    disputes: List[Dispute] = Field(default_factory=list)
    invoices: List[Invoice] = Field(default_factory=list)
    selected_shipment: Optional[str] = None


class ShipmentUpdatePayload(BaseModel):
    id: str
    updates: ShipmentPatch

    @field_serializer("updates")
    def _serialize_updates(self, updates: ShipmentPatch, info: SerializationInfo) -> Dict[str, Any]:
        # Replay treats every serialized key as an explicit update.
        return updates.model_dump(mode=info.mode, exclude_unset=True)


class ShipmentTrackingPayload(BaseModel):
    id: str
    update: ShipmentUpdate


class OperatorStatusPayload(BaseModel):
    id: str
    status: OperatorStatus


class CompanyStatusPayload(BaseModel):
    id: str
    status: CompanyStatus
    rejection_reason: Optional[str] = None


class VehicleStatusPayload(BaseModel):
    id: str
    status: VehicleStatus


class DisputeUpdatePayload(BaseModel):
    id: str
    updates: DisputePatch

    @field_serializer("updates")
    def _serialize_updates(self, updates: DisputePatch, info: SerializationInfo) -> Dict[str, Any]:
        return updates.model_dump(mode=info.mode, exclude_unset=True)


class InvoiceStatusPayload(BaseModel):
    id: str
    status: InvoiceStatus
    paid_date: Optional[datetime] = None


class AddShipment(BaseModel):
    type: Literal["ADD_SHIPMENT"] = "ADD_SHIPMENT"
    payload: Shipment


class UpdateShipment(BaseModel):
    type: Literal["UPDATE_SHIPMENT"] = "UPDATE_SHIPMENT"
    payload: ShipmentUpdatePayload


class AddShipmentUpdate(BaseModel):
    type: Literal["ADD_SHIPMENT_UPDATE"] = "ADD_SHIPMENT_UPDATE"
    payload: ShipmentTrackingPayload


class SelectShipment(BaseModel):
    type: Literal["SELECT_SHIPMENT"] = "SELECT_SHIPMENT"
    payload: Optional[str] = None


class AddNotification(BaseModel):
    type: Literal["ADD_NOTIFICATION"] = "ADD_NOTIFICATION"
    payload: Notification


class MarkNotificationRead(BaseModel):
    type: Literal["MARK_NOTIFICATION_READ"] = "MARK_NOTIFICATION_READ"
    payload: str


class MarkAllNotificationsRead(BaseModel):
    type: Literal["MARK_ALL_NOTIFICATIONS_READ"] = "MARK_ALL_NOTIFICATIONS_READ"
    payload: None = None


class UpdateOperatorStatus(BaseModel):
    type: Literal["UPDATE_OPERATOR_STATUS"] = "UPDATE_OPERATOR_STATUS"
    payload: OperatorStatusPayload


class AddCustomer(BaseModel):
    type: Literal["ADD_CUSTOMER"] = "ADD_CUSTOMER"
    payload: Customer


class UpsertCustomer(BaseModel):
    type: Literal["UPSERT_CUSTOMER"] = "UPSERT_CUSTOMER"
    payload: Customer


class AddCompanyRegistration(BaseModel):
    type: Literal["ADD_COMPANY_REGISTRATION"] = "ADD_COMPANY_REGISTRATION"
    payload: Company


class AddVehicleRegistration(BaseModel):
    type: Literal["ADD_VEHICLE_REGISTRATION"] = "ADD_VEHICLE_REGISTRATION"
    payload: Vehicle


class UpdateCompanyStatus(BaseModel):
    type: Literal["UPDATE_COMPANY_STATUS"] = "UPDATE_COMPANY_STATUS"
    payload: CompanyStatusPayload


class UpdateVehicleStatus(BaseModel):
    type: Literal["UPDATE_VEHICLE_STATUS"] = "UPDATE_VEHICLE_STATUS"
    payload: VehicleStatusPayload


class AddDispute(BaseModel):
    type: Literal["ADD_DISPUTE"] = "ADD_DISPUTE"
    payload: Dispute


class UpdateDispute(BaseModel):
    type: Literal["UPDATE_DISPUTE"] = "UPDATE_DISPUTE"
    payload: DisputeUpdatePayload


class AddInvoice(BaseModel):
    type: Literal["ADD_INVOICE"] = "ADD_INVOICE"
    payload: Invoice


class UpdateInvoiceStatus(BaseModel):
    type: Literal["UPDATE_INVOICE_STATUS"] = "UPDATE_INVOICE_STATUS"
    payload: InvoiceStatusPayload


AppAction = Annotated[
    Union[
        AddShipment,
        UpdateShipment,
        AddShipmentUpdate,
        SelectShipment,
        AddNotification,
        MarkNotificationRead,
        MarkAllNotificationsRead,
        UpdateOperatorStatus,
        AddCustomer,
        UpsertCustomer,
        AddCompanyRegistration,
        AddVehicleRegistration,
        UpdateCompanyStatus,
        UpdateVehicleStatus,
        AddDispute,
        UpdateDispute,
        AddInvoice,
        UpdateInvoiceStatus,
    ],
    Field(discriminator="type"),
]

app_action_adapter: TypeAdapter[AppAction] = TypeAdapter(AppAction)

ACTION_TYPES = frozenset(
    member.model_fields["type"].default for member in get_args(get_args(AppAction)[0])
)
