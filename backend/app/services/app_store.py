"""Action-driven application store: pure reducer plus a journaled holder."""
from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from threading import RLock
from typing import Any, Callable, Dict, Iterator, List, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from app.core.config import get_settings
from app.core.logging import logger
from app.models.actions import (
    AddCompanyRegistration,
    AddCustomer,
    AddDispute,
    AddInvoice,
    AddNotification,
    AddShipment,
    AddShipmentUpdate,
    AddVehicleRegistration,
    AppAction,
    AppState,
    MarkAllNotificationsRead,
    MarkNotificationRead,
    SelectShipment,
    UpdateCompanyStatus,
    UpdateDispute,
    UpdateInvoiceStatus,
    UpdateOperatorStatus,
    UpdateShipment,
    UpdateVehicleStatus,
    UpsertCustomer,
    app_action_adapter,
)
from app.models.logistics import (
    CompanyStatus,
    CompanyVerification,
    VehicleAvailability,
    VehicleStatus,
    VehicleVerification,
)
from app.services.fixtures import initial_state
from app.services.state_journal import StateJournal


RecordT = TypeVar("RecordT", bound=BaseModel)
Listener = Callable[[BaseModel, AppState], None]


def _replace_by_id(items: List[RecordT], item_id: str, apply: Callable[[RecordT], RecordT]) -> List[RecordT]:
    return [apply(item) if getattr(item, "id", None) == item_id else item for item in items]


def _add_shipment(state: AppState, action: AddShipment) -> AppState:
    return state.model_copy(update={"shipments": [*state.shipments, action.payload]})


def _set_fields(patch: BaseModel) -> Dict[str, Any]:
    # Nested models stay as models on the updated record.
    return {name: getattr(patch, name) for name in patch.model_fields_set}


def _update_shipment(state: AppState, action: UpdateShipment) -> AppState:
    updates = _set_fields(action.payload.updates)
    shipments = _replace_by_id(
        state.shipments,
        action.payload.id,
        lambda shipment: shipment.model_copy(update=updates),
    )
    return state.model_copy(update={"shipments": shipments})


def _add_shipment_update(state: AppState, action: AddShipmentUpdate) -> AppState:
    entry = action.payload.update
    shipments = _replace_by_id(
        state.shipments,
        action.payload.id,
        lambda shipment: shipment.model_copy(update={"updates": [*shipment.updates, entry]}),
    )
    return state.model_copy(update={"shipments": shipments})


def _select_shipment(state: AppState, action: SelectShipment) -> AppState:
    return state.model_copy(update={"selected_shipment": action.payload})


def _add_notification(state: AppState, action: AddNotification) -> AppState:
    return state.model_copy(update={"notifications": [action.payload, *state.notifications]})


def _mark_notification_read(state: AppState, action: MarkNotificationRead) -> AppState:
    notifications = _replace_by_id(
        state.notifications,
        action.payload,
        lambda notification: notification.model_copy(update={"read": True}),
    )
    return state.model_copy(update={"notifications": notifications})


def _mark_all_notifications_read(state: AppState, action: MarkAllNotificationsRead) -> AppState:
    notifications = [
        notification if notification.read else notification.model_copy(update={"read": True})
        for notification in state.notifications
    ]
    return state.model_copy(update={"notifications": notifications})


def _update_operator_status(state: AppState, action: UpdateOperatorStatus) -> AppState:
    operators = _replace_by_id(
        state.operators,
        action.payload.id,
        lambda operator: operator.model_copy(update={"status": action.payload.status}),
    )
    return state.model_copy(update={"operators": operators})


def _add_customer(state: AppState, action: AddCustomer) -> AppState:
    return state.model_copy(update={"customers": [*state.customers, action.payload]})


def _upsert_customer(state: AppState, action: UpsertCustomer) -> AppState:
    incoming = action.payload
    email = incoming.email.strip().lower()
    existing = next((c for c in state.customers if c.email.strip().lower() == email), None)
    if existing is None:
        return state.model_copy(update={"customers": [*state.customers, incoming]})
    merged = incoming.model_copy(update={"id": existing.id})
    customers = _replace_by_id(state.customers, existing.id, lambda _: merged)
    return state.model_copy(update={"customers": customers})


def _add_company(state: AppState, action: AddCompanyRegistration) -> AppState:
    return state.model_copy(update={"companies": [*state.companies, action.payload]})


def _add_vehicle(state: AppState, action: AddVehicleRegistration) -> AppState:
    return state.model_copy(update={"vehicles": [*state.vehicles, action.payload]})


def _update_company_status(state: AppState, action: UpdateCompanyStatus) -> AppState:
    payload = action.payload

    def apply(company):
        update = {"status": payload.status, "rejection_reason": payload.rejection_reason}
        if payload.status == CompanyStatus.APPROVED:
            update["verification_status"] = CompanyVerification(
                tin_verified=True,
                business_reg_verified=True,
                documents_verified=True,
            )
        return company.model_copy(update=update)

    companies = _replace_by_id(state.companies, payload.id, apply)
    return state.model_copy(update={"companies": companies})


def _update_vehicle_status(state: AppState, action: UpdateVehicleStatus) -> AppState:
    payload = action.payload

    def apply(vehicle):
        update = {"status": payload.status}
        if payload.status == VehicleStatus.VERIFIED:
            update["verification_status"] = VehicleVerification(
                registration_verified=True,
                insurance_verified=True,
                license_verified=True,
            )
            update["availability"] = VehicleAvailability.AVAILABLE
        return vehicle.model_copy(update=update)

    vehicles = _replace_by_id(state.vehicles, payload.id, apply)
    return state.model_copy(update={"vehicles": vehicles})


def _add_dispute(state: AppState, action: AddDispute) -> AppState:
    return state.model_copy(update={"disputes": [action.payload, *state.disputes]})


def _update_dispute(state: AppState, action: UpdateDispute) -> AppState:
    updates = _set_fields(action.payload.updates)
    disputes = _replace_by_id(
        state.disputes,
        action.payload.id,
        lambda dispute: dispute.model_copy(update=updates),
    )
    return state.model_copy(update={"disputes": disputes})


def _add_invoice(state: AppState, action: AddInvoice) -> AppState:
    return state.model_copy(update={"invoices": [*state.invoices, action.payload]})


def _update_invoice_status(state: AppState, action: UpdateInvoiceStatus) -> AppState:
    payload = action.payload
    invoices = _replace_by_id(
        state.invoices,
        payload.id,
        lambda invoice: invoice.model_copy(update={"status": payload.status, "paid_date": payload.paid_date}),
    )
    return state.model_copy(update={"invoices": invoices})


REDUCERS: Dict[str, Callable[[AppState, BaseModel], AppState]] = {
    "ADD_SHIPMENT": _add_shipment,
    "UPDATE_SHIPMENT": _update_shipment,
    "ADD_SHIPMENT_UPDATE": _add_shipment_update,
    "SELECT_SHIPMENT": _select_shipment,
    "ADD_NOTIFICATION": _add_notification,
    "MARK_NOTIFICATION_READ": _mark_notification_read,
    "MARK_ALL_NOTIFICATIONS_READ": _mark_all_notifications_read,
    "UPDATE_OPERATOR_STATUS": _update_operator_status,
    "ADD_CUSTOMER": _add_customer,
    "UPSERT_CUSTOMER": _upsert_customer,
    "ADD_COMPANY_REGISTRATION": _add_company,
    "ADD_VEHICLE_REGISTRATION": _add_vehicle,
    "UPDATE_COMPANY_STATUS": _update_company_status,
    "UPDATE_VEHICLE_STATUS": _update_vehicle_status,
    "ADD_DISPUTE": _add_dispute,
    "UPDATE_DISPUTE": _update_dispute,
    "ADD_INVOICE": _add_invoice,
    "UPDATE_INVOICE_STATUS": _update_invoice_status,
}


def app_reducer(state: AppState, action: AppAction) -> AppState:
    """Pure `(state, action) -> state`; unknown action types leave state untouched."""
    handler = REDUCERS.get(getattr(action, "type", ""))
    if handler is None:
        return state
    return handler(state, action)


class AppStore:
    """Holds the current AppState and journals every dispatched action."""

    def __init__(self, journal: Optional[StateJournal] = None, seed_fixtures: Optional[bool] = None) -> None:
        settings = get_settings()
        self._journal = journal or StateJournal()
        self._seed_fixtures = settings.seed_fixtures if seed_fixtures is None else seed_fixtures
        self._lock = RLock()
        self._listeners: List[Listener] = []
        self._state = self._rebuild()

    @property
    def journal(self) -> StateJournal:
        return self._journal

    def _base_state(self) -> AppState:
        return initial_state() if self._seed_fixtures else AppState()

    def _rebuild(self) -> AppState:
        state = self._base_state()
        after_seq = 0
        snapshot = self._journal.load_snapshot()
        if snapshot is not None:
            after_seq, state_json = snapshot
            try:
                state = AppState.model_validate_json(state_json)
            except ValidationError as exc:
                logger.error("Store snapshot is unreadable", path=str(self._journal.path), error=str(exc))
                raise

        replayed = 0
        for entry in self._journal.entries(after_seq=after_seq):
            try:
                action = app_action_adapter.validate_python(entry)
            except ValidationError as exc:
                logger.warning("Skipping invalid journaled action", action_type=entry.get("type"), error=str(exc))
                continue
            state = app_reducer(state, action)
            replayed += 1
        if replayed or snapshot is not None:
            logger.info(
                "Replayed store journal",
                actions=replayed,
                snapshot_seq=after_seq or None,
                path=str(self._journal.path),
            )
        return state

    def get_state(self) -> AppState:
        with self._lock:
            return self._state

    @contextmanager
    def transaction(self) -> Iterator["AppStore"]:
        """Hold the store lock across a read, validate and dispatch sequence."""
        with self._lock:
            yield self

    def dispatch(self, action: AppAction) -> AppState:
        with self._lock:
            next_state = app_reducer(self._state, action)
            seq = self._journal.append(action.model_dump(mode="json"))
            self._state = next_state
            if self._journal.needs_compaction():
                try:
                    self._journal.compact(next_state.model_dump_json(), through_seq=seq)
                except sqlite3.Error as exc:
                    # Every action is still journaled; compaction retries on the next dispatch.
                    logger.warning("Store journal compaction failed", through_seq=seq, error=str(exc))
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(action, next_state)
            except Exception as exc:
                logger.warning("Store listener failed", action_type=action.type, error=str(exc))
        return next_state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def next_id(self, key: str, start: int = 1) -> int:
        return self._journal.next_sequence(key, start=start)

    def reset(self) -> AppState:
        """Drop journaled actions and restore the seed dataset."""
        with self._lock:
            self._journal.clear()
            self._state = self._base_state()
            logger.info("Application store reset", seeded=self._seed_fixtures)
            return self._state


app_store = AppStore()
