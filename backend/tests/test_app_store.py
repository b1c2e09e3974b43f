"""Unit tests for the application reducer, store dispatch, and journal replay."""
from __future__ import annotations

import os
import sqlite3
import sys
import uuid
from pathlib import Path

import pytest
from pydantic import BaseModel


TMP = Path(__file__).resolve().parent / ".tmp_store"
TMP.mkdir(parents=True, exist_ok=True)
os.environ["STATE_DB_PATH"] = str(TMP / "trackas_state.db")
os.environ["TOKEN_STORAGE_PATH"] = str(TMP / "local_storage.json")

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.models.actions import (  # noqa: E402
    ACTION_TYPES,
    AddCompanyRegistration,
    AddShipment,
    CompanyStatusPayload,
    DisputeUpdatePayload,
    MarkAllNotificationsRead,
    ShipmentPatch,
    ShipmentUpdatePayload,
    UpdateCompanyStatus,
    UpdateDispute,
    UpdateShipment,
    UpsertCustomer,
    app_action_adapter,
)
from app.models.logistics import (  # noqa: E402
    Company,
    CompanyStatus,
    ContactPerson,
    Customer,
    DisputePatch,
    DisputePriority,
    DisputeStatus,
    Shipment,
    ShipmentStatus,
)
from app.services.app_store import AppStore, app_reducer  # noqa: E402
from app.services.fixtures import initial_state  # noqa: E402
from app.services.state_journal import StateJournal  # noqa: E402


def _fresh_store(name: str) -> AppStore:
    journal = StateJournal(db_path=str(TMP / f"{name}-{uuid.uuid4().hex}.db"))
    return AppStore(journal=journal, seed_fixtures=True)


def _pending_company(company_id: str = "COMP-9001") -> Company:
    return Company(
        id=company_id,
        name="Swift Movers",
        tin="TIN123",
        business_registration_number="BRN-77",
        primary_contact=ContactPerson(name="Meera", email="meera@swift.in", phone="+91 98765 43210"),
    )


class UnknownAction(BaseModel):
    type: str = "NOT_A_REAL_ACTION"
    payload: dict = {}


def test_reducer_returns_new_state_and_leaves_input_untouched():
    state = initial_state()
    before = state.model_dump()
    action = UpdateShipment(
        payload=ShipmentUpdatePayload(id="TAS-2024-001", updates=ShipmentPatch(progress=80))
    )

    after = app_reducer(state, action)

    assert after is not state
    assert state.model_dump() == before
    assert after.shipments[0].progress == 80
    assert after.shipments[0].status == ShipmentStatus.IN_TRANSIT
    assert after.shipments[1] == state.shipments[1]


def test_unknown_action_passes_state_through():
    state = initial_state()
    assert app_reducer(state, UnknownAction()) is state


def test_every_action_type_has_a_reducer():
    from app.services.app_store import REDUCERS

    assert ACTION_TYPES == frozenset(REDUCERS)


def test_company_approval_sets_all_verification_flags():
    state = app_reducer(initial_state(), AddCompanyRegistration(payload=_pending_company()))
    assert state.companies[0].verification_status.tin_verified is False

    state = app_reducer(
        state,
        UpdateCompanyStatus(payload=CompanyStatusPayload(id="COMP-9001", status=CompanyStatus.APPROVED)),
    )

    company = state.companies[0]
    assert company.status == CompanyStatus.APPROVED
    assert company.verification_status.tin_verified is True
    assert company.verification_status.business_reg_verified is True
    assert company.verification_status.documents_verified is True


def test_mark_all_notifications_read_and_upsert_customer_by_email():
    state = initial_state()
    assert any(not n.read for n in state.notifications)
    state = app_reducer(state, MarkAllNotificationsRead())
    assert all(n.read for n in state.notifications)

    original = state.customers[0]
    state = app_reducer(
        state,
        UpsertCustomer(
            payload=Customer(id="CUST-NEW", name="R. Kumar", email=original.email.upper(), phone="+91-1")
        ),
    )
    assert len(state.customers) == 1
    assert state.customers[0].id == original.id
    assert state.customers[0].name == "R. Kumar"


def test_actions_round_trip_through_the_discriminated_union():
    action = MarkAllNotificationsRead()
    parsed = app_action_adapter.validate_python(action.model_dump(mode="json"))
    assert isinstance(parsed, MarkAllNotificationsRead)


def test_dispatch_notifies_listeners_until_unsubscribed():
    store = _fresh_store("listeners")
    seen = []
    unsubscribe = store.subscribe(lambda action, state: seen.append((action.type, len(state.notifications))))

    store.dispatch(MarkAllNotificationsRead())
    unsubscribe()
    store.dispatch(MarkAllNotificationsRead())

    assert seen == [("MARK_ALL_NOTIFICATIONS_READ", 2)]


def test_failing_listener_does_not_block_dispatch():
    store = _fresh_store("bad-listener")

    def boom(action, state):
        raise RuntimeError("listener exploded")

    store.subscribe(boom)
    state = store.dispatch(MarkAllNotificationsRead())
    assert all(n.read for n in state.notifications)


def test_journal_replay_restores_state_after_restart():
    db_path = str(TMP / f"replay-{uuid.uuid4().hex}.db")
    store = AppStore(journal=StateJournal(db_path=db_path), seed_fixtures=True)
    shipment = Shipment(id="TAS-2099-001", customer="Replay Co", origin="Pune", destination="Goa")
    store.dispatch(AddShipment(payload=shipment))
    store.dispatch(
        UpdateShipment(payload=ShipmentUpdatePayload(id="TAS-2099-001", updates=ShipmentPatch(progress=40)))
    )

    restarted = AppStore(journal=StateJournal(db_path=db_path), seed_fixtures=True)

    ids = [row.id for row in restarted.get_state().shipments]
    assert ids == ["TAS-2024-001", "TAS-2024-002", "TAS-2099-001"]
    replayed = restarted.get_state().shipments[-1]
    assert replayed.progress == 40
    assert replayed.customer == "Replay Co"
    assert replayed.origin == "Pune"
    assert replayed.status == ShipmentStatus.PENDING
    assert restarted.journal.count() == 2


def test_reset_restores_fixtures_and_clears_journal():
    store = _fresh_store("reset")
    store.dispatch(MarkAllNotificationsRead())
    assert store.journal.count() == 1

    state = store.reset()

    assert store.journal.count() == 0
    assert any(not n.read for n in state.notifications)
    assert len(state.shipments) == 2


def test_partial_patch_is_journaled_with_only_its_set_fields():
    action = UpdateShipment(payload=ShipmentUpdatePayload(id="TAS-2024-001", updates=ShipmentPatch(progress=70)))

    dumped = action.model_dump(mode="json")

    assert dumped["payload"]["updates"] == {"progress": 70}


def test_dispute_patch_replays_without_clearing_other_fields():
    db_path = str(TMP / f"dispute-replay-{uuid.uuid4().hex}.db")
    store = AppStore(journal=StateJournal(db_path=db_path), seed_fixtures=True)
    store.dispatch(
        UpdateDispute(
            payload=DisputeUpdatePayload(id="DIS-001", updates=DisputePatch(status=DisputeStatus.INVESTIGATING))
        )
    )

    restarted = AppStore(journal=StateJournal(db_path=db_path), seed_fixtures=True)
    dispute = next(d for d in restarted.get_state().disputes if d.id == "DIS-001")

    assert dispute.status == DisputeStatus.INVESTIGATING
    assert dispute.priority == DisputePriority.HIGH
    assert dispute.shipment_id == "TAS-2024-001"


def test_compacted_journal_restores_early_actions_after_restart():
    db_path = str(TMP / f"compact-{uuid.uuid4().hex}.db")
    store = AppStore(journal=StateJournal(db_path=db_path, max_entries=3), seed_fixtures=True)
    store.dispatch(AddShipment(payload=Shipment(id="TAS-2099-050", customer="Early Co", origin="Surat", destination="Agra")))
    for _ in range(5):
        store.dispatch(MarkAllNotificationsRead())

    assert store.journal.load_snapshot() is not None
    assert store.journal.count() <= 3

    restarted = AppStore(journal=StateJournal(db_path=db_path, max_entries=3), seed_fixtures=True)
    state = restarted.get_state()
    assert [row.id for row in state.shipments][-1] == "TAS-2099-050"
    assert state.shipments[-1].customer == "Early Co"
    assert all(n.read for n in state.notifications)
    assert state.model_dump() == store.get_state().model_dump()


def test_reset_also_drops_snapshot():
    store = AppStore(journal=StateJournal(db_path=str(TMP / f"reset-snap-{uuid.uuid4().hex}.db"), max_entries=1))
    store.dispatch(MarkAllNotificationsRead())
    store.dispatch(MarkAllNotificationsRead())
    assert store.journal.load_snapshot() is not None

    store.reset()

    assert store.journal.load_snapshot() is None
    assert store.journal.count() == 0


def test_state_is_unchanged_when_journal_append_fails(monkeypatch):
    store = _fresh_store("append-fails")
    before = store.get_state()

    def refuse(action):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(store.journal, "append", refuse)
    with pytest.raises(sqlite3.OperationalError):
        store.dispatch(MarkAllNotificationsRead())

    assert store.get_state() is before
    assert any(not n.read for n in store.get_state().notifications)
