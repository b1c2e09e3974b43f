"""Unit tests for the pseudo-token codec, auth store, and role menus."""
from __future__ import annotations

import asyncio
import base64
import json
import os
import sys
import uuid
from pathlib import Path

import pytest


TMP = Path(__file__).resolve().parent / ".tmp_auth"
TMP.mkdir(parents=True, exist_ok=True)
os.environ["STATE_DB_PATH"] = str(TMP / "trackas_state.db")
os.environ["TOKEN_STORAGE_PATH"] = str(TMP / "local_storage.json")

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.core.config import get_settings  # noqa: E402
from app.models.auth import AuthUser  # noqa: E402
from app.models.logistics import UserRole  # noqa: E402
from app.services.auth_store import (  # noqa: E402
    INVALID_CREDENTIALS,
    AuthError,
    AuthStore,
    TokenError,
    decode_token,
    issue_token,
    role_permissions,
)
from app.services.navigation import menu_for_role  # noqa: E402
from app.services.token_storage import LocalStorage  # noqa: E402


def _auth_store() -> AuthStore:
    return AuthStore(storage=LocalStorage(path=str(TMP / f"storage-{uuid.uuid4().hex}.json")))


def _user(role: UserRole = UserRole.OPERATOR) -> AuthUser:
    return AuthUser(
        id=f"{role.value}-user-1",
        email=f"{role.value}@trackas.com",
        role=role,
        name="Operator/Driver",
        permissions=role_permissions(role),
    )


def test_token_encodes_claims_as_base64_json():
    token = issue_token(_user(), now=1_000)
    claims = json.loads(base64.b64decode(token))

    assert claims["sub"] == "operator-user-1"
    assert claims["role"] == "operator"
    assert claims["iat"] == 1_000
    assert claims["exp"] == 1_000 + get_settings().token_ttl_seconds
    assert claims["permissions"] == ["view_jobs", "accept_shipments", "update_status", "view_earnings"]

    payload = decode_token(token, now=1_001)
    assert payload.email == "operator@trackas.com"


def test_decode_rejects_expired_and_malformed_tokens():
    token = issue_token(_user(), now=1_000)
    with pytest.raises(TokenError, match="expired"):
        decode_token(token, now=1_000 + get_settings().token_ttl_seconds)

    with pytest.raises(TokenError):
        decode_token("")
    with pytest.raises(TokenError):
        decode_token("not base64 at all!")
    with pytest.raises(TokenError):
        decode_token(base64.b64encode(b"[1, 2, 3]").decode())

    forged = base64.b64encode(json.dumps({"sub": "x", "role": "superuser"}).encode()).decode()
    with pytest.raises(TokenError):
        decode_token(forged)


def test_role_permissions_are_fixed_per_role():
    assert role_permissions("admin") == ["manage_users", "approve_shipments", "view_analytics", "manage_disputes"]
    assert role_permissions(UserRole.CUSTOMER)[0] == "view_shipments"
    assert role_permissions("nobody") == []


def test_sign_in_stores_token_and_restores_session():
    store = _auth_store()

    response = asyncio.run(store.sign_in("logistics@trackas.com", "logistics123", role=UserRole.LOGISTICS))

    assert response.user.role == UserRole.LOGISTICS
    assert "assign_operators" in response.user.permissions
    assert store.state.token == response.token
    assert store.state.loading is False

    fresh = AuthStore(storage=store._storage)
    restored = fresh.restore_session()
    assert restored is not None
    assert restored.email == "logistics@trackas.com"


def test_sign_in_rejects_malformed_credentials():
    store = _auth_store()
    with pytest.raises(AuthError, match="Invalid credentials"):
        asyncio.run(store.sign_in("not-an-email", "secret"))
    assert store.state.error == INVALID_CREDENTIALS
    assert store.state.user is None

    with pytest.raises(AuthError):
        asyncio.run(store.sign_in("someone@trackas.com", "   "))


def test_sign_out_clears_token_and_user():
    store = _auth_store()
    asyncio.run(store.sign_in("admin@trackas.com", "admin123", role=UserRole.ADMIN))

    state = store.sign_out()

    assert state.user is None
    assert state.token is None
    assert store._storage.get_item(get_settings().token_storage_key) is None


def test_restore_discards_expired_token():
    store = _auth_store()
    key = get_settings().token_storage_key
    store._storage.set_item(key, issue_token(_user(), now=1_000))

    assert store.restore_session() is None
    assert store._storage.get_item(key) is None
    assert store.current_user() is None


def test_sign_up_registers_profile_then_signs_in():
    store = _auth_store()
    response = asyncio.run(store.sign_up("new.customer@email.com", "hunter22", role=UserRole.CUSTOMER, name="New  Customer"))
    assert response.user.name == "New Customer"
    assert response.user.role == UserRole.CUSTOMER

    with pytest.raises(AuthError, match="already exists"):
        asyncio.run(store.sign_up("NEW.customer@email.com", "hunter22"))
    with pytest.raises(AuthError, match="at least 6"):
        asyncio.run(store.sign_up("short@email.com", "abc"))
    with pytest.raises(AuthError):
        asyncio.run(store.sign_in("new.customer@email.com", "wrong-password"))


def test_update_profile_changes_name_only():
    store = _auth_store()
    with pytest.raises(AuthError):
        store.update_profile({"name": "Nobody"})

    asyncio.run(store.sign_in("operator@trackas.com", "operator123", role=UserRole.OPERATOR))
    user = store.update_profile({"name": "Amit Singh", "role": "admin", "permissions": ["manage_users"]})

    assert user.name == "Amit Singh"
    assert user.role == UserRole.OPERATOR
    assert "manage_users" not in user.permissions
    with pytest.raises(ValueError):
        store.update_profile({"name": "   "})


def test_profile_update_survives_session_restore():
    store = _auth_store()
    asyncio.run(store.sign_in("customer@trackas.com", "customer123", role=UserRole.CUSTOMER))
    previous_token = store.state.token

    store.update_profile({"name": "Priya  Sharma", "company_id": "COMP-0001"})

    stored = store._storage.get_item(get_settings().token_storage_key)
    assert stored == store.state.token
    assert stored != previous_token

    restored = AuthStore(storage=store._storage).restore_session()
    assert restored.name == "Priya Sharma"
    assert restored.company_id == "COMP-0001"
    assert restored.role == UserRole.CUSTOMER


@pytest.mark.parametrize(
    "role,expected",
    [
        ("admin", ["dashboard", "approvals", "verification", "analytics", "settings"]),
        (
            "operator",
            [
                "dashboard",
                "available-jobs",
                "active-shipments",
                "tracking",
                "live-map",
                "earnings",
                "operational-flow",
                "settings",
            ],
        ),
        (
            "customer",
            ["dashboard", "my-shipments", "tracking", "live-map", "history", "operational-flow", "settings"],
        ),
    ],
)
def test_menu_for_role_is_exact(role, expected):
    assert [item["id"] for item in menu_for_role(role)] == expected


def test_logistics_menu_and_unknown_role():
    items = menu_for_role(UserRole.LOGISTICS)
    assert len(items) == 13
    assert items[1] == {"id": "create-shipment", "label": "Create Shipment"}
    assert items[-1]["id"] == "settings"
    assert menu_for_role("superuser") == []
    assert menu_for_role(None) == []
