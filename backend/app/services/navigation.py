"""Sidebar menus per role."""
from __future__ import annotations

from typing import Dict, List, Tuple, Union

from app.models.logistics import UserRole


MenuItem = Dict[str, str]

_MENUS: Dict[UserRole, Tuple[Tuple[str, str], ...]] = {
    UserRole.ADMIN: (
        ("dashboard", "Admin Dashboard"),
        ("approvals", "Shipment Approvals"),
        ("verification", "User Verification"),
        ("analytics", "System Analytics"),
        ("settings", "System Settings"),
    ),
    UserRole.LOGISTICS: (
        ("dashboard", "Dashboard"),
        ("create-shipment", "Create Shipment"),
        ("shipment-approval", "Approve Shipments"),
        ("tracking", "Live Tracking"),
        ("live-map", "Live Map View"),
        ("route-optimizer", "AI Route Optimizer"),
        ("operators", "Manage Operators"),
        ("billing", "Billing"),
        ("analytics", "Analytics"),
        ("company-registration", "Company Registration"),
        ("vehicle-registration", "Vehicle Registration"),
        ("operational-flow", "Operational Flow"),
        ("settings", "Settings"),
    ),
    UserRole.OPERATOR: (
        ("dashboard", "Dashboard"),
        ("available-jobs", "Available Jobs"),
        ("active-shipments", "Active Shipments"),
        ("tracking", "Live Tracking"),
        ("live-map", "Live Map View"),
        ("earnings", "Earnings"),
        ("operational-flow", "Operational Flow"),
        ("settings", "Settings"),
    ),
    UserRole.CUSTOMER: (
        ("dashboard", "Dashboard"),
        ("my-shipments", "My Shipments"),
        ("tracking", "Track Shipment"),
        ("live-map", "Live Map View"),
        ("history", "History"),
        ("operational-flow", "Operational Flow"),
        ("settings", "Settings"),
    ),
}


def menu_for_role(role: Union[UserRole, str, None]) -> List[MenuItem]:
    """Ordered sidebar entries for a role; unknown roles get nothing."""
    try:
        key = UserRole(str(getattr(role, "value", role) or "").strip().lower())
    except ValueError:
        return []
    return [{"id": item_id, "label": label} for item_id, label in _MENUS[key]]
