"""
Role capability table.

Three fixed roles. The roles are not nested (operator and supervisor share
movement/report access but only the supervisor manages medicines), so every
grant is listed explicitly instead of derived from a hierarchy.
"""
from typing import FrozenSet

ROLE_OPERATOR = "operator"
ROLE_SUPERVISOR = "supervisor"
ROLE_ADMINISTRATOR = "administrator"

ROLES = (ROLE_OPERATOR, ROLE_SUPERVISOR, ROLE_ADMINISTRATOR)

ROLE_DISPLAY_NAMES = {
    ROLE_OPERATOR: "Pharmacy assistant",
    ROLE_SUPERVISOR: "Pharmacy supervisor",
    ROLE_ADMINISTRATOR: "Administrator",
}

VIEW_DASHBOARD = "view_dashboard"
VIEW_INVENTORY = "view_inventory"
MANAGE_MEDICINES = "manage_medicines"
MANAGE_MOVEMENTS = "manage_movements"
VIEW_REPORTS = "view_reports"
MANAGE_WAREHOUSES = "manage_warehouses"
MANAGE_USERS = "manage_users"
VIEW_AUDIT_LOG = "view_audit_log"

CAPABILITIES = (
    VIEW_DASHBOARD,
    VIEW_INVENTORY,
    MANAGE_MEDICINES,
    MANAGE_MOVEMENTS,
    VIEW_REPORTS,
    MANAGE_WAREHOUSES,
    MANAGE_USERS,
    VIEW_AUDIT_LOG,
)

ROLE_CAPABILITIES = {
    ROLE_OPERATOR: frozenset({
        VIEW_DASHBOARD,
        VIEW_INVENTORY,
        MANAGE_MOVEMENTS,
        VIEW_REPORTS,
    }),
    ROLE_SUPERVISOR: frozenset({
        VIEW_DASHBOARD,
        VIEW_INVENTORY,
        MANAGE_MEDICINES,
        MANAGE_MOVEMENTS,
        VIEW_REPORTS,
    }),
    ROLE_ADMINISTRATOR: frozenset(CAPABILITIES),
}


def capabilities_for(role: str) -> FrozenSet[str]:
    """Capabilities granted to role; empty for unknown roles."""
    return ROLE_CAPABILITIES.get(role, frozenset())


def can_access(role: str, capability: str) -> bool:
    return capability in capabilities_for(role)
