"""
rbac/defaults.py -- The shipped desired states.

DEFAULT_STATE is the base permission matrix (five resources x five actions)
and the four global roles. There is deliberately no "admin" role: the
administrator is an is_admin account (see rbac/bootstrap.py).

SIDEBAR_STATE adds the navigation catalog: one permission per action for every
sidebar tab, people entity and tasks entity. It defines no roles; operators
bind these permissions to roles themselves.

personal_information and change_password are listed as sidebar tabs so the UI
can look them up, but every role may use them without a grant.
"""

from __future__ import annotations

from rbac.models import CatalogGroup, DesiredState, PermissionRef, RoleDefinition

ACTIONS = ("view_list", "view_one", "create", "edit", "delete")

RESOURCES = ("owners", "vendors", "tenants", "users", "user_roles")


def _refs(*pairs: str) -> tuple[PermissionRef, ...]:
    """_refs("owners.view_list", ...) -> PermissionRef tuple."""
    return tuple(PermissionRef(*p.split(".", 1)) for p in pairs)


DEFAULT_ROLES = (
    RoleDefinition(
        name="owner",
        description="Property owner with access to manage their properties, tenants, and vendors",
        permissions=_refs(
            "owners.view_list",
            "owners.view_one",
            "owners.edit",
            "vendors.view_list",
            "vendors.view_one",
            "vendors.create",
            "vendors.edit",
            "tenants.view_list",
            "tenants.view_one",
            "tenants.create",
            "tenants.edit",
            "users.view_list",
            "users.view_one",
        ),
    ),
    RoleDefinition(
        name="manager",
        description="Manager with access to view and create, but limited edit/delete",
        permissions=_refs(
            "owners.view_list",
            "owners.view_one",
            "vendors.view_list",
            "vendors.view_one",
            "tenants.view_list",
            "tenants.view_one",
            "tenants.create",
            "users.view_list",
        ),
    ),
    RoleDefinition(
        name="staff",
        description="Staff member with limited view access",
        permissions=_refs(
            "tenants.view_list",
            "tenants.view_one",
            "owners.view_list",
            "owners.view_one",
            "vendors.view_list",
            "vendors.view_one",
        ),
    ),
    RoleDefinition(
        name="user",
        description="Regular user with minimal access",
    ),
)

DEFAULT_STATE = DesiredState(
    catalog=(CatalogGroup("resources", RESOURCES, ACTIONS),),
    roles=DEFAULT_ROLES,
)

# ---------------------------------------------------------------------------
# Sidebar navigation
# ---------------------------------------------------------------------------

SIDEBAR_TABS = (
    # Main sidebar
    "overview",
    "people",
    "vendor_management",
    "accounts",
    "hostel_management",
    "alerts",
    "communication",
    "fpa",
    "settings",
    # People
    "tenants",
    "employees",
    "prospects",
    # Vendor
    "vendor_list",
    # Accounts
    "accounts_all",
    "accounts_payable",
    "accounts_receivable",
    "bills",
    "accounts_vendor",
    "laundry",
    "received",
    # Communication
    "comm_tenants",
    "comm_employees",
    "comm_vendors",
    # FP&A
    "fpa_monthly",
    "fpa_yearly",
    # Alerts
    "alerts_bills",
    "alerts_maintenance",
    "alerts_bin",
    # Settings
    "personal_information",
    "change_password",
    "hostel_info",
    "user_roles",
    "vendor_category",
    "vendor_service",
    "currency",
)

PEOPLE_ENTITIES = ("prospects", "owners", "vendors", "tenants", "users", "user_roles", "api_keys")

TASKS_ENTITIES = ("tasks", "work_orders", "tenant_requests", "owner_requests")

SIDEBAR_STATE = DesiredState(
    catalog=(
        CatalogGroup("sidebar tabs", SIDEBAR_TABS, ACTIONS),
        CatalogGroup("people entities", PEOPLE_ENTITIES, ACTIONS),
        CatalogGroup("tasks & maintenance", TASKS_ENTITIES, ACTIONS),
    ),
)
