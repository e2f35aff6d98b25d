"""
auth/permissions.py -- Roles, permissions, and the static role -> permission table.

The table is built once at import time and exposed through a read-only
MappingProxyType of frozensets. Nothing in the process can add or remove a
permission from a role after startup.

ADMIN is special-cased in role_has_permission(): it holds every permission,
including any added to the Permission enum later, without a table edit.

Layer rule: no imports from core/ or main.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType


class Role(str, Enum):
    """Closed set of staff roles. Stored in the database by value."""

    ADMIN = "admin"
    MANAGER = "manager"
    CASHIER = "cashier"
    KITCHEN = "kitchen"


class Permission(str, Enum):
    """Atomic capabilities gated by role."""

    VIEW_POS = "view_pos"
    VIEW_KITCHEN_TICKETS = "view_kitchen_tickets"
    VIEW_REPORTS = "view_reports"
    VIEW_INVENTORY = "view_inventory"
    VIEW_SETTINGS = "view_settings"
    MANAGE_USERS = "manage_users"
    BACKUP_RESTORE = "backup_restore"
    PRINT_RECEIPTS = "print_receipts"
    PRINT_KITCHEN_TICKETS = "print_kitchen_tickets"


ROLE_PERMISSIONS: Mapping[Role, frozenset[Permission]] = MappingProxyType(
    {
        Role.ADMIN: frozenset(Permission),
        Role.MANAGER: frozenset(
            {
                Permission.VIEW_POS,
                Permission.VIEW_KITCHEN_TICKETS,
                Permission.VIEW_REPORTS,
                Permission.VIEW_INVENTORY,
                Permission.VIEW_SETTINGS,
                Permission.PRINT_RECEIPTS,
                Permission.PRINT_KITCHEN_TICKETS,
            }
        ),
        Role.CASHIER: frozenset(
            {
                Permission.VIEW_POS,
                Permission.VIEW_SETTINGS,
                Permission.PRINT_RECEIPTS,
            }
        ),
        Role.KITCHEN: frozenset(
            {
                Permission.VIEW_KITCHEN_TICKETS,
                Permission.VIEW_SETTINGS,
                Permission.PRINT_KITCHEN_TICKETS,
            }
        ),
    }
)


def permissions_for(role: Role) -> frozenset[Permission]:
    """Return the permission set held by role (empty for an unmapped role)."""
    return ROLE_PERMISSIONS.get(role, frozenset())


def role_has_permission(role: Role, permission: Permission) -> bool:
    if role is Role.ADMIN:
        return True
    return permission in permissions_for(role)
