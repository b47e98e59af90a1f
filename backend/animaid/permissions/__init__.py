# Overview: Permission system package.
# Re-exports all public APIs.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    REGISTRATION_PERMISSIONS,
    CALENDAR_PERMISSIONS,
    ATTENDANCE_PERMISSIONS,
    COMMUNICATION_PERMISSIONS,
    MEDIA_PERMISSIONS,
    WIKI_PERMISSIONS,
    SPACE_PERMISSIONS,
    REPORT_PERMISSIONS,
    ADMIN_PERMISSIONS,
)
from .roles import ADMIN_ROLE, DEFAULT_ROLES, DEFAULT_ROLE_PERMISSIONS

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "REGISTRATION_PERMISSIONS",
    "CALENDAR_PERMISSIONS",
    "ATTENDANCE_PERMISSIONS",
    "COMMUNICATION_PERMISSIONS",
    "MEDIA_PERMISSIONS",
    "WIKI_PERMISSIONS",
    "SPACE_PERMISSIONS",
    "REPORT_PERMISSIONS",
    "ADMIN_PERMISSIONS",
    "ADMIN_ROLE",
    "DEFAULT_ROLES",
    "DEFAULT_ROLE_PERMISSIONS",
]
