# Overview: All permission definitions organized by category.
# Each permission is defined as: (name, display_name, description, category)

from .categories import PermissionCategory


# -- REGISTRATIONS --

REGISTRATION_PERMISSIONS = [
    ("registrations.view", "View Registrations", "Can view child registrations", PermissionCategory.REGISTRATIONS),
    ("registrations.create", "Create Registrations", "Can create new registrations", PermissionCategory.REGISTRATIONS),
    ("registrations.edit", "Edit Registrations", "Can edit existing registrations", PermissionCategory.REGISTRATIONS),
    ("registrations.delete", "Delete Registrations", "Can delete registrations", PermissionCategory.REGISTRATIONS),
    ("registrations.approve", "Approve Registrations", "Can approve pending registrations", PermissionCategory.REGISTRATIONS),
]


# -- CALENDAR --

CALENDAR_PERMISSIONS = [
    ("calendar.view", "View Calendar", "Can view calendar events", PermissionCategory.CALENDAR),
    ("calendar.create", "Create Calendar Events", "Can create calendar events", PermissionCategory.CALENDAR),
    ("calendar.edit", "Edit Calendar Events", "Can edit calendar events", PermissionCategory.CALENDAR),
    ("calendar.delete", "Delete Calendar Events", "Can delete calendar events", PermissionCategory.CALENDAR),
    ("calendar.publish", "Publish Calendar Events", "Can publish events to public calendar", PermissionCategory.CALENDAR),
]


# -- ATTENDANCE --

ATTENDANCE_PERMISSIONS = [
    ("attendance.view", "View Attendance", "Can view attendance records", PermissionCategory.ATTENDANCE),
    ("attendance.checkin", "Check-in/Check-out", "Can perform check-in/check-out", PermissionCategory.ATTENDANCE),
    ("attendance.edit", "Edit Attendance", "Can edit attendance records", PermissionCategory.ATTENDANCE),
    ("attendance.report", "Generate Reports", "Can generate attendance reports", PermissionCategory.ATTENDANCE),
]


# -- COMMUNICATIONS --

COMMUNICATION_PERMISSIONS = [
    ("communications.view", "View Communications", "Can view internal communications", PermissionCategory.COMMUNICATIONS),
    ("communications.send", "Send Messages", "Can send internal messages", PermissionCategory.COMMUNICATIONS),
    ("communications.broadcast", "Broadcast Messages", "Can send broadcast messages", PermissionCategory.COMMUNICATIONS),
    ("communications.manage", "Manage Communications", "Can manage communication settings", PermissionCategory.COMMUNICATIONS),
]


# -- MEDIA --

MEDIA_PERMISSIONS = [
    ("media.view", "View Media", "Can view media files", PermissionCategory.MEDIA),
    ("media.upload", "Upload Media", "Can upload media files", PermissionCategory.MEDIA),
    ("media.approve", "Approve Media", "Can approve media for publication", PermissionCategory.MEDIA),
    ("media.delete", "Delete Media", "Can delete media files", PermissionCategory.MEDIA),
]


# -- WIKI --

WIKI_PERMISSIONS = [
    ("wiki.view", "View Wiki", "Can view wiki content", PermissionCategory.WIKI),
    ("wiki.edit", "Edit Wiki", "Can edit wiki content", PermissionCategory.WIKI),
    ("wiki.create", "Create Wiki Entries", "Can create new wiki entries", PermissionCategory.WIKI),
    ("wiki.moderate", "Moderate Wiki", "Can moderate user feedback", PermissionCategory.WIKI),
]


# -- SPACES --

SPACE_PERMISSIONS = [
    ("spaces.view", "View Spaces", "Can view space bookings", PermissionCategory.SPACES),
    ("spaces.book", "Book Spaces", "Can create space bookings", PermissionCategory.SPACES),
    ("spaces.edit", "Edit Space Bookings", "Can edit space bookings", PermissionCategory.SPACES),
    ("spaces.manage", "Manage Spaces", "Can manage space configurations", PermissionCategory.SPACES),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    ("reports.view", "View Reports", "Can view reports and KPIs", PermissionCategory.REPORTS),
    ("reports.generate", "Generate Reports", "Can generate custom reports", PermissionCategory.REPORTS),
    ("reports.export", "Export Reports", "Can export report data", PermissionCategory.REPORTS),
]


# -- ADMIN --

ADMIN_PERMISSIONS = [
    ("admin.users", "Manage Users", "Can manage users", PermissionCategory.ADMIN),
    ("admin.roles", "Manage Roles", "Can manage roles and permissions", PermissionCategory.ADMIN),
    ("admin.system", "System Administration", "Can manage system settings", PermissionCategory.ADMIN),
    ("admin.backup", "Backup System", "Can perform system backups", PermissionCategory.ADMIN),
]


# Combined list of all permissions (preserves original ordering)
PERMISSION_DEFINITIONS = (
    REGISTRATION_PERMISSIONS
    + CALENDAR_PERMISSIONS
    + ATTENDANCE_PERMISSIONS
    + COMMUNICATION_PERMISSIONS
    + MEDIA_PERMISSIONS
    + WIKI_PERMISSIONS
    + SPACE_PERMISSIONS
    + REPORT_PERMISSIONS
    + ADMIN_PERMISSIONS
)
