# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    REGISTRATIONS = "registrations"
    CALENDAR = "calendar"
    ATTENDANCE = "attendance"
    COMMUNICATIONS = "communications"
    MEDIA = "media"
    WIKI = "wiki"
    SPACES = "spaces"
    REPORTS = "reports"
    ADMIN = "admin"
