# Overview: Default system roles and the permissions each one is seeded with.

from .definitions import PERMISSION_DEFINITIONS


# (name, display_name, description)
DEFAULT_ROLES = [
    ("technical_admin", "Technical Admin", "Full system access"),
    ("organizzatore", "Organizzatore", "Center organization"),
    ("responsabile", "Responsabile", "Department responsibility"),
    ("animatore", "Animatore", "Activity animator"),
    ("aiutoanimatore", "Aiutoanimatore", "Assistant animator"),
]

ADMIN_ROLE = "technical_admin"


DEFAULT_ROLE_PERMISSIONS = {
    ADMIN_ROLE: [perm[0] for perm in PERMISSION_DEFINITIONS],

    "organizzatore": [
        "registrations.view", "registrations.create", "registrations.edit", "registrations.approve",
        "calendar.view", "calendar.create", "calendar.edit", "calendar.publish",
        "attendance.view", "attendance.report",
        "communications.view", "communications.send", "communications.broadcast",
        "media.view", "media.upload", "media.approve",
        "wiki.view", "wiki.edit", "wiki.create",
        "spaces.view", "spaces.book", "spaces.edit",
        "reports.view", "reports.generate", "reports.export",
    ],

    "responsabile": [
        "registrations.view", "registrations.edit",
        "calendar.view", "calendar.create", "calendar.edit",
        "attendance.view", "attendance.checkin", "attendance.edit", "attendance.report",
        "communications.view", "communications.send",
        "media.view", "media.upload",
        "wiki.view", "wiki.edit",
        "spaces.view", "spaces.book", "spaces.edit",
        "reports.view", "reports.generate",
    ],

    "animatore": [
        "registrations.view",
        "calendar.view", "calendar.edit",
        "attendance.view", "attendance.checkin", "attendance.edit",
        "communications.view", "communications.send",
        "media.view", "media.upload",
        "wiki.view", "wiki.edit",
        "spaces.view", "spaces.book",
    ],

    "aiutoanimatore": [
        "registrations.view",
        "calendar.view",
        "attendance.view", "attendance.checkin",
        "communications.view",
        "media.view",
        "wiki.view",
        "spaces.view",
    ],
}
