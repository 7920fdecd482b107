"""Shared enumerations for users, tickets and computer assets."""

ROLE_USER = "user"
ROLE_TECHNICIAN = "technician"
ROLE_ADMIN = "admin"

ROLE_CHOICES = (ROLE_USER, ROLE_TECHNICIAN, ROLE_ADMIN)

# Roles allowed to triage tickets, manage assets and pick requestors.
STAFF_ROLES = {ROLE_TECHNICIAN, ROLE_ADMIN}

TICKET_TYPE_CHOICES = ("incident", "request")

PRIORITY_CRITICAL = "critical"
PRIORITY_CHOICES = (PRIORITY_CRITICAL, "high", "medium", "low")
# Higher rank sorts first.
PRIORITY_RANK = {"critical": 4, "high": 3, "medium": 2, "low": 1}

TICKET_STATUS_OPEN = "open"
TICKET_STATUS_IN_PROGRESS = "in_progress"
TICKET_STATUS_RESOLVED = "resolved"
TICKET_STATUS_CLOSED = "closed"

TICKET_STATUS_CHOICES = (
    TICKET_STATUS_OPEN,
    TICKET_STATUS_IN_PROGRESS,
    TICKET_STATUS_RESOLVED,
    TICKET_STATUS_CLOSED,
)
ACTIVE_TICKET_STATUSES = (TICKET_STATUS_OPEN, TICKET_STATUS_IN_PROGRESS)
FINISHED_TICKET_STATUSES = (TICKET_STATUS_RESOLVED, TICKET_STATUS_CLOSED)

COMPUTER_TYPE_CHOICES = ("desktop", "laptop", "workstation", "server")

COMPUTER_STATUS_ACTIVE = "active"
COMPUTER_STATUS_MAINTENANCE = "maintenance"
COMPUTER_STATUS_RETIRED = "retired"
COMPUTER_STATUS_STORAGE = "storage"

COMPUTER_STATUS_CHOICES = (
    COMPUTER_STATUS_ACTIVE,
    COMPUTER_STATUS_MAINTENANCE,
    COMPUTER_STATUS_RETIRED,
    COMPUTER_STATUS_STORAGE,
)

SOFTWARE_STATUS_CHOICES = ("active", "expired", "uninstalled")


def choice_pattern(choices: tuple[str, ...]) -> str:
    """Regex accepted by pydantic ``Field(pattern=...)`` for a choice tuple."""

    return f"^({'|'.join(choices)})$"


def normalize_choice(value: str | None, choices: tuple[str, ...], label: str) -> str:
    """Return a lowercase member of ``choices`` or raise ``ValueError``."""

    normalized = (value or "").strip().lower()
    if normalized not in choices:
        raise ValueError(f"Invalid {label} - {value}")
    return normalized


def humanize_status(value: str | None) -> str:
    return (value or "").replace("_", " ")


__all__ = [
    "ACTIVE_TICKET_STATUSES",
    "COMPUTER_STATUS_ACTIVE",
    "COMPUTER_STATUS_CHOICES",
    "COMPUTER_STATUS_MAINTENANCE",
    "COMPUTER_STATUS_RETIRED",
    "COMPUTER_STATUS_STORAGE",
    "COMPUTER_TYPE_CHOICES",
    "FINISHED_TICKET_STATUSES",
    "PRIORITY_CHOICES",
    "PRIORITY_CRITICAL",
    "PRIORITY_RANK",
    "ROLE_ADMIN",
    "ROLE_CHOICES",
    "ROLE_TECHNICIAN",
    "ROLE_USER",
    "SOFTWARE_STATUS_CHOICES",
    "STAFF_ROLES",
    "TICKET_STATUS_CHOICES",
    "TICKET_STATUS_CLOSED",
    "TICKET_STATUS_IN_PROGRESS",
    "TICKET_STATUS_OPEN",
    "TICKET_STATUS_RESOLVED",
    "TICKET_TYPE_CHOICES",
    "choice_pattern",
    "humanize_status",
    "normalize_choice",
]
