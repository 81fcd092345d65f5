"""Common application-wide constants."""

from datetime import timedelta

# Length of every counselling session, in minutes since midnight arithmetic
SLOT_DURATION_MIN = 90

# Reminders fire this long before the session starts
REMINDER_LEAD_TIME = timedelta(hours=2)

# Stored as ``teacher_notes`` when a teacher rejects without a comment
DEFAULT_REJECTION_NOTE = "Booking rejected"

# Metadata for non-human actors
SYSTEM_ACTOR = "system"
SERVICE_ACTOR = "service"


__all__ = [
    "SLOT_DURATION_MIN",
    "REMINDER_LEAD_TIME",
    "DEFAULT_REJECTION_NOTE",
    "SYSTEM_ACTOR",
    "SERVICE_ACTOR",
]
