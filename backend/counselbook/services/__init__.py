from . import (
    booking_service,
    notification_service,
    profile_service,
    routine_service,
    slot_service,
)
__all__ = [
    "booking_service",
    "notification_service",
    "profile_service",
    "routine_service",
    "slot_service",
]
