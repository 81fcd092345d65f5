from . import (
    bookings,
    misc,
    profiles,
    routines,
    teachers,
)

__all__ = [
    "bookings",
    "misc",
    "profiles",
    "routines",
    "teachers",
]
