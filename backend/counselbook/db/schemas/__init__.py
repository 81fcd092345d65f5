from .profile import Profile, ProfileSync, Teacher
from .routine import Routine, RoutineCreate, RoutineUpdate
from .slot import Slot, Availability
from .booking import (
    Booking,
    BookingApprove,
    BookingComplete,
    BookingCreate,
    BookingReject,
    BookingStats,
)
from .reminder import ReminderSchedule
