from .profile import Profile, ProfileRole
from .routine import TeacherRoutine
from .booking import Booking, BookingStatus, ACTIVE_BOOKING_STATUSES
from .reminder import BookingReminder
from .audit_log import AuditLog, ActorType
