from .user import User, UserRole
from .tutor import Tutor, TutorStatus
from .location import Location, LocationStatus
from .yoga_class import YogaClass, ScheduleSlot, ClassStatus, ClassCategory, ClassLevel
from .booking import (
    ACTIVE_BOOKING_STATUSES,
    AttendanceStatus,
    Booking,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
)
from .notification import Notification, NotificationType
