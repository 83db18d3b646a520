from .common import Envelope, Message
from .user import (
    User,
    UserCreate,
    UserRegister,
    UserUpdate,
    UserSummary,
    ProfileUpdate,
    PasswordChange,
)
from .tutor import (
    Tutor,
    TutorCreate,
    TutorUpdate,
    TutorStatusUpdate,
    TutorSummary,
    AvailabilityUpdate,
    RatingCreate,
)
from .location import Location, LocationCreate, LocationUpdate, LocationStatusUpdate, LocationSummary
from .yoga_class import YogaClass, ClassCreate, ClassUpdate, ClassSummary, ScheduleSlot
from .booking import (
    Booking,
    BookingCreate,
    BookingUpdate,
    BookingStatusUpdate,
    BookingFilter,
    AttendanceUpdate,
)
from .notification import Notification, NotificationCreate
from .report import DateRange, ReportExport, ReportType, ExportFormat
