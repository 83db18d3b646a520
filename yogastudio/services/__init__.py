from . import (
    booking_service,
    class_service,
    location_service,
    notification_service,
    report_service,
    tutor_service,
    user_service,
)
__all__ = [
    "booking_service",
    "class_service",
    "location_service",
    "notification_service",
    "report_service",
    "tutor_service",
    "user_service",
]
