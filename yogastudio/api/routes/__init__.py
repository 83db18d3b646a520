from . import (
    auth,
    users,
    classes,
    tutors,
    locations,
    bookings,
    reports,
    notifications,
    misc,
)

__all__ = [
    "auth",
    "users",
    "classes",
    "tutors",
    "locations",
    "bookings",
    "reports",
    "notifications",
    "misc",
]
