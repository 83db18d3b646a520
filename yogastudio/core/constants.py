"""Common application-wide constants."""

# Bucket for report rows whose class, tutor or location no longer resolves.
UNKNOWN_BUCKET = "Unknown"

# Booking statuses counted by tutor and location utilization reports.
UTILIZATION_STATUSES = ("confirmed", "completed")


__all__ = [
    "UNKNOWN_BUCKET",
    "UTILIZATION_STATUSES",
]
