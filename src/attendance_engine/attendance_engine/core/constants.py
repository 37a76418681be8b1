"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_CHECK_IN_OPEN = "07:30"
DEFAULT_LATE_CUTOFF = "08:30"
DEFAULT_CHECK_OUT_OPEN = "15:30"
DEFAULT_GEOFENCE_TOLERANCE_M = 100
DEFAULT_FACE_MATCH_THRESHOLD = 0.6
DEFAULT_FACE_VERIFY_TIMEOUT_S = 10.0

# Canonical identifier of the medical leave type ("Sakit").
MEDICAL_LEAVE_LABEL = "sakit"

EARTH_RADIUS_M = 6371000

WEEKLY_HIGH_ABSENCE_THRESHOLD = 2
MONTHLY_HIGH_ABSENCE_THRESHOLD = 5

LATE_CHECKIN_NOTE = "Late check-in"
BACKFILL_ABSENT_NOTE = "No attendance submitted"
EXPIRED_LEAVE_NOTE = "Automatically rejected: leave period elapsed without a decision"
