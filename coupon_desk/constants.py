import enum


class AttendeeSource(str, enum.Enum):
    MANUAL = "manual"
    LUMA = "luma"
    WEBSITE = "website"


class ClaimantKind(str, enum.Enum):
    ATTENDEE = "attendee"
    LUMA_GUEST = "luma_guest"


class RegistrationStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    WAITLIST = "waitlist"
    DECLINED = "declined"
    CANCELLED = "cancelled"


class SyncStatus(str, enum.Enum):
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"


class SyncType(str, enum.Enum):
    MANUAL = "manual"
    SCHEDULED = "scheduled"
    WEBHOOK = "webhook"


class CouponFilter(str, enum.Enum):
    ALL = "all"
    USED = "used"
    AVAILABLE = "available"


class AssignmentFilter(str, enum.Enum):
    ALL = "all"
    WITH_COUPON = "with_coupon"
    WITHOUT_COUPON = "without_coupon"


LUMA_BASE_URL = "https://public-api.luma.com"
RESEND_BASE_URL = "https://api.resend.com"

DEFAULT_CITY_NAME = "Cafe Cursor"
DEFAULT_TIMEZONE = "America/Toronto"

# Luma warns when fewer requests than this remain in the current window
RATE_LIMIT_WARNING_THRESHOLD = 10
RECENT_SYNC_LOGS_LIMIT = 5
