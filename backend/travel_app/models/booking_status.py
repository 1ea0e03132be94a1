import enum


class BookingStatus(str, enum.Enum):
    """Central booking status enumeration used across the application."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    # Legacy label still accepted by list filters
    RESCHEDULED = "rescheduled"


TERMINAL_BOOKING_STATUSES = frozenset(
    {BookingStatus.REJECTED, BookingStatus.CANCELLED, BookingStatus.REFUNDED}
)


class PaymentStatus(str, enum.Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    FAILED = "failed"


class BookingType(str, enum.Enum):
    PACKAGE = "package"
    HOTEL = "hotel"
    FLIGHT = "flight"
    CUSTOM = "custom"
