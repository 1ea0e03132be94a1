from .user import User, UserRole
from .catalog import TravelPackage, Hotel, Flight
from .booking import Booking, BookingHotel, BookingFlight, SeatClass
from .booking_status import BookingStatus, BookingType, PaymentStatus, TERMINAL_BOOKING_STATUSES
from .payment import Payment, PaymentMethod
from .reschedule import Reschedule, RescheduleStatus
from .refund import Refund, RefundMethod, RefundStatus
from .notification import Notification, NotificationEvent, NotificationType
from .review import Review, ReviewTarget
from .testimonial import Testimonial

__all__ = [
    "User",
    "UserRole",
    "TravelPackage",
    "Hotel",
    "Flight",
    "Booking",
    "BookingHotel",
    "BookingFlight",
    "SeatClass",
    "BookingStatus",
    "BookingType",
    "PaymentStatus",
    "TERMINAL_BOOKING_STATUSES",
    "Payment",
    "PaymentMethod",
    "Reschedule",
    "RescheduleStatus",
    "Refund",
    "RefundMethod",
    "RefundStatus",
    "Notification",
    "NotificationEvent",
    "NotificationType",
    "Review",
    "ReviewTarget",
    "Testimonial",
]
