from .common import Page, PageMeta, UTCDateTime, build_page_meta
from .user import UserSummary
from .catalog import (
    TravelPackageCreate,
    TravelPackageUpdate,
    TravelPackageResponse,
    QuotaAdjust,
    HotelCreate,
    HotelUpdate,
    HotelResponse,
    FlightCreate,
    FlightUpdate,
    FlightResponse,
)
from .booking import (
    BookingCreate,
    PackageBookingCreate,
    HotelBookingCreate,
    FlightBookingCreate,
    CustomBookingCreate,
    HotelStayIn,
    FlightSegmentIn,
    BookingFilters,
    BookingStatusUpdate,
    BookingCancel,
    BookingResponse,
)
from .reschedule import RescheduleCreate, RescheduleResponse
from .refund import RefundCreate, RefundProcess, RefundFilters, RefundResponse, RefundDetailResponse
from .payment import (
    PaymentCreate,
    PaymentRetry,
    PaymentResponse,
    PaymentInitResponse,
    PaymentDetailResponse,
    MidtransCallback,
    CallbackAck,
)
from .notification import NotificationResponse, UnreadCount, BroadcastRequest, NotificationStats
from .review import (
    ReviewCreate,
    ReviewUpdate,
    ReviewFilters,
    ReviewAuthor,
    ReviewResponse,
    RatingSummary,
    ReviewListResponse,
    TestimonialIn,
    TestimonialResponse,
)
