# backend/travel_app/api/api_booking.py

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from .. import models, schemas
from ..models.booking_status import BookingStatus, BookingType, PaymentStatus
from ..schemas.common import UTCDateTime
from ..services import booking_service, refund_service, reschedule_service
from .dependencies import get_current_staff, get_current_user, get_db

router = APIRouter(tags=["bookings"], default_response_class=ORJSONResponse)
logger = logging.getLogger(__name__)
# ‣ Note: no prefix here.  main.py mounts this router at /api/v1/bookings


def booking_filters(
    status: Optional[BookingStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    type: Optional[BookingType] = None,
    start_date: Optional[UTCDateTime] = None,
    end_date: Optional[UTCDateTime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
) -> schemas.BookingFilters:
    return schemas.BookingFilters(
        status=status,
        payment_status=payment_status,
        type=type,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )


@router.post("/", response_model=schemas.BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    *,
    db: Session = Depends(get_db),
    booking_in: schemas.BookingCreate,
    current_user: models.User = Depends(get_current_user),
) -> Any:
    """Create a package, hotel, flight or custom booking for the caller."""
    return booking_service.create_booking(db, booking_in, current_user)


@router.get("/", response_model=schemas.Page[schemas.BookingResponse])
def list_bookings(
    filters: schemas.BookingFilters = Depends(booking_filters),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    return booking_service.list_bookings(db, current_user, filters)


@router.post(
    "/reschedules",
    response_model=schemas.RescheduleResponse,
    status_code=status.HTTP_201_CREATED,
)
def request_reschedule(
    reschedule_in: schemas.RescheduleCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    return reschedule_service.request_reschedule(
        db, reschedule_in.booking_id, reschedule_in.requested_date, current_user
    )


@router.put("/reschedules/{reschedule_id}/approve", response_model=schemas.RescheduleResponse)
def approve_reschedule(
    reschedule_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_staff),
) -> Any:
    return reschedule_service.handle_reschedule_request(db, reschedule_id, True, current_user)


@router.put("/reschedules/{reschedule_id}/reject", response_model=schemas.RescheduleResponse)
def reject_reschedule(
    reschedule_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_staff),
) -> Any:
    return reschedule_service.handle_reschedule_request(db, reschedule_id, False, current_user)


@router.get("/{booking_id}", response_model=schemas.BookingResponse)
def read_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    return booking_service.get_booking(db, booking_id, current_user)


@router.put("/{booking_id}/status", response_model=schemas.BookingResponse)
def update_booking_status(
    booking_id: int,
    status_in: schemas.BookingStatusUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    return booking_service.update_booking_status(db, booking_id, status_in.status, current_user)


@router.post("/{booking_id}/cancel", response_model=schemas.BookingResponse)
def cancel_booking(
    booking_id: int,
    cancel_in: schemas.BookingCancel,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    """Cancel the caller's booking, optionally opening a refund for a paid one."""
    return refund_service.cancel_booking(
        db, booking_id, cancel_in.reason, cancel_in.request_refund, current_user
    )
