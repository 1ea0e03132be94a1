import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from .. import models, schemas
from ..models.booking_status import BookingType
from ..models.refund import RefundStatus
from ..schemas.common import UTCDateTime
from ..services import refund_service
from ..services.midtrans import MidtransClient, get_payment_gateway
from .dependencies import get_current_staff, get_current_user, get_db

router = APIRouter(tags=["refunds"], default_response_class=ORJSONResponse)
logger = logging.getLogger(__name__)


def refund_filters(
    status: Optional[RefundStatus] = None,
    booking_type: Optional[BookingType] = None,
    start_date: Optional[UTCDateTime] = None,
    end_date: Optional[UTCDateTime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
) -> schemas.RefundFilters:
    return schemas.RefundFilters(
        status=status,
        booking_type=booking_type,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )


@router.post("/", response_model=schemas.RefundResponse, status_code=status.HTTP_201_CREATED)
def request_refund(
    refund_in: schemas.RefundCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    """Cancel a confirmed, paid booking and open a refund for it."""
    return refund_service.request_refund(db, refund_in.booking_id, refund_in.reason, current_user)


@router.get("/", response_model=schemas.Page[schemas.RefundResponse])
def list_refunds(
    filters: schemas.RefundFilters = Depends(refund_filters),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    return refund_service.list_refunds(db, current_user, filters)


@router.get("/{refund_id}", response_model=schemas.RefundDetailResponse)
def read_refund(
    refund_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    return refund_service.get_refund(db, refund_id, current_user)


@router.put("/{refund_id}/process", response_model=schemas.RefundResponse)
def process_refund(
    refund_id: int,
    process_in: schemas.RefundProcess,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_staff),
    gateway: MidtransClient = Depends(get_payment_gateway),
) -> Any:
    return refund_service.process_refund(
        db,
        refund_id,
        RefundStatus(process_in.status),
        current_user,
        gateway,
        refund_method=process_in.refund_method,
        refund_proof=process_in.refund_proof,
    )
