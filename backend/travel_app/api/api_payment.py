from fastapi import APIRouter, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import ORJSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session
from typing import Any, List, Optional
import logging

import orjson

from .. import models, schemas
from ..services import payment_service
from ..services.midtrans import MidtransClient, get_payment_gateway
from ..utils import error_response
from .dependencies import get_current_user, get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments"], default_response_class=ORJSONResponse)


@router.post("/", response_model=schemas.PaymentInitResponse, status_code=status.HTTP_201_CREATED)
def create_payment(
    payment_in: schemas.PaymentCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    gateway: MidtransClient = Depends(get_payment_gateway),
) -> Any:
    """Open a gateway payment session for the exact booking total."""
    return payment_service.process_payment(
        db,
        payment_in.booking_id,
        payment_in.method,
        payment_in.amount,
        current_user,
        gateway,
    )


@router.post("/callback", response_model=schemas.CallbackAck)
async def payment_callback(
    request: Request,
    db: Session = Depends(get_db),
    gateway: MidtransClient = Depends(get_payment_gateway),
) -> Any:
    """Midtrans HTTP notification. Unauthenticated; trust comes from the signature."""
    raw = await request.body()
    try:
        body = orjson.loads(raw or b"{}")
        payload = schemas.MidtransCallback.model_validate(body)
    except (orjson.JSONDecodeError, ValidationError):
        logger.warning("Malformed payment callback body")
        raise error_response(
            "Invalid callback payload",
            {"body": "Malformed notification"},
            status.HTTP_400_BAD_REQUEST,
        )
    # Reconciliation is blocking ORM work; keep it off the event loop
    return await run_in_threadpool(
        payment_service.handle_payment_callback, db, payload.model_dump(), gateway
    )


@router.get("/history", response_model=List[schemas.PaymentResponse])
def payment_history(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    return payment_service.get_payment_history(db, current_user)


@router.get("/{payment_id}", response_model=schemas.PaymentDetailResponse)
def read_payment(
    payment_id: int,
    refresh: bool = False,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    gateway: MidtransClient = Depends(get_payment_gateway),
) -> Any:
    return payment_service.get_payment_details(
        db, payment_id, current_user, gateway=gateway, refresh=refresh
    )


@router.post(
    "/retry/{booking_id}",
    response_model=schemas.PaymentInitResponse,
    status_code=status.HTTP_201_CREATED,
)
def retry_payment(
    booking_id: int,
    retry_in: Optional[schemas.PaymentRetry] = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    gateway: MidtransClient = Depends(get_payment_gateway),
) -> Any:
    retry_in = retry_in or schemas.PaymentRetry()
    return payment_service.retry_payment(
        db, booking_id, current_user, gateway, method=retry_in.method
    )
