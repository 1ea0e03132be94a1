from sqlalchemy.orm import Session
from typing import List, Optional

from .. import models


def get_by_order_id(db: Session, order_id: str) -> Optional[models.Payment]:
    return db.query(models.Payment).filter(models.Payment.order_id == order_id).first()


def get_payment_for_user(db: Session, payment_id: int, user_id: int) -> Optional[models.Payment]:
    return (
        db.query(models.Payment)
        .join(models.Payment.booking)
        .filter(models.Payment.id == payment_id, models.Booking.user_id == user_id)
        .first()
    )


def get_payments_for_user(db: Session, user_id: int) -> List[models.Payment]:
    return (
        db.query(models.Payment)
        .join(models.Payment.booking)
        .filter(models.Booking.user_id == user_id)
        .order_by(models.Payment.created_at.desc(), models.Payment.id.desc())
        .all()
    )


def latest_payment_for_booking(db: Session, booking_id: int) -> Optional[models.Payment]:
    """Prefer the settled attempt; fall back to the most recent one."""
    settled = (
        db.query(models.Payment)
        .filter(models.Payment.booking_id == booking_id, models.Payment.payment_date.isnot(None))
        .order_by(models.Payment.payment_date.desc())
        .first()
    )
    if settled is not None:
        return settled
    return (
        db.query(models.Payment)
        .filter(models.Payment.booking_id == booking_id)
        .order_by(models.Payment.id.desc())
        .first()
    )
