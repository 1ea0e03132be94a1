from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import Session
from typing import Optional

from .. import models
from ..models.reschedule import RescheduleStatus


def resolve_pending_reschedule(
    db: Session,
    reschedule_id: int,
    decision: RescheduleStatus,
    user_id: Optional[int],
    at: datetime,
) -> bool:
    """Resolve a reschedule only while it is still ``pending``.

    Returns ``False`` when another transaction got there first. Does not commit.
    """
    result = db.execute(
        update(models.Reschedule)
        .where(
            models.Reschedule.id == reschedule_id,
            models.Reschedule.status == RescheduleStatus.PENDING,
        )
        .values(status=decision, resolved_by=user_id, resolved_at=at)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def reject_pending_for_booking(db: Session, booking_id: int, at: datetime) -> int:
    """Close every open reschedule of a booking that is leaving the lifecycle."""
    result = db.execute(
        update(models.Reschedule)
        .where(
            models.Reschedule.booking_id == booking_id,
            models.Reschedule.status == RescheduleStatus.PENDING,
        )
        .values(status=RescheduleStatus.REJECTED, resolved_at=at)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
