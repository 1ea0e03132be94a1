from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session
from typing import Any, Optional
import logging

from .. import crud, models, schemas
from ..models.notification import NotificationEvent, NotificationType
from ..utils import error_response
from .api_ws import notifications_manager
from .dependencies import get_current_admin, get_current_user, get_db

router = APIRouter(tags=["notifications"], default_response_class=ORJSONResponse)

logger = logging.getLogger(__name__)


def _owned_notification(db: Session, notification_id: int, user: models.User) -> models.Notification:
    db_notif = crud.crud_notification.get_notification(db, notification_id)
    if not db_notif or db_notif.user_id != user.id:
        raise error_response(
            "Notification not found",
            {"notification_id": "not_found"},
            status.HTTP_404_NOT_FOUND,
        )
    return db_notif


@router.get("/notifications", response_model=schemas.Page[schemas.NotificationResponse])
def read_my_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    is_read: Optional[bool] = None,
    type: Optional[NotificationType] = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    """Retrieve the caller's notifications, newest first."""
    items, total = crud.crud_notification.get_notifications_for_user(
        db,
        current_user.id,
        skip=(page - 1) * limit,
        limit=limit,
        is_read=is_read,
        type=type,
    )
    return schemas.Page[schemas.NotificationResponse](
        data=[schemas.NotificationResponse.model_validate(n) for n in items],
        meta=schemas.build_page_meta(total, page, limit),
    )


@router.get("/notifications/unread-count", response_model=schemas.UnreadCount)
def read_unread_count(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    return {"count": crud.crud_notification.get_unread_count(db, current_user.id)}


@router.put("/notifications/read-all")
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Mark all notifications as read for the current user."""
    updated = crud.crud_notification.mark_all_as_read(db, current_user.id)
    return {"updated": updated}


@router.put("/notifications/{notification_id}/read", response_model=schemas.NotificationResponse)
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    db_notif = _owned_notification(db, notification_id, current_user)
    return crud.crud_notification.mark_as_read(db, db_notif)


@router.delete("/notifications/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> None:
    db_notif = _owned_notification(db, notification_id, current_user)
    crud.crud_notification.delete_notification(db, db_notif)


@router.get("/notifications/admin/stats", response_model=schemas.NotificationStats)
def notification_stats(current_user: models.User = Depends(get_current_admin)) -> Any:
    return {
        "online_users": notifications_manager.online_count(),
        "open_sessions": notifications_manager.session_count(),
    }


@router.post("/notifications/admin/broadcast")
async def broadcast_notification(
    broadcast_in: schemas.BroadcastRequest,
    current_user: models.User = Depends(get_current_admin),
):
    """Push a system message to every connected session (not persisted)."""
    payload = {
        "event": NotificationEvent.BROADCAST.value,
        "type": NotificationType.SYSTEM.value,
        "message": broadcast_in.message,
        "data": broadcast_in.data or {},
    }
    delivered = await notifications_manager.broadcast_all(payload)
    logger.info("Admin %s broadcast delivered to %s sessions", current_user.id, delivered)
    return {"delivered": delivered}
