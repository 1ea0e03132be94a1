from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import Any, Dict, List, Optional, Tuple

from .. import models


def create_notification(
    db: Session,
    user_id: int,
    type: models.NotificationType,
    event: str,
    message: str,
    link: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
) -> models.Notification:
    db_obj = models.Notification(
        user_id=user_id,
        type=type,
        event=event,
        message=message,
        link=link,
        data=data,
    )
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def get_notifications_for_user(
    db: Session,
    user_id: int,
    skip: int = 0,
    limit: int | None = None,
    is_read: Optional[bool] = None,
    type: Optional[models.NotificationType] = None,
) -> Tuple[List[models.Notification], int]:
    """Return notifications newest first plus the unpaginated total."""
    query = db.query(models.Notification).filter(models.Notification.user_id == user_id)
    if is_read is not None:
        query = query.filter(models.Notification.is_read == is_read)
    if type is not None:
        query = query.filter(models.Notification.type == type)
    total = query.with_entities(func.count(models.Notification.id)).scalar() or 0
    query = query.order_by(models.Notification.created_at.desc(), models.Notification.id.desc())
    if skip:
        query = query.offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return query.all(), total


def get_notification(db: Session, notification_id: int) -> models.Notification | None:
    return (
        db.query(models.Notification)
        .filter(models.Notification.id == notification_id)
        .first()
    )


def mark_as_read(
    db: Session, db_notification: models.Notification
) -> models.Notification:
    db_notification.is_read = True
    db.commit()
    db.refresh(db_notification)
    return db_notification


def mark_all_as_read(db: Session, user_id: int) -> int:
    updated = (
        db.query(models.Notification)
        .filter(models.Notification.user_id == user_id, models.Notification.is_read.is_(False))
        .update({models.Notification.is_read: True}, synchronize_session=False)
    )
    db.commit()
    return updated


def get_unread_count(db: Session, user_id: int) -> int:
    return (
        db.query(func.count(models.Notification.id))
        .filter(models.Notification.user_id == user_id, models.Notification.is_read.is_(False))
        .scalar()
        or 0
    )


def delete_notification(db: Session, db_notification: models.Notification) -> None:
    db.delete(db_notification)
    db.commit()
