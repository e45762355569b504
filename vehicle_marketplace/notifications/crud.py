"""
Database operations for notifications.

Every notification is stored for the recipient's in-app inbox. Email and SMS
notifications are additionally handed to the delivery gateway through the
webhook system by the API layer.
"""
import logging
from datetime import datetime
from typing import List, Tuple

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from .. import errors, models
from ..database import transaction
from ..responses import new_id
from . import schemas

logger = logging.getLogger(__name__)


def _build(user_id: str, content, now: datetime) -> models.Notification:
    return models.Notification(
        id=new_id(),
        user_id=user_id,
        type=content.type,
        channel=content.channel,
        title=content.title,
        message=content.message,
        data=content.data,
        status="sent",
        is_read=False,
        sent_at=now,
    )


def create_notification(db: Session, notification: schemas.NotificationCreate) -> models.Notification:
    """
    Raises:
        NotFound: no such recipient
    """
    if db.get(models.User, notification.user_id) is None:
        raise errors.NotFound("User not found")
    db_notification = _build(notification.user_id, notification, datetime.utcnow())
    db.add(db_notification)
    db.commit()
    db.refresh(db_notification)
    logger.info(f"Notification created: {db_notification.id} ({db_notification.channel}) for user: {notification.user_id}")
    return db_notification


def create_bulk_notifications(db: Session, bulk: schemas.BulkNotificationCreate) -> List[models.Notification]:
    """
    Store one notification per recipient, all or none.

    Duplicate recipient ids receive a single notification.

    Raises:
        ValidationError: some recipients do not exist
    """
    user_ids = list(dict.fromkeys(bulk.user_ids))
    found = {row.id for row in db.query(models.User.id).filter(models.User.id.in_(user_ids))}
    missing = [user_id for user_id in user_ids if user_id not in found]
    if missing:
        raise errors.ValidationError("Unknown notification recipients", {"user_ids": missing})

    now = datetime.utcnow()
    with transaction(db):
        notifications = [_build(user_id, bulk, now) for user_id in user_ids]
        db.add_all(notifications)

    for notification in notifications:
        db.refresh(notification)
    logger.info(f"Bulk notifications sent to {len(notifications)} users")
    return notifications


def list_notifications(
    db: Session, user_id: str, unread_only: bool = False, page: int = 1, limit: int = 20
) -> Tuple[List[models.Notification], int, int]:
    """
    The user's notifications, newest first.

    Returns:
        Tuple of (notifications on the page, total matching, total unread)
    """
    query = db.query(models.Notification).filter(models.Notification.user_id == user_id)
    unread = (
        db.query(func.count(models.Notification.id))
        .filter(models.Notification.user_id == user_id, models.Notification.is_read.is_(False))
        .scalar()
    )
    if unread_only:
        query = query.filter(models.Notification.is_read.is_(False))
    total = query.count()
    notifications = (
        query.order_by(models.Notification.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return notifications, total, unread


def mark_read(db: Session, notification_id: str, user_id: str) -> models.Notification:
    """
    Mark one of the user's notifications read. Reading twice keeps the first read time.

    Raises:
        NotFoundOrUnauthorized: missing or addressed to someone else
    """
    with transaction(db):
        result = db.execute(
            update(models.Notification)
            .where(models.Notification.id == notification_id, models.Notification.user_id == user_id)
            .values(is_read=True, read_at=func.coalesce(models.Notification.read_at, datetime.utcnow()))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise errors.NotFoundOrUnauthorized("Notification")

    return (
        db.query(models.Notification)
        .filter(models.Notification.id == notification_id)
        .populate_existing()
        .first()
    )


def mark_all_read(db: Session, user_id: str) -> int:
    """Mark every unread notification of the user read; returns how many changed."""
    with transaction(db):
        result = db.execute(
            update(models.Notification)
            .where(models.Notification.user_id == user_id, models.Notification.is_read.is_(False))
            .values(is_read=True, read_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
    return result.rowcount
