"""
Notifications API.

Endpoints:
    GET /notifications: The caller's notifications
    PUT /notifications/read-all: Mark all of the caller's notifications read
    PUT /notifications/{notification_id}/read: Mark one notification read
    POST /notifications: Send a notification to a user (admin)
    POST /notifications/bulk: Send a notification to several users (admin)
"""
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from .. import auth, models, webhooks
from ..config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..database import get_db
from ..responses import pagination, success_response
from ..schemas import ApiResponse
from . import crud, schemas

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _hand_off(background_tasks: BackgroundTasks, notifications) -> None:
    for notification in notifications:
        if notification.channel != "in_app":
            webhooks.notify_notification_created(background_tasks, notification)


@router.get("", response_model=ApiResponse[schemas.NotificationList])
def list_notifications(
    unread_only: bool = Query(default=False, alias="unreadOnly"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    notifications, total, unread = crud.list_notifications(
        db, current_user.id, unread_only=unread_only, page=page, limit=limit
    )
    return success_response(
        {"notifications": notifications, "unread": unread, "pagination": pagination(page, limit, total)},
        "Notifications fetched successfully",
    )


@router.put("/read-all", response_model=ApiResponse[dict])
def mark_all_read(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    updated = crud.mark_all_read(db, current_user.id)
    return success_response({"updated": updated}, "Notifications marked as read")


@router.put("/{notification_id}/read", response_model=ApiResponse[schemas.Notification])
def mark_read(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Raises:
        400: NotFoundOrUnauthorized
    """
    return success_response(crud.mark_read(db, notification_id, current_user.id), "Notification marked as read")


@router.post("", response_model=ApiResponse[schemas.Notification], status_code=status.HTTP_201_CREATED)
def send_notification(
    notification: schemas.NotificationCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.require_admin)
):
    """
    Store a notification for a user (admin only).

    Email and SMS notifications are also handed to the delivery gateway.

    Raises:
        404: unknown recipient
    """
    db_notification = crud.create_notification(db, notification)
    _hand_off(background_tasks, [db_notification])
    return success_response(db_notification, "Notification sent successfully", status.HTTP_201_CREATED)


@router.post("/bulk", response_model=ApiResponse[List[schemas.Notification]], status_code=status.HTTP_201_CREATED)
def send_bulk_notifications(
    bulk: schemas.BulkNotificationCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.require_admin)
):
    """
    Raises:
        400: some recipients do not exist; nothing is stored
    """
    notifications = crud.create_bulk_notifications(db, bulk)
    _hand_off(background_tasks, notifications)
    return success_response(notifications, f"Notifications sent to {len(notifications)} users", status.HTTP_201_CREATED)
