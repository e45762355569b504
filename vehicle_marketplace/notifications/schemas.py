"""
Pydantic schemas for notifications.
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field

from ..schemas import Pagination


class NotificationCreate(BaseModel):
    user_id: str = Field(..., min_length=1, validation_alias=AliasChoices("user_id", "userId"))
    type: str = Field(..., min_length=1)
    channel: Literal["in_app", "email", "sms"] = "in_app"
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    data: Optional[Dict[str, Any]] = None


class BulkNotificationCreate(BaseModel):
    """The same notification for several users."""
    user_ids: List[str] = Field(..., min_length=1, validation_alias=AliasChoices("user_ids", "userIds"))
    type: str = Field(..., min_length=1)
    channel: Literal["in_app", "email", "sms"] = "in_app"
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    data: Optional[Dict[str, Any]] = None


class Notification(BaseModel):
    """
    Schema for notification responses.

    Attributes:
        status (str): pending or sent
    """
    id: str
    user_id: str
    type: str
    channel: str
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None
    status: str
    is_read: bool
    read_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationList(BaseModel):
    notifications: List[Notification]
    unread: int
    pagination: Pagination
