"""
Database operations for roadside assistance (RSA).

Requests are handled by service partners, who are KYC-approved mechanics;
a completed request counts as a finished job on the partner's mechanic
profile.
"""
import calendar
import logging
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from .. import bookings, errors, models
from ..responses import generate_unique_number, new_id
from . import schemas

logger = logging.getLogger(__name__)


def _count_completed_request(db: Session, request: models.RsaRequest) -> None:
    bookings.increment_provider_jobs(db, request.service_partner_id)


RSA_REQUESTS = bookings.BookingDomain(
    name="rsa_request",
    label="RSA request",
    model=models.RsaRequest,
    status_column="request_status",
    customer_column="user_id",
    provider_column="service_partner_id",
    assigned_status="assigned",
    assigned_at_column="partner_assigned_at",
    started_at_column="service_started_at",
    completed_at_column="service_completed_at",
    on_completed=_count_completed_request,
)


def add_months(start: date, months: int) -> date:
    """Same day ``months`` later, clamped to the last day of a shorter month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------

def subscribe(db: Session, user_id: str, subscription: schemas.SubscriptionCreate) -> models.RsaSubscription:
    """
    Start a roadside assistance plan today, running for ``duration_months``.

    Returns:
        Created RsaSubscription object
    """
    start = date.today()
    db_subscription = models.RsaSubscription(
        id=new_id(),
        user_id=user_id,
        plan_name=subscription.plan_name,
        plan_price=subscription.plan_price,
        benefits=subscription.benefits,
        start_date=start,
        end_date=add_months(start, subscription.duration_months),
        is_active=True,
    )
    db.add(db_subscription)
    db.commit()
    db.refresh(db_subscription)
    logger.info(f"RSA subscription created: {db_subscription.id} for user: {user_id}")
    return db_subscription


def list_subscriptions(db: Session, user_id: str) -> List[models.RsaSubscription]:
    """All subscriptions of a user, newest first."""
    return (
        db.query(models.RsaSubscription)
        .filter(models.RsaSubscription.user_id == user_id)
        .order_by(models.RsaSubscription.created_at.desc())
        .all()
    )


def get_active_subscription(db: Session, user_id: str) -> Optional[models.RsaSubscription]:
    """The active, unexpired subscription ending last, or None."""
    return (
        db.query(models.RsaSubscription)
        .filter(
            models.RsaSubscription.user_id == user_id,
            models.RsaSubscription.is_active.is_(True),
            models.RsaSubscription.end_date >= date.today(),
        )
        .order_by(models.RsaSubscription.end_date.desc())
        .first()
    )


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

def create_request(db: Session, user_id: str, request: schemas.RsaRequestCreate) -> models.RsaRequest:
    """
    Raise an emergency request under the user's active subscription.

    Raises:
        NoActiveSubscription: the user has no active, unexpired plan
    """
    subscription = get_active_subscription(db, user_id)
    if subscription is None:
        logger.warning(f"RSA request rejected for user {user_id}: no active subscription")
        raise errors.NoActiveSubscription()

    db_request = models.RsaRequest(
        id=new_id(),
        request_number=generate_unique_number("RSA"),
        user_id=user_id,
        subscription_id=subscription.id,
        request_status="pending",
        **request.model_dump(mode="json"),
    )
    db.add(db_request)
    db.commit()
    db.refresh(db_request)
    logger.info(f"RSA request created: {db_request.id} for user: {user_id}")
    return db_request


def get_request(db: Session, request_id: str, user: models.User) -> models.RsaRequest:
    return bookings.get_booking(db, RSA_REQUESTS, request_id, user)


def list_requests(
    db: Session, user: models.User, status: Optional[str] = None, page: int = 1, limit: int = 20
) -> Tuple[List[models.RsaRequest], int]:
    """Requests handled by the caller (mechanics) or raised by the caller (everyone else)."""
    return bookings.list_bookings(
        db, RSA_REQUESTS, user.id, as_provider=user.role == "mechanic", status=status, page=page, limit=limit
    )


def assign_partner(db: Session, request_id: str, partner_id: str) -> models.RsaRequest:
    """Claim a pending request for a service partner. The first claim wins."""
    return bookings.assign_provider(db, RSA_REQUESTS, request_id, partner_id)


def update_request_status(
    db: Session, request_id: str, user_id: str, update_data: schemas.RsaRequestStatusUpdate
) -> Tuple[models.RsaRequest, str]:
    """
    Move a request along its lifecycle.

    Returns:
        Tuple of (updated request, previous status)
    """
    extra = {"resolution_notes": update_data.resolution_notes}
    if update_data.status == "cancelled":
        extra["cancellation_reason"] = update_data.cancellation_reason
    return bookings.transition_status(db, RSA_REQUESTS, request_id, user_id, update_data.status, extra)
