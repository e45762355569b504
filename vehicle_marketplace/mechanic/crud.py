"""
Database operations for mechanic profiles and service bookings.

Status changes go through the shared booking machine in ``bookings.py``;
this module supplies the service booking table mapping and the
mechanic-specific side effects (job counter, rating average).
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from .. import bookings, errors, models, pricing
from ..config import CLEANING_PACKAGE_PRICES
from ..database import transaction
from ..responses import generate_unique_number, new_id
from . import schemas

logger = logging.getLogger(__name__)


def _count_completed_job(db: Session, booking: models.ServiceBooking) -> None:
    bookings.increment_provider_jobs(db, booking.mechanic_id)


SERVICE_BOOKINGS = bookings.BookingDomain(
    name="service_booking",
    label="Booking",
    model=models.ServiceBooking,
    status_column="booking_status",
    customer_column="customer_id",
    provider_column="mechanic_id",
    assigned_status="assigned",
    assigned_at_column="mechanic_assigned_at",
    started_at_column="service_started_at",
    completed_at_column="service_completed_at",
    on_completed=_count_completed_job,
    scope=models.ServiceBooking.service_type.notin_(sorted(CLEANING_PACKAGE_PRICES)),
)


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

def get_profile(db: Session, user_id: str) -> Optional[models.MechanicProfile]:
    """Retrieve the mechanic profile of a user, or None."""
    return db.query(models.MechanicProfile).filter(models.MechanicProfile.user_id == user_id).first()


def create_profile(db: Session, user: models.User, profile: schemas.MechanicProfileCreate) -> models.MechanicProfile:
    """
    Create a mechanic profile and switch the user to the mechanic role.

    Raises:
        ConflictError: the user already has a profile
    """
    if get_profile(db, user.id) is not None:
        raise errors.ConflictError("Mechanic profile already exists")

    with transaction(db):
        db_profile = models.MechanicProfile(
            id=new_id(),
            user_id=user.id,
            is_available=True,
            total_jobs=0,
            **profile.model_dump(),
        )
        db.add(db_profile)
        if user.role != "admin":
            user.role = "mechanic"

    db.refresh(db_profile)
    logger.info(f"Mechanic profile created for user: {user.id}")
    return db_profile


def update_profile(db: Session, user_id: str, profile: schemas.MechanicProfileUpdate) -> models.MechanicProfile:
    """
    Update the caller's mechanic profile.

    Raises:
        NotFound: the user has no profile
    """
    db_profile = get_profile(db, user_id)
    if db_profile is None:
        raise errors.NotFound("Mechanic profile not found")

    for key, value in profile.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(db_profile, key, value)

    db.commit()
    db.refresh(db_profile)
    logger.info(f"Mechanic profile updated: {user_id}")
    return db_profile


def find_available_mechanics(
    db: Session,
    city: Optional[str] = None,
    service_type: Optional[str] = None,
    limit: int = 20,
) -> List[models.MechanicProfile]:
    """
    Available, KYC-approved mechanics, best rated first.

    Args:
        city: Only mechanics serving this city (case-insensitive)
        service_type: Only mechanics offering this service
        limit: Maximum number of profiles returned
    """
    query = (
        db.query(models.MechanicProfile)
        .join(models.User, models.User.id == models.MechanicProfile.user_id)
        .filter(
            models.MechanicProfile.is_available.is_(True),
            models.User.kyc_status == "approved",
            models.User.is_active.is_(True),
        )
    )
    if city:
        query = query.filter(func.lower(models.MechanicProfile.service_area_city) == city.lower())

    profiles = query.order_by(
        models.MechanicProfile.rating.desc().nullslast(),
        models.MechanicProfile.total_jobs.desc(),
    ).all()
    # service_types is a JSON list, matched in Python
    if service_type:
        profiles = [p for p in profiles if service_type in (p.service_types or [])]
    return profiles[:limit]


# ---------------------------------------------------------------------------
# Service bookings
# ---------------------------------------------------------------------------

def create_service_booking(
    db: Session, customer_id: str, booking: schemas.ServiceBookingCreate
) -> models.ServiceBooking:
    """
    Create a pending service booking with no mechanic yet.

    Returns:
        Created ServiceBooking object

    Raises:
        ValidationError: cleaning and decoration are booked through the cleaning service
    """
    if booking.service_type in CLEANING_PACKAGE_PRICES:
        raise errors.ValidationError(f"Book {booking.service_type} through /cleaning/bookings")
    data = booking.model_dump(mode="json", exclude={"preferred_datetime"})
    db_booking = models.ServiceBooking(
        id=new_id(),
        booking_number=generate_unique_number("SRV"),
        customer_id=customer_id,
        booking_status="pending",
        preferred_datetime=booking.preferred_datetime,
        **data,
    )
    db.add(db_booking)
    db.commit()
    db.refresh(db_booking)
    logger.info(f"Service booking created: {db_booking.id} for customer: {customer_id}")
    return db_booking


def get_service_booking(db: Session, booking_id: str, user: models.User) -> models.ServiceBooking:
    return bookings.get_booking(db, SERVICE_BOOKINGS, booking_id, user)


def list_service_bookings(
    db: Session, user: models.User, status: Optional[str] = None, page: int = 1, limit: int = 20
) -> Tuple[List[models.ServiceBooking], int]:
    """Bookings assigned to the caller (mechanics) or requested by the caller (everyone else)."""
    return bookings.list_bookings(
        db, SERVICE_BOOKINGS, user.id, as_provider=user.role == "mechanic", status=status, page=page, limit=limit
    )


def assign_mechanic(db: Session, booking_id: str, mechanic_id: str) -> models.ServiceBooking:
    """Claim a pending booking for a mechanic. The first claim wins."""
    return bookings.assign_provider(db, SERVICE_BOOKINGS, booking_id, mechanic_id)


def update_booking_status(
    db: Session, booking_id: str, user_id: str, update_data: schemas.ServiceBookingStatusUpdate
) -> Tuple[models.ServiceBooking, str]:
    """
    Move a service booking along its lifecycle.

    Completing a booking adds one job to the mechanic's profile in the same
    transaction.

    Returns:
        Tuple of (updated booking, previous status)
    """
    extra = {
        "estimated_price": update_data.estimated_price,
        "final_price": update_data.final_price,
    }
    if update_data.status == "cancelled":
        extra["cancellation_reason"] = update_data.cancellation_reason
    return bookings.transition_status(db, SERVICE_BOOKINGS, booking_id, user_id, update_data.status, extra)


def add_review(db: Session, booking_id: str, customer_id: str, review: schemas.ReviewCreate) -> models.ServiceBooking:
    """
    Rate a completed booking and refresh the mechanic's average rating.

    The average is recomputed from every rated, completed booking of the
    mechanic.

    Raises:
        NotCompletedOrUnauthorized: booking missing, not the caller's, or not completed
    """
    with transaction(db):
        result = db.execute(
            update(models.ServiceBooking)
            .where(
                models.ServiceBooking.id == booking_id,
                models.ServiceBooking.customer_id == customer_id,
                models.ServiceBooking.booking_status == "completed",
            )
            .values(
                customer_rating=review.rating,
                customer_review=review.review,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise errors.NotCompletedOrUnauthorized("Booking")

        mechanic_id = (
            db.query(models.ServiceBooking.mechanic_id)
            .filter(models.ServiceBooking.id == booking_id)
            .scalar()
        )
        average = (
            db.query(func.avg(models.ServiceBooking.customer_rating))
            .filter(
                models.ServiceBooking.mechanic_id == mechanic_id,
                models.ServiceBooking.booking_status == "completed",
                models.ServiceBooking.customer_rating.isnot(None),
            )
            .scalar()
        )
        if mechanic_id is not None and average is not None:
            db.execute(
                update(models.MechanicProfile)
                .where(models.MechanicProfile.user_id == mechanic_id)
                .values(rating=pricing.quantize_money(average), updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )

    logger.info(f"Review added for booking: {booking_id}")
    return (
        db.query(models.ServiceBooking)
        .filter(models.ServiceBooking.id == booking_id)
        .populate_existing()
        .first()
    )
