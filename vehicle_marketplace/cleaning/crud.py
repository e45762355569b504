"""
Database operations for cleaning and decoration bookings.

These bookings live in the service_bookings table, told apart by their
service type, and are claimed and completed by verified mechanics through
the shared booking machine.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from .. import bookings, models, pricing
from ..config import CLEANING_PACKAGE_PRICES
from ..responses import generate_unique_number, new_id
from . import schemas

logger = logging.getLogger(__name__)


def _count_completed_job(db: Session, booking: models.ServiceBooking) -> None:
    bookings.increment_provider_jobs(db, booking.mechanic_id)


CLEANING_BOOKINGS = bookings.BookingDomain(
    name="cleaning_booking",
    label="Cleaning booking",
    model=models.ServiceBooking,
    status_column="booking_status",
    customer_column="customer_id",
    provider_column="mechanic_id",
    assigned_status="assigned",
    assigned_at_column="mechanic_assigned_at",
    started_at_column="service_started_at",
    completed_at_column="service_completed_at",
    on_completed=_count_completed_job,
    scope=models.ServiceBooking.service_type.in_(sorted(CLEANING_PACKAGE_PRICES)),
)


def create_cleaning_booking(
    db: Session, customer_id: str, booking: schemas.CleaningBookingCreate
) -> models.ServiceBooking:
    """
    Create a pending cleaning or decoration booking priced from the package list.

    Returns:
        Created booking, with a CLN- booking number
    """
    vehicle_details = booking.vehicle_details.model_dump(mode="json")
    vehicle_details["package_type"] = booking.package_type
    db_booking = models.ServiceBooking(
        id=new_id(),
        booking_number=generate_unique_number("CLN"),
        customer_id=customer_id,
        service_type=booking.service_type,
        vehicle_details=vehicle_details,
        service_location_address=booking.service_location_address,
        service_location_lat=booking.service_location_lat,
        service_location_lng=booking.service_location_lng,
        preferred_datetime=booking.preferred_datetime,
        service_description=booking.service_description,
        estimated_price=pricing.price_cleaning_package(booking.service_type, booking.package_type),
        booking_status="pending",
    )
    db.add(db_booking)
    db.commit()
    db.refresh(db_booking)
    logger.info(f"Cleaning booking created: {db_booking.id} ({booking.service_type}/{booking.package_type})")
    return db_booking


def get_cleaning_booking(db: Session, booking_id: str, user: models.User) -> models.ServiceBooking:
    return bookings.get_booking(db, CLEANING_BOOKINGS, booking_id, user)


def list_cleaning_bookings(
    db: Session, user: models.User, status: Optional[str] = None, page: int = 1, limit: int = 20
) -> Tuple[List[models.ServiceBooking], int]:
    return bookings.list_bookings(
        db, CLEANING_BOOKINGS, user.id, as_provider=user.role == "mechanic", status=status, page=page, limit=limit
    )


def assign_cleaner(db: Session, booking_id: str, mechanic_id: str) -> models.ServiceBooking:
    return bookings.assign_provider(db, CLEANING_BOOKINGS, booking_id, mechanic_id)


def update_cleaning_status(
    db: Session, booking_id: str, user_id: str, update_data: schemas.CleaningBookingStatusUpdate
) -> Tuple[models.ServiceBooking, str]:
    """
    Move a cleaning booking along its lifecycle.

    Returns:
        Tuple of (updated booking, previous status)
    """
    extra = {"final_price": update_data.final_price}
    if update_data.status == "cancelled":
        extra["cancellation_reason"] = update_data.cancellation_reason
    return bookings.transition_status(db, CLEANING_BOOKINGS, booking_id, user_id, update_data.status, extra)
