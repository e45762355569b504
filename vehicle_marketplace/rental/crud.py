"""
Database operations for rental vehicles and rental bookings.

The host is attached to a booking when it is created, so the booking
lifecycle starts with the host accepting (``pending -> accepted``) rather
than a provider claiming it.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from .. import bookings, errors, models, pricing
from ..database import transaction
from ..responses import generate_unique_number, new_id
from . import schemas

logger = logging.getLogger(__name__)


def _count_completed_rental(db: Session, booking: models.RentalBooking) -> None:
    db.execute(
        update(models.RentalVehicle)
        .where(models.RentalVehicle.id == booking.vehicle_id)
        .values(
            total_bookings=models.RentalVehicle.total_bookings + 1,
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )


RENTAL_BOOKINGS = bookings.BookingDomain(
    name="rental_booking",
    label="Rental booking",
    model=models.RentalBooking,
    status_column="booking_status",
    customer_column="customer_id",
    provider_column="host_id",
    assigned_status="accepted",
    assigned_at_column="accepted_at",
    started_at_column="vehicle_picked_up_at",
    completed_at_column="vehicle_returned_at",
    provider_statuses=frozenset({"accepted", "in_progress", "completed"}),
    settable_statuses=frozenset({"accepted", "in_progress", "completed", "cancelled"}),
    on_completed=_count_completed_rental,
)


# ---------------------------------------------------------------------------
# Vehicles
# ---------------------------------------------------------------------------

def create_vehicle(db: Session, host: models.User, vehicle: schemas.RentalVehicleCreate) -> models.RentalVehicle:
    """
    List a vehicle for rent. A customer listing a vehicle becomes a host.

    Raises:
        ConflictError: the registration number is already listed
    """
    existing = (
        db.query(models.RentalVehicle.id)
        .filter(models.RentalVehicle.registration_number == vehicle.registration_number)
        .first()
    )
    if existing is not None:
        raise errors.ConflictError(f"Vehicle already listed: {vehicle.registration_number}")

    with transaction(db):
        db_vehicle = models.RentalVehicle(
            id=new_id(),
            host_id=host.id,
            is_available=True,
            total_bookings=0,
            **vehicle.model_dump(),
        )
        db.add(db_vehicle)
        if host.role == "customer":
            host.role = "host"

    db.refresh(db_vehicle)
    logger.info(f"Rental vehicle created: {db_vehicle.id} by host: {host.id}")
    return db_vehicle


def get_vehicle(db: Session, vehicle_id: str) -> Optional[models.RentalVehicle]:
    """Retrieve an available vehicle by ID, or None."""
    return (
        db.query(models.RentalVehicle)
        .filter(models.RentalVehicle.id == vehicle_id, models.RentalVehicle.is_available.is_(True))
        .first()
    )


def list_vehicles(
    db: Session,
    vehicle_type: Optional[str] = None,
    city: Optional[str] = None,
    min_price=None,
    max_price=None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[models.RentalVehicle], int]:
    """
    Available vehicles matching the filters, newest first.

    Returns:
        Tuple of (vehicles on the requested page, total matching count)
    """
    query = db.query(models.RentalVehicle).filter(models.RentalVehicle.is_available.is_(True))
    if vehicle_type:
        query = query.filter(models.RentalVehicle.vehicle_type == vehicle_type)
    if city:
        query = query.filter(func.lower(models.RentalVehicle.current_location_city) == city.lower())
    if min_price is not None:
        query = query.filter(models.RentalVehicle.price_per_day >= min_price)
    if max_price is not None:
        query = query.filter(models.RentalVehicle.price_per_day <= max_price)

    total = query.count()
    vehicles = (
        query.order_by(models.RentalVehicle.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return vehicles, total


def update_vehicle(
    db: Session, vehicle_id: str, host_id: str, vehicle: schemas.RentalVehicleUpdate
) -> models.RentalVehicle:
    """
    Update a vehicle owned by ``host_id``.

    Raises:
        NotFoundOrUnauthorized: vehicle missing or owned by another host
    """
    db_vehicle = (
        db.query(models.RentalVehicle)
        .filter(models.RentalVehicle.id == vehicle_id, models.RentalVehicle.host_id == host_id)
        .first()
    )
    if db_vehicle is None:
        raise errors.NotFoundOrUnauthorized("Vehicle")

    for key, value in vehicle.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(db_vehicle, key, value)

    db.commit()
    db.refresh(db_vehicle)
    logger.info(f"Rental vehicle updated: {vehicle_id}")
    return db_vehicle


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------

def create_rental_booking(
    db: Session, customer_id: str, booking: schemas.RentalBookingCreate
) -> models.RentalBooking:
    """
    Reserve a vehicle.

    The quote (days, subtotal, commission, insurance, total) is computed from
    the vehicle's current daily price and stored once; later price changes do
    not affect existing bookings.

    Raises:
        NotFound: vehicle missing or not available
        ValidationError: the customer is the vehicle's host
        InvalidDateRange: rental shorter than one day
    """
    with transaction(db):
        vehicle = get_vehicle(db, booking.vehicle_id)
        if vehicle is None:
            raise errors.NotFound("Vehicle not available")
        if vehicle.host_id == customer_id:
            raise errors.ValidationError("You cannot book your own vehicle")

        quote = pricing.price_rental(
            vehicle.price_per_day,
            booking.start_date,
            booking.end_date,
            insurance_required=booking.insurance_required,
            insurance_eligible=vehicle.is_insurance_eligible,
        )
        db_booking = models.RentalBooking(
            id=new_id(),
            booking_number=generate_unique_number("RNT"),
            customer_id=customer_id,
            vehicle_id=vehicle.id,
            host_id=vehicle.host_id,
            start_date=booking.start_date,
            end_date=booking.end_date,
            total_days=quote.total_days,
            price_per_day=pricing.quantize_money(vehicle.price_per_day),
            subtotal=quote.subtotal,
            platform_commission=quote.platform_commission,
            insurance_fee=quote.insurance_fee,
            total_amount=quote.total_amount,
            booking_status="pending",
            pickup_location=booking.pickup_location,
            dropoff_location=booking.dropoff_location,
        )
        db.add(db_booking)

    db.refresh(db_booking)
    logger.info(f"Rental booking created: {db_booking.id} for customer: {customer_id}")
    return db_booking


def get_rental_booking(db: Session, booking_id: str, user: models.User) -> models.RentalBooking:
    return bookings.get_booking(db, RENTAL_BOOKINGS, booking_id, user)


def list_rental_bookings(
    db: Session, user: models.User, status: Optional[str] = None, page: int = 1, limit: int = 20
) -> Tuple[List[models.RentalBooking], int]:
    """Bookings of the caller's vehicles (hosts) or made by the caller (everyone else)."""
    return bookings.list_bookings(
        db, RENTAL_BOOKINGS, user.id, as_provider=user.role == "host", status=status, page=page, limit=limit
    )


def update_booking_status(
    db: Session, booking_id: str, user_id: str, update_data: schemas.RentalBookingStatusUpdate
) -> Tuple[models.RentalBooking, str]:
    """
    Move a rental booking along its lifecycle.

    The host accepts, hands over (in_progress) and takes back (completed)
    the vehicle; either party may cancel before pickup. Completion counts one
    more rental on the vehicle.

    Returns:
        Tuple of (updated booking, previous status)
    """
    extra = {}
    if update_data.status == "cancelled":
        extra["cancellation_reason"] = update_data.cancellation_reason
    return bookings.transition_status(db, RENTAL_BOOKINGS, booking_id, user_id, update_data.status, extra)
