"""
Mechanic service API.

Endpoints:
    POST /mechanic/profile: Register as a mechanic
    GET /mechanic/profile: Get the caller's mechanic profile
    PUT /mechanic/profile: Update the caller's mechanic profile
    GET /mechanic/nearby: Find available mechanics (public)
    POST /mechanic/bookings: Request a service visit
    GET /mechanic/bookings: List the caller's service bookings
    GET /mechanic/bookings/{booking_id}: Get a booking (customer or mechanic)
    POST /mechanic/bookings/{booking_id}/assign: Claim a pending booking (verified mechanic)
    PUT /mechanic/bookings/{booking_id}/status: Change a booking's status
    POST /mechanic/bookings/{booking_id}/review: Rate a completed booking (customer)
"""
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from .. import auth, errors, models, webhooks
from ..config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..database import get_db
from ..responses import pagination, success_response
from ..schemas import ApiResponse
from . import crud, schemas

router = APIRouter(prefix="/mechanic", tags=["mechanic"])


@router.post("/profile", response_model=ApiResponse[schemas.MechanicProfile], status_code=status.HTTP_201_CREATED)
def create_profile(
    profile: schemas.MechanicProfileCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Register the caller as a mechanic.

    The caller's role becomes "mechanic". Assigning bookings additionally
    requires an approved KYC.
    """
    db_profile = crud.create_profile(db, current_user, profile)
    return success_response(db_profile, "Mechanic profile created successfully", status.HTTP_201_CREATED)


@router.get("/profile", response_model=ApiResponse[schemas.MechanicProfile])
def get_profile(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    db_profile = crud.get_profile(db, current_user.id)
    if db_profile is None:
        raise errors.NotFound("Mechanic profile not found")
    return success_response(db_profile, "Mechanic profile fetched successfully")


@router.put("/profile", response_model=ApiResponse[schemas.MechanicProfile])
def update_profile(
    profile: schemas.MechanicProfileUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    db_profile = crud.update_profile(db, current_user.id, profile)
    return success_response(db_profile, "Mechanic profile updated successfully")


@router.get("/nearby", response_model=ApiResponse[List[schemas.MechanicProfile]])
def find_mechanics(
    city: Optional[str] = None,
    service_type: Optional[str] = None,
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db)
):
    """
    Find available, KYC-approved mechanics (public).

    Args:
        city: Service area city
        service_type: A service the mechanic offers
    """
    profiles = crud.find_available_mechanics(db, city=city, service_type=service_type, limit=limit)
    return success_response(profiles, "Mechanics fetched successfully")


@router.post("/bookings", response_model=ApiResponse[schemas.ServiceBooking], status_code=status.HTTP_201_CREATED)
def create_booking(
    booking: schemas.ServiceBookingCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Request a mechanic visit.

    Returns:
        The pending booking, with its SRV- booking number
    """
    db_booking = crud.create_service_booking(db, current_user.id, booking)
    return success_response(db_booking, "Service booking created successfully", status.HTTP_201_CREATED)


@router.get("/bookings", response_model=ApiResponse[schemas.ServiceBookingList])
def list_bookings(
    booking_status: Optional[str] = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    bookings, total = crud.list_service_bookings(db, current_user, status=booking_status, page=page, limit=limit)
    return success_response(
        {"bookings": bookings, "pagination": pagination(page, limit, total)}, "Bookings fetched successfully"
    )


@router.get("/bookings/{booking_id}", response_model=ApiResponse[schemas.ServiceBooking])
def get_booking(
    booking_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Get a service booking (its customer, its mechanic or an admin).

    Raises:
        NotFound: 404 if missing or the caller is not a party to it
    """
    return success_response(crud.get_service_booking(db, booking_id, current_user), "Booking fetched successfully")


@router.post("/bookings/{booking_id}/assign", response_model=ApiResponse[schemas.ServiceBooking])
def assign_booking(
    booking_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.require_verified_provider("mechanic"))
):
    """
    Claim a pending booking for the calling mechanic.

    Raises:
        409: AlreadyAssigned if another mechanic claimed it first
        409: BookingNotClaimable if the booking is completed or cancelled
        400: NotFoundOrUnauthorized if the booking does not exist
    """
    db_booking = crud.assign_mechanic(db, booking_id, current_user.id)
    webhooks.notify_booking_status_changed(
        background_tasks, crud.SERVICE_BOOKINGS.name, booking_id, db_booking.booking_status
    )
    return success_response(db_booking, "Mechanic assigned successfully")


@router.put("/bookings/{booking_id}/status", response_model=ApiResponse[schemas.ServiceBooking])
def update_booking_status(
    booking_id: str,
    update: schemas.ServiceBookingStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Change the status of a booking the caller is a party to.

    Only the assigned mechanic may start or complete the service; either
    party may cancel before it starts.

    Raises:
        400: NotFoundOrUnauthorized, unknown status
        409: InvalidStatusTransition
    """
    db_booking, _ = crud.update_booking_status(db, booking_id, current_user.id, update)
    webhooks.notify_booking_status_changed(
        background_tasks, crud.SERVICE_BOOKINGS.name, booking_id, db_booking.booking_status
    )
    return success_response(db_booking, "Booking status updated successfully")


@router.post("/bookings/{booking_id}/review", response_model=ApiResponse[schemas.ServiceBooking])
def add_review(
    booking_id: str,
    review: schemas.ReviewCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Rate a completed booking (customer only).

    Raises:
        400: NotCompletedOrUnauthorized
    """
    db_booking = crud.add_review(db, booking_id, current_user.id, review)
    return success_response(db_booking, "Review added successfully")
