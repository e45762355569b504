"""
Cleaning and decoration API.

Endpoints:
    POST /cleaning/bookings: Book a cleaning or decoration package
    GET /cleaning/bookings: List the caller's cleaning bookings
    GET /cleaning/bookings/{booking_id}: Get a booking (customer or provider)
    POST /cleaning/bookings/{booking_id}/assign: Claim a pending booking (verified mechanic)
    PUT /cleaning/bookings/{booking_id}/status: Change a booking's status
"""
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from .. import auth, models, webhooks
from ..config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..database import get_db
from ..responses import pagination, success_response
from ..schemas import ApiResponse
from . import crud, schemas

router = APIRouter(prefix="/cleaning", tags=["cleaning"])


@router.post("/bookings", response_model=ApiResponse[schemas.CleaningBooking], status_code=status.HTTP_201_CREATED)
def create_booking(
    booking: schemas.CleaningBookingCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    db_booking = crud.create_cleaning_booking(db, current_user.id, booking)
    return success_response(db_booking, "Cleaning booking created successfully", status.HTTP_201_CREATED)


@router.get("/bookings", response_model=ApiResponse[schemas.CleaningBookingList])
def list_bookings(
    booking_status: Optional[str] = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    bookings, total = crud.list_cleaning_bookings(db, current_user, status=booking_status, page=page, limit=limit)
    return success_response(
        {"bookings": bookings, "pagination": pagination(page, limit, total)}, "Cleaning bookings fetched successfully"
    )


@router.get("/bookings/{booking_id}", response_model=ApiResponse[schemas.CleaningBooking])
def get_booking(
    booking_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Raises:
        NotFound: 404 if missing, not a cleaning booking, or the caller is not a party to it
    """
    return success_response(crud.get_cleaning_booking(db, booking_id, current_user), "Cleaning booking fetched successfully")


@router.post("/bookings/{booking_id}/assign", response_model=ApiResponse[schemas.CleaningBooking])
def assign_booking(
    booking_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.require_verified_provider("mechanic"))
):
    """
    Claim a pending cleaning booking for the calling mechanic.

    Raises:
        409: AlreadyAssigned, BookingNotClaimable
        400: NotFoundOrUnauthorized
    """
    db_booking = crud.assign_cleaner(db, booking_id, current_user.id)
    webhooks.notify_booking_status_changed(
        background_tasks, crud.CLEANING_BOOKINGS.name, booking_id, db_booking.booking_status
    )
    return success_response(db_booking, "Cleaning booking assigned successfully")


@router.put("/bookings/{booking_id}/status", response_model=ApiResponse[schemas.CleaningBooking])
def update_booking_status(
    booking_id: str,
    update: schemas.CleaningBookingStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Raises:
        400: NotFoundOrUnauthorized, unknown status
        409: InvalidStatusTransition
    """
    db_booking, _ = crud.update_cleaning_status(db, booking_id, current_user.id, update)
    webhooks.notify_booking_status_changed(
        background_tasks, crud.CLEANING_BOOKINGS.name, booking_id, db_booking.booking_status
    )
    return success_response(db_booking, "Cleaning booking status updated successfully")
