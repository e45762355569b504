"""
Vehicle rental API.

Endpoints:
    POST /rental/vehicles: List a vehicle for rent
    GET /rental/vehicles: Browse available vehicles (public)
    GET /rental/vehicles/{vehicle_id}: Get a vehicle (public)
    PUT /rental/vehicles/{vehicle_id}: Update a listing (owning host)
    POST /rental/bookings: Reserve a vehicle
    GET /rental/bookings: List the caller's rental bookings
    GET /rental/bookings/{booking_id}: Get a booking (customer or host)
    PUT /rental/bookings/{booking_id}/status: Change a booking's status
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from .. import auth, errors, models, webhooks
from ..config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..database import get_db
from ..responses import pagination, success_response
from ..schemas import ApiResponse
from . import crud, schemas

router = APIRouter(prefix="/rental", tags=["rental"])


@router.post("/vehicles", response_model=ApiResponse[schemas.RentalVehicle], status_code=status.HTTP_201_CREATED)
def create_vehicle(
    vehicle: schemas.RentalVehicleCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    List a vehicle for rent. Customers listing their first vehicle become hosts.

    Raises:
        409: the registration number is already listed
    """
    db_vehicle = crud.create_vehicle(db, current_user, vehicle)
    return success_response(db_vehicle, "Vehicle listed successfully", status.HTTP_201_CREATED)


@router.get("/vehicles", response_model=ApiResponse[schemas.RentalVehicleList])
def list_vehicles(
    vehicle_type: Optional[str] = None,
    city: Optional[str] = None,
    min_price: Optional[Decimal] = Query(default=None, ge=0),
    max_price: Optional[Decimal] = Query(default=None, ge=0),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db)
):
    """Browse available vehicles with optional filters (public)."""
    vehicles, total = crud.list_vehicles(
        db,
        vehicle_type=vehicle_type,
        city=city,
        min_price=min_price,
        max_price=max_price,
        page=page,
        limit=limit,
    )
    return success_response(
        {"vehicles": vehicles, "pagination": pagination(page, limit, total)}, "Vehicles fetched successfully"
    )


@router.get("/vehicles/{vehicle_id}", response_model=ApiResponse[schemas.RentalVehicle])
def get_vehicle(vehicle_id: str, db: Session = Depends(get_db)):
    db_vehicle = crud.get_vehicle(db, vehicle_id)
    if db_vehicle is None:
        raise errors.NotFound("Vehicle not found")
    return success_response(db_vehicle, "Vehicle fetched successfully")


@router.put("/vehicles/{vehicle_id}", response_model=ApiResponse[schemas.RentalVehicle])
def update_vehicle(
    vehicle_id: str,
    vehicle: schemas.RentalVehicleUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """Update a vehicle owned by the caller."""
    db_vehicle = crud.update_vehicle(db, vehicle_id, current_user.id, vehicle)
    return success_response(db_vehicle, "Vehicle updated successfully")


@router.post("/bookings", response_model=ApiResponse[schemas.RentalBooking], status_code=status.HTTP_201_CREATED)
def create_booking(
    booking: schemas.RentalBookingCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Reserve a vehicle for a date range.

    Pricing: days = ceil(end - start in days), subtotal = days x daily price,
    10% platform commission, 5% insurance when requested and the vehicle is
    eligible.

    Raises:
        404: vehicle not available
        400: invalid dates or booking one's own vehicle
    """
    db_booking = crud.create_rental_booking(db, current_user.id, booking)
    webhooks.notify_booking_status_changed(
        background_tasks, crud.RENTAL_BOOKINGS.name, db_booking.id, db_booking.booking_status
    )
    return success_response(db_booking, "Rental booking created successfully", status.HTTP_201_CREATED)


@router.get("/bookings", response_model=ApiResponse[schemas.RentalBookingList])
def list_bookings(
    booking_status: Optional[str] = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    bookings, total = crud.list_rental_bookings(db, current_user, status=booking_status, page=page, limit=limit)
    return success_response(
        {"bookings": bookings, "pagination": pagination(page, limit, total)}, "Bookings fetched successfully"
    )


@router.get("/bookings/{booking_id}", response_model=ApiResponse[schemas.RentalBooking])
def get_booking(
    booking_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    return success_response(crud.get_rental_booking(db, booking_id, current_user), "Booking fetched successfully")


@router.put("/bookings/{booking_id}/status", response_model=ApiResponse[schemas.RentalBooking])
def update_booking_status(
    booking_id: str,
    update: schemas.RentalBookingStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Change the status of a rental booking the caller is a party to.

    Raises:
        400: NotFoundOrUnauthorized, unknown status
        409: InvalidStatusTransition
    """
    db_booking, _ = crud.update_booking_status(db, booking_id, current_user.id, update)
    webhooks.notify_booking_status_changed(
        background_tasks, crud.RENTAL_BOOKINGS.name, booking_id, db_booking.booking_status
    )
    return success_response(db_booking, "Booking status updated successfully")
