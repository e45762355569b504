"""
Pydantic schemas for rental vehicles and rental bookings.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from ..schemas import Pagination


class RentalVehicleBase(BaseModel):
    vehicle_type: str = Field(..., min_length=1, validation_alias=AliasChoices("vehicle_type", "vehicleType"))
    brand: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    registration_number: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("registration_number", "registrationNumber")
    )
    seating_capacity: Optional[int] = Field(
        default=None, gt=0, validation_alias=AliasChoices("seating_capacity", "seatingCapacity")
    )
    fuel_type: Optional[str] = Field(default=None, validation_alias=AliasChoices("fuel_type", "fuelType"))
    transmission: Optional[str] = None
    price_per_day: Decimal = Field(
        ..., gt=0, max_digits=10, decimal_places=2,
        validation_alias=AliasChoices("price_per_day", "pricePerDay"),
    )
    is_insurance_eligible: bool = Field(
        default=False, validation_alias=AliasChoices("is_insurance_eligible", "isInsuranceEligible")
    )
    current_location_city: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("current_location_city", "currentLocationCity")
    )


class RentalVehicleCreate(RentalVehicleBase):
    """Schema for listing a vehicle for rent."""
    pass


class RentalVehicleUpdate(BaseModel):
    """Schema for updating a rental listing. All fields are optional."""
    price_per_day: Optional[Decimal] = Field(
        default=None, gt=0, max_digits=10, decimal_places=2,
        validation_alias=AliasChoices("price_per_day", "pricePerDay"),
    )
    is_available: Optional[bool] = Field(default=None, validation_alias=AliasChoices("is_available", "isAvailable"))
    is_insurance_eligible: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("is_insurance_eligible", "isInsuranceEligible")
    )
    current_location_city: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("current_location_city", "currentLocationCity")
    )


class RentalVehicle(BaseModel):
    """
    Schema for rental vehicle responses.

    Attributes:
        host_id (str): Owner of the vehicle
        total_bookings (int): Completed rentals
    """
    id: str
    host_id: str
    vehicle_type: str
    brand: str
    model: str
    registration_number: str
    seating_capacity: Optional[int] = None
    fuel_type: Optional[str] = None
    transmission: Optional[str] = None
    price_per_day: Decimal
    is_insurance_eligible: bool
    current_location_city: Optional[str] = None
    is_available: bool
    total_bookings: int
    created_at: datetime

    class Config:
        from_attributes = True


class RentalVehicleList(BaseModel):
    vehicles: List[RentalVehicle]
    pagination: Pagination


class RentalBookingCreate(BaseModel):
    """Schema for reserving a vehicle. Prices are computed by the server."""
    vehicle_id: str = Field(..., validation_alias=AliasChoices("vehicle_id", "vehicleId"))
    start_date: datetime = Field(..., validation_alias=AliasChoices("start_date", "startDate"))
    end_date: datetime = Field(..., validation_alias=AliasChoices("end_date", "endDate"))
    insurance_required: bool = Field(
        default=False, validation_alias=AliasChoices("insurance_required", "insuranceRequired")
    )
    pickup_location: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("pickup_location", "pickupLocation")
    )
    dropoff_location: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("dropoff_location", "dropoffLocation")
    )

    @field_validator("start_date", "end_date")
    @classmethod
    def to_naive_utc(cls, value: datetime) -> datetime:
        """Store and compare every timestamp as naive UTC."""
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class RentalBooking(BaseModel):
    """
    Schema for rental booking responses.

    Attributes:
        total_amount (Decimal): subtotal + platform_commission + insurance_fee
    """
    id: str
    booking_number: str
    customer_id: str
    vehicle_id: str
    host_id: Optional[str] = None
    start_date: datetime
    end_date: datetime
    total_days: int
    price_per_day: Decimal
    subtotal: Decimal
    platform_commission: Decimal
    insurance_fee: Decimal
    total_amount: Decimal
    booking_status: str
    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None
    cancellation_reason: Optional[str] = None
    accepted_at: Optional[datetime] = None
    vehicle_picked_up_at: Optional[datetime] = None
    vehicle_returned_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class RentalBookingList(BaseModel):
    bookings: List[RentalBooking]
    pagination: Pagination


class RentalBookingStatusUpdate(BaseModel):
    status: str
    cancellation_reason: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("cancellation_reason", "cancellationReason")
    )
