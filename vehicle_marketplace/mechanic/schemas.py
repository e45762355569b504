"""
Pydantic schemas for mechanic profiles and service bookings.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field

from ..schemas import Pagination, VehicleDetails


class MechanicProfileBase(BaseModel):
    service_types: List[str] = Field(
        ..., min_length=1, validation_alias=AliasChoices("service_types", "serviceTypes")
    )
    service_area_city: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("service_area_city", "serviceAreaCity")
    )
    hourly_rate: Optional[Decimal] = Field(
        default=None, ge=0, max_digits=10, decimal_places=2,
        validation_alias=AliasChoices("hourly_rate", "hourlyRate"),
    )


class MechanicProfileCreate(MechanicProfileBase):
    """Schema for a user registering as a mechanic."""
    pass


class MechanicProfileUpdate(BaseModel):
    """Schema for updating a mechanic profile. All fields are optional."""
    service_types: Optional[List[str]] = Field(
        default=None, min_length=1, validation_alias=AliasChoices("service_types", "serviceTypes")
    )
    service_area_city: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("service_area_city", "serviceAreaCity")
    )
    hourly_rate: Optional[Decimal] = Field(
        default=None, ge=0, max_digits=10, decimal_places=2,
        validation_alias=AliasChoices("hourly_rate", "hourlyRate"),
    )
    is_available: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("is_available", "isAvailable")
    )


class MechanicProfile(BaseModel):
    """
    Schema for mechanic profile responses.

    Attributes:
        total_jobs (int): Completed service bookings and RSA requests
        rating (Decimal): Average customer rating, None until the first review
    """
    id: str
    user_id: str
    service_types: List[str]
    service_area_city: Optional[str] = None
    hourly_rate: Optional[Decimal] = None
    is_available: bool
    total_jobs: int
    rating: Optional[Decimal] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ServiceBookingCreate(BaseModel):
    """Schema for a customer requesting a mechanic visit."""
    service_type: str = Field(..., min_length=1, validation_alias=AliasChoices("service_type", "serviceType"))
    vehicle_details: VehicleDetails = Field(
        ..., validation_alias=AliasChoices("vehicle_details", "vehicleDetails")
    )
    service_location_address: str = Field(
        ..., min_length=1,
        validation_alias=AliasChoices("service_location_address", "serviceLocationAddress"),
    )
    service_location_lat: Optional[float] = Field(
        default=None, ge=-90, le=90,
        validation_alias=AliasChoices("service_location_lat", "serviceLocationLat"),
    )
    service_location_lng: Optional[float] = Field(
        default=None, ge=-180, le=180,
        validation_alias=AliasChoices("service_location_lng", "serviceLocationLng"),
    )
    preferred_datetime: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("preferred_datetime", "preferredDatetime")
    )
    service_description: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("service_description", "serviceDescription")
    )


class ServiceBooking(BaseModel):
    """Schema for service booking responses."""
    id: str
    booking_number: str
    customer_id: str
    mechanic_id: Optional[str] = None
    service_type: str
    vehicle_details: Dict[str, Any]
    service_location_address: str
    service_location_lat: Optional[float] = None
    service_location_lng: Optional[float] = None
    preferred_datetime: Optional[datetime] = None
    service_description: Optional[str] = None
    booking_status: str
    estimated_price: Optional[Decimal] = None
    final_price: Optional[Decimal] = None
    cancellation_reason: Optional[str] = None
    customer_rating: Optional[int] = None
    customer_review: Optional[str] = None
    mechanic_assigned_at: Optional[datetime] = None
    service_started_at: Optional[datetime] = None
    service_completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ServiceBookingList(BaseModel):
    bookings: List[ServiceBooking]
    pagination: Pagination


class ServiceBookingStatusUpdate(BaseModel):
    """
    Schema for a status change on a service booking.

    The mechanic may quote or finalize the price alongside the change.
    """
    status: str
    estimated_price: Optional[Decimal] = Field(
        default=None, ge=0, max_digits=10, decimal_places=2,
        validation_alias=AliasChoices("estimated_price", "estimatedPrice"),
    )
    final_price: Optional[Decimal] = Field(
        default=None, ge=0, max_digits=10, decimal_places=2,
        validation_alias=AliasChoices("final_price", "finalPrice"),
    )
    cancellation_reason: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("cancellation_reason", "cancellationReason")
    )


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = None
