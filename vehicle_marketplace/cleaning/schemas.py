"""
Pydantic schemas for cleaning and decoration bookings.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field

from ..schemas import Pagination, VehicleDetails

CleaningServiceType = Literal["cleaning", "decoration"]
PackageType = Literal["basic", "premium", "deluxe"]


class CleaningBookingCreate(BaseModel):
    """
    Schema for booking a cleaning or decoration package.

    The package is kept with the vehicle details; the estimate comes from the
    package price list.
    """
    service_type: CleaningServiceType = Field(..., validation_alias=AliasChoices("service_type", "serviceType"))
    package_type: PackageType = Field(default="basic", validation_alias=AliasChoices("package_type", "packageType"))
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


class CleaningBooking(BaseModel):
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
    mechanic_assigned_at: Optional[datetime] = None
    service_started_at: Optional[datetime] = None
    service_completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CleaningBookingList(BaseModel):
    bookings: List[CleaningBooking]
    pagination: Pagination


class CleaningBookingStatusUpdate(BaseModel):
    status: str
    final_price: Optional[Decimal] = Field(
        default=None, ge=0, max_digits=10, decimal_places=2,
        validation_alias=AliasChoices("final_price", "finalPrice"),
    )
    cancellation_reason: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("cancellation_reason", "cancellationReason")
    )
