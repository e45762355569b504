"""
Pydantic schemas for roadside assistance subscriptions and requests.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field

from ..schemas import Pagination, VehicleDetails


class SubscriptionCreate(BaseModel):
    """Schema for buying a roadside assistance plan."""
    plan_name: str = Field(..., min_length=1, validation_alias=AliasChoices("plan_name", "planName"))
    plan_price: Decimal = Field(
        ..., ge=0, max_digits=10, decimal_places=2, validation_alias=AliasChoices("plan_price", "planPrice")
    )
    benefits: List[str] = Field(default_factory=list)
    duration_months: int = Field(
        ..., ge=1, le=36, validation_alias=AliasChoices("duration_months", "durationMonths")
    )


class Subscription(BaseModel):
    id: str
    user_id: str
    plan_name: str
    plan_price: Decimal
    benefits: List[str]
    start_date: date
    end_date: date
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class RsaRequestCreate(BaseModel):
    """Schema for raising an emergency request. Requires an active subscription."""
    emergency_type: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("emergency_type", "emergencyType")
    )
    location_address: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("location_address", "locationAddress")
    )
    location_lat: Optional[float] = Field(
        default=None, ge=-90, le=90, validation_alias=AliasChoices("location_lat", "locationLat")
    )
    location_lng: Optional[float] = Field(
        default=None, ge=-180, le=180, validation_alias=AliasChoices("location_lng", "locationLng")
    )
    vehicle_details: VehicleDetails = Field(
        ..., validation_alias=AliasChoices("vehicle_details", "vehicleDetails")
    )


class RsaRequest(BaseModel):
    """
    Schema for roadside assistance request responses.

    Attributes:
        service_partner_id (str): Mechanic handling the request, once assigned
        request_status (str): pending, assigned, in_progress, completed or cancelled
    """
    id: str
    request_number: str
    user_id: str
    subscription_id: str
    service_partner_id: Optional[str] = None
    emergency_type: str
    location_address: str
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    vehicle_details: Dict[str, Any]
    request_status: str
    resolution_notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    partner_assigned_at: Optional[datetime] = None
    service_started_at: Optional[datetime] = None
    service_completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class RsaRequestList(BaseModel):
    requests: List[RsaRequest]
    pagination: Pagination


class RsaRequestStatusUpdate(BaseModel):
    status: str
    resolution_notes: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("resolution_notes", "resolutionNotes")
    )
    cancellation_reason: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("cancellation_reason", "cancellationReason")
    )
