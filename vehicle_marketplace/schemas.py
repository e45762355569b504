"""
Pydantic schemas shared by every domain.

Holds the response envelope, pagination metadata and the vehicle details
documents attached to bookings.
"""
from typing import Generic, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, Field
from typing_extensions import Annotated

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Response envelope used by every endpoint."""
    statusCode: int
    success: bool
    message: str
    data: Optional[T] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


# ---------------------------------------------------------------------------
# Vehicle details, discriminated on vehicle_type
# ---------------------------------------------------------------------------

class _VehicleDetailsBase(BaseModel):
    make: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    year: Optional[int] = Field(default=None, ge=1950, le=2100)
    registration_number: Optional[str] = None


class CarDetails(_VehicleDetailsBase):
    vehicle_type: Literal["car"]
    fuel_type: Optional[Literal["petrol", "diesel", "cng", "electric", "hybrid"]] = None


class BikeDetails(_VehicleDetailsBase):
    vehicle_type: Literal["bike"]
    engine_cc: Optional[int] = Field(default=None, gt=0)


class CommercialDetails(_VehicleDetailsBase):
    vehicle_type: Literal["commercial"]
    payload_tonnes: Optional[float] = Field(default=None, gt=0)


VehicleDetails = Annotated[
    Union[CarDetails, BikeDetails, CommercialDetails],
    Field(discriminator="vehicle_type"),
]
