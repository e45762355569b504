"""
Pydantic schemas for the parts catalog and parts orders.

These schemas define the structure of data for API requests and responses.
Money fields are Decimal and serialize as strings.
"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field

from ..schemas import Pagination


class PartBase(BaseModel):
    """Base schema with common part attributes."""
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: str = Field(..., min_length=1)
    vehicle_type: Optional[str] = None
    brand: Optional[str] = None
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2, description="Unit price")
    stock_quantity: int = Field(..., ge=0, description="Units in stock")
    sku: Optional[str] = None
    specifications: Dict[str, str] = Field(default_factory=dict)


class PartCreate(PartBase):
    """Schema for creating a new part listing."""
    pass


class PartUpdate(BaseModel):
    """Schema for updating a part listing. All fields are optional."""
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    stock_quantity: Optional[int] = Field(default=None, ge=0)
    specifications: Optional[Dict[str, str]] = None
    is_active: Optional[bool] = None


class Part(PartBase):
    """
    Schema for part responses, includes all database fields.

    Attributes:
        id (str): Part's unique identifier
        merchant_id (str): Owning merchant
        is_active (bool): False once the listing is removed
        created_at (datetime): When the listing was created
    """
    id: str
    merchant_id: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class PartList(BaseModel):
    parts: List[Part]
    pagination: Pagination


class CartLine(BaseModel):
    """One line of a checkout request."""
    part_id: str = Field(..., validation_alias=AliasChoices("part_id", "catalogItemId", "partId"))
    quantity: int = Field(..., gt=0, le=10000, description="Quantity ordered")


class OrderCreate(BaseModel):
    """Schema for a checkout. One order is created per merchant in the cart."""
    items: List[CartLine] = Field(default_factory=list)
    delivery_address_id: str = Field(
        ..., validation_alias=AliasChoices("delivery_address_id", "deliveryAddressId")
    )


class OrderLineItem(BaseModel):
    """Schema for an order line item."""
    id: str
    part_id: str
    part_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal

    class Config:
        from_attributes = True


class Order(BaseModel):
    """
    Schema for order responses, including line items.

    Attributes:
        total_amount (Decimal): subtotal + platform_commission + tax_amount + delivery_charge
    """
    id: str
    order_number: str
    customer_id: str
    merchant_id: str
    delivery_address_id: str
    subtotal: Decimal
    platform_commission: Decimal
    tax_amount: Decimal
    delivery_charge: Decimal
    total_amount: Decimal
    order_status: str
    tracking_number: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    delivered_at: Optional[datetime] = None
    items: List[OrderLineItem] = Field(default_factory=list)

    class Config:
        from_attributes = True


class OrderList(BaseModel):
    orders: List[Order]
    pagination: Pagination


class OrderStatusUpdate(BaseModel):
    """Schema for a merchant changing an order's status."""
    status: str
    tracking_number: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("tracking_number", "trackingNumber")
    )
    estimated_delivery: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("estimated_delivery", "estimatedDelivery")
    )
    cancellation_reason: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("cancellation_reason", "cancellationReason")
    )


class OrderEvent(BaseModel):
    """
    Schema for order timeline events.

    Attributes:
        event_type (str): Type of event (created, status_changed)
        old_value (str): Previous value (optional)
        new_value (str): New value (optional)
    """
    id: int
    order_id: str
    event_type: str
    description: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
