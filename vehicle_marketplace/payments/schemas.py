"""
Pydantic schemas for payments.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field

from ..schemas import Pagination


class PaymentCreate(BaseModel):
    """Schema for opening a payment against an order, booking or subscription."""
    payment_type: Literal["order", "service_booking", "rental_booking", "rsa_subscription"] = Field(
        ..., validation_alias=AliasChoices("payment_type", "paymentType")
    )
    reference_id: str = Field(..., min_length=1, validation_alias=AliasChoices("reference_id", "referenceId"))
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)


class PaymentVerify(BaseModel):
    """Gateway callback data returned to the client after checkout."""
    gateway_order_id: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("gateway_order_id", "gatewayOrderId")
    )
    gateway_payment_id: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("gateway_payment_id", "gatewayPaymentId")
    )
    gateway_signature: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("gateway_signature", "gatewaySignature")
    )


class Payment(BaseModel):
    """
    Schema for payment responses.

    Attributes:
        payment_status (str): created, success or failed
    """
    id: str
    user_id: str
    payment_type: str
    reference_id: str
    amount: Decimal
    currency: str
    gateway_order_id: str
    gateway_payment_id: Optional[str] = None
    payment_status: str
    failure_reason: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentList(BaseModel):
    payments: List[Payment]
    pagination: Pagination
