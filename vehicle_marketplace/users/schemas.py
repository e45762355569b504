"""
Pydantic schemas for accounts, addresses and KYC documents.
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, EmailStr, Field

from ..schemas import Pagination


class UserBase(BaseModel):
    """Base schema with common user attributes."""
    full_name: str = Field(..., min_length=1, validation_alias=AliasChoices("full_name", "fullName", "name"))
    email: EmailStr
    phone: Optional[str] = None


class UserRegister(UserBase):
    """Schema for user registration with password."""
    password: str = Field(..., min_length=8, description="Password must be at least 8 characters")


class UserLogin(BaseModel):
    """Schema for user login."""
    email: EmailStr
    password: str


class Token(BaseModel):
    """Schema for JWT token response."""
    access_token: str
    token_type: str = "bearer"


class UserUpdate(BaseModel):
    """Schema for updating the caller's profile. All fields are optional."""
    full_name: Optional[str] = Field(
        default=None, min_length=1, validation_alias=AliasChoices("full_name", "fullName", "name")
    )
    phone: Optional[str] = None


class PasswordChange(BaseModel):
    current_password: str = Field(..., validation_alias=AliasChoices("current_password", "currentPassword"))
    new_password: str = Field(
        ..., min_length=8, validation_alias=AliasChoices("new_password", "newPassword")
    )


class RoleChange(BaseModel):
    """Schema for a customer becoming a merchant, host or mechanic."""
    role: Literal["merchant", "host", "mechanic"]


class User(BaseModel):
    """
    Schema for user responses, includes all database fields except password.

    Attributes:
        id (str): User's unique identifier
        role (str): customer, merchant, mechanic, host or admin
        kyc_status (str): not_submitted, submitted, approved or rejected
        is_active (bool): Whether the account is active
    """
    id: str
    full_name: str
    email: EmailStr
    phone: Optional[str] = None
    role: str
    kyc_status: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class AddressCreate(BaseModel):
    address_line1: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("address_line1", "addressLine1")
    )
    address_line2: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("address_line2", "addressLine2")
    )
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    pincode: str = Field(..., min_length=1)
    is_default: bool = Field(default=False, validation_alias=AliasChoices("is_default", "isDefault"))


class AddressUpdate(BaseModel):
    """Schema for editing a saved address; omitted or null fields are kept."""
    address_line1: Optional[str] = Field(
        default=None, min_length=1, validation_alias=AliasChoices("address_line1", "addressLine1")
    )
    address_line2: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("address_line2", "addressLine2")
    )
    city: Optional[str] = Field(default=None, min_length=1)
    state: Optional[str] = Field(default=None, min_length=1)
    pincode: Optional[str] = Field(default=None, min_length=1)
    is_default: Optional[bool] = Field(default=None, validation_alias=AliasChoices("is_default", "isDefault"))


class Address(BaseModel):
    id: str
    user_id: str
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    state: str
    pincode: str
    is_default: bool
    created_at: datetime

    class Config:
        from_attributes = True


class KycSubmit(BaseModel):
    """Schema for submitting an identity document."""
    document_type: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("document_type", "documentType")
    )
    document_number: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("document_number", "documentNumber")
    )
    document_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("document_url", "documentUrl")
    )


class KycVerify(BaseModel):
    """Schema for an admin decision on a KYC document."""
    status: Literal["verified", "rejected"]
    rejection_reason: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("rejection_reason", "rejectionReason")
    )


class KycDocument(BaseModel):
    """
    Schema for KYC document responses.

    Attributes:
        status (str): pending, verified or rejected
    """
    id: str
    user_id: str
    document_type: str
    document_number: str
    document_url: Optional[str] = None
    status: str
    rejection_reason: Optional[str] = None
    verified_by: Optional[str] = None
    submitted_at: datetime
    verified_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class KycDocumentList(BaseModel):
    documents: List[KycDocument]
    pagination: Pagination
