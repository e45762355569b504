"""
SQLAlchemy ORM models for the vehicle marketplace.

Defines the database schema for users, the parts catalog and its orders, and
the booking domains (mechanic service, cleaning, rental, roadside assistance),
payments and notifications.
All primary keys are UUID4 strings generated by the service layer before
insertion; money columns are fixed-point NUMERIC.
"""
from datetime import datetime
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from .database import Base

# JSON documents are JSONB on PostgreSQL and plain JSON elsewhere (SQLite in tests)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")

Money = Numeric(10, 2)


class User(Base):
    """
    User model representing any account on the platform.

    Attributes:
        id (str): Primary key, UUID
        full_name (str): User's full name
        email (str): User's email address (unique)
        phone (str): Contact phone number (optional)
        password_hash (str): Hashed password
        role (str): customer, merchant, mechanic, host or admin
        kyc_status (str): not_submitted, submitted, approved or rejected
        is_active (bool): Whether the user account is active
        created_at (datetime): Timestamp when the user was created
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, index=True)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, default="customer", nullable=False)
    kyc_status = Column(String, default="not_submitted", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class UserAddress(Base):
    """Delivery / pickup address owned by a user."""
    __tablename__ = "user_addresses"

    id = Column(String(36), primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    address_line1 = Column(String, nullable=False)
    address_line2 = Column(String, nullable=True)
    city = Column(String, nullable=False)
    state = Column(String, nullable=False)
    pincode = Column(String, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class KycDocument(Base):
    """
    Identity document submitted for KYC verification.

    Attributes:
        status (str): pending, verified or rejected
        verified_by (str): ID of the admin who reviewed the document
    """
    __tablename__ = "kyc_documents"

    id = Column(String(36), primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    document_type = Column(String, nullable=False)
    document_number = Column(String, nullable=False)
    document_url = Column(String, nullable=True)
    status = Column(String, default="pending", nullable=False)
    rejection_reason = Column(Text, nullable=True)
    verified_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    submitted_at = Column(DateTime, default=datetime.utcnow)
    verified_at = Column(DateTime, nullable=True)


# ---------------------------------------------------------------------------
# Parts marketplace
# ---------------------------------------------------------------------------

class CatalogItem(Base):
    """
    Vehicle part listed for sale by a merchant.

    Attributes:
        id (str): Primary key, UUID
        merchant_id (str): Owning merchant (a user)
        price (Decimal): Current unit price
        stock_quantity (int): Units available, never negative
        specifications (dict): Free-form key/value product specifications
        is_active (bool): False once the listing is soft-deleted
    """
    __tablename__ = "vehicle_parts"
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_vehicle_parts_stock_non_negative"),
    )

    id = Column(String(36), primary_key=True, index=True)
    merchant_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=False, index=True)
    vehicle_type = Column(String, nullable=True)
    brand = Column(String, nullable=True)
    price = Column(Money, nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0)
    sku = Column(String, nullable=True, index=True)
    specifications = Column(JSONDocument, nullable=True, default=dict)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Order(Base):
    """
    One merchant's share of a customer checkout.

    A checkout spanning several merchants creates one Order per merchant.
    total_amount is computed once at creation as
    subtotal + platform_commission + tax_amount + delivery_charge.

    Attributes:
        order_number (str): Human readable, unique (e.g. "ORD-123456-AB12CD34E")
        order_status (str): pending, confirmed, shipped, delivered or cancelled
        items (list): Line items of this order
    """
    __tablename__ = "part_orders"

    id = Column(String(36), primary_key=True, index=True)
    order_number = Column(String, unique=True, nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    merchant_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    delivery_address_id = Column(String(36), ForeignKey("user_addresses.id"), nullable=False)
    subtotal = Column(Money, nullable=False)
    platform_commission = Column(Money, nullable=False)
    tax_amount = Column(Money, nullable=False)
    delivery_charge = Column(Money, nullable=False)
    total_amount = Column(Money, nullable=False)
    order_status = Column(String, nullable=False, default="pending")
    tracking_number = Column(String, nullable=True)
    estimated_delivery = Column(DateTime, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    delivered_at = Column(DateTime, nullable=True)

    items = relationship(
        "OrderLineItem",
        back_populates="order",
        order_by="OrderLineItem.position",
        lazy="selectin",
    )


class OrderLineItem(Base):
    """
    A single part line within an order. Immutable once created.

    Attributes:
        unit_price (Decimal): Part price captured at order time
        total_price (Decimal): quantity * unit_price
        position (int): Line position within the checkout
    """
    __tablename__ = "part_order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_part_order_items_quantity_positive"),
    )

    id = Column(String(36), primary_key=True, index=True)
    order_id = Column(String(36), ForeignKey("part_orders.id"), nullable=False, index=True)
    part_id = Column(String(36), ForeignKey("vehicle_parts.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    part_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Money, nullable=False)
    total_price = Column(Money, nullable=False)

    order = relationship("Order", back_populates="items")


class OrderEvent(Base):
    """
    OrderEvent model representing historical events in an order's lifecycle.

    Attributes:
        id (int): Primary key, auto-incrementing event ID
        order_id (str): Foreign key to the order
        event_type (str): Type of event ("created", "status_changed")
        description (str): Human-readable description of the event
        old_value (str): Previous value (for changes, optional)
        new_value (str): New value (for changes, optional)
        user_id (str): ID of the user who triggered the event (optional)
        created_at (datetime): Timestamp when the event occurred
    """
    __tablename__ = "order_events"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey("part_orders.id"), nullable=False, index=True)
    event_type = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    old_value = Column(String, nullable=True)
    new_value = Column(String, nullable=True)
    user_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


# ---------------------------------------------------------------------------
# Mechanic service bookings
# ---------------------------------------------------------------------------

class MechanicProfile(Base):
    """
    Service profile of a mechanic (also used for roadside assistance partners).

    Attributes:
        total_jobs (int): Completed bookings and RSA requests
        rating (Decimal): Mean of all customer ratings, two decimals
    """
    __tablename__ = "mechanic_profiles"

    id = Column(String(36), primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    service_types = Column(JSONDocument, nullable=False, default=list)
    service_area_city = Column(String, nullable=True)
    hourly_rate = Column(Money, nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)
    total_jobs = Column(Integer, default=0, nullable=False)
    rating = Column(Numeric(3, 2), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ServiceBooking(Base):
    """A customer's request for a mechanic visit."""
    __tablename__ = "service_bookings"

    id = Column(String(36), primary_key=True, index=True)
    booking_number = Column(String, unique=True, nullable=False)
    customer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    mechanic_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    service_type = Column(String, nullable=False)
    vehicle_details = Column(JSONDocument, nullable=False)
    service_location_address = Column(String, nullable=False)
    service_location_lat = Column(Float, nullable=True)
    service_location_lng = Column(Float, nullable=True)
    preferred_datetime = Column(DateTime, nullable=True)
    service_description = Column(Text, nullable=True)
    booking_status = Column(String, nullable=False, default="pending")
    estimated_price = Column(Money, nullable=True)
    final_price = Column(Money, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    customer_rating = Column(Integer, nullable=True)
    customer_review = Column(Text, nullable=True)
    mechanic_assigned_at = Column(DateTime, nullable=True)
    service_started_at = Column(DateTime, nullable=True)
    service_completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# ---------------------------------------------------------------------------
# Rentals
# ---------------------------------------------------------------------------

class RentalVehicle(Base):
    """Vehicle listed for rent by a host."""
    __tablename__ = "rental_vehicles"

    id = Column(String(36), primary_key=True, index=True)
    host_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    vehicle_type = Column(String, nullable=False)
    brand = Column(String, nullable=False)
    model = Column(String, nullable=False)
    registration_number = Column(String, unique=True, nullable=False)
    seating_capacity = Column(Integer, nullable=True)
    fuel_type = Column(String, nullable=True)
    transmission = Column(String, nullable=True)
    price_per_day = Column(Money, nullable=False)
    is_insurance_eligible = Column(Boolean, default=False, nullable=False)
    current_location_city = Column(String, nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)
    total_bookings = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class RentalBooking(Base):
    """
    A rental reservation. Pricing fields are persisted once at creation.

    Attributes:
        total_days (int): ceil((end_date - start_date) / 1 day)
        total_amount (Decimal): subtotal + platform_commission + insurance_fee
    """
    __tablename__ = "rental_bookings"

    id = Column(String(36), primary_key=True, index=True)
    booking_number = Column(String, unique=True, nullable=False)
    customer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    vehicle_id = Column(String(36), ForeignKey("rental_vehicles.id"), nullable=False, index=True)
    host_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    total_days = Column(Integer, nullable=False)
    price_per_day = Column(Money, nullable=False)
    subtotal = Column(Money, nullable=False)
    platform_commission = Column(Money, nullable=False)
    insurance_fee = Column(Money, nullable=False)
    total_amount = Column(Money, nullable=False)
    booking_status = Column(String, nullable=False, default="pending")
    pickup_location = Column(String, nullable=True)
    dropoff_location = Column(String, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    accepted_at = Column(DateTime, nullable=True)
    vehicle_picked_up_at = Column(DateTime, nullable=True)
    vehicle_returned_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# ---------------------------------------------------------------------------
# Roadside assistance
# ---------------------------------------------------------------------------

class RsaSubscription(Base):
    """Roadside assistance plan purchased by a user."""
    __tablename__ = "rsa_subscriptions"

    id = Column(String(36), primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    plan_name = Column(String, nullable=False)
    plan_price = Column(Money, nullable=False)
    benefits = Column(JSONDocument, nullable=False, default=list)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class RsaRequest(Base):
    """An emergency roadside assistance request."""
    __tablename__ = "rsa_requests"

    id = Column(String(36), primary_key=True, index=True)
    request_number = Column(String, unique=True, nullable=False)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    subscription_id = Column(String(36), ForeignKey("rsa_subscriptions.id"), nullable=False)
    service_partner_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    emergency_type = Column(String, nullable=False)
    location_address = Column(String, nullable=False)
    location_lat = Column(Float, nullable=True)
    location_lng = Column(Float, nullable=True)
    vehicle_details = Column(JSONDocument, nullable=False)
    request_status = Column(String, nullable=False, default="pending")
    resolution_notes = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    partner_assigned_at = Column(DateTime, nullable=True)
    service_started_at = Column(DateTime, nullable=True)
    service_completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# ---------------------------------------------------------------------------
# Payments and notifications
# ---------------------------------------------------------------------------

class Payment(Base):
    """
    A payment collected through the payment gateway for an order or booking.

    Attributes:
        payment_type (str): order, service_booking, rental_booking or rsa_subscription
        reference_id (str): ID of the paid order, booking or subscription
        gateway_order_id (str): Gateway-side order the customer pays against
        payment_status (str): created, success or failed
    """
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    payment_type = Column(String, nullable=False)
    reference_id = Column(String(36), nullable=False, index=True)
    amount = Column(Money, nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    gateway_order_id = Column(String, unique=True, nullable=False)
    gateway_payment_id = Column(String, nullable=True)
    gateway_signature = Column(String, nullable=True)
    payment_status = Column(String, nullable=False, default="created")
    failure_reason = Column(Text, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )


class Notification(Base):
    """A message for one user, kept for the in-app inbox."""
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String, nullable=False)
    channel = Column(String, nullable=False, default="in_app")
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSONDocument, nullable=True)
    status = Column(String, nullable=False, default="pending")
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
