"""Pytest fixtures for vehicle marketplace tests."""

import os

# Must be set before the application modules build their engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["WEBHOOK_URLS"] = ""

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from vehicle_marketplace import auth, models
from vehicle_marketplace.database import Base, get_db
from vehicle_marketplace.main import app
from vehicle_marketplace.responses import generate_unique_number, new_id


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    """Test client whose requests share the test's session."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Create a user directly in the database."""

    def _make_user(role="customer", kyc_status="not_submitted", email=None, password="password123", is_active=True):
        user = models.User(
            id=new_id(),
            full_name=f"Test {role.title()}",
            email=email or f"{role}-{uuid.uuid4().hex[:8]}@example.com",
            password_hash=auth.get_password_hash(password),
            role=role,
            kyc_status=kyc_status,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def headers_for():
    """Bearer headers for a user."""

    def _headers_for(user):
        return {"Authorization": f"Bearer {auth.token_for_user(user)}"}

    return _headers_for


@pytest.fixture
def customer(make_user):
    return make_user("customer")


@pytest.fixture
def verified_mechanic(db, make_user):
    """KYC-approved mechanic with a profile."""
    mechanic = make_user("mechanic", kyc_status="approved")
    db.add(
        models.MechanicProfile(
            id=new_id(),
            user_id=mechanic.id,
            service_types=["general_service", "battery"],
            service_area_city="Pune",
            hourly_rate=Decimal("500.00"),
            is_available=True,
            total_jobs=0,
        )
    )
    db.commit()
    return mechanic


@pytest.fixture
def make_address(db):
    def _make_address(user, is_default=True):
        address = models.UserAddress(
            id=new_id(),
            user_id=user.id,
            address_line1="12 MG Road",
            city="Pune",
            state="MH",
            pincode="411001",
            is_default=is_default,
        )
        db.add(address)
        db.commit()
        db.refresh(address)
        return address

    return _make_address


@pytest.fixture
def make_part(db):
    def _make_part(merchant, price="100.00", stock=5, name=None, category="brakes"):
        part = models.CatalogItem(
            id=new_id(),
            merchant_id=merchant.id,
            name=name or f"Part {uuid.uuid4().hex[:6]}",
            category=category,
            vehicle_type="car",
            price=Decimal(price),
            stock_quantity=stock,
            specifications={},
            is_active=True,
        )
        db.add(part)
        db.commit()
        db.refresh(part)
        return part

    return _make_part


@pytest.fixture
def make_vehicle(db):
    def _make_vehicle(host, price_per_day="1000.00", insurance_eligible=True, city="Pune"):
        vehicle = models.RentalVehicle(
            id=new_id(),
            host_id=host.id,
            vehicle_type="car",
            brand="Maruti",
            model="Swift",
            registration_number=f"MH12{uuid.uuid4().hex[:6].upper()}",
            price_per_day=Decimal(price_per_day),
            is_insurance_eligible=insurance_eligible,
            current_location_city=city,
            is_available=True,
            total_bookings=0,
        )
        db.add(vehicle)
        db.commit()
        db.refresh(vehicle)
        return vehicle

    return _make_vehicle


@pytest.fixture
def make_service_booking(db):
    def _make_service_booking(customer, status="pending", mechanic=None):
        booking = models.ServiceBooking(
            id=new_id(),
            booking_number=generate_unique_number("SRV"),
            customer_id=customer.id,
            mechanic_id=mechanic.id if mechanic else None,
            service_type="general_service",
            vehicle_details={"vehicle_type": "car", "make": "Honda", "model": "City"},
            service_location_address="12 MG Road, Pune",
            booking_status=status,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make_service_booking


@pytest.fixture
def make_subscription(db):
    def _make_subscription(user, days_left=30, is_active=True):
        subscription = models.RsaSubscription(
            id=new_id(),
            user_id=user.id,
            plan_name="Gold",
            plan_price=Decimal("999.00"),
            benefits=["towing", "battery_jumpstart"],
            start_date=date.today() - timedelta(days=1),
            end_date=date.today() + timedelta(days=days_left),
            is_active=is_active,
        )
        db.add(subscription)
        db.commit()
        db.refresh(subscription)
        return subscription

    return _make_subscription
