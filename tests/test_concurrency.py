"""Checkouts and booking claims racing from separate threads and sessions.

These tests run against a file-backed SQLite database so that every thread
gets its own connection; SQLite serializes the competing writers and the
conditional UPDATEs decide the winner.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from vehicle_marketplace import errors, models
from vehicle_marketplace.database import Base
from vehicle_marketplace.mechanic import crud as mechanic_crud
from vehicle_marketplace.parts import crud as parts_crud
from vehicle_marketplace.parts import schemas as parts_schemas


@pytest.fixture
def engine(tmp_path):
    """File database shared by the racing threads, each on its own connection."""
    file_engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=file_engine)
    yield file_engine
    file_engine.dispose()


def race(engine, *calls):
    """Run each call(session) in its own thread, released together; returns results or raised errors."""
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    barrier = threading.Barrier(len(calls))

    def run(call):
        session = Session()
        try:
            barrier.wait()
            return call(session)
        except errors.MarketplaceError as e:
            return e
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        return list(pool.map(run, calls))


class TestCheckoutRace:
    def test_last_unit_sold_once(self, engine, db, make_user, make_part, make_address):
        part = make_part(make_user("merchant"), stock=1)
        buyers = [make_user("customer") for _ in range(2)]
        carts = [
            (buyer.id, parts_schemas.OrderCreate(
                items=[{"part_id": part.id, "quantity": 1}], delivery_address_id=make_address(buyer).id
            ))
            for buyer in buyers
        ]

        outcomes = race(
            engine,
            *[lambda session, c=cart: parts_crud.create_order(session, c[0], c[1]) for cart in carts]
        )

        failures = [o for o in outcomes if isinstance(o, errors.MarketplaceError)]
        successes = [o for o in outcomes if not isinstance(o, errors.MarketplaceError)]
        assert len(successes) == 1
        assert len(failures) == 1
        assert isinstance(failures[0], errors.InsufficientStock)

        db.expire_all()
        assert db.get(models.CatalogItem, part.id).stock_quantity == 0
        assert db.query(models.Order).count() == 1
        assert db.query(models.OrderLineItem).count() == 1

    def test_stock_never_oversold(self, engine, db, make_user, make_part, make_address):
        part = make_part(make_user("merchant"), stock=3)
        buyers = [make_user("customer") for _ in range(4)]
        carts = [
            (buyer.id, parts_schemas.OrderCreate(
                items=[{"part_id": part.id, "quantity": 1}], delivery_address_id=make_address(buyer).id
            ))
            for buyer in buyers
        ]

        outcomes = race(
            engine,
            *[lambda session, c=cart: parts_crud.create_order(session, c[0], c[1]) for cart in carts]
        )

        assert sum(isinstance(o, errors.InsufficientStock) for o in outcomes) == 1
        db.expire_all()
        assert db.get(models.CatalogItem, part.id).stock_quantity == 0
        assert db.query(models.Order).count() == 3


class TestAssignmentRace:
    def test_one_mechanic_wins(self, engine, db, make_user, make_service_booking, customer):
        booking = make_service_booking(customer)
        mechanics = [make_user("mechanic", kyc_status="approved") for _ in range(2)]

        outcomes = race(
            engine,
            *[lambda session, m=mechanic: mechanic_crud.assign_mechanic(session, booking.id, m.id) for mechanic in mechanics]
        )

        losers = [o for o in outcomes if isinstance(o, errors.MarketplaceError)]
        assert len(losers) == 1
        assert isinstance(losers[0], errors.AlreadyAssigned)

        db.expire_all()
        stored = db.get(models.ServiceBooking, booking.id)
        assert stored.booking_status == "assigned"
        assert stored.mechanic_id in {m.id for m in mechanics}
