"""Tests for the parts catalog, checkout and order lifecycle."""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import update

from vehicle_marketplace import errors, models, pricing, validators
from vehicle_marketplace.parts import crud, schemas


def checkout(items, address):
    return schemas.OrderCreate(
        items=[{"part_id": part.id, "quantity": quantity} for part, quantity in items],
        delivery_address_id=address.id,
    )


def stock_of(db, part):
    db.expire_all()
    return db.query(models.CatalogItem.stock_quantity).filter(models.CatalogItem.id == part.id).scalar()


class TestCreateOrder:
    def test_splits_cart_per_merchant(self, db, make_user, make_part, make_address, customer):
        m1, m2 = make_user("merchant"), make_user("merchant")
        part_a = make_part(m1, price="100.00", stock=5)
        part_b = make_part(m2, price="50.00", stock=5)
        address = make_address(customer)

        orders = crud.create_order(db, customer.id, checkout([(part_a, 2), (part_b, 1)], address))

        assert [o.merchant_id for o in orders] == [m1.id, m2.id]
        first, second = orders
        assert first.subtotal == Decimal("200.00")
        assert first.platform_commission == Decimal("10.00")
        assert first.tax_amount == Decimal("36.00")
        assert first.delivery_charge == Decimal("50.00")
        assert first.total_amount == Decimal("296.00")
        assert second.total_amount == Decimal("111.50")
        assert stock_of(db, part_a) == 3
        assert stock_of(db, part_b) == 4

    def test_orders_have_line_items_and_created_event(self, db, make_user, make_part, make_address, customer):
        merchant = make_user("merchant")
        part = make_part(merchant, price="12.50", stock=10, name="Brake pad")
        address = make_address(customer)

        (order,) = crud.create_order(db, customer.id, checkout([(part, 4)], address))

        assert order.order_number.startswith("ORD-")
        assert order.order_status == "pending"
        assert len(order.items) == 1
        item = order.items[0]
        assert item.part_name == "Brake pad"
        assert item.unit_price == Decimal("12.50")
        assert item.total_price == Decimal("50.00")
        timeline = crud.get_order_timeline(db, order.id)
        assert [event.event_type for event in timeline] == ["created"]

    def test_failure_in_one_merchant_creates_nothing(self, db, make_user, make_part, make_address, customer):
        m1, m2 = make_user("merchant"), make_user("merchant")
        plenty = make_part(m1, stock=5)
        scarce = make_part(m2, stock=1)
        address = make_address(customer)

        with pytest.raises(errors.InsufficientStock) as exc_info:
            crud.create_order(db, customer.id, checkout([(plenty, 2), (scarce, 3)], address))

        assert exc_info.value.available == 1
        assert exc_info.value.requested == 3
        assert db.query(models.Order).count() == 0
        assert db.query(models.OrderLineItem).count() == 0
        assert stock_of(db, plenty) == 5
        assert stock_of(db, scarce) == 1

    def test_missing_part_reported_before_stock(self, db, make_user, make_part, make_address, customer):
        merchant = make_user("merchant")
        short = make_part(merchant, stock=0)
        address = make_address(customer)
        order = schemas.OrderCreate(
            items=[{"part_id": short.id, "quantity": 1}, {"part_id": "no-such-part", "quantity": 1}],
            delivery_address_id=address.id,
        )

        with pytest.raises(errors.ItemNotFound) as exc_info:
            crud.create_order(db, customer.id, order)
        assert exc_info.value.item_id == "no-such-part"

    def test_inactive_part_is_not_found(self, db, make_user, make_part, make_address, customer):
        merchant = make_user("merchant")
        part = make_part(merchant)
        crud.delete_part(db, part.id, merchant.id)

        with pytest.raises(errors.ItemNotFound):
            crud.create_order(db, customer.id, checkout([(part, 1)], make_address(customer)))

    def test_empty_cart(self, db, make_address, customer):
        with pytest.raises(errors.EmptyCart):
            crud.create_order(
                db, customer.id, schemas.OrderCreate(items=[], delivery_address_id=make_address(customer).id)
            )

    def test_duplicate_cart_line(self, db, make_user, make_part, make_address, customer):
        part = make_part(make_user("merchant"))
        with pytest.raises(errors.DuplicateCartItem):
            crud.create_order(db, customer.id, checkout([(part, 1), (part, 2)], make_address(customer)))

    def test_delivery_address_must_belong_to_customer(self, db, make_user, make_part, make_address, customer):
        part = make_part(make_user("merchant"))
        someone_else = make_user("customer")

        with pytest.raises(errors.AddressNotFound):
            crud.create_order(db, customer.id, checkout([(part, 1)], make_address(someone_else)))
        assert stock_of(db, part) == 5


class TestStockRace:
    def test_sequential_checkouts_for_last_unit(self, db, make_user, make_part, make_address):
        part = make_part(make_user("merchant"), stock=1)
        first, second = make_user("customer"), make_user("customer")

        crud.create_order(db, first.id, checkout([(part, 1)], make_address(first)))
        with pytest.raises(errors.InsufficientStock):
            crud.create_order(db, second.id, checkout([(part, 1)], make_address(second)))

        assert stock_of(db, part) == 0
        assert db.query(models.Order).count() == 1

    def test_decrement_loses_when_stock_taken_after_pricing(self, db, make_user, make_part):
        part = make_part(make_user("merchant"), stock=1)
        lines = crud.price_cart(db, [schemas.CartLine(part_id=part.id, quantity=1)])

        # A competing checkout takes the unit between pricing and decrement
        db.execute(update(models.CatalogItem).where(models.CatalogItem.id == part.id).values(stock_quantity=0))

        with pytest.raises(errors.InsufficientStock):
            crud.decrement_stock(db, lines[0])
        db.rollback()


class TestOrderStatus:
    def _order(self, db, make_user, make_part, make_address, customer):
        merchant = make_user("merchant")
        part = make_part(merchant)
        (order,) = crud.create_order(db, customer.id, checkout([(part, 1)], make_address(customer)))
        return merchant, order

    def test_forward_transitions_are_recorded(self, db, make_user, make_part, make_address, customer):
        merchant, order = self._order(db, make_user, make_part, make_address, customer)

        crud.update_order_status(db, order.id, merchant.id, schemas.OrderStatusUpdate(status="confirmed"))
        updated, old = crud.update_order_status(
            db, order.id, merchant.id, schemas.OrderStatusUpdate(status="shipped", trackingNumber="TRK1")
        )

        assert old == "confirmed"
        assert updated.order_status == "shipped"
        assert updated.tracking_number == "TRK1"
        assert updated.estimated_delivery is None
        timeline = crud.get_order_timeline(db, order.id)
        assert [(e.old_value, e.new_value) for e in timeline[1:]] == [
            ("pending", "confirmed"),
            ("confirmed", "shipped"),
        ]

    def test_shipping_records_estimated_delivery(self, db, make_user, make_part, make_address, customer):
        merchant, order = self._order(db, make_user, make_part, make_address, customer)
        crud.update_order_status(db, order.id, merchant.id, schemas.OrderStatusUpdate(status="confirmed"))

        shipped, _ = crud.update_order_status(
            db,
            order.id,
            merchant.id,
            schemas.OrderStatusUpdate(status="shipped", estimatedDelivery="2024-06-01T18:00:00"),
        )
        assert shipped.estimated_delivery == datetime(2024, 6, 1, 18, 0)

        delivered, _ = crud.update_order_status(db, order.id, merchant.id, schemas.OrderStatusUpdate(status="delivered"))
        assert delivered.estimated_delivery == datetime(2024, 6, 1, 18, 0)
        assert delivered.delivered_at is not None

    def test_gap_transition_rejected(self, db, make_user, make_part, make_address, customer):
        merchant, order = self._order(db, make_user, make_part, make_address, customer)

        with pytest.raises(errors.InvalidStatusTransition):
            crud.update_order_status(db, order.id, merchant.id, schemas.OrderStatusUpdate(status="delivered"))

    def test_other_merchant_cannot_update(self, db, make_user, make_part, make_address, customer):
        _, order = self._order(db, make_user, make_part, make_address, customer)
        intruder = make_user("merchant")

        with pytest.raises(errors.NotFoundOrUnauthorized):
            crud.update_order_status(db, order.id, intruder.id, schemas.OrderStatusUpdate(status="confirmed"))

    def test_unknown_status(self, db, make_user, make_part, make_address, customer):
        merchant, order = self._order(db, make_user, make_part, make_address, customer)

        with pytest.raises(errors.InvalidStatusValue):
            crud.update_order_status(db, order.id, merchant.id, schemas.OrderStatusUpdate(status="lost"))


class TestStatusValidator:
    @pytest.mark.parametrize(
        "old, new",
        [("pending", "confirmed"), ("confirmed", "shipped"), ("shipped", "delivered"), ("confirmed", "cancelled")],
    )
    def test_allowed(self, old, new):
        validators.validate_order_status_transition(old, new)

    @pytest.mark.parametrize("old, new", [("pending", "shipped"), ("delivered", "cancelled"), ("shipped", "cancelled")])
    def test_rejected(self, old, new):
        with pytest.raises(errors.InvalidStatusTransition):
            validators.validate_order_status_transition(old, new)

    def test_order_status_vocabulary(self):
        assert validators.ORDER_STATUSES == {"pending", "confirmed", "shipped", "delivered", "cancelled"}
        assert set(validators.ORDER_TRANSITIONS) <= validators.ORDER_STATUSES

    @pytest.mark.parametrize("old", ["pending", "confirmed"])
    def test_processing_is_not_an_order_status(self, old):
        with pytest.raises(errors.InvalidStatusValue):
            validators.validate_order_status_transition(old, "processing")


class TestOrdersApi:
    def test_checkout_endpoint(self, client, db, make_user, make_part, make_address, customer, headers_for):
        m1, m2 = make_user("merchant"), make_user("merchant")
        part_a = make_part(m1, price="100.00", stock=5)
        part_b = make_part(m2, price="50.00", stock=5)
        address = make_address(customer)

        response = client.post(
            "/orders",
            json={
                "items": [
                    {"catalogItemId": part_a.id, "quantity": 2},
                    {"catalogItemId": part_b.id, "quantity": 1},
                ],
                "deliveryAddressId": address.id,
            },
            headers=headers_for(customer),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["statusCode"] == 201
        totals = sorted(Decimal(order["total_amount"]) for order in body["data"])
        assert totals == [Decimal("111.50"), Decimal("296.00")]

    def test_checkout_requires_auth(self, client):
        response = client.post("/orders", json={"items": [], "deliveryAddressId": "x"})
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_insufficient_stock_envelope(self, client, make_user, make_part, make_address, customer, headers_for):
        part = make_part(make_user("merchant"), stock=1)
        response = client.post(
            "/orders",
            json={"items": [{"part_id": part.id, "quantity": 2}], "delivery_address_id": make_address(customer).id},
            headers=headers_for(customer),
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["data"] == {"part_id": part.id, "available": 1, "requested": 2}

    def test_order_visibility(self, client, db, make_user, make_part, make_address, customer, headers_for):
        merchant = make_user("merchant")
        part = make_part(merchant)
        (order,) = crud.create_order(db, customer.id, checkout([(part, 1)], make_address(customer)))

        assert client.get(f"/orders/{order.id}", headers=headers_for(customer)).status_code == 200
        assert client.get(f"/orders/{order.id}", headers=headers_for(merchant)).status_code == 200
        stranger = client.get(f"/orders/{order.id}", headers=headers_for(make_user("customer")))
        missing = client.get("/orders/does-not-exist", headers=headers_for(customer))
        assert stranger.status_code == missing.status_code == 404
        assert stranger.json()["message"] == missing.json()["message"]

    def test_status_update_and_timeline(self, client, db, make_user, make_part, make_address, customer, headers_for):
        merchant = make_user("merchant")
        part = make_part(merchant)
        (order,) = crud.create_order(db, customer.id, checkout([(part, 1)], make_address(customer)))

        response = client.put(
            f"/orders/{order.id}/status", json={"status": "confirmed"}, headers=headers_for(merchant)
        )
        assert response.status_code == 200
        assert response.json()["data"]["order_status"] == "confirmed"

        gap = client.put(f"/orders/{order.id}/status", json={"status": "delivered"}, headers=headers_for(merchant))
        assert gap.status_code == 409

        timeline = client.get(f"/orders/{order.id}/timeline", headers=headers_for(customer))
        assert [e["event_type"] for e in timeline.json()["data"]] == ["created", "status_changed"]

    def test_customer_cannot_change_status(self, client, db, make_user, make_part, make_address, customer, headers_for):
        part = make_part(make_user("merchant"))
        (order,) = crud.create_order(db, customer.id, checkout([(part, 1)], make_address(customer)))

        response = client.put(f"/orders/{order.id}/status", json={"status": "confirmed"}, headers=headers_for(customer))
        assert response.status_code == 403

    def test_list_orders_paginated(self, client, db, make_user, make_part, make_address, customer, headers_for):
        part = make_part(make_user("merchant"), stock=10)
        address = make_address(customer)
        for _ in range(3):
            crud.create_order(db, customer.id, checkout([(part, 1)], address))

        response = client.get("/orders?page=1&limit=2", headers=headers_for(customer))
        data = response.json()["data"]
        assert len(data["orders"]) == 2
        assert data["pagination"] == {"page": 1, "limit": 2, "total": 3, "totalPages": 2}


class TestCatalogApi:
    def test_merchant_creates_and_lists_parts(self, client, make_user, headers_for):
        merchant = make_user("merchant")
        response = client.post(
            "/parts",
            json={"name": "Oil filter", "category": "engine", "price": "249.99", "stock_quantity": 7},
            headers=headers_for(merchant),
        )
        assert response.status_code == 201
        assert response.json()["data"]["price"] == "249.99"

        listed = client.get("/parts?category=engine&search=oil")
        assert listed.json()["data"]["pagination"]["total"] == 1

    def test_customer_cannot_list_parts_for_sale(self, client, customer, headers_for):
        response = client.post(
            "/parts",
            json={"name": "Oil filter", "category": "engine", "price": "249.99", "stock_quantity": 7},
            headers=headers_for(customer),
        )
        assert response.status_code == 403

    def test_only_owner_updates_part(self, client, make_user, make_part, headers_for):
        owner = make_user("merchant")
        part = make_part(owner)

        other = client.put(f"/parts/{part.id}", json={"price": "1.00"}, headers=headers_for(make_user("merchant")))
        assert other.status_code == 400

        mine = client.put(f"/parts/{part.id}", json={"stock_quantity": 9}, headers=headers_for(owner))
        assert mine.json()["data"]["stock_quantity"] == 9

    @pytest.mark.parametrize("field", ["price", "stock_quantity", "name"])
    def test_null_fields_leave_listing_unchanged(self, client, make_user, make_part, headers_for, field):
        owner = make_user("merchant")
        part = make_part(owner, price="120.00", stock=4, name="Brake pad")

        response = client.put(f"/parts/{part.id}", json={field: None}, headers=headers_for(owner))

        assert response.status_code == 200
        data = response.json()["data"]
        assert (data["price"], data["stock_quantity"], data["name"]) == ("120.00", 4, "Brake pad")

    def test_deleted_part_is_hidden(self, client, make_user, make_part, headers_for):
        owner = make_user("merchant")
        part = make_part(owner)

        assert client.delete(f"/parts/{part.id}", headers=headers_for(owner)).status_code == 200
        assert client.get(f"/parts/{part.id}").status_code == 404

    def test_line_total_helper(self):
        assert pricing.line_total(Decimal("19.99"), 3) == Decimal("59.97")
