"""Tests for mechanic profiles, service bookings and the shared booking status machine."""

from decimal import Decimal

import pytest

from vehicle_marketplace import bookings, errors, models
from vehicle_marketplace.mechanic import crud, schemas


def status_update(status, **extra):
    return schemas.ServiceBookingStatusUpdate(status=status, **extra)


def profile_of(db, user):
    db.expire_all()
    return db.query(models.MechanicProfile).filter(models.MechanicProfile.user_id == user.id).first()


class TestAssignment:
    def test_first_claim_wins(self, db, make_user, make_service_booking, customer, verified_mechanic):
        booking = make_service_booking(customer)
        rival = make_user("mechanic", kyc_status="approved")

        assigned = crud.assign_mechanic(db, booking.id, verified_mechanic.id)
        with pytest.raises(errors.AlreadyAssigned):
            crud.assign_mechanic(db, booking.id, rival.id)

        assert assigned.booking_status == "assigned"
        assert assigned.mechanic_id == verified_mechanic.id
        assert assigned.mechanic_assigned_at is not None

    def test_assign_missing_booking(self, db, verified_mechanic):
        with pytest.raises(errors.NotFoundOrUnauthorized):
            crud.assign_mechanic(db, "no-such-booking", verified_mechanic.id)

    @pytest.mark.parametrize("status", ["cancelled", "completed"])
    def test_finished_booking_is_not_claimable(self, db, make_service_booking, customer, verified_mechanic, status):
        booking = make_service_booking(customer, status=status)
        with pytest.raises(errors.BookingNotClaimable) as exc_info:
            crud.assign_mechanic(db, booking.id, verified_mechanic.id)
        assert exc_info.value.status == status
        assert exc_info.value.status_code == 409

    def test_claim_on_finished_booking_over_http(self, client, make_service_booking, customer, verified_mechanic, headers_for):
        booking = make_service_booking(customer, status="cancelled")
        response = client.post(f"/mechanic/bookings/{booking.id}/assign", headers=headers_for(verified_mechanic))
        assert response.status_code == 409
        assert "cannot be claimed" in response.json()["message"]


class TestStatusMachine:
    def test_full_lifecycle_counts_job(self, db, make_service_booking, customer, verified_mechanic):
        booking = make_service_booking(customer)
        crud.assign_mechanic(db, booking.id, verified_mechanic.id)

        started, old = crud.update_booking_status(
            db, booking.id, verified_mechanic.id, status_update("in_progress", estimatedPrice="800.00")
        )
        assert old == "assigned"
        assert started.service_started_at is not None
        assert started.estimated_price == Decimal("800.00")

        done, _ = crud.update_booking_status(
            db, booking.id, verified_mechanic.id, status_update("completed", final_price="750.00")
        )
        assert done.booking_status == "completed"
        assert done.service_completed_at is not None
        assert done.final_price == Decimal("750.00")
        assert profile_of(db, verified_mechanic).total_jobs == 1

    def test_gap_transition_rejected(self, db, make_service_booking, customer, verified_mechanic):
        booking = make_service_booking(customer, status="assigned", mechanic=verified_mechanic)

        with pytest.raises(errors.InvalidStatusTransition) as exc_info:
            crud.update_booking_status(db, booking.id, verified_mechanic.id, status_update("completed"))

        assert exc_info.value.old_status == "assigned"
        assert profile_of(db, verified_mechanic).total_jobs == 0

    def test_pending_cannot_jump_to_completed(self, db, make_service_booking, customer):
        booking = make_service_booking(customer)
        # Only the provider may complete; with no provider yet the customer matches nothing
        with pytest.raises(errors.NotFoundOrUnauthorized):
            crud.update_booking_status(db, booking.id, customer.id, status_update("completed"))

    def test_in_progress_is_idempotent(self, db, make_service_booking, customer, verified_mechanic):
        booking = make_service_booking(customer, status="assigned", mechanic=verified_mechanic)

        first, _ = crud.update_booking_status(db, booking.id, verified_mechanic.id, status_update("in_progress"))
        started_at = first.service_started_at
        again, old = crud.update_booking_status(db, booking.id, verified_mechanic.id, status_update("in_progress"))

        assert old == "in_progress"
        assert again.service_started_at == started_at

    def test_customer_cancels_pending_booking(self, db, make_service_booking, customer):
        booking = make_service_booking(customer)

        cancelled, _ = crud.update_booking_status(
            db, booking.id, customer.id, status_update("cancelled", cancellationReason="Fixed it myself")
        )

        assert cancelled.booking_status == "cancelled"
        assert cancelled.cancellation_reason == "Fixed it myself"
        assert cancelled.cancelled_at is not None

    def test_cannot_cancel_after_start(self, db, make_service_booking, customer, verified_mechanic):
        booking = make_service_booking(customer, status="in_progress", mechanic=verified_mechanic)
        with pytest.raises(errors.InvalidStatusTransition):
            crud.update_booking_status(db, booking.id, customer.id, status_update("cancelled"))

    def test_assigned_is_not_settable_directly(self, db, make_service_booking, customer):
        booking = make_service_booking(customer)
        with pytest.raises(errors.InvalidStatusValue):
            crud.update_booking_status(db, booking.id, customer.id, status_update("assigned"))

    def test_stranger_gets_same_error_as_missing_booking(self, db, make_user, make_service_booking, customer):
        booking = make_service_booking(customer)
        stranger = make_user("customer")

        with pytest.raises(errors.NotFoundOrUnauthorized) as foreign:
            crud.update_booking_status(db, booking.id, stranger.id, status_update("cancelled"))
        with pytest.raises(errors.NotFoundOrUnauthorized) as missing:
            crud.update_booking_status(db, "no-such-booking", stranger.id, status_update("cancelled"))

        assert foreign.value.message == missing.value.message
        assert foreign.value.status_code == missing.value.status_code

    def test_transition_table_per_domain(self):
        transitions = crud.SERVICE_BOOKINGS.transitions
        assert set(transitions) == {"in_progress", "completed", "cancelled"}
        assert transitions["completed"] == {"in_progress"}
        assert transitions["cancelled"] == {"pending", "assigned"}


class TestReviews:
    def _completed(self, db, make_service_booking, customer, mechanic):
        return make_service_booking(customer, status="completed", mechanic=mechanic)

    def test_rating_average_recomputed(self, db, make_user, make_service_booking, verified_mechanic):
        first, second = make_user("customer"), make_user("customer")
        b1 = self._completed(db, make_service_booking, first, verified_mechanic)
        b2 = self._completed(db, make_service_booking, second, verified_mechanic)

        crud.add_review(db, b1.id, first.id, schemas.ReviewCreate(rating=5, review="Great"))
        crud.add_review(db, b2.id, second.id, schemas.ReviewCreate(rating=4))
        assert profile_of(db, verified_mechanic).rating == Decimal("4.50")

        # A re-review replaces the earlier rating in the average
        crud.add_review(db, b2.id, second.id, schemas.ReviewCreate(rating=2))
        assert profile_of(db, verified_mechanic).rating == Decimal("3.50")

    def test_average_rounds_to_two_places(self, db, make_user, make_service_booking, verified_mechanic):
        for rating in (5, 4, 4):
            owner = make_user("customer")
            booking = self._completed(db, make_service_booking, owner, verified_mechanic)
            crud.add_review(db, booking.id, owner.id, schemas.ReviewCreate(rating=rating))

        assert profile_of(db, verified_mechanic).rating == Decimal("4.33")

    def test_review_requires_completed_booking(self, db, make_service_booking, customer, verified_mechanic):
        booking = make_service_booking(customer, status="in_progress", mechanic=verified_mechanic)
        with pytest.raises(errors.NotCompletedOrUnauthorized):
            crud.add_review(db, booking.id, customer.id, schemas.ReviewCreate(rating=5))

    def test_only_customer_reviews(self, db, make_service_booking, customer, verified_mechanic):
        booking = self._completed(db, make_service_booking, customer, verified_mechanic)
        with pytest.raises(errors.NotCompletedOrUnauthorized):
            crud.add_review(db, booking.id, verified_mechanic.id, schemas.ReviewCreate(rating=5))


class TestProfiles:
    def test_create_profile_makes_user_mechanic(self, db, customer):
        profile = crud.create_profile(
            db, customer, schemas.MechanicProfileCreate(serviceTypes=["towing"], serviceAreaCity="Mumbai")
        )
        db.refresh(customer)

        assert profile.service_types == ["towing"]
        assert customer.role == "mechanic"

    def test_duplicate_profile(self, db, verified_mechanic):
        with pytest.raises(errors.ConflictError):
            crud.create_profile(db, verified_mechanic, schemas.MechanicProfileCreate(service_types=["x"]))

    def test_find_available_mechanics(self, db, make_user, verified_mechanic):
        unverified = make_user("mechanic", kyc_status="submitted")
        crud.create_profile(db, unverified, schemas.MechanicProfileCreate(service_types=["battery"]))

        found = crud.find_available_mechanics(db, city="pune", service_type="battery")
        assert [profile.user_id for profile in found] == [verified_mechanic.id]
        assert crud.find_available_mechanics(db, service_type="painting") == []


class TestMechanicApi:
    def test_booking_flow(self, client, customer, verified_mechanic, headers_for):
        created = client.post(
            "/mechanic/bookings",
            json={
                "serviceType": "general_service",
                "vehicleDetails": {"vehicle_type": "bike", "make": "Bajaj", "model": "Pulsar", "engine_cc": 150},
                "serviceLocationAddress": "Baner, Pune",
            },
            headers=headers_for(customer),
        )
        assert created.status_code == 201
        booking = created.json()["data"]
        assert booking["booking_number"].startswith("SRV-")
        assert booking["vehicle_details"]["vehicle_type"] == "bike"

        assigned = client.post(f"/mechanic/bookings/{booking['id']}/assign", headers=headers_for(verified_mechanic))
        assert assigned.status_code == 200
        assert assigned.json()["data"]["booking_status"] == "assigned"

        listed = client.get("/mechanic/bookings", headers=headers_for(verified_mechanic))
        assert listed.json()["data"]["pagination"]["total"] == 1

    def test_unknown_vehicle_type_rejected(self, client, customer, headers_for):
        response = client.post(
            "/mechanic/bookings",
            json={
                "service_type": "general_service",
                "vehicle_details": {"vehicle_type": "boat", "make": "X", "model": "Y"},
                "service_location_address": "Pune",
            },
            headers=headers_for(customer),
        )
        assert response.status_code == 422
        assert response.json()["success"] is False

    def test_second_assign_conflicts(self, client, make_user, make_service_booking, customer, verified_mechanic, headers_for):
        booking = make_service_booking(customer)
        rival = make_user("mechanic", kyc_status="approved")

        assert client.post(f"/mechanic/bookings/{booking.id}/assign", headers=headers_for(verified_mechanic)).status_code == 200
        second = client.post(f"/mechanic/bookings/{booking.id}/assign", headers=headers_for(rival))
        assert second.status_code == 409

    def test_assign_requires_approved_kyc(self, client, make_user, make_service_booking, customer, headers_for):
        booking = make_service_booking(customer)
        unverified = make_user("mechanic", kyc_status="submitted")

        response = client.post(f"/mechanic/bookings/{booking.id}/assign", headers=headers_for(unverified))
        assert response.status_code == 403

    def test_status_error_opacity(self, client, make_user, make_service_booking, customer, headers_for):
        booking = make_service_booking(customer)
        stranger = make_user("customer")

        foreign = client.put(
            f"/mechanic/bookings/{booking.id}/status", json={"status": "cancelled"}, headers=headers_for(stranger)
        )
        missing = client.put(
            "/mechanic/bookings/missing/status", json={"status": "cancelled"}, headers=headers_for(stranger)
        )
        assert foreign.status_code == missing.status_code == 400
        assert foreign.json() == missing.json()

    def test_get_booking_party_only(self, client, make_user, make_service_booking, customer, headers_for):
        booking = make_service_booking(customer)

        assert client.get(f"/mechanic/bookings/{booking.id}", headers=headers_for(customer)).status_code == 200
        response = client.get(f"/mechanic/bookings/{booking.id}", headers=headers_for(make_user("customer")))
        assert response.status_code == 404

    def test_review_endpoint(self, client, make_service_booking, customer, verified_mechanic, headers_for):
        booking = make_service_booking(customer, status="completed", mechanic=verified_mechanic)

        response = client.post(
            f"/mechanic/bookings/{booking.id}/review", json={"rating": 5}, headers=headers_for(customer)
        )
        assert response.status_code == 200
        assert response.json()["data"]["customer_rating"] == 5

        profile = client.get("/mechanic/profile", headers=headers_for(verified_mechanic)).json()["data"]
        assert profile["rating"] == "5.00"

    def test_nearby_is_public(self, client, verified_mechanic):
        response = client.get("/mechanic/nearby?city=Pune")
        assert response.status_code == 200
        assert [p["user_id"] for p in response.json()["data"]] == [verified_mechanic.id]


def test_booking_domain_statuses():
    assert crud.SERVICE_BOOKINGS.statuses == {"pending", "assigned", "in_progress", "completed", "cancelled"}
    assert isinstance(crud.SERVICE_BOOKINGS, bookings.BookingDomain)
