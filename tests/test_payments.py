"""Tests for payment records and signature verification."""

import hashlib
import hmac
from decimal import Decimal

import pytest

from vehicle_marketplace import errors, models
from vehicle_marketplace.payments import crud, schemas


def open_payment(db, user, amount="499.00"):
    return crud.create_payment(
        db, user.id, schemas.PaymentCreate(paymentType="rsa_subscription", referenceId="sub-1", amount=amount)
    )


def verification(payment, gateway_payment_id="pay_123", signature=None):
    if signature is None:
        signature = crud.compute_signature(payment.gateway_order_id, gateway_payment_id)
    return schemas.PaymentVerify(
        gatewayOrderId=payment.gateway_order_id,
        gatewayPaymentId=gateway_payment_id,
        gatewaySignature=signature,
    )


class TestSignature:
    def test_hmac_over_order_and_payment_ids(self):
        expected = hmac.new(b"secret", b"order_1|pay_1", hashlib.sha256).hexdigest()
        assert crud.compute_signature("order_1", "pay_1", secret="secret") == expected

    def test_depends_on_both_ids_and_secret(self):
        base = crud.compute_signature("order_1", "pay_1", secret="secret")
        assert crud.compute_signature("order_2", "pay_1", secret="secret") != base
        assert crud.compute_signature("order_1", "pay_2", secret="secret") != base
        assert crud.compute_signature("order_1", "pay_1", secret="other") != base


class TestVerify:
    def test_created_payment(self, db, customer):
        payment = open_payment(db, customer)

        assert payment.payment_status == "created"
        assert payment.currency == "INR"
        assert payment.amount == Decimal("499.00")
        assert payment.gateway_order_id.startswith("order_")

    def test_valid_signature_settles_once(self, db, customer):
        payment = open_payment(db, customer)

        settled = crud.verify_payment(db, customer.id, verification(payment))
        assert settled.payment_status == "success"
        assert settled.gateway_payment_id == "pay_123"
        assert settled.paid_at is not None

        with pytest.raises(errors.ConflictError):
            crud.verify_payment(db, customer.id, verification(payment))

    def test_bad_signature_marks_failed(self, db, customer):
        payment = open_payment(db, customer)

        with pytest.raises(errors.PaymentVerificationFailed):
            crud.verify_payment(db, customer.id, verification(payment, signature="0" * 64))

        db.expire_all()
        stored = db.get(models.Payment, payment.id)
        assert stored.payment_status == "failed"
        assert stored.failure_reason == "Invalid payment signature"
        assert stored.paid_at is None

    def test_failed_payment_can_be_retried(self, db, customer):
        payment = open_payment(db, customer)
        with pytest.raises(errors.PaymentVerificationFailed):
            crud.verify_payment(db, customer.id, verification(payment, signature="forged"))

        settled = crud.verify_payment(db, customer.id, verification(payment, gateway_payment_id="pay_456"))
        assert settled.payment_status == "success"
        assert settled.failure_reason is None

    def test_other_users_payment(self, db, make_user, customer):
        payment = open_payment(db, customer)
        with pytest.raises(errors.NotFoundOrUnauthorized):
            crud.verify_payment(db, make_user().id, verification(payment))
        db.expire_all()
        assert db.get(models.Payment, payment.id).payment_status == "created"


class TestPaymentsApi:
    def test_create_verify_and_list(self, client, customer, make_user, headers_for):
        created = client.post(
            "/payments",
            json={"paymentType": "order", "referenceId": "order-1", "amount": "296.00"},
            headers=headers_for(customer),
        )
        assert created.status_code == 201
        payment = created.json()["data"]
        assert payment["payment_status"] == "created"

        signature = crud.compute_signature(payment["gateway_order_id"], "pay_abc")
        verified = client.post(
            "/payments/verify",
            json={
                "gatewayOrderId": payment["gateway_order_id"],
                "gatewayPaymentId": "pay_abc",
                "gatewaySignature": signature,
            },
            headers=headers_for(customer),
        )
        assert verified.status_code == 200
        assert verified.json()["data"]["payment_status"] == "success"

        listed = client.get("/payments", headers=headers_for(customer)).json()["data"]
        assert listed["pagination"]["total"] == 1
        assert client.get(f"/payments/{payment['id']}", headers=headers_for(customer)).status_code == 200
        assert client.get(f"/payments/{payment['id']}", headers=headers_for(make_user())).status_code == 404

    def test_forged_signature_is_400(self, client, db, customer, headers_for):
        payment = open_payment(db, customer)
        response = client.post(
            "/payments/verify",
            json={"gatewayOrderId": payment.gateway_order_id, "gatewayPaymentId": "pay_x", "gatewaySignature": "bad"},
            headers=headers_for(customer),
        )
        assert response.status_code == 400
        assert response.json()["data"] == {"payment_id": payment.id}

    @pytest.mark.parametrize("amount", ["0", "-5.00"])
    def test_amount_must_be_positive(self, client, customer, headers_for, amount):
        response = client.post(
            "/payments",
            json={"paymentType": "order", "referenceId": "order-1", "amount": amount},
            headers=headers_for(customer),
        )
        assert response.status_code == 422
