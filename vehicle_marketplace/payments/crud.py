"""
Database operations for payments.

A payment is opened in ``created`` status with a gateway order id. The
client pays on the gateway and sends back the gateway payment id and
signature; the signature is an HMAC-SHA256 over ``"<order id>|<payment id>"``
keyed with the shared signing secret. A bad signature marks the payment
failed; a good one marks it successful exactly once.
"""
import hashlib
import hmac
import logging
import uuid
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from .. import config, errors, models
from ..database import transaction
from ..responses import new_id
from . import schemas

logger = logging.getLogger(__name__)


def compute_signature(gateway_order_id: str, gateway_payment_id: str, secret: Optional[str] = None) -> str:
    """Hex HMAC-SHA256 the gateway sends for a completed payment."""
    key = (secret or config.PAYMENT_SIGNING_SECRET).encode()
    body = f"{gateway_order_id}|{gateway_payment_id}".encode()
    return hmac.new(key, body, hashlib.sha256).hexdigest()


def create_payment(db: Session, user_id: str, payment: schemas.PaymentCreate) -> models.Payment:
    db_payment = models.Payment(
        id=new_id(),
        user_id=user_id,
        payment_type=payment.payment_type,
        reference_id=payment.reference_id,
        amount=payment.amount,
        currency=config.PAYMENT_CURRENCY,
        gateway_order_id=f"order_{uuid.uuid4().hex[:14]}",
        payment_status="created",
    )
    db.add(db_payment)
    db.commit()
    db.refresh(db_payment)
    logger.info(f"Payment created: {db_payment.id} for {payment.payment_type} {payment.reference_id}")
    return db_payment


def verify_payment(db: Session, user_id: str, verification: schemas.PaymentVerify) -> models.Payment:
    """
    Check the gateway signature and settle the payment.

    Raises:
        NotFoundOrUnauthorized: no payment for that gateway order owned by the caller
        ConflictError: the payment already succeeded
        PaymentVerificationFailed: the signature does not match; the payment
            is left in ``failed`` status with the reason recorded
    """
    db_payment = (
        db.query(models.Payment)
        .filter(
            models.Payment.gateway_order_id == verification.gateway_order_id,
            models.Payment.user_id == user_id,
        )
        .first()
    )
    if db_payment is None:
        raise errors.NotFoundOrUnauthorized("Payment")
    if db_payment.payment_status == "success":
        raise errors.ConflictError("Payment already verified")

    expected = compute_signature(verification.gateway_order_id, verification.gateway_payment_id)
    if not hmac.compare_digest(expected.encode(), verification.gateway_signature.encode()):
        db_payment.payment_status = "failed"
        db_payment.failure_reason = "Invalid payment signature"
        db.commit()
        logger.warning(f"Payment {db_payment.id} failed signature verification")
        raise errors.PaymentVerificationFailed(db_payment.id)

    now = datetime.utcnow()
    with transaction(db):
        result = db.execute(
            update(models.Payment)
            .where(models.Payment.id == db_payment.id, models.Payment.payment_status != "success")
            .values(
                payment_status="success",
                gateway_payment_id=verification.gateway_payment_id,
                gateway_signature=verification.gateway_signature,
                failure_reason=None,
                paid_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise errors.ConflictError("Payment already verified")

    db.refresh(db_payment)
    logger.info(f"Payment verified: {db_payment.id}")
    return db_payment


def get_payment(db: Session, payment_id: str, user_id: str) -> models.Payment:
    """
    Raises:
        NotFound: missing or owned by someone else
    """
    db_payment = (
        db.query(models.Payment)
        .filter(models.Payment.id == payment_id, models.Payment.user_id == user_id)
        .first()
    )
    if db_payment is None:
        raise errors.NotFound("Payment not found")
    return db_payment


def list_payments(db: Session, user_id: str, page: int = 1, limit: int = 20) -> Tuple[List[models.Payment], int]:
    query = db.query(models.Payment).filter(models.Payment.user_id == user_id)
    total = query.count()
    payments = (
        query.order_by(models.Payment.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return payments, total
