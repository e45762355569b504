"""
Payments API.

Endpoints:
    POST /payments: Open a payment for an order, booking or subscription
    POST /payments/verify: Settle a payment with the gateway signature
    GET /payments: The caller's payments
    GET /payments/{payment_id}: Get one of the caller's payments
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from .. import auth, models, webhooks
from ..config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..database import get_db
from ..responses import pagination, success_response
from ..schemas import ApiResponse
from . import crud, schemas

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("", response_model=ApiResponse[schemas.Payment], status_code=status.HTTP_201_CREATED)
def create_payment(
    payment: schemas.PaymentCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Open a payment.

    Returns:
        The payment in "created" status, carrying the gateway order id the
        client pays against
    """
    db_payment = crud.create_payment(db, current_user.id, payment)
    return success_response(db_payment, "Payment order created successfully", status.HTTP_201_CREATED)


@router.post("/verify", response_model=ApiResponse[schemas.Payment])
def verify_payment(
    verification: schemas.PaymentVerify,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Verify the gateway signature and mark the payment successful.

    Raises:
        400: PaymentVerificationFailed, NotFoundOrUnauthorized
        409: already verified
    """
    db_payment = crud.verify_payment(db, current_user.id, verification)
    webhooks.notify_payment_succeeded(background_tasks, db_payment.id, db_payment.payment_type, db_payment.reference_id)
    return success_response(db_payment, "Payment verified successfully")


@router.get("", response_model=ApiResponse[schemas.PaymentList])
def list_payments(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    payments, total = crud.list_payments(db, current_user.id, page=page, limit=limit)
    return success_response(
        {"payments": payments, "pagination": pagination(page, limit, total)}, "Payments fetched successfully"
    )


@router.get("/{payment_id}", response_model=ApiResponse[schemas.Payment])
def get_payment(
    payment_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    return success_response(crud.get_payment(db, payment_id, current_user.id), "Payment fetched successfully")
