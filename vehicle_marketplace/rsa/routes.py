"""
Roadside assistance API.

Endpoints:
    POST /rsa/subscriptions: Buy a roadside assistance plan
    GET /rsa/subscriptions: List the caller's plans
    GET /rsa/subscriptions/active: The caller's current plan
    POST /rsa/requests: Raise an emergency request (active plan required)
    GET /rsa/requests: List the caller's requests
    GET /rsa/requests/{request_id}: Get a request (requester or partner)
    POST /rsa/requests/{request_id}/assign: Claim a pending request (verified mechanic)
    PUT /rsa/requests/{request_id}/status: Change a request's status
"""
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from .. import auth, errors, models, webhooks
from ..config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..database import get_db
from ..responses import pagination, success_response
from ..schemas import ApiResponse
from . import crud, schemas

router = APIRouter(prefix="/rsa", tags=["rsa"])


@router.post("/subscriptions", response_model=ApiResponse[schemas.Subscription], status_code=status.HTTP_201_CREATED)
def subscribe(
    subscription: schemas.SubscriptionCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    db_subscription = crud.subscribe(db, current_user.id, subscription)
    return success_response(db_subscription, "Subscription created successfully", status.HTTP_201_CREATED)


@router.get("/subscriptions", response_model=ApiResponse[List[schemas.Subscription]])
def list_subscriptions(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    return success_response(crud.list_subscriptions(db, current_user.id), "Subscriptions fetched successfully")


@router.get("/subscriptions/active", response_model=ApiResponse[schemas.Subscription])
def get_active_subscription(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    The caller's active plan.

    Raises:
        NotFound: 404 if the caller has no active, unexpired plan
    """
    db_subscription = crud.get_active_subscription(db, current_user.id)
    if db_subscription is None:
        raise errors.NotFound("No active subscription")
    return success_response(db_subscription, "Active subscription fetched successfully")


@router.post("/requests", response_model=ApiResponse[schemas.RsaRequest], status_code=status.HTTP_201_CREATED)
def create_request(
    request: schemas.RsaRequestCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Raise a roadside assistance request.

    Raises:
        409: NoActiveSubscription
    """
    db_request = crud.create_request(db, current_user.id, request)
    return success_response(db_request, "RSA request created successfully", status.HTTP_201_CREATED)


@router.get("/requests", response_model=ApiResponse[schemas.RsaRequestList])
def list_requests(
    request_status: Optional[str] = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    requests, total = crud.list_requests(db, current_user, status=request_status, page=page, limit=limit)
    return success_response(
        {"requests": requests, "pagination": pagination(page, limit, total)}, "RSA requests fetched successfully"
    )


@router.get("/requests/{request_id}", response_model=ApiResponse[schemas.RsaRequest])
def get_request(
    request_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    return success_response(crud.get_request(db, request_id, current_user), "RSA request fetched successfully")


@router.post("/requests/{request_id}/assign", response_model=ApiResponse[schemas.RsaRequest])
def assign_request(
    request_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.require_verified_provider("mechanic"))
):
    """
    Claim a pending request for the calling service partner.

    Raises:
        409: AlreadyAssigned
        400: NotFoundOrUnauthorized
    """
    db_request = crud.assign_partner(db, request_id, current_user.id)
    webhooks.notify_booking_status_changed(
        background_tasks, crud.RSA_REQUESTS.name, request_id, db_request.request_status
    )
    return success_response(db_request, "Service partner assigned successfully")


@router.put("/requests/{request_id}/status", response_model=ApiResponse[schemas.RsaRequest])
def update_request_status(
    request_id: str,
    update: schemas.RsaRequestStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Change the status of a request the caller is a party to.

    Raises:
        400: NotFoundOrUnauthorized, unknown status
        409: InvalidStatusTransition
    """
    db_request, _ = crud.update_request_status(db, request_id, current_user.id, update)
    webhooks.notify_booking_status_changed(
        background_tasks, crud.RSA_REQUESTS.name, request_id, db_request.request_status
    )
    return success_response(db_request, "RSA request status updated successfully")
