"""
Parts marketplace API.

Endpoints:
    POST /parts: Create a part listing (merchant)
    GET /parts: List active parts with filters (public)
    GET /parts/{part_id}: Get a single part (public)
    PUT /parts/{part_id}: Update a listing (owning merchant)
    DELETE /parts/{part_id}: Remove a listing (owning merchant)
    POST /orders: Check out a cart, one order per merchant
    GET /orders: List the caller's orders
    GET /orders/{order_id}: Get an order with its items (customer or merchant)
    GET /orders/{order_id}/timeline: Order events (customer or merchant)
    PUT /orders/{order_id}/status: Change an order's status (merchant)
"""
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from .. import auth, errors, models, webhooks
from ..config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..database import get_db
from ..responses import pagination, success_response
from ..schemas import ApiResponse
from . import crud, schemas

router = APIRouter(prefix="/parts", tags=["parts"])
orders_router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=ApiResponse[schemas.Part], status_code=status.HTTP_201_CREATED)
def create_part(
    part: schemas.PartCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.require_roles("merchant"))
):
    """
    Create a part listing owned by the calling merchant.

    Returns:
        Created part
    """
    db_part = crud.create_part(db, merchant_id=current_user.id, part=part)
    return success_response(db_part, "Part listing created successfully", status.HTTP_201_CREATED)


@router.get("", response_model=ApiResponse[schemas.PartList])
def list_parts(
    category: Optional[str] = None,
    vehicle_type: Optional[str] = None,
    merchant_id: Optional[str] = None,
    search: Optional[str] = None,
    min_price: Optional[Decimal] = Query(default=None, ge=0),
    max_price: Optional[Decimal] = Query(default=None, ge=0),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db)
):
    """
    List active parts with optional filters and pagination (public).

    Args:
        category: Exact category match
        vehicle_type: Exact vehicle type match
        merchant_id: Only this merchant's listings
        search: Case-insensitive match on name or description
        min_price / max_price: Price bounds, inclusive
    """
    parts, total = crud.list_parts(
        db,
        category=category,
        vehicle_type=vehicle_type,
        merchant_id=merchant_id,
        search=search,
        min_price=min_price,
        max_price=max_price,
        page=page,
        limit=limit,
    )
    return success_response(
        {"parts": parts, "pagination": pagination(page, limit, total)}, "Parts fetched successfully"
    )


@router.get("/{part_id}", response_model=ApiResponse[schemas.Part])
def get_part(part_id: str, db: Session = Depends(get_db)):
    """
    Get a single active part (public).

    Raises:
        NotFound: 404 if the part does not exist or was removed
    """
    db_part = crud.get_part(db, part_id)
    if db_part is None:
        raise errors.NotFound("Part not found")
    return success_response(db_part, "Part fetched successfully")


@router.put("/{part_id}", response_model=ApiResponse[schemas.Part])
def update_part(
    part_id: str,
    part: schemas.PartUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.require_roles("merchant"))
):
    """Update a listing owned by the calling merchant."""
    db_part = crud.update_part(db, part_id=part_id, merchant_id=current_user.id, part=part)
    return success_response(db_part, "Part updated successfully")


@router.delete("/{part_id}", response_model=ApiResponse[dict])
def delete_part(
    part_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.require_roles("merchant"))
):
    """Soft-delete a listing owned by the calling merchant."""
    crud.delete_part(db, part_id=part_id, merchant_id=current_user.id)
    return success_response(None, "Part deleted successfully")


@orders_router.post("", response_model=ApiResponse[List[schemas.Order]], status_code=status.HTTP_201_CREATED)
def create_order(
    order: schemas.OrderCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Check out a cart (authenticated users).

    This endpoint:
    - Validates every part exists and has enough stock
    - Splits the cart into one order per merchant, each with its own
      commission, tax and delivery charge
    - Decrements stock for every line
    - Does all of the above atomically: on any failure nothing is created

    Returns:
        List of created orders with line items

    Raises:
        400: EmptyCart, DuplicateCartItem, AddressNotFound, ItemNotFound, InsufficientStock
    """
    orders = crud.create_order(db, customer_id=current_user.id, order=order)
    for db_order in orders:
        webhooks.notify_order_created(background_tasks, db_order)
    return success_response(orders, "Order placed successfully", status.HTTP_201_CREATED)


@orders_router.get("", response_model=ApiResponse[schemas.OrderList])
def list_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    List the caller's orders, newest first.

    Merchants see the orders placed with them; everyone else sees the orders
    they placed.
    """
    orders, total = crud.list_user_orders(db, current_user, page=page, limit=limit)
    return success_response(
        {"orders": orders, "pagination": pagination(page, limit, total)}, "Orders fetched successfully"
    )


@orders_router.get("/{order_id}", response_model=ApiResponse[schemas.Order])
def get_order(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Get a single order with its items (customer, merchant or admin).

    Raises:
        NotFound: 404 if the order does not exist or the caller is not a party to it
    """
    db_order = crud.get_order(db, order_id, current_user)
    if db_order is None:
        raise errors.NotFound("Order not found")
    return success_response(db_order, "Order fetched successfully")


@orders_router.get("/{order_id}/timeline", response_model=ApiResponse[List[schemas.OrderEvent]])
def get_order_timeline(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Get the timeline of events for an order (customer, merchant or admin).

    Returns:
        List of order events in chronological order
    """
    if crud.get_order(db, order_id, current_user) is None:
        raise errors.NotFound("Order not found")
    return success_response(crud.get_order_timeline(db, order_id), "Order timeline fetched successfully")


@orders_router.put("/{order_id}/status", response_model=ApiResponse[schemas.Order])
def update_order_status(
    order_id: str,
    update: schemas.OrderStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.require_roles("merchant"))
):
    """
    Change the status of an order placed with the calling merchant.

    Raises:
        400: NotFoundOrUnauthorized (missing order or another merchant's order), unknown status
        409: InvalidStatusTransition
    """
    db_order, old_status = crud.update_order_status(db, order_id, current_user.id, update)
    webhooks.notify_order_status_changed(background_tasks, order_id, old_status, db_order.order_status)
    return success_response(db_order, "Order status updated successfully")
