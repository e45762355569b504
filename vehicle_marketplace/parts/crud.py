"""
Database operations for the parts marketplace: catalog listings and orders.

Checkout (``create_order``) is the one multi-step write in this module: it
validates the whole cart, splits it into one order per merchant, writes the
orders with their line items and decrements stock, all in one transaction.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from .. import errors, models, pricing, validators
from ..database import transaction
from ..responses import generate_unique_number, new_id
from . import schemas

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

def create_part(db: Session, merchant_id: str, part: schemas.PartCreate) -> models.CatalogItem:
    """
    Create a new part listing for a merchant.

    Args:
        db: Database session
        merchant_id: Owning merchant
        part: Part data to create

    Returns:
        Created CatalogItem object
    """
    db_part = models.CatalogItem(id=new_id(), merchant_id=merchant_id, is_active=True, **part.model_dump())
    db.add(db_part)
    db.commit()
    db.refresh(db_part)
    logger.info(f"Part listing created: {db_part.id} by merchant: {merchant_id}")
    return db_part


def get_part(db: Session, part_id: str) -> Optional[models.CatalogItem]:
    """Retrieve an active part by ID, or None."""
    return (
        db.query(models.CatalogItem)
        .filter(models.CatalogItem.id == part_id, models.CatalogItem.is_active.is_(True))
        .first()
    )


def list_parts(
    db: Session,
    category: Optional[str] = None,
    vehicle_type: Optional[str] = None,
    merchant_id: Optional[str] = None,
    search: Optional[str] = None,
    min_price=None,
    max_price=None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[models.CatalogItem], int]:
    """
    Retrieve active parts matching the filters, newest first.

    Returns:
        Tuple of (parts on the requested page, total matching count)
    """
    query = db.query(models.CatalogItem).filter(models.CatalogItem.is_active.is_(True))
    if category:
        query = query.filter(models.CatalogItem.category == category)
    if vehicle_type:
        query = query.filter(models.CatalogItem.vehicle_type == vehicle_type)
    if merchant_id:
        query = query.filter(models.CatalogItem.merchant_id == merchant_id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(models.CatalogItem.name.ilike(pattern), models.CatalogItem.description.ilike(pattern))
        )
    if min_price is not None:
        query = query.filter(models.CatalogItem.price >= min_price)
    if max_price is not None:
        query = query.filter(models.CatalogItem.price <= max_price)

    total = query.count()
    parts = (
        query.order_by(models.CatalogItem.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return parts, total


def update_part(db: Session, part_id: str, merchant_id: str, part: schemas.PartUpdate) -> models.CatalogItem:
    """
    Update a listing owned by ``merchant_id``.

    Raises:
        NotFoundOrUnauthorized: if the part does not exist or belongs to another merchant
    """
    db_part = (
        db.query(models.CatalogItem)
        .filter(models.CatalogItem.id == part_id, models.CatalogItem.merchant_id == merchant_id)
        .first()
    )
    if db_part is None:
        raise errors.NotFoundOrUnauthorized("Part")

    for key, value in part.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(db_part, key, value)

    db.commit()
    db.refresh(db_part)
    logger.info(f"Part updated: {part_id}")
    return db_part


def delete_part(db: Session, part_id: str, merchant_id: str) -> None:
    """Soft-delete a listing; existing orders keep referencing it."""
    result = db.execute(
        update(models.CatalogItem)
        .where(models.CatalogItem.id == part_id, models.CatalogItem.merchant_id == merchant_id)
        .values(is_active=False)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        raise errors.NotFoundOrUnauthorized("Part")
    db.commit()
    logger.info(f"Part deleted: {part_id}")


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------

def price_cart(db: Session, items: List[schemas.CartLine]) -> List[pricing.PricedLine]:
    """
    Fetch every part in the cart, check availability and price each line.

    Every part is fetched before any stock is checked, so a missing part is
    always reported as ItemNotFound even when another line is short.

    Raises:
        ItemNotFound: a part is missing or inactive
        InsufficientStock: a part has fewer units than requested
    """
    fetched = []
    for item in items:
        part = get_part(db, item.part_id)
        if part is None:
            raise errors.ItemNotFound(item.part_id)
        fetched.append((item, part))

    lines = []
    for item, part in fetched:
        if part.stock_quantity < item.quantity:
            raise errors.InsufficientStock(part.id, part.name, part.stock_quantity, item.quantity)
        unit_price = pricing.quantize_money(part.price)
        lines.append(
            pricing.PricedLine(
                part_id=part.id,
                part_name=part.name,
                merchant_id=part.merchant_id,
                quantity=item.quantity,
                unit_price=unit_price,
                total_price=pricing.line_total(unit_price, item.quantity),
            )
        )
    return lines


def decrement_stock(db: Session, line: pricing.PricedLine) -> None:
    """
    Take ``line.quantity`` units out of stock.

    The stock check is part of the UPDATE itself, so two checkouts racing for
    the last unit cannot both succeed: the loser matches zero rows.

    Raises:
        InsufficientStock: the part no longer has enough units
    """
    result = db.execute(
        update(models.CatalogItem)
        .where(
            models.CatalogItem.id == line.part_id,
            models.CatalogItem.is_active.is_(True),
            models.CatalogItem.stock_quantity >= line.quantity,
        )
        .values(stock_quantity=models.CatalogItem.stock_quantity - line.quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.warning(f"Stock decrement lost for part {line.part_id} ({line.quantity} units)")
        raise errors.InsufficientStock(line.part_id, line.part_name, None, line.quantity)


def _create_merchant_order(
    db: Session,
    customer_id: str,
    merchant_id: str,
    delivery_address_id: str,
    lines: List[pricing.PricedLine],
) -> models.Order:
    totals = pricing.price_merchant_partition(lines)
    db_order = models.Order(
        id=new_id(),
        order_number=generate_unique_number("ORD"),
        customer_id=customer_id,
        merchant_id=merchant_id,
        delivery_address_id=delivery_address_id,
        subtotal=totals.subtotal,
        platform_commission=totals.platform_commission,
        tax_amount=totals.tax_amount,
        delivery_charge=totals.delivery_charge,
        total_amount=totals.total_amount,
        order_status="pending",
    )
    db.add(db_order)

    for position, line in enumerate(lines):
        db.add(
            models.OrderLineItem(
                id=new_id(),
                order_id=db_order.id,
                part_id=line.part_id,
                position=position,
                part_name=line.part_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=line.total_price,
            )
        )
        decrement_stock(db, line)

    log_order_event(
        db,
        order_id=db_order.id,
        event_type="created",
        description=f"Order created with {len(lines)} item(s), total {totals.total_amount}",
        new_value="pending",
        user_id=customer_id,
    )
    return db_order


def create_order(db: Session, customer_id: str, order: schemas.OrderCreate) -> List[models.Order]:
    """
    Check out a cart, creating one order per merchant.

    All-or-nothing: if any line of any merchant fails, no order is created and
    no stock changes.

    Args:
        db: Database session
        customer_id: Authenticated customer placing the order
        order: Cart lines and delivery address

    Returns:
        The created orders (one per merchant, in cart order) with their items

    Raises:
        EmptyCart, DuplicateCartItem, AddressNotFound, ItemNotFound, InsufficientStock
    """
    validators.validate_cart_items(order.items)

    try:
        with transaction(db):
            address = (
                db.query(models.UserAddress)
                .filter(
                    models.UserAddress.id == order.delivery_address_id,
                    models.UserAddress.user_id == customer_id,
                )
                .first()
            )
            if address is None:
                raise errors.AddressNotFound(order.delivery_address_id)

            lines = price_cart(db, order.items)
            partitions = pricing.partition_by_merchant(lines)

            created = [
                _create_merchant_order(db, customer_id, merchant_id, order.delivery_address_id, merchant_lines)
                for merchant_id, merchant_lines in partitions.items()
            ]
    except errors.MarketplaceError as e:
        logger.error(f"Checkout failed for customer {customer_id}: {e.message}")
        raise

    logger.info(f"Part orders created for customer: {customer_id} ({len(created)} merchant order(s))")
    return created


# ---------------------------------------------------------------------------
# Orders after checkout
# ---------------------------------------------------------------------------

def log_order_event(
    db: Session,
    order_id: str,
    event_type: str,
    description: str,
    old_value: Optional[str] = None,
    new_value: Optional[str] = None,
    user_id: Optional[str] = None,
) -> None:
    """
    Add an order event to the timeline.

    The event is only added to the session; it is committed together with
    the change it records.
    """
    db.add(
        models.OrderEvent(
            order_id=order_id,
            event_type=event_type,
            description=description,
            old_value=old_value,
            new_value=new_value,
            user_id=user_id,
        )
    )


def get_order(db: Session, order_id: str, user: models.User) -> Optional[models.Order]:
    """
    Retrieve an order visible to ``user`` (its customer, its merchant or an admin).

    Returns:
        Order object or None if not found or not visible
    """
    query = db.query(models.Order).filter(models.Order.id == order_id)
    if user.role != "admin":
        query = query.filter(or_(models.Order.customer_id == user.id, models.Order.merchant_id == user.id))
    return query.first()


def list_user_orders(db: Session, user: models.User, page: int = 1, limit: int = 20) -> Tuple[List[models.Order], int]:
    """
    Orders where the user is the merchant (merchants) or the customer (everyone else).

    Returns:
        Tuple of (orders on the requested page, total count)
    """
    field = models.Order.merchant_id if user.role == "merchant" else models.Order.customer_id
    query = db.query(models.Order).filter(field == user.id)
    total = query.count()
    orders = (
        query.order_by(models.Order.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return orders, total


def update_order_status(
    db: Session,
    order_id: str,
    merchant_id: str,
    update_data: schemas.OrderStatusUpdate,
) -> Tuple[models.Order, str]:
    """
    Move a merchant's order to a new status.

    The UPDATE is conditioned on the status read at the start of the
    transaction, so a concurrent change makes this call fail instead of
    silently overwriting it.

    Returns:
        Tuple of (updated order, previous status)

    Raises:
        InvalidStatusValue: unknown target status
        NotFoundOrUnauthorized: order missing or owned by another merchant
        InvalidStatusTransition: target not reachable from the current status
    """
    new_status = update_data.status
    if new_status not in validators.ORDER_STATUSES:
        raise errors.InvalidStatusValue(new_status, validators.ORDER_TRANSITIONS.keys())

    with transaction(db):
        current = (
            db.query(models.Order.order_status)
            .filter(models.Order.id == order_id, models.Order.merchant_id == merchant_id)
            .scalar()
        )
        if current is None:
            raise errors.NotFoundOrUnauthorized("Order")
        validators.validate_order_status_transition(current, new_status)

        values = {"order_status": new_status}
        if update_data.tracking_number is not None:
            values["tracking_number"] = update_data.tracking_number
        if update_data.estimated_delivery is not None:
            values["estimated_delivery"] = update_data.estimated_delivery
        if update_data.cancellation_reason is not None:
            values["cancellation_reason"] = update_data.cancellation_reason
        if new_status == "delivered":
            values["delivered_at"] = datetime.utcnow()

        result = db.execute(
            update(models.Order)
            .where(
                models.Order.id == order_id,
                models.Order.merchant_id == merchant_id,
                models.Order.order_status == current,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise errors.InvalidStatusTransition(current, new_status)

        log_order_event(
            db,
            order_id=order_id,
            event_type="status_changed",
            description=f"Status changed from '{current}' to '{new_status}'",
            old_value=current,
            new_value=new_status,
            user_id=merchant_id,
        )

    db_order = db.query(models.Order).filter(models.Order.id == order_id).first()
    logger.info(f"Order status updated: {order_id} to {new_status}")
    return db_order, current


def get_order_timeline(db: Session, order_id: str) -> List[models.OrderEvent]:
    """All events of an order, oldest first."""
    return (
        db.query(models.OrderEvent)
        .filter(models.OrderEvent.order_id == order_id)
        .order_by(models.OrderEvent.created_at.asc(), models.OrderEvent.id.asc())
        .all()
    )
