"""
Status machine shared by the booking domains.

Service and cleaning bookings, rental bookings and roadside assistance requests follow
the same lifecycle::

    pending -> assigned/accepted -> in_progress -> completed
    pending, assigned/accepted -> cancelled

Every transition is a single conditional UPDATE whose WHERE clause carries
the booking id, the caller's party check and the allowed current statuses.
Concurrent callers therefore never both win: the loser matches zero rows.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Set, Tuple

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session

from . import errors, models
from .database import transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingDomain:
    """
    Describes how one booking table maps onto the shared lifecycle.

    Attributes:
        name: Event prefix and log name (e.g. "service_booking")
        label: Human name used in error messages
        model: ORM model of the booking table
        status_column / customer_column / provider_column: Column names
        assigned_status: "assigned" when a provider claims the booking,
            "accepted" when the provider is known at creation
        assigned_at_column: Set when the booking reaches ``assigned_status``
        started_at_column: Set once, the first time it goes in_progress
        completed_at_column: Set when completed
        provider_statuses: Targets only the provider may set
        settable_statuses: Targets reachable through ``transition_status``
        on_completed: Called with (db, booking) inside the completing transaction
        scope: Extra criterion selecting this domain's rows when several
            domains share one table
    """
    name: str
    label: str
    model: Any
    status_column: str
    customer_column: str
    provider_column: str
    assigned_status: str
    assigned_at_column: str
    started_at_column: str
    completed_at_column: str
    provider_statuses: FrozenSet[str] = frozenset({"in_progress", "completed"})
    settable_statuses: FrozenSet[str] = frozenset({"in_progress", "completed", "cancelled"})
    on_completed: Optional[Callable[[Session, Any], None]] = field(default=None, compare=False)
    scope: Any = field(default=None, compare=False)

    def column(self, name: str):
        return getattr(self.model, name)

    @property
    def statuses(self) -> Set[str]:
        return {"pending", self.assigned_status, "in_progress", "completed", "cancelled"}

    @property
    def transitions(self) -> Dict[str, Set[str]]:
        """New status -> statuses it may be reached from, for this domain."""
        table = {
            self.assigned_status: {"pending"},
            # in_progress is idempotent; the start timestamp is only set once
            "in_progress": {self.assigned_status, "in_progress"},
            "completed": {"in_progress"},
            "cancelled": {"pending", self.assigned_status},
        }
        return {status: table[status] for status in self.settable_statuses}


def _scoped(domain: BookingDomain, *criteria):
    if domain.scope is None:
        return criteria
    return criteria + (domain.scope,)


def _party_filter(domain: BookingDomain, user_id: str, provider_only: bool = False):
    provider = domain.column(domain.provider_column) == user_id
    if provider_only:
        return provider
    return or_(domain.column(domain.customer_column) == user_id, provider)


def _fetch(db: Session, domain: BookingDomain, booking_id: str, party=None):
    query = db.query(domain.model).filter(*_scoped(domain, domain.model.id == booking_id))
    if party is not None:
        query = query.filter(party)
    # Rows changed by bulk UPDATEs in this session must be re-read from the database
    return query.populate_existing().first()


def assign_provider(db: Session, domain: BookingDomain, booking_id: str, provider_id: str):
    """
    Claim a pending booking for ``provider_id``.

    Only the first claim succeeds: the UPDATE requires the booking to still be
    pending with no provider.

    Raises:
        AlreadyAssigned: another provider holds the booking
        BookingNotClaimable: the booking is completed or cancelled
        NotFoundOrUnauthorized: no such booking
    """
    now = datetime.utcnow()
    with transaction(db):
        result = db.execute(
            update(domain.model)
            .where(
                *_scoped(
                    domain,
                    domain.model.id == booking_id,
                    domain.column(domain.status_column) == "pending",
                    domain.column(domain.provider_column).is_(None),
                )
            )
            .values(
                {
                    domain.provider_column: provider_id,
                    domain.status_column: domain.assigned_status,
                    domain.assigned_at_column: now,
                    "updated_at": now,
                }
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            current = (
                db.query(domain.column(domain.status_column))
                .filter(*_scoped(domain, domain.model.id == booking_id))
                .scalar()
            )
            if current is None:
                raise errors.NotFoundOrUnauthorized(domain.label)
            if current in ("completed", "cancelled"):
                raise errors.BookingNotClaimable(domain.label, booking_id, current)
            logger.warning(f"{domain.label} {booking_id} already assigned, claim by {provider_id} lost")
            raise errors.AlreadyAssigned(domain.label, booking_id)

    logger.info(f"{domain.label} {booking_id} assigned to {provider_id}")
    return _fetch(db, domain, booking_id)


def transition_status(
    db: Session,
    domain: BookingDomain,
    booking_id: str,
    user_id: str,
    new_status: str,
    extra: Optional[Dict[str, Any]] = None,
) -> Tuple[Any, str]:
    """
    Move a booking to ``new_status`` on behalf of one of its parties.

    Args:
        db: Database session
        domain: Booking domain descriptor
        booking_id: Booking to update
        user_id: Caller; must be the booking's customer or provider
        new_status: Target status
        extra: Additional column values written with the transition
            (prices, notes); None values are skipped

    Returns:
        Tuple of (updated booking, previous status)

    Raises:
        InvalidStatusValue: unknown or non-settable target status
        NotFoundOrUnauthorized: booking missing or caller not a party to it
        InvalidStatusTransition: target not reachable from the current status
    """
    if new_status not in domain.statuses or new_status not in domain.transitions:
        raise errors.InvalidStatusValue(new_status, domain.transitions.keys())
    predecessors = domain.transitions[new_status]
    party = _party_filter(domain, user_id, provider_only=new_status in domain.provider_statuses)

    now = datetime.utcnow()
    status_column = domain.column(domain.status_column)
    values = {key: value for key, value in (extra or {}).items() if value is not None}
    values[domain.status_column] = new_status
    values["updated_at"] = now
    if new_status == domain.assigned_status:
        values[domain.assigned_at_column] = now
    elif new_status == "in_progress":
        values[domain.started_at_column] = func.coalesce(domain.column(domain.started_at_column), now)
    elif new_status == "completed":
        values[domain.completed_at_column] = now
    elif new_status == "cancelled":
        values["cancelled_at"] = now

    with transaction(db):
        current = db.query(status_column).filter(*_scoped(domain, domain.model.id == booking_id, party)).scalar()
        if current is None:
            raise errors.NotFoundOrUnauthorized(domain.label)
        if current not in predecessors:
            raise errors.InvalidStatusTransition(current, new_status)

        result = db.execute(
            update(domain.model)
            .where(*_scoped(domain, domain.model.id == booking_id, party, status_column == current))
            .values(values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # Changed under us between the read and the write
            booking = _fetch(db, domain, booking_id, party)
            if booking is None:
                raise errors.NotFoundOrUnauthorized(domain.label)
            raise errors.InvalidStatusTransition(getattr(booking, domain.status_column), new_status)

        booking = _fetch(db, domain, booking_id)
        if new_status == "completed" and domain.on_completed is not None:
            domain.on_completed(db, booking)

    logger.info(f"{domain.label} {booking_id} status updated: {current} -> {new_status}")
    return _fetch(db, domain, booking_id), current


def get_booking(db: Session, domain: BookingDomain, booking_id: str, user: models.User):
    """
    Retrieve a booking visible to ``user`` (its customer, its provider or an admin).

    Raises:
        NotFound: missing, or the caller is not a party to it
    """
    party = None if user.role == "admin" else _party_filter(domain, user.id)
    booking = _fetch(db, domain, booking_id, party)
    if booking is None:
        raise errors.NotFound(f"{domain.label} not found")
    return booking


def list_bookings(
    db: Session,
    domain: BookingDomain,
    user_id: str,
    as_provider: bool = False,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[Any], int]:
    """
    Bookings where the user is the provider (``as_provider``) or the customer.

    Returns:
        Tuple of (bookings on the requested page, total count)
    """
    column = domain.provider_column if as_provider else domain.customer_column
    query = db.query(domain.model).filter(*_scoped(domain, domain.column(column) == user_id))
    if status:
        query = query.filter(domain.column(domain.status_column) == status)
    total = query.count()
    bookings = (
        query.order_by(domain.model.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return bookings, total


def increment_provider_jobs(db: Session, provider_id: Optional[str]) -> None:
    """Completion side effect for mechanic work: one more finished job on the profile."""
    if provider_id is None:
        return
    db.execute(
        update(models.MechanicProfile)
        .where(models.MechanicProfile.user_id == provider_id)
        .values(
            total_jobs=models.MechanicProfile.total_jobs + 1,
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
