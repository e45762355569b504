"""
Database operations for accounts, addresses and KYC verification.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from .. import auth, errors, models
from ..database import transaction
from ..responses import new_id
from . import schemas

logger = logging.getLogger(__name__)

CONVERTIBLE_ROLES = {"merchant", "host", "mechanic"}


def get_user(db: Session, user_id: str) -> Optional[models.User]:
    """Retrieve a single user by ID, or None."""
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    """Retrieve a user by email address, or None."""
    return db.query(models.User).filter(models.User.email == email).first()


def register_user(db: Session, user: schemas.UserRegister) -> models.User:
    """
    Create a customer account.

    Raises:
        EmailAlreadyRegistered: the email is taken
    """
    if get_user_by_email(db, user.email) is not None:
        raise errors.EmailAlreadyRegistered()

    db_user = models.User(
        id=new_id(),
        full_name=user.full_name,
        email=user.email,
        phone=user.phone,
        password_hash=auth.get_password_hash(user.password),
        role="customer",
        kyc_status="not_submitted",
        is_active=True,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    logger.info(f"User registered: {db_user.id}")
    return db_user


def update_user(db: Session, user: models.User, user_update: schemas.UserUpdate) -> models.User:
    for key, value in user_update.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return user


def change_password(db: Session, user: models.User, change: schemas.PasswordChange) -> None:
    """
    Replace the caller's password.

    Raises:
        ValidationError: the current password does not match
    """
    if not auth.verify_password(change.current_password, user.password_hash):
        raise errors.ValidationError("Current password is incorrect")
    user.password_hash = auth.get_password_hash(change.new_password)
    db.commit()
    logger.info(f"Password changed for user: {user.id}")


def convert_role(db: Session, user: models.User, new_role: str) -> models.User:
    """
    Switch a customer to a provider role.

    Raises:
        ValidationError: target role is not a provider role, or the user is
            not a customer
    """
    if new_role not in CONVERTIBLE_ROLES:
        raise errors.ValidationError(f"Invalid role: {new_role}")
    if user.role != "customer":
        raise errors.ValidationError(f"Only customers can change role, current role: {user.role}")
    user.role = new_role
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} converted to {new_role}")
    return user


def deactivate_account(db: Session, user: models.User) -> models.User:
    """
    Mark the account inactive.

    Existing tokens stop working on the next request and login is refused.
    Orders, bookings and addresses are kept.
    """
    user.is_active = False
    db.commit()
    db.refresh(user)
    logger.info(f"User deactivated: {user.id}")
    return user


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------

def add_address(db: Session, user_id: str, address: schemas.AddressCreate) -> models.UserAddress:
    """
    Save an address for the user.

    A new default address replaces the previous default.
    """
    with transaction(db):
        if address.is_default:
            db.execute(
                update(models.UserAddress)
                .where(models.UserAddress.user_id == user_id)
                .values(is_default=False)
                .execution_options(synchronize_session=False)
            )
        db_address = models.UserAddress(id=new_id(), user_id=user_id, **address.model_dump())
        db.add(db_address)

    db.refresh(db_address)
    return db_address


def list_addresses(db: Session, user_id: str) -> List[models.UserAddress]:
    """The user's addresses, default first."""
    return (
        db.query(models.UserAddress)
        .filter(models.UserAddress.user_id == user_id)
        .order_by(models.UserAddress.is_default.desc(), models.UserAddress.created_at.desc())
        .all()
    )


def update_address(
    db: Session, user_id: str, address_id: str, address: schemas.AddressUpdate
) -> models.UserAddress:
    """
    Edit a saved address. Making it the default clears the previous default.

    Raises:
        NotFoundOrUnauthorized: address missing or owned by someone else
    """
    with transaction(db):
        db_address = (
            db.query(models.UserAddress)
            .filter(models.UserAddress.id == address_id, models.UserAddress.user_id == user_id)
            .first()
        )
        if db_address is None:
            raise errors.NotFoundOrUnauthorized("Address")
        changes = {key: value for key, value in address.model_dump(exclude_unset=True).items() if value is not None}
        if changes.get("is_default"):
            db.execute(
                update(models.UserAddress)
                .where(models.UserAddress.user_id == user_id, models.UserAddress.id != address_id)
                .values(is_default=False)
                .execution_options(synchronize_session=False)
            )
        for key, value in changes.items():
            setattr(db_address, key, value)

    db.refresh(db_address)
    return db_address


def delete_address(db: Session, user_id: str, address_id: str) -> None:
    """
    Raises:
        NotFoundOrUnauthorized: address missing or owned by someone else
    """
    db_address = (
        db.query(models.UserAddress)
        .filter(models.UserAddress.id == address_id, models.UserAddress.user_id == user_id)
        .first()
    )
    if db_address is None:
        raise errors.NotFoundOrUnauthorized("Address")
    in_use = db.query(models.Order.id).filter(models.Order.delivery_address_id == address_id).first()
    if in_use is not None:
        raise errors.ConflictError("Address is used by an order and cannot be deleted")
    db.delete(db_address)
    db.commit()


# ---------------------------------------------------------------------------
# KYC
# ---------------------------------------------------------------------------

def submit_kyc(db: Session, user: models.User, document: schemas.KycSubmit) -> models.KycDocument:
    """
    Submit an identity document and mark the user's KYC as submitted.

    Raises:
        ConflictError: the user already has a verified document
    """
    verified = (
        db.query(models.KycDocument.id)
        .filter(models.KycDocument.user_id == user.id, models.KycDocument.status == "verified")
        .first()
    )
    if verified is not None:
        raise errors.ConflictError("User already has verified KYC documents")

    with transaction(db):
        db_document = models.KycDocument(
            id=new_id(),
            user_id=user.id,
            status="pending",
            **document.model_dump(),
        )
        db.add(db_document)
        user.kyc_status = "submitted"

    db.refresh(db_document)
    logger.info(f"KYC document submitted: {db_document.id} by user: {user.id}")
    return db_document


def list_user_kyc(db: Session, user_id: str) -> List[models.KycDocument]:
    return (
        db.query(models.KycDocument)
        .filter(models.KycDocument.user_id == user_id)
        .order_by(models.KycDocument.submitted_at.desc())
        .all()
    )


def list_pending_kyc(db: Session, page: int = 1, limit: int = 20) -> Tuple[List[models.KycDocument], int]:
    """Documents awaiting review, oldest first."""
    query = db.query(models.KycDocument).filter(models.KycDocument.status == "pending")
    total = query.count()
    documents = (
        query.order_by(models.KycDocument.submitted_at.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return documents, total


def verify_kyc(db: Session, document_id: str, admin_id: str, decision: schemas.KycVerify) -> models.KycDocument:
    """
    Record an admin's decision on a pending document and reflect it on the user.

    A verified document approves the user's KYC; a rejected one marks it
    rejected so the user can submit again.

    Raises:
        NotFound: no such document
        ConflictError: the document was already reviewed
    """
    with transaction(db):
        db_document = db.query(models.KycDocument).filter(models.KycDocument.id == document_id).first()
        if db_document is None:
            raise errors.NotFound("KYC document not found")
        if db_document.status != "pending":
            raise errors.ConflictError(f"KYC document already {db_document.status}")

        db_document.status = decision.status
        db_document.rejection_reason = decision.rejection_reason if decision.status == "rejected" else None
        db_document.verified_by = admin_id
        db_document.verified_at = datetime.utcnow()

        db_user = get_user(db, db_document.user_id)
        db_user.kyc_status = "approved" if decision.status == "verified" else "rejected"

    db.refresh(db_document)
    logger.info(f"KYC document {document_id} {decision.status} by admin {admin_id}")
    return db_document
