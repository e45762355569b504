"""
Accounts and KYC API.

Endpoints:
    POST /users/register: Create a customer account, returns a token
    POST /users/login: Exchange credentials for a token
    GET /users/me: Current user
    PUT /users/me: Update name / phone
    PUT /users/me/password: Change password
    PUT /users/me/role: Become a merchant, host or mechanic
    DELETE /users/me: Deactivate the account
    POST /users/me/addresses: Save an address
    GET /users/me/addresses: List saved addresses
    PUT /users/me/addresses/{address_id}: Edit an address
    DELETE /users/me/addresses/{address_id}: Remove an address
    POST /kyc: Submit an identity document
    GET /kyc: The caller's submitted documents
    GET /kyc/pending: Documents awaiting review (admin)
    PUT /kyc/{document_id}/verify: Approve or reject a document (admin)
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import auth, models
from ..config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..database import get_db
from ..responses import pagination, success_response
from ..schemas import ApiResponse
from . import crud, schemas

router = APIRouter(prefix="/users", tags=["users"])
kyc_router = APIRouter(prefix="/kyc", tags=["kyc"])


@router.post("/register", response_model=ApiResponse[schemas.Token], status_code=status.HTTP_201_CREATED)
def register(user: schemas.UserRegister, db: Session = Depends(get_db)):
    """
    Register a new customer account.

    Returns:
        JWT access token

    Raises:
        409: EmailAlreadyRegistered
    """
    db_user = crud.register_user(db, user)
    token = schemas.Token(access_token=auth.token_for_user(db_user))
    return success_response(token, "User registered successfully", status.HTTP_201_CREATED)


@router.post("/login", response_model=ApiResponse[schemas.Token])
def login(credentials: schemas.UserLogin, db: Session = Depends(get_db)):
    """
    Authenticate and login a user.

    Raises:
        HTTPException: 401 if credentials are invalid, 403 if the account is inactive
    """
    user = auth.authenticate_user(db, credentials.email, credentials.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive")

    token = schemas.Token(access_token=auth.token_for_user(user))
    return success_response(token, "Login successful")


@router.get("/me", response_model=ApiResponse[schemas.User])
def get_current_user_info(current_user: models.User = Depends(auth.get_current_user)):
    return success_response(current_user, "User fetched successfully")


@router.put("/me", response_model=ApiResponse[schemas.User])
def update_current_user(
    user_update: schemas.UserUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    return success_response(crud.update_user(db, current_user, user_update), "Profile updated successfully")


@router.put("/me/password", response_model=ApiResponse[dict])
def change_password(
    change: schemas.PasswordChange,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Change the caller's password.

    Raises:
        400: the current password is incorrect
    """
    crud.change_password(db, current_user, change)
    return success_response(None, "Password changed successfully")


@router.put("/me/role", response_model=ApiResponse[schemas.User])
def convert_role(
    role_change: schemas.RoleChange,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Switch a customer account to a provider role.

    Tokens carry the role only informationally; the next request already
    sees the new role.
    """
    db_user = crud.convert_role(db, current_user, role_change.role)
    return success_response(db_user, f"Role changed to {db_user.role}")


@router.delete("/me", response_model=ApiResponse[schemas.User])
def deactivate_account(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """Deactivate the caller's account; later requests with its token get 403."""
    return success_response(crud.deactivate_account(db, current_user), "Account deactivated successfully")


@router.post("/me/addresses", response_model=ApiResponse[schemas.Address], status_code=status.HTTP_201_CREATED)
def add_address(
    address: schemas.AddressCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    db_address = crud.add_address(db, current_user.id, address)
    return success_response(db_address, "Address added successfully", status.HTTP_201_CREATED)


@router.get("/me/addresses", response_model=ApiResponse[List[schemas.Address]])
def list_addresses(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    return success_response(crud.list_addresses(db, current_user.id), "Addresses fetched successfully")


@router.put("/me/addresses/{address_id}", response_model=ApiResponse[schemas.Address])
def update_address(
    address_id: str,
    address: schemas.AddressUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Edit a saved address.

    Raises:
        400: NotFoundOrUnauthorized
    """
    db_address = crud.update_address(db, current_user.id, address_id, address)
    return success_response(db_address, "Address updated successfully")


@router.delete("/me/addresses/{address_id}", response_model=ApiResponse[dict])
def delete_address(
    address_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Remove a saved address.

    Raises:
        400: NotFoundOrUnauthorized
        409: the address is referenced by an order
    """
    crud.delete_address(db, current_user.id, address_id)
    return success_response(None, "Address deleted successfully")


@kyc_router.post("", response_model=ApiResponse[schemas.KycDocument], status_code=status.HTTP_201_CREATED)
def submit_kyc(
    document: schemas.KycSubmit,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Submit an identity document for verification.

    Raises:
        409: the caller already has a verified document
    """
    db_document = crud.submit_kyc(db, current_user, document)
    return success_response(db_document, "KYC documents submitted successfully", status.HTTP_201_CREATED)


@kyc_router.get("", response_model=ApiResponse[List[schemas.KycDocument]])
def list_my_kyc(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    return success_response(crud.list_user_kyc(db, current_user.id), "KYC documents fetched successfully")


@kyc_router.get("/pending", response_model=ApiResponse[schemas.KycDocumentList])
def list_pending_kyc(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.require_admin)
):
    """List documents awaiting review (admin only)."""
    documents, total = crud.list_pending_kyc(db, page=page, limit=limit)
    return success_response(
        {"documents": documents, "pagination": pagination(page, limit, total)},
        "Pending KYC documents fetched successfully",
    )


@kyc_router.put("/{document_id}/verify", response_model=ApiResponse[schemas.KycDocument])
def verify_kyc(
    document_id: str,
    decision: schemas.KycVerify,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.require_admin)
):
    """
    Approve or reject a pending document (admin only).

    Raises:
        404: no such document
        409: already reviewed
    """
    db_document = crud.verify_kyc(db, document_id, current_user.id, decision)
    return success_response(db_document, f"KYC document {decision.status}")
