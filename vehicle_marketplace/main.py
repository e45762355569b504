"""
Vehicle Marketplace API

This module assembles the FastAPI application: one router per domain, the
error handlers that render every failure in the response envelope, and the
startup/shutdown hooks for the database pool.

Routers:
    /users, /kyc: Accounts, addresses and identity verification
    /parts, /orders: Parts catalog and multi-merchant checkout
    /mechanic: Mechanic profiles and service bookings
    /cleaning: Cleaning and decoration bookings
    /rental: Vehicle listings and rental bookings
    /rsa: Roadside assistance subscriptions and requests
    /payments: Payment records and gateway signature verification
    /notifications: In-app notifications
    GET /healthz: Health check endpoint for orchestration systems

Attributes:
    app (FastAPI): The FastAPI application instance configured with the title "vehicle-marketplace"
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import errors
from .cleaning.routes import router as cleaning_router
from .config import LOG_LEVEL
from .database import dispose_engine, init_db
from .mechanic.routes import router as mechanic_router
from .notifications.routes import router as notifications_router
from .parts.routes import orders_router, router as parts_router
from .payments.routes import router as payments_router
from .rental.routes import router as rental_router
from .responses import error_response
from .rsa.routes import router as rsa_router
from .users.routes import kyc_router, router as users_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database tables ready")
    yield
    dispose_engine()


app = FastAPI(title="vehicle-marketplace", lifespan=lifespan)

app.include_router(users_router)
app.include_router(kyc_router)
app.include_router(parts_router)
app.include_router(orders_router)
app.include_router(mechanic_router)
app.include_router(cleaning_router)
app.include_router(rental_router)
app.include_router(rsa_router)
app.include_router(payments_router)
app.include_router(notifications_router)


@app.exception_handler(errors.MarketplaceError)
async def marketplace_error_handler(request: Request, exc: errors.MarketplaceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code} {exc.message}")
    return error_response(exc.status_code, exc.message, exc.data)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(422, "Validation failed", {"errors": exc.errors()})


@app.exception_handler(PoolTimeoutError)
@app.exception_handler(OperationalError)
async def database_unavailable_handler(request: Request, exc: Exception):
    logger.error(f"Database unavailable during {request.method} {request.url.path}: {exc}")
    unavailable = errors.ServiceUnavailable("Service temporarily unavailable, please retry")
    return error_response(unavailable.status_code, unavailable.message, headers={"Retry-After": "1"})


@app.get("/healthz", response_model=dict)
def health():
    """
    Health check endpoint for the marketplace.

    Used by orchestration systems (like Kubernetes) to verify that the
    service is running and responsive.

    Returns:
        dict: {"status": "healthy"}
    """
    return {"status": "healthy"}
