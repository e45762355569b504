"""
Standardized API response envelope and small response helpers.

Every endpoint (except the health check) answers with
``{statusCode, success, message, data}``.
"""
import math
import time
import uuid
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success_response(data: Any = None, message: str = "Success", status_code: int = 200) -> dict:
    """Build a success envelope; FastAPI validates ``data`` against the route's response model."""
    return {
        "statusCode": status_code,
        "success": True,
        "message": message,
        "data": data,
    }


def error_response(status_code: int, message: str, data: Optional[Any] = None, headers=None) -> JSONResponse:
    """Build a failure envelope as a ready-to-send response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "statusCode": status_code,
            "success": False,
            "message": message,
            "data": jsonable_encoder(data),
        },
        headers=headers,
    )


def generate_unique_number(prefix: str) -> str:
    """
    Generate a human readable order/booking number.

    Args:
        prefix: Prefix for the number (e.g. "ORD", "SRV", "CLN", "RNT", "RSA")

    Returns:
        A string like "ORD-482913-9F2C41A7B"
    """
    timestamp = str(int(time.time() * 1000))[-6:]
    random_part = uuid.uuid4().hex[:9].upper()
    return f"{prefix}-{timestamp}-{random_part}"


def new_id() -> str:
    """Opaque identifier for a new row, generated before insertion."""
    return str(uuid.uuid4())


def pagination(page: int, limit: int, total: int) -> dict:
    """Pagination metadata for list endpoints."""
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }
