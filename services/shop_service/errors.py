"""Shop error taxonomy and its HTTP rendering."""

import enum
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from libs.common.logging import get_logger

logger = get_logger(__name__)


class ShopError(Exception):
    """Base exception for domain errors raised by the shop services."""

    status_code: int = 400
    code: str = "shop_error"

    def __init__(self, detail: str, status_code: Optional[int] = None):
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code
        super().__init__(detail)


class ValidationError(ShopError):
    code = "validation_error"


class StockError(ShopError):
    code = "insufficient_stock"


class NotFoundError(ShopError):
    status_code = 404
    code = "not_found"


class StateConflictError(ShopError):
    status_code = 409
    code = "state_conflict"


class InvalidTransitionError(StateConflictError):
    code = "invalid_transition"


class AuthorizationError(ShopError):
    status_code = 403
    code = "forbidden"


class ExternalServiceError(ShopError):
    status_code = 502
    code = "external_service_error"


class WebhookSignatureError(ShopError):
    code = "invalid_signature"


class CouponRejection(str, enum.Enum):
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    USAGE_EXCEEDED = "usage_exceeded"
    MINIMUM_NOT_MET = "minimum_not_met"
    NOT_APPLICABLE = "not_applicable"


class CouponError(ShopError):
    """Coupon rejected; `reason` says which check failed."""

    def __init__(self, reason: CouponRejection, detail: str):
        self.reason = reason
        self.code = f"coupon_{reason.value}"
        super().__init__(
            detail, status_code=404 if reason == CouponRejection.NOT_FOUND else 400
        )


class GiftCardRejection(str, enum.Enum):
    NOT_FOUND = "not_found"
    NOT_ACTIVE = "not_active"
    EXPIRED = "expired"
    INSUFFICIENT_BALANCE = "insufficient_balance"


class GiftCardError(ShopError):
    def __init__(self, reason: GiftCardRejection, detail: str):
        self.reason = reason
        self.code = f"gift_card_{reason.value}"
        super().__init__(
            detail,
            status_code=404 if reason == GiftCardRejection.NOT_FOUND else 400,
        )


async def shop_error_handler(request: Request, exc: ShopError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.detail}"
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        f"Unhandled error on {request.method} {request.url.path}",
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": "internal_error"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ShopError, shop_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
