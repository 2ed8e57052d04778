from typing import Any, Callable
from fastapi import FastAPI, status
from fastapi.requests import Request
from fastapi.responses import JSONResponse


class SwebirdException(Exception):
    """This is the base class for all Swebird errors"""
    pass


class InvalidToken(SwebirdException):
    """User has been provided an invalid or expired token"""
    pass


class AccessTokenRequired(SwebirdException):
    """User has been provided a refresh token when an access token is needed"""
    pass


class InsufficientPermission(SwebirdException):
    """User does not hold a role allowed on this route"""
    pass


class CouponNotFound(SwebirdException):
    """No coupon with the given id."""
    pass


class CouponAlreadyExists(SwebirdException):
    """Another coupon already uses this code."""
    def __init__(self, code: str):
        super().__init__(f"Coupon code {code} already exists")
        self.code = code


class CouponStoreError(SwebirdException):
    """The coupon store could not be read or written."""
    pass


class UsageLimitBelowUsedCount(SwebirdException):
    """The new usage limit is lower than the coupon's recorded uses."""
    pass


class OrderNotFound(SwebirdException):
    """Order not found."""
    pass


def create_exception_handler(status_code: int, initial_detail: Any) -> Callable[[Request, Exception], JSONResponse]:
    async def exception_handler(request: Request, exc: SwebirdException):
        return JSONResponse(
            content=initial_detail,
            status_code=status_code
        )

    return exception_handler



def register_all_errors(app: FastAPI):
    # Coupon Not Found
    app.add_exception_handler(
        CouponNotFound,
        create_exception_handler(
            status_code=status.HTTP_404_NOT_FOUND,
            initial_detail={
                "message": "Coupon not found",
                "error_code": "coupon_does_not_exist"
            }
        )
    )

    # Coupon Already Exists
    app.add_exception_handler(
        CouponAlreadyExists,
        create_exception_handler(
            status_code=status.HTTP_409_CONFLICT,
            initial_detail={
                "message": "A coupon with this code already exists",
                "error_code": "coupon_exists",
                "resolution": "Pick a different code or edit the existing coupon"
            }
        )
    )

    # Coupon Store Error
    app.add_exception_handler(
        CouponStoreError,
        create_exception_handler(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            initial_detail={
                "message": "Error validating coupon",
                "error_code": "coupon_store_unavailable"
            }
        )
    )

    # Usage Limit Below Used Count
    app.add_exception_handler(
        UsageLimitBelowUsedCount,
        create_exception_handler(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            initial_detail={
                "message": "Usage limit cannot be lower than the number of times the coupon was used",
                "error_code": "usage_limit_below_used_count"
            }
        )
    )

    # Order Not Found
    app.add_exception_handler(
        OrderNotFound,
        create_exception_handler(
            status_code=status.HTTP_404_NOT_FOUND,
            initial_detail={
                "message": "Order not found",
                "error_code": "order_does_not_exist"
            }
        )
    )

    # Access Token Required
    app.add_exception_handler(
        AccessTokenRequired,
        create_exception_handler(
            status_code=status.HTTP_401_UNAUTHORIZED,
            initial_detail={
                "message": "Access token is required",
                "error_code": "access_token_required"
            }
        )
    )

    # Invalid Token
    app.add_exception_handler(
        InvalidToken,
        create_exception_handler(
            status_code=status.HTTP_401_UNAUTHORIZED,
            initial_detail={
                "message": "you provided an invalid or expired token",
                "error_code": "invalid_token"
            }
        )
    )

    # Insufficient Permission
    app.add_exception_handler(
        InsufficientPermission,
        create_exception_handler(
            status_code=status.HTTP_403_FORBIDDEN,
            initial_detail={
                "message": "You do not have sufficient permission",
                "error_code": "insufficient_permission"
            }
        )
    )

    @app.exception_handler(500)
    async def internal_server_error_handler(request, exc):
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "message": "Opps, Something went wrong. Please try again later",
                "error_code": "server_error"
            }
        )
