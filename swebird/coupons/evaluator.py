import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from swebird.db.models import Coupon, DiscountType, as_utc
from swebird.errors import CouponStoreError
from .store import CouponStore, normalize_code

logger = logging.getLogger(__name__)


class CouponStatus(str, Enum):
    valid = "valid"
    not_found = "not_found"
    inactive = "inactive"
    expired = "expired"
    usage_limit_reached = "usage_limit_reached"
    below_minimum_purchase = "below_minimum_purchase"


def format_amount(amount: float) -> str:
    if float(amount).is_integer():
        return str(int(amount))
    return f"{amount:.2f}"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of checking a code against a cart total.

    Rejections are ordinary values here, not exceptions. ``coupon`` is set
    whenever the code exists and ``min_purchase_amount`` only for
    below-minimum ones.
    """
    status: CouponStatus
    coupon: Optional[Coupon] = None
    min_purchase_amount: Optional[float] = None
    currency_symbol: str = "₹"

    @property
    def is_valid(self) -> bool:
        return self.status == CouponStatus.valid

    @property
    def message(self) -> Optional[str]:
        if self.status == CouponStatus.valid:
            return None
        if self.status == CouponStatus.below_minimum_purchase:
            return f"Minimum purchase amount of {self.currency_symbol}{format_amount(self.min_purchase_amount)} required"
        return REJECTION_MESSAGES[self.status]


REJECTION_MESSAGES = {
    CouponStatus.not_found: "Coupon code not found",
    CouponStatus.inactive: "Coupon is not active",
    CouponStatus.expired: "Coupon has expired",
    CouponStatus.usage_limit_reached: "Coupon usage limit reached",
}


@dataclass(frozen=True)
class ApplyCouponResult:
    success: bool
    discount: float = 0.0
    error: Optional[str] = None


def compute_discount(coupon: Coupon, cart_total: float) -> float:
    """Discount for ``coupon`` on ``cart_total``, always within [0, cart_total]."""
    if coupon.discount_type == DiscountType.percentage:
        amount = cart_total * coupon.discount_value / 100
        if coupon.max_discount_amount is not None and amount > coupon.max_discount_amount:
            amount = coupon.max_discount_amount
    else:
        amount = coupon.discount_value

    return max(0.0, min(amount, cart_total))


class CouponEvaluator:
    def __init__(self, store: CouponStore, currency_symbol: str = "₹"):
        self.store = store
        self.currency_symbol = currency_symbol

    def _result(self, status: CouponStatus, **kwargs) -> ValidationResult:
        return ValidationResult(status=status, currency_symbol=self.currency_symbol, **kwargs)

    async def validate(self, code: str, cart_total: float, now: Optional[datetime] = None) -> ValidationResult:
        """Check ``code`` against ``cart_total``.

        Checks run in a fixed order (exists, active, expiry, usage limit,
        minimum purchase) and the first failure is reported. Raises
        ``CouponStoreError`` when the store cannot be read.
        """
        now = as_utc(now) if now else datetime.now(timezone.utc)

        coupon = await self.store.find_by_code(normalize_code(code))
        if coupon is None:
            return self._result(CouponStatus.not_found)

        if not coupon.is_active:
            return self._result(CouponStatus.inactive, coupon=coupon)

        if now >= as_utc(coupon.expiry_date):
            return self._result(CouponStatus.expired, coupon=coupon)

        if coupon.used_count >= coupon.usage_limit:
            return self._result(CouponStatus.usage_limit_reached, coupon=coupon)

        if coupon.min_purchase_amount is not None and cart_total < coupon.min_purchase_amount:
            return self._result(CouponStatus.below_minimum_purchase, coupon=coupon, min_purchase_amount=coupon.min_purchase_amount)

        return self._result(CouponStatus.valid, coupon=coupon)

    def compute_discount(self, coupon: Coupon, cart_total: float) -> float:
        return compute_discount(coupon, cart_total)

    async def redeem(self, code: str, now: Optional[datetime] = None) -> bool:
        """Record one use of ``code``. False when missing or already exhausted."""
        return await self.store.redeem_if_available(normalize_code(code), now=now)

    async def apply_coupon(self, code: str, cart_total: float, now: Optional[datetime] = None) -> ApplyCouponResult:
        try:
            validation = await self.validate(code, cart_total, now=now)
        except CouponStoreError:
            logger.error(f"Error applying coupon {code!r}")
            return ApplyCouponResult(success=False, error="Error applying coupon")

        if not validation.is_valid:
            return ApplyCouponResult(success=False, error=validation.message)

        return ApplyCouponResult(success=True, discount=compute_discount(validation.coupon, cart_total))

    async def use_coupon(self, code: str, now: Optional[datetime] = None) -> None:
        """Redeem after a verified payment. Never raises: the order already stands."""
        try:
            redeemed = await self.redeem(code, now=now)
        except CouponStoreError:
            logger.exception(f"Error marking coupon {code!r} as used")
            return

        if not redeemed:
            logger.warning(f"Coupon {normalize_code(code)!r} was not redeemed: missing or usage limit reached")
