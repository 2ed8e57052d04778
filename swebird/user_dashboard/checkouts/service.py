import logging
from typing import Optional, Tuple
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select
from sqlalchemy.exc import SQLAlchemyError
from fastapi import HTTPException, status

from swebird.coupons.evaluator import CouponEvaluator, CouponStatus
from swebird.coupons.store import normalize_code
from swebird.db.models import Order
from swebird.errors import CouponStoreError, OrderNotFound
from .schemas import ApplyCouponRequest, ApplyCouponResponse, OrderCreate

logger = logging.getLogger(__name__)


class CheckoutService:
    def __init__(self, session: AsyncSession, evaluator: CouponEvaluator):
        self.session = session
        self.evaluator = evaluator

    async def apply_coupon(self, cmd: ApplyCouponRequest) -> ApplyCouponResponse:
        result = await self.evaluator.apply_coupon(cmd.code, cmd.cart_total)
        return ApplyCouponResponse(
            success=result.success,
            discount=result.discount,
            error=result.error,
            final_total=cmd.cart_total - result.discount,
        )

    async def _order_discount(self, code: Optional[str], gross: float) -> Tuple[Optional[str], float]:
        if not code or not code.strip():
            return None, 0.0

        try:
            result = await self.evaluator.validate(code, gross)
        except CouponStoreError:
            logger.exception(f"Could not check coupon {code!r} for a paid order, recording it without discount")
            return None, 0.0

        if result.status in (CouponStatus.not_found, CouponStatus.inactive):
            logger.warning(f"Ignoring coupon {normalize_code(code)!r} on paid order: {result.message}")
            return None, 0.0

        # expired, exhausted and below-minimum coupons were quoted before payment
        return result.coupon.code, self.evaluator.compute_discount(result.coupon, gross)

    async def complete_order(self, user_uid: Optional[str], cmd: OrderCreate) -> Order:
        """Record a paid order, then count the coupon use.

        The caller has already verified the payment, so a failed redemption is
        only logged and the order is kept. The discount is recomputed from the
        stored coupon; unknown and disabled codes give no discount.
        """
        gross = cmd.subtotal + cmd.shipping_price
        coupon_code, discount = await self._order_discount(cmd.coupon_code, gross)

        order = Order(
            user_uid=user_uid,
            subtotal=round(cmd.subtotal, 2),
            shipping_price=round(cmd.shipping_price, 2),
            discount=round(discount, 2),
            total=round(gross - discount, 2),
            coupon_code=coupon_code,
            payment_reference=cmd.payment_reference,
        )
        try:
            self.session.add(order)
            await self.session.commit()
            await self.session.refresh(order)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Error creating order: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error creating order"
            )
        logger.info(f"Created order {order.uid} for payment {order.payment_reference}")

        if coupon_code:
            await self.evaluator.use_coupon(coupon_code)

        return order

    async def get_order(self, order_uid: str) -> Order:
        result = await self.session.exec(select(Order).where(Order.uid == order_uid))
        order = result.one_or_none()
        if not order:
            raise OrderNotFound()
        return order
