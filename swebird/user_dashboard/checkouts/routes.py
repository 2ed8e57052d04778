from fastapi import APIRouter, Depends, status
from typing import Optional
from sqlmodel.ext.asyncio.session import AsyncSession

from swebird.db.main import get_session
from swebird.auth.dependencies import get_optional_current_user
from swebird.coupons.dependencies import get_coupon_evaluator
from swebird.coupons.evaluator import CouponEvaluator
from .schemas import ApplyCouponRequest, ApplyCouponResponse, OrderCreate, OrderResponse
from .service import CheckoutService

user_checkout_router = APIRouter()


def get_checkout_service(
    session: AsyncSession = Depends(get_session),
    evaluator: CouponEvaluator = Depends(get_coupon_evaluator),
) -> CheckoutService:
    return CheckoutService(session, evaluator)


@user_checkout_router.post("/coupon", response_model=ApplyCouponResponse)
async def apply_coupon(
    cmd: ApplyCouponRequest,
    service: CheckoutService = Depends(get_checkout_service),
):
    return await service.apply_coupon(cmd)

@user_checkout_router.post("/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def complete_order(
    cmd: OrderCreate,
    service: CheckoutService = Depends(get_checkout_service),
    current_user: Optional[dict] = Depends(get_optional_current_user),
):
    user_uid = current_user.get("user_uid") if current_user else None
    return await service.complete_order(user_uid, cmd)

@user_checkout_router.get("/orders/{order_uid}", response_model=OrderResponse)
async def get_order(
    order_uid: str,
    service: CheckoutService = Depends(get_checkout_service),
):
    return await service.get_order(order_uid)
