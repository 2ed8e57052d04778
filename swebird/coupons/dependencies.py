from fastapi import Depends
from sqlmodel.ext.asyncio.session import AsyncSession
from starlette.requests import HTTPConnection

from swebird.db.main import get_session
from .evaluator import CouponEvaluator
from .store import CouponStore


def get_coupon_store(connection: HTTPConnection, session: AsyncSession = Depends(get_session)) -> CouponStore:
    return CouponStore(session, connection.app.state.coupon_feed)


def get_coupon_evaluator(connection: HTTPConnection, store: CouponStore = Depends(get_coupon_store)) -> CouponEvaluator:
    return CouponEvaluator(store, currency_symbol=connection.app.state.settings.CURRENCY_SYMBOL)
