import logging
import uuid
from datetime import timedelta
from typing import List

from swebird.config import Settings
from swebird.coupons.store import CouponStore
from swebird.db.models import Coupon, as_naive_utc, utcnow
from swebird.errors import CouponAlreadyExists, CouponNotFound, UsageLimitBelowUsedCount
from .schemas import CouponBase, CouponCreate, CouponUpdate


class CouponService:
    def __init__(self, store: CouponStore, settings: Settings):
        self.store = store
        self.settings = settings
        self.logger = logging.getLogger(__name__)

    def _rules(self, data: CouponBase) -> dict:
        payload = data.model_dump()
        if payload["expiry_date"] is None:
            payload["expiry_date"] = utcnow() + timedelta(days=self.settings.DEFAULT_COUPON_VALIDITY_DAYS)
        else:
            payload["expiry_date"] = as_naive_utc(payload["expiry_date"])
        if payload["usage_limit"] is None:
            payload["usage_limit"] = self.settings.DEFAULT_USAGE_LIMIT
        return payload

    async def _ensure_code_free(self, code: str, uid: uuid.UUID = None) -> None:
        existing = await self.store.find_by_code(code)
        if existing is not None and existing.uid != uid:
            raise CouponAlreadyExists(code)

    async def list_coupons(self) -> List[Coupon]:
        return await self.store.list_coupons()

    async def get_coupon(self, uid: uuid.UUID) -> Coupon:
        coupon = await self.store.find_by_id(uid)
        if not coupon:
            raise CouponNotFound()
        return coupon

    async def create_coupon(self, data: CouponCreate) -> Coupon:
        await self._ensure_code_free(data.code)
        coupon = Coupon(**self._rules(data), used_count=0)
        coupon = await self.store.save(coupon)
        self.logger.info(f"Created coupon {coupon.code}")
        return coupon

    async def update_coupon(self, uid: uuid.UUID, data: CouponUpdate) -> Coupon:
        coupon = await self.get_coupon(uid)
        await self._ensure_code_free(data.code, uid)
        rules = self._rules(data)
        if rules["usage_limit"] < coupon.used_count:
            raise UsageLimitBelowUsedCount()
        # every rule is replaced, used_count and created_at carry over
        for k, v in rules.items():
            setattr(coupon, k, v)
        coupon = await self.store.save(coupon)
        self.logger.info(f"Updated coupon {coupon.code}")
        return coupon

    async def toggle_coupon(self, uid: uuid.UUID) -> Coupon:
        coupon = await self.get_coupon(uid)
        coupon.is_active = not coupon.is_active
        return await self.store.save(coupon)

    async def delete_coupon(self, uid: uuid.UUID) -> bool:
        coupon = await self.store.delete(uid)
        if coupon is None:
            raise CouponNotFound()
        self.logger.info(f"Deleted coupon {coupon.code}")
        return True
