import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from swebird.db.models import Coupon, as_naive_utc, utcnow
from swebird.errors import CouponAlreadyExists, CouponStoreError
from .feed import CouponEvent, CouponEventType, CouponFeed

logger = logging.getLogger(__name__)

COUNTER_FIELDS = ("used_count", "usage_limit")


def normalize_code(code: str) -> str:
    return code.strip().upper()


class CouponStore:
    """Keyed access to coupon rows.

    Every mutation commits immediately and is then announced on the feed.
    Database failures surface as ``CouponStoreError``.
    """

    def __init__(self, session: AsyncSession, feed: Optional[CouponFeed] = None):
        self.session = session
        self.feed = feed

    async def find_by_code(self, code: str) -> Optional[Coupon]:
        try:
            result = await self.session.exec(
                select(Coupon)
                .where(Coupon.code == normalize_code(code))
                .execution_options(populate_existing=True)
            )
            return result.first()
        except SQLAlchemyError as e:
            logger.exception(f"Error fetching coupon by code {code!r}")
            raise CouponStoreError("Error fetching coupon") from e

    async def find_by_id(self, uid: uuid.UUID) -> Optional[Coupon]:
        try:
            result = await self.session.exec(
                select(Coupon)
                .where(Coupon.uid == uid)
                .execution_options(populate_existing=True)
            )
            return result.first()
        except SQLAlchemyError as e:
            logger.exception(f"Error fetching coupon {uid}")
            raise CouponStoreError("Error fetching coupon") from e

    async def list_coupons(self) -> List[Coupon]:
        try:
            results = await self.session.exec(select(Coupon).order_by(Coupon.created_at.desc()))
            return list(results.all())
        except SQLAlchemyError as e:
            logger.exception("Error fetching coupons")
            raise CouponStoreError("Error fetching coupons") from e

    async def save(self, coupon: Coupon) -> Coupon:
        """Insert or overwrite ``coupon``."""
        coupon.code = normalize_code(coupon.code)
        coupon.updated_at = utcnow()
        try:
            self.session.add(coupon)
            await self.session.commit()
            await self.session.refresh(coupon)
        except IntegrityError as e:
            await self.session.rollback()
            raise CouponAlreadyExists(coupon.code) from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception(f"Error saving coupon {coupon.code}")
            raise CouponStoreError("Error saving coupon") from e

        await self._publish(CouponEventType.saved, coupon)
        return coupon

    async def delete(self, uid: uuid.UUID) -> Optional[Coupon]:
        """Remove the coupon outright. Returns the deleted row, or None if absent."""
        coupon = await self.find_by_id(uid)
        if coupon is None:
            return None
        try:
            await self.session.delete(coupon)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception(f"Error deleting coupon {uid}")
            raise CouponStoreError("Error deleting coupon") from e

        await self._publish(CouponEventType.deleted, coupon)
        return coupon

    async def increment(self, code: str, field: str, by: int = 1) -> bool:
        """Atomically add ``by`` to a counter column. No limit is checked."""
        if field not in COUNTER_FIELDS:
            raise ValueError(f"{field} is not a counter field")

        column = getattr(Coupon, field)
        stmt = (
            update(Coupon)
            .where(Coupon.code == normalize_code(code))
            .values({field: column + by, "updated_at": utcnow()})
            .execution_options(synchronize_session=False)
        )
        return await self._conditional_write(code, stmt, CouponEventType.saved)

    async def redeem_if_available(self, code: str, now: Optional[datetime] = None) -> bool:
        """Increment used_count only while it is below usage_limit, in one statement."""
        stmt = (
            update(Coupon)
            .where(
                Coupon.code == normalize_code(code),
                Coupon.used_count < Coupon.usage_limit,
            )
            .values(used_count=Coupon.used_count + 1, updated_at=as_naive_utc(now) if now else utcnow())
            .execution_options(synchronize_session=False)
        )
        return await self._conditional_write(code, stmt, CouponEventType.redeemed)

    async def _conditional_write(self, code: str, stmt, event_type: CouponEventType) -> bool:
        try:
            result = await self.session.exec(stmt)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception(f"Error updating coupon {code!r}")
            raise CouponStoreError("Error updating coupon") from e

        if result.rowcount != 1:
            return False

        coupon = await self.find_by_code(code)
        if coupon is not None:
            await self._publish(event_type, coupon)
        return True

    async def _publish(self, event_type: CouponEventType, coupon: Coupon) -> None:
        if self.feed is not None:
            await self.feed.publish(CouponEvent(type=event_type, coupon=coupon))
