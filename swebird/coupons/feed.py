import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Union

from swebird.db.models import Coupon

logger = logging.getLogger(__name__)


class CouponEventType(str, Enum):
    saved = "saved"
    deleted = "deleted"
    redeemed = "redeemed"


@dataclass(frozen=True)
class CouponEvent:
    type: CouponEventType
    coupon: Coupon


Subscriber = Callable[[CouponEvent], Union[None, Awaitable[None]]]


class CouponFeed:
    """Push-based change notifications for coupons.

    The store publishes after every committed mutation; admin views subscribe
    to keep a live list. One feed is shared by the whole application.
    """

    def __init__(self):
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` and return a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, event: CouponEvent) -> None:
        # copy, a subscriber may unsubscribe while we iterate
        for callback in list(self._subscribers):
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Coupon feed subscriber failed on {event.type.value} event for {event.coupon.code}")
