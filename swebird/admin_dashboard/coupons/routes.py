import asyncio
import logging
from fastapi import APIRouter, Depends, Query, Request, WebSocket, WebSocketDisconnect, status
from uuid import UUID
from typing import Callable, List

from swebird.auth.dependencies import RoleChecker, check_role
from swebird.auth.utils import decode_token
from swebird.coupons.dependencies import get_coupon_store
from swebird.coupons.feed import CouponEvent
from swebird.coupons.store import CouponStore
from swebird.errors import AccessTokenRequired, InsufficientPermission, InvalidToken
from . import schemas
from .service import CouponService

logger = logging.getLogger(__name__)

STREAM_QUEUE_SIZE = 100

coupon_router = APIRouter()
admin_role_checker = Depends(RoleChecker(['admin']))


def get_coupon_service(request: Request, store: CouponStore = Depends(get_coupon_store)) -> CouponService:
    return CouponService(store, request.app.state.settings)


def _serialize(coupon) -> dict:
    return schemas.CouponResponse.model_validate(coupon).model_dump(mode="json")


@coupon_router.get("/", response_model=List[schemas.CouponResponse], dependencies=[admin_role_checker])
async def list_coupons(service: CouponService = Depends(get_coupon_service)):
    return await service.list_coupons()

@coupon_router.get("/{uid}", response_model=schemas.CouponResponse, dependencies=[admin_role_checker])
async def read_coupon(uid: UUID, service: CouponService = Depends(get_coupon_service)):
    return await service.get_coupon(uid)

@coupon_router.post("/", response_model=schemas.CouponResponse, status_code=status.HTTP_201_CREATED, dependencies=[admin_role_checker])
async def create_coupon(data: schemas.CouponCreate, service: CouponService = Depends(get_coupon_service)):
    return await service.create_coupon(data)

@coupon_router.put("/{uid}", response_model=schemas.CouponResponse, dependencies=[admin_role_checker])
async def update_coupon(uid: UUID, data: schemas.CouponUpdate, service: CouponService = Depends(get_coupon_service)):
    return await service.update_coupon(uid, data)

@coupon_router.patch("/{uid}/toggle", response_model=schemas.CouponResponse, dependencies=[admin_role_checker])
async def toggle_coupon(uid: UUID, service: CouponService = Depends(get_coupon_service)):
    return await service.toggle_coupon(uid)

@coupon_router.delete("/{uid}", status_code=status.HTTP_200_OK, dependencies=[admin_role_checker])
async def delete_coupon(uid: UUID, service: CouponService = Depends(get_coupon_service)):
    await service.delete_coupon(uid)
    return {"message": "Coupon deleted successfully"}


def queue_subscriber(queue: asyncio.Queue, on_overflow: Callable[[], None]) -> Callable[[CouponEvent], None]:
    """Feed subscriber that hands events to one stream's bounded queue."""
    def enqueue(event: CouponEvent) -> None:
        try:
            queue.put_nowait(event)
        except asyncio.QueueFull:
            on_overflow()

    return enqueue


async def _close_stream(websocket: WebSocket, code: int) -> None:
    try:
        await websocket.close(code=code)
    except RuntimeError as e:
        # client already disconnected
        logger.debug(f"Coupon stream already closed: {e}")


@coupon_router.websocket("/stream")
async def stream_coupons(websocket: WebSocket, token: str = Query(...), store: CouponStore = Depends(get_coupon_store)):
    """Live coupon list for the admin panel: a snapshot, then one message per change."""
    try:
        token_data = decode_token(token, websocket.app.state.settings)
        if token_data.get("refresh"):
            raise AccessTokenRequired()
        check_role(token_data.get("user", {}), ["admin"])
    except (InvalidToken, AccessTokenRequired, InsufficientPermission):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    closing: List[asyncio.Task] = []

    def close_once(code: int) -> None:
        if not closing:
            closing.append(asyncio.ensure_future(_close_stream(websocket, code)))

    def on_overflow() -> None:
        # the client reconnects and gets a fresh snapshot
        logger.warning("Coupon stream client fell behind, closing the stream")
        close_once(status.WS_1013_TRY_AGAIN_LATER)

    queue: asyncio.Queue[CouponEvent] = asyncio.Queue(maxsize=STREAM_QUEUE_SIZE)
    unsubscribe = websocket.app.state.coupon_feed.subscribe(queue_subscriber(queue, on_overflow))

    async def forward_events():
        while True:
            event = await queue.get()
            await websocket.send_json({"type": event.type.value, "coupon": _serialize(event.coupon)})

    def on_forward_done(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        logger.error("Coupon stream stopped forwarding events", exc_info=task.exception())
        close_once(status.WS_1011_INTERNAL_ERROR)

    forwarder = None
    try:
        coupons = await store.list_coupons()
        await websocket.send_json({"type": "snapshot", "coupons": [_serialize(c) for c in coupons]})

        forwarder = asyncio.create_task(forward_events())
        forwarder.add_done_callback(on_forward_done)
        while True:
            # only used to notice the client going away
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Coupon stream client disconnected")
    finally:
        unsubscribe()
        if forwarder is not None:
            forwarder.cancel()
