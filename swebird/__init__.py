from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from swebird.config import Settings
from swebird.coupons.feed import CouponFeed
from swebird.db.main import build_engine, build_session_factory, init_db

from swebird.admin_dashboard.coupons.routes import coupon_router
from swebird.user_dashboard.checkouts.routes import user_checkout_router

from .errors import register_all_errors
from .admin_dashboard.middleware import register_middleware

version = "v1"


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around an explicitly constructed ``Settings``.

    Run with ``uvicorn swebird:create_app --factory``.
    """
    if settings is None:
        settings = Settings()

    engine = build_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.DB_CREATE_TABLES:
            await init_db(engine)
        yield
        await engine.dispose()

    app = FastAPI(
        title = "Swebird Store",
        description = "Coupon management and checkout API for the Swebird storefront",
        version = version,
        lifespan = lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.coupon_feed = CouponFeed()

    register_all_errors(app)
    register_middleware(app, settings)

    app.include_router(coupon_router, prefix=f"/admin/coupons", tags=["admin coupons"])
    app.include_router(user_checkout_router, prefix=f"/checkouts", tags=['user checkouts'])

    return app
