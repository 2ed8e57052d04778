"""
Test configuration and fixtures for the Swebird coupon API tests.
"""
from datetime import timedelta
from typing import Any, AsyncGenerator, Dict

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import AsyncClient

from swebird import create_app
from swebird.auth.utils import create_access_token
from swebird.config import Settings
from swebird.coupons.evaluator import CouponEvaluator
from swebird.coupons.feed import CouponFeed
from swebird.coupons.store import CouponStore
from swebird.db.main import build_engine, build_session_factory, init_db
from swebird.db.models import Coupon, utcnow

# Use in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        DATABASE_URL=TEST_DATABASE_URL,
        JWT_SECRET="test-secret",
        _env_file=None,
    )


@pytest_asyncio.fixture
async def engine(settings):
    """Fresh in-memory database with all tables for each test."""
    engine = build_engine(settings)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def feed() -> CouponFeed:
    return CouponFeed()


@pytest.fixture
def store(db_session, feed) -> CouponStore:
    return CouponStore(db_session, feed)


@pytest.fixture
def evaluator(store) -> CouponEvaluator:
    return CouponEvaluator(store)


@pytest.fixture
def coupon_data() -> Dict[str, Any]:
    """Test coupon data."""
    return {
        "code": "SWEBIRD10",
        "discount_type": "percentage",
        "discount_value": 10,
        "expiry_date": utcnow() + timedelta(days=30),
        "usage_limit": 100,
    }


@pytest.fixture
def make_coupon(session_factory, feed, coupon_data):
    """Persist a coupon in its own session and return it."""
    async def _make(**overrides) -> Coupon:
        data = {**coupon_data, **overrides}
        async with session_factory() as session:
            return await CouponStore(session, feed).save(Coupon(**data))

    return _make


@pytest.fixture
def app(settings, engine, session_factory, feed) -> FastAPI:
    """Create app instance sharing the test database."""
    app = create_app(settings)
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.coupon_feed = feed
    return app


@pytest_asyncio.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Return an async client for testing."""
    async with AsyncClient(base_url="http://test", transport=httpx.ASGITransport(app=app)) as client:
        yield client


@pytest.fixture
def admin_token(settings) -> str:
    return create_access_token(
        {"email": "admin@swebird.in", "user_uid": "admin-1", "role": "admin"},
        settings,
    )


@pytest.fixture
def admin_headers(admin_token) -> Dict[str, str]:
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def customer_headers(settings) -> Dict[str, str]:
    token = create_access_token(
        {"email": "customer@example.com", "user_uid": "customer-1", "role": "user"},
        settings,
    )
    return {"Authorization": f"Bearer {token}"}
