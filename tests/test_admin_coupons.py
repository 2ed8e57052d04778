"""
Test admin coupon management endpoints.
"""
import asyncio
import uuid
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from swebird import create_app
from swebird.admin_dashboard.coupons.routes import queue_subscriber
from swebird.auth.utils import create_access_token
from swebird.config import Settings
from swebird.db.models import utcnow


def coupon_payload(**overrides):
    payload = {
        "code": "swebird10",
        "discount_type": "percentage",
        "discount_value": 10,
        "max_discount_amount": 40,
        "expiry_date": "2030-01-01T00:00:00Z",
        "usage_limit": 5,
        "description": "Ten percent off",
    }
    payload.update(overrides)
    return payload


class TestAdminCouponAccess:
    """Only admins reach coupon management."""

    async def test_requires_token(self, async_client):
        response = await async_client.get("/admin/coupons/")
        assert response.status_code in (401, 403)

    async def test_rejects_customer(self, async_client, customer_headers):
        response = await async_client.get("/admin/coupons/", headers=customer_headers)
        assert response.status_code == 403
        assert response.json()["error_code"] == "insufficient_permission"

    async def test_rejects_bad_token(self, async_client):
        response = await async_client.get("/admin/coupons/", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401
        assert response.json()["error_code"] == "invalid_token"

    async def test_rejects_refresh_token(self, async_client, settings):
        token = create_access_token({"email": "admin@swebird.in", "role": "admin"}, settings, refresh=True)
        response = await async_client.get("/admin/coupons/", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error_code"] == "access_token_required"


class TestAdminCouponCrud:
    """Create, read, overwrite, toggle and delete."""

    async def test_create_coupon(self, async_client, admin_headers):
        response = await async_client.post("/admin/coupons/", json=coupon_payload(), headers=admin_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["code"] == "SWEBIRD10"
        assert data["used_count"] == 0
        assert data["is_active"] is True
        assert data["max_discount_amount"] == 40

    async def test_create_applies_defaults(self, async_client, admin_headers, settings):
        payload = coupon_payload(min_purchase_amount=0, max_discount_amount=0, description="")
        del payload["expiry_date"]
        del payload["usage_limit"]

        response = await async_client.post("/admin/coupons/", json=payload, headers=admin_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["usage_limit"] == settings.DEFAULT_USAGE_LIMIT
        assert data["min_purchase_amount"] is None
        assert data["max_discount_amount"] is None
        assert data["description"] is None
        assert data["expiry_date"] is not None

    @pytest.mark.parametrize("overrides", [
        {"discount_value": 150},
        {"discount_value": -1},
        {"code": "   "},
        {"usage_limit": 0},
        {"discount_type": "bogo"},
    ])
    async def test_create_rejects_invalid_input(self, async_client, admin_headers, overrides):
        response = await async_client.post("/admin/coupons/", json=coupon_payload(**overrides), headers=admin_headers)
        assert response.status_code == 422

    async def test_fixed_coupon_may_exceed_hundred(self, async_client, admin_headers):
        payload = coupon_payload(code="FLAT500", discount_type="fixed", discount_value=500)
        response = await async_client.post("/admin/coupons/", json=payload, headers=admin_headers)
        assert response.status_code == 201

    async def test_create_duplicate_code(self, async_client, admin_headers):
        await async_client.post("/admin/coupons/", json=coupon_payload(), headers=admin_headers)
        response = await async_client.post("/admin/coupons/", json=coupon_payload(code=" SWEBIRD10"), headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["error_code"] == "coupon_exists"

    async def test_list_and_read(self, async_client, admin_headers):
        created = (await async_client.post("/admin/coupons/", json=coupon_payload(), headers=admin_headers)).json()

        listing = await async_client.get("/admin/coupons/", headers=admin_headers)
        single = await async_client.get(f"/admin/coupons/{created['uid']}", headers=admin_headers)

        assert [c["code"] for c in listing.json()] == ["SWEBIRD10"]
        assert single.json()["uid"] == created["uid"]

    async def test_read_missing(self, async_client, admin_headers):
        response = await async_client.get(f"/admin/coupons/{uuid.uuid4()}", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["error_code"] == "coupon_does_not_exist"

    async def test_update_overwrites_rules_and_keeps_usage(self, async_client, admin_headers, make_coupon):
        created = await make_coupon(used_count=3, max_discount_amount=40, min_purchase_amount=100)

        payload = coupon_payload(code="SWEBIRD15", discount_value=15, usage_limit=10)
        del payload["max_discount_amount"]
        response = await async_client.put(f"/admin/coupons/{created.uid}", json=payload, headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["code"] == "SWEBIRD15"
        assert data["discount_value"] == 15
        # omitted rules are cleared, not merged
        assert data["max_discount_amount"] is None
        assert data["min_purchase_amount"] is None
        assert data["used_count"] == 3

    async def test_update_onto_existing_code(self, async_client, admin_headers, make_coupon):
        await make_coupon(code="TAKEN")
        other = await make_coupon(code="OTHER")

        response = await async_client.put(f"/admin/coupons/{other.uid}", json=coupon_payload(code="taken"), headers=admin_headers)
        assert response.status_code == 409

    async def test_update_keeping_own_code(self, async_client, admin_headers, make_coupon):
        created = await make_coupon()
        response = await async_client.put(f"/admin/coupons/{created.uid}", json=coupon_payload(), headers=admin_headers)
        assert response.status_code == 200

    async def test_update_rejects_limit_below_used_count(self, async_client, admin_headers, make_coupon):
        created = await make_coupon(used_count=5)

        response = await async_client.put(f"/admin/coupons/{created.uid}", json=coupon_payload(usage_limit=2), headers=admin_headers)

        assert response.status_code == 422
        assert response.json()["error_code"] == "usage_limit_below_used_count"
        unchanged = await async_client.get(f"/admin/coupons/{created.uid}", headers=admin_headers)
        assert unchanged.json()["usage_limit"] == 100
        assert unchanged.json()["used_count"] == 5

    async def test_update_checks_default_usage_limit(self, async_client, admin_headers, make_coupon, settings):
        """An omitted limit falls back to the default, which must still cover past uses."""
        created = await make_coupon(used_count=settings.DEFAULT_USAGE_LIMIT + 1, usage_limit=500)
        payload = coupon_payload()
        del payload["usage_limit"]

        response = await async_client.put(f"/admin/coupons/{created.uid}", json=payload, headers=admin_headers)
        assert response.status_code == 422

    async def test_update_limit_equal_to_used_count(self, async_client, admin_headers, make_coupon):
        created = await make_coupon(used_count=5)

        response = await async_client.put(f"/admin/coupons/{created.uid}", json=coupon_payload(usage_limit=5), headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["usage_limit"] == 5

    async def test_response_flags_expired_coupons(self, async_client, admin_headers, make_coupon):
        expired = await make_coupon(code="OLD", expiry_date=utcnow() - timedelta(minutes=1))
        current = await make_coupon(code="NEW")

        old = await async_client.get(f"/admin/coupons/{expired.uid}", headers=admin_headers)
        new = await async_client.get(f"/admin/coupons/{current.uid}", headers=admin_headers)

        assert old.json()["is_expired"] is True
        assert new.json()["is_expired"] is False

    async def test_toggle(self, async_client, admin_headers, make_coupon):
        created = await make_coupon()

        first = await async_client.patch(f"/admin/coupons/{created.uid}/toggle", headers=admin_headers)
        second = await async_client.patch(f"/admin/coupons/{created.uid}/toggle", headers=admin_headers)

        assert first.json()["is_active"] is False
        assert second.json()["is_active"] is True

    async def test_delete(self, async_client, admin_headers, make_coupon):
        created = await make_coupon()

        response = await async_client.delete(f"/admin/coupons/{created.uid}", headers=admin_headers)
        again = await async_client.delete(f"/admin/coupons/{created.uid}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"message": "Coupon deleted successfully"}
        assert again.status_code == 404


class TestCouponStream:
    """Live updates over the websocket."""

    @pytest.fixture
    def stream_settings(self):
        return Settings(
            DATABASE_URL="sqlite+aiosqlite:///:memory:",
            JWT_SECRET="test-secret",
            DB_CREATE_TABLES=True,
            _env_file=None,
        )

    def test_snapshot_then_changes(self, stream_settings):
        token = create_access_token({"email": "admin@swebird.in", "role": "admin"}, stream_settings)
        headers = {"Authorization": f"Bearer {token}"}

        with TestClient(create_app(stream_settings)) as client:
            client.post("/admin/coupons/", json=coupon_payload(code="FIRST"), headers=headers)

            with client.websocket_connect(f"/admin/coupons/stream?token={token}") as ws:
                snapshot = ws.receive_json()
                assert snapshot["type"] == "snapshot"
                assert [c["code"] for c in snapshot["coupons"]] == ["FIRST"]

                client.post("/admin/coupons/", json=coupon_payload(code="SECOND"), headers=headers)
                event = ws.receive_json()
                assert event["type"] == "saved"
                assert event["coupon"]["code"] == "SECOND"

    def test_rejects_non_admin(self, stream_settings):
        token = create_access_token({"email": "customer@example.com", "role": "user"}, stream_settings)

        with TestClient(create_app(stream_settings)) as client:
            with pytest.raises(WebSocketDisconnect):
                with client.websocket_connect(f"/admin/coupons/stream?token={token}") as ws:
                    ws.receive_json()

    def test_rejects_refresh_token(self, stream_settings):
        token = create_access_token({"email": "admin@swebird.in", "role": "admin"}, stream_settings, refresh=True)

        with TestClient(create_app(stream_settings)) as client:
            with pytest.raises(WebSocketDisconnect):
                with client.websocket_connect(f"/admin/coupons/stream?token={token}") as ws:
                    ws.receive_json()

    def test_closes_when_forwarding_fails(self, stream_settings):
        token = create_access_token({"email": "admin@swebird.in", "role": "admin"}, stream_settings)
        headers = {"Authorization": f"Bearer {token}"}

        with TestClient(create_app(stream_settings)) as client:
            with patch("swebird.admin_dashboard.coupons.routes._serialize", side_effect=ValueError("encode failed")):
                with client.websocket_connect(f"/admin/coupons/stream?token={token}") as ws:
                    # empty snapshot, nothing serialized yet
                    assert ws.receive_json() == {"type": "snapshot", "coupons": []}

                    client.post("/admin/coupons/", json=coupon_payload(), headers=headers)
                    with pytest.raises(WebSocketDisconnect) as exc_info:
                        ws.receive_json()

        assert exc_info.value.code == 1011


class TestStreamQueue:
    """Per-connection buffering between the feed and one websocket."""

    def test_overflow_is_reported_not_raised(self):
        queue = asyncio.Queue(maxsize=1)
        on_overflow = MagicMock()
        enqueue = queue_subscriber(queue, on_overflow)

        enqueue("first")
        enqueue("second")

        assert queue.qsize() == 1
        assert queue.get_nowait() == "first"
        on_overflow.assert_called_once()
