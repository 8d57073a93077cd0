"""
HTTP API tests.

The aiohttp app runs against the in-memory database through
aiohttp.test_utils.TestClient.
"""

from decimal import Decimal

import pytest
from aiohttp.test_utils import TestClient, TestServer

from api.app import create_app
from app.repositories.user_repository import UserRepository

pytestmark = pytest.mark.integration

INTERNAL_TOKEN = "test-internal-token"


@pytest.fixture
async def client(session_maker):
    """Test client for the API."""
    async with TestClient(TestServer(create_app(session_maker))) as client:
        yield client


def as_user(user_id: int, internal: bool = False) -> dict[str, str]:
    """Identity headers forwarded by the gateway."""
    headers = {"X-User-Id": str(user_id)}
    if internal:
        headers["X-Internal-Token"] = INTERNAL_TOKEN
    return headers


class TestHealth:
    """Tests for liveness and readiness."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        """Liveness always answers."""
        resp = await client.get("/health")

        assert resp.status == 200
        assert (await resp.json())["alive"] is True

    @pytest.mark.asyncio
    async def test_readiness_without_scheduler(self, client):
        """Database reachable and no scheduler means ready."""
        resp = await client.get("/readiness")

        body = await resp.json()
        assert resp.status == 200
        assert body["database"] is True
        assert body["scheduler"] == {"enabled": False}


class TestAuthentication:
    """Tests for the identity headers."""

    @pytest.mark.asyncio
    async def test_missing_user_is_401(self, client):
        """Protected routes need X-User-Id."""
        resp = await client.get("/api/referrals/stats")

        assert resp.status == 401
        assert await resp.json() == {
            "status": "error",
            "message": "Authentication required",
            "code": "UNAUTHORIZED",
        }

    @pytest.mark.asyncio
    async def test_internal_endpoint_needs_token(self, client, make_user):
        """track-earning rejects callers without the internal token."""
        user = await make_user()

        resp = await client.post(
            "/api/referrals/track-earning",
            json={"user_id": user.id, "earning_type": "product_sale", "earning_amount": "10"},
            headers=as_user(user.id),
        )

        assert resp.status == 403
        assert (await resp.json())["code"] == "PERMISSION_DENIED"


class TestReferralEndpoints:
    """Tests for the referral routes."""

    @pytest.mark.asyncio
    async def test_signup_and_earning_flow(self, client, session, make_user, make_code, qualify):
        """Track a referral, qualify, report an earning, read stats."""
        referrer = await make_user(username="alice")
        referred = await make_user(username="bob")
        referrer_id, referred_id = referrer.id, referred.id
        await make_code(referrer_id, "PROMO-AB12")

        resp = await client.post(
            "/api/referrals/track-referral",
            json={"referred_user_id": referred_id, "referral_code": "promo-ab12"},
            headers=as_user(referred_id, internal=True),
        )
        assert resp.status == 201
        body = await resp.json()
        assert body["message"] == "Referral tracked successfully"
        assert body["data"]["referral"]["status"] == "pending"

        await qualify(referred_id)
        resp = await client.post(
            "/api/referrals/track-earning",
            json={
                "user_id": referred_id,
                "earning_type": "product_sale",
                "earning_amount": "200",
                "source_transaction_id": "order-1",
                "source_table": "orders",
            },
            headers=as_user(referred_id, internal=True),
        )
        assert resp.status == 200
        data = (await resp.json())["data"]
        assert data["commission_calculated"] is True
        assert data["commission"]["commission_amount"] == "10.00"
        assert data["commission"]["status"] == "paid"

        resp = await client.get("/api/referrals/stats", headers=as_user(referrer_id))
        summary = (await resp.json())["data"]["summary"]
        assert summary["active_referrals"] == 1
        assert summary["conversion_rate"] == "100.0"
        assert summary["total_earnings"]["usd"] == "10.00"

        stored = await UserRepository(session).get_by_id(referrer_id)
        assert stored.usd_balance == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_self_referral_is_400(self, client, make_user, make_code):
        """Domain errors map to their status and code."""
        user = await make_user()
        await make_code(user.id, "PROMO-SELF")

        resp = await client.post(
            "/api/referrals/track-referral",
            json={"referred_user_id": user.id, "referral_code": "PROMO-SELF"},
            headers=as_user(user.id, internal=True),
        )

        assert resp.status == 400
        assert await resp.json() == {
            "status": "error",
            "message": "Cannot refer yourself",
            "code": "SELF_REFERRAL",
        }

    @pytest.mark.asyncio
    async def test_validate_unknown_code_is_404(self, client):
        """Unknown codes are 404 INVALID_CODE."""
        resp = await client.post(
            "/api/referrals/validate-code", json={"code": "NOPE-0000"}
        )

        assert resp.status == 404
        assert (await resp.json())["code"] == "INVALID_CODE"

    @pytest.mark.asyncio
    async def test_invalid_earning_type_is_422(self, client, make_user):
        """Schema errors are 422."""
        user = await make_user()

        resp = await client.post(
            "/api/referrals/track-earning",
            json={"user_id": user.id, "earning_type": "tips", "earning_amount": "10"},
            headers=as_user(user.id, internal=True),
        )

        assert resp.status == 422
        assert (await resp.json())["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_my_code_and_affiliate_link(self, client, make_user):
        """Code and affiliate links are created on demand."""
        user = await make_user()

        resp = await client.get("/api/referrals/my-code", headers=as_user(user.id))
        code = (await resp.json())["data"]["code"]

        resp = await client.get(
            "/api/referrals/affiliate-link",
            params={"store_id": "7"},
            headers=as_user(user.id),
        )
        data = (await resp.json())["data"]
        assert data["referral_code"] == code
        assert data["type"] == "store"
        assert data["affiliate_link"].endswith(f"/store/7?ref={code}")

    @pytest.mark.asyncio
    async def test_tiers_listing(self, client, tiers):
        """Tier rates are serialized as strings."""
        resp = await client.get("/api/referrals/tiers")

        listed = (await resp.json())["data"]["tiers"]
        assert [t["tier_name"] for t in listed][0] == "Bronze"
        assert Decimal(listed[0]["commission_rate"]) == Decimal("0.05")


class TestTeamEndpoints:
    """Tests for the advertiser team routes."""

    @pytest.mark.asyncio
    async def test_invite_and_accept(self, client, make_user):
        """Owner invites, invitee accepts, roster shows both."""
        owner = await make_user()
        invitee = await make_user(email="carol@example.com")

        resp = await client.post(
            "/api/advertisers/accounts",
            json={"name": "Acme Coffee"},
            headers=as_user(owner.id),
        )
        assert resp.status == 201
        account_id = (await resp.json())["data"]["account"]["id"]

        resp = await client.post(
            f"/api/advertisers/{account_id}/team/invite",
            json={"email": "carol@example.com", "role": "viewer"},
            headers=as_user(owner.id),
        )
        assert resp.status == 201
        token = (await resp.json())["data"]["invitation"]["token"]

        resp = await client.post(
            f"/api/advertisers/invitations/{token}/accept",
            headers=as_user(invitee.id),
        )
        assert resp.status == 200
        assert (await resp.json())["data"]["role"] == "viewer"

        resp = await client.get(
            f"/api/advertisers/{account_id}/team", headers=as_user(invitee.id)
        )
        members = (await resp.json())["data"]["members"]
        assert [m["role"] for m in members] == ["owner", "viewer"]

    @pytest.mark.asyncio
    async def test_viewer_cannot_invite(self, client, make_user, make_account, team_service):
        """Admin-gated routes return 403 with the reason."""
        owner = await make_user()
        viewer = await make_user(email="viewer@example.com")
        account = await make_account(owner.id)
        invite = await team_service.create_invitation(
            account.id, "viewer@example.com", "viewer", invited_by=owner.id
        )
        await team_service.accept_invitation(invite["invitation"].token, viewer.id)

        resp = await client.post(
            f"/api/advertisers/{account.id}/team/invite",
            json={"email": "x@example.com", "role": "viewer"},
            headers=as_user(viewer.id),
        )

        assert resp.status == 403
        assert (await resp.json())["message"] == "Requires admin role or higher"

    @pytest.mark.asyncio
    async def test_unknown_invitation_is_404(self, client):
        """Unknown tokens are 404."""
        resp = await client.get("/api/advertisers/invitations/unknown")

        assert resp.status == 404


class TestCouponEndpoints:
    """Tests for the coupon routes."""

    @pytest.mark.asyncio
    async def test_apply_then_redeem(self, client, make_user, make_coupon):
        """Apply prices the cart; with an order id it also redeems."""
        user = await make_user()
        await make_coupon("SAVE10")
        cart = {"code": "save10", "subtotal_usd": "49.99"}

        resp = await client.post("/api/coupons/apply", json=cart, headers=as_user(user.id))
        data = (await resp.json())["data"]
        assert data["discount"]["usd"] == "5.00"
        assert data["final_total"]["usd"] == "44.99"
        assert "usage_id" not in data

        resp = await client.post(
            "/api/coupons/apply",
            json={**cart, "order_id": "order-1"},
            headers=as_user(user.id),
        )
        assert "usage_id" in (await resp.json())["data"]

        resp = await client.post(
            "/api/coupons/apply",
            json={**cart, "order_id": "order-2"},
            headers=as_user(user.id),
        )
        assert resp.status == 400
        assert (await resp.json())["code"] == "COUPON_USER_LIMIT"

    @pytest.mark.asyncio
    async def test_create_and_delete(self, client, make_user):
        """Creator can create and deactivate a coupon."""
        user = await make_user()

        resp = await client.post(
            "/api/coupons",
            json={"code": "spring", "discount_type": "fixed_usd", "discount_value": "5"},
            headers=as_user(user.id),
        )
        assert resp.status == 201
        coupon_id = (await resp.json())["data"]["coupon"]["id"]

        resp = await client.delete(f"/api/coupons/{coupon_id}", headers=as_user(user.id))
        assert resp.status == 200

        resp = await client.post(
            "/api/coupons/validate", json={"code": "SPRING"}, headers=as_user(user.id)
        )
        assert resp.status == 400
        assert (await resp.json())["code"] == "COUPON_INACTIVE"
