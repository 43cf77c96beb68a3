"""Tests for the FastAPI API."""

import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from conftest import open_shop
from storefront._types import utcnow
from storefront.config import EngineConfig
from storefront.identity import Identity, StaticTokenVerifier
from storefront.notify import LoggingNotificationSink
from storefront.payments import SimulatedPaymentProvider
from storefront.web import create_app

SHOPPER = {"Authorization": "Bearer shopper-token"}
OWNER = {"Authorization": "Bearer owner-token"}
CONVERTED = {"Authorization": "Bearer converted-token"}
ANONYMOUS = {"Authorization": "Bearer anonymous-token"}

GUEST = {
    "name": "Ada Guest",
    "email": "a@b.com",
    "phone": "+971500000000",
    "street": "1 Guest Rd",
    "city": "Dubai",
    "state": "Dubai",
    "country": "AE",
}


async def seed(url):
    async with open_shop(url) as s:
        await s.add_store("A", owner_id="owner-a")
        await s.add_store("B", owner_id="owner-b")
        await s.add_product("p1", "A", 100)
        await s.add_product("p2", "B", 80)
        await s.flat_rate("A", rate=25, free_over=499)
        await s.add_coupon("SAVE10", 10)


@pytest.fixture
def payments():
    return SimulatedPaymentProvider()


@pytest.fixture
def api_client(db_url, payments):
    """Test client over a seeded database with two stores."""
    asyncio.run(seed(db_url))
    verifier = StaticTokenVerifier(
        {
            "shopper-token": Identity("u1", email="u1@example.com", name="Uma"),
            "owner-token": Identity("owner-a", email="owner@example.com"),
            "converted-token": Identity("u2", email="a@b.com", phone="+971500000000"),
            "anonymous-token": Identity("u3"),
        }
    )
    app = create_app(
        EngineConfig(database_url=db_url),
        verifier=verifier,
        payments=payments,
        notifications=LoggingNotificationSink(),
    )
    with TestClient(app) as client:
        yield client


def place(client, *items, headers=SHOPPER, **body):
    payload = {
        "items": [{"productId": p, "quantity": q} for p, q in items],
        "paymentMethod": "COD",
    }
    payload.update(body)
    return client.post("/api/orders", json=payload, headers=headers)


class TestAuth:
    def test_missing_credential(self, api_client):
        response = place(api_client, ("p1", 1), headers={})
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    def test_invalid_credential(self, api_client):
        response = api_client.get("/api/orders", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_malformed_header(self, api_client):
        response = api_client.get("/api/orders", headers={"Authorization": "Basic abc"})
        assert response.status_code == 401


class TestOrders:
    def test_place_order(self, api_client):
        response = place(api_client, ("p1", 2))
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Orders Placed Successfully"
        assert len(data["orderIds"]) == 1
        assert data["redirectUrl"] is None

        listed = api_client.get("/api/orders", headers=SHOPPER).json()["orders"]
        assert [Decimal(o["total"]) for o in listed] == [Decimal("225")]
        assert listed[0]["status"] == "ORDER_PLACED"
        assert listed[0]["items"][0]["productId"] == "p1"

    def test_place_order_with_coupon(self, api_client):
        response = place(api_client, ("p1", 2), couponCode="save10")
        assert response.status_code == 200
        [order] = api_client.get("/api/orders", headers=SHOPPER).json()["orders"]
        assert Decimal(order["discount"]) == Decimal("20")
        assert Decimal(order["total"]) == Decimal("205")
        assert order["isCouponUsed"] is True
        assert order["coupon"]["code"] == "SAVE10"

    def test_stripe_returns_redirect(self, api_client, payments):
        response = place(api_client, ("p1", 1), ("p2", 1), paymentMethod="STRIPE")
        data = response.json()
        assert len(data["orderIds"]) == 2
        [(session, request)] = payments.created
        assert data["redirectUrl"] == session.url
        assert data["sessionId"] == session.id
        assert request.amount == Decimal("210")

    def test_payment_provider_down(self, api_client, payments):
        payments.fail_next = True
        response = place(api_client, ("p1", 1), paymentMethod="STRIPE")
        assert response.status_code == 502
        assert response.json()["error"] == "external"

    def test_unknown_product(self, api_client):
        response = place(api_client, ("ghost", 1))
        assert response.status_code == 404
        assert response.json()["details"]["id"] == "ghost"

    def test_bad_payment_method(self, api_client):
        response = place(api_client, ("p1", 1), paymentMethod="BARTER")
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    def test_guest_order_without_credential(self, api_client):
        response = place(api_client, ("p1", 1), headers={}, isGuest=True, guestInfo=GUEST)
        assert response.status_code == 200

    def test_guest_order_missing_fields(self, api_client):
        response = place(
            api_client, ("p1", 1), headers={}, isGuest=True, guestInfo={"email": "a@b.com"}
        )
        assert response.status_code == 400
        assert "name" in response.json()["details"]["missingFields"]

    def test_quote(self, api_client):
        response = api_client.post(
            "/api/orders/quote",
            json={"items": [{"productId": "p1", "quantity": 2}], "paymentMethod": "COD"},
            headers=SHOPPER,
        )
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["total"]) == Decimal("225")
        assert data["stores"][0]["storeId"] == "A"
        assert Decimal(data["stores"][0]["shippingFee"]) == Decimal("25")

    def test_confirm_before_paying_is_refused(self, api_client):
        session_id = place(api_client, ("p1", 1), paymentMethod="STRIPE").json()["sessionId"]

        response = api_client.post("/api/payments/confirm", json={"sessionId": session_id})

        assert response.status_code == 409
        assert response.json()["details"]["status"] == "unpaid"
        assert api_client.get("/api/orders", headers=SHOPPER).json()["orders"] == []

    def test_confirm_payment(self, api_client, payments):
        session_id = place(api_client, ("p1", 1), paymentMethod="STRIPE").json()["sessionId"]
        assert api_client.get("/api/orders", headers=SHOPPER).json()["orders"] == []
        payments.pay(session_id)

        response = api_client.post("/api/payments/confirm", json={"sessionId": session_id})

        assert response.status_code == 200
        assert len(response.json()["orderIds"]) == 1
        [order] = api_client.get("/api/orders", headers=SHOPPER).json()["orders"]
        assert order["isPaid"] is True


class TestOrderStatus:
    def test_owner_ships_order(self, api_client):
        [order_id] = place(api_client, ("p1", 1)).json()["orderIds"]

        response = api_client.patch(
            f"/api/store/orders/{order_id}/status",
            json={"status": "SHIPPED", "trackingId": "TRK1", "courier": "DHL"},
            headers=OWNER,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "SHIPPED"
        assert response.json()["trackingId"] == "TRK1"

    def test_unknown_status(self, api_client):
        [order_id] = place(api_client, ("p1", 1)).json()["orderIds"]
        response = api_client.patch(
            f"/api/store/orders/{order_id}/status", json={"status": "LOST"}, headers=OWNER
        )
        assert response.status_code == 400

    def test_not_a_store_owner(self, api_client):
        [order_id] = place(api_client, ("p1", 1)).json()["orderIds"]
        response = api_client.patch(
            f"/api/store/orders/{order_id}/status", json={"status": "SHIPPED"}, headers=SHOPPER
        )
        assert response.status_code == 401

    def test_order_of_another_store(self, api_client):
        [order_id] = place(api_client, ("p2", 1)).json()["orderIds"]
        response = api_client.patch(
            f"/api/store/orders/{order_id}/status", json={"status": "SHIPPED"}, headers=OWNER
        )
        assert response.status_code == 404


class TestCoupons:
    def test_check_coupon(self, api_client):
        response = api_client.post(
            "/api/coupon",
            json={"code": "save10", "cartTotal": 200, "productIds": ["p1"]},
            headers=SHOPPER,
        )
        assert response.status_code == 200
        coupon = response.json()["coupon"]
        assert coupon["code"] == "SAVE10"
        assert coupon["discountType"] == "percentage"

    def test_check_unknown_coupon(self, api_client):
        response = api_client.post("/api/coupon", json={"code": "NOPE"}, headers=SHOPPER)
        assert response.status_code == 404

    def test_check_requires_credential(self, api_client):
        response = api_client.post("/api/coupon", json={"code": "SAVE10"})
        assert response.status_code == 401

    def test_owner_manages_coupons(self, api_client):
        expires = (utcnow() + timedelta(days=5)).isoformat()
        created = api_client.post(
            "/api/store/coupon",
            json={"code": "store5", "discount": 5, "discountType": "fixed", "expiresAt": expires},
            headers=OWNER,
        )
        assert created.status_code == 201
        assert created.json()["storeId"] == "A"

        duplicate = api_client.post(
            "/api/store/coupon",
            json={"code": "STORE5", "discount": 5, "discountType": "fixed", "expiresAt": expires},
            headers=OWNER,
        )
        assert duplicate.status_code == 409

        updated = api_client.put(
            "/api/store/coupon/store5",
            json={"code": "STORE5", "discount": 7, "discountType": "fixed", "expiresAt": expires},
            headers=OWNER,
        )
        assert Decimal(updated.json()["discount"]) == Decimal("7")

        listed = api_client.get("/api/store/coupon", headers=OWNER).json()["coupons"]
        assert [c["code"] for c in listed] == ["STORE5"]

        deleted = api_client.delete("/api/store/coupon/STORE5", headers=OWNER)
        assert deleted.status_code == 200
        assert api_client.get("/api/store/coupon", headers=OWNER).json()["coupons"] == []

    def test_shopper_cannot_manage_coupons(self, api_client):
        response = api_client.get("/api/store/coupon", headers=SHOPPER)
        assert response.status_code == 401


class TestShipping:
    def test_read_store_settings(self, api_client):
        setting = api_client.get("/api/shipping", params={"storeId": "A"}).json()["setting"]
        assert Decimal(setting["flatRate"]) == Decimal("25")
        assert setting["shippingType"] == "FLAT_RATE"
        assert setting["enableCOD"] is True

    def test_owner_saves_own_store(self, api_client):
        response = api_client.put(
            "/api/shipping",
            json={"shippingType": "PER_ITEM", "perItemFee": 3, "enableCOD": False},
            headers=OWNER,
        )
        assert response.status_code == 200

        setting = api_client.get("/api/shipping", params={"storeId": "A"}).json()["setting"]
        assert setting["shippingType"] == "PER_ITEM"
        assert setting["enableCOD"] is False
        other = api_client.get("/api/shipping", params={"storeId": "B"}).json()["setting"]
        assert other["shippingType"] == "FLAT_RATE"

        response = place(api_client, ("p1", 1))
        assert response.status_code == 400

    def test_shopper_cannot_save(self, api_client):
        response = api_client.put("/api/shipping", json={}, headers=SHOPPER)
        assert response.status_code == 401


class TestLinkGuestOrders:
    def link(self, client, headers, **body):
        return client.post("/api/user/link-guest-orders", json=body, headers=headers)

    def test_link_then_relink(self, api_client):
        place(api_client, ("p1", 1), headers={}, isGuest=True, guestInfo=GUEST)

        first = self.link(api_client, CONVERTED)
        second = self.link(api_client, CONVERTED, email="A@B.com")

        assert first.json()["linked"] is True
        assert first.json()["count"] == 1
        assert second.status_code == 200
        assert second.json()["linked"] is False
        assert len(api_client.get("/api/orders", headers=CONVERTED).json()["orders"]) == 1

    def test_link_by_verified_phone(self, api_client):
        place(api_client, ("p1", 1), headers={}, isGuest=True, guestInfo=GUEST)

        response = self.link(api_client, CONVERTED, phone=GUEST["phone"])

        assert response.json()["count"] == 1

    def test_cannot_claim_someone_elses_email(self, api_client):
        place(api_client, ("p1", 1), headers={}, isGuest=True, guestInfo=GUEST)

        response = self.link(api_client, SHOPPER, email="a@b.com")

        assert response.status_code == 401
        assert api_client.get("/api/orders", headers=SHOPPER).json()["orders"] == []
        assert self.link(api_client, CONVERTED).json()["linked"] is True

    def test_cannot_claim_someone_elses_phone(self, api_client):
        place(api_client, ("p1", 1), headers={}, isGuest=True, guestInfo=GUEST)

        response = self.link(api_client, SHOPPER, phone=GUEST["phone"])

        assert response.status_code == 401
        assert api_client.get("/api/orders", headers=SHOPPER).json()["orders"] == []

    def test_contact_required(self, api_client):
        response = self.link(api_client, ANONYMOUS)
        assert response.status_code == 400
