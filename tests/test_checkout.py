"""Tests for checkout: pricing, persistence and the multi-store fan-out."""

from decimal import Decimal

from kungfu import Error, Ok
from sqlalchemy import select

from conftest import cart, expect_error, guest_info
from storefront.coupons import DiscountType
from storefront.db import AddressRow, GuestUserRow, OrderRow, UserRow
from storefront.errors import EligibilityFailure, ErrorKind
from storefront.orders import OrderStatus
from storefront.shipping import ShippingType


async def orders_in(s):
    async with s.session_factory() as session:
        return list((await session.execute(select(OrderRow))).scalars().all())


class TestSingleStore:
    def test_flat_rate_total(self, shop, shopper):
        async def scenario(s):
            await s.add_store("A")
            await s.add_product("p1", "A", 100)
            await s.flat_rate("A", rate=25, free_over=499)

            result = await s.orders.create_order(cart(("p1", 2), identity=shopper))

            assert isinstance(result, Ok)
            [order] = await orders_in(s)
            assert order.subtotal == Decimal("200")
            assert order.shipping_fee == Decimal("25")
            assert order.total == Decimal("225")
            assert order.status == OrderStatus.CREATED.value
            assert order.is_coupon_used is False
            assert [(i.product_id, i.quantity, i.price) for i in order.items] == [
                ("p1", 2, Decimal("100"))
            ]

        shop(scenario)

    def test_percentage_coupon_total(self, shop, shopper):
        async def scenario(s):
            await s.add_store("A")
            await s.add_product("p1", "A", 100)
            await s.flat_rate("A", rate=25, free_over=499)
            await s.add_coupon("SAVE10", 10, DiscountType.PERCENTAGE)

            result = await s.orders.create_order(
                cart(("p1", 2), identity=shopper, coupon="save10")
            )

            assert isinstance(result, Ok)
            [order] = await orders_in(s)
            assert order.discount == Decimal("20")
            assert order.total == Decimal("205")
            assert order.is_coupon_used is True
            assert order.coupon_code == "SAVE10"
            assert order.coupon["discountType"] == "percentage"
            assert await s.used_count("SAVE10") == 1

        shop(scenario)

    def test_free_shipping_over_threshold(self, shop, shopper):
        async def scenario(s):
            await s.add_store("A")
            await s.add_product("p1", "A", 250)
            await s.flat_rate("A", rate=25, free_over=499)

            match await s.orders.quote(cart(("p1", 2), identity=shopper)):
                case Ok([quote]):
                    assert quote.shipping_fee == Decimal("0")
                    assert quote.total == Decimal("500")
                case other:
                    raise AssertionError(other)

        shop(scenario)

    def test_quote_writes_nothing(self, shop, shopper):
        async def scenario(s):
            await s.add_store("A")
            await s.add_product("p1", "A", 100)
            await s.add_coupon("SAVE10", 10)

            result = await s.orders.quote(cart(("p1", 1), identity=shopper, coupon="SAVE10"))

            assert isinstance(result, Ok)
            assert await orders_in(s) == []
            assert await s.used_count("SAVE10") == 0

        shop(scenario)

    def test_cod_clears_cart(self, shop, shopper):
        async def scenario(s):
            await s.add_store("A")
            await s.add_product("p1", "A", 10)
            await s.add_user(shopper.uid, email=shopper.email)
            async with s.session_factory() as session:
                user = await session.get(UserRow, shopper.uid)
                user.cart = {"p1": 3}
                await session.commit()

            await s.orders.create_order(cart(("p1", 1), identity=shopper))

            async with s.session_factory() as session:
                assert (await session.get(UserRow, shopper.uid)).cart == {}

        shop(scenario)


class TestMultiStore:
    def test_two_stores_free_shipping(self, shop, shopper):
        async def scenario(s):
            await s.add_store("A")
            await s.add_store("B")
            await s.add_product("p1", "A", 50)
            await s.add_product("p2", "B", 80)
            await s.set_shipping(shipping_type=ShippingType.FREE)

            match await s.orders.create_order(cart(("p1", 1), ("p2", 1), identity=shopper)):
                case Ok(result):
                    assert len(result.order_ids) == 2
                case Error(e):
                    raise AssertionError(e)

            totals = {o.store_id: o.total for o in await orders_in(s)}
            assert totals == {"A": Decimal("50"), "B": Decimal("80")}

        shop(scenario)

    def test_store_scoped_coupon_discounts_only_its_store(self, shop, shopper):
        async def scenario(s):
            await s.add_store("A")
            await s.add_store("B")
            await s.add_product("p1", "A", 50)
            await s.add_product("p2", "B", 80)
            await s.set_shipping(shipping_type=ShippingType.FREE)
            await s.add_coupon("ATEN", 10, DiscountType.FIXED, store_id="A")

            result = await s.orders.create_order(
                cart(("p1", 1), ("p2", 1), identity=shopper, coupon="ATEN")
            )

            assert isinstance(result, Ok)
            by_store = {o.store_id: o for o in await orders_in(s)}
            assert by_store["A"].total == Decimal("40")
            assert by_store["A"].is_coupon_used is True
            assert by_store["B"].total == Decimal("80")
            assert by_store["B"].discount == Decimal("0")
            assert by_store["B"].coupon == {}
            assert await s.used_count("ATEN") == 1

        shop(scenario)

    def test_fixed_discount_clamps_to_store_total(self, shop, shopper):
        async def scenario(s):
            await s.add_store("A")
            await s.add_store("B")
            await s.add_product("p1", "A", 5)
            await s.add_product("p2", "B", 80)
            await s.set_shipping(shipping_type=ShippingType.FREE)
            await s.add_coupon("BIG", 30, DiscountType.FIXED)

            match await s.orders.quote(cart(("p1", 1), ("p2", 1), identity=shopper, coupon="BIG")):
                case Ok(quotes):
                    by_store = {q.store_id: q for q in quotes}
                    assert by_store["A"].discount == Decimal("5")
                    assert by_store["A"].total == Decimal("0")
                    assert by_store["B"].total == Decimal("50")
                case Error(e):
                    raise AssertionError(e)

        shop(scenario)

    def test_per_store_shipping_settings(self, shop, shopper):
        async def scenario(s):
            await s.add_store("A")
            await s.add_store("B")
            await s.add_product("p1", "A", 10)
            await s.add_product("p2", "B", 10)
            await s.flat_rate("A", rate=7)
            await s.set_shipping(
                "B", shipping_type=ShippingType.PER_ITEM, per_item_fee=Decimal("3")
            )

            match await s.orders.quote(cart(("p1", 1), ("p2", 2), identity=shopper)):
                case Ok(quotes):
                    fees = {q.store_id: q.shipping_fee for q in quotes}
                    assert fees == {"A": Decimal("7"), "B": Decimal("6")}
                case Error(e):
                    raise AssertionError(e)

        shop(scenario)


class TestValidation:
    def test_unknown_product_creates_nothing(self, shop, shopper):
        async def scenario(s):
            await s.add_store("A")
            await s.add_product("p1", "A", 10)

            match await s.orders.create_order(cart(("p1", 1), ("nope", 1), identity=shopper)):
                case Error(e):
                    assert e.kind is ErrorKind.NOT_FOUND
                    assert e.details["id"] == "nope"
                case Ok(_):
                    raise AssertionError("expected NOT_FOUND")
            assert await orders_in(s) == []

        shop(scenario)

    def test_unsupported_payment_method(self, shop, shopper):
        async def scenario(s):
            result = await s.orders.create_order(cart(("p1", 1), method="CHEQUE", identity=shopper))
            assert expect_error(result).kind is ErrorKind.INVALID_REQUEST

        shop(scenario)

    def test_empty_cart(self, shop, shopper):
        async def scenario(s):
            result = await s.orders.create_order(cart(identity=shopper))
            assert expect_error(result).kind is ErrorKind.INVALID_REQUEST

        shop(scenario)

    def test_missing_guest_fields(self, shop):
        async def scenario(s):
            guest = guest_info(city="", phone=" ")
            result = await s.orders.create_order(cart(("p1", 1), guest=guest))
            assert expect_error(result).details["missingFields"] == ["phone", "city"]

        shop(scenario)

    def test_foreign_address_is_not_found(self, shop, shopper):
        async def scenario(s):
            await s.add_store("A")
            await s.add_product("p1", "A", 10)
            await s.add_user("someone-else")
            await s.add_address("addr-1", "someone-else")

            result = await s.orders.create_order(
                cart(("p1", 1), identity=shopper, address_id="addr-1")
            )

            assert expect_error(result).kind is ErrorKind.NOT_FOUND
            assert await orders_in(s) == []

        shop(scenario)

    def test_ineligible_coupon_blocks_checkout(self, shop, shopper):
        async def scenario(s):
            await s.add_store("A")
            await s.add_product("p1", "A", 10)
            await s.add_coupon("BIGSPEND", 10, min_price=Decimal("100"))

            result = await s.orders.create_order(
                cart(("p1", 1), identity=shopper, coupon="BIGSPEND")
            )

            assert expect_error(result).failure is EligibilityFailure.BELOW_MINIMUM
            assert await orders_in(s) == []

        shop(scenario)

    def test_cod_disabled(self, shop, shopper):
        async def scenario(s):
            await s.add_store("A")
            await s.add_product("p1", "A", 10)
            await s.set_shipping("A", enable_cod=False)

            result = await s.orders.create_order(cart(("p1", 1), identity=shopper))

            assert expect_error(result).kind is ErrorKind.INVALID_REQUEST

        shop(scenario)


class TestGuestCheckout:
    def test_guest_order_records(self, shop):
        async def scenario(s):
            await s.add_store("A")
            await s.add_product("p1", "A", 30)

            result = await s.orders.create_order(cart(("p1", 1), guest=guest_info()))

            assert isinstance(result, Ok)
            [order] = await orders_in(s)
            assert order.is_guest is True
            assert order.user_id is None
            assert order.guest_email == "a@b.com"
            async with s.session_factory() as session:
                address = await session.get(AddressRow, order.address_id)
                assert address.zip == "000000"
                guest = (
                    await session.execute(select(GuestUserRow))
                ).scalar_one()
                assert guest.account_created is False
                assert len(guest.convert_token) == 64

        shop(scenario)

    def test_guest_confirmation_carries_convert_token(self, shop):
        async def scenario(s):
            await s.add_store("A")
            await s.add_product("p1", "A", 30)

            await s.orders.create_order(cart(("p1", 1), guest=guest_info()))

            [message] = s.notifications.sent
            assert message.to == "a@b.com"
            assert message.subject.startswith("Order Confirmed - #")
            assert "token" in message.body

        shop(scenario)


class TestStripeCheckout:
    def test_session_covers_all_stores(self, shop, shopper):
        async def scenario(s):
            await s.add_store("A")
            await s.add_store("B")
            await s.add_product("p1", "A", 50)
            await s.add_product("p2", "B", 80)
            await s.set_shipping(shipping_type=ShippingType.FREE)

            match await s.orders.create_order(
                cart(("p1", 1), ("p2", 1), method="STRIPE", identity=shopper)
            ):
                case Ok(result):
                    pass
                case Error(e):
                    raise AssertionError(e)

            [(session, request)] = s.payments.created
            assert result.payment_session_id == session.id
            assert result.redirect_url == session.url
            assert request.amount == Decimal("130")
            assert request.currency == "aed"
            assert set(request.metadata["orderIds"].split(",")) == set(result.order_ids)
            assert request.metadata["userId"] == shopper.uid

            orders = await orders_in(s)
            assert {o.payment_session_id for o in orders} == {session.id}
            assert not any(o.is_paid for o in orders)

        shop(scenario)

    def test_unpaid_stripe_orders_are_not_listed(self, shop, shopper):
        async def scenario(s):
            await s.add_store("A")
            await s.add_product("p1", "A", 50)

            await s.orders.create_order(cart(("p1", 1), identity=shopper))
            await s.orders.create_order(cart(("p1", 2), method="STRIPE", identity=shopper))

            listed = await s.orders.list_orders(shopper.uid)
            assert [o.payment_method.value for o in listed] == ["COD"]

        shop(scenario)
