"""Pytest fixtures for storefront tests."""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

import pytest
from kungfu import Error, Ok

from storefront._types import utcnow
from storefront.catalog import Catalog
from storefront.config import EngineConfig
from storefront.coupons import CouponBook, DiscountType, SqlOrderHistory
from storefront.db import (
    AddressRow,
    CouponRow,
    ProductRow,
    SessionFactory,
    StoreRow,
    UserRow,
    create_database,
)
from storefront.guests import GuestLinker
from storefront.identity import Identity
from storefront.notify import render
from storefront.orders import CheckoutRequest, GuestInfo, OrderAssembler
from storefront.partition import LineItem
from storefront.payments import SimulatedPaymentProvider
from storefront.shipping import DEFAULT_SCOPE, ShippingBook, ShippingSetting, ShippingType


class RecordingSink:
    """Keeps every rendered message."""

    def __init__(self):
        self.sent = []

    async def send(self, notification):
        self.sent.append(render(notification))


@dataclass
class Shop:
    """Engine services over one test database, plus seeding helpers."""

    session_factory: SessionFactory
    config: EngineConfig
    catalog: Catalog
    coupons: CouponBook
    history: SqlOrderHistory
    shipping: ShippingBook
    payments: SimulatedPaymentProvider
    notifications: RecordingSink
    orders: OrderAssembler
    guests: GuestLinker

    async def add_user(self, user_id, email="", name=""):
        async with self.session_factory() as session:
            session.add(UserRow(id=user_id, name=name, email=email, image="", cart={}))
            await session.commit()

    async def add_store(self, store_id, owner_id=None):
        owner_id = owner_id or f"owner-{store_id}"
        async with self.session_factory() as session:
            if await session.get(UserRow, owner_id) is None:
                session.add(UserRow(id=owner_id, name=owner_id, email="", image="", cart={}))
                await session.flush()
            session.add(StoreRow(id=store_id, name=store_id, owner_id=owner_id))
            await session.commit()
        return owner_id

    async def add_product(self, product_id, store_id, price, name=None):
        async with self.session_factory() as session:
            session.add(
                ProductRow(
                    id=product_id,
                    store_id=store_id,
                    name=name or product_id,
                    slug=product_id,
                    price=Decimal(str(price)),
                    mrp=Decimal(str(price)),
                )
            )
            await session.commit()

    async def add_address(self, address_id, user_id):
        async with self.session_factory() as session:
            session.add(
                AddressRow(
                    id=address_id,
                    user_id=user_id,
                    name="Home",
                    email="home@example.com",
                    phone="555",
                    street="1 Main St",
                    city="Dubai",
                    state="Dubai",
                    zip="00000",
                    country="AE",
                )
            )
            await session.commit()

    async def add_coupon(self, code, discount, discount_type=DiscountType.PERCENTAGE, **fields):
        fields.setdefault("expires_at", utcnow() + timedelta(days=30))
        async with self.session_factory() as session:
            session.add(
                CouponRow(
                    code=code,
                    discount=Decimal(str(discount)),
                    discount_type=discount_type.value,
                    description=fields.pop("description", ""),
                    used_count=fields.pop("used_count", 0),
                    specific_products=fields.pop("specific_products", []),
                    **fields,
                )
            )
            await session.commit()

    async def used_count(self, code):
        async with self.session_factory() as session:
            row = await session.get(CouponRow, code)
            return row.used_count

    async def set_shipping(self, scope=DEFAULT_SCOPE, **changes):
        return await self.shipping.save(ShippingSetting().with_changes(**changes), scope)

    async def flat_rate(self, scope=DEFAULT_SCOPE, rate=25, free_over=499):
        return await self.set_shipping(
            scope,
            shipping_type=ShippingType.FLAT_RATE,
            flat_rate=Decimal(str(rate)),
            free_shipping_min=Decimal(str(free_over)),
        )


@asynccontextmanager
async def open_shop(url, config=None, **engine_options):
    cfg = config or EngineConfig(database_url=url)
    session_factory, engine = await create_database(url, **engine_options)
    catalog = Catalog(session_factory)
    coupons = CouponBook(session_factory)
    history = SqlOrderHistory(session_factory)
    shipping = ShippingBook(session_factory)
    payments = SimulatedPaymentProvider()
    notifications = RecordingSink()
    try:
        yield Shop(
            session_factory=session_factory,
            config=cfg,
            catalog=catalog,
            coupons=coupons,
            history=history,
            shipping=shipping,
            payments=payments,
            notifications=notifications,
            orders=OrderAssembler(
                session_factory,
                payments=payments,
                notifications=notifications,
                config=cfg,
                history=history,
                catalog=catalog,
                coupons=coupons,
                shipping=shipping,
            ),
            guests=GuestLinker(session_factory),
        )
    finally:
        await engine.dispose()


def expect_ok(result):
    match result:
        case Ok(value):
            return value
        case Error(e):
            raise AssertionError(f"expected Ok, got {e}")


def expect_error(result):
    match result:
        case Error(e):
            return e
        case Ok(value):
            raise AssertionError(f"expected Error, got {value!r}")


def cart(*lines, method="COD", identity=None, guest=None, coupon=None, **extra):
    """CheckoutRequest from (product_id, quantity) pairs."""
    return CheckoutRequest(
        items=tuple(LineItem(product_id, quantity) for product_id, quantity in lines),
        payment_method=method,
        identity=identity,
        guest=guest,
        coupon_code=coupon,
        **extra,
    )


def guest_info(email="a@b.com", **changes):
    fields = dict(
        name="Ada Guest",
        email=email,
        phone="+971500000000",
        address="1 Guest Rd",
        city="Dubai",
        state="Dubai",
        country="AE",
        zip="",
    )
    fields.update(changes)
    return GuestInfo(**fields)


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}"


@pytest.fixture
def shopper():
    return Identity("u1", email="u1@example.com", name="Uma")


@pytest.fixture
def member():
    return Identity("m1", email="m1@example.com", name="Max", plan="plus")


@pytest.fixture
def shop(db_url):
    """Run an async scenario against a fresh shop: shop(lambda s: ...)."""

    def run(scenario, config=None, **engine_options):
        async def main():
            async with open_shop(db_url, config, **engine_options) as s:
                return await scenario(s)

        return asyncio.run(main())

    return run
