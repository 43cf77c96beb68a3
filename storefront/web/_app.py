"""
HTTP surface — FastAPI app over the engine.

Every handler decodes with to_domain(), calls one engine operation and
encodes with from_domain(). Error(...) results are raised as EngineFailure
and mapped to a status code by one exception handler.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Annotated, Any
from collections.abc import AsyncIterator

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse
from kungfu import Result, Ok, Error

from storefront.catalog import Catalog
from storefront.config import EngineConfig, configure_logging
from storefront.coupons import CouponBook, CustomerRef, SqlOrderHistory, evaluate
from storefront.db import SessionFactory, create_database
from storefront.errors import EngineError, EngineFailure, ErrorKind, Errors
from storefront.guests import GuestLinker
from storefront.identity import Identity, IdentityVerifier, StaticTokenVerifier
from storefront.notify import LoggingNotificationSink, NotificationSink
from storefront.orders import OrderAssembler
from storefront.payments import PaymentProvider, SimulatedPaymentProvider
from storefront.shipping import ShippingBook
from storefront.web._codecs import (
    CheckoutIn,
    CheckoutOut,
    CouponCheckIn,
    CouponCheckOut,
    CouponIn,
    CouponListOut,
    CouponOut,
    ErrorOut,
    LinkIn,
    LinkOut,
    OrderListOut,
    OrderOut,
    PaymentConfirmIn,
    PaymentConfirmOut,
    QuoteOut,
    ShippingOut,
    ShippingSettingWire,
    StatusIn,
)

logger = logging.getLogger(__name__)

STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.ELIGIBILITY: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.EXTERNAL: 502,
}


def unwrap[T](result: Result[T, EngineError]) -> T:
    match result:
        case Ok(value):
            return value
        case Error(e):
            raise EngineFailure(e)


# ═══════════════════════════════════════════════════════════════════════════════
# Engine — everything a request needs
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True)
class Engine:
    config: EngineConfig
    catalog: Catalog
    coupons: CouponBook
    history: SqlOrderHistory
    shipping: ShippingBook
    orders: OrderAssembler
    guests: GuestLinker

    @classmethod
    def build(
        cls,
        session_factory: SessionFactory,
        config: EngineConfig,
        payments: PaymentProvider,
        notifications: NotificationSink,
    ) -> Engine:
        catalog = Catalog(session_factory)
        coupons = CouponBook(session_factory)
        history = SqlOrderHistory(session_factory)
        shipping = ShippingBook(session_factory)
        return cls(
            config=config,
            catalog=catalog,
            coupons=coupons,
            history=history,
            shipping=shipping,
            orders=OrderAssembler(
                session_factory,
                payments=payments,
                notifications=notifications,
                config=config,
                history=history,
                catalog=catalog,
                coupons=coupons,
                shipping=shipping,
            ),
            guests=GuestLinker(session_factory),
        )


def _engine(request: Request) -> Engine:
    return request.app.state.engine  # type: ignore[no-any-return]


async def _optional_identity(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> Identity | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise EngineFailure(Errors.unauthorized("not authorized"))
    verifier: IdentityVerifier = request.app.state.verifier
    return unwrap(await verifier.verify(token.strip()))


async def _identity(
    identity: Annotated[Identity | None, Depends(_optional_identity)],
) -> Identity:
    if identity is None:
        raise EngineFailure(Errors.unauthorized("not authorized"))
    return identity


async def _owned_store(
    identity: Annotated[Identity, Depends(_identity)],
    engine: Annotated[Engine, Depends(_engine)],
) -> str:
    return unwrap(await engine.catalog.store_owned_by(identity.uid))


EngineDep = Annotated[Engine, Depends(_engine)]
IdentityDep = Annotated[Identity, Depends(_identity)]
MaybeIdentityDep = Annotated[Identity | None, Depends(_optional_identity)]
StoreDep = Annotated[str, Depends(_owned_store)]


# ═══════════════════════════════════════════════════════════════════════════════
# App
# ═══════════════════════════════════════════════════════════════════════════════


def create_app(
    config: EngineConfig | None = None,
    *,
    verifier: IdentityVerifier | None = None,
    payments: PaymentProvider | None = None,
    notifications: NotificationSink | None = None,
) -> FastAPI:
    """
    Build the app. Tables are created on startup from config.database_url.

        app = create_app(EngineConfig.from_env(), verifier=my_verifier)
    """
    cfg = config or EngineConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(cfg.log_level)
        session_factory, db_engine = await create_database(cfg.database_url)
        app.state.engine = Engine.build(
            session_factory,
            cfg,
            payments or SimulatedPaymentProvider(),
            notifications or LoggingNotificationSink(),
        )
        logger.info("storefront engine ready on %s", cfg.database_url)
        try:
            yield
        finally:
            await db_engine.dispose()

    app = FastAPI(title="storefront", lifespan=lifespan)
    app.state.verifier = verifier or StaticTokenVerifier()

    @app.exception_handler(EngineFailure)
    async def engine_failure_handler(request: Request, exc: EngineFailure) -> JSONResponse:
        error = exc.error
        status_code = STATUS_CODES.get(error.kind, 500)
        if status_code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, error)
        body = ErrorOut(error=error.kind.value, message=error.message, details=error.details)
        return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))

    _mount_routes(app)
    return app


def _mount_routes(app: FastAPI) -> None:
    # ── Orders ────────────────────────────────────────────────────────────────

    @app.post("/api/orders", response_model=CheckoutOut)
    async def create_order(
        body: CheckoutIn, engine: EngineDep, identity: MaybeIdentityDep
    ) -> CheckoutOut:
        if not body.is_guest and identity is None:
            raise EngineFailure(Errors.unauthorized("not authorized"))
        request = body.to_domain(None if body.is_guest else identity)
        return CheckoutOut.from_domain(unwrap(await engine.orders.create_order(request)))

    @app.post("/api/orders/quote", response_model=QuoteOut)
    async def quote_order(
        body: CheckoutIn, engine: EngineDep, identity: MaybeIdentityDep
    ) -> QuoteOut:
        request = body.to_domain(None if body.is_guest else identity)
        return QuoteOut.from_domain(unwrap(await engine.orders.quote(request)))

    @app.get("/api/orders", response_model=OrderListOut)
    async def list_orders(engine: EngineDep, identity: IdentityDep) -> OrderListOut:
        orders = await engine.orders.list_orders(identity.uid)
        return OrderListOut(orders=[OrderOut.from_domain(o) for o in orders])

    @app.patch("/api/store/orders/{order_id}/status", response_model=OrderOut)
    async def update_order_status(
        order_id: str, body: StatusIn, engine: EngineDep, store_id: StoreDep
    ) -> OrderOut:
        status, tracking = body.to_domain()
        if status is None:
            raise EngineFailure(Errors.invalid_request("unknown status", status=body.status))
        order = unwrap(await engine.orders.update_status(store_id, order_id, status, tracking))
        return OrderOut.from_domain(order)

    @app.post("/api/payments/confirm", response_model=PaymentConfirmOut)
    async def confirm_payment(body: PaymentConfirmIn, engine: EngineDep) -> PaymentConfirmOut:
        order_ids = unwrap(await engine.orders.confirm_payment(body.session_id))
        return PaymentConfirmOut(order_ids=list(order_ids))

    # ── Coupons ───────────────────────────────────────────────────────────────

    @app.post("/api/coupon", response_model=CouponCheckOut)
    async def check_coupon(
        body: CouponCheckIn, engine: EngineDep, identity: IdentityDep
    ) -> CouponCheckOut:
        coupon = unwrap(
            await evaluate(
                body.code,
                cart_total=body.cart_total,
                product_ids=body.product_ids,
                store_id=body.store_id,
                customer=CustomerRef.user(identity.uid),
                is_plus_member=identity.is_plus_member,
                book=engine.coupons,
                history=engine.history,
            )
        )
        return CouponCheckOut(coupon=CouponOut.from_domain(coupon))

    @app.get("/api/store/coupon", response_model=CouponListOut)
    async def list_coupons(engine: EngineDep, store_id: StoreDep) -> CouponListOut:
        coupons = await engine.coupons.list_for_store(store_id)
        return CouponListOut(coupons=[CouponOut.from_domain(c) for c in coupons])

    @app.post("/api/store/coupon", response_model=CouponOut, status_code=201)
    async def create_coupon(body: CouponIn, engine: EngineDep, store_id: StoreDep) -> CouponOut:
        return CouponOut.from_domain(unwrap(await engine.coupons.create(store_id, body.to_domain())))

    @app.put("/api/store/coupon/{code}", response_model=CouponOut)
    async def update_coupon(
        code: str, body: CouponIn, engine: EngineDep, store_id: StoreDep
    ) -> CouponOut:
        coupon = unwrap(await engine.coupons.update(store_id, code, body.to_domain()))
        return CouponOut.from_domain(coupon)

    @app.delete("/api/store/coupon/{code}")
    async def delete_coupon(code: str, engine: EngineDep, store_id: StoreDep) -> dict[str, Any]:
        unwrap(await engine.coupons.delete(store_id, code))
        return {"message": "Coupon deleted"}

    # ── Shipping ──────────────────────────────────────────────────────────────

    @app.get("/api/shipping", response_model=ShippingOut)
    async def get_shipping(
        engine: EngineDep,
        store_id: Annotated[str | None, Query(alias="storeId")] = None,
    ) -> ShippingOut:
        setting = await engine.shipping.resolve(store_id)
        return ShippingOut(setting=ShippingSettingWire.from_domain(setting))

    @app.put("/api/shipping", response_model=ShippingOut)
    async def save_shipping(
        body: ShippingSettingWire, engine: EngineDep, store_id: StoreDep
    ) -> ShippingOut:
        setting = await engine.shipping.save(body.to_domain(), scope=store_id)
        return ShippingOut(setting=ShippingSettingWire.from_domain(setting))

    # ── Guests ────────────────────────────────────────────────────────────────

    @app.post("/api/user/link-guest-orders", response_model=LinkOut)
    async def link_guest_orders(body: LinkIn, engine: EngineDep, identity: IdentityDep) -> LinkOut:
        email = _own_contact(body.email, identity.email, "email", casefold=True)
        phone = _own_contact(body.phone, identity.phone, "phone")
        result = await engine.guests.link(identity.uid, email=email, phone=phone)
        return LinkOut.from_domain(unwrap(result))


def _own_contact(
    given: str | None, verified: str | None, field: str, *, casefold: bool = False
) -> str | None:
    """
    Contact to match guest orders by. Defaults to the verified identity's;
    a different value in the body is someone else's and is refused.
    """
    given = (given or "").strip() or None
    verified = (verified or "").strip() or None
    if given is None:
        return verified
    same = (
        verified is not None
        and (given.casefold() == verified.casefold() if casefold else given == verified)
    )
    if not same:
        raise EngineFailure(Errors.unauthorized(f"{field} does not belong to this account"))
    return given


__all__ = ("STATUS_CODES", "Engine", "create_app", "unwrap")
