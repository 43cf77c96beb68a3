"""
Order assembler — checkout, price preview, order listing and lifecycle.

Checkout:
    1. validate payment method + items, guest fields
    2. price through the graph (partition → coupon ∥ shipping → quote)
    3. one transaction for every store, as a saga:
           persist ─► payment session (STRIPE only) ─► commit
       compensators: rollback, expire session
    4. notify, best-effort, after commit
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from kungfu import Result, Ok, Error
from combinators import lift as L

from storefront import saga as S
from storefront._types import ZERO, utcnow
from storefront.catalog import Catalog
from storefront.config import EngineConfig
from storefront.coupons import (
    CouponBook,
    CustomerRef,
    OrderHistory,
    SqlOrderHistory,
    reserve_usage,
)
from storefront.db import (
    AddressRow,
    GuestUserRow,
    OrderItemRow,
    OrderRow,
    SessionFactory,
    UserRow,
    new_id,
)
from storefront.errors import EngineError, EngineFailure, Errors
from storefront.notify import (
    ORDER_PLACED,
    NotificationItem,
    NotificationSink,
    OrderNotification,
    notify_best_effort,
)
from storefront.orders._nodes import PricingServices, pricing
from storefront.orders._types import (
    CheckoutRequest,
    CheckoutResult,
    Order,
    OrderStatus,
    PaymentMethod,
    PricingInput,
    StoreQuote,
    Tracking,
    can_advance,
)
from storefront.payments import (
    PaymentProvider,
    PaymentSession,
    PaymentSessionRequest,
    PaymentStatus,
)
from storefront.shipping import ShippingBook

logger = logging.getLogger(__name__)

GUEST_USER_ID = "guest"
DEFAULT_GUEST_ZIP = "000000"


@dataclass(slots=True)
class _Placed:
    """Rows flushed inside the checkout transaction, not yet committed."""

    orders: list[OrderRow]
    quotes: list[StoreQuote]
    convert_token: str | None = None
    payment: PaymentSession | None = None

    @property
    def order_ids(self) -> tuple[str, ...]:
        return tuple(row.id for row in self.orders)


def _as_engine_error(e: Exception) -> EngineError:
    match e:
        case EngineFailure():
            return e.error
        case IntegrityError():
            return Errors.conflict("checkout conflicts with existing data")
        case _:
            return Errors.external("checkout could not be stored", reason=str(e))


class OrderAssembler:
    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        payments: PaymentProvider,
        notifications: NotificationSink,
        config: EngineConfig | None = None,
        history: OrderHistory | None = None,
        catalog: Catalog | None = None,
        coupons: CouponBook | None = None,
        shipping: ShippingBook | None = None,
    ) -> None:
        self._session = session_factory
        self._payments = payments
        self._notifications = notifications
        self._config = config or EngineConfig()
        self._services = PricingServices(
            catalog=catalog or Catalog(session_factory),
            coupons=coupons or CouponBook(session_factory),
            history=history or SqlOrderHistory(session_factory),
            shipping=shipping or ShippingBook(session_factory),
            config=self._config,
        )

    # ═══════════════════════════════════════════════════════════════════════════
    # Validation + pricing
    # ═══════════════════════════════════════════════════════════════════════════

    def _validate(self, request: CheckoutRequest) -> Result[PricingInput, EngineError]:
        try:
            method = PaymentMethod(request.payment_method)
        except ValueError:
            return Error(
                Errors.invalid_request(
                    "unsupported payment method", paymentMethod=request.payment_method
                )
            )
        if not request.items:
            return Error(Errors.invalid_request("missing order details: no items"))

        if request.identity is not None:
            customer = CustomerRef.user(request.identity.uid)
            is_plus = request.identity.is_plus_member
        else:
            if request.guest is None:
                return Error(Errors.missing_guest_info(["guestInfo"]))
            missing = request.guest.missing_fields()
            if missing:
                return Error(Errors.missing_guest_info(missing))
            customer = CustomerRef.guest(request.guest.email.strip())
            is_plus = False

        return Ok(PricingInput(
            items=tuple(request.items),
            customer=customer,
            payment_method=method,
            coupon_code=(request.coupon_code or "").strip() or None,
            is_plus_member=is_plus,
            express=request.express,
        ))

    async def _price(
        self, request: CheckoutRequest
    ) -> Result[tuple[PricingInput, list[StoreQuote]], EngineError]:
        match self._validate(request):
            case Error(e):
                return Error(e)
            case Ok(data):
                pass
        match await pricing.execute(data, self._services):
            case Ok(node):
                return Ok((data, node.quotes))
            case Error(e):
                return Error(e)

    async def quote(self, request: CheckoutRequest) -> Result[list[StoreQuote], EngineError]:
        """Per-store totals as checkout would compute them. No writes."""
        match await self._price(request):
            case Ok((_, quotes)):
                return Ok(quotes)
            case Error(e):
                return Error(e)

    # ═══════════════════════════════════════════════════════════════════════════
    # Checkout
    # ═══════════════════════════════════════════════════════════════════════════

    async def create_order(self, request: CheckoutRequest) -> Result[CheckoutResult, EngineError]:
        """
        Place one order per store in a single transaction.

        Any failure before commit leaves no rows behind and no open
        payment session.
        """
        match await self._price(request):
            case Error(e):
                return Error(e)
            case Ok((data, quotes)):
                pass

        async with self._session() as session:
            persist = S.from_async(
                lambda: self._persist(session, request, data, quotes),
                on_error=_as_engine_error,
                compensate=lambda _: session.rollback(),
                name="persist",
            )
            if data.payment_method.needs_confirmation:
                checkout = persist.then(
                    lambda placed: S.from_async(
                        lambda: self._open_payment(placed, request),
                        on_error=lambda e: Errors.external(
                            "payment session could not be created", reason=str(e)
                        ),
                        compensate=lambda p: self._expire_payment(p),
                        name="payment",
                    )
                ).then(lambda placed: self._commit_step(session, placed))
            else:
                checkout = persist.then(lambda placed: self._commit_step(session, placed))

            outcome = await S.run(checkout)

        match outcome:
            case Error(failure):
                logger.warning(
                    "checkout failed at %s: %s (rollback complete: %s)",
                    failure.step_failed,
                    failure.error,
                    failure.rollback_complete,
                )
                return Error(failure.error)
            case Ok(done):
                placed = done.value

        logger.info(
            "checkout committed: %d order(s) %s via %s",
            len(placed.orders),
            ",".join(placed.order_ids),
            data.payment_method.value,
        )
        await notify_best_effort(
            self._notifications, self._placed_notifications(request, placed)
        )
        return Ok(CheckoutResult(
            order_ids=placed.order_ids,
            redirect_url=placed.payment.url if placed.payment else None,
            payment_session_id=placed.payment.id if placed.payment else None,
        ))

    def _commit_step(self, session: AsyncSession, placed: _Placed) -> S.SagaStep[_Placed, EngineError]:
        async def commit() -> _Placed:
            await session.commit()
            return placed

        return S.from_async(commit, on_error=_as_engine_error, name="commit")

    async def _persist(
        self,
        session: AsyncSession,
        request: CheckoutRequest,
        data: PricingInput,
        quotes: list[StoreQuote],
    ) -> _Placed:
        now = utcnow()
        user_id: str | None = None
        address_id: str | None = None
        convert_token: str | None = None

        if request.identity is not None:
            user = await self._ensure_user(session, request)
            user_id = user.id
            address_id = (request.address_id or "").strip() or None
            if address_id is not None:
                address = await session.get(AddressRow, address_id)
                if address is None or address.user_id != user_id:
                    raise EngineFailure(Errors.not_found("Address", address_id))
            if data.payment_method is PaymentMethod.COD:
                user.cart = {}
        else:
            address_id, convert_token = await self._record_guest(session, request, now)

        applied = next((q.coupon for q in quotes if q.coupon is not None), None)
        if applied is not None:
            match await reserve_usage(session, applied.code):
                case Error(e):
                    raise EngineFailure(e)
                case Ok(_):
                    pass

        guest = request.guest if request.identity is None else None
        orders: list[OrderRow] = []
        for quote in quotes:
            row = OrderRow(
                id=new_id(),
                store_id=quote.store_id,
                user_id=user_id,
                address_id=address_id,
                is_guest=guest is not None,
                guest_name=guest.name if guest else None,
                guest_email=guest.email.strip() if guest else None,
                guest_phone=guest.phone if guest else None,
                subtotal=quote.subtotal,
                discount=quote.discount,
                shipping_fee=quote.shipping_fee,
                total=quote.total,
                payment_method=data.payment_method.value,
                is_coupon_used=quote.coupon is not None,
                coupon=quote.coupon.snapshot() if quote.coupon else {},
                coupon_code=quote.coupon.code if quote.coupon else None,
                status=OrderStatus.CREATED.value,
                is_paid=False,
                created_at=now,
                updated_at=now,
            )
            row.items = [
                OrderItemRow(
                    position=position,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    price=line.price,
                )
                for position, line in enumerate(quote.lines)
            ]
            session.add(row)
            orders.append(row)

        await session.flush()
        return _Placed(orders=orders, quotes=quotes, convert_token=convert_token)

    async def _ensure_user(self, session: AsyncSession, request: CheckoutRequest) -> UserRow:
        identity = request.identity
        assert identity is not None
        user = await session.get(UserRow, identity.uid)
        if user is None:
            user = UserRow(
                id=identity.uid,
                name=identity.name or "",
                email=identity.email or "",
                image="",
                cart={},
            )
            session.add(user)
            await session.flush()
        return user

    async def _record_guest(
        self, session: AsyncSession, request: CheckoutRequest, now: datetime
    ) -> tuple[str, str]:
        """Guest address + guest record. Returns (address id, convert token)."""
        guest = request.guest
        assert guest is not None

        if await session.get(UserRow, GUEST_USER_ID) is None:
            session.add(UserRow(
                id=GUEST_USER_ID, name="Guest User", email="guest@system.local", image="", cart={}
            ))
            await session.flush()

        address = AddressRow(
            id=new_id(),
            user_id=GUEST_USER_ID,
            name=guest.name,
            email=guest.email.strip(),
            phone=guest.phone,
            street=guest.address,
            city=guest.city,
            state=guest.state,
            zip=guest.zip.strip() or DEFAULT_GUEST_ZIP,
            country=guest.country,
        )
        session.add(address)

        token = secrets.token_hex(32)
        email = guest.email.strip()
        record = (
            await session.execute(select(GuestUserRow).where(GuestUserRow.email == email))
        ).scalar_one_or_none()
        if record is None:
            record = GuestUserRow(email=email, account_created=False)
            session.add(record)
        record.name = guest.name
        record.phone = guest.phone
        record.convert_token = token
        record.token_expiry = now + self._config.guest_token_ttl
        return address.id, token

    async def _open_payment(self, placed: _Placed, request: CheckoutRequest) -> _Placed:
        amount = sum((q.total for q in placed.quotes), ZERO)
        metadata = {"orderIds": ",".join(placed.order_ids)}
        if request.identity is not None:
            metadata["userId"] = request.identity.uid
        payment = await self._payments.create_session(
            PaymentSessionRequest(
                amount=amount,
                currency=self._config.currency,
                success_url=self._config.success_path,
                cancel_url=self._config.cancel_path,
                expires_at=utcnow() + self._config.payment_session_ttl,
                metadata=metadata,
            )
        )
        for row in placed.orders:
            row.payment_session_id = payment.id
        placed.payment = payment
        return placed

    async def _expire_payment(self, placed: _Placed) -> None:
        if placed.payment is not None:
            await self._payments.expire_session(placed.payment.id)

    def _placed_notifications(
        self, request: CheckoutRequest, placed: _Placed
    ) -> list[OrderNotification]:
        if request.identity is not None:
            recipient = request.identity.email or ""
            name = request.identity.name or ""
        else:
            assert request.guest is not None
            recipient = request.guest.email.strip()
            name = request.guest.name
        if not recipient:
            return []
        return [
            OrderNotification(
                order_id=row.id,
                recipient_email=recipient,
                customer_name=name,
                status=ORDER_PLACED,
                items=tuple(
                    NotificationItem(line.name, line.quantity, line.price) for line in quote.lines
                ),
                convert_token=placed.convert_token,
            )
            for row, quote in zip(placed.orders, placed.quotes, strict=True)
        ]

    # ═══════════════════════════════════════════════════════════════════════════
    # Reads and lifecycle
    # ═══════════════════════════════════════════════════════════════════════════

    async def list_orders(self, user_id: str) -> list[Order]:
        """COD orders and paid STRIPE orders, newest first."""
        async with self._session() as session:
            stmt = (
                select(OrderRow)
                .where(
                    OrderRow.user_id == user_id,
                    or_(
                        OrderRow.payment_method == PaymentMethod.COD.value,
                        and_(
                            OrderRow.payment_method == PaymentMethod.STRIPE.value,
                            OrderRow.is_paid.is_(True),
                        ),
                    ),
                )
                .order_by(OrderRow.created_at.desc())
            )
            rows = (await session.execute(stmt)).scalars().all()
            return [Order.from_row(row) for row in rows]

    async def confirm_payment(self, session_id: str) -> Result[tuple[str, ...], EngineError]:
        """
        Mark every order of a payment session paid once the provider reports
        it paid. Safe to repeat.
        """
        async with self._session() as session:
            rows = (
                await session.execute(
                    select(OrderRow).where(OrderRow.payment_session_id == session_id)
                )
            ).scalars().all()
            if not rows:
                return Error(Errors.not_found("PaymentSession", session_id))

            status = await L.catching_async(
                lambda: self._payments.session_status(session_id),
                on_error=lambda e: Errors.external(
                    "payment status could not be checked", reason=str(e)
                ),
            )
            match status:
                case Error(e):
                    return Error(e)
                case Ok(PaymentStatus.PAID):
                    pass
                case Ok(other):
                    logger.warning("payment %s not confirmed: %s", session_id, other.value)
                    return Error(
                        Errors.conflict(
                            "payment not completed", sessionId=session_id, status=other.value
                        )
                    )

            now = utcnow()
            for row in rows:
                if not row.is_paid:
                    row.is_paid = True
                    row.updated_at = now
            await session.commit()
            order_ids = tuple(row.id for row in rows)
        logger.info("payment %s confirmed for %s", session_id, ",".join(order_ids))
        return Ok(order_ids)

    async def update_status(
        self,
        store_id: str,
        order_id: str,
        status: OrderStatus,
        tracking: Tracking | None = None,
    ) -> Result[Order, EngineError]:
        """Move an order of this store forward; CANCELLED is not written here."""
        async with self._session() as session:
            row = await session.get(OrderRow, order_id)
            if row is None or row.store_id != store_id:
                return Error(Errors.not_found("Order", order_id))
            current = OrderStatus(row.status)
            if not can_advance(current, status):
                return Error(
                    Errors.invalid_request(
                        "status cannot move backwards or to CANCELLED",
                        current=current.value,
                        requested=status.value,
                    )
                )
            row.status = status.value
            if tracking is not None:
                row.tracking_id = tracking.tracking_id
                row.tracking_url = tracking.tracking_url
                row.courier = tracking.courier
            row.updated_at = utcnow()
            recipient, name = await self._recipient_of(session, row)
            await session.commit()
            order = Order.from_row(row)

        logger.info("order %s moved %s -> %s", order_id, current.value, status.value)
        if recipient:
            await notify_best_effort(self._notifications, [_status_notification(order, recipient, name)])
        return Ok(order)

    async def _recipient_of(self, session: AsyncSession, row: OrderRow) -> tuple[str, str]:
        if row.is_guest:
            return row.guest_email or "", row.guest_name or ""
        if row.user_id is None:
            return "", ""
        user = await session.get(UserRow, row.user_id)
        if user is None:
            return "", ""
        return user.email, user.name


def _status_notification(order: Order, recipient: str, name: str) -> OrderNotification:
    return OrderNotification(
        order_id=order.id,
        recipient_email=recipient,
        customer_name=name,
        status=order.status.value,
        tracking_id=order.tracking_id,
        tracking_url=order.tracking_url,
        courier=order.courier,
    )


__all__ = ("GUEST_USER_ID", "OrderAssembler")