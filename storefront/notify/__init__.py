"""
Notifications — order messages behind a sink protocol.

Delivery is best-effort: notify_best_effort() logs failures and never
raises, so a broken sink cannot undo a committed order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol
from collections.abc import Iterable

from kungfu import Ok, Error
from combinators import lift as L

logger = logging.getLogger(__name__)

ORDER_PLACED = "ORDER_PLACED"

# ═══════════════════════════════════════════════════════════════════════════════
# Message
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class NotificationItem:
    name: str
    quantity: int
    price: Decimal


@dataclass(frozen=True, slots=True)
class OrderNotification:
    order_id: str
    recipient_email: str
    customer_name: str
    status: str
    items: tuple[NotificationItem, ...] = ()
    tracking_id: str | None = None
    tracking_url: str | None = None
    courier: str | None = None
    convert_token: str | None = None

    @property
    def reference(self) -> str:
        return "#" + self.order_id[:8].upper()


@dataclass(frozen=True, slots=True)
class RenderedMessage:
    to: str
    subject: str
    body: str


def render(n: OrderNotification) -> RenderedMessage:
    ref = n.reference
    match n.status:
        case "ORDER_PLACED":
            subject = f"Order Confirmed - {ref}"
            lines = [
                f"Thank you for your order, {n.customer_name}!",
                "Your order has been successfully placed and is being processed.",
            ]
        case "PROCESSING":
            subject = f"Order Processing - {ref}"
            lines = [
                f"Your order is being processed, {n.customer_name}!",
                "We're working on getting your items ready for shipment.",
            ]
        case "SHIPPED":
            subject = f"Order Shipped - {ref}"
            lines = [f"Great news, {n.customer_name}! Your order has been shipped!"]
            if n.tracking_id:
                lines.append(f"Tracking ID: {n.tracking_id}")
                lines.append(f"Courier: {n.courier or ''}")
                if n.tracking_url:
                    lines.append(f"Track your order: {n.tracking_url}")
        case "DELIVERED":
            subject = f"Order Delivered - {ref}"
            lines = [
                f"Your order has been delivered, {n.customer_name}!",
                "We hope you enjoy your purchase. Thank you for shopping with us!",
            ]
        case _:
            subject = f"Order Update - {ref}"
            lines = [
                f"Order Update for {n.customer_name}",
                "Your order status has been updated.",
                f"Status: {n.status}",
            ]

    lines.insert(1, ref)
    if n.items:
        lines.append("Order Items:")
        lines.extend(f"  {item.name}: {item.quantity} x {item.price}" for item in n.items)
    if n.convert_token:
        lines.append(f"Create your account to track this order: token {n.convert_token}")
    return RenderedMessage(to=n.recipient_email, subject=subject, body="\n".join(lines))


# ═══════════════════════════════════════════════════════════════════════════════
# Sinks
# ═══════════════════════════════════════════════════════════════════════════════


class NotificationSink(Protocol):
    async def send(self, notification: OrderNotification) -> None: ...


class LoggingNotificationSink:
    """Logs the rendered recipient and subject."""

    async def send(self, notification: OrderNotification) -> None:
        message = render(notification)
        logger.info("notify %s: %s", message.to, message.subject)


async def notify_best_effort(
    sink: NotificationSink,
    notifications: Iterable[OrderNotification],
) -> int:
    """Send each notification; returns how many were delivered."""
    delivered = 0
    for n in notifications:
        result = await L.catching_async(
            lambda n=n: sink.send(n),
            on_error=lambda e: e,
        )
        match result:
            case Ok(_):
                delivered += 1
            case Error(e):
                logger.warning("notification for order %s not sent: %s", n.order_id, e)
    return delivered


__all__ = (
    "ORDER_PLACED",
    "NotificationItem",
    "OrderNotification",
    "RenderedMessage",
    "render",
    "NotificationSink",
    "LoggingNotificationSink",
    "notify_best_effort",
)
