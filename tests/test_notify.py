"""Tests for notification rendering and best-effort delivery."""

import asyncio
import logging
from decimal import Decimal

from storefront.notify import (
    LoggingNotificationSink,
    NotificationItem,
    OrderNotification,
    notify_best_effort,
    render,
)


def notification(status="ORDER_PLACED", **changes):
    fields = dict(
        order_id="5f2c9a0b77e1",
        recipient_email="a@b.com",
        customer_name="Ada",
        status=status,
    )
    fields.update(changes)
    return OrderNotification(**fields)


class FlakySink:
    def __init__(self, fail_for):
        self.fail_for = set(fail_for)
        self.delivered = []

    async def send(self, n):
        if n.order_id in self.fail_for:
            raise TimeoutError("smtp timeout")
        self.delivered.append(n.order_id)


class TestRender:
    def test_reference_is_first_eight_upper(self):
        assert notification().reference == "#5F2C9A0B"

    def test_placed(self):
        message = render(
            notification(items=(NotificationItem("Lamp", 2, Decimal("15.00")),))
        )
        assert message.to == "a@b.com"
        assert message.subject == "Order Confirmed - #5F2C9A0B"
        assert "Lamp: 2 x 15.00" in message.body

    def test_subject_per_status(self):
        subjects = {
            status: render(notification(status)).subject
            for status in ("PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED")
        }
        assert subjects == {
            "PROCESSING": "Order Processing - #5F2C9A0B",
            "SHIPPED": "Order Shipped - #5F2C9A0B",
            "DELIVERED": "Order Delivered - #5F2C9A0B",
            "CANCELLED": "Order Update - #5F2C9A0B",
        }

    def test_shipped_includes_tracking(self):
        body = render(
            notification("SHIPPED", tracking_id="T-1", courier="DHL", tracking_url="https://t/1")
        ).body
        assert "Tracking ID: T-1" in body
        assert "Courier: DHL" in body
        assert "https://t/1" in body

    def test_guest_token(self):
        assert "token abc123" in render(notification(convert_token="abc123")).body


class TestBestEffort:
    def test_failures_are_skipped(self):
        sink = FlakySink(fail_for={"o2"})
        batch = [notification(order_id=f"o{i}") for i in range(1, 4)]

        delivered = asyncio.run(notify_best_effort(sink, batch))

        assert delivered == 2
        assert sink.delivered == ["o1", "o3"]

    def test_logging_sink_logs_subject(self, caplog):
        caplog.set_level(logging.INFO, logger="storefront.notify")
        sink = LoggingNotificationSink()

        delivered = asyncio.run(notify_best_effort(sink, [notification()] * 3))

        assert delivered == 3
        assert "a@b.com: Order Confirmed - #5F2C9A0B" in caplog.text
        # Nothing is retained between sends.
        assert vars(sink) == {}
