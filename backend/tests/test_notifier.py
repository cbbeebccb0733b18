"""Tests for alert rendering and dispatch."""

import pytest

from payment_monitor.schemas.event_definitions import (
    CustomerRecord,
    PaymentError,
    PaymentFailureRecord,
)
from payment_monitor.services.mail import InMemoryMailTransport
from payment_monitor.services.notifier import (
    FailureNotifier,
    customer_display_name,
    format_amount,
    format_currency,
    format_event_time,
    render_failure_html,
)
from payment_monitor.storage.log_ring import LogLevel

from tests.factories import make_event

DECLINE = PaymentError(code="card_declined", message="Your card was declined.", type="card_error")


def _record(**overrides) -> PaymentFailureRecord:
    fields = {
        "customer": CustomerRecord(id="cus_1", name="Jane Doe", email="jane@example.com"),
        "amount": 2500,
        "currency": "usd",
        "last_error": DECLINE,
    }
    fields.update(overrides)
    return PaymentFailureRecord(**fields)


class TestFormatting:
    def test_amount_in_major_units(self):
        assert format_amount(2500) == "25.00"
        assert format_amount(1) == "0.01"
        assert format_amount(123456) == "1234.56"
        assert format_amount(0) == "0.00"

    def test_missing_amount(self):
        assert format_amount(None) == "Unknown"

    def test_currency_upper_cased_with_default(self):
        assert format_currency("eur") == "EUR"
        assert format_currency(None) == "USD"

    def test_display_name_precedence(self):
        assert customer_display_name(CustomerRecord(name="N", email="e@x.io")) == "N"
        assert customer_display_name(CustomerRecord(email="e@x.io")) == "e@x.io"
        assert customer_display_name(CustomerRecord(id="cus_1")) == "Unknown Customer"
        assert customer_display_name("cus_1") == "Unknown Customer"
        assert customer_display_name(None) == "Unknown Customer"

    def test_event_time_is_utc(self):
        assert format_event_time(1700000000) == "2023-11-14 22:13:20 UTC"
        assert format_event_time(None) == "Unknown"


class TestTemplate:
    def test_includes_payment_details(self):
        event = make_event("payment_intent.payment_failed", {})

        body = render_failure_html(event, _record())

        assert "<strong>Customer:</strong> Jane Doe" in body
        assert "<strong>Amount:</strong> 25.00 USD" in body
        assert "<strong>Event Type:</strong> payment_intent.payment_failed" in body
        assert "2023-11-14 22:13:20 UTC" in body
        assert "Monitor for retry attempts" in body

    def test_error_block_only_when_error_present(self):
        event = make_event("charge.failed", {})

        with_error = render_failure_html(event, _record())
        without_error = render_failure_html(event, _record(last_error=None))

        assert "Error Details:" in with_error
        assert "<strong>Code:</strong> card_declined" in with_error
        assert "Error Details:" not in without_error

    def test_error_placeholders(self):
        event = make_event("charge.failed", {})

        body = render_failure_html(event, _record(last_error=PaymentError()))

        assert "<strong>Code:</strong> N/A" in body
        assert "No specific error message" in body

    def test_values_are_escaped(self):
        event = make_event("charge.failed", {})
        record = _record(customer=CustomerRecord(name="<script>alert(1)</script>"))

        body = render_failure_html(event, record)

        assert "<script>" not in body
        assert "&lt;script&gt;" in body


class TestNotify:
    @pytest.fixture()
    def notifier(self, transport, log_ring) -> FailureNotifier:
        return FailureNotifier(
            transport=transport,
            log=log_ring,
            from_email="alerts@example.com",
            to_email="ops@example.com",
        )

    def test_message_headers(self, notifier):
        event = make_event("payment_intent.payment_failed", {})

        message = notifier.build_message(event, _record())

        assert message["From"] == "alerts@example.com"
        assert message["To"] == "ops@example.com"
        assert message["Subject"] == "Payment Failed - Jane Doe"
        assert message["MIME-Version"] == "1.0"
        assert message.get_content_type() == "text/html"
        assert message.get_content_charset() == "utf-8"

    def test_line_breaks_in_name_kept_out_of_subject(self, notifier):
        event = make_event("charge.failed", {})
        record = _record(customer=CustomerRecord(name="Jane\r\nBcc: victim@example.com"))

        message = notifier.build_message(event, record)

        assert message["Subject"] == "Payment Failed - Jane Bcc: victim@example.com"
        assert message["Bcc"] is None

    @pytest.mark.asyncio
    async def test_sends_exactly_one_email(self, notifier, transport, log_ring):
        event = make_event("payment_intent.payment_failed", {})

        await notifier.notify(event, _record())

        assert len(transport.sent) == 1
        sent = transport.sent[0]
        assert sent["Subject"] == "Payment Failed - Jane Doe"
        assert "25.00 USD" in sent.get_content()

        latest = log_ring.recent(1)[0]
        assert latest.level == LogLevel.SUCCESS
        assert latest.message == "Email notification sent successfully"
        assert latest.data == {
            "customer": "Jane Doe",
            "amount": "25.00",
            "eventType": "payment_intent.payment_failed",
        }

    @pytest.mark.asyncio
    async def test_transport_failure_is_logged_and_reraised(self, log_ring):
        boom = ConnectionError("gmail down")
        notifier = FailureNotifier(
            transport=InMemoryMailTransport(fail_with=boom),
            log=log_ring,
            from_email="a@example.com",
            to_email="b@example.com",
        )
        event = make_event("charge.failed", {})

        with pytest.raises(ConnectionError) as exc_info:
            await notifier.notify(event, _record())

        assert exc_info.value is boom
        latest = log_ring.recent(1)[0]
        assert latest.level == LogLevel.ERROR
        assert latest.message == "Failed to send email notification"
        assert latest.data == {"error": "gmail down", "eventType": "charge.failed"}
