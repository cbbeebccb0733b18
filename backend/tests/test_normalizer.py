"""Tests for per-type event normalization."""

import pytest
from pydantic import BaseModel

from payment_monitor.schemas.event_definitions import (
    CustomerRecord,
    PaymentError,
    PaymentFailureRecord,
)
from payment_monitor.services.normalizer import (
    EventNormalizer,
    fallback_record,
)

from tests.factories import make_event

DECLINE = {"code": "card_declined", "message": "Your card was declined.", "type": "card_error"}


@pytest.fixture()
def normalizer() -> EventNormalizer:
    return EventNormalizer()


class TestSupportedTypes:
    def test_payment_intent_maps_fields_directly(self, normalizer):
        event = make_event(
            "payment_intent.payment_failed",
            {
                "id": "pi_1",
                "customer": "cus_123",
                "amount": 2500,
                "currency": "usd",
                "last_payment_error": DECLINE,
            },
        )

        record = normalizer.normalize(event)

        assert record == PaymentFailureRecord(
            customer="cus_123",
            amount=2500,
            currency="usd",
            last_error=PaymentError(**DECLINE),
        )

    def test_invoice_uses_amount_due(self, normalizer):
        event = make_event(
            "invoice.payment_failed",
            {"customer": "cus_9", "amount_due": 4999, "amount_paid": 0, "currency": "eur"},
        )

        record = normalizer.normalize(event)

        assert record.amount == 4999
        assert record.currency == "eur"
        assert record.customer == "cus_9"
        assert record.last_error is None

    def test_charge_builds_card_error_from_failure_fields(self, normalizer):
        event = make_event(
            "charge.failed",
            {
                "customer": "cus_1",
                "amount": 1000,
                "currency": "gbp",
                "failure_code": "expired_card",
                "failure_message": "Your card has expired.",
            },
        )

        record = normalizer.normalize(event)

        assert record.last_error == PaymentError(
            code="expired_card",
            message="Your card has expired.",
            type="card_error",
        )
        assert record.amount == 1000

    def test_charge_without_failure_code_has_no_error(self, normalizer):
        event = make_event(
            "charge.failed",
            {"customer": "cus_1", "amount": 1000, "currency": "gbp", "failure_message": "odd"},
        )

        assert normalizer.normalize(event).last_error is None

    def test_absent_fields_default_to_none(self, normalizer):
        record = normalizer.normalize(make_event("payment_intent.payment_failed", {}))

        assert record == PaymentFailureRecord()

    def test_expanded_customer_object_is_kept_as_record(self, normalizer):
        event = make_event(
            "payment_intent.payment_failed",
            {"customer": {"id": "cus_5", "object": "customer", "name": "Ada", "email": "ada@example.com"}},
        )

        record = normalizer.normalize(event)

        assert record.customer == CustomerRecord(id="cus_5", name="Ada", email="ada@example.com")


class TestFallback:
    def test_unknown_type_uses_amount(self, normalizer):
        event = make_event(
            "customer.subscription.updated",
            {"customer": "cus_2", "amount": 300, "currency": "usd"},
        )

        record = normalizer.normalize(event)

        assert record.amount == 300
        assert record.customer == "cus_2"

    def test_unknown_type_falls_back_to_amount_due(self, normalizer):
        record = normalizer.normalize(make_event("invoice.upcoming", {"amount_due": 750}))

        assert record.amount == 750
        assert record.customer is None
        assert record.currency is None
        assert record.last_error is None

    def test_unknown_type_keeps_last_payment_error(self, normalizer):
        record = normalizer.normalize(
            make_event("setup_intent.setup_failed", {"last_payment_error": DECLINE})
        )

        assert record.last_error == PaymentError(**DECLINE)

    def test_invalid_object_for_known_type_does_not_raise(self, normalizer):
        event = make_event(
            "payment_intent.payment_failed",
            {"customer": "cus_3", "amount": "not-a-number", "currency": "usd"},
        )

        record = normalizer.normalize(event)

        assert record.customer == "cus_3"
        assert record.amount is None
        assert record.currency == "usd"

    def test_fallback_keeps_integral_float_amount(self):
        record = fallback_record({"amount": 25.0, "currency": "usd"})

        assert record.amount == 25
        assert isinstance(record.amount, int)

    def test_fallback_rejects_fractional_float_amount(self):
        record = fallback_record({"amount": 25.5, "amount_due": 300})

        assert record.amount == 300

    def test_fallback_ignores_wrongly_typed_values(self):
        record = fallback_record(
            {"customer": 42, "amount": True, "currency": 7, "last_payment_error": "boom"}
        )

        assert record == PaymentFailureRecord()


class TestRegistry:
    def test_supported_events(self, normalizer):
        assert set(normalizer.supported_events) == {
            "payment_intent.payment_failed",
            "invoice.payment_failed",
            "charge.failed",
        }

    def test_custom_mapper_can_be_registered(self, normalizer):
        class RefundObject(BaseModel):
            amount_refunded: int

        @normalizer.register("charge.refund.updated", RefundObject)
        def map_refund(obj):
            return PaymentFailureRecord(amount=obj.amount_refunded)

        record = normalizer.normalize(make_event("charge.refund.updated", {"amount_refunded": 12}))

        assert record.amount == 12

