"""
Payment Failure Monitor
=======================
Sequences one inbound Stripe webhook through the alert pipeline:

    verify signature -> filter by type -> normalize -> enrich -> notify

Only signature verification raises past this class
(WebhookVerificationError). Everything after authentication is reported
as a PipelineResult and written to the log ring, so the HTTP layer can
always acknowledge an authenticated event.
"""

import time
from typing import Optional

import stripe
import structlog

from payment_monitor.config import Settings
from payment_monitor.exceptions import WebhookVerificationError
from payment_monitor.schemas.event_definitions import (
    CustomerRecord,
    FailureEventType,
    PaymentFailureRecord,
    PipelineResult,
    PipelineStatus,
    StripeEvent,
    is_failure_event,
)
from payment_monitor.services.customers import (
    CustomerEnricher,
    ICustomerDirectory,
    StripeCustomerDirectory,
)
from payment_monitor.services.mail import IMailTransport, build_mail_transport
from payment_monitor.services.normalizer import EventNormalizer
from payment_monitor.services.notifier import FailureNotifier
from payment_monitor.storage.log_ring import LogRing

TEST_CUSTOMER = CustomerRecord(name="Test Customer", email="test@example.com")


def build_test_event(now: Optional[float] = None) -> StripeEvent:
    """Synthetic payment_intent.payment_failed event for POST /test."""
    return StripeEvent(
        type=FailureEventType.PAYMENT_INTENT_FAILED.value,
        created=int(now if now is not None else time.time()),
        data={
            "object": {
                "customer": "cus_test123",
                "amount": 2500,
                "currency": "usd",
                "last_payment_error": {
                    "code": "card_declined",
                    "message": "Your card was declined.",
                    "type": "card_error",
                },
            }
        },
    )


class PaymentFailureMonitor:
    """
    Owns the log ring and the pipeline collaborators for one service
    instance.

    Example:
        monitor = PaymentFailureMonitor.from_settings(settings)
        event = monitor.verify(payload, request.headers.get("stripe-signature"))
        result = await monitor.process(event)
    """

    def __init__(
        self,
        settings: Settings,
        log: Optional[LogRing] = None,
        customers: Optional[ICustomerDirectory] = None,
        transport: Optional[IMailTransport] = None,
        normalizer: Optional[EventNormalizer] = None,
        stripe_client=stripe,
    ):
        self.settings = settings
        self.log = log if log is not None else LogRing(capacity=settings.LOG_RING_CAPACITY)
        self.normalizer = normalizer or EventNormalizer()
        self.enricher = CustomerEnricher(
            customers or StripeCustomerDirectory(api_key=settings.STRIPE_API_KEY),
            self.log,
        )
        self.notifier = FailureNotifier(
            transport=transport or build_mail_transport(settings),
            log=self.log,
            from_email=settings.GMAIL_FROM_EMAIL,
            to_email=settings.NOTIFICATION_EMAIL,
        )
        self._stripe = stripe_client

    @classmethod
    def from_settings(cls, settings: Settings) -> "PaymentFailureMonitor":
        return cls(settings)

    # =========================================================================
    # AUTHENTICATION GATE
    # =========================================================================

    def verify(self, payload: bytes, signature: Optional[str]) -> StripeEvent:
        """
        Check the Stripe signature over the raw body and parse the event.

        Raises WebhookVerificationError on a missing or bad signature, or on
        a body that is not a Stripe event.
        """
        try:
            if not signature:
                raise ValueError("No stripe-signature header value was provided.")
            # Only the signature is checked here; the body is parsed by the
            # event model so non-object JSON fails as a ValidationError
            self._stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"),
                signature,
                self.settings.STRIPE_WEBHOOK_SECRET,
                tolerance=self.settings.STRIPE_WEBHOOK_TOLERANCE,
            )
            event = StripeEvent.model_validate_json(payload)
        except (self._stripe.SignatureVerificationError, ValueError) as e:
            self.log.error("Webhook signature verification failed", error=str(e))
            raise WebhookVerificationError(str(e)) from e

        self.log.info("Webhook received", eventType=event.type, eventId=event.id)
        return event

    # =========================================================================
    # PIPELINE
    # =========================================================================

    async def process(self, event: StripeEvent) -> PipelineResult:
        """Run an authenticated event through filter, enrichment and notify."""
        if not is_failure_event(event.type):
            self.log.info("Event ignored (not a payment failure)", eventType=event.type)
            return PipelineResult(
                status=PipelineStatus.IGNORED,
                event_type=event.type,
                event_id=event.id,
            )

        with structlog.contextvars.bound_contextvars(event_id=event.id):
            try:
                self.log.info("Processing payment failure event", eventType=event.type)
                record = self.normalizer.normalize(event)
                record = await self.enricher.enrich(record)
                await self.notifier.notify(event, record)
            except Exception as e:
                self.log.error(
                    "Failed to process payment failure",
                    eventType=event.type,
                    eventId=event.id,
                    error=str(e),
                )
                return PipelineResult(
                    status=PipelineStatus.FAILED,
                    event_type=event.type,
                    event_id=event.id,
                    error=str(e),
                )

        self.log.success(
            "Payment failure processed successfully",
            eventType=event.type,
            eventId=event.id,
        )
        return PipelineResult(
            status=PipelineStatus.PROCESSED,
            event_type=event.type,
            event_id=event.id,
        )

    # =========================================================================
    # MANUAL TEST
    # =========================================================================

    async def run_test(self) -> PipelineResult:
        """Send an alert for a synthetic event with a fixed test customer."""
        self.log.info("Manual test initiated")
        event = build_test_event()
        try:
            record: PaymentFailureRecord = self.normalizer.normalize(event)
            record = record.with_customer(TEST_CUSTOMER)
            await self.notifier.notify(event, record)
        except Exception as e:
            self.log.error("Test failed", error=str(e))
            return PipelineResult(
                status=PipelineStatus.FAILED,
                event_type=event.type,
                event_id=event.id,
                error=str(e),
            )

        self.log.success("Test completed successfully")
        return PipelineResult(
            status=PipelineStatus.PROCESSED,
            event_type=event.type,
            event_id=event.id,
        )
