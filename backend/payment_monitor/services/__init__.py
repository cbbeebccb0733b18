# services/__init__.py
# ============================================================================
# STRIPE PAYMENT FAILURE MONITOR - SERVICES MODULE
# ============================================================================
# Normalization, enrichment, notification and the pipeline that joins them
# ============================================================================

from payment_monitor.services.normalizer import (
    EventNormalizer,
    fallback_record,
)

from payment_monitor.services.customers import (
    CustomerEnricher,
    ICustomerDirectory,
    InMemoryCustomerDirectory,
    StripeCustomerDirectory,
)

from payment_monitor.services.mail import (
    GmailTransport,
    IMailTransport,
    InMemoryMailTransport,
    build_mail_transport,
    decode_raw_message,
    encode_raw_message,
)

from payment_monitor.services.notifier import (
    FailureNotifier,
    customer_display_name,
    format_amount,
    render_failure_html,
)

from payment_monitor.services.monitor import (
    TEST_CUSTOMER,
    PaymentFailureMonitor,
    build_test_event,
)

__all__ = [
    # Normalizer
    "EventNormalizer",
    "fallback_record",
    # Customers
    "CustomerEnricher",
    "ICustomerDirectory",
    "InMemoryCustomerDirectory",
    "StripeCustomerDirectory",
    # Mail
    "GmailTransport",
    "IMailTransport",
    "InMemoryMailTransport",
    "build_mail_transport",
    "decode_raw_message",
    "encode_raw_message",
    # Notifier
    "FailureNotifier",
    "customer_display_name",
    "format_amount",
    "render_failure_html",
    # Pipeline
    "TEST_CUSTOMER",
    "PaymentFailureMonitor",
    "build_test_event",
]
