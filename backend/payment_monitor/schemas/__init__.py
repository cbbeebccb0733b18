# schemas/__init__.py
from payment_monitor.schemas.event_definitions import (
    FAILURE_EVENT_TYPES,
    ChargeObject,
    CustomerRecord,
    CustomerRef,
    EventData,
    FailureEventType,
    InvoiceObject,
    PaymentError,
    PaymentFailureRecord,
    PaymentIntentObject,
    PipelineResult,
    PipelineStatus,
    StripeEvent,
    is_failure_event,
)

__all__ = [
    "FAILURE_EVENT_TYPES",
    "ChargeObject",
    "CustomerRecord",
    "CustomerRef",
    "EventData",
    "FailureEventType",
    "InvoiceObject",
    "PaymentError",
    "PaymentFailureRecord",
    "PaymentIntentObject",
    "PipelineResult",
    "PipelineStatus",
    "StripeEvent",
    "is_failure_event",
]
