# schemas/event_definitions.py
# ============================================================================
# STRIPE PAYMENT FAILURE MONITOR - EVENT SCHEMAS
# ============================================================================
# Inbound Stripe event envelope, per-type object payloads, and the
# normalized payment failure record built from them.
# ============================================================================

from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# SECTION 1: EVENT TYPES
# ============================================================================

class FailureEventType(str, Enum):
    """Stripe event types that trigger a failure alert."""
    PAYMENT_INTENT_FAILED = "payment_intent.payment_failed"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"
    CHARGE_FAILED = "charge.failed"


FAILURE_EVENT_TYPES = frozenset(t.value for t in FailureEventType)


def is_failure_event(event_type: str) -> bool:
    return event_type in FAILURE_EVENT_TYPES


# ============================================================================
# SECTION 2: SHARED VALUE OBJECTS
# ============================================================================

class PaymentError(BaseModel):
    """Structured decline reason attached to a failed payment."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    code: Optional[str] = None
    message: Optional[str] = None
    type: Optional[str] = None


class CustomerRecord(BaseModel):
    """Stripe customer as returned by the Customers API."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None


CustomerRef = Union[CustomerRecord, str]


# ============================================================================
# SECTION 3: EVENT ENVELOPE
# ============================================================================

class EventData(BaseModel):
    model_config = ConfigDict(extra="allow")

    object: Dict[str, Any] = Field(default_factory=dict)


class StripeEvent(BaseModel):
    """Stripe webhook event envelope; `data.object` depends on `type`."""
    model_config = ConfigDict(extra="allow", frozen=True)

    id: Optional[str] = None
    type: str
    created: Optional[int] = None
    livemode: Optional[bool] = None
    data: EventData = Field(default_factory=EventData)

    @property
    def data_object(self) -> Dict[str, Any]:
        return self.data.object


# ============================================================================
# SECTION 4: PER-TYPE OBJECT PAYLOADS
# ============================================================================

class PaymentIntentObject(BaseModel):
    """`data.object` of payment_intent.payment_failed."""
    model_config = ConfigDict(extra="ignore")

    customer: Optional[CustomerRef] = None
    amount: Optional[int] = None
    currency: Optional[str] = None
    last_payment_error: Optional[PaymentError] = None


class InvoiceObject(BaseModel):
    """`data.object` of invoice.payment_failed."""
    model_config = ConfigDict(extra="ignore")

    customer: Optional[CustomerRef] = None
    amount_due: Optional[int] = None
    currency: Optional[str] = None
    last_payment_error: Optional[PaymentError] = None


class ChargeObject(BaseModel):
    """`data.object` of charge.failed."""
    model_config = ConfigDict(extra="ignore")

    customer: Optional[CustomerRef] = None
    amount: Optional[int] = None
    currency: Optional[str] = None
    failure_code: Optional[str] = None
    failure_message: Optional[str] = None


# ============================================================================
# SECTION 5: NORMALIZED RECORDS
# ============================================================================

class PaymentFailureRecord(BaseModel):
    """Uniform view of a failed payment, independent of the event type."""
    model_config = ConfigDict(frozen=True)

    customer: Optional[CustomerRef] = None
    amount: Optional[int] = None
    currency: Optional[str] = None
    last_error: Optional[PaymentError] = None

    def with_customer(self, customer: CustomerRecord) -> "PaymentFailureRecord":
        return self.model_copy(update={"customer": customer})


class PipelineStatus(str, Enum):
    IGNORED = "ignored"
    PROCESSED = "processed"
    FAILED = "failed"


class PipelineResult(BaseModel):
    """Outcome of running the failure pipeline for one authenticated event."""
    status: PipelineStatus
    event_type: str
    event_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != PipelineStatus.FAILED
