"""
Event Normalizer
================
Maps the `data.object` of a Stripe failure event onto a PaymentFailureRecord.

Each supported event type registers a mapper together with the pydantic
model its object is validated against. Unknown types, and objects that fail
validation for their declared type, go through the best-effort fallback, so
normalize() never raises for a well-formed envelope.
"""

from typing import Any, Callable, Dict, Optional, Type

import structlog
from pydantic import BaseModel, ValidationError

from payment_monitor.schemas.event_definitions import (
    ChargeObject,
    CustomerRecord,
    FailureEventType,
    InvoiceObject,
    PaymentError,
    PaymentFailureRecord,
    PaymentIntentObject,
    StripeEvent,
)

Mapper = Callable[[Any], PaymentFailureRecord]

CHARGE_ERROR_TYPE = "card_error"


class EventNormalizer:
    """Registry of per-type object mappers with a fallback."""

    def __init__(self):
        self._mappers: Dict[str, tuple[Type[BaseModel], Mapper]] = {}
        self._logger = structlog.get_logger().bind(component="event_normalizer")
        self._register_defaults()

    def register(self, event_type: str, object_model: Type[BaseModel]):
        """Decorator to register a mapper for an event type"""
        def decorator(mapper: Mapper) -> Mapper:
            self._mappers[event_type] = (object_model, mapper)
            return mapper
        return decorator

    @property
    def supported_events(self) -> list[str]:
        return list(self._mappers.keys())

    def normalize(self, event: StripeEvent) -> PaymentFailureRecord:
        raw = event.data_object or {}
        registered = self._mappers.get(event.type)
        if registered is None:
            return fallback_record(raw)

        object_model, mapper = registered
        try:
            obj = object_model.model_validate(raw)
        except ValidationError as e:
            self._logger.warning(
                "object_validation_failed",
                event_type=event.type,
                event_id=event.id,
                errors=e.error_count(),
            )
            return fallback_record(raw)
        return mapper(obj)

    def _register_defaults(self):
        @self.register(FailureEventType.PAYMENT_INTENT_FAILED.value, PaymentIntentObject)
        def map_payment_intent(obj: PaymentIntentObject) -> PaymentFailureRecord:
            return PaymentFailureRecord(
                customer=obj.customer,
                amount=obj.amount,
                currency=obj.currency,
                last_error=obj.last_payment_error,
            )

        @self.register(FailureEventType.INVOICE_PAYMENT_FAILED.value, InvoiceObject)
        def map_invoice(obj: InvoiceObject) -> PaymentFailureRecord:
            return PaymentFailureRecord(
                customer=obj.customer,
                amount=obj.amount_due,
                currency=obj.currency,
                last_error=obj.last_payment_error,
            )

        @self.register(FailureEventType.CHARGE_FAILED.value, ChargeObject)
        def map_charge(obj: ChargeObject) -> PaymentFailureRecord:
            last_error = None
            if obj.failure_code:
                last_error = PaymentError(
                    code=obj.failure_code,
                    message=obj.failure_message,
                    type=CHARGE_ERROR_TYPE,
                )
            return PaymentFailureRecord(
                customer=obj.customer,
                amount=obj.amount,
                currency=obj.currency,
                last_error=last_error,
            )


# =============================================================================
# FALLBACK
# =============================================================================

def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if not isinstance(value, int):
        return None
    return value


def _as_customer(value: Any):
    if isinstance(value, str) and value:
        return value
    if isinstance(value, dict):
        try:
            return CustomerRecord.model_validate(value)
        except ValidationError:
            return None
    return None


def _as_error(value: Any) -> Optional[PaymentError]:
    if not isinstance(value, dict):
        return None
    try:
        return PaymentError.model_validate(value)
    except ValidationError:
        return None


def fallback_record(raw: Dict[str, Any]) -> PaymentFailureRecord:
    """Best-effort mapping for objects of unknown or unexpected shape."""
    currency = raw.get("currency")
    return PaymentFailureRecord(
        customer=_as_customer(raw.get("customer")),
        amount=_as_int(raw.get("amount")) or _as_int(raw.get("amount_due")) or None,
        currency=currency if isinstance(currency, str) and currency else None,
        last_error=_as_error(raw.get("last_payment_error")),
    )

