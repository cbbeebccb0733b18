# services/notifier.py
# ============================================================================
# STRIPE PAYMENT FAILURE MONITOR - FAILURE NOTIFIER
# ============================================================================
# Renders the payment failure alert and dispatches it through the mail
# transport. One email per call, no retry; failures are logged and re-raised.
# ============================================================================

import html
import re
from datetime import datetime, timezone
from decimal import Decimal
from email.message import EmailMessage
from typing import Optional

from payment_monitor.schemas.event_definitions import (
    CustomerRecord,
    PaymentError,
    PaymentFailureRecord,
    StripeEvent,
)
from payment_monitor.services.mail import IMailTransport
from payment_monitor.storage.log_ring import LogRing

UNKNOWN_CUSTOMER = "Unknown Customer"
UNKNOWN_AMOUNT = "Unknown"
DEFAULT_CURRENCY = "USD"

NEXT_STEPS = (
    "Review the payment method with the customer",
    "Check for insufficient funds or expired cards",
    "Consider reaching out to the customer directly",
    "Monitor for retry attempts",
)


# =============================================================================
# FORMATTING
# =============================================================================

def format_amount(amount: Optional[int]) -> str:
    """Minor units to a two-decimal major-unit string (2500 -> "25.00")."""
    if amount is None:
        return UNKNOWN_AMOUNT
    return f"{Decimal(amount) / 100:.2f}"


def format_currency(currency: Optional[str]) -> str:
    return (currency or DEFAULT_CURRENCY).upper()


def customer_display_name(customer) -> str:
    if isinstance(customer, CustomerRecord):
        return customer.name or customer.email or UNKNOWN_CUSTOMER
    return UNKNOWN_CUSTOMER


def header_safe(value: str) -> str:
    """Collapse line breaks so the value can go into a mail header."""
    return re.sub(r"[\r\n]+", " ", value).strip()


def format_event_time(created: Optional[int]) -> str:
    if created is None:
        return "Unknown"
    return datetime.fromtimestamp(created, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


# =============================================================================
# TEMPLATE
# =============================================================================

def _error_block(error: Optional[PaymentError]) -> str:
    if error is None:
        return ""
    code = html.escape(error.code or "N/A")
    message = html.escape(error.message or "No specific error message")
    error_type = html.escape(error.type or "N/A")
    return f"""
        <div style="background-color: #fff3cd; padding: 15px; border-radius: 5px; margin: 20px 0; border-left: 4px solid #ffc107;">
          <h4 style="color: #856404;">Error Details:</h4>
          <p><strong>Code:</strong> {code}</p>
          <p><strong>Message:</strong> {message}</p>
          <p><strong>Type:</strong> {error_type}</p>
        </div>
"""


def render_failure_html(event: StripeEvent, record: PaymentFailureRecord) -> str:
    name = html.escape(customer_display_name(record.customer))
    amount = html.escape(format_amount(record.amount))
    currency = html.escape(format_currency(record.currency))
    event_type = html.escape(event.type)
    when = html.escape(format_event_time(event.created))
    steps = "\n".join(f"            <li>{step}</li>" for step in NEXT_STEPS)

    return f"""
      <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2 style="color: #dc3545;">Payment Failure Alert</h2>

        <div style="background-color: #f8f9fa; padding: 20px; border-radius: 5px; margin: 20px 0;">
          <h3>Payment Details:</h3>
          <ul>
            <li><strong>Customer:</strong> {name}</li>
            <li><strong>Amount:</strong> {amount} {currency}</li>
            <li><strong>Event Type:</strong> {event_type}</li>
            <li><strong>Time:</strong> {when}</li>
          </ul>
        </div>
{_error_block(record.last_error)}
        <div style="background-color: #d1ecf1; padding: 15px; border-radius: 5px; margin: 20px 0; border-left: 4px solid #17a2b8;">
          <h4 style="color: #0c5460;">Next Steps:</h4>
          <ol>
{steps}
          </ol>
        </div>

        <p style="color: #6c757d; font-size: 14px; margin-top: 30px;">
          This alert was generated automatically by your Stripe Payment Monitor.
        </p>
      </div>
"""


# =============================================================================
# NOTIFIER
# =============================================================================

class FailureNotifier:
    """Builds and sends the payment failure alert email."""

    def __init__(
        self,
        transport: IMailTransport,
        log: LogRing,
        from_email: str,
        to_email: str,
    ):
        self.transport = transport
        self.log = log
        self.from_email = from_email
        self.to_email = to_email

    def build_message(self, event: StripeEvent, record: PaymentFailureRecord) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.from_email
        message["To"] = self.to_email
        message["Subject"] = f"Payment Failed - {header_safe(customer_display_name(record.customer))}"
        message.set_content(render_failure_html(event, record), subtype="html", charset="utf-8")
        return message

    async def notify(self, event: StripeEvent, record: PaymentFailureRecord) -> None:
        self.log.info("Preparing to send email notification", eventType=event.type)

        customer_name = customer_display_name(record.customer)
        amount = format_amount(record.amount)
        try:
            message = self.build_message(event, record)
            await self.transport.send(message)
        except Exception as e:
            self.log.error(
                "Failed to send email notification",
                error=str(e),
                eventType=event.type,
            )
            raise

        self.log.success(
            "Email notification sent successfully",
            customer=customer_name,
            amount=amount,
            eventType=event.type,
        )
