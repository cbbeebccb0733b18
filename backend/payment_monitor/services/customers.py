# services/customers.py
# ============================================================================
# STRIPE PAYMENT FAILURE MONITOR - CUSTOMER ENRICHMENT
# ============================================================================
# Resolves bare `cus_...` references to full customer records. Lookup
# failures degrade to the original reference and never abort the pipeline.
# ============================================================================

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Optional

import stripe

from payment_monitor.schemas.event_definitions import (
    CustomerRecord,
    PaymentFailureRecord,
)
from payment_monitor.storage.log_ring import LogRing


class ICustomerDirectory(ABC):
    """Customer lookup interface"""

    @abstractmethod
    async def retrieve(self, customer_id: str) -> CustomerRecord:
        pass


class StripeCustomerDirectory(ICustomerDirectory):
    """Looks customers up through the Stripe Customers API."""

    def __init__(self, api_key: Optional[str] = None, stripe_client=stripe):
        self._stripe = stripe_client
        self._api_key = api_key

    async def retrieve(self, customer_id: str) -> CustomerRecord:
        def fetch():
            if self._api_key:
                return self._stripe.Customer.retrieve(customer_id, api_key=self._api_key)
            return self._stripe.Customer.retrieve(customer_id)

        customer = await asyncio.get_running_loop().run_in_executor(None, fetch)
        return CustomerRecord(
            id=getattr(customer, "id", None) or customer_id,
            name=getattr(customer, "name", None),
            email=getattr(customer, "email", None),
        )


class InMemoryCustomerDirectory(ICustomerDirectory):
    """Dict-backed directory for local runs and tests."""

    def __init__(self, customers: Optional[Dict[str, CustomerRecord]] = None):
        self._customers: Dict[str, CustomerRecord] = dict(customers or {})

    async def retrieve(self, customer_id: str) -> CustomerRecord:
        try:
            return self._customers[customer_id]
        except KeyError:
            raise LookupError(f"No such customer: '{customer_id}'") from None


class CustomerEnricher:
    """Replaces a string customer reference with the resolved record."""

    def __init__(self, directory: ICustomerDirectory, log: LogRing):
        self.directory = directory
        self.log = log

    async def enrich(self, record: PaymentFailureRecord) -> PaymentFailureRecord:
        if not record.customer or not isinstance(record.customer, str):
            return record

        try:
            customer = await self.directory.retrieve(record.customer)
        except Exception as e:
            self.log.warning(
                "Could not retrieve customer details",
                customerId=record.customer,
                error=str(e),
            )
            return record

        return record.with_customer(customer)
