"""Shared fixtures for the payment failure monitor test suite."""

import pytest
from fastapi.testclient import TestClient

from payment_monitor.api.server import create_app
from payment_monitor.config import Settings
from payment_monitor.schemas.event_definitions import CustomerRecord
from payment_monitor.services.customers import InMemoryCustomerDirectory
from payment_monitor.services.mail import InMemoryMailTransport
from payment_monitor.services.monitor import PaymentFailureMonitor
from payment_monitor.storage.log_ring import LogRing

from tests.factories import WEBHOOK_SECRET


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        STRIPE_API_KEY="sk_test_dummy",
        STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET,
        GMAIL_FROM_EMAIL="alerts@example.com",
        NOTIFICATION_EMAIL="ops@example.com",
        MAIL_BACKEND="memory",
    )


@pytest.fixture()
def log_ring() -> LogRing:
    return LogRing(capacity=100)


@pytest.fixture()
def transport() -> InMemoryMailTransport:
    return InMemoryMailTransport()


@pytest.fixture()
def customers() -> InMemoryCustomerDirectory:
    return InMemoryCustomerDirectory(
        {"cus_123": CustomerRecord(id="cus_123", name="Jane Doe", email="jane@example.com")}
    )


@pytest.fixture()
def monitor(settings, log_ring, customers, transport) -> PaymentFailureMonitor:
    return PaymentFailureMonitor(
        settings,
        log=log_ring,
        customers=customers,
        transport=transport,
    )


@pytest.fixture()
def client(settings, monitor):
    app = create_app(settings=settings, monitor=monitor)
    with TestClient(app) as test_client:
        yield test_client
