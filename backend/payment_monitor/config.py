# payment_monitor/config.py
# ============================================================================
# STRIPE PAYMENT FAILURE MONITOR - CONFIGURATION
# ============================================================================
# Environment-driven settings for Stripe, Gmail and the HTTP server
# ============================================================================

import os
from typing import Optional


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Settings:
    """Service configuration read from the environment at construction."""

    SERVICE_NAME = "Stripe Payment Failure Monitor"
    VERSION = "1.0.0"

    def __init__(self, **overrides):
        # Stripe
        self.STRIPE_API_KEY: str = os.getenv("STRIPE_API_KEY", "")
        self.STRIPE_WEBHOOK_SECRET: str = os.getenv("STRIPE_WEBHOOK_SECRET", "")
        self.STRIPE_WEBHOOK_TOLERANCE: int = _int_env("STRIPE_WEBHOOK_TOLERANCE", 300)

        # Gmail
        self.GMAIL_REFRESH_TOKEN: str = os.getenv("GMAIL_REFRESH_TOKEN", "")
        self.GMAIL_CLIENT_ID: str = os.getenv("GMAIL_CLIENT_ID", "")
        self.GMAIL_CLIENT_SECRET: str = os.getenv("GMAIL_CLIENT_SECRET", "")
        self.GMAIL_TOKEN_URI: str = os.getenv(
            "GMAIL_TOKEN_URI", "https://oauth2.googleapis.com/token"
        )
        self.GMAIL_FROM_EMAIL: str = os.getenv("GMAIL_FROM_EMAIL") or "noreply@yourcompany.com"
        self.NOTIFICATION_EMAIL: str = os.getenv("NOTIFICATION_EMAIL") or "admin@yourcompany.com"
        self.MAIL_BACKEND: str = os.getenv("MAIL_BACKEND", "gmail").lower()

        # Observability
        self.LOG_RING_CAPACITY: int = _int_env("LOG_RING_CAPACITY", 100)
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

        # Server
        self.PORT: int = _int_env("PORT", 3000)
        self.ENV: str = os.getenv("ENV", "production")
        self.CORS_ORIGINS: list[str] = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)

    @property
    def gmail_configured(self) -> bool:
        return bool(self.GMAIL_REFRESH_TOKEN)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the process settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
