"""Stripe payment failure monitor: webhook in, alert email out."""

__version__ = "1.0.0"
