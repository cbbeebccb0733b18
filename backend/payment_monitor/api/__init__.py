# api/__init__.py
from payment_monitor.api.server import (
    app,
    create_app,
    parse_limit,
)

__all__ = [
    "app",
    "create_app",
    "parse_limit",
]
