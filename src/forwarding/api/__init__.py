"""Forwarding API package."""

from forwarding.api.errors import register_error_handlers
from forwarding.api.routes import consolidation_router, gex_router, package_router, payment_router

__all__ = [
    "consolidation_router",
    "gex_router",
    "package_router",
    "payment_router",
    "register_error_handlers",
]
