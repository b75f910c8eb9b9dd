"""Billing API routes."""

from packages.billing.routes import billing, internal

__all__ = ["billing", "internal"]
