"""Billing repositories."""
