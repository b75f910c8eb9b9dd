"""
Billing package - subscriptions, metered storage charges and collection.

This package integrates with:
- Stripe: off-session card payments keyed by ledger attempt id

The nightly sweep (reconciliation, collection, reminders) lives in
BillingSweepService; terminated accounts cascade into workspaces through
CascadeService.
"""
