"""Payments app package.

Coordinates payment intents with the external gateway: at most one pending
payment per booking, amounts snapshotted from the booking and never taken
from the client, and webhook reconciliation keyed by the gateway intent id.
"""
