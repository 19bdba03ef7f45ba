"""Bookings app package.

This app encapsulates the booking domain: the booking and passenger
models, passenger composition rules and the booking state machine driven
by ``BookingLifecycleManager``. Status writes that depend on a prior read
happen inside ``transaction.atomic()`` with the booking row locked.
"""
