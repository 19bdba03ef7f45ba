"""Flights app package.

Holds the read-only flight catalogue that bookings reference. Flight search
and offer pricing happen upstream; this app only stores the flights that
customers book and exposes a lookup used by the booking lifecycle.
"""
