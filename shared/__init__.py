"""
Shared Kernel

This module contains base classes and utilities shared across all domain contexts:
domain events, value objects, the error hierarchy, the unit of work and the
message bus that delivers events to other bounded contexts after commit.
"""
