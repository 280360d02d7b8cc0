"""Device discovery utilities for Tedee Hub."""

from discovery.tedee import discover_tedee, find_locks

__all__ = [
    "discover_tedee",
    "find_locks",
]
