"""Remote API clients for Tedee Hub."""

from client.tedee import TEDEE_API_BASE, TedeeClient, create_client

__all__ = [
    "TEDEE_API_BASE",
    "TedeeClient",
    "create_client",
]
