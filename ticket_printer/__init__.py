"""Ticket printer client: event-driven receipt and kitchen ticket printing."""

__version__ = "1.0.0"
