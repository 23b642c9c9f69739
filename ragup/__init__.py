"""Idempotent Docker Compose bring-up for a local RAG stack."""

__version__ = "0.1.0"
