"""Clients for external AI providers."""
