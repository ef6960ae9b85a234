"""Offline stand-ins for external services."""
