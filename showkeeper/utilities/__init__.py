"""Shared helpers for data migrations and queries."""
