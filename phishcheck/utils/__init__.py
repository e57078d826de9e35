"""Shared helpers for URL parsing and string similarity."""
