"""Shared helpers for auth, validation, caching headers and startup checks."""
