"""Gatekeeper: token authority and sliding window rate limiting for FastAPI."""

__version__ = "0.1.0"
