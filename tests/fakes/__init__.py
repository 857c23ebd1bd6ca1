"""Test doubles."""

from tests.fakes.store import FakeClock, InMemoryStore


__all__ = ["FakeClock", "InMemoryStore"]
