"""API routing."""

from gatekeeper.api.router import api_router


__all__ = ["api_router"]
