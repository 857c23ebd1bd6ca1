"""Shared utilities."""

from gatekeeper.core.utils.network import get_client_ip


__all__ = ["get_client_ip"]
