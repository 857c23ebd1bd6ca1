"""Request network helpers."""

from starlette.requests import Request


UNKNOWN_CLIENT = "unknown"


def get_client_ip(request: Request) -> str:
    """Extract the real client IP from a request.

    Precedence: first X-Forwarded-For entry, X-Real-IP, the transport
    peer address, then the literal "unknown".

    Args:
        request: The incoming request

    Returns:
        The client IP address or "unknown"
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # X-Forwarded-For can contain multiple IPs; the first is the original client
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host

    return UNKNOWN_CLIENT
