"""Access log for every request that crosses the gates.

One ``request_completed`` event is written per request. Besides the usual
method, path, status and duration it carries what the gates decided: the
caller recognised by the identity middleware and the rate limit record left
on ``request.state.rate_limit``. A 429 produced by the gate is logged
with ``rate_limited=True``.
"""

import time
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from gatekeeper.core.utils.network import get_client_ip


if TYPE_CHECKING:
    from starlette.types import ASGIApp

    from gatekeeper.core.rate_limit.middleware import GateRecord


logger = structlog.get_logger()

QUIET_PATHS = (
    "/health/live",
    "/health/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
)


def gate_fields(request: Request) -> dict[str, Any]:
    """Collect what the identity and rate limit gates recorded for a request."""
    fields: dict[str, Any] = {}

    user_id = getattr(request.state, "user_id", None)
    if user_id:
        fields["user_id"] = str(user_id)

    record: "GateRecord | None" = getattr(request.state, "rate_limit", None)
    if record is not None:
        fields["rate_limit_policy"] = record.policy
        fields["rate_limit_key"] = record.identifier
        fields["rate_limit_outcome"] = str(record.outcome)
        if record.remaining is not None:
            fields["rate_limit_remaining"] = record.remaining
        if record.rejected:
            fields["rate_limited"] = True

    return fields


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Write the access log, including the gate decisions.

    Must be registered so that it runs outside the identity and rate limit
    middleware; it reads what they leave on ``request.state`` once the
    response comes back.
    """

    def __init__(
        self,
        app: "ASGIApp",
        quiet_paths: Iterable[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.quiet_paths = tuple(QUIET_PATHS if quiet_paths is None else quiet_paths)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path.startswith(self.quiet_paths):
            return await call_next(request)

        event: dict[str, Any] = {"method": request.method, "path": path}
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            event["request_id"] = request_id

        logger.debug("request_started", client_ip=get_client_ip(request), **event)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception(
                "request_failed",
                duration_ms=_elapsed_ms(started),
                error=str(exc),
                **event,
                **gate_fields(request),
            )
            raise

        event.update(
            status_code=response.status_code,
            duration_ms=_elapsed_ms(started),
            **gate_fields(request),
        )
        _log_for_status(response.status_code)("request_completed", **event)
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def _log_for_status(status_code: int):
    if status_code >= 500:
        return logger.error
    if status_code >= 400:
        return logger.warning
    return logger.info
