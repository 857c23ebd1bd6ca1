"""Console entry point that serves the application with uvicorn."""

import uvicorn

from gatekeeper.config import get_settings


def run() -> None:
    """Serve ``create_app`` on the configured host and port."""
    settings = get_settings()
    uvicorn.run(
        "gatekeeper.main:create_app",
        factory=True,
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
