"""Console entry point: serve the API with uvicorn on the configured host/port."""

from __future__ import annotations

import uvicorn

from app.core.settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        # Logging is configured by app.core.logging; keep uvicorn from replacing it.
        log_config=None,
        reload=settings.is_development,
    )


if __name__ == "__main__":
    main()
