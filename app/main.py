from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.exception_handlers import register_exception_handlers
from app.api.schemas import HealthOut
from app.core.logging import setup_logging
from app.core.metrics import PrometheusMetricsMiddleware, metrics_router
from app.core.middleware.http_logging import HttpLoggingMiddleware
from app.core.settings import get_settings
from app.reports.router import router as reports_router

setup_logging()


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Denial Report API",
        description=(
            "Generates insurance-ready clinical reports from payer denial details and "
            "attached clinical notes using a large language model.\n\n"
            "Design principles:\n"
            "- Submissions and generated reports are never persisted.\n"
            "- One outbound model call per request; no retries.\n"
            "- Logging and metrics avoid PHI/PII by using route templates and metadata only."
        ),
        docs_url="/swagger",
        openapi_tags=[
            {
                "name": "health",
                "description": "Basic uptime check for load balancers and monitoring.",
            },
            {
                "name": "reports",
                "description": "Generate a clinical report from a multipart submission.",
            },
            {
                "name": "metrics",
                "description": "Prometheus-compatible metrics endpoint.",
            },
        ],
    )

    app.add_middleware(PrometheusMetricsMiddleware)
    app.add_middleware(HttpLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    register_exception_handlers(app)

    @app.get(
        "/health",
        response_model=HealthOut,
        tags=["health"],
        summary="Health check",
        description=(
            "Lightweight endpoint to verify the API process is running.\n\n"
            "It does not call the language model provider, so it is safe for frequent "
            "uptime checks."
        ),
    )
    async def health() -> HealthOut:
        return HealthOut(status="ok")

    app.include_router(metrics_router)
    app.include_router(reports_router)
    return app


app = create_app()
