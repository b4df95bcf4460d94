from fastapi import FastAPI

from activity_graph.api.routes.heatmap import router
from activity_graph.core.middleware import ActivityRateLimitMiddleware
from activity_graph.core.observability import configure_logging
from activity_graph.core.observability import init_sentry
from activity_graph.settings import Settings


def create_app() -> FastAPI:
    """Build the FastAPI application with logging, Sentry and rate limiting."""

    settings = Settings()
    configure_logging(settings)
    init_sentry(settings)

    app = FastAPI(title="Codeberg Activity Graph")
    app.add_middleware(
        ActivityRateLimitMiddleware,
        requests_per_window=settings.rate_limit_per_minute,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.include_router(router)
    return app


app = create_app()
