from datetime import tzinfo
from functools import lru_cache

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Query
from fastapi import Response

from activity_graph.core.cache import TTLCache
from activity_graph.services.heatmap_service import HeatmapFetcher
from activity_graph.services.heatmap_service import render_activity_graph
from activity_graph.settings import Settings
from activity_graph.settings import resolve_timezone
from activity_graph.themes import DEFAULT_THEME
from activity_graph.themes import THEMES


SVG_MEDIA_TYPE = "image/svg+xml"
RESPONSE_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Cache-Control": "public, max-age=3600, stale-while-revalidate=7200",
}

router = APIRouter()


@lru_cache
def get_fetcher() -> HeatmapFetcher:
    """Return the process-wide fetcher, configured from settings."""

    settings = Settings()
    return HeatmapFetcher(
        api_base_url=settings.codeberg_api_base_url,
        user_agent=settings.user_agent,
        timeout=settings.upstream_timeout_seconds,
        cache=TTLCache(ttl_ms=settings.cache_ttl_seconds * 1000),
    )


@lru_cache
def get_heatmap_timezone() -> tzinfo:
    return resolve_timezone(Settings().heatmap_timezone)


@router.get("/")
async def root() -> dict[str, object]:
    """Return a basic service greeting with the available themes."""

    return {
        "message": "Codeberg activity graph",
        "default_theme": DEFAULT_THEME,
        "themes": list(THEMES),
    }


@router.get("/health/live")
def health_live() -> dict[str, str]:
    """Return liveness probe response for health checks."""

    return {"status": "ok"}


@router.get("/activity")
@router.get("/api/activity")
def get_activity_graph(
    user: str | None = Query(default=None),
    theme: str | None = Query(default=None),
    fetcher: HeatmapFetcher = Depends(get_fetcher),
    tz: tzinfo = Depends(get_heatmap_timezone),
) -> Response:
    """Return the contribution heatmap SVG, or an SVG error image, for a user."""

    status_code, body = render_activity_graph(
        username=user, theme_key=theme, fetcher=fetcher, tz=tz
    )
    return Response(
        content=body,
        status_code=status_code,
        media_type=SVG_MEDIA_TYPE,
        headers=RESPONSE_HEADERS,
    )
