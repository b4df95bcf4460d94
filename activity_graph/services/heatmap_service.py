import logging
import re
from datetime import UTC
from datetime import date
from datetime import tzinfo

import httpx

from activity_graph.api.schemas.heatmap import ActivityRecord
from activity_graph.clients.codeberg_client import fetch_heatmap_records
from activity_graph.core.cache import TTLCache
from activity_graph.services.grid_builder import build_grid
from activity_graph.services.svg_renderer import render_error_svg
from activity_graph.services.svg_renderer import render_heatmap_svg
from activity_graph.themes import get_theme


logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class CodebergAPIError(Exception):
    """Raised when heatmap data cannot be obtained from Codeberg."""


class UserNotFoundError(CodebergAPIError):
    """Raised when Codeberg has no user with the requested name."""

    def __init__(self, username: str) -> None:
        super().__init__(f'User "{username}" not found on Codeberg')
        self.username = username


class UpstreamStatusError(CodebergAPIError):
    """Raised when Codeberg answers with a non-success, non-404 status."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"Codeberg API error: {status_code}")
        self.status_code = status_code


class UpstreamNetworkError(CodebergAPIError):
    """Raised when Codeberg is unreachable or returns an unreadable body."""

    def __init__(self) -> None:
        super().__init__("Codeberg API request failed")


class HeatmapFetcher:
    """Fetch heatmap records for users, memoizing results in a TTL cache."""

    def __init__(
        self,
        api_base_url: str = "https://codeberg.org",
        user_agent: str = "codeberg-activity-graph/1.0",
        timeout: float = 15.0,
        cache: TTLCache[list[ActivityRecord]] | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.api_base_url = api_base_url
        self.user_agent = user_agent
        self.timeout = timeout
        self.cache = cache if cache is not None else TTLCache()
        self.client = client

    def fetch_heatmap(self, username: str) -> list[ActivityRecord]:
        cache_key = username.lower()
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("heatmap cache hit for %s", cache_key)
            return cached

        logger.info("fetching heatmap for %s from %s", username, self.api_base_url)
        try:
            records = fetch_heatmap_records(
                username=username,
                api_base_url=self.api_base_url,
                user_agent=self.user_agent,
                timeout=self.timeout,
                client=self.client,
            )
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            logger.warning("Codeberg returned %s for %s", status_code, username)
            if status_code == 404:
                raise UserNotFoundError(username) from exc
            raise UpstreamStatusError(status_code) from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Codeberg request for %s failed: %s", username, exc)
            raise UpstreamNetworkError() from exc

        self.cache.put(cache_key, records)
        return records


def is_valid_username(username: str | None) -> bool:
    return bool(username) and USERNAME_PATTERN.fullmatch(username) is not None


def render_activity_graph(
    username: str | None,
    theme_key: str | None,
    fetcher: HeatmapFetcher,
    today: date | None = None,
    tz: tzinfo = UTC,
) -> tuple[int, str]:
    """Produce the status code and SVG body for a heatmap request.

    The body is always a complete SVG document: the heatmap on success, an
    error image otherwise.
    """

    theme = get_theme(theme_key)

    if not is_valid_username(username):
        return 400, render_error_svg("Missing or invalid ?user= parameter", theme)

    try:
        records = fetcher.fetch_heatmap(username)
    except UserNotFoundError as exc:
        return 404, render_error_svg(str(exc), theme)
    except CodebergAPIError as exc:
        return 502, render_error_svg(str(exc), theme)

    grid = build_grid(records, today=today, tz=tz)
    return 200, render_heatmap_svg(username, grid, theme)
