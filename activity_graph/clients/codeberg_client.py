from urllib.parse import quote

import httpx
from pydantic import ValidationError

from activity_graph.api.schemas.heatmap import ActivityRecord
from activity_graph.api.schemas.heatmap import activity_records_adapter


def build_heatmap_url(api_base_url: str, username: str) -> str:
    """Return the heatmap endpoint URL for a user, with the name path-encoded."""

    return f"{api_base_url.rstrip('/')}/api/v1/users/{quote(username, safe='')}/heatmap"


def fetch_heatmap_records(
    username: str,
    api_base_url: str,
    user_agent: str,
    timeout: float = 15.0,
    client: httpx.Client | None = None,
) -> list[ActivityRecord]:
    """Fetch raw per-day activity records for a user from Codeberg.

    Raises:
        httpx.HTTPStatusError: If Codeberg answers with a non-success status.
        httpx.HTTPError: If the request cannot be completed.
        ValueError: If the response body is not a list of heatmap entries.
    """

    url = build_heatmap_url(api_base_url, username)
    headers = {
        "Accept": "application/json",
        "User-Agent": user_agent,
    }

    if client is None:
        response = httpx.get(url, headers=headers, timeout=timeout)
    else:
        response = client.get(url, headers=headers, timeout=timeout)
    response.raise_for_status()

    try:
        return activity_records_adapter.validate_json(response.content)
    except ValidationError as exc:
        raise ValueError("Codeberg heatmap response is invalid") from exc
