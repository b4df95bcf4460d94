from concurrent.futures import ThreadPoolExecutor
from threading import Lock

import httpx
import pytest

from activity_graph.clients.codeberg_client import build_heatmap_url
from activity_graph.core.cache import TTLCache
from activity_graph.services.heatmap_service import HeatmapFetcher
from activity_graph.services.heatmap_service import UpstreamNetworkError
from activity_graph.services.heatmap_service import UpstreamStatusError
from activity_graph.services.heatmap_service import UserNotFoundError
from activity_graph.services.heatmap_service import render_activity_graph
from activity_graph.themes import THEMES


HEATMAP_PAYLOAD = [
    {"timestamp": 1770714000, "contributions": 3},
    {"timestamp": 1770717600, "contributions": 2},
]


class FakeClock:
    def __init__(self, now: int = 1_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


def make_fetcher(handler, clock: FakeClock | None = None) -> HeatmapFetcher:
    cache = TTLCache(ttl_ms=3_600_000, clock=clock or FakeClock())
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HeatmapFetcher(api_base_url="https://codeberg.test", cache=cache, client=client)


def test_build_heatmap_url_encodes_username() -> None:
    assert (
        build_heatmap_url("https://codeberg.org/", "a/b c")
        == "https://codeberg.org/api/v1/users/a%2Fb%20c/heatmap"
    )


def test_fetch_heatmap_sends_expected_request() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=HEATMAP_PAYLOAD)

    records = make_fetcher(handler).fetch_heatmap("Octocat")

    assert [record.contributions for record in records] == [3, 2]
    assert len(requests) == 1
    assert requests[0].url.path == "/api/v1/users/Octocat/heatmap"
    assert requests[0].headers["Accept"] == "application/json"
    assert requests[0].headers["User-Agent"] == "codeberg-activity-graph/1.0"


def test_fetch_heatmap_uses_cache_case_insensitively() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json=HEATMAP_PAYLOAD)

    fetcher = make_fetcher(handler)
    first = fetcher.fetch_heatmap("Octocat")
    second = fetcher.fetch_heatmap("octocat")

    assert first == second
    assert len(calls) == 1
    assert len(fetcher.cache) == 1


def test_fetch_heatmap_refetches_after_ttl() -> None:
    clock = FakeClock()
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json=HEATMAP_PAYLOAD[: len(calls)])

    fetcher = make_fetcher(handler, clock)
    fetcher.fetch_heatmap("octocat")
    clock.now += 3_599_999
    cached = fetcher.fetch_heatmap("octocat")
    clock.now += 1
    refreshed = fetcher.fetch_heatmap("octocat")

    assert len(calls) == 2
    assert len(cached) == 1
    assert len(refreshed) == 2


def test_fetch_heatmap_raises_not_found_for_404() -> None:
    fetcher = make_fetcher(lambda request: httpx.Response(404))

    with pytest.raises(UserNotFoundError) as exc_info:
        fetcher.fetch_heatmap("ghost")

    assert str(exc_info.value) == 'User "ghost" not found on Codeberg'


def test_fetch_heatmap_raises_upstream_error_with_status() -> None:
    fetcher = make_fetcher(lambda request: httpx.Response(503))

    with pytest.raises(UpstreamStatusError) as exc_info:
        fetcher.fetch_heatmap("octocat")

    assert exc_info.value.status_code == 503
    assert len(fetcher.cache) == 0


def test_fetch_heatmap_raises_network_error_on_transport_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamNetworkError):
        make_fetcher(handler).fetch_heatmap("octocat")


@pytest.mark.parametrize(
    "body",
    [b"<html>oops</html>", b'{"message": "nope"}', b'[{"timestamp": "soon"}]'],
)
def test_fetch_heatmap_raises_network_error_on_malformed_body(body: bytes) -> None:
    fetcher = make_fetcher(lambda request: httpx.Response(200, content=body))

    with pytest.raises(UpstreamNetworkError):
        fetcher.fetch_heatmap("octocat")


def test_render_rejects_invalid_username_without_fetching() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json=[])

    fetcher = make_fetcher(handler)

    for username in ("../../x", "", None, "bad user"):
        status_code, body = render_activity_graph(username, "codeberg", fetcher)
        assert status_code == 400
        assert "Missing or invalid ?user= parameter" in body

    assert calls == []


def test_render_maps_not_found_to_404_with_username() -> None:
    fetcher = make_fetcher(lambda request: httpx.Response(404))

    status_code, body = render_activity_graph("ghost", "github", fetcher)

    assert status_code == 404
    assert "ghost" in body
    assert THEMES["github"].bg in body


@pytest.mark.parametrize(
    ("handler", "message"),
    [
        (lambda request: httpx.Response(500), "Codeberg API error: 500"),
        (lambda request: httpx.Response(200, content=b"not json"), "Codeberg API request failed"),
    ],
)
def test_render_maps_other_failures_to_502(handler, message: str) -> None:
    status_code, body = render_activity_graph("octocat", None, make_fetcher(handler))

    assert status_code == 502
    assert message in body


def test_render_success_returns_heatmap() -> None:
    fetcher = make_fetcher(lambda request: httpx.Response(200, json=[]))

    status_code, body = render_activity_graph("octocat", "codeberg", fetcher)

    assert status_code == 200
    assert "octocat · 0 contributions in the last year" in body


def test_render_unknown_theme_falls_back_to_codeberg() -> None:
    fetcher = make_fetcher(lambda request: httpx.Response(200, json=[]))

    _, body = render_activity_graph("octocat", "solarized", fetcher)
    _, default_body = render_activity_graph("octocat", "codeberg", fetcher)

    assert body == default_body
    assert THEMES["codeberg"].bg in body


@pytest.mark.parametrize("timestamp", [10**15, -1])
def test_render_maps_out_of_range_timestamps_to_502(timestamp: int) -> None:
    payload = [{"timestamp": timestamp, "contributions": 1}]
    fetcher = make_fetcher(lambda request: httpx.Response(200, json=payload))

    status_code, body = render_activity_graph("octocat", None, fetcher)

    assert status_code == 502
    assert "Codeberg API request failed" in body
    assert len(fetcher.cache) == 0


def test_concurrent_fetches_for_same_user_share_one_cache_entry() -> None:
    calls: list[str] = []
    calls_lock = Lock()

    def handler(request: httpx.Request) -> httpx.Response:
        with calls_lock:
            calls.append(request.url.path)
        return httpx.Response(200, json=HEATMAP_PAYLOAD)

    fetcher = make_fetcher(handler)

    with ThreadPoolExecutor(max_workers=8) as executor:
        results = list(executor.map(fetcher.fetch_heatmap, ["octocat"] * 16))

    assert all(
        [record.contributions for record in records] == [3, 2] for records in results
    )
    assert len(fetcher.cache) == 1
    assert 1 <= len(calls) <= 16
