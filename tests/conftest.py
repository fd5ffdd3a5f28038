"""Shared test fixtures for the market data tools."""

from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import pytest
import pytest_asyncio

from marketdesk.config import FetchSettings

DAY_SECONDS = 86_400
# 2024-01-02 14:30:00 UTC
BASE_TS = 1_704_205_800


def _chart_body(
    symbol: str = "AAPL",
    closes: list[float | None] | None = None,
    timestamps: list[int] | None = None,
    meta: dict[str, Any] | None = None,
    **arrays: list,
) -> dict[str, Any]:
    closes = closes if closes is not None else [100.0, 101.0, 102.0]
    if timestamps is None:
        timestamps = [BASE_TS + i * DAY_SECONDS for i in range(len(closes))]
    quote = {
        "open": arrays.get("opens", [c for c in closes]),
        "high": arrays.get("highs", [None if c is None else c + 1 for c in closes]),
        "low": arrays.get("lows", [None if c is None else c - 1 for c in closes]),
        "close": closes,
        "volume": arrays.get("volumes", [1_000_000 + i for i in range(len(closes))]),
    }
    base_meta = {
        "symbol": symbol,
        "currency": "USD",
        "gmtoffset": 0,
        "regularMarketPrice": closes[-1] if closes else None,
        "chartPreviousClose": closes[0] if closes else None,
    }
    base_meta.update(meta or {})
    return {
        "chart": {
            "result": [
                {
                    "meta": base_meta,
                    "timestamp": timestamps,
                    "indicators": {"quote": [quote]},
                }
            ],
            "error": None,
        }
    }


@pytest.fixture
def make_chart_body() -> Callable[..., dict[str, Any]]:
    """Builder for upstream chart envelopes with daily timestamps from BASE_TS."""
    return _chart_body


@pytest_asyncio.fixture
async def mock_http_client() -> AsyncIterator[Callable[..., httpx.AsyncClient]]:
    """Factory for AsyncClients over a MockTransport handler; all are closed on teardown."""
    clients: list[httpx.AsyncClient] = []

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.aclose()


@pytest.fixture
def fetch_settings() -> FetchSettings:
    return FetchSettings(base_url="https://charts.test", max_retries=3, retry_base_delay=1.0)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
