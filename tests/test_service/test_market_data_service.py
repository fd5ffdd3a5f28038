"""Tests for MarketDataService -- budget, fetch, normalize, render wired together.

Upstream is simulated with httpx.MockTransport keyed on the chart path.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import httpx
import pytest

from marketdesk.budget import RequestBudget
from marketdesk.config import BudgetSettings, FetchSettings
from marketdesk.exceptions import (
    EmptySeries,
    ExhaustedRetries,
    InvalidParameter,
    RateLimited,
    UpstreamError,
)
from marketdesk.fetch.fetcher import ResilientFetcher
from marketdesk.service import MarketDataService

NOW = datetime(2024, 2, 1, 21, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_service(mock_http_client, fetch_settings: FetchSettings, clock):
    """Build a service over a MockTransport handler, a fake clock and a fixed NOW."""

    def _make(handler, per_minute: int = 20) -> MarketDataService:
        fetcher = ResilientFetcher(mock_http_client(handler), fetch_settings, sleep=AsyncMock())
        budget = RequestBudget(BudgetSettings(per_minute=per_minute, per_day=500), clock=clock)
        return MarketDataService(fetcher, budget, fetch_settings, now=lambda: NOW)

    return _make


class TestStockHistory:
    @pytest.mark.asyncio
    async def test_aapl_month_end_to_end(self, make_service, clock, make_chart_body) -> None:
        closes = [181.21] + [180.0 - i * 0.25 for i in range(28)] + [176.08]
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=make_chart_body("AAPL", closes=closes))

        service = make_service(handler)
        text = await service.stock_history("AAPL", "1mo", "1d")

        assert text.startswith("Historical data for AAPL (1mo, 1d intervals)\nCurrency: USD\n")
        assert text.endswith("Price Change: $-5.13 (-2.83%)")

        request = seen[0]
        assert request.url.path == "/v8/finance/chart/AAPL"
        assert request.url.params["interval"] == "1d"
        assert int(request.url.params["period2"]) == int(NOW.timestamp())
        assert int(request.url.params["period2"]) - int(request.url.params["period1"]) == 30 * 86_400

    @pytest.mark.asyncio
    @pytest.mark.parametrize("period", ["2d", "1w", "", "MAX", "1M"])
    async def test_invalid_period_makes_no_request(self, make_service, clock, period) -> None:
        handler = AsyncMock()
        service = make_service(handler)

        with pytest.raises(InvalidParameter) as exc_info:
            await service.stock_history("AAPL", period, "1d")

        assert "Valid periods are: 1d, 5d, 1mo, 3mo, 6mo, 1y, 2y, 5y, 10y, ytd, max" in str(exc_info.value)
        handler.assert_not_called()
        assert service._budget.remaining()["minute"] == 20

    @pytest.mark.asyncio
    async def test_invalid_interval(self, make_service, clock) -> None:
        service = make_service(AsyncMock())
        with pytest.raises(InvalidParameter, match="Invalid interval: 2h"):
            await service.stock_history("AAPL", "1mo", "2h")

    @pytest.mark.asyncio
    async def test_no_timestamps_is_informational(self, make_service, clock, make_chart_body) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=make_chart_body("NEWCO", closes=[]))

        service = make_service(handler)
        text = await service.stock_history("NEWCO")
        assert text == "No historical data found for symbol: NEWCO"

    @pytest.mark.asyncio
    async def test_404_is_informational(self, make_service, clock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            body = {"chart": {"result": None, "error": {"code": "Not Found", "description": "No data found"}}}
            return httpx.Response(404, json=body)

        service = make_service(handler)
        assert await service.stock_history("ZZZZ") == "No historical data found for symbol: ZZZZ"

    @pytest.mark.asyncio
    async def test_server_error_is_upstream_error(self, make_service, clock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            body = {"chart": {"result": None, "error": {"code": "Internal", "description": "boom"}}}
            return httpx.Response(500, json=body)

        service = make_service(handler)
        with pytest.raises(UpstreamError) as exc_info:
            await service.stock_history("AAPL")
        assert exc_info.value.status_code == 500
        assert str(exc_info.value) == "Upstream returned HTTP 500: boom"

    @pytest.mark.asyncio
    async def test_non_json_body(self, make_service, clock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>consent</html>")

        service = make_service(handler)
        with pytest.raises(UpstreamError, match="not valid JSON"):
            await service.stock_history("AAPL")


class TestBudgetIntegration:
    @pytest.mark.asyncio
    async def test_rate_limited_after_capacity(self, make_service, clock, make_chart_body) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=make_chart_body())

        service = make_service(handler, per_minute=2)
        await service.stock_quote("AAPL")
        await service.stock_quote("AAPL")
        with pytest.raises(RateLimited):
            await service.stock_quote("AAPL")
        assert len(calls) == 2

        clock.advance(60)
        await service.stock_quote("AAPL")
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_failed_fetch_keeps_quota_spent(self, make_service, clock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        service = make_service(handler)
        with pytest.raises(ExhaustedRetries):
            await service.stock_quote("AAPL")
        assert service._budget.remaining()["minute"] == 19


class TestStockQuote:
    @pytest.mark.asyncio
    async def test_renders_quote(self, make_service, clock, make_chart_body) -> None:
        body = make_chart_body(
            "AAPL",
            closes=[185.2],
            meta={
                "shortName": "Apple Inc.",
                "regularMarketPrice": 185.2,
                "chartPreviousClose": 184.0,
                "regularMarketDayHigh": 186.95,
                "regularMarketVolume": 82488700,
            },
        )

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["range"] == "1d"
            return httpx.Response(200, json=body)

        service = make_service(handler)
        text = await service.stock_quote("AAPL")

        assert "Name: Apple Inc." in text
        assert "Price: $185.20" in text
        assert "Change: $1.20 (0.65%)" in text
        assert "Day High: $186.95" in text
        assert "Day Low" not in text
        assert "Volume: 82,488,700" in text

    @pytest.mark.asyncio
    async def test_unknown_symbol(self, make_service, clock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"chart": {"result": None}})

        service = make_service(handler)
        assert await service.stock_quote("ZZZZ") == "No quote data found for symbol: ZZZZ"


class TestMarketOverview:
    @staticmethod
    def _index_body(make_chart_body, symbol: str, name: str, price: float, prev: float) -> dict:
        return make_chart_body(
            symbol,
            closes=[price],
            meta={"shortName": name, "regularMarketPrice": price, "chartPreviousClose": prev},
        )

    @pytest.mark.asyncio
    async def test_default_indices(self, make_service, clock, make_chart_body) -> None:
        bodies = {
            "/v8/finance/chart/%5EGSPC": self._index_body(make_chart_body, "^GSPC", "S&P 500", 4800.0, 4750.0),
            "/v8/finance/chart/%5EDJI": self._index_body(make_chart_body, "^DJI", "Dow 30", 37000.0, 37370.0),
            "/v8/finance/chart/%5EIXIC": self._index_body(make_chart_body, "^IXIC", "Nasdaq", 15000.0, 15000.0),
        }

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=bodies[request.url.raw_path.decode().split("?")[0]])

        service = make_service(handler)
        text = await service.market_overview()

        assert text.split("\n") == [
            "S&P 500: $4800.00 (1.05%)",
            "Dow 30: $37000.00 (-0.99%)",
            "Nasdaq: $15000.00 (0.00%)",
        ]

    @pytest.mark.asyncio
    async def test_one_failure_fails_batch(self, make_service, clock, make_chart_body) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if "DJI" in str(request.url):
                return httpx.Response(503, json={})
            return httpx.Response(200, json=make_chart_body())

        service = make_service(handler)
        with pytest.raises(UpstreamError):
            await service.market_overview(["^GSPC", "^DJI"])

    @pytest.mark.asyncio
    async def test_missing_index_fails_batch(self, make_service, clock, make_chart_body) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if "NOPE" in str(request.url):
                return httpx.Response(404, json={})
            return httpx.Response(200, json=make_chart_body())

        service = make_service(handler)
        with pytest.raises(EmptySeries):
            await service.market_overview(["^GSPC", "NOPE"])

    @pytest.mark.asyncio
    async def test_explicit_empty_list_returns_empty_text(self, make_service, clock) -> None:
        handler = AsyncMock()
        service = make_service(handler)

        assert await service.market_overview([]) == ""
        handler.assert_not_called()
        assert service._budget.remaining()["minute"] == 20

    @pytest.mark.asyncio
    async def test_batch_larger_than_budget_sends_nothing(
        self, make_service, clock, make_chart_body
    ) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=make_chart_body())

        service = make_service(handler, per_minute=2)
        with pytest.raises(RateLimited, match="2 requests per minute"):
            await service.market_overview(["^GSPC", "^DJI", "^IXIC"])

        assert calls == []
        assert service._budget.remaining()["minute"] == 2

        text = await service.market_overview(["^GSPC", "^DJI"])
        assert len(text.split("\n")) == 2
        assert len(calls) == 2


class TestChart:
    @pytest.mark.asyncio
    async def test_renders_all_points(self, make_service, clock, make_chart_body) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=make_chart_body("TSLA", closes=[1.0] * 25))

        service = make_service(handler)
        text = await service.chart("TSLA", "1mo", "1d")
        assert text.startswith("Chart data for TSLA (1mo, 1d):")
        assert text.count("Date: ") == 25


class TestSearch:
    @pytest.mark.asyncio
    async def test_quotes_and_news(self, make_service, clock) -> None:
        body = {
            "quotes": [
                {"symbol": "AAPL", "shortname": "Apple Inc.", "exchDisp": "NASDAQ", "typeDisp": "Equity"},
                {"symbol": "APLE", "longname": "Apple Hospitality REIT, Inc."},
            ],
            "news": [
                {
                    "title": "Apple unveils new chips",
                    "publisher": "Reuters",
                    "link": "https://news.test/apple",
                    "providerPublishTime": 1_704_205_800,
                }
            ],
        }
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=body)

        service = make_service(handler)
        text = await service.search("apple", quotes_count=2, news_count=1)

        assert seen[0].url.path == "/v1/finance/search"
        assert seen[0].url.params["q"] == "apple"
        assert seen[0].url.params["quotesCount"] == "2"
        assert seen[0].url.params["newsCount"] == "1"
        assert text == (
            'Search results for "apple":\n\n'
            "Quotes:\n"
            "1. Apple Inc. (AAPL)\n   Exchange: NASDAQ\n   Type: Equity\n\n"
            "2. Apple Hospitality REIT, Inc. (APLE)\n\n"
            "News:\n"
            "1. Apple unveils new chips\n"
            "   Source: Reuters\n"
            "   Date: 1/2/2024, 2:30:00 PM\n"
            "   Link: https://news.test/apple\n\n"
        )

    @pytest.mark.asyncio
    async def test_no_matches_is_header_only(self, make_service, clock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"quotes": [], "news": []})

        service = make_service(handler)
        assert await service.search("zzzz") == 'Search results for "zzzz":\n\n'

    @pytest.mark.asyncio
    async def test_autocomplete_asks_for_ten_quotes(self, make_service, clock) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"quotes": [{"symbol": "TSLA", "shortname": "Tesla, Inc."}]})

        service = make_service(handler)
        text = await service.autocomplete("tes")

        assert seen[0].url.params["quotesCount"] == "10"
        assert seen[0].url.params["newsCount"] == "0"
        assert text == 'Suggestions for "tes":\n\n1. Tesla, Inc. (TSLA)\n\n'

    @pytest.mark.asyncio
    async def test_search_spends_budget(self, make_service, clock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"quotes": []})

        service = make_service(handler, per_minute=1)
        await service.search("a")
        with pytest.raises(RateLimited):
            await service.autocomplete("a")


class TestListings:
    @staticmethod
    def _finance(result: dict) -> dict:
        return {"finance": {"result": [result], "error": None}}

    @pytest.mark.asyncio
    async def test_trending(self, make_service, clock) -> None:
        seen: list[httpx.Request] = []
        body = self._finance({
            "quotes": [
                {
                    "symbol": "NVDA",
                    "shortName": "NVIDIA Corporation",
                    "regularMarketPrice": 495.22,
                    "regularMarketChangePercent": 2.345,
                    "marketCap": 1_223_000_000_000,
                    "regularMarketVolume": 41_200_000,
                    "averageDailyVolume3Month": 45_000_000,
                },
                {"symbol": "GME"},
            ]
        })

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=body)

        service = make_service(handler)
        text = await service.trending(count=5, region="GB", lang="en-GB")

        assert seen[0].url.path == "/v1/finance/trending/GB"
        assert seen[0].url.params["count"] == "5"
        assert seen[0].url.params["lang"] == "en-GB"
        assert text == (
            "Trending Stocks (GB):\n\n"
            "1. NVIDIA Corporation (NVDA)\n"
            "   Price: $495.22\n"
            "   Change: 2.35%\n"
            "   Market Cap: $1223.00B\n"
            "   Volume: 41,200,000\n"
            "   Avg Volume: 45,000,000\n\n"
            "2. GME (GME)\n\n"
        )

    @pytest.mark.asyncio
    async def test_screener(self, make_service, clock) -> None:
        seen: list[httpx.Request] = []
        body = self._finance({
            "quotes": [
                {
                    "symbol": "SMCI",
                    "shortName": "Super Micro Computer",
                    "regularMarketPrice": 870.5,
                    "regularMarketChangePercent": -3.1,
                    "marketCap": 49_500_000_000,
                    "regularMarketVolume": 9_000_000,
                }
            ]
        })

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=body)

        service = make_service(handler)
        text = await service.screener("day_losers", count=25)

        assert seen[0].url.path == "/v1/finance/screener/predefined/saved"
        assert seen[0].url.params["scrIds"] == "day_losers"
        assert seen[0].url.params["count"] == "25"
        assert text == (
            "Screener results for day_losers:\n\n"
            "1. Super Micro Computer (SMCI)\n"
            "   Price: $870.50\n"
            "   Change: -3.10%\n"
            "   Market Cap: $49.50B\n\n"
        )

    @pytest.mark.asyncio
    async def test_finance_error_is_upstream_error(self, make_service, clock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            body = {"finance": {"result": None, "error": {"code": "Bad Request", "description": "Invalid scrIds"}}}
            return httpx.Response(400, json=body)

        service = make_service(handler)
        with pytest.raises(UpstreamError, match="HTTP 400: Invalid scrIds"):
            await service.screener("day_gainers")

    @pytest.mark.asyncio
    async def test_recommendations(self, make_service, clock) -> None:
        seen: list[httpx.Request] = []
        body = self._finance({
            "symbol": "AAPL",
            "recommendedSymbols": [
                {"symbol": "MSFT", "score": 0.2931},
                {"symbol": "GOOGL", "score": 0.2511},
            ],
        })

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=body)

        service = make_service(handler)
        text = await service.recommendations("AAPL")

        assert seen[0].url.path == "/v6/finance/recommendationsbysymbol/AAPL"
        assert text == (
            "Recommendations for AAPL:\n\n"
            "Recommended Similar Stocks:\n\n"
            "Symbol: MSFT\nScore: 0.2931\n\n"
            "Symbol: GOOGL\nScore: 0.2511\n\n"
        )

    @pytest.mark.asyncio
    async def test_recommendations_none_available(self, make_service, clock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"finance": {"result": None}})

        service = make_service(handler)
        text = await service.recommendations("ZZZZ")
        assert text == "Recommendations for ZZZZ:\n\nNo recommendations available.\n"
