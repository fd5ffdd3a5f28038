"""Market data operations: quotes, index overview, history, chart and listings.

Each operation validates its parameters before touching the budget, spends
one budget unit per upstream call, and returns rendered text. Errors are
raised as MarketDataError subclasses; flattening them to text is the tool
boundary's job. "No data" outcomes are informational and returned as text.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

from marketdesk.budget import RequestBudget
from marketdesk.config import FetchSettings
from marketdesk.data.listings import parse_listing, parse_recommendations, parse_search
from marketdesk.data.models import OHLCVRecord, QuoteSnapshot, RawSeriesPayload
from marketdesk.data.normalizer import normalize, parse_chart_payload, summarize_quote
from marketdesk.exceptions import EmptySeries, UpstreamError
from marketdesk.fetch.fetcher import ResilientFetcher
from marketdesk.logging import get_logger
from marketdesk.periods import period_window, validate_interval, validate_period
from marketdesk.report.formatter import (
    render_chart,
    render_index_line,
    render_quote,
    render_recommendations,
    render_screener,
    render_search,
    render_series,
    render_suggestions,
    render_trending,
)

logger = get_logger(__name__)

DEFAULT_INDICES: tuple[str, ...] = ("^GSPC", "^DJI", "^IXIC")
AUTOCOMPLETE_COUNT = 10
HTTP_NOT_FOUND = 404


def _error_description(body: Any) -> str:
    """Pull ``{chart|finance}.error.description`` out of an error body, if present."""
    if not isinstance(body, dict):
        return ""
    for envelope in ("chart", "finance"):
        error = (body.get(envelope) or {}).get("error") or {}
        if error:
            return error.get("description") or error.get("code") or ""
    return ""


class MarketDataService:
    """Tool handlers over the Yahoo Finance chart, search and listing endpoints.

    Usage:
        service = MarketDataService(fetcher, budget, settings.fetch)
        text = await service.stock_history("AAPL", "1mo", "1d")
    """

    def __init__(
        self,
        fetcher: ResilientFetcher,
        budget: RequestBudget,
        settings: FetchSettings | None = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._fetcher = fetcher
        self._budget = budget
        self._settings = settings or FetchSettings()
        self._now = now

    # ──────────────────────────────────────────────
    # Upstream access
    # ──────────────────────────────────────────────

    def _url(self, path: str) -> str:
        return f"{self._settings.base_url.rstrip('/')}{path}"

    async def fetch_json(self, path: str, params: dict[str, str | int], symbol: str = "") -> Any:
        """Spend one budget unit, GET ``path`` and return the decoded body.

        Raises:
            RateLimited: budget exhausted; nothing was sent.
            ExhaustedRetries: upstream kept failing transiently.
            EmptySeries: upstream answered 404.
            UpstreamError: any other non-2xx status or an unreadable body.
        """
        self._budget.acquire()
        response = await self._fetcher.fetch(self._url(path), params=params)

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code == HTTP_NOT_FOUND:
            raise EmptySeries(symbol)
        if response.is_error:
            raise UpstreamError(response.status_code, _error_description(body))
        if body is None:
            raise UpstreamError(response.status_code, "response body is not valid JSON")

        logger.debug("upstream_fetched", path=path, remaining=self._budget.remaining())
        return body

    async def fetch_chart(self, symbol: str, params: dict[str, str | int]) -> RawSeriesPayload:
        body = await self.fetch_json(
            f"/v8/finance/chart/{quote(symbol, safe='')}", params, symbol=symbol
        )
        return parse_chart_payload(body, symbol)

    async def get_quote(self, symbol: str) -> QuoteSnapshot:
        payload = await self.fetch_chart(symbol, {"range": "1d", "interval": "1d"})
        return summarize_quote(payload.meta)

    async def get_series(
        self, symbol: str, period: str, interval: str
    ) -> tuple[RawSeriesPayload, list[OHLCVRecord]]:
        validate_period(period)
        validate_interval(interval)
        period1, period2 = period_window(period, self._now())
        payload = await self.fetch_chart(
            symbol,
            {"period1": period1, "period2": period2, "interval": interval},
        )
        return payload, normalize(payload)

    # ──────────────────────────────────────────────
    # Chart operations
    # ──────────────────────────────────────────────

    async def stock_quote(self, symbol: str) -> str:
        try:
            snapshot = await self.get_quote(symbol)
        except EmptySeries:
            return f"No quote data found for symbol: {symbol}"
        return render_quote(snapshot)

    async def market_overview(self, indices: list[str] | None = None) -> str:
        """One line per index, fetched concurrently.

        All or nothing: if any index fails the whole batch raises and no
        partial lines are returned. A batch larger than the remaining budget
        is refused before anything is sent.
        """
        symbols = list(DEFAULT_INDICES) if indices is None else list(indices)
        if not symbols:
            return ""
        self._budget.ensure_available(len(symbols))
        quotes = await asyncio.gather(*(self.get_quote(s) for s in symbols))
        return "\n".join(render_index_line(q) for q in quotes)

    async def stock_history(self, symbol: str, period: str = "1mo", interval: str = "1d") -> str:
        try:
            payload, records = await self.get_series(symbol, period, interval)
        except EmptySeries:
            return f"No historical data found for symbol: {symbol}"
        return render_series(records, symbol, period, interval, payload.meta.currency)

    async def chart(self, symbol: str, period: str = "1mo", interval: str = "1d") -> str:
        try:
            _, records = await self.get_series(symbol, period, interval)
        except EmptySeries:
            return f"No chart data found for symbol: {symbol}"
        return render_chart(records, symbol, period, interval)

    # ──────────────────────────────────────────────
    # Listing operations
    # ──────────────────────────────────────────────

    async def search(self, query: str, quotes_count: int = 10, news_count: int = 0) -> str:
        body = await self.fetch_json(
            "/v1/finance/search",
            {"q": query, "quotesCount": quotes_count, "newsCount": news_count},
        )
        hits, news = parse_search(body)
        return render_search(query, hits, news)

    async def autocomplete(self, query: str) -> str:
        body = await self.fetch_json(
            "/v1/finance/search",
            {"q": query, "quotesCount": AUTOCOMPLETE_COUNT, "newsCount": 0},
        )
        hits, _ = parse_search(body)
        return render_suggestions(query, hits)

    async def trending(self, count: int = 10, region: str = "US", lang: str = "en-US") -> str:
        body = await self.fetch_json(
            f"/v1/finance/trending/{region}",
            {"count": count, "lang": lang},
        )
        return render_trending(region, parse_listing(body))

    async def screener(self, criteria: str, count: int = 50) -> str:
        body = await self.fetch_json(
            "/v1/finance/screener/predefined/saved",
            {"scrIds": criteria, "count": count},
        )
        return render_screener(criteria, parse_listing(body))

    async def recommendations(self, symbol: str) -> str:
        try:
            body = await self.fetch_json(
                f"/v6/finance/recommendationsbysymbol/{quote(symbol, safe='')}",
                {},
                symbol=symbol,
            )
        except EmptySeries:
            return render_recommendations(symbol, [])
        return render_recommendations(symbol, parse_recommendations(body))
