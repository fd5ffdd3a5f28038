"""Parsing for the search, trending, screener and recommendation endpoints.

Search returns a flat ``{"quotes": [...], "news": [...]}`` body. The other
three wrap their rows in ``{"finance": {"result": [{...}], "error": null}}``.
Missing fields read as unknown; a row without a symbol is skipped.
"""

from datetime import timezone
from typing import Any

from marketdesk.data.models import ListingQuote, NewsItem, Recommendation, SearchHit
from marketdesk.data.normalizer import _to_datetime, _to_decimal, _to_int


def _first_finance_result(body: Any) -> dict[str, Any]:
    if not isinstance(body, dict):
        return {}
    results = (body.get("finance") or {}).get("result") or []
    if not results or not isinstance(results[0], dict):
        return {}
    return results[0]


def _display_name(raw: dict[str, Any]) -> str | None:
    return (
        raw.get("shortname")
        or raw.get("shortName")
        or raw.get("longname")
        or raw.get("longName")
        or raw.get("name")
    )


def parse_search(body: Any) -> tuple[list[SearchHit], list[NewsItem]]:
    if not isinstance(body, dict):
        return [], []

    hits = []
    for raw in body.get("quotes") or []:
        symbol = raw.get("symbol") or raw.get("ticker")
        if not symbol:
            continue
        hits.append(
            SearchHit(
                symbol=symbol,
                name=_display_name(raw),
                exchange=raw.get("exchDisp"),
                type=raw.get("typeDisp"),
            )
        )

    news = [
        NewsItem(
            title=raw.get("title", ""),
            publisher=raw.get("publisher"),
            link=raw.get("link"),
            published=_to_datetime(raw.get("providerPublishTime"), timezone.utc),
        )
        for raw in body.get("news") or []
    ]
    return hits, news


def parse_listing(body: Any) -> list[ListingQuote]:
    """Rows of a trending or predefined-screener response."""
    quotes = []
    for raw in _first_finance_result(body).get("quotes") or []:
        symbol = raw.get("symbol")
        if not symbol:
            continue
        quotes.append(
            ListingQuote(
                symbol=symbol,
                name=_display_name(raw),
                price=_to_decimal(raw.get("regularMarketPrice")),
                change_percent=_to_decimal(raw.get("regularMarketChangePercent")),
                market_cap=_to_decimal(raw.get("marketCap")),
                volume=_to_int(raw.get("regularMarketVolume") or raw.get("volume")),
                average_volume=_to_int(
                    raw.get("averageDailyVolume3Month") or raw.get("averageVolume")
                ),
            )
        )
    return quotes


def parse_recommendations(body: Any) -> list[Recommendation]:
    return [
        Recommendation(symbol=raw["symbol"], score=_to_decimal(raw.get("score")))
        for raw in _first_finance_result(body).get("recommendedSymbols") or []
        if raw.get("symbol")
    ]
