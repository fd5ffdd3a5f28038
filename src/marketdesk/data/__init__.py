"""Upstream payload models, chart normalization and listing parsers."""

from marketdesk.data.listings import parse_listing, parse_recommendations, parse_search
from marketdesk.data.models import (
    ListingQuote,
    NewsItem,
    OHLCVRecord,
    QuoteSnapshot,
    RawSeriesPayload,
    Recommendation,
    SampledReport,
    SearchHit,
    SeriesMeta,
)
from marketdesk.data.normalizer import normalize, parse_chart_payload, summarize_quote

__all__ = [
    "ListingQuote",
    "NewsItem",
    "OHLCVRecord",
    "QuoteSnapshot",
    "RawSeriesPayload",
    "Recommendation",
    "SampledReport",
    "SearchHit",
    "SeriesMeta",
    "normalize",
    "parse_chart_payload",
    "parse_listing",
    "parse_recommendations",
    "parse_search",
    "summarize_quote",
]
