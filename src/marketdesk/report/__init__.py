"""Text reports for quotes, price series and symbol listings."""

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
    sample_series,
)

__all__ = [
    "render_chart",
    "render_index_line",
    "render_quote",
    "render_recommendations",
    "render_screener",
    "render_search",
    "render_series",
    "render_suggestions",
    "render_trending",
    "sample_series",
]
