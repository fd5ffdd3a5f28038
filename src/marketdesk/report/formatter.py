"""Deterministic text rendering for quotes, price series and symbol listings.

Series tables mark missing values with ``N/A``; quote listings leave absent
fields out entirely.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from marketdesk.data.models import (
    ListingQuote,
    NewsItem,
    OHLCVRecord,
    QuoteSnapshot,
    Recommendation,
    SampledReport,
    SearchHit,
)

TARGET_ROWS = 10
UNKNOWN = "N/A"
DATE_WIDTH = 11
PRICE_WIDTH = 8

TABLE_HEADER = "Date | Open | High | Low | Close | Volume"
TABLE_RULE = "-----------|----------|----------|----------|----------|------------"

HUNDRED = Decimal("100")
BILLION = Decimal("1000000000")
CENT = Decimal("0.01")


# ──────────────────────────────────────────────
# Field formatting
# ──────────────────────────────────────────────


def _format_date(value: datetime) -> str:
    """M/D/YYYY, no zero padding."""
    return f"{value.month}/{value.day}/{value.year}"


def _format_datetime(value: datetime) -> str:
    """M/D/YYYY, H:MM:SS AM/PM."""
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{_format_date(value)}, {hour}:{value.minute:02d}:{value.second:02d} {suffix}"


def _fixed(value: Decimal) -> str:
    """Two decimals, ties rounded away from zero (10.125 -> 10.13)."""
    return str(value.quantize(CENT, rounding=ROUND_HALF_UP))


def _billions(value: Decimal) -> str:
    return f"${_fixed(value / BILLION)}B"


def _price_cell(value: Decimal | None) -> str:
    if value is None:
        return f"{UNKNOWN:<{PRICE_WIDTH + 1}}"
    return f"${_fixed(value):<{PRICE_WIDTH}}"


def _volume_cell(value: int | None) -> str:
    return UNKNOWN if value is None else f"{value:,}"


def _money(value: Decimal | None) -> str:
    return UNKNOWN if value is None else f"${_fixed(value)}"


# ──────────────────────────────────────────────
# Sampling
# ──────────────────────────────────────────────


def sample_series(records: list[OHLCVRecord]) -> SampledReport:
    """Stride through ``records`` with step = max(1, N // 10).

    Yields between 1 and ~11 rows, never resampled to exactly 10. The change
    fields compare the first and last records of the full series, whatever
    rows were sampled.
    """
    total = len(records)
    step = max(1, total // TARGET_ROWS)
    report = SampledReport(rows=records[::step], step=step, total=total)
    if not records:
        return report

    first, last = records[0], records[-1]
    report.period_start = first.timestamp
    report.period_end = last.timestamp

    if first.close is not None and last.close is not None:
        report.change = last.close - first.close
        if first.close != 0:
            report.change_percent = report.change / first.close * HUNDRED
    return report


# ──────────────────────────────────────────────
# Renderers
# ──────────────────────────────────────────────


def render_row(record: OHLCVRecord) -> str:
    date = f"{_format_date(record.timestamp):<{DATE_WIDTH}.{DATE_WIDTH}}"
    cells = [
        date,
        _price_cell(record.open),
        _price_cell(record.high),
        _price_cell(record.low),
        _price_cell(record.close),
        _volume_cell(record.volume),
    ]
    return " | ".join(cells)


def render_series(
    records: list[OHLCVRecord],
    symbol: str,
    period: str,
    interval: str,
    currency: str | None = None,
) -> str:
    """Render a sampled history table with a trailing price change line."""
    report = sample_series(records)

    lines = [
        f"Historical data for {symbol} ({period}, {interval} intervals)",
        f"Currency: {currency or 'USD'}",
    ]
    if report.period_start is not None and report.period_end is not None:
        lines.append(
            f"Trading Period: {_format_date(report.period_start)} "
            f"to {_format_date(report.period_end)}"
        )
    lines.append("")
    lines.append(TABLE_HEADER)
    lines.append(TABLE_RULE)
    lines.extend(render_row(record) for record in report.rows)

    output = "\n".join(lines) + "\n"
    if report.change is not None and report.change_percent is not None:
        output += f"\nPrice Change: ${_fixed(report.change)} ({_fixed(report.change_percent)}%)"
    return output


def render_chart(records: list[OHLCVRecord], symbol: str, period: str, interval: str) -> str:
    """Render every record as a Date/Open/High/Low/Close/Volume block."""
    output = f"Chart data for {symbol} ({period}, {interval}):\n\n"
    if not records:
        return output

    output += "Price History:\n"
    for record in records:
        output += f"Date: {_format_datetime(record.timestamp)}\n"
        output += f"Open: {_money(record.open)}\n"
        output += f"High: {_money(record.high)}\n"
        output += f"Low: {_money(record.low)}\n"
        output += f"Close: {_money(record.close)}\n"
        output += f"Volume: {_volume_cell(record.volume)}\n\n"
    return output


def render_quote(quote: QuoteSnapshot) -> str:
    """Key/value listing of the quote; fields upstream did not send are skipped."""
    fields: list[tuple[str, str | None]] = [
        ("Symbol", quote.symbol),
        ("Name", quote.name),
        ("Exchange", quote.exchange),
        ("Currency", quote.currency),
        ("Price", _money(quote.price) if quote.price is not None else None),
    ]

    if quote.change is not None:
        change = f"${_fixed(quote.change)}"
        if quote.change_percent is not None:
            change += f" ({_fixed(quote.change_percent * HUNDRED)}%)"
        fields.append(("Change", change))

    fields.extend([
        ("Previous Close", _money(quote.previous_close) if quote.previous_close is not None else None),
        ("Day High", _money(quote.day_high) if quote.day_high is not None else None),
        ("Day Low", _money(quote.day_low) if quote.day_low is not None else None),
        ("52-Week High", _money(quote.fifty_two_week_high) if quote.fifty_two_week_high is not None else None),
        ("52-Week Low", _money(quote.fifty_two_week_low) if quote.fifty_two_week_low is not None else None),
        ("Volume", f"{quote.volume:,}" if quote.volume is not None else None),
        ("First Trade", _format_date(quote.first_trade_time) if quote.first_trade_time else None),
        ("Market Time", _format_datetime(quote.market_time) if quote.market_time else None),
    ])

    return "\n".join(f"{label}: {value}" for label, value in fields if value)


def render_index_line(quote: QuoteSnapshot) -> str:
    """One-line index summary: ``Name: $price (pct%)``."""
    name = quote.name or quote.symbol
    price = _fixed(quote.price) if quote.price is not None else UNKNOWN
    pct = _fixed(quote.change_percent * HUNDRED) if quote.change_percent is not None else UNKNOWN
    return f"{name}: ${price} ({pct}%)"


# ──────────────────────────────────────────────
# Listings: search, trending, screener, recommendations
# ──────────────────────────────────────────────


def _render_hits(hits: list[SearchHit]) -> str:
    output = ""
    for index, hit in enumerate(hits, 1):
        output += f"{index}. {hit.name or hit.symbol} ({hit.symbol})\n"
        if hit.exchange:
            output += f"   Exchange: {hit.exchange}\n"
        if hit.type:
            output += f"   Type: {hit.type}\n"
        output += "\n"
    return output


def render_search(query: str, hits: list[SearchHit], news: list[NewsItem]) -> str:
    output = f'Search results for "{query}":\n\n'
    if hits:
        output += "Quotes:\n" + _render_hits(hits)
    if news:
        output += "News:\n"
        for index, item in enumerate(news, 1):
            output += f"{index}. {item.title}\n"
            if item.publisher:
                output += f"   Source: {item.publisher}\n"
            if item.published is not None:
                output += f"   Date: {_format_datetime(item.published)}\n"
            if item.link:
                output += f"   Link: {item.link}\n"
            output += "\n"
    return output


def render_suggestions(query: str, hits: list[SearchHit]) -> str:
    return f'Suggestions for "{query}":\n\n' + _render_hits(hits)


def _render_listing(index: int, quote: ListingQuote, with_volume: bool) -> str:
    output = f"{index}. {quote.name or quote.symbol} ({quote.symbol})\n"
    if quote.price is not None:
        output += f"   Price: {_money(quote.price)}\n"
    if quote.change_percent is not None:
        output += f"   Change: {_fixed(quote.change_percent)}%\n"
    if quote.market_cap:
        output += f"   Market Cap: {_billions(quote.market_cap)}\n"
    if with_volume and quote.volume:
        output += f"   Volume: {quote.volume:,}\n"
    if with_volume and quote.average_volume:
        output += f"   Avg Volume: {quote.average_volume:,}\n"
    return output + "\n"


def render_trending(region: str, quotes: list[ListingQuote]) -> str:
    output = f"Trending Stocks ({region}):\n\n"
    for index, quote in enumerate(quotes, 1):
        output += _render_listing(index, quote, with_volume=True)
    return output


def render_screener(criteria: str, quotes: list[ListingQuote]) -> str:
    output = f"Screener results for {criteria}:\n\n"
    for index, quote in enumerate(quotes, 1):
        output += _render_listing(index, quote, with_volume=False)
    return output


def render_recommendations(symbol: str, recommendations: list[Recommendation]) -> str:
    output = f"Recommendations for {symbol}:\n\n"
    if not recommendations:
        return output + "No recommendations available.\n"

    output += "Recommended Similar Stocks:\n\n"
    for rec in recommendations:
        output += f"Symbol: {rec.symbol}\n"
        output += f"Score: {rec.score if rec.score is not None else UNKNOWN}\n\n"
    return output
