"""Data models for chart payloads, OHLCV records, quotes and symbol listings.

All prices use Decimal built from the string form of the upstream number,
so 181.21 stays 181.21. None always means "unknown upstream", never zero.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal


@dataclass
class SeriesMeta:
    """Metadata block of a chart payload."""

    symbol: str
    name: str | None = None
    currency: str | None = None
    exchange: str | None = None
    price: Decimal | None = None
    previous_close: Decimal | None = None
    day_high: Decimal | None = None
    day_low: Decimal | None = None
    fifty_two_week_high: Decimal | None = None
    fifty_two_week_low: Decimal | None = None
    volume: int | None = None
    gmt_offset_seconds: int = 0
    first_trade_time: datetime | None = None
    market_time: datetime | None = None


@dataclass
class RawSeriesPayload:
    """Upstream series: metadata plus parallel per-index arrays.

    The value arrays may be shorter than ``timestamps`` or hold None entries.
    """

    meta: SeriesMeta
    timestamps: list[int] = field(default_factory=list)
    opens: list[float | None] = field(default_factory=list)
    highs: list[float | None] = field(default_factory=list)
    lows: list[float | None] = field(default_factory=list)
    closes: list[float | None] = field(default_factory=list)
    volumes: list[int | None] = field(default_factory=list)


@dataclass
class OHLCVRecord:
    """One interval of price and volume data."""

    timestamp: datetime
    open: Decimal | None = None
    high: Decimal | None = None
    low: Decimal | None = None
    close: Decimal | None = None
    volume: int | None = None


@dataclass
class QuoteSnapshot:
    """Current quote derived from chart metadata.

    ``change_percent`` is a fraction (0.0125 for 1.25%); renderers scale it.
    """

    symbol: str
    name: str | None = None
    currency: str | None = None
    exchange: str | None = None
    price: Decimal | None = None
    previous_close: Decimal | None = None
    change: Decimal | None = None
    change_percent: Decimal | None = None
    day_high: Decimal | None = None
    day_low: Decimal | None = None
    fifty_two_week_high: Decimal | None = None
    fifty_two_week_low: Decimal | None = None
    volume: int | None = None
    first_trade_time: datetime | None = None
    market_time: datetime | None = None


@dataclass
class SampledReport:
    """Strided view of a series plus full-series summary fields."""

    rows: list[OHLCVRecord]
    step: int
    total: int
    period_start: datetime | None = None
    period_end: datetime | None = None
    change: Decimal | None = None
    change_percent: Decimal | None = None  # already scaled to percent


@dataclass
class SearchHit:
    """One quote match from the search endpoint."""

    symbol: str
    name: str | None = None
    exchange: str | None = None
    type: str | None = None


@dataclass
class NewsItem:
    title: str
    publisher: str | None = None
    link: str | None = None
    published: datetime | None = None


@dataclass
class ListingQuote:
    """A row of a trending or screener listing.

    Unlike QuoteSnapshot, ``change_percent`` arrives already in percent.
    """

    symbol: str
    name: str | None = None
    price: Decimal | None = None
    change_percent: Decimal | None = None
    market_cap: Decimal | None = None
    volume: int | None = None
    average_volume: int | None = None


@dataclass
class Recommendation:
    symbol: str
    score: Decimal | None = None
