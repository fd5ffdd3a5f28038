"""Chart payload parsing and OHLCV normalization.

Upstream envelope (Yahoo Finance v8 chart API)::

    {"chart": {"result": [{"meta": {...},
                           "timestamp": [...],
                           "indicators": {"quote": [{"open": [...], "high": [...],
                                                     "low": [...], "close": [...],
                                                     "volume": [...]}]}}],
               "error": null}}

Arrays are parallel to ``timestamp``. Any entry may be null, and upstream
sometimes truncates a trailing array; both read as unknown.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

from marketdesk.data.models import OHLCVRecord, QuoteSnapshot, RawSeriesPayload, SeriesMeta
from marketdesk.exceptions import EmptySeries


def _to_decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))


def _to_int(value: Any) -> int | None:
    if value is None:
        return None
    return int(value)


def _to_datetime(epoch_seconds: Any, tz: timezone) -> datetime | None:
    if epoch_seconds is None:
        return None
    return datetime.fromtimestamp(int(epoch_seconds), tz=tz)


def _at(values: list, index: int) -> Any:
    """Positional read that treats a short array as unknown."""
    return values[index] if index < len(values) else None


def parse_meta(raw: dict[str, Any]) -> SeriesMeta:
    """Build SeriesMeta from the chart ``meta`` block."""
    offset = int(raw.get("gmtoffset") or 0)
    tz = timezone(timedelta(seconds=offset))
    previous_close = raw.get("previousClose")
    if previous_close is None:
        previous_close = raw.get("chartPreviousClose")
    return SeriesMeta(
        symbol=raw.get("symbol", ""),
        name=raw.get("shortName") or raw.get("longName"),
        currency=raw.get("currency"),
        exchange=raw.get("fullExchangeName") or raw.get("exchangeName"),
        price=_to_decimal(raw.get("regularMarketPrice")),
        previous_close=_to_decimal(previous_close),
        day_high=_to_decimal(raw.get("regularMarketDayHigh")),
        day_low=_to_decimal(raw.get("regularMarketDayLow")),
        fifty_two_week_high=_to_decimal(raw.get("fiftyTwoWeekHigh")),
        fifty_two_week_low=_to_decimal(raw.get("fiftyTwoWeekLow")),
        volume=_to_int(raw.get("regularMarketVolume")),
        gmt_offset_seconds=offset,
        first_trade_time=_to_datetime(raw.get("firstTradeDate"), tz),
        market_time=_to_datetime(raw.get("regularMarketTime"), tz),
    )


def parse_chart_payload(body: dict[str, Any] | None, symbol: str = "") -> RawSeriesPayload:
    """Extract the first chart result as a RawSeriesPayload.

    Raises:
        EmptySeries: the envelope has no result (unknown or delisted symbol).
    """
    chart = (body or {}).get("chart") or {}
    results = chart.get("result") or []
    if not results or not isinstance(results[0], dict):
        raise EmptySeries(symbol)

    result = results[0]
    meta = parse_meta(result.get("meta") or {})
    if not meta.symbol:
        meta.symbol = symbol

    quotes = (result.get("indicators") or {}).get("quote") or [{}]
    quote = quotes[0] or {}

    return RawSeriesPayload(
        meta=meta,
        timestamps=list(result.get("timestamp") or []),
        opens=list(quote.get("open") or []),
        highs=list(quote.get("high") or []),
        lows=list(quote.get("low") or []),
        closes=list(quote.get("close") or []),
        volumes=list(quote.get("volume") or []),
    )


def normalize(payload: RawSeriesPayload | None) -> list[OHLCVRecord]:
    """Turn parallel arrays into one OHLCVRecord per timestamp, order preserved.

    Raises:
        EmptySeries: payload is missing or has no timestamps.
    """
    if payload is None:
        raise EmptySeries()
    if not payload.timestamps:
        raise EmptySeries(payload.meta.symbol)

    tz = timezone(timedelta(seconds=payload.meta.gmt_offset_seconds))
    records = []
    for i, ts in enumerate(payload.timestamps):
        records.append(
            OHLCVRecord(
                timestamp=datetime.fromtimestamp(int(ts), tz=tz),
                open=_to_decimal(_at(payload.opens, i)),
                high=_to_decimal(_at(payload.highs, i)),
                low=_to_decimal(_at(payload.lows, i)),
                close=_to_decimal(_at(payload.closes, i)),
                volume=_to_int(_at(payload.volumes, i)),
            )
        )
    return records


def summarize_quote(meta: SeriesMeta) -> QuoteSnapshot:
    """Derive a quote from metadata alone.

    change = price - previous_close; change_percent = change / previous_close
    as a fraction. Both stay None unless price and a non-zero previous close
    are known.
    """
    change = None
    change_percent = None
    if meta.price is not None and meta.previous_close is not None:
        change = meta.price - meta.previous_close
        if meta.previous_close != 0:
            change_percent = change / meta.previous_close

    return QuoteSnapshot(
        symbol=meta.symbol,
        name=meta.name,
        currency=meta.currency,
        exchange=meta.exchange,
        price=meta.price,
        previous_close=meta.previous_close,
        change=change,
        change_percent=change_percent,
        day_high=meta.day_high,
        day_low=meta.day_low,
        fifty_two_week_high=meta.fifty_two_week_high,
        fifty_two_week_low=meta.fifty_two_week_low,
        volume=meta.volume,
        first_trade_time=meta.first_trade_time,
        market_time=meta.market_time,
    )
