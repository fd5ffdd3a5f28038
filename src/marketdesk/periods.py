"""Relative period and sampling interval vocabulary for chart requests."""

from datetime import datetime, timedelta, timezone

from marketdesk.exceptions import InvalidParameter

VALID_PERIODS: tuple[str, ...] = (
    "1d", "5d", "1mo", "3mo", "6mo", "1y", "2y", "5y", "10y", "ytd", "max",
)
VALID_INTERVALS: tuple[str, ...] = (
    "1m", "2m", "5m", "15m", "30m", "60m", "90m", "1h", "1d", "5d", "1wk", "1mo", "3mo",
)

DAY_MS = 86_400_000

PERIOD_MS: dict[str, int] = {
    "1d": DAY_MS,
    "5d": 5 * DAY_MS,
    "1mo": 30 * DAY_MS,
    "3mo": 90 * DAY_MS,
    "6mo": 180 * DAY_MS,
    "1y": 365 * DAY_MS,
    "2y": 2 * 365 * DAY_MS,
    "5y": 5 * 365 * DAY_MS,
    "10y": 10 * 365 * DAY_MS,
}

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def validate_period(period: str) -> str:
    if period not in VALID_PERIODS:
        raise InvalidParameter(
            f"Invalid period: {period}. Valid periods are: {', '.join(VALID_PERIODS)}"
        )
    return period


def validate_interval(interval: str) -> str:
    if interval not in VALID_INTERVALS:
        raise InvalidParameter(
            f"Invalid interval: {interval}. Valid intervals are: {', '.join(VALID_INTERVALS)}"
        )
    return interval


def period_start(period: str, now: datetime | None = None) -> datetime:
    """Map a relative period to the absolute start of the request window.

    ``ytd`` is January 1 of the current year, ``max`` is the epoch, anything
    else is ``now`` minus a fixed span. Unrecognized periods fall back to the
    ``1mo`` span instead of failing.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if period == "ytd":
        return now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    if period == "max":
        return EPOCH
    span_ms = PERIOD_MS.get(period, PERIOD_MS["1mo"])
    return now - timedelta(milliseconds=span_ms)


def period_window(period: str, now: datetime | None = None) -> tuple[int, int]:
    """Return (period1, period2) as epoch seconds for the chart endpoint."""
    if now is None:
        now = datetime.now(timezone.utc)
    return int(period_start(period, now).timestamp()), int(now.timestamp())
